import math
import numpy as np


class Point2D:
    def __init__(self, x=0.0, y=0.0) -> None:
        self.x = x
        self.y = y

    def __repr__(self):
        return f"x:= {self.x}, y:= {self.y}"

    def __eq__(self, other):
        return isinstance(other, Point2D) and self.x == other.x and self.y == other.y

    def __hash__(self):
        return hash((self.x, self.y))

    def as_tuple(self):
        return self.x, self.y

    def distance_to(self, other_point: "Point2D"):
        return math.sqrt((self.x - other_point.x) ** 2 + (self.y - other_point.y) ** 2)

    def transform_from(self, base_pose) -> "Point2D":
        ans = np.dot(np.array([self.x, self.y]),
                     np.array([[base_pose.cos, base_pose.sin],
                               [-base_pose.sin, base_pose.cos]]))
        return Point2D(base_pose.x + ans[0], base_pose.y + ans[1])
