from ..common.common import *
from ..point.point import Point2D

import math


class Pose2D(Point2D):
    def __init__(self, x=0.0, y=0.0, yaw=0.0) -> None:
        super().__init__(x, y)
        self._yaw = angle_normalize(yaw)
        self.sin = math.sin(self.yaw)
        self.cos = math.cos(self.yaw)

    @property
    def yaw(self):
        return self._yaw

    def lateral_offset(self, offset) -> Point2D:
        """沿左法向平移 offset（左正右负）"""
        return Point2D(self.x - offset * self.sin, self.y + offset * self.cos)
