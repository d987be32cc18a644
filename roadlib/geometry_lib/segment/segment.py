from ..pose.pose import *
from ..vector.vector import *
from ..common.common import *


class Segment2D:
    def __init__(self, start_point: Point2D, end_point: Point2D) -> None:
        self.start_point = start_point
        self.end_point = end_point
        self.length = self.start_point.distance_to(self.end_point)
        self.unit_direction: Vector2D = Vector2D.from_points(start_point, end_point)
        if self.length > GEOMETRY_EPSILON:
            self.unit_direction.normalize_self()
        self.x_min = min(start_point.x, end_point.x)
        self.x_max = max(start_point.x, end_point.x)
        self.y_min = min(start_point.y, end_point.y)
        self.y_max = max(start_point.y, end_point.y)

    def bounds(self):
        return self.x_min, self.y_min, self.x_max, self.y_max

    def point_at(self, factor) -> Point2D:
        return Point2D(lerp(self.start_point.x, self.end_point.x, factor),
                       lerp(self.start_point.y, self.end_point.y, factor))

    def distance_to_point(self, point):
        if self.length <= GEOMETRY_EPSILON:
            return self.start_point.distance_to(point)
        vector_sq = Vector2D.from_points(self.start_point, point)
        projection = vector_sq.inner_product(self.unit_direction)
        if projection <= 0.0:
            return vector_sq.norm()
        elif projection >= self.length:
            return self.end_point.distance_to(point)
        return abs(vector_sq.cross_product_to(self.unit_direction))

    def project_point(self, point):
        """
        返回 (factor, 投影点)，factor ∈ [0, 1] 为沿线段的比例。
        """
        if self.length <= GEOMETRY_EPSILON:
            return 0.0, Point2D(self.start_point.x, self.start_point.y)
        vector_sq = Vector2D.from_points(self.start_point, point)
        factor = vector_sq.inner_product(self.unit_direction) / self.length
        factor = max(0.0, min(1.0, factor))
        return factor, self.point_at(factor)

    def intersect(self, other: "Segment2D"):
        """
        两线段求交，返回交点（含端点接触），平行或不相交返回 None。
        """
        r = Vector2D.from_points(self.start_point, self.end_point)
        q = Vector2D.from_points(other.start_point, other.end_point)
        denominator = r.cross_product_to(q)
        if abs(denominator) <= GEOMETRY_EPSILON:
            return None
        qp = Vector2D.from_points(self.start_point, other.start_point)
        t = qp.cross_product_to(q) / denominator
        u = qp.cross_product_to(r) / denominator
        if t < 0.0 or t > 1.0 or u < 0.0 or u > 1.0:
            return None
        return self.point_at(t)
