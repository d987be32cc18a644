import math
from typing import Dict, List

from roadlib.geometry_lib.common.common import GEOMETRY_EPSILON
from roadlib.geometry_lib.point.point import Point2D
from roadlib.geometry_lib.vector.vector import Vector2D
from ..utils.projector import Projector


MIN_TURN_ANGLE = 1e-3     # 小于该转角（弧度）视为直线
MIN_TAN_HALF = 1e-6
EDGE_SHARE = 0.49         # 圆弧最多占用相邻边长的比例
MIN_TANGENT_PX = 1.0
DEFAULT_CHORD_PX = 8.0


class Corner:
    """像素空间中内部顶点处的转角信息"""
    def __init__(self, p0: Point2D, p1: Point2D, p2: Point2D) -> None:
        self.point = p1
        self.in_dir = Vector2D.from_points(p0, p1)
        self.out_dir = Vector2D.from_points(p1, p2)
        self.in_length = self.in_dir.norm()
        self.out_length = self.out_dir.norm()
        self.min_length = min(self.in_length, self.out_length)
        self.alpha = 0.0
        self.tan_half = 0.0
        self.turn = 0
        if self.min_length <= GEOMETRY_EPSILON:
            return
        self.in_dir.normalize_self()
        self.out_dir.normalize_self()
        cos_alpha = max(-1.0, min(1.0, self.in_dir.inner_product(self.out_dir)))
        self.alpha = math.acos(cos_alpha)
        self.tan_half = math.tan(self.alpha / 2.0)
        cross = self.in_dir.cross_product_to(self.out_dir)
        self.turn = (cross > 0) - (cross < 0)

    def is_sharp(self):
        return (self.min_length > GEOMETRY_EPSILON and self.alpha >= MIN_TURN_ANGLE
                and self.turn != 0 and math.isfinite(self.tan_half) and self.tan_half > MIN_TAN_HALF)

    def tangent_goal(self, k):
        k = max(0.0, min(1.0, k))
        return (k * self.min_length / self.alpha) * self.tan_half


def _to_pixels(vertices: List[Point2D], projector: Projector) -> List[Point2D]:
    return [projector.to_screen(v) for v in vertices]


def _corner(px: List[Point2D], index):
    if index <= 0 or index >= len(px) - 1:
        return None
    corner = Corner(px[index - 1], px[index], px[index + 1])
    return corner if corner.is_sharp() else None


def tangent_length_at(px: List[Point2D], index, k):
    """不考虑相邻顶点时的切线长度，用于相邻圆弧的避让"""
    corner = _corner(px, index)
    if corner is None or k <= 0.0:
        return 0.0
    cap = EDGE_SHARE * corner.min_length
    return max(min(MIN_TANGENT_PX, cap), min(corner.tangent_goal(k), cap))


def tangent_limit(px: List[Point2D], index, rounding: Dict[int, float]):
    """
    t_max = min(0.49 * min(l1, l2), l1 - t(前一顶点), l2 - t(后一顶点))，保证相邻圆弧不重叠。
    """
    corner = _corner(px, index)
    if corner is None:
        return 0.0
    t_prev = tangent_length_at(px, index - 1, rounding.get(index - 1, 1.0))
    t_next = tangent_length_at(px, index + 1, rounding.get(index + 1, 1.0))
    t_max_adj = max(0.0, min(corner.in_length - t_prev, corner.out_length - t_next))
    return max(0.0, min(EDGE_SHARE * corner.min_length, t_max_adj))


def _arc_points(corner: Corner, t, chord_px) -> List[Point2D]:
    radius = t / corner.tan_half
    t1 = Point2D(corner.point.x - corner.in_dir.x * t, corner.point.y - corner.in_dir.y * t)
    t2 = Point2D(corner.point.x + corner.out_dir.x * t, corner.point.y + corner.out_dir.y * t)
    n0 = corner.in_dir.normal_vector().scaled(corner.turn * radius)
    n1 = corner.out_dir.normal_vector().scaled(corner.turn * radius)
    # 两个切点求得的圆心取平均
    cx = 0.5 * (t1.x + n0.x + t2.x + n1.x)
    cy = 0.5 * (t1.y + n0.y + t2.y + n1.y)
    start = math.atan2(t1.y - cy, t1.x - cx)
    end = math.atan2(t2.y - cy, t2.x - cx)
    if corner.turn > 0:
        while end < start:
            end += 2.0 * math.pi
    else:
        while end > start:
            end -= 2.0 * math.pi
    steps = max(2, math.ceil(abs(end - start) * radius / chord_px))
    points = [t1]
    for i in range(1, steps):
        theta = start + (end - start) * i / steps
        points.append(Point2D(cx + radius * math.cos(theta), cy + radius * math.sin(theta)))
    points.append(t2)
    return points


def smooth_axis(vertices: List[Point2D], rounding: Dict[int, float], projector: Projector,
                chord_px=DEFAULT_CHORD_PX) -> List[Point2D]:
    """
    把内部顶点替换为与两侧边相切的圆弧，计算在投影后的像素空间完成。
    k = 0、近似共线或退化的顶点原样保留。
    """
    if len(vertices) <= 2:
        return list(vertices)
    px = _to_pixels(vertices, projector)
    result = [vertices[0]]
    for i in range(1, len(px) - 1):
        k = rounding.get(i, 1.0)
        corner = _corner(px, i)
        if corner is None or k <= 0.0:
            result.append(vertices[i])
            continue
        t_max = tangent_limit(px, i, rounding)
        if t_max <= 0.0:
            result.append(vertices[i])
            continue
        t = max(min(MIN_TANGENT_PX, t_max), min(corner.tangent_goal(k), t_max))
        result.extend(projector.to_world(p) for p in _arc_points(corner, t, chord_px))
    result.append(vertices[-1])
    return result


def _bisector(corner: Corner) -> Vector2D:
    bisector = Vector2D(corner.out_dir.x - corner.in_dir.x, corner.out_dir.y - corner.in_dir.y)
    if bisector.norm() <= GEOMETRY_EPSILON:
        return None
    bisector.normalize_self()
    return bisector


def _pixels_per_meter(corner: Corner, bisector: Vector2D, projector: Projector, scale_px):
    offset_point = Point2D(corner.point.x + bisector.x * scale_px, corner.point.y + bisector.y * scale_px)
    meters = projector.to_world(corner.point).distance_to(projector.to_world(offset_point))
    return scale_px / meters if meters > 1e-6 else 0.0


def corner_radius(vertices: List[Point2D], rounding: Dict[int, float], index, projector: Projector,
                  scale_px=50.0):
    """当前圆角半径（米），沿角平分线方向换算像素与米"""
    px = _to_pixels(vertices, projector)
    corner = _corner(px, index)
    if corner is None:
        return 0.0
    bisector = _bisector(corner)
    if bisector is None:
        return 0.0
    t = max(0.0, min(corner.tangent_goal(rounding.get(index, 1.0)), tangent_limit(px, index, rounding)))
    radius_px = t / corner.tan_half
    scale = _pixels_per_meter(corner, bisector, projector, scale_px)
    return radius_px / scale if scale > 0.0 else 0.0


def rounding_for_radius(vertices: List[Point2D], rounding: Dict[int, float], index, radius, projector: Projector,
                        scale_px=50.0):
    """
    由期望半径（米）反算圆角系数 k，返回 (k, 是否被钳制, 实际半径米)。
    半径超过可用切线长度允许的最大值时钳制到最大值。
    """
    px = _to_pixels(vertices, projector)
    corner = _corner(px, index)
    if corner is None:
        return None
    bisector = _bisector(corner)
    if bisector is None:
        return None
    if not math.isfinite(radius) or radius < 0.0:
        radius = 0.0
    scale = _pixels_per_meter(corner, bisector, projector, scale_px)
    radius_px = radius * scale
    radius_px_max = tangent_limit(px, index, rounding) / corner.tan_half
    clamped = radius_px > radius_px_max + 1e-6
    if clamped:
        radius_px = radius_px_max
    k = max(0.0, min(1.0, radius_px * corner.alpha / corner.min_length))
    applied = radius_px / scale if scale > 0.0 else 0.0
    return k, clamped, applied
