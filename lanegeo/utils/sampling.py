import logging
import math
from typing import List

from roadlib.algebra_lib.polynomial.polynomial import Poly3
from roadlib.geometry_lib.common.common import CURVATURE_EPSILON
from roadlib.geometry_lib.pose.pose import Pose2D
from roadlib.geometry_lib.point.point import Point2D
from roadlib.geometry_lib.sample.sample import Sample2D
from ..models.errors import DegenerateGeometry
from ..models.map_elements import *
from .config import DEFAULT_CONFIG


END_EPSILON = 1e-9


def _line_samples(geometry: Geometry, step) -> List[Sample2D]:
    n = max(1, math.ceil(geometry.length / step))
    ds = geometry.length / n
    cos_h = math.cos(geometry.hdg)
    sin_h = math.sin(geometry.hdg)
    samples = []
    for i in range(n + 1):
        s = geometry.length if i == n else i * ds
        samples.append(Sample2D(s, geometry.x + s * cos_h, geometry.y + s * sin_h, geometry.hdg, 0.0))
    return samples


def _arc_samples(geometry: ArcGeometry, step, max_angle) -> List[Sample2D]:
    k = geometry.curvature or 0.0
    if abs(k) < CURVATURE_EPSILON:
        return _line_samples(geometry, step)
    ds = min(step, max_angle / abs(k))
    n = max(1, math.ceil(geometry.length / ds))
    ds = geometry.length / n
    samples = []
    for i in range(n + 1):
        s = geometry.length if i == n else i * ds
        heading = geometry.hdg + k * s
        x = geometry.x + (math.sin(heading) - math.sin(geometry.hdg)) / k
        y = geometry.y - (math.cos(heading) - math.cos(geometry.hdg)) / k
        samples.append(Sample2D(s, x, y, heading, k))
    return samples


def _spiral_step(k0, dk, s, step, max_angle, min_step):
    """
    满足 |k(s)|*h + 0.5*|dk|*h^2 <= max_angle 的最大步长（闭式二次根）。
    """
    a = 0.5 * abs(dk)
    b = abs(k0 + dk * s)
    h = step
    if a > CURVATURE_EPSILON:
        disc = max(0.0, b * b + 4.0 * a * max_angle)
        h = min(h, (-b + math.sqrt(disc)) / (2.0 * a))
    elif b > CURVATURE_EPSILON:
        h = min(h, max_angle / b)
    return max(min_step, min(h, step))


def _spiral_samples(geometry: SpiralGeometry, step, max_angle, min_step) -> List[Sample2D]:
    """
    螺旋线（曲率随弧长线性变化）以 RK4 对状态 (x, y, θ) 积分，θ' = k0 + dk*s。
    """
    length = geometry.length
    k0 = geometry.curv_start or 0.0
    k1 = geometry.curv_end or 0.0
    dk = (k1 - k0) / length

    def derivative(s, state):
        return math.cos(state[2]), math.sin(state[2]), k0 + dk * s

    s = 0.0
    state = (geometry.x, geometry.y, geometry.hdg)
    samples = [Sample2D(0.0, state[0], state[1], state[2], k0)]
    while s < length - END_EPSILON:
        h = _spiral_step(k0, dk, s, step, max_angle, min_step)
        # 不越过终点，剩余不足一个最小步时直接收尾
        if s + h > length - END_EPSILON:
            h = length - s
        d1 = derivative(s, state)
        d2 = derivative(s + 0.5 * h, tuple(v + 0.5 * h * d for v, d in zip(state, d1)))
        d3 = derivative(s + 0.5 * h, tuple(v + 0.5 * h * d for v, d in zip(state, d2)))
        d4 = derivative(s + h, tuple(v + h * d for v, d in zip(state, d3)))
        state = tuple(v + (h / 6.0) * (a + 2.0 * b + 2.0 * c + d)
                      for v, a, b, c, d in zip(state, d1, d2, d3, d4))
        s = length if length - (s + h) <= END_EPSILON else s + h
        samples.append(Sample2D(s, state[0], state[1], state[2], k0 + dk * s))
    return samples


def _param_poly3_point(geometry: ParamPoly3Geometry, u: Poly3, v: Poly3, s) -> Sample2D:
    base = Pose2D(geometry.x, geometry.y, geometry.hdg)
    p = s / geometry.length if geometry.p_range == 'normalized' else s
    du, dv = u.slope(p), v.slope(p)
    ddu, ddv = u.curvature_proxy(p), v.curvature_proxy(p)
    speed_sq = du * du + dv * dv
    # 局部坐标系下的曲率与航向在旋转后保持不变，只需叠加 hdg
    curvature = 0.0
    if speed_sq > 1e-18:
        curvature = (du * ddv - dv * ddu) / speed_sq ** 1.5
    world = Point2D(u.value(p), v.value(p)).transform_from(base)
    return Sample2D(s, world.x, world.y, geometry.hdg + math.atan2(dv, du), curvature)


def _param_poly3_samples(geometry: ParamPoly3Geometry, step, max_angle) -> List[Sample2D]:
    u = Poly3(*geometry.u_params)
    v = Poly3(*geometry.v_params)
    length = geometry.length
    samples = []
    s = 0.0
    while s < length - END_EPSILON:
        sample = _param_poly3_point(geometry, u, v, s)
        samples.append(sample)
        curvature = abs(sample.curvature)
        ds_angle = max_angle / curvature if curvature > 1e-9 else length
        s += min(step, ds_angle, length - s)
    # 终点修正：最后一个采样点的 s 恰为 length
    samples.append(_param_poly3_point(geometry, u, v, length))
    return samples


def sample_geometry(geometry: Geometry, step=1.0, max_angle=0.05, sampling_cfg=None) -> List[Sample2D]:
    """
    对单个 planView 图元自适应采样，返回局部 s（从 0 到 length）的 Sample2D 列表。
    step 为弦长目标，max_angle 为单步航向变化目标，两者的下限与螺旋线最小步长取自 sampling_cfg（配置的 sampling 段）。
    """
    length = geometry.length
    if length is None or not math.isfinite(length) or length <= 0.0:
        raise DegenerateGeometry(f"图元长度无效：{geometry}")
    sampling_cfg = sampling_cfg or DEFAULT_CONFIG['sampling']
    step = max(sampling_cfg['min_step'], step)
    max_angle = max(sampling_cfg['min_max_angle'], max_angle)
    if geometry.geometry_type == GeometryType.arc:
        return _arc_samples(geometry, step, max_angle)
    if geometry.geometry_type == GeometryType.spiral:
        return _spiral_samples(geometry, step, max_angle, sampling_cfg['spiral_min_step'])
    if geometry.geometry_type == GeometryType.param_poly3:
        return _param_poly3_samples(geometry, step, max_angle)
    return _line_samples(geometry, step)


def sample_plan_view(plan_view: List[Geometry], step=1.0, max_angle=0.05, sampling_cfg=None) -> List[Sample2D]:
    """
    整条道路采样：按 s 排序各图元，局部 s 加上图元起点 s，丢弃图元衔接处的重复点。
    """
    result: List[Sample2D] = []
    for geometry in sorted(plan_view, key=lambda g: g.s):
        try:
            samples = sample_geometry(geometry, step, max_angle, sampling_cfg)
        except DegenerateGeometry as e:
            logging.warning(f"跳过退化图元：{e}")
            continue
        samples = [sample.shifted(geometry.s) for sample in samples]
        if result and samples:
            samples = samples[1:]
        result.extend(samples)
    return result
