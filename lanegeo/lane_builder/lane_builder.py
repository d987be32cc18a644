import logging
import math
import time
from typing import Dict, List, Tuple

from roadlib.algebra_lib.cubic_spline.cubic_spline import CubicSpline
from roadlib.algebra_lib.polynomial.polynomial import Poly3
from roadlib.geometry_lib.sample.sample import Sample2D
from ..models.features import *
from ..models.map_elements import *
from ..utils.config import DEFAULT_CONFIG, sampling_options
from ..utils.sampling import sample_plan_view
from .lane_tracks import LaneTrack, build_tracks


SECTION_EPSILON = 1e-9
TICK_EPSILON = 1e-6


class Station:
    """
    加密后的中心线采样点及其所属 laneSection。
    laneSection 分界处同一位置出现两次：先按结束段取值，再按起始段取值。
    """
    def __init__(self, sample: Sample2D, section_index) -> None:
        self.sample = sample
        self.section_index = section_index

    @property
    def s(self):
        return self.sample.s


class LaneState:
    """单个采样站点上某条车道的宽度与横向偏移"""
    def __init__(self, station: Station, lane: Lane, width, outer, inner) -> None:
        self.station = station
        self.lane = lane
        self.width = width
        self.outer = outer
        self.inner = inner


class LaneRun:
    def __init__(self, lane: Lane) -> None:
        self.lane_id = lane.lane_id
        self.lane_type = lane.lane_type
        self.outer: List[Tuple[float, float]] = []
        self.inner: List[Tuple[float, float]] = []
        self.s_values: List[float] = []

    def push(self, sample: Sample2D, outer, inner) -> None:
        self.outer.append(sample.lateral_offset(outer).as_tuple())
        self.inner.append(sample.lateral_offset(inner).as_tuple())
        self.s_values.append(sample.s)


def _max_abs_slope(poly: Poly3, span):
    candidates = [0.0, span]
    critical = poly.critical_point()
    if critical is not None and 0.0 < critical < span:
        candidates.append(critical)
    return max(abs(poly.slope(ds)) for ds in candidates)


def _subdivide(ticks, s0, s1, ds) -> None:
    if s1 <= s0:
        return
    t = s0 + ds
    while t < s1 - TICK_EPSILON:
        ticks.add(t)
        t += ds


def build_ticks(road: Road, step, max_angle, lane_cfg=None) -> List[float]:
    """
    必须精确出现在采样中的 s 位置：道路起止、图元边界、laneSection 起点、宽度分段起点、
    laneOffset 起点，以及按多项式斜率细分出的中间点（中心线是直线时也能体现宽度变化）。
    """
    lane_cfg = lane_cfg or DEFAULT_CONFIG['lanes']
    ds_max = max(lane_cfg['width_ds_min'], min(lane_cfg['width_ds_max'], step * 12.0))
    angle_bound = min(lane_cfg['width_angle_max'], max(lane_cfg['width_angle_min'], max_angle))

    def ds_from_slope(max_slope):
        if max_slope <= 1e-9:
            return ds_max
        return max(lane_cfg['width_ds_min'], min(ds_max, angle_bound / max_slope))

    ticks = {0.0, road.length}
    for g in road.plan_view:
        ticks.add(g.s)
        if g.length and g.length > 0.0:
            ticks.add(g.s + g.length)

    for si, section in enumerate(road.lane_sections):
        ticks.add(section.s)
        section_end = road.section_end(si)
        for lane in section.left + section.right:
            for i, w in enumerate(lane.widths):
                s_start = section.s + w.s_offset
                s_end = section.s + lane.widths[i + 1].s_offset if i + 1 < len(lane.widths) else section_end
                ticks.add(s_start)
                poly = Poly3(w.a, w.b, w.c, w.d)
                _subdivide(ticks, s_start, s_end, ds_from_slope(_max_abs_slope(poly, max(0.0, s_end - s_start))))

    for i, lo in enumerate(road.lane_offsets):
        s_end = road.lane_offsets[i + 1].s_offset if i + 1 < len(road.lane_offsets) else road.length
        ticks.add(lo.s_offset)
        poly = Poly3(lo.a, lo.b, lo.c, lo.d)
        _subdivide(ticks, lo.s_offset, s_end, ds_from_slope(_max_abs_slope(poly, max(0.0, s_end - lo.s_offset))))
    return sorted(t for t in ticks if math.isfinite(t))


def insert_ticks(samples: List[Sample2D], ticks: List[float]) -> List[Sample2D]:
    """把严格落在两个采样点之间的 tick 以线性插值插入"""
    if not samples:
        return []
    result = [samples[0]]
    for prev, current in zip(samples, samples[1:]):
        for t in ticks:
            if prev.s + SECTION_EPSILON < t < current.s - SECTION_EPSILON:
                result.append(prev.interpolation_at_s(current, t))
        result.append(current)
    return sorted(result, key=lambda sample: sample.s)


class LaneBoundaryBuilder:
    """
    单条道路的车道边界构建：采样中心线、按 lane track 逐站点计算宽度与偏移，
    输出车道运行段多边形、内边界标线和行车道外缘。
    """
    def __init__(self, road: Road, step=1.0, max_angle=0.05, lane_cfg=None, sampling_cfg=None) -> None:
        self.road = road
        self.lane_cfg = lane_cfg or DEFAULT_CONFIG['lanes']
        self.epsilon = self.lane_cfg['epsilon']
        self.ticks = build_ticks(road, step, max_angle, self.lane_cfg)
        self.samples = insert_ticks(sample_plan_view(road.plan_view, step, max_angle, sampling_cfg), self.ticks)
        self.stations = self._build_stations()
        self.lane_offset = CubicSpline([(lo.s_offset, Poly3(lo.a, lo.b, lo.c, lo.d)) for lo in road.lane_offsets])
        self._width_splines: Dict[Tuple[int, int], CubicSpline] = {}
        self._outer_splines: Dict[Tuple[int, LaneSide, int], CubicSpline] = {}

    def _build_stations(self) -> List[Station]:
        stations = []
        for sample in self.samples:
            si = self.road.section_index_at(sample.s)
            if si > 0 and abs(sample.s - self.road.lane_sections[si].s) <= SECTION_EPSILON:
                stations.append(Station(sample, si - 1))
            stations.append(Station(sample, si))
        return stations

    def width_spline(self, si, lane: Lane) -> CubicSpline:
        key = (si, lane.lane_id)
        if key not in self._width_splines:
            self._width_splines[key] = CubicSpline.from_segments(lane.widths, self.road.lane_sections[si].s)
        return self._width_splines[key]

    def outer_spline(self, si, side: LaneSide, lane_id) -> CubicSpline:
        """
        外边界横向偏移：左侧为 laneOffset + Σ(id <= lane_id 的宽度)，
        右侧为 laneOffset - Σ(id >= lane_id 的宽度)。
        """
        key = (si, side, lane_id)
        if key in self._outer_splines:
            return self._outer_splines[key]
        widths = CubicSpline()
        for lane in self.road.lane_sections[si].lanes(side):
            if abs(lane.lane_id) <= abs(lane_id):
                widths = widths.add(self.width_spline(si, lane))
        if side == LaneSide.right:
            widths = widths.negate()
        spline = self.lane_offset.add(widths)
        self._outer_splines[key] = spline
        return spline

    def lane_state(self, station: Station, side: LaneSide, lane: Lane) -> LaneState:
        si = station.section_index
        width = self.width_spline(si, lane).evaluate(station.s)
        outer = self.outer_spline(si, side, lane.lane_id).evaluate(station.s)
        inner = outer - width if side == LaneSide.left else outer + width
        return LaneState(station, lane, width, outer, inner)

    def road_mark_at(self, track: LaneTrack, s):
        si = self.road.section_index_at(s)
        node = track.node_at(si)
        if node is None:
            return None
        return node.lane.road_mark_at(s - self.road.lane_sections[si].s)

    def _crossing(self, prev: LaneState, current: LaneState, run: LaneRun, side: LaneSide) -> None:
        """在两站点之间线性插值出宽度恰为 epsilon 的位置"""
        dw = current.width - prev.width
        t = (self.epsilon - prev.width) / dw if dw != 0.0 else 0.0
        sample = prev.station.sample.interpolation(current.station.sample, t)
        outer = prev.outer + (current.outer - prev.outer) * t
        inner = outer - self.epsilon if side == LaneSide.left else outer + self.epsilon
        run.push(sample, outer, inner)

    def _emit(self, run: LaneRun, track: LaneTrack, features: FeatureCollections) -> None:
        if len(run.outer) < 2:
            return
        s_start, s_end = run.s_values[0], run.s_values[-1]
        features.lanes.append(LaneRunFeature(self.road.road_id, track.side, run.lane_id, s_start, s_end,
                                             run.lane_type, self.road_mark_at(track, 0.5 * (s_start + s_end)),
                                             run.outer, run.inner))
        features.markings.append(MarkingFeature(self.road.road_id, track.side, run.lane_id, s_start, s_end,
                                                self.road_mark_at(track, s_start), list(run.inner)))

    def build_track_runs(self, track: LaneTrack, features: FeatureCollections) -> None:
        side = track.side
        run = None
        prev = None
        for station in self.stations:
            node = track.node_at(station.section_index)
            if node is None:
                # 该段没有此车道，暂停
                if run is not None:
                    self._emit(run, track, features)
                    run = None
                prev = None
                continue
            state = self.lane_state(station, side, node.lane)
            if run is not None and node.lane.lane_type != run.lane_type:
                # 类型变化只发生在分界处，上一站点已是结束段的分界值
                self._emit(run, track, features)
                run = None
                if state.width > self.epsilon:
                    run = LaneRun(node.lane)
                    run.push(station.sample, state.outer, state.inner)
                prev = state
                continue
            if state.width > self.epsilon:
                if run is None:
                    run = LaneRun(node.lane)
                    if prev is not None and prev.width <= self.epsilon:
                        self._crossing(prev, state, run, side)
                run.push(station.sample, state.outer, state.inner)
            elif run is not None:
                self._crossing(prev, state, run, side)
                self._emit(run, track, features)
                run = None
            prev = state
        if run is not None:
            self._emit(run, track, features)

    def build_edges(self, features: FeatureCollections) -> None:
        """行车道外缘：逐侧累加非人行道车道宽度，不做分段"""
        left_edge, right_edge = [], []
        for station in self.stations:
            si = station.section_index
            section = self.road.lane_sections[si] if self.road.lane_sections else None
            offset = self.lane_offset.evaluate(station.s)
            sum_left = sum_right = 0.0
            if section is not None:
                sum_left = sum(self.width_spline(si, lane).evaluate(station.s)
                               for lane in section.left if lane.lane_type != 'sidewalk')
                sum_right = sum(self.width_spline(si, lane).evaluate(station.s)
                                for lane in section.right if lane.lane_type != 'sidewalk')
            left_edge.append(station.sample.lateral_offset(offset + sum_left).as_tuple())
            right_edge.append(station.sample.lateral_offset(offset - sum_right).as_tuple())
        features.edges.append(EdgeFeature(self.road.road_id, LaneSide.left, left_edge))
        features.edges.append(EdgeFeature(self.road.road_id, LaneSide.right, right_edge))

    def bounds(self):
        xs = [sample.x for sample in self.samples]
        ys = [sample.y for sample in self.samples]
        return min(xs), min(ys), max(xs), max(ys)

    def build(self) -> FeatureCollections:
        features = FeatureCollections()
        if len(self.samples) < 2:
            logging.warning(f"road {self.road.road_id} 采样点不足，跳过车道构建")
            return features
        features.include_bounds(self.bounds())
        features.centerlines.append(CenterlineFeature(self.road.road_id, self.road.name,
                                                      [sample.as_tuple() for sample in self.samples]))
        if self.road.lane_sections:
            for side in (LaneSide.left, LaneSide.right):
                for track in build_tracks(self.road, side):
                    self.build_track_runs(track, features)
        self.build_edges(features)
        return features


def build_geometry(model: RoadModel, cfg=None, quality=None) -> FeatureCollections:
    """
    对整个 RoadModel 构建中心线、车道、标线、外缘要素，道路之间相互独立。
    """
    cfg = cfg or DEFAULT_CONFIG
    step, max_angle = sampling_options(cfg, quality)
    start = time.perf_counter()
    features = FeatureCollections()
    for road in model.roads:
        if not road.plan_view:
            continue
        features.extend(LaneBoundaryBuilder(road, step, max_angle, cfg['lanes'], cfg['sampling']).build())
    logging.debug(f"几何构建完成：{len(model.roads)} 条道路，{len(features.lanes)} 个车道段，"
                  f"耗时 {time.perf_counter() - start:.3f}s")
    return features
