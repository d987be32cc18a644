import logging
import math
import time
from collections import OrderedDict
from typing import Dict, List, Optional

from roadlib.geometry_lib.point.point import Point2D
from roadlib.geometry_lib.segment.segment import Segment2D
from roadlib.geometry_lib.vector.vector import Vector2D
from ..lane_builder.lane_builder import build_geometry
from ..models.editor_elements import EditableAxis, Intersection
from ..models.errors import ClampedValue
from ..models.features import FeatureCollections, IntersectionFeature
from ..models.map_elements import *
from ..parsers.parsers import parse_xodr
from ..utils.config import DEFAULT_CONFIG
from ..utils.geo_reference import GeoReference, tmerc_string
from ..utils.projector import IdentityProjector, Projector
from ..writers.xodr_writer import write_xodr
from .axis_rounder import corner_radius, rounding_for_radius, smooth_axis
from .intersections import attach_roads, resolve_intersections, split_axis
from .scheduler import RebuildScheduler


class HistoryEntry:
    def __init__(self, axis: EditableAxis) -> None:
        self.axis_id = axis.axis_id
        self.vertices = [Point2D(p.x, p.y) for p in axis.vertices]
        self.rounding = dict(axis.rounding)


class RoadSegment:
    """按交点拆分后的轴线片段，导出时一段对应一条 road"""
    def __init__(self, segment_id, parent_id, index, points: List[Point2D]) -> None:
        self.segment_id = segment_id
        self.parent_id = parent_id
        self.index = index
        self.points = points


def simplify_axis(points: List[Point2D], angle_deg=2.5) -> List[Point2D]:
    """
    合并小于角度阈值的微小折角，并去掉重合的相邻点；结果不足两个点时返回原折线。
    """
    if len(points) <= 2:
        return list(points)
    threshold = math.radians(max(0.5, angle_deg))

    def turn_angle(a, b, c):
        v0 = Vector2D.from_points(a, b)
        v1 = Vector2D.from_points(b, c)
        if v0.norm() < 1e-9 or v1.norm() < 1e-9:
            return 0.0
        cos_angle = v0.inner_product(v1) / (v0.norm() * v1.norm())
        return math.acos(max(-1.0, min(1.0, cos_angle)))

    kept = [points[0]]
    for i in range(1, len(points) - 1):
        if turn_angle(kept[-1], points[i], points[i + 1]) > threshold:
            kept.append(points[i])
    kept.append(points[-1])
    deduped = [kept[0]]
    for point in kept[1:]:
        if point.distance_to(deduped[-1]) > 1e-12:
            deduped.append(point)
    return deduped if len(deduped) >= 2 else list(points)


class EditorSession:
    """
    轴线编辑会话：持有轴线与圆角系数，修改后整体重算
    （圆角 → 交点 → 拆分 → 道路 → 车道几何），并负责导出与回读。
    """
    def __init__(self, projector: Projector = None, cfg=None, origin=None, clock=time.monotonic) -> None:
        self.cfg = cfg or DEFAULT_CONFIG
        self.editor_cfg = self.cfg['editor']
        self.projector = projector or IdentityProjector()
        self.origin = origin or (self.cfg['origin']['lat'], self.cfg['origin']['lon'])
        self.clock = clock
        self.axes: Dict[str, EditableAxis] = OrderedDict()
        self.history: List[HistoryEntry] = []
        self.clamps: Dict[tuple, ClampedValue] = {}
        self._id_counter = 0
        # 派生状态，由 recompute 整体刷新
        self.smoothed: Dict[str, List[Point2D]] = {}
        self.intersections: List[Intersection] = []
        self.segments: List[RoadSegment] = []
        self.features = FeatureCollections()
        self.scheduler = RebuildScheduler(self.recompute, self.editor_cfg['rebuild_delay'])

    @property
    def tolerance_px(self):
        return max(self.editor_cfg['cluster_px_min'], self.editor_cfg['snap_vertex_px'])

    def _next_id(self):
        while True:
            self._id_counter += 1
            axis_id = f"axis_{self._id_counter}"
            if axis_id not in self.axes:
                return axis_id

    def _axis(self, axis_id) -> EditableAxis:
        axis = self.axes.get(str(axis_id))
        if axis is None:
            raise KeyError(f"axis {axis_id} 不存在")
        return axis

    def _remember(self, axis: EditableAxis) -> None:
        self.history.append(HistoryEntry(axis))

    # ---- 轴线编辑 ----
    def create_axis(self, vertices: List[Point2D], axis_id=None, rounding=None) -> str:
        if len(vertices) < 2:
            raise ValueError("轴线至少需要两个顶点")
        axis_id = str(axis_id) if axis_id is not None else self._next_id()
        self.axes[axis_id] = EditableAxis(axis_id, [Point2D(p.x, p.y) for p in vertices], rounding)
        logging.debug(f"新建轴线 {axis_id}，顶点 {len(vertices)} 个")
        return axis_id

    def delete_axis(self, axis_id) -> None:
        self.axes.pop(str(axis_id), None)
        self.clamps = {key: value for key, value in self.clamps.items() if key[0] != str(axis_id)}

    def insert_vertex(self, axis_id, segment_index, point: Point2D = None, snap=False) -> int:
        """在第 segment_index 段上插入顶点（默认取中点），返回新顶点下标"""
        axis = self._axis(axis_id)
        if not 0 <= segment_index < len(axis.vertices) - 1:
            raise IndexError(f"axis {axis_id} 没有第 {segment_index} 段")
        self._remember(axis)
        if point is None:
            point = Segment2D(axis.vertices[segment_index], axis.vertices[segment_index + 1]).point_at(0.5)
        if snap:
            point = self.snap(point, exclude_axis=axis.axis_id)
        index = segment_index + 1
        axis.vertices.insert(index, Point2D(point.x, point.y))
        axis.rounding = {(i + 1 if i >= index else i): k for i, k in axis.rounding.items()}
        return index

    def move_vertex(self, axis_id, index, point: Point2D, snap=True) -> Point2D:
        axis = self._axis(axis_id)
        self._remember(axis)
        if snap:
            point = self.snap(point, exclude_axis=axis.axis_id)
        axis.vertices[index] = Point2D(point.x, point.y)
        return axis.vertices[index]

    def delete_vertex(self, axis_id, index) -> bool:
        axis = self._axis(axis_id)
        if len(axis.vertices) <= 2:
            return False
        self._remember(axis)
        del axis.vertices[index]
        axis.rounding = {(i - 1 if i > index else i): k for i, k in axis.rounding.items() if i != index}
        return True

    def undo(self) -> bool:
        if not self.history:
            logging.debug("撤销栈为空")
            return False
        entry = self.history.pop()
        axis = self.axes.get(entry.axis_id)
        if axis is None:
            return False
        axis.vertices = entry.vertices
        axis.rounding = entry.rounding
        return True

    # ---- 圆角 ----
    def rounding_factor(self, axis_id, index) -> float:
        return self._axis(axis_id).rounding_at(index)

    def set_rounding_factor(self, axis_id, index, k) -> float:
        return self._axis(axis_id).set_rounding(index, k)

    def corner_radius(self, axis_id, index) -> float:
        axis = self._axis(axis_id)
        return corner_radius(axis.vertices, axis.rounding, index, self.projector,
                             self.editor_cfg['radius_scale_px'])

    def set_corner_radius(self, axis_id, index, radius) -> Optional[ClampedValue]:
        """
        按半径（米）设置圆角，超出可用切线长度时钳制并返回 ClampedValue，界面据此限时提示。
        """
        axis = self._axis(axis_id)
        result = rounding_for_radius(axis.vertices, axis.rounding, index, radius, self.projector,
                                     self.editor_cfg['radius_scale_px'])
        if result is None:
            return None
        k, clamped, applied = result
        axis.set_rounding(index, k)
        if not clamped:
            self.clamps.pop((axis.axis_id, index), None)
            return None
        report = ClampedValue(axis.axis_id, index, radius, applied,
                              self.clock() + self.editor_cfg['clamp_label_seconds'])
        self.clamps[(axis.axis_id, index)] = report
        logging.info(f"axis {axis.axis_id} 顶点 {index} 半径 {radius:.2f}m 超出上限，钳制为 {applied:.2f}m")
        return report

    def active_clamps(self) -> List[ClampedValue]:
        now = self.clock()
        return [report for report in self.clamps.values() if report.is_active(now)]

    # ---- 吸附 ----
    def snap(self, point: Point2D, exclude_axis=None) -> Point2D:
        """
        顶点优先：交点与其它轴线平滑后的顶点在 snap_vertex_px 内时吸附到最近者；
        否则吸附到 snap_px 内最近的线段点；都没有则原样返回。
        """
        mouse = self.projector.to_screen(point)
        others = [seg for seg in self.segments if seg.parent_id != exclude_axis]
        best, best_dist = None, None
        vertices = [inter.position for inter in self.intersections]
        vertices.extend(p for seg in others for p in seg.points)
        for vertex in vertices:
            dist = self.projector.to_screen(vertex).distance_to(mouse)
            if dist <= self.editor_cfg['snap_vertex_px'] and (best_dist is None or dist < best_dist):
                best, best_dist = vertex, dist
        if best is not None:
            return Point2D(best.x, best.y)
        for seg in others:
            for a, b in zip(seg.points, seg.points[1:]):
                segment = Segment2D(self.projector.to_screen(a), self.projector.to_screen(b))
                if segment.length < 1e-3:
                    continue
                _, foot = segment.project_point(mouse)
                dist = foot.distance_to(mouse)
                if dist <= self.editor_cfg['snap_px'] and (best_dist is None or dist < best_dist):
                    best, best_dist = self.projector.to_world(foot), dist
        return best if best is not None else Point2D(point.x, point.y)

    # ---- 重算 ----
    def recompute(self) -> FeatureCollections:
        """圆角、交点、拆分、道路、车道几何作为一个整体步骤重算"""
        start = time.perf_counter()
        chord_px = self.editor_cfg['arc_chord_px']
        self.smoothed = {axis_id: smooth_axis(axis.vertices, axis.rounding, self.projector, chord_px)
                         for axis_id, axis in self.axes.items()}
        authored = {axis_id: axis.vertices for axis_id, axis in self.axes.items()}
        self.intersections = resolve_intersections(self.smoothed, authored, self.projector, self.tolerance_px)
        self.segments = []
        for axis_id, polyline in self.smoothed.items():
            parts = split_axis(polyline, self.intersections, axis_id, self.projector,
                               self.editor_cfg['dedupe_epsilon'])
            for i, points in enumerate(parts):
                self.segments.append(RoadSegment(f"{axis_id}__seg_{i + 1}", axis_id, i, points))
        attach_roads(self.intersections, {seg.segment_id: seg.points for seg in self.segments},
                     self.projector, self.tolerance_px)
        self.features = build_geometry(self.build_model(), self.cfg)
        self.features.intersections = [IntersectionFeature(inter.position.as_tuple(),
                                                           sorted(inter.member_axis_ids), inter.road_ids)
                                       for inter in self.intersections]
        logging.debug(f"编辑器重算：轴线 {len(self.axes)} 条，交点 {len(self.intersections)} 个，"
                      f"路段 {len(self.segments)} 条，耗时 {time.perf_counter() - start:.3f}s")
        return self.features

    def request_rebuild(self, dragging=False) -> None:
        delay = self.editor_cfg['drag_rebuild_delay'] if dragging else self.editor_cfg['rebuild_delay']
        self.scheduler.trigger(delay)

    # ---- 导出 / 回读 ----
    def _segment_road(self, road_id, segment: RoadSegment) -> Road:
        road = Road(road_id, segment.parent_id)
        s = 0.0
        for a, b in zip(segment.points, segment.points[1:]):
            length = a.distance_to(b)
            if round(length, 3) <= 0.0:
                continue
            hdg = math.atan2(b.y - a.y, b.x - a.x)
            road.plan_view.append(LineGeometry(round(s, 3), round(a.x, 3), round(a.y, 3), round(hdg, 6), round(length, 3)))
            s += length
        road.length = round(s, 3)
        width = self.editor_cfg['lane_width']
        # 固定双车道断面：左 1、右 -1，中心线虚线
        road.lane_sections.append(LaneSection(0.0,
                                              left=[Lane(1, 'driving', [PolySegment(0.0, width)])],
                                              center=[Lane(0, 'none', road_marks=[RoadMark(0.0, 'broken', width=0.15)])],
                                              right=[Lane(-1, 'driving', [PolySegment(0.0, width)])]))
        return road

    def build_model(self) -> RoadModel:
        header = GeoHeader(self.origin[0], self.origin[1], tmerc_string(self.origin[0], self.origin[1]))
        roads = []
        for segment in self.segments:
            road = self._segment_road(str(len(roads) + 1), segment)
            if road.plan_view:
                roads.append(road)
        return RoadModel(header, roads, [axis.copy() for axis in self.axes.values()])

    def export_xodr(self, origin=None) -> str:
        """origin 为当前视图中心 (lat, lon)，写入 geoReference"""
        if origin is not None:
            self.origin = origin
        self.recompute()
        model = self.build_model()
        return write_xodr(model, model.editor_axes)

    def to_geojson(self):
        """预览要素按导出原点转为经纬度 GeoJSON"""
        geo = GeoReference.from_header(self.build_model().header)
        return self.features.to_geojson(geo.to_lon_lat)

    def reset(self) -> None:
        self.axes.clear()
        self.history.clear()
        self.clamps.clear()
        self.scheduler.cancel()

    def ingest_editor_axes(self, axes: List[EditableAxis]) -> None:
        self.reset()
        for axis in axes:
            self.axes[axis.axis_id] = axis.copy()
        logging.info(f"回读 editorAxes：{len(self.axes)} 条轴线")
        self.recompute()

    def ingest_centerlines(self, centerlines: List[List[Point2D]]) -> None:
        """由道路中心线生成可编辑轴线，内部顶点圆角系数默认为 1"""
        self.reset()
        for points in centerlines:
            if len(points) < 2:
                continue
            vertices = simplify_axis(points, self.editor_cfg['simplify_angle_deg'])
            self.create_axis(vertices, rounding={i: 1.0 for i in range(1, len(vertices) - 1)})
        logging.info(f"由中心线生成轴线：{len(self.axes)} 条")
        self.recompute()

    def load_xodr(self, text) -> RoadModel:
        """含 editorAxes 时无损回读轴线，否则由中心线生成轴线"""
        model = parse_xodr(text, self.origin)
        self.origin = (model.header.origin_lat, model.header.origin_lon)
        if model.editor_axes:
            self.ingest_editor_axes(model.editor_axes)
        else:
            features = build_geometry(model, self.cfg)
            self.ingest_centerlines([[Point2D(x, y) for x, y in c.points] for c in features.centerlines])
        return model
