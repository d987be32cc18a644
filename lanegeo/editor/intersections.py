import logging
from typing import Dict, List

from rtree import index

from roadlib.geometry_lib.line.line import Line2D
from roadlib.geometry_lib.point.point import Point2D
from roadlib.geometry_lib.segment.segment import Segment2D
from ..models.editor_elements import Intersection
from ..utils.projector import Projector


MIN_SEGMENT_LENGTH_PX = 1e-3
DEDUPE_EPSILON = 1e-6


class Candidate:
    def __init__(self, point: Point2D, axis_a, axis_b) -> None:
        self.point = point  # 像素坐标
        self.axes = {axis_a, axis_b}


class Cluster:
    def __init__(self, candidate: Candidate) -> None:
        self.x = candidate.point.x
        self.y = candidate.point.y
        self.count = 1
        self.axes = set(candidate.axes)

    def distance_to(self, point: Point2D):
        return point.distance_to(Point2D(self.x, self.y))

    def add(self, candidate: Candidate) -> None:
        # 滑动平均更新中心，聚类建立后不再合并
        self.count += 1
        self.x = (self.x * (self.count - 1) + candidate.point.x) / self.count
        self.y = (self.y * (self.count - 1) + candidate.point.y) / self.count
        self.axes |= candidate.axes


class AxisIndex:
    """
    轴线包围盒的内存 R 树，用于筛选可能相交的轴线对。
    """
    def __init__(self, pixel_lines: Dict[str, Line2D], tolerance_px) -> None:
        properties = index.Property()
        properties.dimension = 2
        self.idx = index.Index(interleaved=False, properties=properties)
        self.axis_ids = list(pixel_lines.keys())
        self.tolerance_px = tolerance_px
        for code, axis_id in enumerate(self.axis_ids):
            self.idx.insert(code, self._bbox(pixel_lines[axis_id]))

    def _bbox(self, line: Line2D):
        min_x, min_y, max_x, max_y = line.bounds()
        tol = self.tolerance_px
        return min_x - tol, max_x + tol, min_y - tol, max_y + tol

    def candidate_pairs(self, pixel_lines: Dict[str, Line2D]):
        pairs = []
        for code, axis_id in enumerate(self.axis_ids):
            for other in sorted(self.idx.intersection(self._bbox(pixel_lines[axis_id]))):
                if other > code:
                    pairs.append((axis_id, self.axis_ids[other]))
        return pairs


def _crossings(line_a: Line2D, line_b: Line2D, axis_a, axis_b) -> List[Candidate]:
    result = []
    for seg_a in line_a.segments():
        for seg_b in line_b.segments():
            if (seg_a.x_max < seg_b.x_min or seg_b.x_max < seg_a.x_min
                    or seg_a.y_max < seg_b.y_min or seg_b.y_max < seg_a.y_min):
                continue
            point = seg_a.intersect(seg_b)
            if point is not None:
                result.append(Candidate(point, axis_a, axis_b))
    return result


def _touches(line_a: Line2D, line_b: Line2D, axis_a, axis_b, tolerance_px) -> List[Candidate]:
    """line_a 的端点落在 line_b 任一线段容差范围内时，以投影点作为候选"""
    result = []
    for endpoint in (line_a.data[0], line_a.data[-1]):
        for segment in line_b.segments():
            if segment.length < MIN_SEGMENT_LENGTH_PX:
                continue
            _, foot = segment.project_point(endpoint)
            if foot.distance_to(endpoint) <= tolerance_px:
                result.append(Candidate(foot, axis_a, axis_b))
    return result


def _cluster(candidates: List[Candidate], tolerance_px) -> List[Cluster]:
    clusters: List[Cluster] = []
    for candidate in candidates:
        found = next((cl for cl in clusters if cl.distance_to(candidate.point) <= tolerance_px), None)
        if found is None:
            clusters.append(Cluster(candidate))
        else:
            found.add(candidate)
    return clusters


def _representative(cluster: Cluster, authored: Dict[str, List[Point2D]], projector: Projector, tolerance_px):
    """优先吸附到容差内最近的原始轴线顶点，否则取聚类中心"""
    center = Point2D(cluster.x, cluster.y)
    best, best_dist = None, None
    for vertices in authored.values():
        for vertex in vertices:
            dist = projector.to_screen(vertex).distance_to(center)
            if dist <= tolerance_px and (best_dist is None or dist < best_dist):
                best, best_dist = vertex, dist
    if best is not None:
        return Point2D(best.x, best.y)
    return projector.to_world(center)


def resolve_intersections(axes: Dict[str, List[Point2D]], authored: Dict[str, List[Point2D]],
                          projector: Projector, tolerance_px=16.0) -> List[Intersection]:
    """
    axes 为（可能已圆角化的）轴线折线，authored 为用户原始顶点。
    返回去重后的交点，每个交点带有经过它的轴线 id。
    """
    pixel_lines = {axis_id: Line2D([projector.to_screen(p) for p in points])
                   for axis_id, points in axes.items() if len(points) >= 2}
    if len(pixel_lines) < 2:
        return []
    candidates: List[Candidate] = []
    for axis_a, axis_b in AxisIndex(pixel_lines, tolerance_px).candidate_pairs(pixel_lines):
        line_a, line_b = pixel_lines[axis_a], pixel_lines[axis_b]
        candidates.extend(_crossings(line_a, line_b, axis_a, axis_b))
        candidates.extend(_touches(line_a, line_b, axis_a, axis_b, tolerance_px))
        candidates.extend(_touches(line_b, line_a, axis_a, axis_b, tolerance_px))
    intersections = []
    for cluster in _cluster(candidates, tolerance_px):
        position = _representative(cluster, authored, projector, tolerance_px)
        intersections.append(Intersection(position, cluster.axes))
    logging.debug(f"交点重算：候选 {len(candidates)} 个，聚类后 {len(intersections)} 个")
    return intersections


class Anchor:
    def __init__(self, segment_index, factor, s, point: Point2D) -> None:
        self.segment_index = segment_index
        self.factor = factor
        self.s = s
        self.point = point


def split_axis(polyline: List[Point2D], intersections: List[Intersection], axis_id, projector: Projector,
               dedupe_epsilon=DEDUPE_EPSILON) -> List[List[Point2D]]:
    """
    按交点把轴线拆成若干段：端点与投影到轴线上的交点按弧长排序去重后，两两相邻成段。
    有效锚点少于两个时返回空列表。
    """
    if len(polyline) < 2:
        return []
    pixel_line = Line2D([projector.to_screen(p) for p in polyline])
    anchors = [Anchor(0, 0.0, 0.0, polyline[0]),
               Anchor(len(polyline) - 2, 1.0, pixel_line.length, polyline[-1])]
    for intersection in intersections:
        if axis_id not in intersection.member_axis_ids:
            continue
        s, segment_index, factor, foot, _ = pixel_line.project(projector.to_screen(intersection.position))
        anchors.append(Anchor(segment_index, factor, s, projector.to_world(foot)))
    anchors.sort(key=lambda anchor: anchor.s)

    unique: List[Anchor] = []
    for anchor in anchors:
        if not unique or abs(anchor.s - unique[-1].s) > dedupe_epsilon:
            unique.append(anchor)
    if len(unique) < 2:
        return []

    segments = []
    for a, b in zip(unique, unique[1:]):
        points = [a.point]
        for vertex in polyline[a.segment_index + 1:b.segment_index + 1] + [b.point]:
            if vertex.distance_to(points[-1]) > dedupe_epsilon:
                points.append(vertex)
        if len(points) >= 2:
            segments.append(points)
    return segments


def attach_roads(intersections: List[Intersection], segments: Dict[str, List[Point2D]], projector: Projector,
                 tolerance_px=16.0) -> None:
    """给每个交点标注经过它（像素容差内）的拆分路段 id"""
    pixel_segments = {seg_id: [Segment2D(projector.to_screen(a), projector.to_screen(b))
                               for a, b in zip(points, points[1:])]
                      for seg_id, points in segments.items()}
    for intersection in intersections:
        center = projector.to_screen(intersection.position)
        intersection.road_ids = [seg_id for seg_id, segs in pixel_segments.items()
                                 if any(seg.length >= MIN_SEGMENT_LENGTH_PX and seg.distance_to_point(center) <= tolerance_px
                                        for seg in segs)]
