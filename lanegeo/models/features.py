from typing import Callable, List, Optional, Tuple

from .map_elements import LaneSide, RoadMark


Coord = Tuple[float, float]


class CenterlineFeature:
    kind = 'centerline'

    def __init__(self, road_id, name, points: List[Coord]) -> None:
        self.road_id = road_id
        self.name = name
        self.points = points

    def properties(self):
        return {'kind': self.kind, 'roadId': self.road_id, 'name': self.name}

    def geometry(self, transform):
        return {'type': 'LineString', 'coordinates': [list(transform(p)) for p in self.points]}


class LaneRunFeature:
    """
    一段连续有效的车道：外/内边界折线与多边形。
    左侧多边形为 outer + reversed(inner)，右侧为 inner + reversed(outer)，两侧绕向一致。
    """
    kind = 'lane'

    def __init__(self, road_id, side: LaneSide, lane_id, s_start, s_end, lane_type,
                 road_mark: Optional[RoadMark], outer: List[Coord], inner: List[Coord]) -> None:
        self.road_id = road_id
        self.side = side
        self.lane_id = lane_id
        self.s_start = s_start
        self.s_end = s_end
        self.lane_type = lane_type
        self.road_mark = road_mark  # 运行区间中点处生效的 roadMark
        self.outer = outer
        self.inner = inner

    def polygon(self) -> List[Coord]:
        if self.side == LaneSide.left:
            ring = self.outer + self.inner[::-1]
        else:
            ring = self.inner + self.outer[::-1]
        return ring + ring[:1]

    def properties(self):
        props = {'kind': self.kind, 'roadId': self.road_id, 'side': self.side.value,
                 'laneId': self.lane_id, 'sStart': self.s_start, 'sEnd': self.s_end,
                 'laneType': self.lane_type}
        if self.road_mark is not None:
            props.update(self.road_mark.to_properties())
        return props

    def geometry(self, transform):
        return {'type': 'Polygon', 'coordinates': [[list(transform(p)) for p in self.polygon()]]}


class MarkingFeature:
    """车道内边界上的标线，属性取运行区间起点处生效的 roadMark"""
    kind = 'marking'

    def __init__(self, road_id, side: LaneSide, lane_id, s_start, s_end,
                 road_mark: Optional[RoadMark], points: List[Coord]) -> None:
        self.road_id = road_id
        self.side = side
        self.lane_id = lane_id
        self.s_start = s_start
        self.s_end = s_end
        self.road_mark = road_mark
        self.points = points

    def properties(self):
        props = {'kind': self.kind, 'roadId': self.road_id, 'side': self.side.value,
                 'laneId': self.lane_id, 'sStart': self.s_start, 'sEnd': self.s_end}
        if self.road_mark is not None:
            props.update(self.road_mark.to_properties())
        return props

    def geometry(self, transform):
        return {'type': 'LineString', 'coordinates': [list(transform(p)) for p in self.points]}


class EdgeFeature:
    kind = 'edge'

    def __init__(self, road_id, side: LaneSide, points: List[Coord]) -> None:
        self.road_id = road_id
        self.side = side
        self.points = points

    def properties(self):
        return {'kind': self.kind, 'roadId': self.road_id, 'side': self.side.value}

    def geometry(self, transform):
        return {'type': 'LineString', 'coordinates': [list(transform(p)) for p in self.points]}


class IntersectionFeature:
    kind = 'intersection'

    def __init__(self, position: Coord, axis_ids: List[str], road_ids: List[str]) -> None:
        self.position = position
        self.axis_ids = axis_ids
        self.road_ids = road_ids

    def properties(self):
        return {'kind': self.kind, 'axes': list(self.axis_ids), 'roads': list(self.road_ids)}

    def geometry(self, transform):
        return {'type': 'Point', 'coordinates': list(transform(self.position))}


class FeatureCollections:
    def __init__(self) -> None:
        self.centerlines: List[CenterlineFeature] = []
        self.lanes: List[LaneRunFeature] = []
        self.markings: List[MarkingFeature] = []
        self.edges: List[EdgeFeature] = []
        self.intersections: List[IntersectionFeature] = []
        self.bounds = None  # (min_x, min_y, max_x, max_y)，无几何时为 None

    def extend(self, other: "FeatureCollections") -> None:
        self.centerlines.extend(other.centerlines)
        self.lanes.extend(other.lanes)
        self.markings.extend(other.markings)
        self.edges.extend(other.edges)
        self.intersections.extend(other.intersections)
        self.include_bounds(other.bounds)

    def include_bounds(self, bounds) -> None:
        if bounds is None:
            return
        if self.bounds is None:
            self.bounds = tuple(bounds)
            return
        self.bounds = (min(self.bounds[0], bounds[0]), min(self.bounds[1], bounds[1]),
                       max(self.bounds[2], bounds[2]), max(self.bounds[3], bounds[3]))

    def to_geojson(self, transform: Callable[[Coord], Coord] = None):
        """
        按类别输出 GeoJSON FeatureCollection 字典，transform 用于坐标转换（如局部平面转经纬度）。
        """
        transform = transform or (lambda p: p)
        result = {}
        for name in ('centerlines', 'lanes', 'markings', 'edges', 'intersections'):
            result[name] = {
                'type': 'FeatureCollection',
                'features': [{'type': 'Feature', 'properties': feature.properties(),
                              'geometry': feature.geometry(transform)}
                             for feature in getattr(self, name)],
            }
        return result
