from enum import Enum
from typing import List, Optional


class GeometryType(str, Enum):
    line = "line"; arc = "arc"; spiral = "spiral"; param_poly3 = "paramPoly3"


class LaneSide(str, Enum):
    left = "left"; center = "center"; right = "right"


class GeoHeader:
    def __init__(self, origin_lat, origin_lon, geo_reference='') -> None:
        self.origin_lat = origin_lat  # 投影原点纬度
        self.origin_lon = origin_lon  # 投影原点经度
        self.geo_reference = geo_reference  # 原始 PROJ 字符串


class PolySegment:
    """a + b*ds + c*ds^2 + d*ds^3，ds = s - s_offset，有效到下一段的 s_offset"""
    def __init__(self, s_offset=0.0, a=0.0, b=0.0, c=0.0, d=0.0) -> None:
        self.s_offset = s_offset
        self.a = a
        self.b = b
        self.c = c
        self.d = d

    def __repr__(self):
        return f"sOffset:= {self.s_offset}, a:= {self.a}, b:= {self.b}, c:= {self.c}, d:= {self.d}"


class RoadMark:
    def __init__(self, s_offset=0.0, type='none', color=None, width=None, material=None,
                 lane_change=None, weight=None, height=None, rule=None) -> None:
        self.s_offset = s_offset
        self.type = type
        self.color = color
        self.width = width
        self.material = material
        self.lane_change = lane_change
        self.weight = weight
        self.height = height
        self.rule = rule

    def to_properties(self):
        return {
            'markType': self.type, 'markColor': self.color, 'markWidth': self.width,
            'markMaterial': self.material, 'laneChange': self.lane_change,
            'markWeight': self.weight, 'markHeight': self.height, 'markRule': self.rule,
        }


class Lane:
    def __init__(self, lane_id, lane_type='none', widths=None, road_marks=None,
                 predecessor_id=None, successor_id=None) -> None:
        self.lane_id = lane_id  # 车道编号，左正右负，中心为 0
        self.lane_type = lane_type
        self.widths: List[PolySegment] = widths or []
        self.road_marks: List[RoadMark] = road_marks or []
        self.predecessor_id: Optional[int] = predecessor_id
        self.successor_id: Optional[int] = successor_id

    def __repr__(self):
        return f"lane:= {self.lane_id}, type:= {self.lane_type}"

    def road_mark_at(self, ds) -> Optional[RoadMark]:
        """ds 为相对于所在 laneSection 起点的里程"""
        active = None
        for mark in self.road_marks:
            if mark.s_offset <= ds + 1e-9:
                active = mark
        return active


class LaneSection:
    def __init__(self, s=0.0, left=None, center=None, right=None) -> None:
        self.s = s
        self.left: List[Lane] = left or []      # id 升序（由内向外）
        self.center: List[Lane] = center or []
        self.right: List[Lane] = right or []    # id 降序（由内向外）

    def lanes(self, side: LaneSide) -> List[Lane]:
        return getattr(self, side.value)


class Geometry:
    """planView 图元基类，局部参数 (s, x, y, hdg, length)"""
    geometry_type = None

    def __init__(self, s, x, y, hdg, length) -> None:
        self.s = s
        self.x = x
        self.y = y
        self.hdg = hdg
        self.length = length

    def __repr__(self):
        return (f"{self.geometry_type.value}: s:= {self.s}, x:= {self.x}, y:= {self.y}, "
                f"hdg:= {self.hdg}, length:= {self.length}")


class LineGeometry(Geometry):
    geometry_type = GeometryType.line


class ArcGeometry(Geometry):
    geometry_type = GeometryType.arc

    def __init__(self, s, x, y, hdg, length, curvature) -> None:
        super().__init__(s, x, y, hdg, length)
        self.curvature = curvature


class SpiralGeometry(Geometry):
    geometry_type = GeometryType.spiral

    def __init__(self, s, x, y, hdg, length, curv_start, curv_end) -> None:
        super().__init__(s, x, y, hdg, length)
        self.curv_start = curv_start
        self.curv_end = curv_end


class ParamPoly3Geometry(Geometry):
    geometry_type = GeometryType.param_poly3

    def __init__(self, s, x, y, hdg, length, u_params, v_params, p_range='arcLength') -> None:
        super().__init__(s, x, y, hdg, length)
        self.u_params = u_params  # (aU, bU, cU, dU)
        self.v_params = v_params  # (aV, bV, cV, dV)
        self.p_range = p_range    # arcLength 或 normalized


class Road:
    def __init__(self, road_id, name='', length=0.0, junction='-1') -> None:
        self.road_id = str(road_id)
        self.name = name
        self.length = length
        self.junction = junction
        self.plan_view: List[Geometry] = []
        self.lane_sections: List[LaneSection] = []
        self.lane_offsets: List[PolySegment] = []

    def __repr__(self):
        return f"road:= {self.road_id}, length:= {self.length}, sections:= {len(self.lane_sections)}"

    def section_index_at(self, s) -> int:
        """最后一个 s >= section.s 的 laneSection 下标，s 在首段之前时取 0"""
        index = 0
        for i, section in enumerate(self.lane_sections):
            if s + 1e-9 >= section.s:
                index = i
        return index

    def section_end(self, index):
        if index + 1 < len(self.lane_sections):
            return self.lane_sections[index + 1].s
        return self.length


class RoadModel:
    def __init__(self, header: GeoHeader, roads=None, editor_axes=None) -> None:
        self.header = header
        self.roads: List[Road] = roads or []
        self.editor_axes = editor_axes or []  # 编辑器嵌入的 EditableAxis 列表

    def road_by_id(self, road_id) -> Optional[Road]:
        return next((road for road in self.roads if road.road_id == str(road_id)), None)
