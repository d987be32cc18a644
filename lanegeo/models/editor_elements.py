from typing import Dict, List, Set

from roadlib.geometry_lib.point.point import Point2D


DEFAULT_ROUNDING = 1.0


class EditableAxis:
    """
    编辑器中的道路轴线：顶点序列（局部平面坐标，米）与内部顶点的圆角系数 k ∈ [0, 1]。
    """
    def __init__(self, axis_id, vertices: List[Point2D], rounding: Dict[int, float] = None) -> None:
        self.axis_id = str(axis_id)
        self.vertices = vertices
        self.rounding: Dict[int, float] = dict(rounding or {})

    def __repr__(self):
        return f"axis:= {self.axis_id}, vertices:= {len(self.vertices)}, rounding:= {self.rounding}"

    def rounding_at(self, index) -> float:
        return self.rounding.get(index, DEFAULT_ROUNDING)

    def set_rounding(self, index, k) -> float:
        k = max(0.0, min(1.0, float(k)))
        self.rounding[index] = k
        return k

    def copy(self) -> "EditableAxis":
        return EditableAxis(self.axis_id, [Point2D(p.x, p.y) for p in self.vertices], self.rounding)

    def to_payload(self):
        return {
            'id': self.axis_id,
            'coords': [[p.x, p.y] for p in self.vertices],
            'rounding': {str(index): k for index, k in sorted(self.rounding.items())},
        }

    @classmethod
    def from_payload(cls, record):
        vertices = [Point2D(float(c[0]), float(c[1])) for c in record['coords']]
        rounding = {int(index): float(k) for index, k in (record.get('rounding') or {}).items()}
        return cls(record['id'], vertices, rounding)


class Intersection:
    def __init__(self, position: Point2D, member_axis_ids: Set[str] = None) -> None:
        self.position = position
        self.member_axis_ids: Set[str] = set(member_axis_ids or ())
        self.road_ids: List[str] = []  # 经过该交点的拆分路段 id

    def __repr__(self):
        return f"position:= ({self.position}), axes:= {sorted(self.member_axis_ids)}, roads:= {self.road_ids}"
