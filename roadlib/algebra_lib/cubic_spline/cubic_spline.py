from ..polynomial.polynomial import *

import bisect
from typing import List, Tuple


KNOT_EPSILON = 1e-12


class CubicSpline:
    """
    分段三次样条：按节点升序保存 (knot, Poly3)，每段多项式以 t - knot 为自变量，
    有效范围到下一个节点为止。t 小于第一个节点时沿用第一段（extend-start）。
    """
    def __init__(self, segments: List[Tuple[float, Poly3]] = None) -> None:
        self.knots: List[float] = []
        self.polys: List[Poly3] = []
        for knot, poly in sorted(segments or [], key=lambda item: item[0]):
            self.add_segment(knot, poly)

    @classmethod
    def from_segments(cls, poly_segments, base=0.0):
        """由 PolySegment 列表（sOffset, a, b, c, d）构造，节点整体平移 base"""
        return cls([(base + seg.s_offset, Poly3(seg.a, seg.b, seg.c, seg.d)) for seg in poly_segments])

    def __repr__(self):
        return f"knots:= {self.knots}, polys:= {self.polys}"

    def __len__(self):
        return len(self.knots)

    def segments(self) -> List[Tuple[float, Poly3]]:
        return list(zip(self.knots, self.polys))

    def add_segment(self, knot, poly: Poly3) -> None:
        idx = bisect.bisect_right(self.knots, knot)
        # 节点重复时后加入的覆盖前者
        if idx > 0 and abs(self.knots[idx - 1] - knot) <= KNOT_EPSILON:
            self.polys[idx - 1] = poly
            return
        self.knots.insert(idx, knot)
        self.polys.insert(idx, poly)

    def get_index(self, t, extend_start=True):
        if not self.knots:
            return -1
        idx = bisect.bisect_right(self.knots, t + KNOT_EPSILON) - 1
        if idx < 0:
            return 0 if extend_start else -1
        return idx

    def get_poly(self, t, extend_start=True):
        idx = self.get_index(t, extend_start)
        if idx < 0:
            return None, None
        return self.knots[idx], self.polys[idx]

    def evaluate(self, t, default=0.0):
        knot, poly = self.get_poly(t)
        if poly is None:
            return default
        return poly.value(t - knot)

    def slope(self, t, default=0.0):
        knot, poly = self.get_poly(t)
        if poly is None:
            return default
        return poly.slope(t - knot)

    def add(self, other: "CubicSpline") -> "CubicSpline":
        """
        逐点相加：合并两侧节点，在每个节点处把两侧多项式都平移到该节点再相加，
        保证 (A + B)(t) == A(t) + B(t) 在任意 t 上成立，而不仅在节点上。
        """
        if not self.knots:
            return other.copy()
        if not other.knots:
            return self.copy()
        result = CubicSpline()
        for knot in sorted(set(self.knots) | set(other.knots)):
            knot_a, poly_a = self.get_poly(knot)
            knot_b, poly_b = other.get_poly(knot)
            result.add_segment(knot, poly_a.rebase(knot - knot_a).add(poly_b.rebase(knot - knot_b)))
        return result

    def negate(self) -> "CubicSpline":
        return CubicSpline([(knot, poly.negate()) for knot, poly in self.segments()])

    def shifted(self, delta) -> "CubicSpline":
        return CubicSpline([(knot + delta, poly) for knot, poly in self.segments()])

    def copy(self) -> "CubicSpline":
        return CubicSpline(self.segments())
