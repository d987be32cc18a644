from ..segment.segment import *
from typing import List


class Line2D:
    """
    折线：顶点序列及其累计弧长，用于道路轴线、车道边界的投影与插值。
    """
    def __init__(self, data: List[Point2D]) -> None:
        self.data = data
        self.lengths = [0.0]
        for i in range(1, len(data)):
            self.lengths.append(self.lengths[-1] + data[i - 1].distance_to(data[i]))

    def __len__(self):
        return len(self.data)

    @property
    def length(self):
        return self.lengths[-1]

    def segments(self) -> List[Segment2D]:
        return [Segment2D(self.data[i], self.data[i + 1]) for i in range(len(self.data) - 1)]

    def bounds(self):
        xs = [p.x for p in self.data]
        ys = [p.y for p in self.data]
        return min(xs), min(ys), max(xs), max(ys)

    def project(self, point: Point2D):
        """
        最近点投影，返回 (里程 s, 线段下标, 线段内比例, 投影点, 距离)。
        """
        best = None
        for i, segment in enumerate(self.segments()):
            factor, foot = segment.project_point(point)
            dist = foot.distance_to(point)
            if best is None or dist < best[4]:
                best = (self.lengths[i] + factor * segment.length, i, factor, foot, dist)
        return best
