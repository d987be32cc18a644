from ..pose.pose import *
from ..common.common import *


class Sample2D(Pose2D):
    """
    曲线采样点：位置、航向（弧度）、沿参考线的累计里程 s 以及局部曲率。
    """
    def __init__(self, s=0.0, x=0.0, y=0.0, yaw=0.0, curvature=0.0):
        super().__init__(x, y, yaw)
        self.s = s
        self.curvature = curvature

    def __repr__(self):
        return f"s:= {self.s}, x:= {self.x}, y:= {self.y}, yaw:= {self.yaw}, curvature:= {self.curvature}"

    def shifted(self, ds) -> "Sample2D":
        return Sample2D(self.s + ds, self.x, self.y, self.yaw, self.curvature)

    def interpolation(self, next_sample: "Sample2D", factor):
        return Sample2D(self.s + factor * (next_sample.s - self.s),
                        self.x + factor * (next_sample.x - self.x),
                        self.y + factor * (next_sample.y - self.y),
                        self.yaw + factor * angle_normalize(next_sample.yaw - self.yaw),
                        self.curvature + factor * (next_sample.curvature - self.curvature))

    def interpolation_at_s(self, next_sample: "Sample2D", s):
        ds = next_sample.s - self.s
        factor = 0.0 if abs(ds) <= GEOMETRY_EPSILON else (s - self.s) / ds
        result = self.interpolation(next_sample, factor)
        result.s = s
        return result
