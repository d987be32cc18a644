import math


GEOMETRY_EPSILON = 1.0e-8
CURVATURE_EPSILON = 1.0e-12


def angle_normalize(angle):
    a = (angle + math.pi) % (2 * math.pi) - math.pi
    # 模运算的结果 a ∈ [−π, π)，如果恰好 a==−π，则映射到 π
    if a <= -math.pi:
        return math.pi
    return a


def lerp(a, b, factor):
    return a + factor * (b - a)
