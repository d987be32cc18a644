from roadlib.geometry_lib.point.point import Point2D


class Projector:
    """
    世界坐标（米）与屏幕像素之间的换算接口。容差比较统一在像素空间进行，
    一次重算过程中必须保持不变。
    """
    def to_screen(self, point: Point2D) -> Point2D:
        raise NotImplementedError

    def to_world(self, pixel: Point2D) -> Point2D:
        raise NotImplementedError


class IdentityProjector(Projector):
    def to_screen(self, point: Point2D) -> Point2D:
        return Point2D(point.x, point.y)

    def to_world(self, pixel: Point2D) -> Point2D:
        return Point2D(pixel.x, pixel.y)


class ScaleProjector(Projector):
    """
    仿射投影：pixel = (world - origin) * scale，y 轴向下，x/y 比例可不同（各向异性）。
    """
    def __init__(self, scale_x=1.0, scale_y=None, origin_x=0.0, origin_y=0.0) -> None:
        self.scale_x = scale_x
        self.scale_y = scale_x if scale_y is None else scale_y
        self.origin_x = origin_x
        self.origin_y = origin_y

    def to_screen(self, point: Point2D) -> Point2D:
        return Point2D((point.x - self.origin_x) * self.scale_x,
                       -(point.y - self.origin_y) * self.scale_y)

    def to_world(self, pixel: Point2D) -> Point2D:
        return Point2D(pixel.x / self.scale_x + self.origin_x,
                       -pixel.y / self.scale_y + self.origin_y)
