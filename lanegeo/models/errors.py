class XodrError(Exception):
    """解析与几何计算相关异常的基类"""


class MalformedDocument(XodrError):
    """xodr 文本无法解析，整份文档作废"""


class MissingRequiredField(XodrError):
    """道路缺少 id / length / geometry 等必需字段，只跳过该道路"""
    def __init__(self, road_id, field) -> None:
        super().__init__(f"road {road_id} 缺少必需字段 {field}")
        self.road_id = road_id
        self.field = field


class DegenerateGeometry(XodrError):
    """零长度图元、零向量切线等退化几何，调用方应就地降级处理"""


class ClampedValue:
    """
    不是错误：请求值超出几何允许范围被钳制时的提示信息，由界面层以限时标签展示。
    """
    def __init__(self, axis_id, vertex_index, requested, applied, expires_at=0.0) -> None:
        self.axis_id = axis_id
        self.vertex_index = vertex_index
        self.requested = requested  # 请求值（米）
        self.applied = applied      # 实际生效值（米）
        self.expires_at = expires_at

    def __repr__(self):
        return (f"axis:= {self.axis_id}, vertex:= {self.vertex_index}, "
                f"requested:= {self.requested}, applied:= {self.applied}")

    def is_active(self, now):
        return now < self.expires_at
