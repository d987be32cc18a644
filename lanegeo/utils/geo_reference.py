import re

from pyproj import Transformer


TMERC_TEMPLATE = "+proj=tmerc +lat_0={lat} +lon_0={lon} +k=1 +x_0=0 +y_0=0 +ellps=WGS84 +units=m +no_defs"
_NUMBER_PATTERN = "([0-9eE+\\-.]+)"


def extract_proj_param(text, key):
    """从 PROJ 字符串中提取 +key=value 数值，缺失或非法时返回 None"""
    if not text:
        return None
    match = re.search(f"{re.escape(key)}={_NUMBER_PATTERN}", text)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def tmerc_string(lat, lon) -> str:
    return TMERC_TEMPLATE.format(lat=lat, lon=lon)


class GeoReference:
    """
    局部平面坐标（米）与 WGS84 经纬度之间的横轴墨卡托换算，原点取自 header 的 lat_0 / lon_0。
    """
    def __init__(self, origin_lat, origin_lon) -> None:
        self.origin_lat = origin_lat
        self.origin_lon = origin_lon
        self.proj_string = tmerc_string(origin_lat, origin_lon)
        self._to_wgs84 = Transformer.from_crs(self.proj_string, "EPSG:4326", always_xy=True)
        self._from_wgs84 = Transformer.from_crs("EPSG:4326", self.proj_string, always_xy=True)

    @classmethod
    def from_header(cls, header):
        return cls(header.origin_lat, header.origin_lon)

    def to_lon_lat(self, point):
        lon, lat = self._to_wgs84.transform(point[0], point[1])
        return lon, lat

    def to_local(self, lon_lat):
        x, y = self._from_wgs84.transform(lon_lat[0], lon_lat[1])
        return x, y
