import json
import logging
import math
import xml.etree.ElementTree as ET

from ..models.editor_elements import EditableAxis
from ..models.errors import MalformedDocument, MissingRequiredField
from ..models.map_elements import *
from ..utils.config import load_config
from ..utils.geo_reference import extract_proj_param


def num(value):
    """宽松数值解析：缺失、非数字或非有限值一律返回 None"""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def num_or(value, default):
    result = num(value)
    return default if result is None else result


def _required(road_id, elem, key):
    value = num(elem.get(key))
    if value is None:
        raise MissingRequiredField(road_id, f"{elem.tag}@{key}")
    return value


def parse_geometry(road_id, g):
    base = (
        _required(road_id, g, 's'),
        num_or(g.get('x'), 0.0),
        num_or(g.get('y'), 0.0),
        num_or(g.get('hdg'), 0.0),
        _required(road_id, g, 'length'),
    )
    if g.find('line') is not None:
        return LineGeometry(*base)
    arc = g.find('arc')
    if arc is not None:
        return ArcGeometry(*base, num_or(arc.get('curvature'), 0.0))
    spiral = g.find('spiral')
    if spiral is not None:
        # 不同版本的属性命名不同
        curv_start = spiral.get('curvStart', spiral.get('curvatureStart'))
        curv_end = spiral.get('curvEnd', spiral.get('curvatureEnd'))
        return SpiralGeometry(*base, num_or(curv_start, 0.0), num_or(curv_end, 0.0))
    poly = g.find('paramPoly3')
    if poly is not None:
        u_params = tuple(num_or(poly.get(key), 0.0) for key in ('aU', 'bU', 'cU', 'dU'))
        v_params = tuple(num_or(poly.get(key), 0.0) for key in ('aV', 'bV', 'cV', 'dV'))
        return ParamPoly3Geometry(*base, u_params, v_params, poly.get('pRange', 'arcLength'))
    logging.debug(f"road {road_id} 存在未知类型的 geometry，已忽略")
    return None


def parse_poly_segment(elem, s_key='sOffset'):
    return PolySegment(num_or(elem.get(s_key), 0.0),
                       num_or(elem.get('a'), 0.0),
                       num_or(elem.get('b'), 0.0),
                       num_or(elem.get('c'), 0.0),
                       num_or(elem.get('d'), 0.0))


def parse_road_mark(elem) -> RoadMark:
    return RoadMark(s_offset=num_or(elem.get('sOffset'), 0.0),
                    type=elem.get('type') or 'none',
                    color=elem.get('color') or None,
                    width=num(elem.get('width')),
                    material=elem.get('material') or None,
                    lane_change=elem.get('laneChange') or None,
                    weight=elem.get('weight') or None,
                    height=num(elem.get('height')),
                    rule=elem.get('rule') or None)


def parse_lanes(road_id, container):
    lanes = []
    if container is None:
        return lanes
    for lane_elem in container.findall('lane'):
        lane_id = num(lane_elem.get('id'))
        if lane_id is None:
            logging.warning(f"road {road_id} 存在 id 非法的 lane，已跳过")
            continue
        predecessor_id = successor_id = None
        link = lane_elem.find('link')
        if link is not None:
            pred = link.find('predecessor')
            succ = link.find('successor')
            if pred is not None and num(pred.get('id')) is not None:
                predecessor_id = int(num(pred.get('id')))
            if succ is not None and num(succ.get('id')) is not None:
                successor_id = int(num(succ.get('id')))
        widths = sorted((parse_poly_segment(w) for w in lane_elem.findall('width')),
                        key=lambda w: w.s_offset)
        road_marks = sorted((parse_road_mark(rm) for rm in lane_elem.findall('roadMark')),
                            key=lambda rm: rm.s_offset)
        lanes.append(Lane(int(lane_id), lane_elem.get('type') or 'none', widths, road_marks,
                          predecessor_id, successor_id))
    # 按 |id| 由内向外排序
    return sorted(lanes, key=lambda lane: abs(lane.lane_id))


def parse_road(road_elem) -> Road:
    road_id = road_elem.get('id')
    if not road_id:
        raise MissingRequiredField(None, 'road@id')
    length = num(road_elem.get('length'))
    if length is None:
        raise MissingRequiredField(road_id, 'road@length')
    road = Road(road_id, road_elem.get('name', ''), length, road_elem.get('junction', '-1'))

    for g in road_elem.findall('planView/geometry'):
        geometry = parse_geometry(road_id, g)
        if geometry is not None:
            road.plan_view.append(geometry)
    if not road.plan_view:
        raise MissingRequiredField(road_id, 'planView/geometry')
    road.plan_view.sort(key=lambda g: g.s)

    road.lane_offsets = sorted((parse_poly_segment(lo, 's') for lo in road_elem.findall('lanes/laneOffset')),
                               key=lambda lo: lo.s_offset)
    for section_elem in road_elem.findall('lanes/laneSection'):
        road.lane_sections.append(LaneSection(num_or(section_elem.get('s'), 0.0),
                                              parse_lanes(road_id, section_elem.find('left')),
                                              parse_lanes(road_id, section_elem.find('center')),
                                              parse_lanes(road_id, section_elem.find('right'))))
    road.lane_sections.sort(key=lambda section: section.s)
    return road


def parse_editor_axes(root):
    """
    读取编辑器嵌入的 userData/editorAxes（JSON），用于无损回读轴线与圆角系数。
    """
    elem = root.find('userData/editorAxes')
    if elem is None or not (elem.text or '').strip():
        return []
    try:
        records = json.loads(elem.text)
    except json.JSONDecodeError as e:
        logging.warning(f"editorAxes 内容无法解析：{e}")
        return []
    if not isinstance(records, list):
        logging.warning("editorAxes 内容不是轴线列表，已忽略")
        return []
    axes = []
    used_ids = {str(record['id']) for record in records if isinstance(record, dict) and record.get('id')}
    counter = 0
    for i, record in enumerate(records):
        if not isinstance(record, dict) or not isinstance(record.get('coords'), list):
            logging.warning(f"editorAxes 第 {i} 条记录缺少 coords，已跳过")
            continue
        if not record.get('id'):
            # 缺少 id 时按 axis_N 补一个不冲突的
            counter += 1
            while f"axis_{counter}" in used_ids:
                counter += 1
            record = dict(record, id=f"axis_{counter}")
            used_ids.add(record['id'])
        try:
            axis = EditableAxis.from_payload(record)
        except (AttributeError, KeyError, TypeError, ValueError, IndexError) as e:
            logging.warning(f"editorAxes 第 {i} 条记录无法解析，已跳过：{e!r}")
            continue
        if len(axis.vertices) < 2:
            logging.warning(f"editorAxes 轴线 {axis.axis_id} 顶点不足两个，已跳过")
            continue
        axes.append(axis)
    return axes


def parse_xodr(text, fallback_origin=(0.0, 0.0)) -> RoadModel:
    """
    解析 xodr 文本为 RoadModel，不做几何计算。
    标记语言本身无法解析时抛出 MalformedDocument；单条道路缺少必需字段时跳过该道路并记录警告。
    fallback_origin 为 (lat, lon)，geoReference 缺失对应参数时使用。
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedDocument(f"xodr 解析失败：{e}") from e

    geo_reference = (root.findtext('header/geoReference') or '').strip()
    lat = extract_proj_param(geo_reference, 'lat_0')
    lon = extract_proj_param(geo_reference, 'lon_0')
    header = GeoHeader(fallback_origin[0] if lat is None else lat,
                       fallback_origin[1] if lon is None else lon,
                       geo_reference)

    roads = []
    for road_elem in root.findall('road'):
        try:
            roads.append(parse_road(road_elem))
        except MissingRequiredField as e:
            logging.warning(f"跳过道路：{e}")
    logging.info(f"解析完成，共 {len(roads)} 条道路")
    return RoadModel(header, roads, parse_editor_axes(root))


class MapParser:
    def __init__(self, file_path='', yaml_path='') -> None:
        self.file_path = file_path
        self.yaml_path = yaml_path
        self.cfg = load_config(yaml_path)
        self.model: RoadModel = None
        if file_path:
            self.parse_file(file_path)

    @property
    def fallback_origin(self):
        return self.cfg['origin']['lat'], self.cfg['origin']['lon']

    def parse_file(self, file_path) -> RoadModel:
        with open(file_path, 'r', encoding='utf-8') as f:
            text = f.read()
        self.file_path = file_path
        self.model = parse_xodr(text, self.fallback_origin)
        return self.model

    def parse_text(self, text) -> RoadModel:
        self.model = parse_xodr(text, self.fallback_origin)
        return self.model
