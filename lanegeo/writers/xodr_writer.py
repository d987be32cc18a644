import json
import xml.dom.minidom as minidom
from typing import List
from xml.etree.ElementTree import Element, SubElement, tostring

from ..models.editor_elements import EditableAxis
from ..models.map_elements import *


def _format_float(value) -> str:
    # 最短可逐位还原的十进制表示
    formatted = repr(float(value))
    if formatted.endswith(".0"):
        formatted = formatted[:-2]
    return "0" if formatted == "-0" else formatted


def _pretty(elem: Element) -> str:
    rough = tostring(elem, encoding="utf-8")
    return minidom.parseString(rough).toprettyxml(indent="  ", encoding="utf-8").decode("utf-8")


def _poly_attrs(elem: Element, segment: PolySegment, s_key) -> None:
    elem.set(s_key, _format_float(segment.s_offset))
    for key in ('a', 'b', 'c', 'd'):
        elem.set(key, _format_float(getattr(segment, key)))


def _write_geometry(plan_view: Element, geometry: Geometry) -> None:
    g = SubElement(plan_view, "geometry", {
        "s": _format_float(geometry.s),
        "x": _format_float(geometry.x),
        "y": _format_float(geometry.y),
        "hdg": _format_float(geometry.hdg),
        "length": _format_float(geometry.length),
    })
    if geometry.geometry_type == GeometryType.arc:
        SubElement(g, "arc", {"curvature": _format_float(geometry.curvature)})
    elif geometry.geometry_type == GeometryType.spiral:
        SubElement(g, "spiral", {"curvStart": _format_float(geometry.curv_start),
                                 "curvEnd": _format_float(geometry.curv_end)})
    elif geometry.geometry_type == GeometryType.param_poly3:
        attrs = {}
        for prefix, params in (("U", geometry.u_params), ("V", geometry.v_params)):
            for key, value in zip("abcd", params):
                attrs[f"{key}{prefix}"] = _format_float(value)
        attrs["pRange"] = geometry.p_range
        SubElement(g, "paramPoly3", attrs)
    else:
        SubElement(g, "line")


def _write_lane(parent: Element, lane: Lane) -> None:
    lane_elem = SubElement(parent, "lane", {"id": str(lane.lane_id), "type": lane.lane_type})
    if lane.predecessor_id is not None or lane.successor_id is not None:
        link = SubElement(lane_elem, "link")
        if lane.predecessor_id is not None:
            SubElement(link, "predecessor", {"id": str(lane.predecessor_id)})
        if lane.successor_id is not None:
            SubElement(link, "successor", {"id": str(lane.successor_id)})
    for width in lane.widths:
        _poly_attrs(SubElement(lane_elem, "width"), width, "sOffset")
    for mark in lane.road_marks:
        attrs = {"sOffset": _format_float(mark.s_offset), "type": mark.type}
        optional = {"color": mark.color, "width": mark.width, "material": mark.material,
                    "laneChange": mark.lane_change, "weight": mark.weight, "height": mark.height,
                    "rule": mark.rule}
        for key, value in optional.items():
            if value is None:
                continue
            attrs[key] = _format_float(value) if isinstance(value, float) else str(value)
        SubElement(lane_elem, "roadMark", attrs)


def _write_road(root: Element, road: Road) -> None:
    road_elem = SubElement(root, "road", {"id": road.road_id, "name": road.name or "",
                                          "length": _format_float(road.length), "junction": road.junction})
    plan_view = SubElement(road_elem, "planView")
    for geometry in road.plan_view:
        _write_geometry(plan_view, geometry)
    lanes = SubElement(road_elem, "lanes")
    for offset in road.lane_offsets:
        _poly_attrs(SubElement(lanes, "laneOffset"), offset, "s")
    for section in road.lane_sections:
        section_elem = SubElement(lanes, "laneSection", {"s": _format_float(section.s)})
        for side in (LaneSide.left, LaneSide.center, LaneSide.right):
            side_lanes = section.lanes(side)
            if not side_lanes:
                continue
            side_elem = SubElement(section_elem, side.value)
            # 左侧由外向内（id 降序），右侧由内向外
            for lane in sorted(side_lanes, key=lambda lane: -lane.lane_id):
                _write_lane(side_elem, lane)


def build_xodr_tree(model: RoadModel, editor_axes: List[EditableAxis] = None, name="editor_export") -> Element:
    root = Element("OpenDRIVE")
    header = SubElement(root, "header", {"revMajor": "1", "revMinor": "6", "name": name, "version": "1.6"})
    SubElement(header, "geoReference").text = model.header.geo_reference
    if editor_axes:
        user_data = SubElement(root, "userData")
        # 原样嵌入轴线顶点与圆角系数，回读时可逐位还原
        SubElement(user_data, "editorAxes").text = json.dumps([axis.to_payload() for axis in editor_axes])
    for road in model.roads:
        _write_road(root, road)
    return root


def write_xodr(model: RoadModel, editor_axes: List[EditableAxis] = None, name="editor_export") -> str:
    return _pretty(build_xodr_tree(model, editor_axes, name))
