import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lanegeo.models.editor_elements import EditableAxis
from lanegeo.models.map_elements import *
from lanegeo.parsers.parsers import parse_xodr
from lanegeo.utils.geo_reference import tmerc_string
from lanegeo.writers.xodr_writer import _format_float, write_xodr
from roadlib.geometry_lib.point.point import Point2D


def _model():
    road = Road('3', 'writer', 40.0)
    road.plan_view = [
        LineGeometry(0.0, 0.0, 0.0, 0.0, 10.0),
        ArcGeometry(10.0, 10.0, 0.0, 0.0, 10.0, 0.01),
        SpiralGeometry(20.0, 19.9, 0.5, 0.1, 10.0, 0.01, -0.02),
        ParamPoly3Geometry(30.0, 29.5, 1.0, 0.05, 10.0, (0.0, 10.0, 0.1, -0.01), (0.0, 0.0, 0.2, 0.003), 'normalized'),
    ]
    road.lane_offsets = [PolySegment(0.0, 0.25, 0.0, 0.001, 0.0)]
    road.lane_sections = [LaneSection(0.0,
                                      left=[Lane(1, 'driving', [PolySegment(0.0, 3.5, 0.01)],
                                                 [RoadMark(0.0, 'solid', 'white', 0.15)], successor_id=1)],
                                      center=[Lane(0, 'none', road_marks=[RoadMark(0.0, 'broken')])],
                                      right=[Lane(-1, 'driving', [PolySegment(0.0, 3.25)]),
                                             Lane(-2, 'sidewalk', [PolySegment(0.0, 1.5)])])]
    header = GeoHeader(35.0, 139.0, tmerc_string(35.0, 139.0))
    return RoadModel(header, [road])


def test_format_float_is_shortest_round_trip():
    assert _format_float(1.0) == "1"
    assert _format_float(-0.0) == "0"
    assert _format_float(0.1) == "0.1"
    value = math.pi / 7.0
    assert float(_format_float(value)) == value


def test_written_model_reads_back_identically():
    model = _model()
    parsed = parse_xodr(write_xodr(model))
    assert parsed.header.origin_lat == pytest.approx(35.0)
    road = parsed.roads[0]
    original = model.roads[0]
    assert [g.geometry_type for g in road.plan_view] == [g.geometry_type for g in original.plan_view]
    for a, b in zip(road.plan_view, original.plan_view):
        assert (a.s, a.x, a.y, a.hdg, a.length) == (b.s, b.x, b.y, b.hdg, b.length)
    assert road.plan_view[1].curvature == 0.01
    assert (road.plan_view[2].curv_start, road.plan_view[2].curv_end) == (0.01, -0.02)
    assert road.plan_view[3].u_params == original.plan_view[3].u_params
    assert road.plan_view[3].p_range == 'normalized'
    assert road.lane_offsets[0].c == 0.001
    section = road.lane_sections[0]
    assert [lane.lane_id for lane in section.right] == [-1, -2]
    assert section.left[0].successor_id == 1
    assert section.left[0].widths[0].b == 0.01
    assert section.left[0].road_marks[0].color == 'white'
    assert section.center[0].road_marks[0].type == 'broken'


def test_editor_axes_embedded_verbatim():
    axis = EditableAxis('axis_1', [Point2D(0.1 + 0.2, 1.0 / 3.0), Point2D(12.345678901234567, -7.0)], {0: 0.5})
    parsed = parse_xodr(write_xodr(_model(), [axis]))
    restored = parsed.editor_axes[0]
    assert restored.axis_id == 'axis_1'
    assert [(p.x, p.y) for p in restored.vertices] == [(p.x, p.y) for p in axis.vertices]
    assert restored.rounding == {0: 0.5}
