import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lanegeo.lane_builder.lane_builder import LaneBoundaryBuilder, build_geometry, build_ticks
from lanegeo.lane_builder.lane_tracks import build_tracks
from lanegeo.models.map_elements import *


def _road(sections, length=10.0, offsets=None):
    road = Road('1', 'test', length)
    road.plan_view = [LineGeometry(0.0, 0.0, 0.0, 0.0, length)]
    road.lane_sections = sections
    road.lane_offsets = offsets or []
    return road


def _features(road):
    return build_geometry(RoadModel(GeoHeader(0.0, 0.0), [road]))


def test_single_lane_of_three_and_a_half_metres():
    road = _road([LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 3.5)])])])
    features = _features(road)
    assert len(features.lanes) == 1
    run = features.lanes[0]
    assert (run.s_start, run.s_end) == (0.0, 10.0)
    assert all(y == pytest.approx(3.5) for _, y in run.outer)
    assert all(y == pytest.approx(0.0) for _, y in run.inner)
    assert run.outer[-1][0] == pytest.approx(10.0)
    assert len(features.centerlines) == 1
    assert features.bounds == pytest.approx((0.0, 0.0, 10.0, 0.0))
    left_edge = next(edge for edge in features.edges if edge.side == LaneSide.left)
    assert all(y == pytest.approx(3.5) for _, y in left_edge.points)


def test_vanishing_lane_ends_at_epsilon_width():
    road = _road([LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 1.0, -0.2)])])])
    features = _features(road)
    assert len(features.lanes) == 1
    run = features.lanes[0]
    assert run.s_end == pytest.approx(4.975)
    end_x, end_y = run.outer[-1]
    assert end_x == pytest.approx(4.975)
    assert end_y - run.inner[-1][1] == pytest.approx(0.005)


def test_type_change_at_section_boundary_splits_runs():
    sections = [
        LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 3.5)], successor_id=1)]),
        LaneSection(5.0, left=[Lane(1, 'biking', [PolySegment(0.0, 2.0)], predecessor_id=1)]),
    ]
    features = _features(_road(sections))
    runs = sorted(features.lanes, key=lambda run: run.s_start)
    assert [(run.lane_type, run.s_start, run.s_end) for run in runs] == [('driving', 0.0, 5.0), ('biking', 5.0, 10.0)]
    # 分界处先按结束段取值
    assert runs[0].outer[-1][1] == pytest.approx(3.5)
    assert runs[1].outer[0][1] == pytest.approx(2.0)


def test_lane_missing_in_section_pauses_track():
    sections = [
        LaneSection(0.0, right=[Lane(-1, 'driving', [PolySegment(0.0, 3.0)])]),
        LaneSection(4.0, right=[]),
        LaneSection(7.0, right=[Lane(-1, 'driving', [PolySegment(0.0, 3.0)], predecessor_id=-1)]),
    ]
    features = _features(_road(sections))
    spans = sorted((run.s_start, run.s_end) for run in features.lanes)
    assert spans == [(0.0, 4.0), (7.0, 10.0)]
    assert all(y == pytest.approx(-3.0) for run in features.lanes for _, y in run.outer)


def test_tracks_follow_successor_links():
    sections = [
        LaneSection(0.0, left=[Lane(1, 'driving', successor_id=2), Lane(2, 'driving', successor_id=1)]),
        LaneSection(5.0, left=[Lane(1, 'driving'), Lane(2, 'driving')]),
    ]
    tracks = build_tracks(_road(sections), LaneSide.left)
    chains = sorted((t.nodes[0].lane.lane_id, t.nodes[1].lane.lane_id) for t in tracks)
    assert chains == [(1, 2), (2, 1)]


def test_sidewalk_excluded_from_edges_and_offset_applied():
    section = LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 3.5)]),
                                     Lane(2, 'sidewalk', [PolySegment(0.0, 2.0)])])
    road = _road([section], offsets=[PolySegment(0.0, 0.5)])
    features = _features(road)
    left_edge = next(edge for edge in features.edges if edge.side == LaneSide.left)
    right_edge = next(edge for edge in features.edges if edge.side == LaneSide.right)
    assert all(y == pytest.approx(4.0) for _, y in left_edge.points)
    assert all(y == pytest.approx(0.5) for _, y in right_edge.points)
    sidewalk = next(run for run in features.lanes if run.lane_id == 2)
    assert sidewalk.outer[0][1] == pytest.approx(6.0)
    assert sidewalk.inner[0][1] == pytest.approx(4.0)


def test_right_lane_polygon_is_closed_ring():
    road = _road([LaneSection(0.0, right=[Lane(-1, 'driving', [PolySegment(0.0, 3.0)],
                                               [RoadMark(0.0, 'solid')])])])
    features = _features(road)
    run = features.lanes[0]
    ring = run.polygon()
    assert ring[0] == ring[-1]
    assert ring[0] == run.inner[0]
    assert run.road_mark.type == 'solid'
    assert features.markings[0].properties()['markType'] == 'solid'
    geojson = features.to_geojson()
    assert geojson['lanes']['features'][0]['geometry']['type'] == 'Polygon'


def test_ticks_include_section_and_width_boundaries():
    lane = Lane(1, 'driving', [PolySegment(0.0, 3.0), PolySegment(2.5, 3.0, 0.1)])
    road = _road([LaneSection(0.0, left=[lane]), LaneSection(6.2, left=[Lane(1, 'driving', [PolySegment(0.0, 3.0)])])])
    ticks = build_ticks(road, 1.0, 0.05)
    assert 2.5 in ticks
    assert 6.2 in ticks
    builder = LaneBoundaryBuilder(road, 1.0, 0.05)
    boundary = [station.section_index for station in builder.stations if station.s == 6.2]
    assert boundary == [0, 1]


def test_lane_appearing_from_zero_width_starts_at_epsilon():
    road = _road([LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 0.0, 0.2)])])])
    features = _features(road)
    assert len(features.lanes) == 1
    run = features.lanes[0]
    assert run.s_start == pytest.approx(0.025)
    assert run.s_end == pytest.approx(10.0)
    start_x, start_y = run.outer[0]
    assert start_x == pytest.approx(0.025)
    assert start_y - run.inner[0][1] == pytest.approx(0.005)
    assert run.outer[-1][1] == pytest.approx(2.0)


def test_lane_vanishing_at_section_boundary_restarts_in_next_section():
    sections = [
        LaneSection(0.0, left=[Lane(1, 'driving', [PolySegment(0.0, 1.0, -0.2)], successor_id=1)]),
        LaneSection(5.0, left=[Lane(1, 'driving', [PolySegment(0.0, 3.0)], predecessor_id=1)]),
    ]
    features = _features(_road(sections))
    runs = sorted(features.lanes, key=lambda run: run.s_start)
    assert len(runs) == 2
    assert runs[0].s_start == 0.0
    assert runs[0].s_end == pytest.approx(4.975)
    assert runs[0].outer[-1][1] - runs[0].inner[-1][1] == pytest.approx(0.005)
    # 分界处起始段从 epsilon 宽度重新开始
    assert runs[1].s_start == pytest.approx(5.0)
    assert runs[1].outer[0][1] - runs[1].inner[0][1] == pytest.approx(0.005)
    assert runs[1].outer[1][1] == pytest.approx(3.0)
    assert runs[1].s_end == 10.0
