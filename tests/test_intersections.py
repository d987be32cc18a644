import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lanegeo.editor.intersections import attach_roads, resolve_intersections, split_axis
from lanegeo.utils.projector import IdentityProjector
from roadlib.geometry_lib.point.point import Point2D
from roadlib.geometry_lib.segment.segment import Segment2D


def _points(*coords):
    return [Point2D(float(x), float(y)) for x, y in coords]


def _resolve(axes, tolerance_px=16.0):
    return resolve_intersections(axes, axes, IdentityProjector(), tolerance_px)


def test_single_crossing_gives_one_intersection():
    axes = {'a': _points((-100, 0), (100, 0)), 'b': _points((0, -100), (0, 100))}
    intersections = _resolve(axes)
    assert len(intersections) == 1
    assert intersections[0].position.as_tuple() == pytest.approx((0.0, 0.0))
    assert intersections[0].member_axis_ids == {'a', 'b'}


def test_crossing_near_authored_vertex_snaps_to_it():
    axes = {'a': _points((-100, 0), (0, 0), (100, 0)), 'b': _points((0.4, -100), (0.4, 100))}
    intersections = _resolve(axes)
    assert len(intersections) == 1
    assert intersections[0].position == Point2D(0.0, 0.0)


def test_crossing_on_shared_vertex_is_not_duplicated():
    axes = {'a': _points((-100, 0), (0, 0), (100, 0)), 'b': _points((-50, -100), (0, 0), (50, 100))}
    assert len(_resolve(axes)) == 1


def test_nearly_concurrent_crossings_cluster_together():
    axes = {
        'a': _points((-100, 0), (100, 0)),
        'b': _points((-100, -100), (100, 100)),
        'c': _points((0.3, -100), (0.3, 100)),
    }
    intersections = _resolve(axes)
    assert len(intersections) == 1
    assert intersections[0].member_axis_ids == {'a', 'b', 'c'}
    assert intersections[0].position.distance_to(Point2D(0.0, 0.0)) < 1.0


def test_end_point_touch_counts_as_intersection():
    axes = {'a': _points((-100, 0), (100, 0)), 'b': _points((0, 5), (0, 100))}
    intersections = _resolve(axes)
    assert len(intersections) == 1
    # 容差内的原始顶点优先
    assert intersections[0].position == Point2D(0.0, 5.0)


def test_distant_axes_do_not_intersect():
    axes = {'a': _points((0, 0), (10, 0)), 'b': _points((500, 500), (600, 500))}
    assert _resolve(axes) == []


def test_split_axis_at_intersection():
    axes = {'a': _points((-100, 0), (-50, 0), (100, 0)), 'b': _points((0, -100), (0, 100))}
    intersections = _resolve(axes)
    parts = split_axis(axes['a'], intersections, 'a', IdentityProjector())
    assert len(parts) == 2
    assert [p.as_tuple() for p in parts[0]] == [(-100.0, 0.0), (-50.0, 0.0), pytest.approx((0.0, 0.0))]
    assert parts[1][0].as_tuple() == pytest.approx((0.0, 0.0))
    assert parts[1][-1] == Point2D(100.0, 0.0)
    # 不属于该交点的轴线不拆分
    assert len(split_axis(_points((0, 50), (10, 50)), intersections, 'c', IdentityProjector())) == 1


def test_split_axis_ignores_intersection_at_end_point():
    axes = {'a': _points((-100, 0), (100, 0)), 'b': _points((0, 5), (0, 100))}
    intersections = _resolve(axes)
    assert len(split_axis(axes['a'], intersections, 'a', IdentityProjector())) == 2
    assert len(split_axis(axes['b'], intersections, 'b', IdentityProjector())) == 1


def test_attach_roads_tags_passing_segments():
    axes = {'a': _points((-100, 0), (100, 0)), 'b': _points((0, -100), (0, 100))}
    intersections = _resolve(axes)
    segments = {
        'a__seg_1': _points((-100, 0), (0, 0)),
        'a__seg_2': _points((0, 0), (100, 0)),
        'far': _points((300, 300), (400, 300)),
    }
    attach_roads(intersections, segments, IdentityProjector())
    assert intersections[0].road_ids == ['a__seg_1', 'a__seg_2']


def test_single_crossing_survives_vertex_jitter():
    rng = random.Random(7)

    def jitter(x, y, amount=5.0):
        return x + rng.uniform(-amount, amount), y + rng.uniform(-amount, amount)

    for _ in range(200):
        axes = {
            'a': _points(jitter(-100, 0), jitter(2, 1), jitter(100, 0)),
            'b': _points(jitter(0, -100), jitter(0, 100)),
        }
        intersections = _resolve(axes)
        assert len(intersections) == 1
        assert intersections[0].member_axis_ids == {'a', 'b'}


def test_segment_distance_and_direction():
    segment = Segment2D(Point2D(0.0, 0.0), Point2D(10.0, 0.0))
    assert (segment.unit_direction.x, segment.unit_direction.y) == pytest.approx((1.0, 0.0))
    assert segment.distance_to_point(Point2D(5.0, 3.0)) == pytest.approx(3.0)
    assert segment.distance_to_point(Point2D(13.0, 4.0)) == pytest.approx(5.0)
    # 航向只从采样点读取
    assert not hasattr(segment, 'heading_angle')
    assert not hasattr(segment.unit_direction, 'angle')
