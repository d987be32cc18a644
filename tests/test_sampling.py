import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lanegeo.lane_builder.lane_builder import build_geometry
from lanegeo.models.errors import DegenerateGeometry
from lanegeo.models.map_elements import ArcGeometry, GeoHeader, LineGeometry, ParamPoly3Geometry, Road, RoadModel, SpiralGeometry
from lanegeo.utils.config import load_config
from lanegeo.utils.sampling import sample_geometry, sample_plan_view


def test_line_of_ten_metres_gives_eleven_samples():
    samples = sample_geometry(LineGeometry(0.0, 0.0, 0.0, 0.0, 10.0), step=1.0)
    assert len(samples) == 11
    assert [s.s for s in samples] == pytest.approx([float(i) for i in range(11)])
    assert samples[-1].s == 10.0
    assert (samples[-1].x, samples[-1].y) == pytest.approx((10.0, 0.0))


def test_arc_quarter_circle_ends_exactly():
    length = math.pi / 2.0 * 10.0
    samples = sample_geometry(ArcGeometry(0.0, 0.0, 0.0, 0.0, length, 0.1), step=1.0, max_angle=0.05)
    assert samples[-1].s == length
    assert (samples[-1].x, samples[-1].y) == pytest.approx((10.0, 10.0), abs=1e-9)
    assert samples[-1].yaw == pytest.approx(math.pi / 2.0)
    # 单步航向变化不超过 max_angle
    for prev, current in zip(samples, samples[1:]):
        assert abs(current.yaw - prev.yaw) <= 0.05 + 1e-12


def test_arc_with_zero_curvature_behaves_as_line():
    samples = sample_geometry(ArcGeometry(0.0, 1.0, 2.0, 0.0, 5.0, 0.0), step=1.0)
    assert (samples[-1].x, samples[-1].y) == pytest.approx((6.0, 2.0))


def test_spiral_end_s_and_heading():
    geometry = SpiralGeometry(0.0, 0.0, 0.0, 0.0, 50.0, 0.0, 0.02)
    samples = sample_geometry(geometry, step=1.0, max_angle=0.05)
    assert samples[-1].s == 50.0
    assert samples[-1].yaw == pytest.approx(0.5, abs=1e-9)
    assert all(b.s > a.s for a, b in zip(samples, samples[1:]))


def test_straight_spiral_matches_line():
    samples = sample_geometry(SpiralGeometry(0.0, 0.0, 0.0, math.pi / 2.0, 7.3, 0.0, 0.0), step=1.0)
    assert samples[-1].s == 7.3
    assert (samples[-1].x, samples[-1].y) == pytest.approx((0.0, 7.3), abs=1e-9)


def test_param_poly3_arc_length_and_normalized_end_points():
    arc_length = ParamPoly3Geometry(0.0, 1.0, 2.0, math.pi / 2.0, 5.0, (0.0, 1.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0))
    normalized = ParamPoly3Geometry(0.0, 1.0, 2.0, math.pi / 2.0, 5.0, (0.0, 5.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0),
                                    'normalized')
    for geometry in (arc_length, normalized):
        samples = sample_geometry(geometry, step=1.0)
        assert samples[-1].s == 5.0
        assert (samples[-1].x, samples[-1].y) == pytest.approx((1.0, 7.0), abs=1e-9)


def test_degenerate_primitive_raises_and_plan_view_skips_it():
    with pytest.raises(DegenerateGeometry):
        sample_geometry(LineGeometry(0.0, 0.0, 0.0, 0.0, 0.0))
    plan_view = [LineGeometry(5.0, 5.0, 0.0, 0.0, 5.0), LineGeometry(0.0, 0.0, 0.0, 0.0, 5.0),
                 LineGeometry(10.0, 10.0, 0.0, 0.0, 0.0)]
    samples = sample_plan_view(plan_view, step=1.0)
    assert [s.s for s in samples] == pytest.approx([float(i) for i in range(11)])


def test_configured_floors_bound_the_step():
    sampling_cfg = dict(load_config()['sampling'], min_step=2.0, min_max_angle=1e-6, spiral_min_step=2.0)
    line = sample_geometry(LineGeometry(0.0, 0.0, 0.0, 0.0, 10.0), step=1.0, sampling_cfg=sampling_cfg)
    assert [s.s for s in line] == pytest.approx([0.0, 2.0, 4.0, 6.0, 8.0, 10.0])
    spiral = SpiralGeometry(0.0, 0.0, 0.0, 0.0, 50.0, 0.0, 0.02)
    # 航向目标极小时螺旋线步长仍不低于 spiral_min_step
    floored = sample_geometry(spiral, step=5.0, max_angle=1e-6, sampling_cfg=sampling_cfg)
    assert len(floored) == 26
    assert floored[-1].s == 50.0
    assert len(sample_geometry(spiral, step=5.0, max_angle=1e-6)) > len(floored)


def test_build_geometry_uses_sampling_section_of_config():
    road = Road('1', 'test', 10.0)
    road.plan_view = [LineGeometry(0.0, 0.0, 0.0, 0.0, 10.0)]
    cfg = load_config()
    cfg['sampling']['min_step'] = 2.0
    features = build_geometry(RoadModel(GeoHeader(0.0, 0.0), [road]), cfg)
    assert [x for x, _ in features.centerlines[0].points] == pytest.approx([0.0, 2.0, 4.0, 6.0, 8.0, 10.0])
