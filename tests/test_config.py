import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lanegeo.utils.config import DEFAULT_CONFIG, load_config, sampling_options
from lanegeo.utils.geo_reference import GeoReference, extract_proj_param, tmerc_string


def test_default_config_is_a_copy():
    cfg = load_config()
    cfg['editor']['lane_width'] = 5.0
    assert DEFAULT_CONFIG['editor']['lane_width'] == 3.5


def test_yaml_overrides_are_merged(tmp_path):
    path = tmp_path / "geometry.yaml"
    path.write_text("sampling:\n  quality: high\neditor:\n  snap_px: 12\n", encoding='utf-8')
    cfg = load_config(str(path))
    assert cfg['sampling']['quality'] == 'high'
    assert cfg['sampling']['min_step'] == 0.2
    assert cfg['editor']['snap_px'] == 12
    assert cfg['editor']['snap_vertex_px'] == 16.0
    assert sampling_options(cfg) == (0.5, 0.03)


def test_shipped_yaml_matches_defaults():
    cfg = load_config(str(ROOT / "config" / "geometry.yaml"))
    assert cfg == DEFAULT_CONFIG


def test_quality_presets_and_unknown_quality():
    cfg = load_config()
    assert sampling_options(cfg, 'poor') == (2.0, 0.10)
    assert sampling_options(cfg, 'ultra') == (0.25, 0.015)
    assert sampling_options(cfg, 'bogus') == (1.0, 0.05)


def test_proj_param_extraction():
    text = "+proj=tmerc +lat_0=35.681 +lon_0=139.767 +k=1 +x_0=0"
    assert extract_proj_param(text, 'lat_0') == pytest.approx(35.681)
    assert extract_proj_param(text, 'lon_0') == pytest.approx(139.767)
    assert extract_proj_param(text, 'y_0') is None
    assert extract_proj_param('', 'lat_0') is None
    assert extract_proj_param(tmerc_string(1.5, -2.0), 'lon_0') == -2.0


def test_geo_reference_round_trip():
    geo = GeoReference(35.681, 139.767)
    lon, lat = geo.to_lon_lat((0.0, 0.0))
    assert (lon, lat) == pytest.approx((139.767, 35.681))
    x, y = geo.to_local(geo.to_lon_lat((250.0, -120.0)))
    assert (x, y) == pytest.approx((250.0, -120.0), abs=1e-6)
    east, north = geo.to_local((139.768, 35.681))
    assert east > 0.0
    assert north == pytest.approx(0.0, abs=1.0)
