import copy
import logging

import yaml


QUALITY_PRESETS = {
    'poor': {'step': 2.0, 'max_angle': 0.10},
    'normal': {'step': 1.0, 'max_angle': 0.05},
    'high': {'step': 0.5, 'max_angle': 0.03},
    'ultra': {'step': 0.25, 'max_angle': 0.015},
}

DEFAULT_CONFIG = {
    'sampling': {
        'quality': 'normal',
        'min_step': 0.2,        # 采样步长下限（米）
        'min_max_angle': 0.005,  # 单步航向变化下限（弧度）
        'spiral_min_step': 0.05,
    },
    'lanes': {
        'epsilon': 0.005,        # 车道宽度消失阈值（米）
        'width_ds_min': 0.5,
        'width_ds_max': 25.0,
        'width_angle_min': 0.01,
        'width_angle_max': 0.08,
    },
    'editor': {
        'snap_px': 10.0,
        'snap_vertex_px': 16.0,
        'cluster_px_min': 6.0,
        'arc_chord_px': 8.0,
        'lane_width': 3.5,
        'rebuild_delay': 0.04,
        'drag_rebuild_delay': 0.03,
        'simplify_angle_deg': 2.5,
        'clamp_label_seconds': 0.5,
        'radius_scale_px': 50.0,
        'dedupe_epsilon': 1e-6,
    },
    'origin': {
        'lat': 0.0,
        'lon': 0.0,
    },
}


def _deep_merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(yaml_path='') -> dict:
    """
    读取 yaml 配置并覆盖默认值，yaml_path 为空时直接返回默认配置的副本。
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if not yaml_path:
        return cfg
    with open(yaml_path, 'r', encoding='utf-8') as f:
        user_cfg = yaml.safe_load(f) or {}
    logging.debug(f"加载配置 {yaml_path}")
    return _deep_merge(cfg, user_cfg)


def sampling_options(cfg, quality=None):
    """
    返回 (step, max_angle)：按质量档位取值，并施加下限。
    """
    sampling = cfg['sampling']
    quality = quality or sampling.get('quality', 'normal')
    preset = QUALITY_PRESETS.get(quality)
    if preset is None:
        logging.warning(f"未知的采样质量 {quality}，使用 normal")
        preset = QUALITY_PRESETS['normal']
    step = max(sampling['min_step'], preset['step'])
    max_angle = max(sampling['min_max_angle'], preset['max_angle'])
    return step, max_angle
