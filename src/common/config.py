# ABOUTME: Loads analytics thresholds and default windows from YAML into frozen dataclasses.
# ABOUTME: Missing sections fall back to defaults; unknown keys fail fast.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


@dataclass(frozen=True)
class HeatmapConfig:
    default_window_days: int = 30
    recent_activity_limit: int = 10


@dataclass(frozen=True)
class DistributionConfig:
    default_window_days: int = 90
    default_category: str = "overall"
    bin_width: int = 10
    outlier_sigma: float = 2.0
    max_outliers: int = 10


@dataclass(frozen=True)
class ConsistencyConfig:
    default_window_days: int = 180
    streak_threshold: int = 70
    low_week_threshold: int = 50
    max_low_weeks_shown: int = 3


@dataclass(frozen=True)
class InsightThresholds:
    excellent_mean: float = 85.0
    good_mean: float = 70.0
    high_variance: float = 20.0
    performance_gap_ratio: float = 2.0
    high_performer_floor: int = 80
    low_performer_ceiling: int = 60
    strong_attendance: float = 90.0
    weak_attendance: float = 70.0
    strong_submission: float = 90.0
    weak_submission: float = 70.0
    streak_celebration_days: int = 7
    high_engagement: float = 70.0
    low_engagement: float = 40.0


@dataclass(frozen=True)
class EngineConfig:
    heatmap: HeatmapConfig = field(default_factory=HeatmapConfig)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    insights: InsightThresholds = field(default_factory=InsightThresholds)


_SECTIONS = {
    "heatmap": HeatmapConfig,
    "distribution": DistributionConfig,
    "consistency": ConsistencyConfig,
    "insights": InsightThresholds,
}


def build_engine_config(cfg: Optional[Mapping[str, Any]]) -> EngineConfig:
    """Build an EngineConfig from an already-parsed mapping."""

    cfg = cfg or {}
    unknown = set(cfg) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}.")

    sections = {}
    for name, section_cls in _SECTIONS.items():
        values = cfg.get(name) or {}
        allowed = {f.name for f in fields(section_cls)}
        extra = set(values) - allowed
        if extra:
            raise ValueError(f"Unknown keys in '{name}' config: {', '.join(sorted(extra))}.")
        sections[name] = section_cls(**values)
    return EngineConfig(**sections)


def load_engine_config(config_path: Optional[Path] = None) -> EngineConfig:
    """Read the YAML config at ``config_path``; defaults when no path is given."""

    if config_path is None:
        return EngineConfig()
    with open(config_path) as f:
        cfg = yaml.safe_load(f)
    return build_engine_config(cfg)
