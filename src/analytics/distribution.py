# ABOUTME: Bins performance scores into a fixed 10-point histogram with population statistics.
# ABOUTME: Flags outliers beyond two standard deviations and derives distribution insights.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from src.common.config import EngineConfig
from src.common.errors import InvalidRangeError
from src.common.ranges import check_range, ensure_utc
from src.common.schemas import PERFORMANCE_CATEGORIES, PerformanceRecord, grade_counts, round_half_up

from .insights import Insight, distribution_rules, generate_insights

SUPPORTED_BIN_WIDTH = 10
SCORE_CEILING = 100
ALL_CATEGORIES = "all"


@dataclass
class HistogramBin:
    range_label: str
    range_start: int
    range_end: int
    count: int = 0
    percentage: float = 0.0
    unique_students: int = 0
    average_score: float = 0.0
    grade_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass
class ScoreStatistics:
    mean: float = 0.0
    median: float = 0.0
    mode: float = 0.0
    standard_deviation: float = 0.0
    min: float = 0.0
    max: float = 0.0
    total_records: int = 0


@dataclass
class ScoreOutlier:
    subject_id: str
    score: float
    grade: str
    category: str
    record_date: datetime
    deviation_from_mean: float


@dataclass
class ScoreDistribution:
    counterpart_id: str
    category: str
    start: datetime
    end: datetime
    histogram: List[HistogramBin]
    statistics: ScoreStatistics
    grade_distribution: Dict[str, int]
    outliers: List[ScoreOutlier]
    insights: List[Insight]

    def bin_for(self, range_start: int) -> HistogramBin:
        return self.histogram[range_start // SUPPORTED_BIN_WIDTH]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        for outlier in data["outliers"]:
            outlier["record_date"] = outlier["record_date"].isoformat()
        data["insights"] = [i.to_dict() for i in self.insights]
        return data


def validate_distribution_request(category: str, bin_width: int) -> None:
    if bin_width != SUPPORTED_BIN_WIDTH:
        raise InvalidRangeError(f"Unsupported bin width {bin_width}. Only {SUPPORTED_BIN_WIDTH}-point bins are supported.")
    if category != ALL_CATEGORIES and category not in PERFORMANCE_CATEGORIES:
        raise InvalidRangeError(
            f"Unsupported category '{category}'. Expected 'all' or one of: {', '.join(PERFORMANCE_CATEGORIES)}."
        )


def score_bins(scores: Sequence[float], bin_width: int = SUPPORTED_BIN_WIDTH) -> np.ndarray:
    """Lower edge of each score's bin; a perfect 100 falls in the last bin."""
    values = np.asarray(scores, dtype=float)
    last_edge = SCORE_CEILING - bin_width
    return np.minimum(np.floor(values / bin_width) * bin_width, last_edge).astype(int)


def score_mode(scores: pd.Series) -> float:
    """Most frequent score; ties resolve to the smallest value."""
    if scores.empty:
        return 0.0
    counts = scores.value_counts()
    top = counts[counts == counts.max()]
    return float(min(top.index))


def population_statistics(scores: Sequence[float]) -> Dict[str, float]:
    """
    Unrounded mean/median/mode/std over the raw scores.

    Standard deviation divides by n (population variance). An empty
    population yields zeros for every statistic.
    """

    series = pd.Series(list(scores), dtype=float)
    if series.empty:
        return {"mean": 0.0, "median": 0.0, "mode": 0.0, "std_dev": 0.0, "min": 0.0, "max": 0.0, "total": 0}
    return {
        "mean": float(series.mean()),
        "median": float(series.median()),
        "mode": score_mode(series),
        "std_dev": float(series.std(ddof=0)),
        "min": float(series.min()),
        "max": float(series.max()),
        "total": int(series.size),
    }


def build_histogram(records: List[PerformanceRecord], bin_width: int = SUPPORTED_BIN_WIDTH) -> List[HistogramBin]:
    total = len(records)
    bins = []
    for range_start in range(0, SCORE_CEILING, bin_width):
        range_end = SCORE_CEILING if range_start + bin_width >= SCORE_CEILING else range_start + bin_width - 1
        bins.append(HistogramBin(range_label=f"{range_start}-{range_end}", range_start=range_start, range_end=range_end))
    if not records:
        return bins

    frame = pd.DataFrame(
        {
            "subject_id": [r.subject_id for r in records],
            "score": [r.score for r in records],
            "grade": [r.grade for r in records],
        }
    )
    frame["bin"] = score_bins(frame["score"], bin_width)
    for range_start, group in frame.groupby("bin"):
        target = bins[int(range_start) // bin_width]
        target.count = int(len(group))
        target.percentage = round_half_up(len(group) / total * 100, 1)
        target.unique_students = int(group["subject_id"].nunique())
        target.average_score = round_half_up(float(group["score"].mean()), 1)
        target.grade_distribution = grade_counts(group["grade"])
    return bins


def find_outliers(
    records: List[PerformanceRecord], mean: float, std_dev: float, sigma: float = 2.0, limit: int = 10
) -> List[ScoreOutlier]:
    """Records strictly more than ``sigma`` deviations from the mean, in input order."""
    outliers = []
    for record in records:
        if abs(record.score - mean) > sigma * std_dev:
            outliers.append(
                ScoreOutlier(
                    subject_id=record.subject_id,
                    score=record.score,
                    grade=record.grade,
                    category=record.category,
                    record_date=record.record_date,
                    deviation_from_mean=round_half_up(record.score - mean, 1),
                )
            )
            if len(outliers) >= limit:
                break
    return outliers


def analyze_score_distribution(
    records: Iterable[PerformanceRecord],
    counterpart_id: str,
    start: datetime,
    end: datetime,
    category: str = "overall",
    bin_width: int = SUPPORTED_BIN_WIDTH,
    config: Optional[EngineConfig] = None,
) -> ScoreDistribution:
    """Histogram, statistics, outliers, and insights for one tutor's graded records."""

    validate_distribution_request(category, bin_width)
    start, end = ensure_utc(start), ensure_utc(end)
    check_range(start, end)
    config = config or EngineConfig()
    dist_cfg = config.distribution

    scoped = [
        r
        for r in records
        if r.counterpart_id == counterpart_id
        and start <= r.record_date <= end
        and (category == ALL_CATEGORIES or r.category == category)
    ]

    stats = population_statistics([r.score for r in scoped])
    histogram = build_histogram(scoped, bin_width)
    outliers = find_outliers(scoped, stats["mean"], stats["std_dev"], dist_cfg.outlier_sigma, dist_cfg.max_outliers)

    thresholds = config.insights
    high_count = sum(b.count for b in histogram if b.range_start >= thresholds.high_performer_floor)
    low_count = sum(b.count for b in histogram if b.range_start < thresholds.low_performer_ceiling)
    insights = generate_insights(
        distribution_rules(thresholds),
        {**stats, "high_count": high_count, "low_count": low_count},
    )

    statistics = ScoreStatistics(
        mean=round_half_up(stats["mean"], 1),
        median=round_half_up(stats["median"], 1),
        mode=stats["mode"],
        standard_deviation=round_half_up(stats["std_dev"], 1),
        min=stats["min"],
        max=stats["max"],
        total_records=stats["total"],
    )
    return ScoreDistribution(
        counterpart_id=counterpart_id,
        category=category,
        start=start,
        end=end,
        histogram=histogram,
        statistics=statistics,
        grade_distribution=grade_counts(r.grade for r in scoped),
        outliers=outliers,
        insights=insights,
    )
