# ABOUTME: Read-side facade that scopes a fact store to a window and runs one aggregator.
# ABOUTME: Applies configured default windows and validates requests before touching facts.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from src.common.config import EngineConfig
from src.common.ranges import DateLike, resolve_range
from src.common.store import FactReader

from .consistency import ConsistencyReport, track_consistency
from .distribution import ScoreDistribution, analyze_score_distribution, validate_distribution_request
from .heatmap import ActivityHeatmap, build_activity_heatmap

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Runs the heatmap, distribution, and calendar reports against a fact reader."""

    def __init__(self, store: FactReader, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or EngineConfig()

    def engagement_heatmap(
        self,
        counterpart_id: str,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        subject_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ActivityHeatmap:
        start_dt, end_dt = resolve_range(start, end, self.config.heatmap.default_window_days, now)
        logger.debug("Heatmap window %s to %s", start_dt.isoformat(), end_dt.isoformat())
        records = self.store.list_engagement(counterpart_id, start_dt, end_dt)
        logger.info("Building heatmap for %s from %d engagement records", counterpart_id, len(records))
        return build_activity_heatmap(records, counterpart_id, start_dt, end_dt, subject_id, self.config)

    def score_distribution(
        self,
        counterpart_id: str,
        category: Optional[str] = None,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        bin_width: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ScoreDistribution:
        dist_cfg = self.config.distribution
        category = category or dist_cfg.default_category
        bin_width = bin_width or dist_cfg.bin_width
        validate_distribution_request(category, bin_width)
        start_dt, end_dt = resolve_range(start, end, dist_cfg.default_window_days, now)
        logger.debug("Distribution window %s to %s, bin width %d", start_dt.isoformat(), end_dt.isoformat(), bin_width)
        records = self.store.list_performance(counterpart_id, start_dt, end_dt, category)
        logger.info(
            "Analyzing %d %s scores for %s", len(records), category, counterpart_id
        )
        return analyze_score_distribution(records, counterpart_id, start_dt, end_dt, category, bin_width, self.config)

    def consistency_calendar(
        self,
        counterpart_id: str,
        subject_id: Optional[str] = None,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        now: Optional[datetime] = None,
    ) -> ConsistencyReport:
        start_dt, end_dt = resolve_range(start, end, self.config.consistency.default_window_days, now)
        logger.debug("Calendar window %s to %s", start_dt.isoformat(), end_dt.isoformat())
        records = self.store.list_attendance(counterpart_id, start_dt, end_dt, subject_id)
        logger.info("Tracking consistency for %s across %d attendance days", counterpart_id, len(records))
        report = track_consistency(records, counterpart_id, start_dt, end_dt, subject_id, self.config)
        if report.low_consistency_weeks:
            logger.warning(
                "%s has %d low-consistency weeks", counterpart_id, len(report.low_consistency_weeks)
            )
        return report
