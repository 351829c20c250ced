# ABOUTME: Small rule engine turning computed statistics into categorized, prioritized insights.
# ABOUTME: Holds the rule tables used by the heatmap, distribution, and consistency reports.

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from src.common.config import InsightThresholds

INSIGHT_TYPES = ("success", "info", "warning")
PRIORITY_BY_TYPE = {"warning": "high", "info": "medium", "success": "low"}
_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

Context = Mapping[str, Any]


@dataclass
class Insight:
    type: str
    category: str
    message: str
    priority: str
    details: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.details is None:
            data.pop("details")
        return data


@dataclass(frozen=True)
class InsightRule:
    """A named predicate over a stats context plus the message it emits when it holds."""

    name: str
    type: str
    category: str
    condition: Callable[[Context], bool]
    message: Callable[[Context], str]
    details: Optional[Callable[[Context], List[Dict[str, Any]]]] = None

    def __post_init__(self) -> None:
        if self.type not in INSIGHT_TYPES:
            raise ValueError(f"Unsupported insight type '{self.type}'.")

    def apply(self, context: Context) -> Optional[Insight]:
        if not self.condition(context):
            return None
        return Insight(
            type=self.type,
            category=self.category,
            message=self.message(context),
            priority=PRIORITY_BY_TYPE[self.type],
            details=self.details(context) if self.details else None,
        )


def prioritize(insights: Iterable[Insight]) -> List[Insight]:
    """Order warnings first, then info, then successes; rule order is kept within a level."""
    return sorted(insights, key=lambda i: _PRIORITY_RANK[i.priority])


def generate_insights(rules: Iterable[InsightRule], context: Context) -> List[Insight]:
    insights = []
    for rule in rules:
        insight = rule.apply(context)
        if insight is not None:
            insights.append(insight)
    return prioritize(insights)


def distribution_rules(t: InsightThresholds) -> List[InsightRule]:
    has_data = lambda c: c["total"] > 0
    return [
        InsightRule(
            "no_records",
            "info",
            "performance",
            lambda c: c["total"] == 0,
            lambda c: "No performance records found for this period",
        ),
        InsightRule(
            "excellent_average",
            "success",
            "performance",
            lambda c: has_data(c) and c["mean"] >= t.excellent_mean,
            lambda c: f"Excellent class performance with an average of {c['mean']:.1f}%",
        ),
        InsightRule(
            "good_average",
            "info",
            "performance",
            lambda c: has_data(c) and t.good_mean <= c["mean"] < t.excellent_mean,
            lambda c: f"Good class performance with an average of {c['mean']:.1f}%",
        ),
        InsightRule(
            "low_average",
            "warning",
            "performance",
            lambda c: has_data(c) and c["mean"] < t.good_mean,
            lambda c: f"Class average is {c['mean']:.1f}%. Consider additional support.",
        ),
        InsightRule(
            "high_variance",
            "warning",
            "distribution",
            lambda c: has_data(c) and c["std_dev"] > t.high_variance,
            lambda c: f"High variance ({c['std_dev']:.1f}) indicates diverse student performance levels",
        ),
        InsightRule(
            "performance_gap",
            "info",
            "distribution",
            lambda c: c["high_count"] > 0
            and c["low_count"] > 0
            and c["high_count"] / c["low_count"] > t.performance_gap_ratio,
            lambda c: "Significant gap between high and low performers detected",
        ),
    ]


def calendar_rules(t: InsightThresholds, max_low_weeks_shown: int = 3) -> List[InsightRule]:
    has_days = lambda c: c["total_days"] > 0
    has_due = lambda c: c["assignments_due"] > 0
    return [
        InsightRule(
            "no_records",
            "info",
            "attendance",
            lambda c: c["total_days"] == 0,
            lambda c: "No attendance records found for this period",
        ),
        InsightRule(
            "strong_attendance",
            "success",
            "attendance",
            lambda c: has_days(c) and c["attendance_rate"] >= t.strong_attendance,
            lambda c: f"Excellent attendance rate of {c['attendance_rate']}%",
        ),
        InsightRule(
            "weak_attendance",
            "warning",
            "attendance",
            lambda c: has_days(c) and c["attendance_rate"] < t.weak_attendance,
            lambda c: f"Low attendance rate of {c['attendance_rate']}%. Consider attendance interventions.",
        ),
        InsightRule(
            "strong_submission",
            "success",
            "assignments",
            lambda c: has_due(c) and c["submission_rate"] >= t.strong_submission,
            lambda c: f"Outstanding assignment submission rate of {c['submission_rate']}%",
        ),
        InsightRule(
            "weak_submission",
            "warning",
            "assignments",
            lambda c: has_due(c) and c["submission_rate"] < t.weak_submission,
            lambda c: f"Assignment submission rate is {c['submission_rate']}%. Students may need support.",
        ),
        InsightRule(
            "active_streak",
            "success",
            "consistency",
            lambda c: c["current_streak"] >= t.streak_celebration_days,
            lambda c: f"Active {c['current_streak']}-day consistency streak!",
        ),
        InsightRule(
            "low_consistency_weeks",
            "info",
            "consistency",
            lambda c: len(c["low_weeks"]) > 0,
            lambda c: f"{len(c['low_weeks'])} weeks with below-average consistency detected",
            details=lambda c: list(c["low_weeks"][:max_low_weeks_shown]),
        ),
    ]


def heatmap_rules(t: InsightThresholds) -> List[InsightRule]:
    has_data = lambda c: c["total_activities"] > 0
    return [
        InsightRule(
            "no_activity",
            "info",
            "engagement",
            lambda c: not has_data(c),
            lambda c: "No student activity recorded for this period",
        ),
        InsightRule(
            "high_engagement",
            "success",
            "engagement",
            lambda c: has_data(c) and c["average_engagement"] >= t.high_engagement,
            lambda c: f"Strong average engagement of {c['average_engagement']:.1f}",
        ),
        InsightRule(
            "low_engagement",
            "warning",
            "engagement",
            lambda c: has_data(c) and c["average_engagement"] < t.low_engagement,
            lambda c: f"Average engagement is {c['average_engagement']:.1f}. Consider more interactive sessions.",
        ),
        InsightRule(
            "peak_slot",
            "info",
            "schedule",
            lambda c: c.get("peak") is not None,
            lambda c: (
                f"Students are most active on {c['peak'].day_name} at {c['peak'].hour_label} "
                f"({c['peak'].activities} activities)"
            ),
        ),
    ]
