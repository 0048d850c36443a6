"""
Fatigue and burnout risk scoring.

All scoring functions are pure. An input the snapshot does not carry
contributes its minimum term and never satisfies a factor or status condition.
Rounding is half-up so scores match what dashboards have always shown.
"""

import math
from collections.abc import Callable, Sequence

import structlog
from pydantic import BaseModel

from vitalsync.domain.models import (
    BurnoutAssessment,
    BurnoutRisk,
    FatigueAssessment,
    FatigueTrend,
    HealthStatus,
    VitalsSnapshot,
)

logger = structlog.get_logger(__name__)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _sleep_duration_term(hours: float | None) -> int:
    if hours is None:
        return 5
    if hours < 5:
        return 30
    if hours < 6:
        return 22
    if hours < 7:
        return 12
    return 5


def _heart_rate_term(bpm: int | None) -> int:
    if bpm is None:
        return 0
    if bpm > 100:
        return 15
    if bpm > 90:
        return 10
    if bpm > 80:
        return 5
    return 0


def _activity_term(steps: int | None) -> int:
    if steps is None:
        return 0
    if steps < 2000:
        return 10
    if steps < 4000:
        return 6
    if steps < 6000:
        return 3
    return 0


def fatigue_trend(score: int) -> FatigueTrend:
    if score > 60:
        return FatigueTrend.WORSENING
    if score > 30:
        return FatigueTrend.STABLE
    return FatigueTrend.IMPROVING


def fatigue_factors(snapshot: VitalsSnapshot) -> frozenset[str]:
    factors = set()
    if snapshot.sleep_hours is not None and snapshot.sleep_hours < 6:
        factors.add("Poor sleep")
    if snapshot.stress_level is not None and snapshot.stress_level > 60:
        factors.add("High stress")
    if snapshot.steps is not None and snapshot.steps < 4000:
        factors.add("Low activity")
    if snapshot.heart_rate is not None and snapshot.heart_rate > 90:
        factors.add("Elevated heart rate")
    return frozenset(factors)


def fatigue(snapshot: VitalsSnapshot) -> FatigueAssessment:
    """Additive 0-100 fatigue score from sleep, stress, heart rate and activity."""
    score = _sleep_duration_term(snapshot.sleep_hours)
    if snapshot.sleep_quality is not None:
        score += round_half_up((100 - snapshot.sleep_quality) * 0.2)
    if snapshot.stress_level is not None:
        score += round_half_up(snapshot.stress_level * 0.25)
    score += _heart_rate_term(snapshot.heart_rate)
    score += _activity_term(snapshot.steps)

    score = min(100, max(0, score))
    return FatigueAssessment(
        score=score,
        trend=fatigue_trend(score),
        factors=fatigue_factors(snapshot),
    )


def burnout_risk(fatigue_score: float, stress_history: Sequence[float]) -> BurnoutRisk:
    """Classify burnout from fatigue and the mean of recent stress values.

    An empty history averages to zero.
    """
    avg_stress = sum(stress_history) / len(stress_history) if stress_history else 0.0
    combined = fatigue_score * 0.6 + avg_stress * 0.4
    if combined > 75:
        return BurnoutRisk.CRITICAL
    if combined > 55:
        return BurnoutRisk.HIGH
    if combined > 35:
        return BurnoutRisk.MODERATE
    return BurnoutRisk.LOW


def burnout_score(fatigue_score: float, current_stress: float | None) -> float:
    return fatigue_score * 0.5 + (current_stress or 0) * 0.5


def assess_burnout(
    fatigue_score: int, current_stress: float | None, stress_history: Sequence[float]
) -> BurnoutAssessment:
    return BurnoutAssessment(
        score=burnout_score(fatigue_score, current_stress),
        risk=burnout_risk(fatigue_score, stress_history),
    )


def _gt(value: float | None, threshold: float) -> bool:
    return value is not None and value > threshold


def _lt(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


StatusRule = tuple[Callable[[VitalsSnapshot, BurnoutRisk], bool], HealthStatus]

# Critical conditions are checked before warning conditions; first match wins.
STATUS_RULES: tuple[StatusRule, ...] = (
    (lambda s, risk: risk == BurnoutRisk.CRITICAL, HealthStatus.CRITICAL),
    (lambda s, risk: _gt(s.heart_rate, 100), HealthStatus.CRITICAL),
    (lambda s, risk: _lt(s.blood_oxygen, 93), HealthStatus.CRITICAL),
    (lambda s, risk: risk == BurnoutRisk.HIGH, HealthStatus.WARNING),
    (lambda s, risk: _lt(s.sleep_hours, 5.5), HealthStatus.WARNING),
    (lambda s, risk: _gt(s.stress_level, 65), HealthStatus.WARNING),
)


def overall_status(snapshot: VitalsSnapshot, risk: BurnoutRisk) -> HealthStatus:
    for predicate, status in STATUS_RULES:
        if predicate(snapshot, risk):
            return status
    return HealthStatus.HEALTHY


SuggestionRule = tuple[
    Callable[[VitalsSnapshot, FatigueAssessment, BurnoutAssessment], bool], str
]

SUGGESTION_RULES: tuple[SuggestionRule, ...] = (
    (
        lambda s, f, b: _lt(s.sleep_hours, 6),
        "Aim for at least 7-8 hours of sleep. Consider setting a consistent bedtime routine.",
    ),
    (
        lambda s, f, b: _gt(s.stress_level, 70),
        "High stress detected. Try 10 minutes of deep breathing or a short walk.",
    ),
    (
        lambda s, f, b: _gt(s.heart_rate, 95),
        "Elevated resting heart rate. Consider reducing caffeine and taking regular breaks.",
    ),
    (
        lambda s, f, b: _lt(s.steps, 4000),
        "Low physical activity today. A 15-minute walk can significantly improve energy levels.",
    ),
    (
        lambda s, f, b: _lt(s.blood_oxygen, 95),
        "Blood oxygen is slightly low. Ensure good ventilation and practice deep breathing exercises.",
    ),
    (
        lambda s, f, b: f.score > 60,
        "Fatigue level is high. Take a 20-minute power nap if possible, or switch to lighter tasks.",
    ),
    (
        lambda s, f, b: b.risk in (BurnoutRisk.HIGH, BurnoutRisk.CRITICAL),
        "Burnout risk is elevated. Consider scheduling time off or speaking with a wellness counselor.",
    ),
    (
        lambda s, f, b: _lt(s.sleep_quality, 50),
        "Sleep quality is poor. Avoid screens 1 hour before bed and keep your bedroom cool and dark.",
    ),
)

DEFAULT_SUGGESTIONS = (
    "Great health metrics! Keep maintaining your current healthy habits.",
    "Stay hydrated throughout the day and continue your regular exercise routine.",
)


def wellness_suggestions(
    snapshot: VitalsSnapshot, fatigue: FatigueAssessment, burnout: BurnoutAssessment
) -> list[str]:
    suggestions = [text for predicate, text in SUGGESTION_RULES if predicate(snapshot, fatigue, burnout)]
    return suggestions or list(DEFAULT_SUGGESTIONS)


class RiskAssessment(BaseModel):
    """Everything the scoring engine derives from one snapshot."""

    fatigue: FatigueAssessment
    burnout: BurnoutAssessment
    status: HealthStatus
    suggestions: list[str]


class RiskScoringEngine:
    """Combines the scoring functions into one assessment per person."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="risk_scoring_engine")

    def assess(self, snapshot: VitalsSnapshot, stress_history: Sequence[float]) -> RiskAssessment:
        fatigue_assessment = fatigue(snapshot)
        burnout_assessment = assess_burnout(
            fatigue_assessment.score, snapshot.stress_level, stress_history
        )
        status = overall_status(snapshot, burnout_assessment.risk)

        self.logger.debug(
            "risk_assessed",
            fatigue_score=fatigue_assessment.score,
            burnout_risk=burnout_assessment.risk.value,
            status=status.value,
        )
        return RiskAssessment(
            fatigue=fatigue_assessment,
            burnout=burnout_assessment,
            status=status,
            suggestions=wellness_suggestions(snapshot, fatigue_assessment, burnout_assessment),
        )
