"""
Threshold-based alert generation.

Rules are a fixed ordered list of (predicate, alert) pairs evaluated top to
bottom. Rules are independent: one reading can fire several alert types, and a
batch of N readings can yield N alerts of the same type. The engine only
computes alerts; persisting them is the caller's job.
"""

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from vitalsync.domain.models import (
    Alert,
    AlertType,
    BurnoutAssessment,
    BurnoutRisk,
    FatigueAssessment,
    Severity,
    VitalsReading,
)

logger = structlog.get_logger(__name__)

HIGH_FATIGUE_SCORE = 60


def format_value(value: float) -> str:
    """Render a metric the way users see it: ``98.0`` reads as ``98``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class VitalRule:
    """Fires one alert when ``applies`` holds for a present metric value."""

    metric: str
    applies: Callable[[float], bool]
    alert_type: AlertType
    severity: Severity
    message: str
    suggestion: str

    def build(self, employee_id: str, value: float, timestamp: datetime) -> Alert:
        return Alert(
            employee_id=employee_id,
            type=self.alert_type,
            severity=self.severity,
            message=self.message.format(value=format_value(value)),
            suggestion=self.suggestion,
            timestamp=timestamp,
        )


_HIGH_HR_MESSAGE = "Elevated heart rate detected: {value} bpm"
_HIGH_HR_SUGGESTION = "Take a break and rest. If persists, consult a healthcare provider."
_LOW_SPO2_MESSAGE = "Low blood oxygen level detected: {value}%"
_LOW_SPO2_SUGGESTION = "Ensure proper ventilation and practice deep breathing."
_FEVER_MESSAGE = "Elevated body temperature: {value}°F"
_FEVER_SUGGESTION = "Monitor for fever symptoms. Consider staying home."

VITAL_RULES: tuple[VitalRule, ...] = (
    # Heart rate
    VitalRule(
        "heart_rate", lambda v: v > 120,
        AlertType.HEART_RATE, Severity.CRITICAL, _HIGH_HR_MESSAGE, _HIGH_HR_SUGGESTION,
    ),
    VitalRule(
        "heart_rate", lambda v: 100 < v <= 120,
        AlertType.HEART_RATE, Severity.WARNING, _HIGH_HR_MESSAGE, _HIGH_HR_SUGGESTION,
    ),
    VitalRule(
        "heart_rate", lambda v: v < 40,
        AlertType.HEART_RATE, Severity.CRITICAL,
        "Unusually low heart rate detected: {value} bpm",
        "Monitor closely and seek medical attention if symptomatic.",
    ),
    # Blood oxygen
    VitalRule(
        "blood_oxygen", lambda v: v < 88,
        AlertType.BLOOD_OXYGEN, Severity.CRITICAL, _LOW_SPO2_MESSAGE, _LOW_SPO2_SUGGESTION,
    ),
    VitalRule(
        "blood_oxygen", lambda v: 88 <= v < 93,
        AlertType.BLOOD_OXYGEN, Severity.WARNING, _LOW_SPO2_MESSAGE, _LOW_SPO2_SUGGESTION,
    ),
    # Temperature (°F)
    VitalRule(
        "temperature", lambda v: v > 102,
        AlertType.TEMPERATURE, Severity.CRITICAL, _FEVER_MESSAGE, _FEVER_SUGGESTION,
    ),
    VitalRule(
        "temperature", lambda v: 100.4 < v <= 102,
        AlertType.TEMPERATURE, Severity.WARNING, _FEVER_MESSAGE, _FEVER_SUGGESTION,
    ),
    VitalRule(
        "temperature", lambda v: v < 95,
        AlertType.TEMPERATURE, Severity.WARNING,
        "Low body temperature: {value}°F",
        "Ensure warm environment and monitor vital signs.",
    ),
    # Stress
    VitalRule(
        "stress_level", lambda v: v > 80,
        AlertType.STRESS, Severity.CRITICAL,
        "Very high stress levels detected: {value}/100",
        "Take a break, practice meditation, or speak with a counselor.",
    ),
    VitalRule(
        "stress_level", lambda v: 65 < v <= 80,
        AlertType.STRESS, Severity.WARNING,
        "Elevated stress levels: {value}/100",
        "Try relaxation techniques or take a short walk.",
    ),
    # Sleep
    VitalRule(
        "sleep_hours", lambda v: v < 5,
        AlertType.SLEEP, Severity.WARNING,
        "Insufficient sleep detected: {value} hours",
        "Prioritize sleep tonight. Aim for 7-9 hours.",
    ),
    VitalRule(
        "sleep_quality", lambda v: v < 40,
        AlertType.SLEEP, Severity.WARNING,
        "Poor sleep quality detected: {value}%",
        "Improve sleep environment. Avoid screens before bed.",
    ),
)


@dataclass(frozen=True)
class RiskRule:
    """Fires one alert from a fatigue/burnout assessment pair."""

    applies: Callable[[FatigueAssessment, BurnoutAssessment], bool]
    alert_type: AlertType
    severity: Severity
    message: str
    suggestion: str


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule(
        lambda f, b: b.risk == BurnoutRisk.CRITICAL,
        AlertType.BURNOUT, Severity.CRITICAL,
        "Critical burnout risk detected. Multiple health indicators are concerning.",
        "Immediate intervention recommended. Consider mandatory time off and wellness counseling.",
    ),
    RiskRule(
        lambda f, b: b.risk == BurnoutRisk.HIGH,
        AlertType.BURNOUT, Severity.WARNING,
        "High burnout risk detected. Fatigue and stress levels are elevated.",
        "Schedule a wellness check-in and consider workload adjustments.",
    ),
    RiskRule(
        lambda f, b: f.score > HIGH_FATIGUE_SCORE,
        AlertType.FATIGUE, Severity.WARNING,
        "High fatigue score detected: {score}/100",
        "Take a 20-minute power nap if possible, or switch to lighter tasks.",
    ),
)


class AlertRuleEngine:
    """Stateless evaluator of the vital and risk rule catalogs."""

    def __init__(
        self,
        vital_rules: Iterable[VitalRule] = VITAL_RULES,
        risk_rules: Iterable[RiskRule] = RISK_RULES,
    ) -> None:
        self.vital_rules = tuple(vital_rules)
        self.risk_rules = tuple(risk_rules)
        self.logger = logger.bind(component="alert_rule_engine")

    def evaluate(self, employee_id: str, readings: Iterable[VitalsReading]) -> list[Alert]:
        """Evaluate every reading independently against the vital rules."""
        alerts: list[Alert] = []
        for reading in readings:
            for rule in self.vital_rules:
                value = getattr(reading, rule.metric)
                if value is not None and rule.applies(value):
                    alerts.append(rule.build(employee_id, value, reading.timestamp))

        if alerts:
            counts = Counter(f"{a.type.value}/{a.severity.value}" for a in alerts)
            self.logger.info(
                "vital_alerts_generated",
                employee_id=employee_id,
                total=len(alerts),
                by_rule=dict(counts),
            )
        return alerts

    def evaluate_risk(
        self,
        employee_id: str,
        fatigue: FatigueAssessment,
        burnout: BurnoutAssessment,
        at: datetime,
    ) -> list[Alert]:
        """Map a fatigue/burnout assessment to burnout and fatigue alerts."""
        return [
            Alert(
                employee_id=employee_id,
                type=rule.alert_type,
                severity=rule.severity,
                message=rule.message.format(score=fatigue.score),
                suggestion=rule.suggestion,
                timestamp=at,
            )
            for rule in self.risk_rules
            if rule.applies(fatigue, burnout)
        ]
