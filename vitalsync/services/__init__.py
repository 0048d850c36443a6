"""
Engine services.

This package contains the ingestion use case and everything derived from
stored vitals: validation, alerting, risk scoring, metrics and reporting.
"""

from .alert_rules import AlertRuleEngine
from .devices import DeviceRegistry
from .metrics_aggregator import MetricsAggregator, MetricsSummary
from .reporting import DepartmentStats, HealthOverview, HealthReporting, PersonHealthReport
from .risk_scoring import RiskAssessment, RiskScoringEngine
from .sync_orchestrator import SyncOrchestrator
from .validation import SchemaValidator

__all__ = [
    "AlertRuleEngine",
    "DepartmentStats",
    "DeviceRegistry",
    "HealthOverview",
    "HealthReporting",
    "MetricsAggregator",
    "MetricsSummary",
    "PersonHealthReport",
    "RiskAssessment",
    "RiskScoringEngine",
    "SchemaValidator",
    "SyncOrchestrator",
]
