"""
Health reporting built on stored history.

Reports are derived fresh on every request from readings in a window; nothing
here writes to the store.
"""

from collections import Counter, defaultdict
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

import structlog

from vitalsync.adapters.base import VitalsStore
from vitalsync.domain.errors import NotFoundError
from vitalsync.domain.models import (
    Alert,
    BurnoutAssessment,
    BurnoutRisk,
    CamelModel,
    FatigueAssessment,
    HealthStatus,
    Person,
    Severity,
    SyncRecord,
    VitalsReading,
    VitalsSnapshot,
    utc_now,
)
from vitalsync.services.alert_rules import AlertRuleEngine
from vitalsync.services.risk_scoring import RiskAssessment, RiskScoringEngine, round_half_up

logger = structlog.get_logger(__name__)


class PersonHealthReport(CamelModel):
    employee_id: str
    name: str
    watch_connected: bool
    last_sync: datetime | None
    snapshot: VitalsSnapshot
    fatigue: FatigueAssessment
    burnout: BurnoutAssessment
    status: HealthStatus
    suggestions: list[str]
    alerts: list[Alert]
    generated_at: datetime


class StatusCounts(CamelModel):
    healthy: int = 0
    warning: int = 0
    critical: int = 0


class RiskCounts(CamelModel):
    low: int = 0
    moderate: int = 0
    high: int = 0
    critical: int = 0


class AlertCounts(CamelModel):
    total: int = 0
    critical: int = 0
    warning: int = 0
    acknowledged: int = 0


class DepartmentStats(CamelModel):
    name: str
    total_people: int
    connected_watches: int
    risk_levels: RiskCounts
    avg_heart_rate: int | None = None
    avg_stress: int | None = None


class HealthOverview(CamelModel):
    total_people: int
    connected_watches: int
    departments: int
    status: StatusCounts
    burnout_risk: RiskCounts
    alerts: AlertCounts
    generated_at: datetime


def build_snapshot(readings: Sequence[VitalsReading]) -> VitalsSnapshot:
    """Latest value of each metric across ``readings`` (any order)."""
    latest: dict[str, float] = {}
    for reading in sorted(readings, key=lambda r: r.timestamp, reverse=True):
        for metric in VitalsSnapshot.model_fields:
            value = getattr(reading, metric)
            if value is not None and metric not in latest:
                latest[metric] = value
    return VitalsSnapshot(**latest)


def _average(values: Sequence[int]) -> int | None:
    return round_half_up(sum(values) / len(values)) if values else None


class HealthReporting:
    """Per-person health reports, sync history, alerts, a fleet overview and department stats."""

    def __init__(
        self,
        store: VitalsStore,
        scoring: RiskScoringEngine | None = None,
        rule_engine: AlertRuleEngine | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.scoring = scoring or RiskScoringEngine()
        self.rule_engine = rule_engine or AlertRuleEngine()
        self.clock = clock
        self.logger = logger.bind(component="health_reporting")

    async def _require_person(self, employee_id: str) -> Person:
        person = await self.store.find_person(employee_id)
        if person is None:
            raise NotFoundError(f"Employee not found: {employee_id}")
        return person

    async def _window_readings(
        self, employee_id: str, window_days: int, now: datetime
    ) -> list[VitalsReading]:
        since = now - timedelta(days=window_days)
        readings = await self.store.query_readings(employee_id, since)
        return [r for r in readings if r.timestamp <= now]

    async def assess_person(self, employee_id: str, window_days: int) -> PersonHealthReport | None:
        """Score a person from their readings in the window; ``None`` without data."""
        person = await self._require_person(employee_id)
        now = self.clock()
        readings = await self._window_readings(employee_id, window_days, now)
        if not readings:
            self.logger.info("no_readings_in_window", employee_id=employee_id)
            return None

        snapshot = build_snapshot(readings)
        stress_history = [r.stress_level for r in readings if r.stress_level is not None]
        assessment = self.scoring.assess(snapshot, stress_history)
        alerts = self.rule_engine.evaluate_risk(
            employee_id, assessment.fatigue, assessment.burnout, now
        )

        self.logger.info(
            "person_assessed",
            employee_id=employee_id,
            status=assessment.status.value,
            fatigue_score=assessment.fatigue.score,
            burnout_risk=assessment.burnout.risk.value,
            risk_alerts=len(alerts),
        )
        return PersonHealthReport(
            employee_id=person.id,
            name=person.name,
            watch_connected=person.watch_connected,
            last_sync=person.last_sync,
            snapshot=snapshot,
            fatigue=assessment.fatigue,
            burnout=assessment.burnout,
            status=assessment.status,
            suggestions=assessment.suggestions,
            alerts=alerts,
            generated_at=now,
        )

    async def sync_history(self, employee_id: str, days: int) -> list[SyncRecord]:
        """Sync records from the last ``days`` days, newest first."""
        await self._require_person(employee_id)
        since = self.clock() - timedelta(days=days)
        return await self.store.query_sync_records(employee_id, since)

    async def alerts(
        self,
        employee_id: str | None = None,
        severity: Severity | None = None,
        acknowledged: bool | None = None,
    ) -> list[Alert]:
        """Stored alerts, newest first, optionally narrowed by person, severity and state."""
        if employee_id is not None:
            await self._require_person(employee_id)
        return await self.store.list_alerts(employee_id, severity=severity, acknowledged=acknowledged)

    async def acknowledge_alert(self, alert_id: str) -> Alert:
        alert = await self.store.acknowledge_alert(alert_id, self.clock())
        if alert is None:
            raise NotFoundError(f"Alert not found: {alert_id}")
        self.logger.info("alert_acknowledged", alert_id=alert_id, employee_id=alert.employee_id)
        return alert

    async def _assess_window(
        self, person: Person, window_days: int, now: datetime
    ) -> tuple[VitalsSnapshot, RiskAssessment] | None:
        readings = await self._window_readings(person.id, window_days, now)
        if not readings:
            return None
        snapshot = build_snapshot(readings)
        stress_history = [r.stress_level for r in readings if r.stress_level is not None]
        return snapshot, self.scoring.assess(snapshot, stress_history)

    async def overview(self, window_days: int) -> HealthOverview:
        """Fleet-wide counts. People without recent data count as healthy, low risk."""
        now = self.clock()
        people = await self.store.list_people()

        status_counts: Counter[str] = Counter()
        risk_counts: Counter[str] = Counter()
        for person in people:
            assessed = await self._assess_window(person, window_days, now)
            status, risk = HealthStatus.HEALTHY, BurnoutRisk.LOW
            if assessed is not None:
                _, assessment = assessed
                status, risk = assessment.status, assessment.burnout.risk
            status_counts[status.value] += 1
            risk_counts[risk.value] += 1

        alerts = await self.store.list_alerts()
        alert_counts = AlertCounts(
            total=len(alerts),
            critical=sum(1 for a in alerts if a.severity == Severity.CRITICAL),
            warning=sum(1 for a in alerts if a.severity == Severity.WARNING),
            acknowledged=sum(1 for a in alerts if a.acknowledged),
        )

        overview = HealthOverview(
            total_people=len(people),
            connected_watches=sum(1 for p in people if p.watch_connected),
            departments=len({p.department for p in people if p.department}),
            status=StatusCounts(**status_counts),
            burnout_risk=RiskCounts(**risk_counts),
            alerts=alert_counts,
            generated_at=now,
        )
        self.logger.info(
            "overview_generated",
            total_people=overview.total_people,
            critical=overview.status.critical,
            alerts=alert_counts.total,
        )
        return overview

    async def department_stats(self, window_days: int) -> list[DepartmentStats]:
        """
        Per-department headcount, connected watches and burnout risk levels.

        Only people with readings in the window contribute to the risk levels
        and to the heart-rate and stress averages, which are taken over each
        person's latest values. People without a department are left out.
        Departments are sorted by name.
        """
        now = self.clock()
        members: dict[str, list[Person]] = defaultdict(list)
        for person in await self.store.list_people():
            if person.department:
                members[person.department].append(person)

        stats: list[DepartmentStats] = []
        for name in sorted(members):
            risk_counts: Counter[str] = Counter()
            heart_rates: list[int] = []
            stress_levels: list[int] = []
            for person in members[name]:
                assessed = await self._assess_window(person, window_days, now)
                if assessed is None:
                    continue
                snapshot, assessment = assessed
                risk_counts[assessment.burnout.risk.value] += 1
                if snapshot.heart_rate is not None:
                    heart_rates.append(snapshot.heart_rate)
                if snapshot.stress_level is not None:
                    stress_levels.append(snapshot.stress_level)

            stats.append(
                DepartmentStats(
                    name=name,
                    total_people=len(members[name]),
                    connected_watches=sum(1 for p in members[name] if p.watch_connected),
                    risk_levels=RiskCounts(**risk_counts),
                    avg_heart_rate=_average(heart_rates),
                    avg_stress=_average(stress_levels),
                )
            )

        self.logger.info("department_stats_generated", departments=len(stats))
        return stats
