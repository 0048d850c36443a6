"""Tests for person reports, sync history and the fleet overview."""

from datetime import timedelta

import pytest

from vitalsync.domain.errors import NotFoundError
from vitalsync.domain.models import (
    AlertType,
    BurnoutRisk,
    HealthStatus,
    Person,
    Severity,
    SyncRecord,
    SyncStatus,
    VitalsReading,
)
from vitalsync.services.reporting import HealthReporting, build_snapshot


def test_snapshot_takes_latest_value_of_each_metric(now) -> None:
    readings = [
        VitalsReading(heart_rate=70, sleep_hours=6.5, timestamp=now - timedelta(hours=3)),
        VitalsReading(heart_rate=88, stress_level=40, timestamp=now - timedelta(hours=1)),
        VitalsReading(heart_rate=75, sleep_hours=7.0, timestamp=now - timedelta(hours=2)),
    ]

    snapshot = build_snapshot(readings)

    assert snapshot.heart_rate == 88
    assert snapshot.sleep_hours == 7.0
    assert snapshot.stress_level == 40
    assert snapshot.blood_oxygen is None


@pytest.mark.asyncio
async def test_exhausted_person_report(store, clock, now) -> None:
    await store.insert_readings(
        "emp-002",
        [
            VitalsReading(
                sleep_hours=4.5, sleep_quality=30, stress_level=85, heart_rate=102, steps=1800,
                timestamp=now - timedelta(hours=1),
            )
        ],
    )

    report = await HealthReporting(store, clock=clock).assess_person("emp-002", 7)

    assert report.name == "Marcus Johnson"
    assert report.fatigue.score == 90
    assert report.burnout.risk == BurnoutRisk.CRITICAL
    assert report.burnout.score == 87.5
    assert report.status == HealthStatus.CRITICAL
    assert [(a.type, a.severity) for a in report.alerts] == [
        (AlertType.BURNOUT, Severity.CRITICAL),
        (AlertType.FATIGUE, Severity.WARNING),
    ]
    assert report.alerts[0].timestamp == now
    assert report.generated_at == now


@pytest.mark.asyncio
async def test_report_is_none_without_recent_readings(store, clock, make_reading, now) -> None:
    await store.insert_readings("emp-001", [make_reading(timestamp=now - timedelta(days=10))])

    assert await HealthReporting(store, clock=clock).assess_person("emp-001", 7) is None


@pytest.mark.asyncio
async def test_report_for_unknown_person(store, clock) -> None:
    with pytest.raises(NotFoundError):
        await HealthReporting(store, clock=clock).assess_person("emp-404", 7)


@pytest.mark.asyncio
async def test_report_serializes_with_camel_case(memory_store, clock, make_reading) -> None:
    await memory_store.insert_readings("emp-001", [make_reading()])

    report = await HealthReporting(memory_store, clock=clock).assess_person("emp-001", 7)
    data = report.model_dump(by_alias=True, mode="json")

    assert data["employeeId"] == "emp-001"
    assert data["watchConnected"] is False
    assert set(data["snapshot"]) >= {"heartRate", "bloodOxygen", "sleepHours", "stressLevel"}
    assert isinstance(data["fatigue"]["factors"], list)


@pytest.mark.asyncio
async def test_sync_history_window(store, clock, now) -> None:
    recent = SyncRecord(
        employee_id="emp-001", synced_at=now - timedelta(days=1), duration_ms=12,
        status=SyncStatus.SUCCESS, records_count=4,
    )
    old = SyncRecord(
        employee_id="emp-001", synced_at=now - timedelta(days=20), duration_ms=10,
        status=SyncStatus.SUCCESS, records_count=2,
    )
    await store.insert_sync_record(recent)
    await store.insert_sync_record(old)

    reporting = HealthReporting(store, clock=clock)

    assert await reporting.sync_history("emp-001", 7) == [recent]
    assert await reporting.sync_history("emp-001", 30) == [recent, old]
    with pytest.raises(NotFoundError):
        await reporting.sync_history("emp-404", 7)


@pytest.mark.asyncio
async def test_overview_counts(store, clock, now, make_reading) -> None:
    await store.insert_readings(
        "emp-002",
        [
            VitalsReading(
                sleep_hours=4.5, sleep_quality=30, stress_level=85, heart_rate=102, steps=1800,
                timestamp=now - timedelta(hours=1),
            )
        ],
    )
    await store.insert_readings("emp-001", [make_reading()])
    await store.update_sync_state("emp-001", now)

    overview = await HealthReporting(store, clock=clock).overview(7)

    assert overview.total_people == 3
    assert overview.connected_watches == 1
    assert overview.status.critical == 1
    assert overview.status.healthy + overview.status.warning == 2
    assert overview.burnout_risk.critical == 1
    assert sum(overview.burnout_risk.model_dump().values()) == 3
    assert overview.alerts.total == 0


@pytest.mark.asyncio
async def test_acknowledge_alert(store, clock, now) -> None:
    reporting = HealthReporting(store, clock=clock)
    alerts = reporting.rule_engine.evaluate(
        "emp-002", [VitalsReading(heart_rate=130, timestamp=now - timedelta(hours=1))]
    )
    await store.insert_alerts(alerts)

    acknowledged = await reporting.acknowledge_alert(alerts[0].id)

    assert acknowledged.acknowledged is True
    assert acknowledged.acknowledged_at == now
    assert (await reporting.alerts("emp-002"))[0].acknowledged is True
    assert (await reporting.overview(7)).alerts.acknowledged == 1
    with pytest.raises(NotFoundError, match="Alert not found"):
        await reporting.acknowledge_alert("missing")
    with pytest.raises(NotFoundError):
        await reporting.alerts("emp-404")


@pytest.mark.asyncio
async def test_department_stats(store, clock, now) -> None:
    await store.add_person(Person(id="emp-004", name="Dana Ortiz", department="Sales", watch_connected=True))
    await store.add_person(Person(id="emp-005", name="Lee Park"))
    await store.insert_readings(
        "emp-002",
        [
            VitalsReading(
                sleep_hours=4.5, sleep_quality=30, stress_level=85, heart_rate=102, steps=1800,
                timestamp=now - timedelta(hours=1),
            )
        ],
    )
    await store.insert_readings(
        "emp-004",
        [
            VitalsReading(
                sleep_hours=8.0, sleep_quality=90, stress_level=20, heart_rate=71, steps=9000,
                timestamp=now - timedelta(hours=2),
            )
        ],
    )

    reporting = HealthReporting(store, clock=clock)
    stats = await reporting.department_stats(7)

    assert [d.name for d in stats] == ["Design", "Engineering", "Sales"]
    sales = stats[2]
    assert sales.total_people == 2
    assert sales.connected_watches == 1
    assert sales.risk_levels.model_dump() == {"low": 1, "moderate": 0, "high": 0, "critical": 1}
    assert sales.avg_heart_rate == 87
    assert sales.avg_stress == 53

    design = stats[0]
    assert design.total_people == 1
    assert sum(design.risk_levels.model_dump().values()) == 0
    assert design.avg_heart_rate is None
    assert (await reporting.overview(7)).departments == 3


@pytest.mark.asyncio
async def test_alerts_filtered_by_severity_and_state(store, clock, now) -> None:
    reporting = HealthReporting(store, clock=clock)
    alerts = reporting.rule_engine.evaluate(
        "emp-002",
        [VitalsReading(heart_rate=130, stress_level=70, timestamp=now - timedelta(hours=1))],
    )
    await store.insert_alerts(alerts)
    critical = next(a for a in alerts if a.severity == Severity.CRITICAL)
    await reporting.acknowledge_alert(critical.id)

    assert [a.type for a in await reporting.alerts(severity=Severity.WARNING)] == [AlertType.STRESS]
    assert [a.id for a in await reporting.alerts("emp-002", acknowledged=True)] == [critical.id]
    assert await reporting.alerts("emp-001", severity=Severity.CRITICAL) == []
