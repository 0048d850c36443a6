"""
End-to-end demo of the ingestion pipeline on an in-memory store.

This script walks through:
1. Configuration loading
2. Device registration
3. A normal sync and a sync that trips critical thresholds
4. Rejected payloads (validation and unknown person)
5. Metrics, a health report and the fleet overview

Run with: uv run python demo_sync.py
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitalsync.adapters import InMemoryVitalsStore
from vitalsync.bootstrap import build_services
from vitalsync.config import get_config
from vitalsync.domain.models import Person
from vitalsync.entrypoints import Entrypoints

console = Console()

PEOPLE = [
    Person(id="emp-001", name="Sarah Chen", department="Engineering", role="Senior Developer"),
    Person(id="emp-002", name="Marcus Johnson", department="Sales", role="Account Executive"),
    Person(id="emp-003", name="Priya Patel", department="Design", role="UX Designer"),
]


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def normal_payload(now: datetime) -> dict[str, Any]:
    return {
        "employeeId": "emp-001",
        "deviceId": "watch-001",
        "readings": [
            {
                "heartRate": 72,
                "bloodOxygen": 98,
                "steps": 8500,
                "sleepHours": 7.5,
                "sleepQuality": 85,
                "stressLevel": 35,
                "temperature": 98.6,
                "caloriesBurned": 2100,
                "timestamp": _iso(now - timedelta(hours=2)),
            },
            {
                "heartRate": 78,
                "bloodOxygen": 97,
                "steps": 9200,
                "stressLevel": 40,
                "temperature": 98.4,
                "timestamp": _iso(now - timedelta(hours=1)),
            },
        ],
        "syncedAt": _iso(now),
    }


def critical_payload(now: datetime) -> dict[str, Any]:
    return {
        "employeeId": "emp-002",
        "deviceId": "watch-002",
        "readings": [
            {
                "heartRate": 125,
                "bloodOxygen": 88,
                "sleepHours": 4.5,
                "sleepQuality": 30,
                "steps": 1800,
                "stressLevel": 85,
                "temperature": 102.5,
                "timestamp": _iso(now - timedelta(minutes=30)),
            }
        ],
        "syncedAt": _iso(now),
    }


def show(title: str, response: dict[str, Any]) -> None:
    if response["success"]:
        console.print(f"✅ {title}", style="green")
    else:
        error = response["error"]
        console.print(f"❌ {title}: [{error['code']}] {error['message']}", style="red")


async def demo_ingestion(api: Entrypoints, now: datetime) -> None:
    console.print(Panel("⌚ Device Registration & Sync", style="blue"))

    show(
        "Registered watch for emp-001",
        await api.register_device(
            {
                "deviceId": "watch-001",
                "employeeId": "emp-001",
                "deviceName": "Apple Watch Series 9",
                "deviceModel": "A2980",
                "batteryLevel": 85,
            }
        ),
    )

    response = await api.ingest(normal_payload(now))
    show(f"Normal sync ({response.get('data', {}).get('recordsCreated')} readings)", response)

    response = await api.ingest(critical_payload(now))
    show("Critical sync", response)

    invalid = normal_payload(now)
    invalid["readings"][0]["heartRate"] = 250
    show("Out-of-range heart rate", await api.ingest(invalid))

    unknown = normal_payload(now)
    unknown["employeeId"] = "emp-999"
    show("Unknown employee", await api.ingest(unknown))


async def demo_reports(api: Entrypoints) -> None:
    console.print(Panel("📊 Metrics & Health Reports", style="blue"))

    metrics = (await api.metrics({"employeeId": "emp-001"}))["data"]
    table = Table(title="emp-001 metrics (7 days)")
    table.add_column("Metric", style="cyan")
    table.add_column("Summary", style="green")
    for key in ("heartRate", "bloodOxygen", "steps", "sleep", "stress"):
        table.add_row(key, str(metrics[key]))
    console.print(table)

    report = (await api.health_report({"employeeId": "emp-002"}))["data"]
    console.print(f"\n🏥 Health report for {report['name']}:")
    console.print(f"  Status: {report['status'].upper()}")
    console.print(f"  Fatigue: {report['fatigue']['score']}/100 ({report['fatigue']['trend']})")
    console.print(f"  Burnout risk: {report['burnout']['risk']}")
    for suggestion in report["suggestions"]:
        console.print(f"  💡 {suggestion}", style="yellow")

    history = (await api.sync_history({"employeeId": "emp-002"}))["data"]
    table = Table(title="emp-002 sync history")
    table.add_column("Synced at", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Records", style="green")
    for record in history:
        table.add_row(record["syncedAt"], record["status"], str(record["recordsCount"]))
    console.print(table)


async def demo_overview(api: Entrypoints) -> None:
    console.print(Panel("🏢 Fleet Overview", style="blue"))

    data = (await api.overview())["data"]
    table = Table(title="Overview")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("People", str(data["totalPeople"]))
    table.add_row("Connected watches", str(data["connectedWatches"]))
    table.add_row("Critical", str(data["status"]["critical"]))
    table.add_row("Warning", str(data["status"]["warning"]))
    table.add_row("Alerts", str(data["alerts"]["total"]))
    table.add_row("Critical alerts", str(data["alerts"]["critical"]))
    console.print(table)


async def main() -> None:
    console.print(Panel("🩺 VitalSync - Pipeline Demo", style="bold blue"))

    config = get_config()
    console.print(
        f"Environment: {config.environment}, deadline: {config.sync.deadline_seconds}s", style="dim"
    )

    api = Entrypoints(build_services(config, store=InMemoryVitalsStore(PEOPLE)))
    now = datetime.now(UTC).replace(microsecond=0)

    await demo_ingestion(api, now)
    await demo_reports(api)
    await demo_overview(api)


if __name__ == "__main__":
    asyncio.run(main())
