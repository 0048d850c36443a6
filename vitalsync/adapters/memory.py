"""
In-memory store backend for tests and demos.

State lives on the instance, never at module level. Transactions are
serialized with an asyncio lock and rolled back by restoring a snapshot of
every table taken on entry.
"""

import asyncio
import contextvars
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import structlog

from vitalsync.domain.errors import NotFoundError
from vitalsync.domain.models import Alert, Person, Severity, SyncRecord, VitalsReading

logger = structlog.get_logger(__name__)


class InMemoryVitalsStore:
    """Dict-backed implementation of the VitalsStore protocol."""

    def __init__(self, people: Sequence[Person] = ()) -> None:
        self._people: dict[str, Person] = {p.id: p for p in people}
        self._readings: dict[str, list[VitalsReading]] = {}
        self._sync_records: list[SyncRecord] = []
        self._alerts: dict[str, Alert] = {}
        self._tx_lock = asyncio.Lock()
        self._in_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar(
            f"memory_store_tx_{id(self)}", default=False
        )
        self.logger = logger.bind(component="memory_store")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryVitalsStore"]:
        if self._in_transaction.get():
            yield self
            return

        async with self._tx_lock:
            snapshot = self._snapshot()
            token = self._in_transaction.set(True)
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                self.logger.info("transaction_rolled_back")
                raise
            finally:
                self._in_transaction.reset(token)

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        """Writes outside a transaction wait for any open one to finish."""
        if self._in_transaction.get():
            yield
            return
        async with self._tx_lock:
            yield

    def _snapshot(self) -> tuple:
        return (
            dict(self._people),
            {k: list(v) for k, v in self._readings.items()},
            list(self._sync_records),
            dict(self._alerts),
        )

    def _restore(self, snapshot: tuple) -> None:
        people, readings, sync_records, alerts = snapshot
        self._people = people
        self._readings = readings
        self._sync_records = sync_records
        self._alerts = alerts

    # ── People ────────────────────────────────────────────────────────────────

    async def find_person(self, person_id: str) -> Person | None:
        return self._people.get(person_id)

    async def add_person(self, person: Person) -> None:
        async with self._write():
            self._people[person.id] = person

    async def list_people(self) -> list[Person]:
        return list(self._people.values())

    async def update_sync_state(self, person_id: str, timestamp: datetime) -> None:
        async with self._write():
            person = self._require(person_id)
            self._people[person_id] = person.model_copy(
                update={"last_sync": timestamp, "watch_connected": True}
            )

    async def set_connected(self, person_id: str, connected: bool) -> None:
        async with self._write():
            person = self._require(person_id)
            self._people[person_id] = person.model_copy(update={"watch_connected": connected})

    def _require(self, person_id: str) -> Person:
        person = self._people.get(person_id)
        if person is None:
            raise NotFoundError(f"Employee not found: {person_id}")
        return person

    # ── Readings ──────────────────────────────────────────────────────────────

    async def insert_readings(self, person_id: str, readings: Sequence[VitalsReading]) -> int:
        async with self._write():
            self._readings.setdefault(person_id, []).extend(readings)
        return len(readings)

    async def query_readings(self, person_id: str, since: datetime) -> list[VitalsReading]:
        rows = [r for r in self._readings.get(person_id, []) if r.timestamp >= since]
        return sorted(rows, key=lambda r: r.timestamp)

    # ── Sync records ──────────────────────────────────────────────────────────

    async def insert_sync_record(self, record: SyncRecord) -> None:
        async with self._write():
            self._sync_records.append(record)

    async def query_sync_records(self, person_id: str, since: datetime) -> list[SyncRecord]:
        rows = [
            r for r in self._sync_records if r.employee_id == person_id and r.synced_at >= since
        ]
        return sorted(rows, key=lambda r: r.synced_at, reverse=True)

    # ── Alerts ────────────────────────────────────────────────────────────────

    async def insert_alerts(self, alerts: Sequence[Alert]) -> None:
        async with self._write():
            for alert in alerts:
                self._alerts[alert.id] = alert

    async def list_alerts(
        self,
        person_id: str | None = None,
        severity: Severity | None = None,
        acknowledged: bool | None = None,
    ) -> list[Alert]:
        alerts = [
            a
            for a in self._alerts.values()
            if (person_id is None or a.employee_id == person_id)
            and (severity is None or a.severity == severity)
            and (acknowledged is None or a.acknowledged == acknowledged)
        ]
        return sorted(alerts, key=lambda a: a.timestamp, reverse=True)

    async def acknowledge_alert(self, alert_id: str, at: datetime) -> Alert | None:
        async with self._write():
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None
            updated = alert.model_copy(update={"acknowledged": True, "acknowledged_at": at})
            self._alerts[alert_id] = updated
            return updated
