"""
Store adapter contract consumed by the engine.

Backends satisfy the protocol structurally and share no base class. All
methods are async; backends that wrap blocking drivers push the work onto a
thread.
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol

from vitalsync.domain.models import Alert, Person, Severity, SyncRecord, VitalsReading


class VitalsStore(Protocol):
    """Persistence boundary for people, readings, sync records and alerts."""

    def transaction(self) -> AbstractAsyncContextManager["VitalsStore"]:
        """Group writes so they commit together or not at all."""
        ...

    async def find_person(self, person_id: str) -> Person | None: ...

    async def add_person(self, person: Person) -> None: ...

    async def list_people(self) -> list[Person]: ...

    async def insert_readings(self, person_id: str, readings: Sequence[VitalsReading]) -> int:
        """Batch insert readings, returning how many were written."""
        ...

    async def update_sync_state(self, person_id: str, timestamp: datetime) -> None:
        """Record the person's last sync time and mark their watch connected."""
        ...

    async def set_connected(self, person_id: str, connected: bool) -> None: ...

    async def insert_sync_record(self, record: SyncRecord) -> None: ...

    async def query_sync_records(self, person_id: str, since: datetime) -> list[SyncRecord]:
        """Sync records at or after ``since``, newest first."""
        ...

    async def insert_alerts(self, alerts: Sequence[Alert]) -> None: ...

    async def list_alerts(
        self,
        person_id: str | None = None,
        severity: Severity | None = None,
        acknowledged: bool | None = None,
    ) -> list[Alert]:
        """Alerts newest first; each filter left as ``None`` matches everything."""
        ...

    async def acknowledge_alert(self, alert_id: str, at: datetime) -> Alert | None: ...

    async def query_readings(self, person_id: str, since: datetime) -> list[VitalsReading]:
        """Readings with ``timestamp >= since``, oldest first."""
        ...
