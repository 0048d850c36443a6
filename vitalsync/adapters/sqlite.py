"""
SQLite store backend.

Provides the VitalsStore protocol over a single ``sqlite3`` connection:
  - people        : monitored persons with connectivity and last sync
  - readings      : one row per VitalsReading, absent metrics stored as NULL
  - sync_records  : append-only audit of sync attempts
  - alerts        : derived alerts with acknowledgement state

Blocking driver calls run in a worker thread. A threading lock guards the
connection; an asyncio lock serializes transactions, and writes issued outside
a transaction wait for it so they are never swept into another task's rollback.
Driver errors surface as StoreError.
"""

from __future__ import annotations

import asyncio
import contextvars
import sqlite3
import threading
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog

from vitalsync.domain.errors import NotFoundError, StoreError
from vitalsync.domain.models import (
    Alert,
    AlertType,
    Person,
    Severity,
    SyncRecord,
    SyncStatus,
    VitalsReading,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_READING_COLUMNS = (
    "heart_rate",
    "blood_oxygen",
    "steps",
    "sleep_hours",
    "sleep_quality",
    "stress_level",
    "temperature",
    "calories_burned",
)


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS people (
    id               TEXT PRIMARY KEY,
    name             TEXT NOT NULL,
    department       TEXT NOT NULL DEFAULT '',
    role             TEXT NOT NULL DEFAULT '',
    watch_connected  INTEGER NOT NULL DEFAULT 0,
    last_sync        TEXT
);

CREATE TABLE IF NOT EXISTS readings (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    person_id        TEXT NOT NULL,
    timestamp        TEXT NOT NULL,
    heart_rate       INTEGER,
    blood_oxygen     INTEGER,
    steps            INTEGER,
    sleep_hours      REAL,
    sleep_quality    INTEGER,
    stress_level     INTEGER,
    temperature      REAL,
    calories_burned  INTEGER
);

CREATE TABLE IF NOT EXISTS sync_records (
    id               TEXT PRIMARY KEY,
    employee_id      TEXT NOT NULL,
    synced_at        TEXT NOT NULL,
    duration_ms      INTEGER NOT NULL,
    status           TEXT NOT NULL,
    records_count    INTEGER NOT NULL DEFAULT 0,
    error_message    TEXT
);

CREATE TABLE IF NOT EXISTS alerts (
    id               TEXT PRIMARY KEY,
    employee_id      TEXT NOT NULL,
    type             TEXT NOT NULL,
    severity         TEXT NOT NULL,
    message          TEXT NOT NULL,
    suggestion       TEXT NOT NULL,
    timestamp        TEXT NOT NULL,
    acknowledged     INTEGER NOT NULL DEFAULT 0,
    acknowledged_at  TEXT
);

CREATE INDEX IF NOT EXISTS idx_readings_person_ts ON readings (person_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_sync_records_emp_ts ON sync_records (employee_id, synced_at);
CREATE INDEX IF NOT EXISTS idx_alerts_emp_ts ON alerts (employee_id, timestamp);
"""


def _to_db(value: datetime | None) -> str | None:
    # Fixed-width format keeps lexical order equal to chronological order.
    if value is None:
        return None
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _from_db(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _rollback_if_open(conn: sqlite3.Connection) -> bool:
    if not conn.in_transaction:
        return False
    conn.execute("ROLLBACK")
    return True


class SQLiteVitalsStore:
    """SQLite-backed implementation of the VitalsStore protocol."""

    def __init__(self, path: str = ":memory:") -> None:
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn_lock = threading.Lock()
        self._tx_lock = asyncio.Lock()
        self._in_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar(
            f"sqlite_store_tx_{id(self)}", default=False
        )
        self.logger = logger.bind(component="sqlite_store", path=path)
        with self._conn_lock:
            self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        with self._conn_lock:
            self._conn.close()

    # ── Plumbing ──────────────────────────────────────────────────────────────

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        def locked() -> T:
            with self._conn_lock:
                return fn(self._conn)

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            self.logger.error("sqlite_operation_failed", error=str(e))
            raise StoreError(f"SQLite operation failed: {e}") from e

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        if self._in_transaction.get():
            yield
            return
        async with self._tx_lock:
            yield

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteVitalsStore]:
        if self._in_transaction.get():
            yield self
            return

        async with self._tx_lock:
            token = self._in_transaction.set(True)
            try:
                await self._settle(lambda c: c.execute("BEGIN"))
                yield self
                await self._settle(lambda c: c.execute("COMMIT"))
            except BaseException:
                if await self._settle(_rollback_if_open):
                    self.logger.info("transaction_rolled_back")
                raise
            finally:
                self._in_transaction.reset(token)

    async def _settle(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """
        Run a transaction-control statement to completion.

        A cancelled caller still waits for the worker thread, then re-raises
        the cancellation, so the connection state always matches what the
        statement did.
        """
        task = asyncio.ensure_future(self._run(fn))
        cancelled = False
        while not task.done():
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.cancelled():
                    raise
                cancelled = True
        if cancelled:
            raise asyncio.CancelledError
        return task.result()

    # ── People ────────────────────────────────────────────────────────────────

    async def find_person(self, person_id: str) -> Person | None:
        row = await self._run(
            lambda c: c.execute("SELECT * FROM people WHERE id = ?", (person_id,)).fetchone()
        )
        return self._person_from_row(row) if row else None

    async def add_person(self, person: Person) -> None:
        params = (
            person.id,
            person.name,
            person.department,
            person.role,
            int(person.watch_connected),
            _to_db(person.last_sync),
        )
        async with self._write():
            await self._run(
                lambda c: c.execute(
                    """INSERT OR REPLACE INTO people
                       (id, name, department, role, watch_connected, last_sync)
                       VALUES (?,?,?,?,?,?)""",
                    params,
                )
            )

    async def list_people(self) -> list[Person]:
        rows = await self._run(lambda c: c.execute("SELECT * FROM people ORDER BY id").fetchall())
        return [self._person_from_row(r) for r in rows]

    async def update_sync_state(self, person_id: str, timestamp: datetime) -> None:
        await self._update_person(
            person_id,
            "UPDATE people SET last_sync = ?, watch_connected = 1 WHERE id = ?",
            (_to_db(timestamp), person_id),
        )

    async def set_connected(self, person_id: str, connected: bool) -> None:
        await self._update_person(
            person_id,
            "UPDATE people SET watch_connected = ? WHERE id = ?",
            (int(connected), person_id),
        )

    async def _update_person(self, person_id: str, sql: str, params: tuple[Any, ...]) -> None:
        async with self._write():
            cursor = await self._run(lambda c: c.execute(sql, params))
        if cursor.rowcount == 0:
            raise NotFoundError(f"Employee not found: {person_id}")

    @staticmethod
    def _person_from_row(row: sqlite3.Row) -> Person:
        return Person(
            id=row["id"],
            name=row["name"],
            department=row["department"],
            role=row["role"],
            watch_connected=bool(row["watch_connected"]),
            last_sync=_from_db(row["last_sync"]),
        )

    # ── Readings ──────────────────────────────────────────────────────────────

    async def insert_readings(self, person_id: str, readings: Sequence[VitalsReading]) -> int:
        if not readings:
            return 0
        rows = [
            (person_id, _to_db(r.timestamp), *(getattr(r, col) for col in _READING_COLUMNS))
            for r in readings
        ]
        placeholders = ",".join("?" * (len(_READING_COLUMNS) + 2))
        sql = (
            f"INSERT INTO readings (person_id, timestamp, {', '.join(_READING_COLUMNS)}) "
            f"VALUES ({placeholders})"
        )
        async with self._write():
            cursor = await self._run(lambda c: c.executemany(sql, rows))
        return cursor.rowcount

    async def query_readings(self, person_id: str, since: datetime) -> list[VitalsReading]:
        rows = await self._run(
            lambda c: c.execute(
                """SELECT * FROM readings
                   WHERE person_id = ? AND timestamp >= ?
                   ORDER BY timestamp ASC, id ASC""",
                (person_id, _to_db(since)),
            ).fetchall()
        )
        return [
            VitalsReading(
                timestamp=_from_db(r["timestamp"]),
                **{col: r[col] for col in _READING_COLUMNS if r[col] is not None},
            )
            for r in rows
        ]

    # ── Sync records ──────────────────────────────────────────────────────────

    async def insert_sync_record(self, record: SyncRecord) -> None:
        params = (
            record.id,
            record.employee_id,
            _to_db(record.synced_at),
            record.duration_ms,
            record.status.value,
            record.records_count,
            record.error_message,
        )
        async with self._write():
            await self._run(
                lambda c: c.execute(
                    """INSERT INTO sync_records
                       (id, employee_id, synced_at, duration_ms, status,
                        records_count, error_message)
                       VALUES (?,?,?,?,?,?,?)""",
                    params,
                )
            )

    async def query_sync_records(self, person_id: str, since: datetime) -> list[SyncRecord]:
        rows = await self._run(
            lambda c: c.execute(
                """SELECT * FROM sync_records
                   WHERE employee_id = ? AND synced_at >= ?
                   ORDER BY synced_at DESC""",
                (person_id, _to_db(since)),
            ).fetchall()
        )
        return [
            SyncRecord(
                id=r["id"],
                employee_id=r["employee_id"],
                synced_at=_from_db(r["synced_at"]),
                duration_ms=r["duration_ms"],
                status=SyncStatus(r["status"]),
                records_count=r["records_count"],
                error_message=r["error_message"],
            )
            for r in rows
        ]

    # ── Alerts ────────────────────────────────────────────────────────────────

    async def insert_alerts(self, alerts: Sequence[Alert]) -> None:
        if not alerts:
            return
        rows = [
            (
                a.id,
                a.employee_id,
                a.type.value,
                a.severity.value,
                a.message,
                a.suggestion,
                _to_db(a.timestamp),
                int(a.acknowledged),
                _to_db(a.acknowledged_at),
            )
            for a in alerts
        ]
        async with self._write():
            await self._run(
                lambda c: c.executemany(
                    """INSERT OR IGNORE INTO alerts
                       (id, employee_id, type, severity, message, suggestion,
                        timestamp, acknowledged, acknowledged_at)
                       VALUES (?,?,?,?,?,?,?,?,?)""",
                    rows,
                )
            )

    async def list_alerts(
        self,
        person_id: str | None = None,
        severity: Severity | None = None,
        acknowledged: bool | None = None,
    ) -> list[Alert]:
        clauses: list[str] = []
        params: list[Any] = []
        if person_id is not None:
            clauses.append("employee_id = ?")
            params.append(person_id)
        if severity is not None:
            clauses.append("severity = ?")
            params.append(severity.value)
        if acknowledged is not None:
            clauses.append("acknowledged = ?")
            params.append(int(acknowledged))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self._run(
            lambda c: c.execute(
                f"SELECT * FROM alerts {where} ORDER BY timestamp DESC", params
            ).fetchall()
        )
        return [self._alert_from_row(r) for r in rows]

    async def acknowledge_alert(self, alert_id: str, at: datetime) -> Alert | None:
        async with self._write():
            await self._run(
                lambda c: c.execute(
                    "UPDATE alerts SET acknowledged = 1, acknowledged_at = ? WHERE id = ?",
                    (_to_db(at), alert_id),
                )
            )
            row = await self._run(
                lambda c: c.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
            )
        return self._alert_from_row(row) if row else None

    @staticmethod
    def _alert_from_row(row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            employee_id=row["employee_id"],
            type=AlertType(row["type"]),
            severity=Severity(row["severity"]),
            message=row["message"],
            suggestion=row["suggestion"],
            timestamp=_from_db(row["timestamp"]),
            acknowledged=bool(row["acknowledged"]),
            acknowledged_at=_from_db(row["acknowledged_at"]),
        )
