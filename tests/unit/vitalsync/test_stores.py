"""
Tests for the store backends.

The contract tests run against both backends through the parametrized
``store`` fixture; SQLite-specific behavior is tested separately.
"""

import asyncio
from datetime import timedelta

import pytest

from vitalsync.adapters import InMemoryVitalsStore, SQLiteVitalsStore
from vitalsync.domain.errors import NotFoundError, StoreError
from vitalsync.domain.models import Alert, AlertType, Person, Severity, SyncRecord, SyncStatus


def _alert(employee_id: str, at, severity: Severity = Severity.WARNING) -> Alert:
    return Alert(
        employee_id=employee_id,
        type=AlertType.STRESS,
        severity=severity,
        message="Elevated stress levels: 70/100",
        suggestion="Try relaxation techniques or take a short walk.",
        timestamp=at,
    )


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_people_are_seeded_and_listed(self, store) -> None:
        people = await store.list_people()

        assert {p.id for p in people} == {"emp-001", "emp-002", "emp-003"}
        assert await store.find_person("emp-404") is None

    @pytest.mark.asyncio
    async def test_add_person_round_trips(self, store, now) -> None:
        person = Person(id="emp-010", name="Ana Lima", watch_connected=True, last_sync=now)

        await store.add_person(person)

        assert await store.find_person("emp-010") == person

    @pytest.mark.asyncio
    async def test_readings_round_trip_in_time_order(self, store, make_reading, now) -> None:
        late = make_reading(timestamp=now - timedelta(hours=1))
        early = make_reading(timestamp=now - timedelta(hours=5), sleep_hours=None)

        count = await store.insert_readings("emp-001", [late, early])

        assert count == 2
        assert await store.query_readings("emp-001", now - timedelta(days=1)) == [early, late]
        assert await store.query_readings("emp-001", now - timedelta(hours=2)) == [late]
        assert await store.query_readings("emp-002", now - timedelta(days=1)) == []

    @pytest.mark.asyncio
    async def test_update_sync_state_marks_connected(self, store, now) -> None:
        await store.update_sync_state("emp-002", now)

        person = await store.find_person("emp-002")
        assert person.watch_connected is True
        assert person.last_sync == now

        await store.set_connected("emp-002", False)
        person = await store.find_person("emp-002")
        assert person.watch_connected is False
        assert person.last_sync == now

    @pytest.mark.asyncio
    async def test_updates_for_unknown_person_raise(self, store, now) -> None:
        with pytest.raises(NotFoundError):
            await store.update_sync_state("emp-404", now)
        with pytest.raises(NotFoundError):
            await store.set_connected("emp-404", True)

    @pytest.mark.asyncio
    async def test_sync_records_newest_first(self, store, now) -> None:
        older = SyncRecord(
            employee_id="emp-001", synced_at=now - timedelta(days=2), duration_ms=5,
            status=SyncStatus.SUCCESS, records_count=3,
        )
        newer = SyncRecord(
            employee_id="emp-001", synced_at=now - timedelta(hours=1), duration_ms=9,
            status=SyncStatus.FAILED, error_message="Employee not found: emp-001",
        )
        stale = SyncRecord(
            employee_id="emp-001", synced_at=now - timedelta(days=9), duration_ms=1,
            status=SyncStatus.SUCCESS,
        )
        for record in (older, stale, newer):
            await store.insert_sync_record(record)

        assert await store.query_sync_records("emp-001", now - timedelta(days=7)) == [newer, older]

    @pytest.mark.asyncio
    async def test_alerts_list_and_acknowledge(self, store, now) -> None:
        first = _alert("emp-001", now - timedelta(hours=2))
        second = _alert("emp-002", now - timedelta(hours=1), Severity.CRITICAL)
        await store.insert_alerts([first, second])

        assert await store.list_alerts() == [second, first]
        assert await store.list_alerts("emp-001") == [first]

        acknowledged = await store.acknowledge_alert(first.id, now)

        assert acknowledged.acknowledged is True
        assert acknowledged.acknowledged_at == now
        assert (await store.list_alerts("emp-001"))[0].acknowledged is True
        assert await store.acknowledge_alert("missing", now) is None

    @pytest.mark.asyncio
    async def test_alerts_filter_by_severity_and_acknowledgement(self, store, now) -> None:
        warning = _alert("emp-001", now - timedelta(hours=3))
        critical = _alert("emp-001", now - timedelta(hours=2), Severity.CRITICAL)
        other = _alert("emp-002", now - timedelta(hours=1), Severity.CRITICAL)
        await store.insert_alerts([warning, critical, other])
        await store.acknowledge_alert(critical.id, now)

        assert [a.id for a in await store.list_alerts(severity=Severity.CRITICAL)] == [other.id, critical.id]
        assert [a.id for a in await store.list_alerts(acknowledged=True)] == [critical.id]
        assert [a.id for a in await store.list_alerts(acknowledged=False)] == [other.id, warning.id]
        assert await store.list_alerts("emp-001", severity=Severity.CRITICAL, acknowledged=False) == []
        assert await store.list_alerts(severity=Severity.INFO) == []

    @pytest.mark.asyncio
    async def test_empty_person_id_matches_no_alerts(self, store, now) -> None:
        await store.insert_alerts([_alert("emp-001", now)])

        assert await store.list_alerts("") == []

    @pytest.mark.asyncio
    async def test_transaction_commits(self, store, make_reading, now) -> None:
        async with store.transaction():
            await store.insert_readings("emp-001", [make_reading()])
            await store.update_sync_state("emp-001", now)

        assert len(await store.query_readings("emp-001", now - timedelta(days=3))) == 1
        assert (await store.find_person("emp-001")).last_sync == now

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, store, make_reading, now) -> None:
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.insert_readings("emp-001", [make_reading()])
                await store.update_sync_state("emp-001", now)
                raise RuntimeError("abort")

        assert await store.query_readings("emp-001", now - timedelta(days=3)) == []
        assert (await store.find_person("emp-001")).last_sync is None

    @pytest.mark.asyncio
    async def test_outside_write_is_not_lost_to_rollback(self, store, make_reading, now) -> None:
        entered = asyncio.Event()

        async def failing_transaction() -> None:
            async with store.transaction():
                await store.insert_readings("emp-001", [make_reading()])
                entered.set()
                await asyncio.sleep(0.05)
                raise RuntimeError("abort")

        task = asyncio.create_task(failing_transaction())
        await entered.wait()
        await store.insert_readings("emp-002", [make_reading()])

        with pytest.raises(RuntimeError):
            await task

        assert await store.query_readings("emp-001", now - timedelta(days=3)) == []
        assert len(await store.query_readings("emp-002", now - timedelta(days=3))) == 1


class TestSQLiteStore:
    @pytest.mark.asyncio
    async def test_data_survives_reopening_the_file(self, tmp_path, make_reading, now) -> None:
        path = str(tmp_path / "vitals.db")
        store = SQLiteVitalsStore(path)
        await store.add_person(Person(id="emp-001", name="Sarah Chen"))
        reading = make_reading(timestamp=now - timedelta(hours=1))
        await store.insert_readings("emp-001", [reading])
        store.close()

        reopened = SQLiteVitalsStore(path)
        try:
            assert await reopened.query_readings("emp-001", now - timedelta(days=1)) == [reading]
            assert (await reopened.find_person("emp-001")).name == "Sarah Chen"
        finally:
            reopened.close()

    @pytest.mark.asyncio
    async def test_driver_errors_become_store_errors(self, sqlite_store) -> None:
        sqlite_store.close()

        with pytest.raises(StoreError, match="SQLite operation failed"):
            await sqlite_store.list_people()

    @pytest.mark.asyncio
    async def test_duplicate_alert_ids_are_ignored(self, sqlite_store, now) -> None:
        alert = _alert("emp-001", now)

        await sqlite_store.insert_alerts([alert])
        await sqlite_store.insert_alerts([alert])

        assert await sqlite_store.list_alerts() == [alert]


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_instances_do_not_share_state(self, people, make_reading, now) -> None:
        a = InMemoryVitalsStore(people)
        b = InMemoryVitalsStore(people)

        await a.insert_readings("emp-001", [make_reading()])

        assert await b.query_readings("emp-001", now - timedelta(days=3)) == []

    @pytest.mark.asyncio
    async def test_nested_transactions_join_the_outer_one(self, memory_store, make_reading, now) -> None:
        with pytest.raises(RuntimeError):
            async with memory_store.transaction():
                async with memory_store.transaction():
                    await memory_store.insert_readings("emp-001", [make_reading()])
                raise RuntimeError("abort")

        assert await memory_store.query_readings("emp-001", now - timedelta(days=3)) == []
