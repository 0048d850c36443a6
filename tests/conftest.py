"""Shared fixtures: seeded people, both store backends and a reading generator."""

import random
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from vitalsync.adapters import InMemoryVitalsStore, SQLiteVitalsStore, VitalsStore
from vitalsync.domain.models import Person, VitalsReading


@pytest.fixture
def now() -> datetime:
    """Wall-clock anchor so services on the real clock see fixture data in window."""
    return datetime.now(UTC).replace(microsecond=0)


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def people() -> list[Person]:
    return [
        Person(id="emp-001", name="Sarah Chen", department="Engineering", role="Senior Developer"),
        Person(id="emp-002", name="Marcus Johnson", department="Sales", role="Account Executive"),
        Person(id="emp-003", name="Priya Patel", department="Design", role="UX Designer"),
    ]


@pytest.fixture
def memory_store(people: list[Person]) -> InMemoryVitalsStore:
    return InMemoryVitalsStore(people)


@pytest.fixture
async def sqlite_store(people: list[Person]) -> AsyncIterator[SQLiteVitalsStore]:
    store = SQLiteVitalsStore(":memory:")
    for person in people:
        await store.add_person(person)
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request: pytest.FixtureRequest, people: list[Person]) -> AsyncIterator[VitalsStore]:
    """Each test using this fixture runs once per backend."""
    if request.param == "memory":
        yield InMemoryVitalsStore(people)
        return

    sqlite = SQLiteVitalsStore(":memory:")
    for person in people:
        await sqlite.add_person(person)
    yield sqlite
    sqlite.close()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def make_reading(rng: random.Random, now: datetime) -> Callable[..., VitalsReading]:
    """Build a plausible reading; keyword overrides win over random values."""

    def factory(**overrides: Any) -> VitalsReading:
        values: dict[str, Any] = {
            "heart_rate": rng.randint(60, 95),
            "blood_oxygen": rng.randint(95, 100),
            "steps": rng.randint(2000, 12000),
            "sleep_hours": round(rng.uniform(5.0, 9.0), 1),
            "sleep_quality": rng.randint(50, 95),
            "stress_level": rng.randint(10, 60),
            "temperature": round(rng.uniform(97.5, 99.0), 1),
            "calories_burned": rng.randint(1200, 2800),
            "timestamp": now - timedelta(hours=rng.randint(1, 48)),
        }
        values.update(overrides)
        return VitalsReading(**values)

    return factory


@pytest.fixture
def payload(now: datetime) -> Callable[..., dict[str, Any]]:
    """Wire-shaped sync payload with camelCase keys."""

    def factory(
        employee_id: str = "emp-001",
        readings: list[dict[str, Any]] | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        if readings is None:
            readings = [
                {
                    "heartRate": 72,
                    "bloodOxygen": 98,
                    "steps": 8500,
                    "sleepHours": 7.5,
                    "sleepQuality": 85,
                    "stressLevel": 35,
                    "temperature": 98.6,
                    "caloriesBurned": 2100,
                    "timestamp": (now - timedelta(hours=2)).isoformat(),
                },
                {
                    "heartRate": 78,
                    "bloodOxygen": 97,
                    "steps": 9200,
                    "stressLevel": 40,
                    "temperature": 98.4,
                    "timestamp": (now - timedelta(hours=1)).isoformat(),
                },
            ]
        raw = {
            "employeeId": employee_id,
            "deviceId": "watch-001",
            "readings": readings,
            "syncedAt": now.isoformat(),
        }
        raw.update(extra)
        return raw

    return factory


@pytest.fixture
def critical_readings(now: datetime) -> list[dict[str, Any]]:
    return [
        {
            "heartRate": 125,
            "bloodOxygen": 88,
            "stressLevel": 85,
            "temperature": 102.5,
            "timestamp": (now - timedelta(minutes=30)).isoformat(),
        }
    ]
