"""
Rolling-window summary statistics over stored vitals.

Readings in a window are heterogeneous: each metric is summarized only over
the readings that carry it, and a metric missing from every reading yields
``None`` rather than zeros.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import structlog
from pydantic import Field

from vitalsync.adapters.base import VitalsStore
from vitalsync.domain.models import CamelModel, VitalsReading, utc_now
from vitalsync.services.risk_scoring import round_half_up

logger = structlog.get_logger(__name__)


def round_one_decimal(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class MetricsPeriod(CamelModel):
    since: datetime
    until: datetime


class RangeStats(CamelModel):
    avg: int
    min: int
    max: int


class StepsStats(CamelModel):
    total: int
    avg: int


class SleepStats(CamelModel):
    total: float
    avg: float
    avg_quality: int | None = None


class StressStats(CamelModel):
    avg: int
    max: int


class MetricsSummary(CamelModel):
    period: MetricsPeriod
    total_readings: int = Field(gt=0)
    heart_rate: RangeStats | None = None
    blood_oxygen: RangeStats | None = None
    steps: StepsStats | None = None
    sleep: SleepStats | None = None
    stress: StressStats | None = None


def _present(readings: Sequence[VitalsReading], metric: str) -> list:
    return [v for r in readings if (v := getattr(r, metric)) is not None]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _range_stats(values: Sequence[int]) -> RangeStats | None:
    if not values:
        return None
    return RangeStats(avg=round_half_up(_mean(values)), min=min(values), max=max(values))


def summarize(
    readings: Sequence[VitalsReading], since: datetime, until: datetime
) -> MetricsSummary | None:
    """Summarize ``readings``; ``None`` when there are none."""
    if not readings:
        return None

    steps = _present(readings, "steps")
    sleep_hours = _present(readings, "sleep_hours")
    sleep_quality = _present(readings, "sleep_quality")
    stress = _present(readings, "stress_level")

    sleep_stats = None
    if sleep_hours:
        sleep_stats = SleepStats(
            total=round_one_decimal(sum(sleep_hours)),
            avg=round_one_decimal(_mean(sleep_hours)),
            avg_quality=round_half_up(_mean(sleep_quality)) if sleep_quality else None,
        )

    return MetricsSummary(
        period=MetricsPeriod(since=since, until=until),
        total_readings=len(readings),
        heart_rate=_range_stats(_present(readings, "heart_rate")),
        blood_oxygen=_range_stats(_present(readings, "blood_oxygen")),
        steps=StepsStats(total=sum(steps), avg=round_half_up(_mean(steps))) if steps else None,
        sleep=sleep_stats,
        stress=StressStats(avg=round_half_up(_mean(stress)), max=max(stress)) if stress else None,
    )


class MetricsAggregator:
    """Reads a person's readings through the store and summarizes a window."""

    def __init__(self, store: VitalsStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock
        self.logger = logger.bind(component="metrics_aggregator")

    async def metrics(self, employee_id: str, window_days: int) -> MetricsSummary | None:
        """Summary over ``[now - window_days, now]``, or ``None`` if the window is empty."""
        until = self.clock()
        since = until - timedelta(days=window_days)
        readings = [
            r for r in await self.store.query_readings(employee_id, since) if r.timestamp <= until
        ]

        summary = summarize(readings, since, until)
        self.logger.info(
            "metrics_summarized",
            employee_id=employee_id,
            window_days=window_days,
            total_readings=len(readings),
        )
        return summary
