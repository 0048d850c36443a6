"""
Domain models for wearable telemetry and derived health signals.

These models are storage-agnostic. They use Pydantic for validation; wire
shapes are camelCase through the alias generator while Python code uses
snake_case attributes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, strict=True)]


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid.uuid4().hex


def coerce_instant(value: Any) -> datetime:
    """Normalize a native datetime or an ISO-8601 string to an aware UTC instant.

    Naive values are taken to be UTC already.
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, str):
        try:
            instant = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"invalid ISO-8601 timestamp: {value!r}") from e
    else:
        raise ValueError("timestamp must be a datetime or an ISO-8601 string")

    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AlertType(str, Enum):
    """Kinds of health signal an alert can be raised for."""

    HEART_RATE = "heart_rate"
    BLOOD_OXYGEN = "blood_oxygen"
    SLEEP = "sleep"
    STRESS = "stress"
    FATIGUE = "fatigue"
    BURNOUT = "burnout"
    TEMPERATURE = "temperature"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class FatigueTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class BurnoutRisk(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class VitalsReading(CamelModel):
    """One timestamped measurement batch reported by a device.

    A device may report any subset of metrics. Present values must lie inside
    their declared range; integer metrics reject floats and strings.
    """

    heart_rate: int | None = Field(default=None, ge=30, le=200, strict=True)
    blood_oxygen: int | None = Field(default=None, ge=70, le=100, strict=True)
    steps: int | None = Field(default=None, ge=0, strict=True)
    sleep_hours: float | None = Field(default=None, ge=0.0, le=24.0, strict=True)
    sleep_quality: int | None = Field(default=None, ge=0, le=100, strict=True)
    stress_level: int | None = Field(default=None, ge=0, le=100, strict=True)
    temperature: float | None = Field(
        default=None, ge=95.0, le=105.0, strict=True, description="Body temperature in °F"
    )
    calories_burned: int | None = Field(default=None, ge=0, strict=True)
    timestamp: datetime

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> datetime:
        return coerce_instant(v)


@dataclass(frozen=True)
class SyncPacket:
    """A validated device-to-server transmission.

    ``duration_ms`` is measured by the receiver and does not take part in
    equality, so validating the same payload twice yields equal packets.
    """

    device_id: str
    employee_id: str
    readings: tuple[VitalsReading, ...]
    synced_at: datetime
    duration_ms: int = field(default=0, compare=False)


class SyncRecord(CamelModel):
    """Audit entry written for every sync attempt."""

    id: str = Field(default_factory=new_id)
    employee_id: str
    synced_at: datetime
    duration_ms: int = Field(ge=0)
    status: SyncStatus
    records_count: int = Field(default=0, ge=0)
    error_message: str | None = None

    @model_validator(mode="after")
    def error_message_only_on_failure(self) -> "SyncRecord":
        if self.status == SyncStatus.FAILED and not self.error_message:
            raise ValueError("failed sync records require an error message")
        if self.status == SyncStatus.SUCCESS and self.error_message is not None:
            raise ValueError("successful sync records cannot carry an error message")
        return self


class SyncResult(CamelModel):
    records_created: int = Field(ge=0)
    sync_id: str


class Alert(CamelModel):
    """Derived health signal raised when a threshold is crossed."""

    id: str = Field(default_factory=new_id)
    employee_id: str
    type: AlertType
    severity: Severity
    message: str
    suggestion: str
    timestamp: datetime = Field(default_factory=utc_now)
    acknowledged: bool = False
    acknowledged_at: datetime | None = None


class FatigueAssessment(CamelModel):
    score: int = Field(ge=0, le=100)
    trend: FatigueTrend
    factors: frozenset[str] = Field(default_factory=frozenset)


class BurnoutAssessment(CamelModel):
    score: float = Field(ge=0.0, le=100.0, description="Blend of fatigue and current stress")
    risk: BurnoutRisk


class VitalsSnapshot(CamelModel):
    """Most recent known value of each metric used by risk scoring."""

    heart_rate: int | None = None
    blood_oxygen: int | None = None
    steps: int | None = None
    sleep_hours: float | None = None
    sleep_quality: int | None = None
    stress_level: int | None = None
    temperature: float | None = None


class Person(CamelModel):
    """A monitored person as known to the store."""

    id: str
    name: str
    department: str = ""
    role: str = ""
    watch_connected: bool = False
    last_sync: datetime | None = None
