"""
Schema validation for incoming sync payloads.

Turns a raw JSON-shaped payload into an immutable SyncPacket. Out-of-range or
wrongly-typed values are rejected, never clamped; any ``duration`` the client
sends is ignored and replaced by the time spent validating.
"""

import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from vitalsync.domain.errors import ValidationError
from vitalsync.domain.models import CamelModel, NonBlankStr, SyncPacket, VitalsReading, coerce_instant
from vitalsync.domain.result import Result

logger = structlog.get_logger(__name__)


class SyncPayload(CamelModel):
    """Wire shape of a sync request: ``{employeeId, deviceId, readings, syncedAt}``."""

    model_config = ConfigDict(extra="ignore")

    employee_id: NonBlankStr
    device_id: NonBlankStr
    readings: list[VitalsReading] = Field(min_length=1)
    synced_at: datetime

    @field_validator("synced_at", mode="before")
    @classmethod
    def normalize_synced_at(cls, v: Any) -> datetime:
        return coerce_instant(v)


def error_details(error: PydanticValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{loc, msg, type}`` dicts."""
    return [
        {
            "loc": ".".join(str(part) for part in e["loc"]),
            "msg": e["msg"],
            "type": e["type"],
        }
        for e in error.errors()
    ]


class SchemaValidator:
    """Validates raw sync payloads into SyncPackets."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="schema_validator")

    def validate(self, raw: Mapping[str, Any]) -> Result[SyncPacket, ValidationError]:
        """Validate ``raw`` without raising; rejected payloads come back as errors."""
        start_time = time.perf_counter()

        try:
            payload = SyncPayload.model_validate(raw)
        except PydanticValidationError as e:
            details = error_details(e)
            first = details[0]
            self.logger.info("sync_payload_rejected", error_count=len(details), first_error=first)
            return Result.err(
                ValidationError(f"Invalid sync payload: {first['loc']}: {first['msg']}", details)
            )

        duration_ms = round((time.perf_counter() - start_time) * 1000)
        packet = SyncPacket(
            device_id=payload.device_id,
            employee_id=payload.employee_id,
            readings=tuple(payload.readings),
            synced_at=payload.synced_at,
            duration_ms=duration_ms,
        )

        self.logger.debug(
            "sync_payload_validated",
            employee_id=packet.employee_id,
            device_id=packet.device_id,
            readings=len(packet.readings),
            duration_ms=duration_ms,
        )
        return Result.ok(packet)

    def parse(self, raw: Mapping[str, Any]) -> SyncPacket:
        """Validate ``raw``, raising ValidationError on rejection."""
        return self.validate(raw).unwrap()
