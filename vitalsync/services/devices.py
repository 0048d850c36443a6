"""Wearable pairing and disconnection for monitored people."""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from vitalsync.adapters.base import VitalsStore
from vitalsync.domain.errors import NotFoundError, ValidationError
from vitalsync.domain.models import CamelModel, NonBlankStr, utc_now
from vitalsync.services.validation import error_details

logger = structlog.get_logger(__name__)


class DeviceRegistration(CamelModel):
    device_id: NonBlankStr
    employee_id: NonBlankStr
    device_name: NonBlankStr
    device_model: NonBlankStr
    firmware_version: str | None = None
    battery_level: int = Field(ge=0, le=100, strict=True)


class DevicePairing(CamelModel):
    device_id: str
    paired_at: datetime
    message: str


class DeviceRegistry:
    """Marks people's watches connected or disconnected in the store."""

    def __init__(self, store: VitalsStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock
        self.logger = logger.bind(component="device_registry")

    async def register(self, raw: Mapping[str, Any]) -> DevicePairing:
        try:
            registration = DeviceRegistration.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError("Invalid device registration", error_details(e)) from e

        if await self.store.find_person(registration.employee_id) is None:
            raise NotFoundError(f"Employee not found: {registration.employee_id}")

        paired_at = self.clock()
        await self.store.update_sync_state(registration.employee_id, paired_at)

        self.logger.info(
            "device_registered",
            employee_id=registration.employee_id,
            device_id=registration.device_id,
            device_model=registration.device_model,
            battery_level=registration.battery_level,
        )
        return DevicePairing(
            device_id=registration.device_id,
            paired_at=paired_at,
            message=f"Smartwatch registered for employee {registration.employee_id}",
        )

    async def disconnect(self, employee_id: str) -> str:
        if await self.store.find_person(employee_id) is None:
            raise NotFoundError(f"Employee not found: {employee_id}")

        await self.store.set_connected(employee_id, False)
        self.logger.info("device_disconnected", employee_id=employee_id)
        return f"Smartwatch disconnected for employee {employee_id}"
