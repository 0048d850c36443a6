"""
JSON-shaped entrypoints.

Each operation takes a plain mapping, returns a plain dict and never raises for
engine errors:

    {"success": true, "data": ...}
    {"success": false, "error": {"code": ..., "message": ..., "details": [...]}}

Data is serialized with camelCase keys and ISO-8601 timestamps.
"""

from collections.abc import Awaitable, Mapping
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from vitalsync.bootstrap import Services
from vitalsync.domain.errors import NotFoundError, ValidationError, VitalsError
from vitalsync.domain.models import CamelModel, NonBlankStr, Severity
from vitalsync.services.validation import error_details

logger = structlog.get_logger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


class EmployeeRequest(CamelModel):
    employee_id: NonBlankStr


class WindowRequest(EmployeeRequest):
    window_days: int | None = Field(default=None, gt=0, strict=True)


class HistoryRequest(EmployeeRequest):
    days: int | None = Field(default=None, gt=0, strict=True)


class AlertsRequest(CamelModel):
    employee_id: NonBlankStr | None = None
    severity: Severity | None = None
    acknowledged: bool | None = Field(default=None, strict=True)


class AcknowledgeRequest(CamelModel):
    alert_id: NonBlankStr


class OverviewRequest(CamelModel):
    window_days: int | None = Field(default=None, gt=0, strict=True)


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": _dump(data)}


def failure(error: VitalsError) -> dict[str, Any]:
    return {"success": False, "error": error.to_dict()}


def _parse(model: type[RequestT], raw: Mapping[str, Any] | None) -> RequestT:
    try:
        return model.model_validate(raw or {})
    except PydanticValidationError as e:
        details = error_details(e)
        first = details[0]
        raise ValidationError(f"Invalid request: {first['loc']}: {first['msg']}", details) from e


class Entrypoints:
    """Envelope-returning facade over the engine services."""

    def __init__(self, services: Services) -> None:
        self.services = services
        self.logger = logger.bind(component="entrypoints")

    async def _respond(self, operation: str, work: Awaitable[Any]) -> dict[str, Any]:
        try:
            return success(await work)
        except VitalsError as e:
            self.logger.info("request_failed", operation=operation, error_code=e.code, error=e.message)
            return failure(e)

    async def _require_person(self, employee_id: str) -> None:
        if await self.services.store.find_person(employee_id) is None:
            raise NotFoundError(f"Employee not found: {employee_id}")

    async def ingest(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Validate and process a sync payload; data is ``{recordsCreated, syncId}``."""
        result = self.services.validator.validate(raw)
        if result.is_err():
            return failure(result.unwrap_err())
        packet = result.unwrap()
        return await self._respond("ingest", self.services.orchestrator.process_sync(packet))

    async def metrics(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Windowed metrics summary; data is ``null`` when the window is empty."""

        async def work() -> Any:
            request = _parse(WindowRequest, raw)
            await self._require_person(request.employee_id)
            window = request.window_days or self.services.config.sync.metrics_window_days
            return await self.services.aggregator.metrics(request.employee_id, window)

        return await self._respond("metrics", work())

    async def register_device(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        return await self._respond("register_device", self.services.devices.register(raw))

    async def disconnect_device(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(EmployeeRequest, raw)
            message = await self.services.devices.disconnect(request.employee_id)
            return {"message": message}

        return await self._respond("disconnect_device", work())

    async def health_report(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(WindowRequest, raw)
            window = request.window_days or self.services.config.sync.metrics_window_days
            return await self.services.reporting.assess_person(request.employee_id, window)

        return await self._respond("health_report", work())

    async def sync_history(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(HistoryRequest, raw)
            days = request.days or self.services.config.sync.history_days
            return await self.services.reporting.sync_history(request.employee_id, days)

        return await self._respond("sync_history", work())

    async def overview(self, raw: Mapping[str, Any] | None = None) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(OverviewRequest, raw)
            window = request.window_days or self.services.config.sync.metrics_window_days
            return await self.services.reporting.overview(window)

        return await self._respond("overview", work())

    async def alerts(self, raw: Mapping[str, Any] | None = None) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(AlertsRequest, raw)
            return await self.services.reporting.alerts(
                request.employee_id, severity=request.severity, acknowledged=request.acknowledged
            )

        return await self._respond("alerts", work())

    async def acknowledge_alert(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(AcknowledgeRequest, raw)
            return await self.services.reporting.acknowledge_alert(request.alert_id)

        return await self._respond("acknowledge_alert", work())

    async def department_stats(self, raw: Mapping[str, Any] | None = None) -> dict[str, Any]:
        async def work() -> Any:
            request = _parse(OverviewRequest, raw)
            window = request.window_days or self.services.config.sync.metrics_window_days
            return await self.services.reporting.department_stats(window)

        return await self._respond("department_stats", work())
