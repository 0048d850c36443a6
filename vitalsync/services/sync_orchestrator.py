"""
Sync orchestration: the top-level ingestion use case.

Sequence for one SyncPacket:
1. Resolve the person (unknown -> NotFoundError)
2. Batch-insert readings            ┐
3. Update last sync + connectivity  ├ one store transaction
4. Write the success SyncRecord     ┘
5. Evaluate and persist alerts (best-effort, never fails the sync)

Every call writes exactly one SyncRecord. Failures in steps 1-4 roll back,
record a failed SyncRecord and re-raise; the whole call runs under a deadline.
A deadline that fires after the transaction committed still reports success.
"""

import asyncio
import time
from datetime import UTC, datetime

import structlog

from vitalsync.adapters.base import VitalsStore
from vitalsync.domain.errors import NotFoundError, StoreError, SyncTimeoutError, VitalsError
from vitalsync.domain.models import SyncPacket, SyncRecord, SyncResult, SyncStatus, new_id
from vitalsync.services.alert_rules import AlertRuleEngine

logger = structlog.get_logger(__name__)


class SyncOrchestrator:
    """
    Runs a validated SyncPacket through persistence, bookkeeping and alerting.

    Design principles:
    - Steps 2-4 commit together or not at all
    - Exactly one SyncRecord per call, success or failure
    - Alerting is a side effect: its failure is logged, never propagated
    """

    def __init__(
        self,
        store: VitalsStore,
        rule_engine: AlertRuleEngine | None = None,
        deadline_seconds: float = 10.0,
    ) -> None:
        self.store = store
        self.rule_engine = rule_engine or AlertRuleEngine()
        self.deadline_seconds = deadline_seconds
        self.logger = logger.bind(component="sync_orchestrator")

    async def process_sync(
        self, packet: SyncPacket, deadline_seconds: float | None = None
    ) -> SyncResult:
        """Persist a packet and raise alerts for it within ``deadline_seconds``."""
        timeout = deadline_seconds if deadline_seconds is not None else self.deadline_seconds
        start_time = time.perf_counter()
        log = self.logger.bind(employee_id=packet.employee_id, device_id=packet.device_id)
        sync_id = new_id()

        try:
            result = await asyncio.wait_for(self._persist(packet, sync_id), timeout=timeout)
        except TimeoutError as e:
            committed = await self._committed_record(packet, sync_id)
            if committed is None:
                error = SyncTimeoutError(f"Sync exceeded deadline of {timeout}s")
                log.warning("sync_deadline_exceeded", timeout_seconds=timeout)
                await self._record_failure(packet, error, start_time)
                raise error from e
            log.warning("sync_committed_past_deadline", timeout_seconds=timeout, sync_id=sync_id)
            result = SyncResult(records_created=committed.records_count, sync_id=committed.id)
        except VitalsError as e:
            log.warning("sync_failed", error=str(e), error_code=e.code)
            await self._record_failure(packet, e, start_time)
            raise
        except Exception as e:
            log.exception("sync_failed_unexpectedly", error=str(e))
            await self._record_failure(packet, e, start_time)
            raise StoreError(f"Store failure during sync: {e}") from e

        remaining = timeout - (time.perf_counter() - start_time)
        await self._raise_alerts(packet, remaining)

        log.info(
            "sync_completed",
            records_created=result.records_created,
            sync_id=result.sync_id,
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return result

    async def _persist(self, packet: SyncPacket, sync_id: str) -> SyncResult:
        person = await self.store.find_person(packet.employee_id)
        if person is None:
            raise NotFoundError(f"Employee not found: {packet.employee_id}")

        async with self.store.transaction():
            created = await self.store.insert_readings(packet.employee_id, packet.readings)
            await self.store.update_sync_state(packet.employee_id, packet.synced_at)
            record = SyncRecord(
                id=sync_id,
                employee_id=packet.employee_id,
                synced_at=packet.synced_at,
                duration_ms=packet.duration_ms,
                status=SyncStatus.SUCCESS,
                records_count=created,
            )
            await self.store.insert_sync_record(record)

        return SyncResult(records_created=created, sync_id=record.id)

    async def _committed_record(self, packet: SyncPacket, sync_id: str) -> SyncRecord | None:
        """The success record written under ``sync_id``, if its transaction committed."""
        try:
            records = await self.store.query_sync_records(packet.employee_id, packet.synced_at)
        except Exception as e:
            self.logger.exception(
                "commit_check_failed", employee_id=packet.employee_id, sync_id=sync_id, error=str(e)
            )
            return None
        return next((r for r in records if r.id == sync_id), None)

    async def _raise_alerts(self, packet: SyncPacket, remaining_seconds: float) -> None:
        log = self.logger.bind(employee_id=packet.employee_id)
        try:
            alerts = self.rule_engine.evaluate(packet.employee_id, packet.readings)
            if not alerts:
                return
            await asyncio.wait_for(
                self.store.insert_alerts(alerts), timeout=max(remaining_seconds, 0.0)
            )
            log.info("alerts_persisted", count=len(alerts))
        except TimeoutError:
            log.error("alert_persistence_timeout", remaining_seconds=round(remaining_seconds, 3))
        except Exception as e:
            log.exception("alert_generation_failed", error=str(e))

    async def _record_failure(
        self, packet: SyncPacket, error: BaseException, start_time: float
    ) -> None:
        """Write the failed SyncRecord; a failure here is logged, never raised."""
        try:
            record = SyncRecord(
                employee_id=packet.employee_id,
                synced_at=datetime.now(UTC),
                duration_ms=round((time.perf_counter() - start_time) * 1000),
                status=SyncStatus.FAILED,
                records_count=0,
                error_message=str(error) or type(error).__name__,
            )
            await self.store.insert_sync_record(record)
        except Exception as e:
            self.logger.exception(
                "failed_sync_record_not_written",
                employee_id=packet.employee_id,
                error=str(e),
                original_error=str(error),
            )
