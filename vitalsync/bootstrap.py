"""Wiring: build a store backend and every service from an AppConfig."""

from dataclasses import dataclass

import structlog

from vitalsync.adapters import InMemoryVitalsStore, SQLiteVitalsStore, VitalsStore
from vitalsync.config import AppConfig, get_config
from vitalsync.log_setup import configure_logging
from vitalsync.services import (
    AlertRuleEngine,
    DeviceRegistry,
    HealthReporting,
    MetricsAggregator,
    RiskScoringEngine,
    SchemaValidator,
    SyncOrchestrator,
)

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    config: AppConfig
    store: VitalsStore
    validator: SchemaValidator
    orchestrator: SyncOrchestrator
    aggregator: MetricsAggregator
    devices: DeviceRegistry
    reporting: HealthReporting


def build_store(config: AppConfig) -> VitalsStore:
    if config.store.backend == "sqlite":
        return SQLiteVitalsStore(config.store.sqlite_path)
    return InMemoryVitalsStore()


def build_services(
    config: AppConfig | None = None,
    store: VitalsStore | None = None,
    configure_logs: bool = True,
) -> Services:
    """Construct the engine. An explicit ``store`` overrides the configured backend."""
    config = config or get_config()
    if configure_logs:
        configure_logging(config.logging)

    store = store if store is not None else build_store(config)
    rule_engine = AlertRuleEngine()
    scoring = RiskScoringEngine()

    services = Services(
        config=config,
        store=store,
        validator=SchemaValidator(),
        orchestrator=SyncOrchestrator(
            store, rule_engine=rule_engine, deadline_seconds=config.sync.deadline_seconds
        ),
        aggregator=MetricsAggregator(store),
        devices=DeviceRegistry(store),
        reporting=HealthReporting(store, scoring=scoring, rule_engine=rule_engine),
    )
    logger.info(
        "services_built",
        environment=config.environment,
        store_backend=type(store).__name__,
        deadline_seconds=config.sync.deadline_seconds,
    )
    return services
