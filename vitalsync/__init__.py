"""Wearable telemetry ingestion and health-risk alerting engine.

The package validates vitals pushed from wearable devices, persists them
through a store adapter, scores fatigue and burnout risk, and raises alerts
when fixed thresholds are crossed.
"""
