"""
Monitoring for content-reveal.

Components:
    HealthCheck       - Aggregated engine / registry health
    StreamingMetrics  - Prometheus-style session metrics
    StructuredLogger  - JSON structured session logging

Example:
    from content_reveal.monitoring import HealthCheck, StreamingMetrics

    metrics = StreamingMetrics()
    engine = StreamingEngine(clock, metrics=metrics)
    health = HealthCheck(engine)
    health.check()
"""

from content_reveal.monitoring.health import (
    HealthCheck,
    HealthStatus,
    ComponentHealth,
)
from content_reveal.monitoring.metrics import (
    StreamingMetrics,
    Counter,
    Gauge,
    Histogram,
)
from content_reveal.monitoring.logging import (
    StructuredLogger,
    LogLevel,
    configure_logging,
    get_logger,
)

__all__ = [
    # Health
    "HealthCheck",
    "HealthStatus",
    "ComponentHealth",
    # Metrics
    "StreamingMetrics",
    "Counter",
    "Gauge",
    "Histogram",
    # Logging
    "StructuredLogger",
    "LogLevel",
    "configure_logging",
    "get_logger",
]
