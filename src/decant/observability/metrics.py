"""
Defines and manages Prometheus metrics for the extractor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from decant.config.config import MonitoringConfig

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Defined before any metric is created so repeated imports (test collection,
# reloads) reuse the registered collectors instead of raising.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race; use the collector that won.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "documents_processed": Counter(
            "decant_documents_processed_total",
            "Total number of documents run through extraction",
            ["outcome"],
        ),
        "extraction_attempts": Counter(
            "decant_extraction_attempts_total",
            "Extraction attempts by active parse flags",
            ["flags"],
        ),
        "cleaner_path": Counter(
            "decant_cleaner_path_total",
            "Conditional cleaning runs by the strategy that produced the output",
            ["path"],
        ),
        "extraction_duration_seconds": Histogram(
            "decant_extraction_duration_seconds",
            "Time taken to extract one document",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


class MetricsManager:
    """Manages the lifecycle of the metrics exporter."""

    def __init__(self, config: MonitoringConfig) -> None:
        self.config = config
        self._started = False

    def start(self) -> None:
        """Start the Prometheus HTTP exporter when a port is configured."""
        if self._started or not self.config.prometheus_port:
            return
        logger.info("Starting Prometheus metrics server", port=self.config.prometheus_port)
        start_http_server(self.config.prometheus_port)
        self._started = True
