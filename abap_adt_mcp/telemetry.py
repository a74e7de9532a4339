"""OpenTelemetry metrics utilities.

Handlers create their instruments through :func:`get_meter`. Until
:func:`configure_metrics` installs an SDK provider the OpenTelemetry API hands
out no-op instruments, so recording is always safe.
"""

import logging
import sys
from typing import Optional

from opentelemetry import metrics
from opentelemetry.metrics import Counter, Histogram
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "abap-adt-mcp"

_METER_PROVIDER: Optional[MeterProvider] = None


def configure_metrics(enabled: bool, export_interval_ms: int = 60_000) -> Optional[MeterProvider]:
    """Install a global meter provider exporting to the console.

    Args:
        enabled: Whether telemetry is enabled at all
        export_interval_ms: Export period for the periodic reader

    Returns:
        The installed provider, or None when disabled
    """
    global _METER_PROVIDER

    if not enabled:
        return None
    if _METER_PROVIDER is not None:
        return _METER_PROVIDER

    reader = PeriodicExportingMetricReader(
        ConsoleMetricExporter(out=sys.stderr), export_interval_millis=export_interval_ms
    )
    _METER_PROVIDER = MeterProvider(
        resource=Resource.create({"service.name": INSTRUMENTATION_NAME}),
        metric_readers=[reader],
    )
    metrics.set_meter_provider(_METER_PROVIDER)
    logger.info("OpenTelemetry metrics enabled")
    return _METER_PROVIDER


def shutdown_metrics() -> None:
    """Flush and shut down the provider installed by configure_metrics."""
    global _METER_PROVIDER

    if _METER_PROVIDER is not None:
        _METER_PROVIDER.shutdown()
        _METER_PROVIDER = None


def get_meter() -> metrics.Meter:
    """Get the meter used by tool handlers."""
    return metrics.get_meter(INSTRUMENTATION_NAME)


def create_counter(name: str, description: str, unit: str = "") -> Counter:
    """Create a counter metric."""
    return get_meter().create_counter(name=name, description=description, unit=unit)


def create_histogram(name: str, description: str, unit: str = "") -> Histogram:
    """Create a histogram metric."""
    return get_meter().create_histogram(name=name, description=description, unit=unit)
