"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from flakescan.core.config import Settings, settings as default_settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_meter = None
_provider: MeterProvider | None = None
_run_duration_hist = None
_pulls_counter = None
_builds_counter = None
_failed_builds_counter = None
_links_counter = None


def configure_metrics(config: Settings | None = None) -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _meter, _provider, _run_duration_hist, _pulls_counter, _builds_counter
    global _failed_builds_counter, _links_counter

    config = config or default_settings
    if not config.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = config.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        endpoint = config.otel_otlp_endpoint
        exporter = OTLPMetricExporter(endpoint=endpoint) if endpoint else OTLPMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": "flakescan"}))
    metrics.set_meter_provider(_provider)
    _meter = metrics.get_meter("flakescan")
    _run_duration_hist = _meter.create_histogram(
        name="flakescan.run.duration",
        unit="s",
        description="Wall time of one unstable-link run",
    )
    _pulls_counter = _meter.create_counter(
        name="flakescan.pulls.collected",
        unit="1",
        description="Pull requests whose last commit was looked up",
    )
    _builds_counter = _meter.create_counter(
        name="flakescan.builds.scanned",
        unit="1",
        description="CI builds inspected",
    )
    _failed_builds_counter = _meter.create_counter(
        name="flakescan.builds.failed",
        unit="1",
        description="CI builds with a failure result",
    )
    _links_counter = _meter.create_counter(
        name="flakescan.links.found",
        unit="1",
        description="Failed builds matching a tracked commit",
    )
    _metrics_enabled = True


def record_run_duration(seconds: float) -> None:
    if _metrics_enabled and _run_duration_hist is not None:
        _run_duration_hist.record(max(seconds, 0.0))


def record_pulls_collected(count: int) -> None:
    if _metrics_enabled and _pulls_counter is not None and count:
        _pulls_counter.add(count)


def record_builds_scanned(scanned: int, failed: int) -> None:
    if not _metrics_enabled:
        return
    if _builds_counter is not None and scanned:
        _builds_counter.add(scanned)
    if _failed_builds_counter is not None and failed:
        _failed_builds_counter.add(failed)


def record_links_found(count: int) -> None:
    if _metrics_enabled and _links_counter is not None and count:
        _links_counter.add(count)


def shutdown_metrics() -> None:
    global _metrics_enabled, _provider
    if _metrics_enabled and _provider is not None:
        try:
            _provider.shutdown()
        except Exception:  # pragma: no cover
            _logger.exception("Failed to shutdown metrics provider")
        finally:
            _metrics_enabled = False
            _provider = None
