"""Telemetry utilities for exporting run reports and metrics."""

from .metrics import (
    configure_metrics,
    record_run_duration,
    record_pulls_collected,
    record_builds_scanned,
    record_links_found,
    shutdown_metrics,
)
from .report_sink import ReportExporter, exporter_from_settings

__all__ = [
    "ReportExporter",
    "exporter_from_settings",
    "configure_metrics",
    "record_run_duration",
    "record_pulls_collected",
    "record_builds_scanned",
    "record_links_found",
    "shutdown_metrics",
]
