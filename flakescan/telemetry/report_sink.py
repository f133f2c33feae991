"""Export run reports as newline-delimited JSON."""

from __future__ import annotations

import json
from pathlib import Path

from flakescan.core.config import Settings
from flakescan.schemas.report import UnstableLinkReport

_DISABLED_BACKENDS = {"off", "none", "disabled"}


class ReportExporter:
    """Appends one JSON line per run report; a ``None`` path disables export."""

    def __init__(self, path: str | Path | None) -> None:
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def export(self, report: UnstableLinkReport) -> None:
        if self.path is None:
            return
        payload = json.dumps(report.to_event(), separators=(",", ":"), sort_keys=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(payload)
            handle.write("\n")


def exporter_from_settings(config: Settings) -> ReportExporter:
    backend = config.report_backend.lower().strip()
    if backend == "file":
        return ReportExporter(config.report_path)
    if backend in _DISABLED_BACKENDS:
        return ReportExporter(None)
    raise ValueError(f"Unsupported report backend: {config.report_backend}")
