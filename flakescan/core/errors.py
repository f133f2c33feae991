"""Error types raised while building an unstable-link report."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from datetime import datetime

    from flakescan.schemas.report import BuildScanIssue


class FlakeScanError(RuntimeError):
    """Base class for failures that abort a run."""


class UnknownTestTypeError(FlakeScanError, ValueError):
    def __init__(self, test_type: str, choices: Sequence[str]) -> None:
        self.test_type = test_type
        self.choices = list(choices)
        super().__init__(
            f"unknown test type {test_type!r}; expected one of: {', '.join(self.choices)}"
        )


class MissingCredentialError(FlakeScanError):
    def __init__(self) -> None:
        super().__init__("a GitHub token is required (--github-token or FLAKESCAN_GITHUB_TOKEN)")


class CommitResolutionError(FlakeScanError):
    def __init__(self, commit: str, role: str) -> None:
        self.commit = commit
        self.role = role
        super().__init__(f"failed to get {role} pr with commit: {commit}")


class MergeOrderError(FlakeScanError):
    def __init__(self, start_merged_at: "datetime | None", end_merged_at: "datetime | None") -> None:
        self.start_merged_at = start_merged_at
        self.end_merged_at = end_merged_at
        super().__init__(
            "start commit merged time is after end commit merged time "
            f"({start_merged_at} > {end_merged_at})"
        )


class BuildListError(FlakeScanError):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"failed to read build list from {url}: {reason}")


class BuildScanAborted(FlakeScanError):
    """Raised in fail-fast mode on the first build that cannot be inspected."""

    def __init__(self, issue: "BuildScanIssue") -> None:
        self.issue = issue
        super().__init__(f"build {issue.build_number} ({issue.url}): {issue.reason}")
