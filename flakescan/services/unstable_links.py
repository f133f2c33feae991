"""Service orchestration for one unstable-link run."""

from __future__ import annotations

import logging
import time
from typing import Iterable, Sequence

from flakescan.core.errors import CommitResolutionError, MergeOrderError
from flakescan.models.domain import PullRequestRef
from flakescan.schemas.report import UnstableLinkReport
from flakescan.scm.pull_requests import PullRequestResolver
from flakescan.services.build_scanner import BuildScanner
from flakescan.telemetry import (
    ReportExporter,
    record_builds_scanned,
    record_links_found,
    record_pulls_collected,
    record_run_duration,
)

logger = logging.getLogger(__name__)

BANNER = "======Below is the unstable {test_type} ci link======"


def unique_pulls(pulls: Iterable[PullRequestRef]) -> list[PullRequestRef]:
    seen: set[int] = set()
    ordered: list[PullRequestRef] = []
    for pull in pulls:
        if pull.number in seen:
            continue
        seen.add(pull.number)
        ordered.append(pull)
    return ordered


def build_commit_set(
    resolver: PullRequestResolver,
    pulls: Sequence[PullRequestRef],
) -> tuple[frozenset[str], list[int]]:
    """Fetch each PR's last commit; return the SHAs and the PRs that had none."""

    commits: set[str] = set()
    missing: list[int] = []
    for pull in pulls:
        sha = resolver.last_commit_sha(pull.number)
        if sha is None:
            missing.append(pull.number)
            continue
        commits.add(sha)
    return frozenset(commits), missing


def render_report(report: UnstableLinkReport) -> list[str]:
    lines = [BANNER.format(test_type=report.test_type)]
    lines.extend(f"ci link: {link}" for link in report.links)
    for issue in report.issues:
        lines.append(f"[WARN] build {issue.build_number}: {issue.reason}")
    if report.missing_commits:
        numbers = ", ".join(str(number) for number in report.missing_commits)
        lines.append(f"[WARN] last commit unavailable for PRs: {numbers}")
    return lines


class UnstableLinkService:
    """Coordinates PR resolution, commit collection, and the CI build scan."""

    def __init__(
        self,
        resolver: PullRequestResolver,
        scanner: BuildScanner,
        *,
        exporter: ReportExporter | None = None,
    ) -> None:
        self._resolver = resolver
        self._scanner = scanner
        self._exporter = exporter or ReportExporter(None)

    def resolve_boundaries(self, start_commit: str, end_commit: str) -> tuple[PullRequestRef, PullRequestRef]:
        start_pull = self._resolve(start_commit, "start")
        end_pull = self._resolve(end_commit, "end")
        if start_pull.merged_at > end_pull.merged_at:
            raise MergeOrderError(start_pull.merged_at, end_pull.merged_at)
        logger.info(
            "start PR %s merged at %s, end PR %s merged at %s",
            start_pull.number,
            start_pull.merged_at,
            end_pull.number,
            end_pull.merged_at,
        )
        return start_pull, end_pull

    def run(self, start_commit: str, end_commit: str, *, test_type: str) -> UnstableLinkReport:
        started = time.monotonic()
        start_pull, end_pull = self.resolve_boundaries(start_commit, end_commit)

        window = self._resolver.pulls_merged_between(start_pull.merged_at, end_pull.merged_at)
        # The window is exclusive at both ends.
        pulls = unique_pulls([*window, start_pull, end_pull])
        record_pulls_collected(len(pulls))

        commits, missing = build_commit_set(self._resolver, pulls)
        if missing:
            logger.warning("no last commit for %d of %d pull requests", len(missing), len(pulls))

        scan = self._scanner.scan(commits)
        record_builds_scanned(scan.builds_scanned, scan.failed_builds)
        record_links_found(len(scan.links))

        report = UnstableLinkReport(
            test_type=test_type,
            job_url=self._scanner.job_url,
            start_commit=start_commit,
            end_commit=end_commit,
            start_pull=start_pull,
            end_pull=end_pull,
            pulls=pulls,
            commits=sorted(commits),
            missing_commits=missing,
            links=scan.links,
            issues=scan.issues,
            builds_scanned=scan.builds_scanned,
            failed_builds=scan.failed_builds,
        )
        self._exporter.export(report)
        record_run_duration(time.monotonic() - started)
        return report

    def _resolve(self, commit: str, role: str) -> PullRequestRef:
        pull = self._resolver.find_pull_for_commit(commit)
        if pull is None:
            raise CommitResolutionError(commit, role)
        if pull.merged_at is None:
            logger.error("%s PR %s for commit %s was closed without merging", role, pull.number, commit)
            raise CommitResolutionError(commit, role)
        return pull
