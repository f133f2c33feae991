"""Scan a CI job for failed builds triggered by known commits."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from flakescan.ci.jenkins_client import JenkinsClient
from flakescan.core.errors import BuildListError, BuildScanAborted
from flakescan.models.domain import JobSpecError
from flakescan.schemas.report import BuildScanIssue, BuildScanResult

logger = logging.getLogger(__name__)


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "body"
        return f"unexpected build payload at {location}: {first['msg']}"
    return str(exc) or exc.__class__.__name__


class BuildScanner:
    """Walks a job's build list and reports failed builds whose pull commit is known."""

    def __init__(
        self,
        client: JenkinsClient,
        *,
        failure_result: str = "FAILURE",
        fail_fast: bool = False,
    ) -> None:
        self._client = client
        self._failure_result = failure_result
        self._fail_fast = fail_fast

    @property
    def job_url(self) -> str:
        return self._client.job_url

    def scan(self, commits: frozenset[str]) -> BuildScanResult:
        try:
            build_list = self._client.list_builds()
        except (httpx.HTTPError, ValidationError) as exc:
            raise BuildListError(self._client.job_url, _describe(exc)) from exc

        result = BuildScanResult()
        for build in build_list.builds:
            result.builds_scanned += 1
            link = self._client.build_link(build.number)
            try:
                info = self._client.get_build(build.number)
                if not info.is_failure(self._failure_result):
                    continue
                result.failed_builds += 1
                commit = info.job_spec().pull_commit()
            except (httpx.HTTPError, ValidationError, JobSpecError) as exc:
                issue = BuildScanIssue(build_number=build.number, url=link, reason=_describe(exc))
                if self._fail_fast:
                    raise BuildScanAborted(issue) from exc
                logger.warning("skipping build %s: %s", build.number, issue.reason)
                result.issues.append(issue)
                continue
            if commit in commits:
                logger.debug("build %s failed on tracked commit %s", build.number, commit)
                result.links.append(link)

        logger.info(
            "scanned %d builds of %s: %d failed, %d matched",
            result.builds_scanned,
            self._client.job_url,
            result.failed_builds,
            len(result.links),
        )
        return result
