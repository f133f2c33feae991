"""Result shapes produced by a scan run."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from flakescan.models.domain import PullRequestRef


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BuildScanIssue(BaseModel):
    """A build that could not be inspected."""

    build_number: Optional[int] = None
    url: str
    reason: str


class BuildScanResult(BaseModel):
    links: list[str] = Field(default_factory=list)
    issues: list[BuildScanIssue] = Field(default_factory=list)
    builds_scanned: int = 0
    failed_builds: int = 0


class UnstableLinkReport(BaseModel):
    """Everything one run learned, from resolved PRs to matching build links."""

    test_type: str
    job_url: str
    start_commit: str
    end_commit: str
    start_pull: PullRequestRef
    end_pull: PullRequestRef
    pulls: list[PullRequestRef] = Field(default_factory=list)
    commits: list[str] = Field(default_factory=list)
    missing_commits: list[int] = Field(
        default_factory=list,
        description="PR numbers whose last commit could not be fetched.",
    )
    links: list[str] = Field(default_factory=list)
    issues: list[BuildScanIssue] = Field(default_factory=list)
    builds_scanned: int = 0
    failed_builds: int = 0
    generated_at: datetime = Field(default_factory=_now)

    def to_event(self) -> dict:
        event = self.model_dump(mode="json")
        event["timestamp"] = event.pop("generated_at")
        event["pull_numbers"] = [pull["number"] for pull in event.pop("pulls")]
        return event
