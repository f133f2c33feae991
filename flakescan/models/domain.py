"""Domain data models for pull requests and CI builds."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class JobSpecError(ValueError):
    """The job specification embedded in a build could not be read."""


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PullRequestRef(BaseModel):
    """The subset of a merged pull request this tool reads."""

    number: int
    merge_commit_sha: Optional[str] = None
    merged_at: Optional[datetime] = Field(None, description="None when the PR was closed without merging.")
    updated_at: Optional[datetime] = None
    title: Optional[str] = None
    html_url: Optional[str] = None

    @field_validator("merged_at", "updated_at")
    @classmethod
    def _normalise_tz(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @classmethod
    def from_github(cls, pull: Any) -> "PullRequestRef":
        return cls(
            number=pull.number,
            merge_commit_sha=getattr(pull, "merge_commit_sha", None),
            merged_at=getattr(pull, "merged_at", None),
            updated_at=getattr(pull, "updated_at", None),
            title=getattr(pull, "title", None),
            html_url=getattr(pull, "html_url", None),
        )


class Build(BaseModel):
    """One entry from a job's build list."""

    number: int
    url: Optional[str] = None


class BuildList(BaseModel):
    builds: list[Build] = Field(default_factory=list)


class Parameter(BaseModel):
    name: Optional[str] = None
    value: Any = None


class Action(BaseModel):
    parameters: list[Parameter] = Field(default_factory=list)


class Pull(BaseModel):
    """A pull request referenced by a CI job specification."""

    model_config = ConfigDict(populate_by_name=True)

    number: int
    author: Optional[str] = None
    commit: str = Field(..., alias="sha")
    title: Optional[str] = None
    link: Optional[str] = None


class Refs(BaseModel):
    pulls: list[Pull] = Field(default_factory=list)
    base_sha: Optional[str] = None
    base_ref: Optional[str] = None
    org: Optional[str] = None
    repo: Optional[str] = None


class JobSpec(BaseModel):
    """Describes which pull request and commit triggered a build."""

    refs: Refs
    type: Optional[str] = None
    job: Optional[str] = None
    buildid: Optional[str] = None

    def pull_commit(self) -> str:
        if not self.refs.pulls:
            raise JobSpecError("job spec lists no pulls")
        return self.refs.pulls[0].commit


class JobInfo(BaseModel):
    """Build detail as returned by the CI server."""

    actions: list[Action] = Field(default_factory=list)
    result: Optional[str] = None
    number: Optional[int] = None
    url: Optional[str] = None
    timestamp: Optional[int] = None

    def is_failure(self, failure_result: str = "FAILURE") -> bool:
        return self.result == failure_result

    def job_spec(self) -> JobSpec:
        """Parse the JSON document held in the last parameter of the first action."""

        if not self.actions:
            raise JobSpecError("build has no actions")
        parameters = self.actions[0].parameters
        if not parameters:
            raise JobSpecError("first action has no parameters")
        raw = parameters[-1].value
        if not isinstance(raw, str) or not raw.strip():
            raise JobSpecError(f"parameter {parameters[-1].name!r} does not hold a job spec")
        try:
            return JobSpec.model_validate_json(raw)
        except ValidationError as exc:
            raise JobSpecError(f"malformed job spec: {exc.errors()[0]['msg']}") from exc
