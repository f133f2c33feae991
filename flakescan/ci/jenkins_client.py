from __future__ import annotations

import httpx

from flakescan.models.domain import BuildList, JobInfo


class JenkinsClient:
    """Synchronous client for one Jenkins job's JSON API."""

    def __init__(
        self,
        job_url: str,
        *,
        timeout: float = 30.0,
        auth: tuple[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._job_url = job_url.rstrip("/") + "/"
        self._client = httpx.Client(
            base_url=self._job_url,
            timeout=timeout,
            auth=auth,
            transport=transport,
        )

    def __enter__(self) -> "JenkinsClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def job_url(self) -> str:
        return self._job_url

    def close(self) -> None:
        self._client.close()

    def list_builds(self) -> BuildList:
        response = self._client.get("api/json")
        response.raise_for_status()
        return BuildList.model_validate_json(response.content)

    def get_build(self, number: int) -> JobInfo:
        response = self._client.get(f"{number}/api/json")
        response.raise_for_status()
        return JobInfo.model_validate_json(response.content)

    def build_link(self, number: int) -> str:
        return f"{self._job_url}{number}"
