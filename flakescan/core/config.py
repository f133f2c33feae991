"""Tool configuration via environment variables."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flakescan.core.errors import UnknownTestTypeError

DEFAULT_JENKINS_JOBS: dict[str, str] = {
    "ut": "ghpr_verify",
    "kafka-test": "pull_cdc_integration_kafka_test",
    "mysql-test": "pull_cdc_integration_test",
    "pulsar-test": "pull_cdc_integration_pulsar_test",
    "storage-test": "pull_cdc_integration_storage_test",
}


class Settings(BaseSettings):
    """Run-wide configuration options."""

    github_token: str | None = None
    github_base_url: str | None = None
    github_owner: str = "pingcap"
    github_repo: str = "tiflow"
    base_branch: str = "master"
    commit_lookup_page_size: int = 30
    window_page_size: int = 100
    scan_cutoff_days: int = 7
    jenkins_url: str = "https://do.pingcap.net/jenkins/job/pingcap/job/tiflow/job/"
    jenkins_jobs: dict[str, str] = dict(DEFAULT_JENKINS_JOBS)
    jenkins_user: str | None = None
    jenkins_token: str | None = None
    jenkins_timeout_seconds: float = 30.0
    failure_result: str = "FAILURE"
    fail_fast: bool = False
    report_backend: str = "off"
    report_path: str = "data/unstable_links.jsonl"
    otel_enabled: bool = False
    otel_exporter: str = "console"
    otel_otlp_endpoint: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="flakescan_", env_file=".env", extra="ignore")

    @field_validator("jenkins_url")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") + "/"

    @property
    def repo_full_name(self) -> str:
        return f"{self.github_owner}/{self.github_repo}"

    def test_types(self) -> list[str]:
        return sorted(self.jenkins_jobs)

    def job_url(self, test_type: str) -> str:
        """Return the job base URL for a test-type selector, ending in one slash."""

        job = self.jenkins_jobs.get(test_type)
        if not job:
            raise UnknownTestTypeError(test_type, self.test_types())
        return f"{self.jenkins_url}{job.strip('/')}/"


settings = Settings()
