"""Application dependency wiring."""

from __future__ import annotations

from functools import lru_cache

from flakescan.ci.jenkins_client import JenkinsClient
from flakescan.core.config import Settings
from flakescan.core.errors import MissingCredentialError
from flakescan.scm.pull_requests import PullRequestResolver
from flakescan.services.build_scanner import BuildScanner
from flakescan.services.unstable_links import UnstableLinkService
from flakescan.telemetry import ReportExporter


@lru_cache
def get_settings() -> Settings:
    return Settings()


def build_github_resolver(config: Settings) -> PullRequestResolver:
    if not config.github_token:
        raise MissingCredentialError()
    return PullRequestResolver(
        token=config.github_token,
        owner=config.github_owner,
        repo=config.github_repo,
        base_url=config.github_base_url,
        base_branch=config.base_branch,
        lookup_page_size=config.commit_lookup_page_size,
        window_page_size=config.window_page_size,
        cutoff_days=config.scan_cutoff_days,
    )


def build_jenkins_client(config: Settings, test_type: str) -> JenkinsClient:
    auth = None
    if config.jenkins_user and config.jenkins_token:
        auth = (config.jenkins_user, config.jenkins_token)
    return JenkinsClient(
        config.job_url(test_type),
        timeout=config.jenkins_timeout_seconds,
        auth=auth,
    )


def build_service(
    config: Settings,
    jenkins: JenkinsClient,
    exporter: ReportExporter | None = None,
) -> UnstableLinkService:
    scanner = BuildScanner(
        jenkins,
        failure_result=config.failure_result,
        fail_fast=config.fail_fast,
    )
    return UnstableLinkService(build_github_resolver(config), scanner, exporter=exporter)
