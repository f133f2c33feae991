"""GitHub-backed pull request lookups."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

import requests
from github import Github, GithubException
from github.Auth import Token
from github.PullRequest import PullRequest
from github.Repository import Repository

from flakescan.models.domain import PullRequestRef

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_DAYS = 7

_API_ERRORS = (GithubException, requests.RequestException)


def is_scan_cutoff(updated_at: datetime | None, window_start: datetime, days: int = DEFAULT_CUTOFF_DAYS) -> bool:
    """True once a PR was last updated more than ``days`` before the window start.

    Listings are sorted by update time, not merge time, so stopping here can
    miss a PR that merged inside the window but was never touched again for
    longer than the margin. The margin is a heuristic, not a guarantee.
    """

    if updated_at is None:
        return False
    return updated_at < window_start - timedelta(days=days)


class PullRequestResolver:
    """Resolve commits and merge windows to pull requests using PyGithub."""

    def __init__(
        self,
        token: str,
        *,
        owner: str,
        repo: str,
        base_url: str | None = None,
        base_branch: str = "master",
        lookup_page_size: int = 30,
        window_page_size: int = 100,
        cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    ) -> None:
        self._auth = Token(token)
        self._base_url = base_url.rstrip("/") if base_url else None
        self._repo_full_name = f"{owner}/{repo}"
        self._base_branch = base_branch
        self._lookup_page_size = lookup_page_size
        self._window_page_size = window_page_size
        self._cutoff_days = cutoff_days
        # PyGithub fixes the page size per client.
        self._clients: dict[int, Github] = {}
        self._repos: dict[int, Repository] = {}
        # Pull objects seen while listing; their commit lists need no extra lookup.
        self._pulls: dict[int, PullRequest] = {}

    @property
    def repo_full_name(self) -> str:
        return self._repo_full_name

    def find_pull_for_commit(self, sha: str) -> Optional[PullRequestRef]:
        """Return the closed PR whose merge commit is ``sha``, or None."""

        try:
            for pull in self._list_closed_pulls(self._lookup_page_size):
                if pull.merge_commit_sha == sha:
                    self._pulls[pull.number] = pull
                    return PullRequestRef.from_github(pull)
        except _API_ERRORS as exc:
            logger.error("pull request lookup failed repo=%s commit=%s: %s", self._repo_full_name, sha, exc)
            return None
        logger.warning("no closed pull request on %s has merge commit %s", self._base_branch, sha)
        return None

    def pulls_merged_between(self, start: datetime, end: datetime) -> list[PullRequestRef]:
        """Collect PRs merged strictly between ``start`` and ``end``.

        Stops scanning at the first non-matching PR for which
        :func:`is_scan_cutoff` holds. On an API error the PRs collected so far
        are returned.
        """

        collected: list[PullRequestRef] = []
        seen: set[int] = set()
        try:
            for pull in self._list_closed_pulls(self._window_page_size):
                ref = PullRequestRef.from_github(pull)
                logger.info(
                    "PR number: %s which is merged at: %s and updated at: %s",
                    ref.number,
                    ref.merged_at,
                    ref.updated_at,
                )
                if ref.merged_at is not None and start < ref.merged_at < end:
                    if ref.number not in seen:
                        seen.add(ref.number)
                        self._pulls[ref.number] = pull
                        collected.append(ref)
                    continue
                if is_scan_cutoff(ref.updated_at, start, self._cutoff_days):
                    logger.info("stopping scan at PR %s: updated before the cutoff", ref.number)
                    break
        except _API_ERRORS as exc:
            logger.error(
                "pull request listing failed repo=%s after %d matches: %s",
                self._repo_full_name,
                len(collected),
                exc,
            )
        return collected

    def last_commit_sha(self, number: int) -> Optional[str]:
        """Return the SHA of the final commit of the final page of a PR's commits."""

        last = None
        try:
            for commit in self._list_commits(number):
                last = commit
        except _API_ERRORS as exc:
            logger.error("commit listing failed repo=%s pr=%s: %s", self._repo_full_name, number, exc)
            return None
        if last is None:
            logger.warning("pull request %s has no commits", number)
            return None
        return last.sha

    def _github(self, per_page: int) -> Github:
        client = self._clients.get(per_page)
        if client is None:
            if self._base_url:
                client = Github(auth=self._auth, base_url=self._base_url, per_page=per_page)
            else:
                client = Github(auth=self._auth, per_page=per_page)
            self._clients[per_page] = client
        return client

    def _repo(self, per_page: int) -> Repository:
        repo = self._repos.get(per_page)
        if repo is None:
            repo = self._github(per_page).get_repo(self._repo_full_name, lazy=True)
            self._repos[per_page] = repo
        return repo

    def _list_closed_pulls(self, per_page: int) -> Iterable:
        return self._repo(per_page).get_pulls(
            state="closed", sort="updated", direction="desc", base=self._base_branch
        )

    def _list_commits(self, number: int) -> Iterable:
        pull = self._pulls.get(number)
        if pull is None:
            pull = self._repo(self._window_page_size).get_pull(number)
        return pull.get_commits()
