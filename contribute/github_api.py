"""GitHub API client with rate-limit tracking and cursor pagination."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Iterator, Optional

import requests

from .config import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PER_PAGE,
    DEFAULT_TIMEOUT_S,
    GITHUB_API,
    TOKEN_ENV_VARS,
    USER_AGENT,
)
from .rate_limit import RateLimitTracker
from .types import RepoRef

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Fetching issues from one repository failed."""

    def __init__(self, message: str, repo: Optional[RepoRef] = None):
        super().__init__(message)
        self.repo = repo

    @property
    def kind(self) -> str:
        return "error"


class NetworkError(FetchError):
    @property
    def kind(self) -> str:
        return "network"


class RateLimited(FetchError):
    def __init__(self, message: str, repo: Optional[RepoRef] = None,
                 reset_at: Optional[int] = None):
        super().__init__(message, repo)
        self.reset_at = reset_at

    @property
    def kind(self) -> str:
        return "rate-limited"


class HostError(FetchError):
    def __init__(self, message: str, repo: Optional[RepoRef] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, repo)
        self.status_code = status_code

    @property
    def kind(self) -> str:
        return "host"


class FetchCancelled(FetchError):
    """The run was aborted before this repository's pagination finished."""

    @property
    def kind(self) -> str:
        return "cancelled"


def token_from_env() -> Optional[str]:
    for name in TOKEN_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


class GitHubClient:
    """Handles all communication with the GitHub REST API.

    The token is optional. Anonymous requests work but GitHub allows far
    fewer of them (10 searches per minute instead of 30).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        tracker: Optional[RateLimitTracker] = None,
        session: Optional[requests.Session] = None,
        base_url: str = GITHUB_API,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.token = token
        self.tracker = tracker or RateLimitTracker()
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_env(cls, token: Optional[str] = None, **kwargs) -> "GitHubClient":
        return cls(token or token_from_env(), **kwargs)

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def _request(self, url: str, *, params: Optional[dict] = None,
                 repo: Optional[RepoRef] = None) -> requests.Response:
        if self.tracker.is_exhausted():
            raise RateLimited(
                "GitHub rate limit exhausted; request not sent",
                repo, reset_at=self.tracker.reset_at,
            )

        logger.debug("GET %s params=%s", url, params)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout_s)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Request timed out: {e}", repo) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {e}", repo) from e

        self.tracker.update(response.headers)

        if response.status_code in (403, 429):
            remaining = response.headers.get("X-RateLimit-Remaining")
            reset = response.headers.get("X-RateLimit-Reset")
            reset_at = int(reset) if reset and reset.isdigit() else None
            if remaining == "0":
                self.tracker.mark_exhausted(reset_at)
                raise RateLimited(
                    f"GitHub rate limit exceeded. Reset at epoch={reset}.",
                    repo, reset_at=reset_at,
                )
            if response.status_code == 429 or "rate limit" in response.text.lower():
                # Secondary limits are per-request throttles, not quota exhaustion.
                raise RateLimited(
                    f"GitHub secondary rate limit hit: {response.text[:200]}",
                    repo, reset_at=reset_at,
                )

        if response.status_code >= 400:
            raise HostError(
                f"GitHub API error {response.status_code}: {response.text[:500]}",
                repo, status_code=response.status_code,
            )
        return response

    def iter_pages(
        self,
        path: str,
        *,
        params: Optional[dict] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        repo: Optional[RepoRef] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield the items of each page, following the ``next`` link.

        Stops when GitHub sends no ``next`` link or after ``max_pages`` pages.
        Raises FetchCancelled instead of requesting another page once
        ``cancel`` is set.
        """
        cursor: Optional[str] = f"{self.base_url}{path}"
        page_params = dict(params or {})
        page_params.setdefault("per_page", DEFAULT_PER_PAGE)
        pages = 0

        while cursor and pages < max_pages:
            if cancel is not None and cancel.is_set():
                raise FetchCancelled(f"Cancelled after {pages} pages", repo)
            response = self._request(cursor, params=page_params, repo=repo)
            pages += 1
            try:
                payload = response.json()
            except ValueError as e:
                raise HostError(f"Malformed JSON from {cursor}: {e}", repo,
                                status_code=response.status_code) from e

            if isinstance(payload, dict):
                items = payload.get("items")
            else:
                items = payload
            if not isinstance(items, list):
                raise HostError(f"Unexpected payload shape from {cursor}", repo,
                                status_code=response.status_code)
            yield items

            # The next link already carries every query parameter.
            cursor = response.links.get("next", {}).get("url")
            page_params = None

        if cursor:
            logger.info("Stopped after %d pages for %s; more results remain.",
                        pages, repo or path)

    def search_pending_issues(
        self,
        repo: RepoRef,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        per_page: int = DEFAULT_PER_PAGE,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Pages of open, unassigned issues in a repository, most recently updated first."""
        query = " ".join([
            f"repo:{repo.owner}/{repo.name}",
            "type:issue",
            "state:open",
            "no:assignee",
        ])
        logger.debug("Search query: %s", query)
        return self.iter_pages(
            "/search/issues",
            params={"q": query, "sort": "updated", "order": "desc", "per_page": per_page},
            max_pages=max_pages,
            repo=repo,
            cancel=cancel,
        )
