"""Fetch help-wanted issues for resolved repositories."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from .config import DEFAULT_MAX_PAGES, DEFAULT_PER_PAGE, DEFAULT_WORKERS
from .github_api import FetchCancelled, FetchError, GitHubClient, RateLimited
from .labels import LabelMatcher
from .types import Issue, RepoRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepoOutcome:
    """Result of fetching one repository: its issues, or the error that stopped it."""

    repo: RepoRef
    issues: tuple[Issue, ...] = field(default_factory=tuple)
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _label_names(item: dict[str, Any]) -> frozenset[str]:
    names = []
    for label in item.get("labels") or []:
        if isinstance(label, dict):
            name = label.get("name")
        else:
            name = label
        if isinstance(name, str) and name:
            names.append(name)
    return frozenset(names)


def parse_issue(repo: RepoRef, item: dict[str, Any]) -> Issue:
    number = int(item.get("number", 0))
    return Issue(
        repo=repo,
        number=number,
        title=(item.get("title") or "").strip(),
        url=item.get("html_url") or f"https://{repo.host}/{repo.full_name}/issues/{number}",
        labels=_label_names(item),
        assigned=bool(item.get("assignee")) or bool(item.get("assignees")),
        body=item.get("body") or "",
        comments=int(item.get("comments") or 0),
    )


class IssueFetcher:
    """Queries GitHub for open, unassigned issues labeled as wanting help."""

    def __init__(
        self,
        client: GitHubClient,
        labels: Optional[LabelMatcher] = None,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        per_page: int = DEFAULT_PER_PAGE,
        workers: int = DEFAULT_WORKERS,
    ):
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.client = client
        self.labels = labels or LabelMatcher()
        self.max_pages = max_pages
        self.per_page = per_page
        self.workers = workers

    def accepts(self, item: dict[str, Any]) -> bool:
        if item.get("pull_request"):
            return False
        if (item.get("state") or "open") != "open":
            return False
        if item.get("assignee") or item.get("assignees"):
            return False
        return self.labels.matches(_label_names(item))

    def fetch_issues(self, repo: RepoRef,
                     cancel: Optional[threading.Event] = None) -> list[Issue]:
        """All matching issues of one repository, in the order GitHub returned them.

        Raises FetchError if any page fails or ``cancel`` is set before the
        last page; pages already read are dropped.
        """
        issues: list[Issue] = []
        seen: set[int] = set()
        scanned = 0
        for page in self.client.search_pending_issues(
            repo, max_pages=self.max_pages, per_page=self.per_page, cancel=cancel,
        ):
            for item in page:
                scanned += 1
                if not self.accepts(item):
                    continue
                issue = parse_issue(repo, item)
                # Search results can shift between pages while issues get updated.
                if issue.number in seen:
                    continue
                seen.add(issue.number)
                issues.append(issue)
        logger.debug("%s: %d of %d pending issues want help", repo, len(issues), scanned)
        return issues

    def _fetch_outcome(self, repo: RepoRef, cancel: threading.Event) -> RepoOutcome:
        if self.client.tracker.is_exhausted():
            return RepoOutcome(repo, error=RateLimited(
                "Skipped: GitHub rate limit exhausted before this repository was queried",
                repo, reset_at=self.client.tracker.reset_at,
            ))
        try:
            return RepoOutcome(repo, issues=tuple(self.fetch_issues(repo, cancel)))
        except FetchCancelled as e:
            logger.debug("Fetching issues from %s cancelled: %s", repo, e)
            return RepoOutcome(repo, error=e)
        except FetchError as e:
            if e.repo is None:
                e.repo = repo
            logger.warning("Fetching issues from %s failed: %s", repo, e)
            return RepoOutcome(repo, error=e)

    def fetch_all(
        self,
        repos: Sequence[RepoRef],
        on_repo_done: Optional[Callable[[RepoOutcome], None]] = None,
    ) -> dict[RepoRef, RepoOutcome]:
        """Fetch every repository concurrently; failures stay with their repository.

        Returns once every repository has an outcome. A KeyboardInterrupt
        cancels repositories not yet started, stops running ones before their
        next page request, and propagates.
        """
        outcomes: dict[RepoRef, RepoOutcome] = {}
        if not repos:
            return outcomes

        cancel = threading.Event()
        executor = ThreadPoolExecutor(max_workers=min(self.workers, len(repos)))
        try:
            future_to_repo = {
                executor.submit(self._fetch_outcome, repo, cancel): repo for repo in repos
            }
            for future in as_completed(future_to_repo):
                outcome = future.result()
                outcomes[future_to_repo[future]] = outcome
                if on_repo_done:
                    on_repo_done(outcome)
        except BaseException:
            cancel.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return outcomes
