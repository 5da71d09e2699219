"""Merge per-repository outcomes into one bounded, ordered result set."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import islice
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Sequence

from .fetcher import RepoOutcome
from .github_api import FetchError, RateLimited
from .types import Issue, RepoRef


@dataclass(frozen=True)
class ResultSet:
    issues: tuple[Issue, ...] = ()
    failures: Mapping[RepoRef, FetchError] = field(
        default_factory=lambda: MappingProxyType({})
    )
    succeeded: int = 0

    def __iter__(self) -> Iterator[Issue]:
        return iter(self.issues)

    def __len__(self) -> int:
        return len(self.issues)

    @property
    def rate_limited(self) -> bool:
        """True if results are partial because GitHub's quota ran out."""
        return any(isinstance(e, RateLimited) for e in self.failures.values())


def aggregate(
    repos: Sequence[RepoRef],
    outcomes: Mapping[RepoRef, RepoOutcome],
    count_limit: Optional[int] = None,
) -> ResultSet:
    """Flatten outcomes in repository order, then keep the first ``count_limit`` issues.

    Repositories keep the order they were resolved in; each repository's issues
    keep the order GitHub returned them in. ``None`` means no limit.
    """
    if count_limit is not None and count_limit < 0:
        raise ValueError(f"count_limit must be non-negative, got {count_limit}")

    failures: dict[RepoRef, FetchError] = {}
    succeeded = 0

    def _ordered() -> Iterator[Issue]:
        for repo in repos:
            outcome = outcomes.get(repo)
            if outcome is None or not outcome.ok:
                continue
            yield from outcome.issues

    for repo in repos:
        outcome = outcomes.get(repo)
        if outcome is None:
            continue
        if outcome.ok:
            succeeded += 1
        else:
            failures[repo] = outcome.error

    issues = tuple(islice(_ordered(), count_limit))
    return ResultSet(
        issues=issues,
        failures=MappingProxyType(failures),
        succeeded=succeeded,
    )
