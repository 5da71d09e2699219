from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional, Sequence

from .aggregator import ResultSet, aggregate
from .config import (
    DEFAULT_HELP_WANTED_LABELS,
    DEFAULT_MAX_PAGES,
    DEFAULT_WORKERS,
)
from .fetcher import IssueFetcher, RepoOutcome
from .github_api import GitHubClient
from .labels import LabelMatcher
from .manifest import read_dependencies
from .registry import PyPIClient
from .resolver import parse_repository_url, resolve_all
from .types import Dependency, RepoRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinderConfig:
    count: Optional[int] = None
    labels: tuple[str, ...] = DEFAULT_HELP_WANTED_LABELS
    max_pages: int = DEFAULT_MAX_PAGES
    workers: int = DEFAULT_WORKERS
    use_registry: bool = True


class IssueFinder:
    def __init__(
        self,
        client: GitHubClient,
        config: FinderConfig,
        registry: Optional[PyPIClient] = None,
    ) -> None:
        if config.count is not None and config.count < 0:
            raise ValueError(f"count must be non-negative, got {config.count}")
        self.client = client
        self.config = config
        self.registry = registry
        if registry is None and config.use_registry:
            self.registry = PyPIClient(timeout_s=client.timeout_s)
        self.fetcher = IssueFetcher(
            client,
            LabelMatcher(config.labels),
            max_pages=config.max_pages,
            workers=config.workers,
        )
        self.unresolved: list[str] = []

    def _with_registry_url(self, dependency: Dependency) -> Dependency:
        if parse_repository_url(dependency.repository) is not None or self.registry is None:
            return dependency
        if dependency.path is not None:
            # A PyPI package of the same name may be an unrelated project.
            logger.debug("Not looking up local dependency %s on PyPI", dependency.name)
            return dependency
        url = self.registry.repository_url(dependency.name)
        if url is None:
            return dependency
        return replace(dependency, repository=url)

    def complete_dependencies(self, dependencies: Sequence[Dependency]) -> list[Dependency]:
        """Fill in repository URLs from the registry where the manifest gives none."""
        if self.registry is None or not dependencies:
            return list(dependencies)
        with ThreadPoolExecutor(max_workers=min(self.config.workers, len(dependencies))) as pool:
            return list(pool.map(self._with_registry_url, dependencies))

    def resolve(self, dependencies: Sequence[Dependency]) -> list[RepoRef]:
        completed = self.complete_dependencies(dependencies)
        self.unresolved = [
            d.name for d in completed if parse_repository_url(d.repository) is None
        ]
        repos = resolve_all(completed)
        logger.info(
            "%d dependencies map to %d repositories (%d unresolved)",
            len(dependencies), len(repos), len(self.unresolved),
        )
        return repos

    def find(
        self,
        dependencies: Sequence[Dependency],
        on_repo_done: Optional[Callable[[RepoOutcome], None]] = None,
    ) -> ResultSet:
        repos = self.resolve(dependencies)
        if not repos:
            return ResultSet()
        outcomes = self.fetcher.fetch_all(repos, on_repo_done=on_repo_done)
        return aggregate(repos, outcomes, self.config.count)

    def find_for_project(
        self,
        project_root: str | Path,
        on_repo_done: Optional[Callable[[RepoOutcome], None]] = None,
    ) -> ResultSet:
        return self.find(read_dependencies(project_root), on_repo_done=on_repo_done)
