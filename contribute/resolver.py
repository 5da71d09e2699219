"""Map dependencies to the GitHub repositories that host them."""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import urlparse

from .config import SUPPORTED_HOSTS
from .types import Dependency, RepoRef

logger = logging.getLogger(__name__)

# git@github.com:owner/name.git
SCP_URL_PATTERN = re.compile(r"^[\w.-]+@(?P<host>[\w.-]+):(?P<path>.+)$")
SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

URL_SCHEMES = ("http", "https", "git", "ssh", "git+https", "git+http", "git+ssh")


def _split_url(url: str) -> tuple[str, str] | None:
    """Return (host, path) for a URL or scp-style Git address."""
    url = url.strip()
    if not url:
        return None

    match = SCP_URL_PATTERN.match(url)
    if match and "://" not in url:
        return match.group("host").lower(), match.group("path")

    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme.lower() not in URL_SCHEMES or not parsed.hostname:
        return None
    return parsed.hostname.lower(), parsed.path


def parse_repository_url(url: str | None) -> RepoRef | None:
    if not url:
        return None
    parts = _split_url(url)
    if parts is None:
        logger.debug("Malformed repository URL: %r", url)
        return None

    host, path = parts
    canonical_host = SUPPORTED_HOSTS.get(host)
    if canonical_host is None:
        logger.debug("Unsupported repository host %s in %s", host, url)
        return None

    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        return None
    owner, name = segments[0], segments[1]
    # pip direct references pin a revision as name.git@ref
    name = name.split("@", 1)[0]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not SEGMENT_PATTERN.match(owner) or not SEGMENT_PATTERN.match(name):
        return None
    if name in (".", ".."):
        return None
    return RepoRef(host=canonical_host, owner=owner, name=name)


def resolve(dependency: Dependency) -> RepoRef | None:
    """Determine the repository of a dependency from its declared URL.

    Returns None when the dependency has no URL, or the URL is malformed or
    points at a host we cannot query.
    """
    ref = parse_repository_url(dependency.repository)
    if ref is None:
        logger.info("No resolvable repository for dependency %s", dependency.name)
    else:
        logger.debug("Dependency %s resolved to %s", dependency.name, ref)
    return ref


def resolve_all(dependencies: Iterable[Dependency]) -> list[RepoRef]:
    """Resolve dependencies in order, keeping the first ref for each repository."""
    seen: set[tuple[str, str, str]] = set()
    repos: list[RepoRef] = []
    for dependency in dependencies:
        ref = resolve(dependency)
        if ref is None or ref.key in seen:
            continue
        seen.add(ref.key)
        repos.append(ref)
    return repos
