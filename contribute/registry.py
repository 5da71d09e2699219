"""Look up a package's source repository on PyPI."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .config import DEFAULT_TIMEOUT_S, PYPI_API, SOURCE_URL_KEYS, USER_AGENT
from .resolver import parse_repository_url

logger = logging.getLogger(__name__)


def pick_repository_url(info: dict[str, Any]) -> Optional[str]:
    """Choose the most likely source-repository URL from PyPI ``info`` metadata.

    Many packages only list their GitHub page as the homepage, so that is
    tried after the dedicated source links.
    """
    project_urls = info.get("project_urls") or {}
    by_key: dict[str, str] = {}
    for key, url in project_urls.items():
        if isinstance(url, str):
            by_key.setdefault(key.strip().lower(), url)

    candidates = [by_key[k] for k in SOURCE_URL_KEYS if k in by_key]
    # Any other project URL that happens to point at a supported host
    candidates.extend(u for u in by_key.values() if u not in candidates)
    home_page = info.get("home_page")
    if isinstance(home_page, str):
        candidates.append(home_page)

    for url in candidates:
        if parse_repository_url(url) is not None:
            return url
    return None


class PyPIClient:
    def __init__(self, session: Optional[requests.Session] = None,
                 base_url: str = PYPI_API, timeout_s: float = DEFAULT_TIMEOUT_S):
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def repository_url(self, package: str) -> Optional[str]:
        """Return the repository URL PyPI lists for ``package``, or None."""
        url = f"{self.base_url}/{package}/json"
        try:
            response = self.session.get(url, timeout=self.timeout_s)
        except requests.exceptions.RequestException as e:
            logger.warning("PyPI lookup for %s failed: %s", package, e)
            return None
        if response.status_code == 404:
            logger.info("Package %s not found on PyPI", package)
            return None
        if response.status_code >= 400:
            logger.warning("PyPI lookup for %s returned HTTP %d", package, response.status_code)
            return None
        try:
            info = response.json().get("info") or {}
        except ValueError:
            logger.warning("PyPI returned malformed JSON for %s", package)
            return None

        repo_url = pick_repository_url(info)
        if repo_url:
            logger.debug("PyPI lists %s for %s", repo_url, package)
        return repo_url
