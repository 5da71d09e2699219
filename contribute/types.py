from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Dependency:
    name: str
    version: str = ""
    repository: str | None = None
    # Local source directory for path dependencies; these are never looked up on PyPI.
    path: str | None = None


@dataclass(frozen=True)
class RepoRef:
    host: str
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def key(self) -> tuple[str, str, str]:
        # GitHub treats owner and repository names case-insensitively.
        return (self.host, self.owner.lower(), self.name.lower())

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Issue:
    repo: RepoRef
    number: int
    title: str
    url: str
    labels: frozenset[str] = field(default_factory=frozenset)
    assigned: bool = False
    body: str = ""
    comments: int = 0

    def __str__(self) -> str:
        return f"[{self.repo}] #{self.number}: {self.title}"

    def to_dict(self) -> dict:
        return {
            "repo": self.repo.full_name,
            "host": self.repo.host,
            "number": self.number,
            "title": self.title,
            "url": self.url,
            "labels": sorted(self.labels),
            "comments": self.comments,
        }
