"""Read a project's direct dependencies from its manifest."""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from .config import ARCHIVE_SUFFIXES, MANIFEST_FILES
from .registry import pick_repository_url
from .resolver import parse_repository_url
from .types import Dependency

logger = logging.getLogger(__name__)

# name[extras] (spec) ; markers   or   name[extras] @ url ; markers
REQUIREMENT_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*"
    r"(?:@\s*(?P<url>\S+)|(?P<spec>[^;]*))"
)
# pip's VCS form: git+https://github.com/o/n.git#egg=name
EGG_PATTERN = re.compile(r"#.*\begg=(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)")
URL_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
EDITABLE_PATTERN = re.compile(r"^(?:-e|--editable)(?:\s+|=)(?P<target>.+)$")


class ManifestError(Exception):
    pass


def normalize_name(name: str) -> str:
    """Normalize a Python package name per PEP 503."""
    return re.sub(r"[-_.]+", "-", name).lower()


def _name_from_filename(filename: str) -> str:
    """foo-1.2.tar.gz -> foo, lib.git -> lib"""
    stem = filename
    for suffix in ARCHIVE_SUFFIXES:
        if stem.lower().endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    return re.split(r"-\d", stem, maxsplit=1)[0] or stem


def _name_from_url(url: str) -> str:
    ref = parse_repository_url(url)
    if ref is not None:
        return ref.name
    parsed = urlparse(url)
    segments = [s for s in parsed.path.split("/") if s]
    return _name_from_filename(segments[-1]) if segments else parsed.netloc


def _is_local(location: str) -> bool:
    return location.startswith((".", "/", "~", "file:"))


def _local_path(location: str, base_dir: Optional[Path]) -> Path:
    if location.startswith("file:"):
        location = unquote(urlparse(location).path)
    path = Path(location).expanduser()
    if not path.is_absolute():
        path = (base_dir or Path(".")) / path
    return path


def _read_local_project(directory: Path) -> dict[str, Any]:
    pyproject = directory / "pyproject.toml"
    try:
        return tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Error loading manifest of local dependency at %s: %s", directory, e)
        return {}


def local_project_metadata(directory: Path) -> tuple[Optional[str], Optional[str]]:
    """(name, repository URL) declared by the pyproject.toml in ``directory``.

    Like a PyPI lookup, source links are preferred over the homepage.
    """
    data = _read_local_project(directory)
    project = data.get("project") or {}
    poetry = (data.get("tool") or {}).get("poetry") or {}

    project_urls = dict(project.get("urls") or {})
    project_urls.update(poetry.get("urls") or {})
    for key in ("repository", "homepage"):
        if isinstance(poetry.get(key), str):
            project_urls.setdefault(key, poetry[key])

    name = project.get("name") or poetry.get("name")
    url = pick_repository_url({"project_urls": project_urls})
    return (name if isinstance(name, str) else None), url


def _local_dependency(location: str, base_dir: Optional[Path], *,
                      name: Optional[str] = None, version: str = "") -> Dependency:
    directory = _local_path(location, base_dir)
    declared_name, url = local_project_metadata(directory) if directory.is_dir() else (None, None)
    if url is None:
        logger.info("Local dependency at %s declares no repository", directory)
    return Dependency(
        name=name or declared_name or _name_from_filename(directory.name),
        version=version,
        repository=url,
        path=str(directory),
    )


def parse_requirement(line: str, base_dir: Optional[Path] = None) -> Dependency | None:
    """Parse one PEP 508 requirement string or pip direct reference.

    Examples:
        "flask>=2.0"                          -> Dependency("flask", ">=2.0")
        "requests[security]"                  -> Dependency("requests", "")
        "numpy==1.24; python_version >= '3.8'" -> Dependency("numpy", "==1.24")
        "lib @ git+https://github.com/o/lib"  -> Dependency("lib", "", "git+https://github.com/o/lib")
        "git+https://github.com/o/lib.git"    -> Dependency("lib", "", "git+https://github.com/o/lib.git")

    Local paths are read relative to ``base_dir``.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    location = text.split("#", 1)[0].strip()
    egg = EGG_PATTERN.search(text)
    egg_name = egg.group("name") if egg else None
    if _is_local(location):
        return _local_dependency(location, base_dir, name=egg_name)
    if URL_PATTERN.match(location):
        return Dependency(name=egg_name or _name_from_url(location), repository=location)

    match = REQUIREMENT_PATTERN.match(text)
    if not match:
        return None
    name = match.group("name")
    url = match.group("url")
    if url:
        url = url.rstrip(";")
        if url.startswith("file:"):
            return _local_dependency(url, base_dir, name=name)
        return Dependency(name=name, repository=url)
    spec = (match.group("spec") or "").strip().strip("()").strip()
    return Dependency(name=name, version=spec)


def parse_requirements_txt(text: str, base_dir: Optional[Path] = None) -> list[Dependency]:
    deps: list[Dependency] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if " #" in line:
            line = line[: line.index(" #")].strip()
        if line.startswith("-"):
            editable = EDITABLE_PATTERN.match(line)
            if editable is None:
                # pip options: -r, -c, --index-url, ...
                continue
            line = editable.group("target").strip()
        dep = parse_requirement(line, base_dir)
        if dep is not None:
            deps.append(dep)
    return deps


def _poetry_dependency(name: str, value, base_dir: Optional[Path]) -> Dependency:
    if isinstance(value, str):
        return Dependency(name=name, version=value)
    if isinstance(value, list):
        # multiple-constraint form: one entry per Python/platform marker
        value = next((v for v in value if isinstance(v, dict)), {})
    if isinstance(value, dict):
        version = str(value.get("version", ""))
        if isinstance(value.get("path"), str):
            return _local_dependency(value["path"], base_dir, name=name, version=version)
        url = value.get("git") or value.get("url")
        return Dependency(
            name=name,
            version=version,
            repository=url if isinstance(url, str) else None,
        )
    return Dependency(name=name)


def _load_toml(text: str) -> dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"Invalid pyproject.toml: {e}") from e


def _pyproject_dependencies(data: dict[str, Any],
                            base_dir: Optional[Path]) -> list[Dependency] | None:
    """Dependencies from PEP 621 and Poetry tables; None when neither table exists."""
    project = data.get("project") or {}
    poetry = (data.get("tool") or {}).get("poetry") or {}
    if "dependencies" not in project and "dependencies" not in poetry:
        return None

    deps: list[Dependency] = []
    for requirement in project.get("dependencies") or []:
        dep = parse_requirement(requirement, base_dir)
        if dep is not None:
            deps.append(dep)

    for name, value in (poetry.get("dependencies") or {}).items():
        if name.lower() == "python":
            continue
        deps.append(_poetry_dependency(name, value, base_dir))
    return deps


def parse_pyproject_toml(text: str, base_dir: Optional[Path] = None) -> list[Dependency]:
    return _pyproject_dependencies(_load_toml(text), base_dir) or []


def _dedupe(deps: list[Dependency]) -> list[Dependency]:
    seen: set[str] = set()
    out: list[Dependency] = []
    for dep in deps:
        key = normalize_name(dep.name)
        if key in seen:
            continue
        seen.add(key)
        out.append(dep)
    return out


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read {path}: {e}") from e


def _locate_manifest(project_root: str | Path) -> tuple[Path, list[Dependency] | None]:
    """The manifest to read, plus its dependencies when finding it meant parsing it."""
    root = Path(project_root)
    if root.is_file():
        return root, None
    if not root.is_dir():
        raise ManifestError(f"No such file or directory: {root}")

    for filename in MANIFEST_FILES:
        candidate = root / filename
        if not candidate.is_file():
            continue
        if filename == "pyproject.toml":
            deps = _pyproject_dependencies(_load_toml(_read_text(candidate)), root)
            if deps is None:
                # Only configures tools; keep looking.
                logger.debug("%s has no dependency tables", candidate)
                continue
            return candidate, _dedupe(deps)
        return candidate, None
    raise ManifestError(
        f"No dependency manifest found in {root} (looked for {', '.join(MANIFEST_FILES)})"
    )


def find_manifest(project_root: str | Path) -> Path:
    return _locate_manifest(project_root)[0]


def read_manifest(path: str | Path) -> list[Dependency]:
    path = Path(path)
    text = _read_text(path)
    if path.suffix == ".toml":
        deps = parse_pyproject_toml(text, path.parent)
    else:
        deps = parse_requirements_txt(text, path.parent)
    return _dedupe(deps)


def read_dependencies(project_root: str | Path) -> list[Dependency]:
    """Direct dependencies of the project at ``project_root``, in declaration order.

    ``project_root`` may be a directory or a manifest file. An empty list is
    not an error: the project simply declares no dependencies.
    """
    path, deps = _locate_manifest(project_root)
    if deps is None:
        deps = read_manifest(path)
    logger.info("Read %d dependencies from %s", len(deps), path)
    return deps
