"""Configuration constants for contribute."""

from . import __version__

USER_AGENT = f"contribute/{__version__}"

# GitHub
GITHUB_HOST = "github.com"
GITHUB_API = "https://api.github.com"
SUPPORTED_HOSTS = {
    "github.com": GITHUB_HOST,
    "www.github.com": GITHUB_HOST,
}
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")

# PyPI
PYPI_API = "https://pypi.org/pypi"
# project_urls keys checked in order; compared lowercased
SOURCE_URL_KEYS = (
    "source", "source code", "sourcecode", "repository", "code",
    "github", "git", "homepage", "home",
)

# Pagination & networking
DEFAULT_PER_PAGE = 100  # search API maximum
DEFAULT_MAX_PAGES = 10
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_WORKERS = 4

# ── Labels marking an issue as open to outside contributors ──
# Compared against canonicalized label text; glob patterns allowed.
DEFAULT_HELP_WANTED_LABELS = (
    "help wanted",
    "good first issue",
    "easy",
    "beginner",
    "*help wanted*",
)

# ── Output ───────────────────────────────────────────────────
DEFAULT_FORMAT = "[{repo}] #{number}: {title} -- {url}"

# Manifest files looked up in a project root, in order
MANIFEST_FILES = (
    "pyproject.toml",
    "requirements.txt",
    "requirements.in",
)

# Stripped from archive and clone URLs to guess a package name
ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tgz", ".zip", ".whl", ".git")
