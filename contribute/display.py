"""Rendering suggested issues and run diagnostics."""

import json
from datetime import datetime, timezone
from typing import Callable

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .aggregator import ResultSet
from .github_api import RateLimited
from .types import Issue, RepoRef

console = Console(highlight=False, emoji=False, soft_wrap=True)
err_console = Console(stderr=True)


class FormatError(ValueError):
    pass


# placeholder -> (getter, description)
ISSUE_FORMATTERS: dict[str, tuple[Callable[[Issue], str], str]] = {
    "owner": (lambda i: i.repo.owner, "Owner of the project where the issue comes from"),
    "project": (lambda i: i.repo.name, "Issue's project name"),
    "repo": (lambda i: i.repo.full_name, "Issue's repository, equivalent to {owner}/{project}"),
    "number": (lambda i: str(i.number), "GitHub issue number (ID)"),
    "url": (lambda i: i.url, "URL to issue's HTML page on GitHub"),
    "title": (lambda i: i.title, "Issue title"),
    "body": (lambda i: i.body, "Issue body, i.e. the text of its first comment by the creator"),
    "comments": (lambda i: str(i.comments), "Number of comments the issue has"),
    "labels": (lambda i: ", ".join(sorted(i.labels)), "Comma-separated issue labels"),
}

EXAMPLE_ISSUE = Issue(
    repo=RepoRef("github.com", "Octocat", "hello-world"),
    number=42,
    title="Optimize reticulating spines",
    url="http://example.com/42",
    labels=frozenset({"help wanted"}),
    body="...",
)


def format_issue(template: str, issue: Issue) -> str:
    """Format an issue according to a user-provided ``str.format`` template."""
    params = {key: getter(issue) for key, (getter, _) in ISSUE_FORMATTERS.items()}
    try:
        return template.format(**params)
    except KeyError as e:
        raise FormatError(
            f"Unknown placeholder {{{e.args[0]}}}; available: {placeholder_list()}"
        ) from e
    except (AttributeError, IndexError, ValueError) as e:
        raise FormatError(f"Invalid format string: {e}") from e


def validate_format(template: str) -> str:
    format_issue(template, EXAMPLE_ISSUE)
    return template


def placeholder_list() -> str:
    return ", ".join(f"{{{key}}}" for key in ISSUE_FORMATTERS)


def placeholder_help() -> str:
    return "\n".join(f"  {{{key}}}  {desc}" for key, (_, desc) in ISSUE_FORMATTERS.items())


def print_issues(results: ResultSet, template: str):
    for issue in results:
        console.print(escape(format_issue(template, issue)))


def _reset_text(reset_at: int | None) -> str:
    if not reset_at:
        return ""
    when = datetime.fromtimestamp(reset_at, tz=timezone.utc)
    return f" (resets at {when:%H:%M:%S} UTC)"


def print_failures(results: ResultSet, unresolved: list[str] | None = None, authenticated: bool = True):
    """Report failed repositories on stderr without disturbing the issue list."""
    if unresolved:
        err_console.print(
            f"[dim]{len(unresolved)} dependencies have no GitHub repository: "
            f"{escape(', '.join(unresolved))}[/dim]"
        )

    if not results.failures:
        return

    table = Table(title="Repositories that could not be searched", box=box.SIMPLE, title_justify="left")
    table.add_column("Repository", style="cyan")
    table.add_column("Problem", style="yellow", width=14)
    table.add_column("Details", overflow="fold")
    for repo, error in results.failures.items():
        table.add_row(repo.full_name, error.kind, escape(str(error)))
    err_console.print(table)

    err_console.print(
        f"  {results.succeeded} repositories searched, "
        f"[red]{len(results.failures)} failed[/red]"
    )
    if results.rate_limited:
        reset_at = next(
            (e.reset_at for e in results.failures.values() if isinstance(e, RateLimited) and e.reset_at),
            None,
        )
        err_console.print(
            f"[yellow]GitHub rate limit reached; results are partial{_reset_text(reset_at)}.[/yellow]"
        )
        if not authenticated:
            err_console.print(
                "[yellow]Pass --github-token or set GITHUB_TOKEN to raise the limit.[/yellow]"
            )


def export_results_json(results: ResultSet, filepath: str):
    """Export results to a JSON file."""
    data = {
        "issues": [issue.to_dict() for issue in results],
        "failures": [
            {"repo": repo.full_name, "kind": error.kind, "message": str(error)}
            for repo, error in results.failures.items()
        ],
    }
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    err_console.print(f"\nResults exported to [cyan]{escape(filepath)}[/cyan]")
