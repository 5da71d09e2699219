from __future__ import annotations

import argparse
import logging
import sys

from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import DEFAULT_FORMAT, DEFAULT_HELP_WANTED_LABELS, DEFAULT_MAX_PAGES, DEFAULT_WORKERS
from .display import (
    FormatError,
    err_console,
    export_results_json,
    placeholder_help,
    print_failures,
    print_issues,
    validate_format,
)
from .finder import FinderConfig, IssueFinder
from .github_api import GitHubClient
from .manifest import ManifestError


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"count must be non-negative, got {number}")
    return number


def _positive_int(value: str) -> int:
    number = _non_negative_int(value)
    if number == 0:
        raise argparse.ArgumentTypeError("value must be at least 1")
    return number


def _format_template(value: str) -> str:
    try:
        return validate_format(value)
    except FormatError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contribute",
        description=(
            "Look at this project's dependencies and suggest some of their open issues"
            " as potential avenues for making contributions (pull requests)."
        ),
        epilog="Format placeholders:\n" + placeholder_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--manifest-path",
        default=".",
        metavar="PATH",
        help="Project directory or manifest (pyproject.toml, requirements.txt) to look through.",
    )
    parser.add_argument(
        "-n", "--count",
        type=_non_negative_int,
        default=None,
        metavar="N",
        help="Maximum number of suggested issues to yield (default: all).",
    )
    parser.add_argument(
        "--github-token", "--token",
        dest="github_token",
        default=None,
        metavar="TOKEN",
        help="GitHub personal access token. Falls back to GITHUB_TOKEN or GH_TOKEN.",
    )
    parser.add_argument(
        "-T", "--format", "--template",
        dest="format",
        type=_format_template,
        default=DEFAULT_FORMAT,
        metavar="FORMAT",
        help="Format string for printing suggested issues (see placeholders below).",
    )
    parser.add_argument(
        "--label",
        dest="labels",
        action="append",
        default=None,
        metavar="LABEL",
        help=(
            "Accepted help-wanted label; repeat for several. Globs like '*help*' are allowed."
            f" Default: {', '.join(DEFAULT_HELP_WANTED_LABELS)}."
        ),
    )
    parser.add_argument(
        "--max-pages",
        type=_positive_int,
        default=DEFAULT_MAX_PAGES,
        help="Maximum result pages requested per repository.",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=DEFAULT_WORKERS,
        help="Repositories searched concurrently.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not ask PyPI for repository URLs missing from the manifest.",
    )
    parser.add_argument(
        "--json-out",
        default=None,
        help="Optional output path to write the suggested issues as JSON.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0,
                           help="Increase logging verbosity.")
    verbosity.add_argument("-q", "--quiet", action="count", default=0,
                           help="Decrease logging verbosity.")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(verbosity: int) -> None:
    if verbosity <= -1:
        level = logging.ERROR
    elif verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=verbosity > 1)],
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    verbosity = args.verbose - args.quiet
    setup_logging(verbosity)

    config = FinderConfig(
        count=args.count,
        labels=tuple(args.labels) if args.labels else DEFAULT_HELP_WANTED_LABELS,
        max_pages=args.max_pages,
        workers=args.workers,
        use_registry=not args.offline,
    )

    try:
        client = GitHubClient.from_env(token=args.github_token)
        finder = IssueFinder(client, config)
        results = finder.find_for_project(args.manifest_path)
    except (ManifestError, ValueError) as error:
        err_console.print(f"[red]Error:[/red] {escape(str(error))}")
        return 1
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/yellow]")
        return 130

    try:
        print_issues(results, args.format)
        if verbosity >= 0:
            print_failures(results, finder.unresolved, authenticated=client.authenticated)

        if args.json_out:
            export_results_json(results, args.json_out)
    except (FormatError, OSError) as error:
        # Templates are only validated against the example issue.
        err_console.print(f"[red]Error:[/red] {escape(str(error))}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
