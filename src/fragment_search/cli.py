"""Command line entry point for building and querying fragment indexes.

Examples:
  fragment-search build docs/build/search_index.js -o search_index.fsi.json
  fragment-search build search_index.js -o index.json --workers 4 --dry-run
  fragment-search search index.json "type instability" --limit 5
  fragment-search search index.json "global variable" --json
  fragment-search inspect index.json
"""

# ruff: noqa: T201  # CLI intentionally prints operator feedback

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path
import sys
import textwrap
import time

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from fragment_search.config import get_settings
from fragment_search.domain.search import SearchResponse
from fragment_search.observability.logging import configure_logging
from fragment_search.search.analyzers import StandardAnalyzer
from fragment_search.search.errors import (
    FragmentSourceError,
    IncompatibleIndexFormatError,
    InvalidQueryParameterError,
)
from fragment_search.search.fragment_store import FragmentStore
from fragment_search.search.index import IndexBuilder
from fragment_search.search.serializer import fingerprint, load_index, save_index
from fragment_search.service_layer.search_service import SearchService


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fragment-search",
        description="Build and query full-text indexes of documentation fragments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(__doc__.split("Examples:", 1)[1]).strip() if __doc__ else None,
    )
    parser.add_argument("--log-level", default=None, help="Override FRAGMENT_SEARCH_LOG_LEVEL")
    parser.add_argument("--log-json", action="store_true", help="Emit structured JSON logs on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build an index from a fragment data file")
    build.add_argument("input", type=Path, help="search_index.js or JSON fragment file")
    build.add_argument("-o", "--output", type=Path, required=True, help="Where to write the index")
    build.add_argument(
        "--workers", type=int, default=None, help="Analysis threads (default: FRAGMENT_SEARCH_BUILD_WORKERS)"
    )
    build.add_argument("--dry-run", action="store_true", help="Build in memory without writing the index file")

    search = subparsers.add_parser("search", help="Query a built index")
    search.add_argument("index", type=Path, help="Index file written by 'build'")
    search.add_argument("query", help="Free-text query")
    search.add_argument("--limit", type=int, default=None, help="Page size (default: FRAGMENT_SEARCH_DEFAULT_LIMIT)")
    search.add_argument("--offset", type=int, default=0, help="Number of ranked results to skip")
    search.add_argument("--json", action="store_true", help="Print the response as JSON")

    inspect = subparsers.add_parser("inspect", help="Show metadata of a built index")
    inspect.add_argument("index", type=Path, help="Index file written by 'build'")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, json_output=args.log_json or settings.log_json)

    if args.command == "build":
        return _run_build(args)
    if args.command == "search":
        return _run_search(args)
    return _run_inspect(args)


def _run_build(args: argparse.Namespace) -> int:
    settings = get_settings()
    workers = args.workers if args.workers is not None else settings.build_workers
    if workers < 1:
        print("--workers must be >= 1", file=sys.stderr)
        return EXIT_USAGE

    try:
        store = FragmentStore.from_file(args.input)
    except FragmentSourceError as exc:
        print(f"Cannot load fragments: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    start = time.perf_counter()
    builder = IndexBuilder(analyzer=StandardAnalyzer(min_length=settings.min_token_length), workers=workers)
    builder.add_fragments(store)
    index, report = builder.build_with_report()
    duration = time.perf_counter() - start

    print("=== Fragment Search Index Build ===")
    print(f"Input: {args.input}")
    print(f"Fragments indexed: {report.fragments_indexed}")
    print(f"Fragments skipped: {report.fragments_skipped + store.report.skipped}")
    print(f"Distinct tokens: {report.token_count}")
    print(f"Duration: {duration:.3f}s")
    for warning in (*store.report.warnings, *report.warnings):
        print(f"  - {warning}")

    if args.dry_run:
        print("Dry run: index not written")
        return EXIT_OK

    try:
        path = save_index(index, args.output)
    except OSError as exc:
        print(f"Cannot write index: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    print(f"Output: {path}")
    print(f"Fingerprint: {fingerprint(index)}")
    return EXIT_OK


def _run_search(args: argparse.Namespace) -> int:
    service = SearchService()
    try:
        service.load(args.index)
        response = service.search_response(args.query, limit=args.limit, offset=args.offset)
    except OSError as exc:
        print(f"Cannot read index: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except (IncompatibleIndexFormatError, InvalidQueryParameterError) as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_USAGE

    if args.json:
        print(response.model_dump_json(indent=2))
    else:
        _print_response(response)
    return EXIT_OK


def _run_inspect(args: argparse.Namespace) -> int:
    try:
        index = load_index(args.index)
    except OSError as exc:
        print(f"Cannot read index: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except IncompatibleIndexFormatError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_USAGE

    stats = index.length_stats()
    table = Table(title="Index Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Format version", str(index.format_version))
    table.add_row("Fingerprint", fingerprint(index))
    table.add_row("Fragments", str(index.fragment_count))
    table.add_row("Distinct tokens", str(index.token_count))
    table.add_row("Average fragment length", f"{stats.average_length:.1f}")
    table.add_row("Longest fragment", str(stats.longest))
    Console().print(table)
    return EXIT_OK


def _print_response(response: SearchResponse) -> None:
    console = Console()
    if not response.results:
        console.print(f"No results for '{escape(response.query)}'", style="yellow")
        return

    last = response.offset + len(response.results)
    title = f"{response.offset + 1}-{last} of {response.total_count} results for '{escape(response.query)}'"
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Title", style="cyan")
    table.add_column("Location", style="magenta")
    table.add_column("Snippet")
    for hit in response.results:
        table.add_row(str(hit.rank), f"{hit.score:.3f}", Text(hit.title), Text(hit.location), Text(hit.snippet))
    console.print(table)


if __name__ == "__main__":
    sys.exit(main())
