"""
edgeprobe/main.py
Entry point for the edge function test pipeline.

Usage:
    python -m edgeprobe discover
    python -m edgeprobe full --verbose
    python -m edgeprobe run --category core --category payment
    python -m edgeprobe run --function lookup-barcode --headed
    python -m edgeprobe status
"""

from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from edgeprobe.config import Settings, load_config
from edgeprobe.errors import CatalogError, ConfigError
from edgeprobe.graph import MODES, run_pipeline
from edgeprobe.log import setup_logging
from edgeprobe.state import Category, RunOptions
from edgeprobe.tools.catalog_tool import load_catalog
from edgeprobe.tools.generate_tests_tool import GENERATED_GLOB
from edgeprobe.tools.report_builder_tool import exit_code, load_latest

console = Console()

COMMANDS = (*MODES, "status", "help")
REPORTERS = ("html", "list", "json", "junit")

_EPILOG = f"""\
Categories:
  {", ".join(c.value for c in Category)}

Environment variables:
  FUNCTIONS_URL              Base URL the functions are served from
  SUPABASE_URL               Auth server used for the bearer token exchange
  SUPABASE_ANON_KEY          Anonymous key
  SUPABASE_SERVICE_ROLE_KEY  Privileged key (admin functions)
  CRON_SECRET                Secret for scheduled functions
  TEST_USER_EMAIL            Test account email
  TEST_USER_PASSWORD         Test account password
  EDGEPROBE_CONFIG           Config file (default: ./edgeprobe.yaml)
  EDGEPROBE_BASE_DIR         Project root to scan (default: cwd)
"""


class CliParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit 1, like every other failure."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = CliParser(
        prog="edgeprobe",
        description="Discover edge functions, generate contract tests and run them",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="help",
        choices=COMMANDS,
        help="discover | generate | run | full (discover → generate → run) | status | help",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed output")
    parser.add_argument("--headed", action="store_true", help="Run the browser in headed mode")
    parser.add_argument("--no-parallel", action="store_true", help="Run tests in a single worker")
    parser.add_argument(
        "--category",
        action="append",
        default=[],
        choices=[c.value for c in Category],
        metavar="NAME",
        help="Filter by category (repeatable)",
    )
    parser.add_argument(
        "--function", action="append", default=[], metavar="NAME", help="Filter by function name (repeatable)"
    )
    parser.add_argument("--reporter", default=None, choices=REPORTERS, help="Report format (default: html)")
    parser.add_argument("--config", default=None, help="Path to edgeprobe.yaml")
    return parser


def show_status(cfg: Settings) -> None:
    """Print catalog, generated suite and latest run."""
    console.print(Rule("[bold]Test Suite Status[/bold]"))

    try:
        discovery = load_catalog(cfg.catalog_path)
    except CatalogError as exc:
        console.print(str(exc), style="yellow", markup=False)
        discovery = None
    if discovery:
        console.print(f"Functions discovered: [bold]{discovery['total_functions']}[/bold]")
        console.print(f"Last discovery: {discovery['discovery_timestamp']}")
        console.print("\nCategories:")
        for category, count in discovery["categories"].items():
            if count > 0:
                console.print(f"  {category}: {count}")
    else:
        console.print('No discovery results found. Run "discover" first.')

    if cfg.generated_dir.is_dir():
        files = sorted(p.name for p in cfg.generated_dir.glob(GENERATED_GLOB))
        console.print(f"\nGenerated test files: [bold]{len(files)}[/bold]")
        for name in files:
            console.print(f"  - {name}")
    else:
        console.print('\nNo generated tests found. Run "generate" first.')

    latest = load_latest(cfg)
    if latest:
        console.print(f"\nLatest run: {latest['timestamp']}")
        execution = latest.get("execution")
        if execution:
            console.print(f"  Passed:  [green]{execution['passed']}[/green]")
            console.print(f"  Failed:  [red]{execution['failed']}[/red]")
            console.print(f"  Skipped: [yellow]{execution['skipped']}[/yellow]")
        if latest["errors"]:
            console.print(f"  Errors:  [red]{len(latest['errors'])}[/red]")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    if args.command == "help":
        parser.print_help()
        return 0

    try:
        cfg = Settings(load_config(args.config))
    except ConfigError as exc:
        console.print(f"[bold red]CONFIG ERROR:[/bold red] {escape(str(exc))}")
        return 1

    if args.command == "status":
        show_status(cfg)
        return 0

    console.print(Rule(f"[bold]Edge Functions Test Runner | {args.command}[/bold]"))
    options = RunOptions(
        mode=args.command,
        categories=args.category,
        functions=args.function,
        parallel=not args.no_parallel,
        headed=args.headed,
        reporter=args.reporter or cfg.default_reporter,
        verbose=args.verbose,
    )
    result = run_pipeline(options, cfg)
    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
