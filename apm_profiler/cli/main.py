"""Diagnostic CLI for the profiler bootstrap.

Shows what the profiler would resolve from the current environment:

    apm-profiler-env show
    apm-profiler-env env
    apm-profiler-env integrations [--path PATH]

``--env-file`` loads a dotenv file first, to reproduce a host's environment.
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from apm_profiler import __version__

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with all subcommands.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="apm-profiler-env",
        description="Inspect the APM profiler's environment configuration",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Load environment variables from a dotenv file first",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("show", help="Show the resolved settings")
    subparsers.add_parser("env", help="List profiler-related environment variables")

    integrations_parser = subparsers.add_parser(
        "integrations", help="Load and summarise the integrations manifest"
    )
    integrations_parser.add_argument(
        "--path",
        type=str,
        default=None,
        help="Manifest path (default: ELASTIC_APM_PROFILER_INTEGRATIONS)",
    )

    return parser


def _show() -> int:
    from apm_profiler.settings import load_settings

    settings = load_settings()

    table = Table(title="APM profiler settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    dir_state = "" if settings.log_dir_valid else " [red](unusable)[/red]"
    table.add_row("Log targets", ", ".join(t.value for t in settings.log_targets))
    table.add_row("Log level", settings.log_level.name)
    table.add_row("Log directory", f"{escape(str(settings.log_dir))}{dir_state}")
    integrations_path = (
        escape(settings.integrations_path)
        if settings.integrations_path
        else "[yellow]not set[/yellow]"
    )
    table.add_row("Integrations", integrations_path)
    table.add_row("Log IL", str(settings.log_il))
    table.add_row("CallTarget enabled", str(settings.calltarget_enabled))
    table.add_row("Inlining enabled", str(settings.enable_inlining))
    table.add_row("Optimizations disabled", str(settings.disable_optimizations))

    console.print(table)
    return 0


def _env() -> int:
    from apm_profiler.env import get_env_vars

    listing = get_env_vars()
    if not listing:
        console.print("[yellow]No profiler environment variables set[/yellow]")
        return 0
    console.print(listing, highlight=False, markup=False)
    return 0


def _integrations(path: Optional[str]) -> int:
    from apm_profiler.errors import IntegrationsLoadError
    from apm_profiler.integrations import (
        load_integrations,
        load_integrations_from_path,
    )

    try:
        integrations = (
            load_integrations_from_path(path) if path else load_integrations()
        )
    except IntegrationsLoadError as e:
        code = e.code & 0xFFFFFFFF
        console.print(f"[red]{escape(str(e))}[/red] (HRESULT {code:#010x})")
        return 1

    table = Table(title=f"{len(integrations)} integrations")
    table.add_column("Name", style="cyan")
    table.add_column("Replacements", justify="right")
    table.add_column("Target assemblies")
    for integration in integrations:
        assemblies = sorted(
            {
                r.target.assembly
                for r in integration.method_replacements
                if r.target is not None
            }
        )
        table.add_row(
            escape(integration.name),
            str(len(integration.method_replacements)),
            ", ".join(assemblies),
        )
    console.print(table)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and dispatch to the selected command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Readers log defaults at INFO; only surface problems on the console
    logger.remove()
    logger.add(sys.stderr, level="WARNING", format="{level: <7} | {message}")

    if args.env_file:
        from apm_profiler.settings import load_env

        load_env(args.env_file)

    if args.command is None:
        parser.print_help()
        return 0

    logger.debug(f"CLI command: {args.command}")

    if args.command == "show":
        return _show()
    if args.command == "env":
        return _env()
    if args.command == "integrations":
        return _integrations(args.path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
