"""Command-line interface -- alternative to the HTTP API."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from . import __version__
from .config.settings import cfg
from .icons.pipeline import IconPipeline, TransformKind
from .util.result import Result

console = Console()


def _report(result: Result) -> int:
    if not result:
        console.print(f"[bold red]{result.error or 'Error'}[/bold red]: {result.message}")
        return 1
    console.print(f"[green]{result.message}[/green]")
    console.print(f"icon: [bold]{result.value.reference}[/bold]")
    return 0


async def _fetch(args: argparse.Namespace) -> int:
    return _report(await IconPipeline().fetch_favicon(args.url, direct=args.direct))


async def _convert(args: argparse.Namespace) -> int:
    result = await IconPipeline().convert(
        args.kind, args.reference, color=args.color, item_url=args.item_url,
    )
    return _report(result)


async def _revert(args: argparse.Namespace) -> int:
    return _report(await IconPipeline().revert(args.reference))


def _stats(_args: argparse.Namespace) -> int:
    stats = IconPipeline().store.stats()
    table = Table(title=f"Icon store ({cfg.favicon_dir})")
    table.add_column("Family")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for row in stats["breakdown"]:
        table.add_row(row["type"], str(row["count"]), row["size_formatted"])
    table.add_row(
        "[bold]total[/bold]", str(stats["total_files"]), stats["total_size_formatted"],
    )
    console.print(table)
    return 0


def _serve(_args: argparse.Namespace) -> int:
    from .server.app import main as serve_main

    serve_main()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iconvault", description="Dashboard icon pipeline")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the HTTP server").set_defaults(func=_serve)

    p = sub.add_parser("fetch", help="Fetch and store the favicon of a website")
    p.add_argument("url")
    p.add_argument("--direct", action="store_true", help="URL points straight at an image")
    p.set_defaults(func=_fetch)

    p = sub.add_parser("convert", help="Derive a variant of a stored icon")
    p.add_argument("kind", choices=[k.value for k in TransformKind])
    p.add_argument("reference", help="favicon:<file> or selfhst:<id>")
    p.add_argument("--color", default=None, help="Theme name or #rrggbb (kind=color)")
    p.add_argument("--item-url", default="", help="Re-fetch from here if the original is broken")
    p.set_defaults(func=_convert)

    p = sub.add_parser("revert", help="Print the original behind a derived icon")
    p.add_argument("reference")
    p.set_defaults(func=_revert)

    sub.add_parser("stats", help="Show icon store statistics").set_defaults(func=_stats)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # The server entry point configures its own INFO-level logging.
    if args.func is not _serve:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
        )
    cfg.ensure_dirs()
    outcome = args.func(args)
    if asyncio.iscoroutine(outcome):
        outcome = asyncio.run(outcome)
    return outcome


if __name__ == "__main__":
    sys.exit(main())
