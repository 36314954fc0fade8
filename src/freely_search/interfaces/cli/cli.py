from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from freely_search.domain.entities import SearchRequest
from freely_search.infrastructure.composition import lifespan
from freely_search.infrastructure.config import AppConfig, load_config
from freely_search.infrastructure.logging.setup import (
    configure_logging,
    shutdown_logging,
)

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="freely-search",
        description="Federated music torrent search across indexing sites.",
    )

    # Query
    parser.add_argument("--title", default="", help="Track or album title.")
    parser.add_argument("--artist", default="", help="Artist name.")
    parser.add_argument(
        "--deadline-ms",
        default=None,
        type=int,
        help="Override the fan-out deadline (milliseconds).",
    )
    parser.add_argument(
        "--list-plugins",
        action="store_true",
        help="Print the registered plugins and exit.",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--plugin-dir",
        default=None,
        help="Override plugins directory.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    return parser.parse_args(argv)


async def _run(config: AppConfig, args: argparse.Namespace) -> list[dict[str, Any]]:
    async with lifespan(config) as state:
        if args.list_plugins:
            return [
                {"id": p.id, "name": p.name, "enabled": p.enabled}
                for p in state.plugins.list()
            ]

        await state.plugins.wait_for_logins()
        request = SearchRequest(title=args.title, artist=args.artist)
        results = await state.search_all.execute(request, deadline_ms=args.deadline_ms)
        return [c.to_dict() for c in results]


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, runs one search (or lists plugins) and
    prints the outcome as JSON on stdout. Logs go to stderr.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.plugin_dir:
        cli_overrides["plugin_dir"] = args.plugin_dir
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format
    if args.deadline_ms is not None:
        cli_overrides["search_deadline_ms"] = args.deadline_ms

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    if not args.list_plugins and not (args.title or args.artist):
        log.error("cli_missing_query", hint="pass --title and/or --artist")
        shutdown_logging()
        return 2

    try:
        output = asyncio.run(_run(config, args))
    finally:
        shutdown_logging()

    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(start())
