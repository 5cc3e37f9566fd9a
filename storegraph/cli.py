"""CLI entrypoints for storegraph commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any

from .config import ConfigError, load_config
from .graph import build_store_graph
from .logging import configure_logging
from .lookup import resolve_store
from .models import ProjectIndex
from .scanner import resolve_root
from .stores.index_cache import ProjectIndexRepository
from .summary import DEFAULT_SUBGRAPH_RADIUS, build_graph_outline, build_id_dictionary, build_store_subgraph


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Log scan progress and skipped files.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storegraph",
        description="Map nanostores stores, subscribers and derivations across a project.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("scan", "Print the full project index."),
        ("graph", "Print the store graph with hot stores."),
        ("outline", "Print store kinds, busiest directories and hubs."),
        ("ids", "Print short ids for stores and files."),
    ):
        command_parser = subparsers.add_parser(name, help=help_text)
        _add_verbose_option(command_parser, suppress_default=True)
        _add_path_argument(command_parser)

    subgraph_parser = subparsers.add_parser(
        "subgraph",
        help="Print the neighbourhood of one store.",
    )
    _add_verbose_option(subgraph_parser, suppress_default=True)
    subgraph_parser.add_argument("store", help="Store id, name or id tail.")
    _add_path_argument(subgraph_parser)
    subgraph_parser.add_argument(
        "--radius",
        type=int,
        default=DEFAULT_SUBGRAPH_RADIUS,
        help="Number of hops to include around the store.",
    )
    subgraph_parser.add_argument(
        "--file",
        default=None,
        help="Relative file path used to pick between same-named stores.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for storegraph commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = configure_logging(verbose=bool(args.verbose))

    try:
        root = resolve_root(args.path)
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")

    try:
        ttl_ms = load_config(root).cache_ttl_ms
    except ConfigError as exc:
        logger.warning("Ignoring invalid configuration: %s", exc)
        ttl_ms = None

    repository = ProjectIndexRepository() if ttl_ms is None else ProjectIndexRepository(ttl_ms)
    try:
        index = asyncio.run(repository.get_index(root))
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "scan":
        payload: Any = index
    elif args.command == "graph":
        payload = build_store_graph(index)
    elif args.command == "outline":
        payload = build_graph_outline(index)
    elif args.command == "ids":
        payload = build_id_dictionary(index)
    elif args.command == "subgraph":
        payload = _subgraph_payload(parser, index, args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    print(json.dumps(asdict(payload), indent=2))


def _subgraph_payload(
    parser: argparse.ArgumentParser, index: ProjectIndex, args: argparse.Namespace
) -> Any:
    resolution = resolve_store(index, args.store, args.file)
    if resolution is None:
        parser.exit(1, f"Store not found: {args.store}\n")
    if resolution.note:
        print(resolution.note, file=sys.stderr)
    return build_store_subgraph(index, resolution.store, args.radius)


if __name__ == "__main__":
    main(sys.argv[1:])
