"""Command-line interface for the memory graph.

Usage:
    memory-graph create-entities '[{"name": "Alice", "entityType": "person", "observations": []}]'
    memory-graph create-relations '[{"from": "Alice", "to": "Bob", "relationType": "knows"}]'
    memory-graph add-observations '[{"entityName": "Alice", "contents": ["likes tea"]}]'
    memory-graph search-nodes tea
    memory-graph open-nodes Alice Bob
    memory-graph --path ~/notes/memory.jsonl read-graph
    echo '[...]' | memory-graph delete-relations -

All output on stdout is JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

from pydantic import ValidationError

from . import __version__
from .config import load_config
from .errors import ErrorKind, GraphError
from .manager import KnowledgeGraphManager
from .store import LocalFileStore
from .tools import TOOLS, call_tool

logger = logging.getLogger("memory_graph")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2

# Subcommands taking a JSON array, keyed by the tool argument they fill
_JSON_COMMANDS: dict[str, tuple[str, str]] = {
    "create-entities": ("create_entities", "entities"),
    "create-relations": ("create_relations", "relations"),
    "add-observations": ("add_observations", "observations"),
    "delete-observations": ("delete_observations", "deletions"),
    "delete-relations": ("delete_relations", "relations"),
}


def _error_envelope(command: str, error: GraphError) -> dict[str, Any]:
    return {"status": "error", "command": command, "error": error.to_dict()}


def _read_payload(raw: str) -> Any:
    """Decode a JSON argument; ``-`` reads it from stdin."""
    if raw == "-":
        raw = sys.stdin.read()
    return json.loads(raw)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="memory-graph",
        description="Persistent knowledge graph of entities, relations and observations.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--path",
        "-p",
        default=None,
        help="Path to the JSONL memory file (default: $MEMORY_FILE_PATH or ./memory.jsonl)",
    )
    parser.add_argument(
        "--cache-ttl",
        default=None,
        help="Seconds a loaded graph stays fresh (default: $MEMORY_CACHE_TTL_SECONDS or 300)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    for command, (tool_name, arg_name) in _JSON_COMMANDS.items():
        sub = subparsers.add_parser(command, help=TOOLS[tool_name].description)
        sub.add_argument("payload", help=f"JSON array of {arg_name}, or - to read it from stdin")

    delete_parser = subparsers.add_parser(
        "delete-entities",
        help=TOOLS["delete_entities"].description,
    )
    delete_parser.add_argument("names", nargs="+", help="Entity names to delete")

    subparsers.add_parser("read-graph", help=TOOLS["read_graph"].description)

    search_parser = subparsers.add_parser("search-nodes", help=TOOLS["search_nodes"].description)
    search_parser.add_argument(
        "query",
        nargs="?",
        help="Case-insensitive substring to match. Put -- before a query starting with '-'",
    )
    search_parser.add_argument(
        "--query",
        "-q",
        dest="query_option",
        default=None,
        help="Query given as an option, e.g. --query=-draft",
    )

    open_parser = subparsers.add_parser("open-nodes", help=TOOLS["open_nodes"].description)
    open_parser.add_argument("names", nargs="+", help="Entity names to open")

    subparsers.add_parser("tools", help="List the available operations and their argument schemas")

    return parser.parse_args(argv)


def _tool_call(args: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    """Translate parsed CLI arguments into a tool name and its arguments.

    Raises:
        json.JSONDecodeError: if a JSON payload cannot be decoded.
    """
    if args.command in _JSON_COMMANDS:
        tool_name, arg_name = _JSON_COMMANDS[args.command]
        return tool_name, {arg_name: _read_payload(args.payload)}
    if args.command == "delete-entities":
        return "delete_entities", {"entityNames": args.names}
    if args.command == "search-nodes":
        query = args.query_option if args.query_option is not None else args.query
        return "search_nodes", {"query": query}
    if args.command == "open-nodes":
        return "open_nodes", {"names": args.names}
    return "read_graph", {}


async def run(args: argparse.Namespace) -> tuple[dict[str, Any], int]:
    """Execute a parsed command. Returns the JSON envelope and exit code."""
    if args.command == "tools":
        return {
            "status": "ok",
            "command": "tools",
            "result": [tool.to_dict() for tool in TOOLS.values()],
        }, EXIT_OK

    try:
        config = load_config(file_path=args.path, cache_ttl_seconds=args.cache_ttl)
    except ValidationError as e:
        error = GraphError.validation(f"Invalid configuration: {e.errors()[0]['msg']}")
        return _error_envelope(args.command, error), EXIT_CONFIG

    store = LocalFileStore()
    try:
        store.ensure_directory_exists(config.file_path.parent)
    except OSError as e:
        return _error_envelope(args.command, GraphError.store("Cannot create memory directory", e)), EXIT_CONFIG

    manager = KnowledgeGraphManager.from_config(config, store=store)
    logger.debug(f"Using memory file {manager.path}")

    try:
        tool_name, arguments = _tool_call(args)
    except json.JSONDecodeError as e:
        return _error_envelope(args.command, GraphError.validation(f"Invalid JSON payload: {e}")), EXIT_ERROR

    result = await call_tool(manager, tool_name, arguments)
    if result.is_err():
        if result.error.kind == ErrorKind.STORE:
            logger.error(f"{args.command} failed: {result.error.message}", exc_info=result.error.cause)
        return _error_envelope(args.command, result.error), EXIT_ERROR

    return {"status": "ok", "command": args.command, "result": result.value}, EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # stdout is reserved for JSON output
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )

    envelope, exit_code = asyncio.run(run(args))
    print(json.dumps(envelope, indent=2, ensure_ascii=False))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
