"""
Command-line interface for Waypoint.

Usage:
    waypoint runs list [--db runs.db] [--json]
    waypoint runs show <run_id> [--db runs.db]
    waypoint runs delete <run_id> [--db runs.db]
    waypoint cursor explain "0.iterator-loop.node-1"

The store location defaults to WAYPOINT_STORE_PATH, then the "store" section
of ~/.waypoint/configuration.json, then ~/.waypoint/runs.db.
"""

import argparse
import asyncio
import json
import sys

from waypoint.config import WaypointConfig
from waypoint.errors import CursorError, RunNotFoundError
from waypoint.graph.cursor import decode_cursor, layer_ids
from waypoint.observability import configure_logging
from waypoint.storage.sqlite_store import SQLiteRunStore


def _open_store(args: argparse.Namespace) -> SQLiteRunStore:
    return SQLiteRunStore(args.db, table_name=args.table)


def cmd_runs_list(args: argparse.Namespace) -> int:
    async def _list():
        store = _open_store(args)
        try:
            return await store.list_runs()
        finally:
            await store.dispose()

    runs = asyncio.run(_list())
    if args.json:
        print(json.dumps([run.model_dump() for run in runs], indent=2))
        return 0

    if not runs:
        print("No stored runs.")
        return 0
    for run in runs:
        status = "finished" if run.finished else "interrupted"
        print(f"{run.run_id}  {status:<11}  {run.cursor}  {run.updated_at}")
    return 0


def cmd_runs_show(args: argparse.Namespace) -> int:
    async def _load():
        store = _open_store(args)
        try:
            return await store.load(args.run_id)
        finally:
            await store.dispose()

    try:
        checkpoint = asyncio.run(_load())
    except RunNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(checkpoint.model_dump_json(indent=2))
    return 0


def cmd_runs_delete(args: argparse.Namespace) -> int:
    async def _delete() -> bool:
        store = _open_store(args)
        try:
            if not await store.exists(args.run_id):
                return False
            await store.delete(args.run_id)
            return True
        finally:
            await store.dispose()

    if not asyncio.run(_delete()):
        print(f"Error: Run {args.run_id} not found", file=sys.stderr)
        return 1
    print(f"Deleted run {args.run_id}")
    return 0


def cmd_cursor_explain(args: argparse.Namespace) -> int:
    try:
        nodes = decode_cursor(args.cursor)
    except CursorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for depth, (layer_id, node) in enumerate(zip(layer_ids(nodes), nodes, strict=True)):
        print(f"{'  ' * depth}[{depth}] {layer_id} -> {node}")
    return 0


def build_parser(config: WaypointConfig | None = None) -> argparse.ArgumentParser:
    config = config or WaypointConfig()

    parser = argparse.ArgumentParser(
        prog="waypoint",
        description="Waypoint - inspect stored graph runs and cursors",
    )
    parser.add_argument("--log-level", default=config.log_level, help="Log level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # runs
    runs_parser = subparsers.add_parser("runs", help="Inspect runs saved in a SQLite store")
    runs_parser.add_argument("--db", default=config.store_path, help="SQLite database (default: %(default)s)")
    runs_parser.add_argument("--table", default=config.store_table, help="Table name (default: %(default)s)")
    runs_sub = runs_parser.add_subparsers(dest="runs_command", required=True)

    list_parser = runs_sub.add_parser("list", help="List stored runs")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_runs_list)

    show_parser = runs_sub.add_parser("show", help="Print a run's cursor and state")
    show_parser.add_argument("run_id", help="Run id")
    show_parser.set_defaults(func=cmd_runs_show)

    delete_parser = runs_sub.add_parser("delete", help="Delete a stored run")
    delete_parser.add_argument("run_id", help="Run id")
    delete_parser.set_defaults(func=cmd_runs_delete)

    # cursor
    cursor_parser = subparsers.add_parser("cursor", help="Work with cursor strings")
    cursor_sub = cursor_parser.add_subparsers(dest="cursor_command", required=True)

    explain_parser = cursor_sub.add_parser("explain", help="Show the layer stack a cursor encodes")
    explain_parser.add_argument("cursor", help='Cursor, e.g. "subgraph.interrupt"')
    explain_parser.set_defaults(func=cmd_cursor_explain)

    return parser


def main(argv: list[str] | None = None) -> int:
    config = WaypointConfig()
    parser = build_parser(config)
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, format=config.log_format)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
