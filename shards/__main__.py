"""CLI entry point.

Usage:
    python -m shards ddl orders_schema.yaml
    python -m shards ddl orders_schema.yaml -o create_federations.sql
    python -m shards partitions --config orders.yaml
    python -m shards query-all --config orders.yaml "SELECT * FROM Customers WHERE Region = ?" --param EU

Connection configs may reference ${VARS}; use --env-file to load them from
a .env file first.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from shards.lib.config import load_connection_config, load_env_file
from shards.lib.connections import connect
from shards.lib.ddl import generate_federation_ddl
from shards.lib.errors import ShardingError
from shards.lib.logging import setup_logging
from shards.lib.router import FederationShardManager
from shards.lib.schema_loader import load_schema

logger = logging.getLogger(__name__)


def cmd_ddl(args: argparse.Namespace) -> int:
    """Print or write the federation DDL for a schema file."""
    script = "\n".join(generate_federation_ddl(load_schema(args.schema))) + "\n"

    if args.output:
        Path(args.output).write_text(script, encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        sys.stdout.write(script)
    return 0


def cmd_partitions(args: argparse.Namespace) -> int:
    """List the members of the configured federation."""
    with connect(load_connection_config(args.config)) as conn:
        manager = FederationShardManager(conn)
        members = manager.list_partitions()

    if not members:
        print(f"No members found for federation {manager.federation_name}.")
        return 0

    print(f"Members of {manager.federation_name}:")
    print()
    print(f"  {'Id':<10}  {'Key':<20}  {'Range low':<38}  Range high")
    print(f"  {'-' * 10}  {'-' * 20}  {'-' * 38}  {'-' * 38}")
    for m in members:
        print(f"  {m.id!s:<10}  {m.distribution_key!s:<20}  {m.range_low!s:<38}  {m.range_high}")
    return 0


def cmd_query_all(args: argparse.Namespace) -> int:
    """Run a query on every federation member and print JSON rows."""
    with connect(load_connection_config(args.config)) as conn:
        manager = FederationShardManager(conn)
        rows = manager.query_all_partitions(args.sql, args.param)

    json.dump(rows, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shards",
        description="SQL Azure Federations: routing helpers and DDL generation",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--env-file", help="Load environment variables from this .env file")

    sub = parser.add_subparsers(dest="command", required=True)

    ddl = sub.add_parser("ddl", help="Generate CREATE FEDERATION DDL from a schema YAML")
    ddl.add_argument("schema", type=Path, help="Path to schema YAML file")
    ddl.add_argument("-o", "--output", help="Write the script to this file instead of stdout")
    ddl.set_defaults(func=cmd_ddl)

    partitions = sub.add_parser("partitions", help="List federation members")
    partitions.add_argument("--config", required=True, type=Path, help="Connection YAML file")
    partitions.set_defaults(func=cmd_partitions)

    query_all = sub.add_parser("query-all", help="Run a query on every federation member")
    query_all.add_argument("--config", required=True, type=Path, help="Connection YAML file")
    query_all.add_argument("sql", help="SQL to run on each member")
    query_all.add_argument(
        "--param",
        action="append",
        default=[],
        help="Positional query parameter (repeatable)",
    )
    query_all.set_defaults(func=cmd_query_all)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, json_format=args.json_logs, log_file=args.log_file)

    if args.env_file:
        load_env_file(args.env_file)

    try:
        return args.func(args)
    except ShardingError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
