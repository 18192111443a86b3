"""Sharding for SQL Azure Federations.

Switch a connection between the federation root and its members, fan
reads out over every member, and generate CREATE FEDERATION scripts from
a schema description.

Usage:
    python -m shards ddl orders_schema.yaml
    python -m shards partitions --config orders.yaml
    python -m shards query-all --config orders.yaml "SELECT * FROM Customers"
"""

from shards.lib.ddl import FederationDDLGenerator, generate_federation_ddl
from shards.lib.router import FederationShardManager, ShardManager

__all__ = [
    "FederationDDLGenerator",
    "FederationShardManager",
    "ShardManager",
    "generate_federation_ddl",
]
