"""Sharding library modules.

This package contains the federation shard router, the federation DDL
generator and the connection, schema and configuration helpers they use.
"""

from shards.lib.config import (
    expand_env_vars,
    expand_options,
    load_connection_config,
    load_env_file,
    parse_bool,
)
from shards.lib.connections import Connection, OdbcConnection, connect
from shards.lib.ddl import (
    FederationDDLGenerator,
    FederationDescriptor,
    generate_federation_ddl,
)
from shards.lib.errors import (
    ConfigurationError,
    InvalidDistributionValueError,
    ShardingError,
    ShardingNotImplementedError,
    TransactionActiveError,
)
from shards.lib.platform import SQLAzurePlatform
from shards.lib.router import (
    FederationMember,
    FederationShardManager,
    RouterConfig,
    ShardManager,
)
from shards.lib.schema import Column, ForeignKey, Index, Schema, Table
from shards.lib.schema_loader import load_schema, schema_from_dict

__all__ = [
    # Config
    "expand_env_vars",
    "expand_options",
    "load_connection_config",
    "load_env_file",
    "parse_bool",
    # Connections
    "Connection",
    "OdbcConnection",
    "connect",
    # DDL
    "FederationDDLGenerator",
    "FederationDescriptor",
    "generate_federation_ddl",
    # Errors
    "ConfigurationError",
    "InvalidDistributionValueError",
    "ShardingError",
    "ShardingNotImplementedError",
    "TransactionActiveError",
    # Platform
    "SQLAzurePlatform",
    # Router
    "FederationMember",
    "FederationShardManager",
    "RouterConfig",
    "ShardManager",
    # Schema
    "Column",
    "ForeignKey",
    "Index",
    "Schema",
    "Table",
    "load_schema",
    "schema_from_dict",
]
