"""Build a Schema from a YAML description.

Example YAML (orders_schema.yaml):
    tables:
      - name: products
        columns:
          - {name: id, type: integer}
          - {name: title, type: string, length: 100}
        primary_key: [id]

      - name: orders
        federation:
          name: Orders_Federation
          distribution: CustID
          column: customer_id
        columns:
          - {name: id, type: guid}
          - {name: customer_id, type: bigint}
          - {name: status, type: string, length: 20, default: open}
        primary_key: [id, customer_id]
        indexes:
          - {name: idx_orders_status, columns: [status]}
        foreign_keys:
          - name: fk_orders_customer
            columns: [customer_id]
            references: customers
            foreign_columns: [customer_id]
            on_delete: cascade

Usage:
    from shards.lib.schema_loader import load_schema
    from shards.lib.ddl import generate_federation_ddl

    for statement in generate_federation_ddl(load_schema("orders_schema.yaml")):
        print(statement)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from shards.lib.config import load_yaml
from shards.lib.errors import ConfigurationError
from shards.lib.schema import Column, ForeignKey, Index, Schema, Table

logger = logging.getLogger(__name__)

__all__ = ["load_schema", "schema_from_dict", "table_from_dict"]

_COLUMN_OPTIONS = ("nullable", "default", "length", "precision", "scale", "autoincrement")


def _require(config: Dict[str, Any], key: str, where: str) -> Any:
    value = config.get(key)
    if value in (None, "", []):
        raise ConfigurationError(f"{where} is missing '{key}'.", field=f"{where}.{key}")
    return value


def _string_list(value: Any, field: str) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{field} must be a list of column names.", field=field, value=value)
    return list(value)


def _column_from_dict(config: Dict[str, Any], where: str) -> Column:
    unknown = set(config) - {"name", "type", *_COLUMN_OPTIONS}
    if unknown:
        raise ConfigurationError(
            f"{where} has unknown option(s): {', '.join(sorted(unknown))}",
            field=where,
        )
    options = {k: config[k] for k in _COLUMN_OPTIONS if k in config}
    return Column(
        name=_require(config, "name", where),
        type=_require(config, "type", where),
        **options,
    )


def _foreign_key_from_dict(config: Dict[str, Any], where: str) -> ForeignKey:
    local_columns = _string_list(_require(config, "columns", where), f"{where}.columns")
    return ForeignKey(
        name=_require(config, "name", where),
        local_columns=local_columns,
        foreign_table=_require(config, "references", where),
        foreign_columns=_string_list(
            config.get("foreign_columns", local_columns), f"{where}.foreign_columns"
        ),
        on_delete=config.get("on_delete"),
        on_update=config.get("on_update"),
    )


def table_from_dict(config: Dict[str, Any]) -> Table:
    """Build one Table from its YAML mapping.

    Federation metadata is copied as given; incomplete metadata is only
    rejected later by the DDL generator.
    """
    name = _require(config, "name", "table")
    where = f"tables.{name}"

    columns = config.get("columns") or []
    if not isinstance(columns, list):
        raise ConfigurationError(f"{where}.columns must be a list.", field=f"{where}.columns")

    table = Table(
        name=name,
        columns=[_column_from_dict(c, f"{where}.columns[{i}]") for i, c in enumerate(columns)],
        primary_key=_string_list(config.get("primary_key") or [], f"{where}.primary_key"),
        indexes=[
            Index(
                name=_require(i, "name", f"{where}.indexes"),
                columns=_string_list(_require(i, "columns", f"{where}.indexes"), f"{where}.indexes"),
                unique=bool(i.get("unique", False)),
            )
            for i in config.get("indexes") or []
        ],
        foreign_keys=[
            _foreign_key_from_dict(fk, f"{where}.foreign_keys")
            for fk in config.get("foreign_keys") or []
        ],
    )

    federation = config.get("federation")
    if federation:
        if isinstance(federation, str):
            federation = {"name": federation}
        table.federation_name = federation.get("name")
        table.federated_on_distribution = federation.get("distribution")
        table.federated_on_column = federation.get("column")

    return table


def schema_from_dict(data: Dict[str, Any]) -> Schema:
    """Build a Schema from a parsed YAML document with a ``tables`` list."""
    tables = data.get("tables")
    if not isinstance(tables, list):
        raise ConfigurationError(
            "Schema must define a 'tables' list.",
            field="tables",
            suggestion="See shards/lib/schema_loader.py for the expected layout.",
        )
    return Schema(tables=[table_from_dict(t) for t in tables])


def load_schema(path: Union[str, Path]) -> Schema:
    """Load a schema description from a YAML file."""
    schema = schema_from_dict(load_yaml(path))
    logger.debug("Loaded %d table(s) from %s", len(schema.tables), path)
    return schema
