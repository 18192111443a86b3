"""CREATE FEDERATION DDL generation.

Folds a Schema into per-federation statement buckets and emits them as a
script that can be run batch by batch (``GO`` separated):

    CREATE FEDERATION UserFed (user_id UNIQUEIDENTIFIER)
    GO
    USE FEDERATION ROOT WITH RESET
    GO
    CREATE TABLE products (...)
    GO
    USE FEDERATION UserFed (user_id = '00000000-0000-0000-0000-000000000000') WITH RESET, FILTERING=OFF
    GO
    CREATE TABLE tasks (...) FEDERATED ON (user_id = user_id)

All CREATE TABLE batches come before all foreign key batches. Tables
without a federation go to the implicit ``_root`` federation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from shards.lib.errors import ConfigurationError
from shards.lib.platform import SQLAzurePlatform
from shards.lib.schema import Column, ForeignKey, Schema, Table

logger = logging.getLogger(__name__)

__all__ = [
    "ROOT_FEDERATION",
    "FederationDescriptor",
    "FederationDDLGenerator",
    "generate_federation_ddl",
]

ROOT_FEDERATION = "_root"

BATCH_SEPARATOR = "GO"

NIL_GUID = "00000000-0000-0000-0000-000000000000"

INTEGER_TYPES = frozenset({"integer", "smallint", "bigint"})


@dataclass(frozen=True)
class FederationDescriptor:
    """A federation discovered while walking the schema."""

    name: str
    distribution_name: str
    distribution_column: Column

    @property
    def distribution_type(self) -> str:
        return self.distribution_column.type

    def placeholder_value(self) -> str:
        """Any value of the distribution type; USE FEDERATION needs one."""
        kind = self.distribution_type.lower()
        if kind == "guid":
            return NIL_GUID
        if kind in INTEGER_TYPES:
            return "0"
        return ""


class FederationDDLGenerator:
    """Collects DDL per federation and emits it in executable order.

    Feed it with ``accept_table`` / ``accept_foreign_key`` and read the
    script with ``get_queries``, or let ``generate`` do the whole walk.
    Call ``reset`` before reusing an instance for another schema.
    """

    def __init__(self, platform: Optional[SQLAzurePlatform] = None):
        self.platform = platform or SQLAzurePlatform()
        self.federations: Dict[str, FederationDescriptor] = {}
        self.reset()

    def reset(self) -> None:
        self.federations = {}
        self._table_sql: Dict[str, List[str]] = {ROOT_FEDERATION: []}
        self._foreign_key_sql: Dict[str, List[str]] = {ROOT_FEDERATION: []}

    def _resolve_federation(self, table: Table) -> str:
        if not table.federation_name:
            return ROOT_FEDERATION

        name = table.federation_name
        if name == ROOT_FEDERATION:
            raise ConfigurationError(
                f"Table '{table.name}' uses the reserved federation name '{ROOT_FEDERATION}'.",
                field="federation_name",
                value=name,
                suggestion="Leave the federation unset to place the table in the root.",
            )
        if not table.federated_on_distribution:
            raise ConfigurationError(
                f"Table '{table.name}' is part of a federation but has no distribution name.",
                field="federated_on_distribution",
                federation=name,
            )
        if not table.federated_on_column:
            raise ConfigurationError(
                f"Table '{table.name}' is part of a federation but has no distribution column.",
                field="federated_on_column",
                federation=name,
            )

        column = table.get_column(table.federated_on_column)
        if column is None:
            raise ConfigurationError(
                f"Distribution column '{table.federated_on_column}' does not exist "
                f"in table '{table.name}'.",
                field="federated_on_column",
                value=table.federated_on_column,
                federation=name,
            )

        known = self.federations.get(name)
        if known is None:
            self.federations[name] = FederationDescriptor(
                name=name,
                distribution_name=table.federated_on_distribution,
                distribution_column=column,
            )
            self._table_sql[name] = []
            self._foreign_key_sql[name] = []
        elif (
            known.distribution_name != table.federated_on_distribution
            or known.distribution_type.lower() != column.type.lower()
        ):
            # first declaration wins
            logger.warning(
                "Table '%s' declares federation %s as (%s %s), keeping (%s %s)",
                table.name,
                name,
                table.federated_on_distribution,
                column.type,
                known.distribution_name,
                known.distribution_type,
            )

        return name

    def accept_table(self, table: Table) -> None:
        federation = self._resolve_federation(table)
        self._table_sql[federation].extend(self.platform.get_create_table_sql(table))

    def accept_foreign_key(self, local_table: Table, foreign_key: ForeignKey) -> None:
        federation = self._resolve_federation(local_table)
        self._foreign_key_sql[federation].extend(
            self.platform.get_create_foreign_key_sql(foreign_key, local_table)
        )

    def get_queries(self) -> List[str]:
        """All statements collected so far, in execution order."""
        sql = [self._create_federation_sql(f) for f in self.federations.values()]

        for buckets in (self._table_sql, self._foreign_key_sql):
            for name, statements in buckets.items():
                if statements:
                    sql.extend(self._switch_federation_sql(name))
                    sql.extend(statements)

        return sql

    def generate(self, schema: Schema) -> List[str]:
        """Walk ``schema`` from scratch and return the full script.

        On a configuration error nothing is returned and the generator is
        left empty.
        """
        self.reset()
        try:
            for table, foreign_key in schema.walk():
                if foreign_key is None:
                    self.accept_table(table)
                else:
                    self.accept_foreign_key(table, foreign_key)
        except ConfigurationError:
            self.reset()
            raise

        queries = self.get_queries()
        logger.info(
            "Generated %d statement(s) for %d federation(s)",
            len(queries),
            len(self.federations),
        )
        return queries

    def _create_federation_sql(self, federation: FederationDescriptor) -> str:
        quote = self.platform.quote_identifier
        return "CREATE FEDERATION %s (%s %s)" % (
            quote(federation.name),
            quote(federation.distribution_name),
            self.platform.render_column_type(federation.distribution_column),
        )

    def _switch_federation_sql(self, name: str) -> List[str]:
        if name == ROOT_FEDERATION:
            return [BATCH_SEPARATOR, "USE FEDERATION ROOT WITH RESET", BATCH_SEPARATOR]

        federation = self.federations[name]
        quote = self.platform.quote_identifier
        use_sql = "USE FEDERATION %s (%s = %s) WITH RESET, FILTERING=OFF" % (
            quote(federation.name),
            quote(federation.distribution_name),
            self.platform.quote_string_literal(federation.placeholder_value()),
        )
        return [BATCH_SEPARATOR, use_sql, BATCH_SEPARATOR]


def generate_federation_ddl(
    schema: Schema, platform: Optional[SQLAzurePlatform] = None
) -> List[str]:
    """Generate the federation DDL script for ``schema``."""
    return FederationDDLGenerator(platform).generate(schema)
