"""SQL Azure platform: identifier quoting and DDL rendering.

The router only needs ``quote_identifier``; the DDL generator also uses
type rendering and the CREATE TABLE / foreign key builders.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, List, Optional

from shards.lib.config import parse_bool
from shards.lib.errors import ConfigurationError
from shards.lib.schema import Column, ForeignKey, Index, Table

__all__ = ["SQLAzurePlatform"]

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# T-SQL reserved keywords plus the federation statement keywords; these
# must be bracket-quoted even though they look like plain identifiers
_RESERVED_WORDS = frozenset(
    """
    add all alter and any as asc authorization backup begin between break
    browse bulk by cascade case check checkpoint close clustered coalesce
    collate column commit compute constraint contains containstable continue
    convert create cross current current_date current_time current_timestamp
    current_user cursor database dbcc deallocate declare default delete deny
    desc disk distinct distributed double drop dump else end errlvl escape
    except exec execute exists exit external federation fetch file fillfactor
    filtering for foreign freetext freetexttable from full function go goto
    grant group having holdlock identity identity_insert identitycol if in
    index inner insert intersect into is join key kill left like lineno load
    merge national nocheck nonclustered not null nullif of off offsets on open
    opendatasource openquery openrowset openxml option or order outer over
    percent pivot plan precision primary print proc procedure public
    raiserror read readtext reconfigure references replication reset restore
    restrict return revert revoke right rollback root rowcount rowguidcol rule
    save schema securityaudit select session_user set setuser shutdown some
    statistics system_user table tablesample textsize then to top tran
    transaction trigger truncate tsequal union unique unpivot update
    updatetext use user values varying view waitfor when where while with
    writetext
    """.split()
)


class SQLAzurePlatform:
    """SQL rendering rules for SQL Azure (SQL Server dialect)."""

    name = "sqlazure"

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier only when it needs it.

        Plain names pass through unchanged so generated statements stay
        readable; anything else is bracket-quoted with ``]`` doubled.
        """
        if _PLAIN_IDENTIFIER.match(name) and name.lower() not in _RESERVED_WORDS:
            return name
        return "[" + name.replace("]", "]]") + "]"

    def render_type(
        self,
        type_name: str,
        length: Optional[int] = None,
        precision: Optional[int] = None,
        scale: Optional[int] = None,
    ) -> str:
        """Render a semantic type name as a SQL Azure column type."""
        kind = type_name.lower()
        if kind == "guid":
            return "UNIQUEIDENTIFIER"
        if kind == "integer":
            return "INT"
        if kind == "smallint":
            return "SMALLINT"
        if kind == "bigint":
            return "BIGINT"
        if kind == "string":
            return f"NVARCHAR({length or 255})"
        if kind == "text":
            return "NVARCHAR(MAX)"
        if kind == "boolean":
            return "BIT"
        if kind == "datetime":
            return "DATETIME2(6)"
        if kind == "date":
            return "DATE"
        if kind == "time":
            return "TIME(0)"
        if kind == "decimal":
            return f"NUMERIC({precision or 10}, {scale or 0})"
        if kind == "float":
            return "FLOAT"
        if kind == "binary":
            return f"VARBINARY({length or 255})"
        if kind == "blob":
            return "VARBINARY(MAX)"
        raise ConfigurationError(
            f"Unknown column type '{type_name}'.",
            field="type",
            value=type_name,
        )

    def render_column_type(self, column: Column) -> str:
        return self.render_type(
            column.type,
            length=column.length,
            precision=column.precision,
            scale=column.scale,
        )

    def render_default(self, column: Column) -> str:
        """Render a column default as a literal matching the column type.

        Boolean defaults may be written as true/false, yes/no, on/off or
        1/0 and render as ``1``/``0``.
        """
        value = column.default
        kind = column.type.lower()
        if kind == "boolean":
            return "1" if parse_bool(value, field=f"{column.name}.default") else "0"
        if isinstance(value, bool):
            return "1" if value else "0"
        if kind in ("integer", "smallint", "bigint", "decimal", "float") and isinstance(
            value, (int, float, Decimal)
        ):
            return str(value)
        return self.quote_string_literal(str(value))

    def quote_string_literal(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def get_column_declaration_sql(self, column: Column) -> str:
        sql = f"{self.quote_identifier(column.name)} {self.render_column_type(column)}"
        if column.default is not None:
            sql += f" DEFAULT {self.render_default(column)}"
        if not column.nullable:
            sql += " NOT NULL"
        if column.autoincrement:
            sql += " IDENTITY"
        return sql

    def get_create_table_sql(self, table: Table) -> List[str]:
        """CREATE TABLE plus one CREATE INDEX per secondary index."""
        parts = [self.get_column_declaration_sql(c) for c in table.columns]
        if table.primary_key:
            parts.append(f"PRIMARY KEY ({self._column_list(table.primary_key)})")

        sql = f"CREATE TABLE {self.quote_identifier(table.name)} ({', '.join(parts)})"

        if table.is_federated and table.federated_on_distribution and table.federated_on_column:
            sql += (
                f" FEDERATED ON ({self.quote_identifier(table.federated_on_distribution)}"
                f" = {self.quote_identifier(table.federated_on_column)})"
            )

        statements = [sql]
        statements.extend(self.get_create_index_sql(index, table) for index in table.indexes)
        return statements

    def get_create_index_sql(self, index: Index, table: Table) -> str:
        unique = "UNIQUE " if index.unique else ""
        return (
            f"CREATE {unique}INDEX {self.quote_identifier(index.name)} "
            f"ON {self.quote_identifier(table.name)} ({self._column_list(index.columns)})"
        )

    def get_create_foreign_key_sql(self, foreign_key: ForeignKey, table: Table) -> List[str]:
        sql = (
            f"ALTER TABLE {self.quote_identifier(table.name)} "
            f"ADD CONSTRAINT {self.quote_identifier(foreign_key.name)} "
            f"FOREIGN KEY ({self._column_list(foreign_key.local_columns)}) "
            f"REFERENCES {self.quote_identifier(foreign_key.foreign_table)} "
            f"({self._column_list(foreign_key.foreign_columns)})"
        )
        if foreign_key.on_delete:
            sql += f" ON DELETE {self._referential_action(foreign_key.on_delete)}"
        if foreign_key.on_update:
            sql += f" ON UPDATE {self._referential_action(foreign_key.on_update)}"
        return [sql]

    def _column_list(self, names: List[str]) -> str:
        return ", ".join(self.quote_identifier(n) for n in names)

    def _referential_action(self, action: Any) -> str:
        normalized = str(action).upper().replace("_", " ")
        if normalized not in ("CASCADE", "SET NULL", "SET DEFAULT", "NO ACTION"):
            raise ConfigurationError(
                f"Unsupported referential action '{action}'.",
                field="on_delete/on_update",
                value=action,
            )
        return normalized
