"""Platform-neutral schema description.

Tables carry their columns, primary key, indexes and foreign keys plus the
optional federation metadata used by the DDL generator:

    federation_name            federation the table lives in (None = root)
    federated_on_distribution  distribution name of the federation
    federated_on_column        table column holding the distribution value
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple

__all__ = ["Column", "Index", "ForeignKey", "Table", "Schema"]


@dataclass
class Column:
    """A table column with a semantic type name (guid, integer, string...)."""

    name: str
    type: str
    nullable: bool = False
    default: Any = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    autoincrement: bool = False


@dataclass
class Index:
    """A secondary index."""

    name: str
    columns: List[str]
    unique: bool = False


@dataclass
class ForeignKey:
    """A foreign key from the owning table to ``foreign_table``."""

    name: str
    local_columns: List[str]
    foreign_table: str
    foreign_columns: List[str]
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass
class Table:
    """A table and, when federated, the federation it belongs to."""

    name: str
    columns: List[Column] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    federation_name: Optional[str] = None
    federated_on_distribution: Optional[str] = None
    federated_on_column: Optional[str] = None

    def add_column(self, name: str, type: str, **options: Any) -> Column:
        """Append a column and return it."""
        column = Column(name=name, type=type, **options)
        self.columns.append(column)
        return column

    def get_column(self, name: str) -> Optional[Column]:
        """Look a column up by name (case-insensitive, like SQL Server)."""
        wanted = name.lower()
        for column in self.columns:
            if column.name.lower() == wanted:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    def federate(self, federation_name: str, distribution: str, column: str) -> None:
        """Place the table in a federation, distributed on ``column``."""
        self.federation_name = federation_name
        self.federated_on_distribution = distribution
        self.federated_on_column = column

    @property
    def is_federated(self) -> bool:
        return bool(self.federation_name)


@dataclass
class Schema:
    """An ordered collection of tables."""

    tables: List[Table] = field(default_factory=list)

    def add_table(self, table: Table) -> Table:
        self.tables.append(table)
        return table

    def create_table(self, name: str) -> Table:
        """Create an empty table, add it and return it."""
        return self.add_table(Table(name=name))

    def get_table(self, name: str) -> Optional[Table]:
        wanted = name.lower()
        for table in self.tables:
            if table.name.lower() == wanted:
                return table
        return None

    def walk(self) -> Iterator[Tuple[Table, Optional[ForeignKey]]]:
        """Yield ``(table, None)`` for each table followed by
        ``(table, fk)`` for each of its foreign keys, in schema order."""
        for table in self.tables:
            yield table, None
            for foreign_key in table.foreign_keys:
                yield table, foreign_key
