"""Shard routing for SQL Azure Federations.

A ``FederationShardManager`` owns the federation context of one
connection. Every switch is a ``USE FEDERATION`` statement on that
connection, so switching is refused while a transaction is open and the
manager's notion of the current member only changes once the statement
has succeeded.

Usage:
    conn = connect(load_connection_config("orders.yaml"))
    shards = FederationShardManager(conn)

    shards.select_partition(1234)
    conn.fetch_all("SELECT * FROM Orders")

    shards.select_global()
    conn.fetch_all("SELECT * FROM Products")

    every_customer = shards.query_all_partitions("SELECT * FROM Customers")
"""

from __future__ import annotations

import abc
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from shards.lib.config import parse_bool
from shards.lib.connections import Connection
from shards.lib.errors import (
    ConfigurationError,
    InvalidDistributionValueError,
    ShardingNotImplementedError,
    TransactionActiveError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DistributionValue",
    "FederationMember",
    "FederationShardManager",
    "RouterConfig",
    "ShardManager",
]

DistributionValue = Union[str, int, float, uuid.UUID]

_SCALAR_TYPES = (str, int, float, uuid.UUID)

USE_ROOT_SQL = "USE FEDERATION ROOT WITH RESET"

MEMBERS_SQL = (
    "SELECT member_id AS id, "
    "distribution_name AS distribution_key, "
    "CAST(range_low AS CHAR) AS range_low, "
    "CAST(range_high AS CHAR) AS range_high "
    "FROM sys.federation_member_distributions d "
    "INNER JOIN sys.federations f ON f.federation_id = d.federation_id "
    "WHERE f.name = ?"
)


@dataclass(frozen=True)
class RouterConfig:
    """Federation settings read from the connection parameters."""

    federation_name: str
    distribution_key: str
    filtering_enabled: bool = False

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "RouterConfig":
        """Build the config from connection parameters.

        Settings may sit at the top level or under a ``sharding`` key, in
        camelCase or snake_case. ``filteringEnabled`` may be a string such
        as "false" or "ON", as it is after ``${VAR}`` expansion.
        """
        sharding = params.get("sharding") or params

        def lookup(camel: str, snake: str) -> Any:
            value = sharding.get(camel)
            return sharding.get(snake) if value is None else value

        federation_name = lookup("federationName", "federation_name")
        if not federation_name:
            raise ConfigurationError(
                "SQL Azure sharding requires a federation name.",
                field="federationName",
            )

        distribution_key = lookup("distributionKey", "distribution_key")
        if not distribution_key:
            raise ConfigurationError(
                "SQL Azure sharding requires a distribution key.",
                field="distributionKey",
                federation=federation_name,
            )

        return cls(
            federation_name=str(federation_name),
            distribution_key=str(distribution_key),
            filtering_enabled=parse_bool(
                lookup("filteringEnabled", "filtering_enabled"), field="filteringEnabled"
            ),
        )

    def override(
        self,
        federation_name: Optional[str] = None,
        distribution_key: Optional[str] = None,
        filtering_enabled: Any = None,
    ) -> "RouterConfig":
        """Copy with the given settings replaced; None keeps the current one."""
        changes: Dict[str, Any] = {}
        for field_name, value in (
            ("federationName", federation_name),
            ("distributionKey", distribution_key),
        ):
            if value is not None and (not isinstance(value, str) or not value):
                raise ConfigurationError(
                    f"'{field_name}' override must be a non-empty string.",
                    field=field_name,
                    value=value,
                    federation=self.federation_name,
                )
        if federation_name is not None:
            changes["federation_name"] = federation_name
        if distribution_key is not None:
            changes["distribution_key"] = distribution_key
        if filtering_enabled is not None:
            changes["filtering_enabled"] = parse_bool(filtering_enabled, field="filteringEnabled")
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class FederationMember:
    """One federation member as reported by the catalog views."""

    id: Any
    distribution_key: str
    range_low: Any
    range_high: Any

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FederationMember":
        return cls(
            id=row["id"],
            distribution_key=row["distribution_key"],
            range_low=row["range_low"],
            range_high=row["range_high"],
        )


class ShardManager(abc.ABC):
    """Partition switching on top of a single connection.

    Statements issued on the connection after ``select_partition`` hit the
    selected member; after ``select_global`` they hit the root.
    """

    @abc.abstractmethod
    def select_global(self) -> None:
        """Switch to the root database."""

    @abc.abstractmethod
    def select_partition(
        self,
        distribution_value: DistributionValue,
        *,
        federation_name: Optional[str] = None,
        distribution_key: Optional[str] = None,
        filtering_enabled: Any = None,
    ) -> None:
        """Switch to the member holding ``distribution_value``.

        The keyword arguments override the configured federation settings
        for this one switch.
        """

    @abc.abstractmethod
    def select_partitions(self, distribution_values: Iterable[DistributionValue]) -> None:
        """Switch to a set of members at once."""

    @property
    @abc.abstractmethod
    def current_partition(self) -> Optional[DistributionValue]:
        """Distribution value of the selected member, None for the root."""

    @abc.abstractmethod
    def list_partitions(self) -> List[FederationMember]:
        """All members of the federation."""

    @abc.abstractmethod
    def query_all_partitions(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run ``sql`` on every member and concatenate the rows.

        No aggregation, DISTINCT or ordering is applied across members.
        """


class FederationShardManager(ShardManager):
    """Shard manager for SQL Azure Federations."""

    def __init__(self, conn: Connection):
        self._conn = conn
        self._config = RouterConfig.from_params(conn.get_params())
        self._current: Optional[DistributionValue] = None
        # settings the current member was selected with
        self._current_target: RouterConfig = self._config

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def federation_name(self) -> str:
        return self._config.federation_name

    @property
    def distribution_key(self) -> str:
        return self._config.distribution_key

    @property
    def filtering_enabled(self) -> bool:
        return self._config.filtering_enabled

    @property
    def current_partition(self) -> Optional[DistributionValue]:
        return self._current

    def _assert_no_transaction(self) -> None:
        if self._conn.is_transaction_active():
            raise TransactionActiveError(federation=self.federation_name)

    def select_global(self) -> None:
        self._assert_no_transaction()

        self._conn.execute(USE_ROOT_SQL, ())
        self._current = None
        self._current_target = self._config
        logger.debug("Switched to federation root")

    def select_partition(
        self,
        distribution_value: DistributionValue,
        *,
        federation_name: Optional[str] = None,
        distribution_key: Optional[str] = None,
        filtering_enabled: Any = None,
    ) -> None:
        self._assert_no_transaction()

        # bool is an int subclass but never a valid distribution value
        if isinstance(distribution_value, bool) or not isinstance(
            distribution_value, _SCALAR_TYPES
        ):
            raise InvalidDistributionValueError(distribution_value, federation=self.federation_name)

        target = self._config.override(
            federation_name=federation_name,
            distribution_key=distribution_key,
            filtering_enabled=filtering_enabled,
        )
        self._switch(distribution_value, target)

    def _switch(self, distribution_value: DistributionValue, target: RouterConfig) -> None:
        platform = self._conn.platform
        sql = "USE FEDERATION %s (%s = ?) WITH RESET, FILTERING = %s" % (
            platform.quote_identifier(target.federation_name),
            platform.quote_identifier(target.distribution_key),
            "ON" if target.filtering_enabled else "OFF",
        )

        self._conn.execute(sql, (distribution_value,))
        self._current = distribution_value
        self._current_target = target
        logger.debug(
            "Switched to %s member for %s = %r",
            target.federation_name,
            target.distribution_key,
            distribution_value,
        )

    def select_partitions(self, distribution_values: Iterable[DistributionValue]) -> None:
        raise ShardingNotImplementedError(
            "Selecting multiple federation members", federation=self.federation_name
        )

    def list_partitions(self) -> List[FederationMember]:
        rows = self._conn.fetch_all(MEMBERS_SQL, (self.federation_name,))
        return [FederationMember.from_row(row) for row in rows]

    def query_all_partitions(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run ``sql`` on every member, then restore the previous context.

        Each member of the configured federation is entered through its low
        range bound. The previous member (or the root) is restored
        afterwards, with the settings it was selected with, even when a
        member fails; in that case the member's error is what propagates.
        """
        self._assert_no_transaction()

        previous = (self._current, self._current_target)
        params = tuple(params or ())
        result: List[Dict[str, Any]] = []

        try:
            members = self.list_partitions()
            logger.info(
                "Querying %d member(s) of %s", len(members), self.federation_name
            )
            for member in members:
                self.select_partition(member.range_low)
                rows = self._conn.fetch_all(sql, params)
                logger.debug("Member %s returned %d row(s)", member.id, len(rows))
                result.extend(rows)
        except Exception:
            try:
                self._restore(*previous)
            except Exception:
                logger.exception(
                    "Could not restore %s context after failed fan-out query",
                    self.federation_name,
                )
            raise

        self._restore(*previous)
        return result

    def _restore(self, value: Optional[DistributionValue], target: RouterConfig) -> None:
        if value is None:
            self.select_global()
        else:
            self._assert_no_transaction()
            self._switch(value, target)
