"""Database connections for federation routing.

Defines the small contract the router relies on (``Connection``) and a
pyodbc implementation for SQL Azure. A connection is a stateful session:
``USE FEDERATION`` changes which member subsequent statements hit, so each
connection must have exactly one owner.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import pyodbc

from shards.lib.config import expand_options
from shards.lib.errors import ConfigurationError, TransactionActiveError
from shards.lib.platform import SQLAzurePlatform

logger = logging.getLogger(__name__)

__all__ = ["Connection", "OdbcConnection", "build_connection_string", "connect"]

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_PORT = 1433


class Connection(Protocol):
    """What the shard router needs from a database connection."""

    platform: SQLAzurePlatform

    def get_params(self) -> Dict[str, Any]:
        ...

    def is_transaction_active(self) -> bool:
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        ...

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        ...


class OdbcConnection:
    """pyodbc-backed connection with transaction bookkeeping.

    The ODBC connection is opened lazily in autocommit mode, which SQL Azure
    requires for ``USE FEDERATION``. ``begin_transaction`` switches autocommit
    off until the matching ``commit`` or ``rollback``.

    Example:
        >>> with OdbcConnection(conn_str, {"sharding": {...}}) as conn:
        ...     conn.fetch_all("SELECT 1 AS one")
        [{'one': 1}]
    """

    def __init__(
        self,
        conn_str: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        platform: Optional[SQLAzurePlatform] = None,
        timeout: int = 0,
    ):
        self._conn_str = conn_str
        self._params = dict(params or {})
        self._timeout = timeout
        self._odbc_conn: Optional[pyodbc.Connection] = None
        self._transaction_active = False
        self.platform = platform or SQLAzurePlatform()

    def _get_odbc(self) -> pyodbc.Connection:
        if self._odbc_conn is None:
            logger.debug("Opening ODBC connection")
            self._odbc_conn = pyodbc.connect(
                self._conn_str, autocommit=True, timeout=self._timeout
            )
        return self._odbc_conn

    def get_params(self) -> Dict[str, Any]:
        return dict(self._params)

    def is_transaction_active(self) -> bool:
        return self._transaction_active

    def begin_transaction(self) -> None:
        if self._transaction_active:
            raise TransactionActiveError(
                "A transaction is already active on this connection.",
                suggestion="Commit or roll back it before beginning another.",
            )
        self._get_odbc().autocommit = False
        self._transaction_active = True

    def commit(self) -> None:
        odbc_conn = self._get_odbc()
        odbc_conn.commit()
        odbc_conn.autocommit = True
        self._transaction_active = False

    def rollback(self) -> None:
        odbc_conn = self._get_odbc()
        odbc_conn.rollback()
        odbc_conn.autocommit = True
        self._transaction_active = False

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement and return the affected row count."""
        cursor = self._get_odbc().cursor()
        try:
            cursor.execute(sql, *params)
            return cursor.rowcount
        finally:
            cursor.close()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a query and return its rows as dicts keyed by column name."""
        cursor = self._get_odbc().cursor()
        try:
            cursor.execute(sql, *params)
            if cursor.description is None:
                return []
            columns = [col[0] for col in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def close(self) -> None:
        if self._odbc_conn is not None:
            self._odbc_conn.close()
            self._odbc_conn = None
            self._transaction_active = False
            logger.debug("Closed ODBC connection")

    def __enter__(self) -> "OdbcConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def build_connection_string(options: Dict[str, Any]) -> str:
    """Build a SQL Azure ODBC connection string.

    Options:
        host: Server name, e.g. myserver.database.windows.net (required)
        database: Database name (required)
        port: TCP port (default: 1433)
        user: Login name
        password: Password
        driver: ODBC driver name (default: "ODBC Driver 18 for SQL Server")
        encrypt: Require encryption (default: True)
    """
    for required in ("host", "database"):
        if not options.get(required):
            raise ConfigurationError(
                f"Connection option '{required}' is required.",
                field=f"connection.{required}",
                suggestion="Set it in the connection YAML or via an environment variable.",
            )

    driver = options.get("driver", DEFAULT_DRIVER)
    port = options.get("port", DEFAULT_PORT)
    encrypt = "yes" if options.get("encrypt", True) else "no"

    conn_str = (
        f"DRIVER={{{driver}}};"
        f"SERVER=tcp:{options['host']},{port};"
        f"DATABASE={options['database']};"
        f"Encrypt={encrypt};"
    )
    if options.get("user"):
        conn_str += f"UID={options['user']};PWD={options.get('password', '')};"
    return conn_str


def connect(config: Dict[str, Any]) -> OdbcConnection:
    """Create an OdbcConnection from a loaded connection config.

    ``config`` has a ``connection`` section (ODBC options, ``${VAR}``
    references are expanded) and a ``sharding`` section that becomes the
    connection parameters read by the router.

    Example:
        >>> conn = connect({
        ...     "connection": {"host": "${AZURE_SQL_HOST}", "database": "Orders"},
        ...     "sharding": {"federationName": "Orders_Federation",
        ...                  "distributionKey": "CustID"},
        ... })
    """
    options = expand_options(config.get("connection") or {})
    conn_str = build_connection_string(options)
    logger.info(
        "Creating connection to %s/%s", options["host"], options["database"]
    )
    params = {"sharding": dict(config.get("sharding") or {})}
    return OdbcConnection(conn_str, params, timeout=int(options.get("timeout", 0)))
