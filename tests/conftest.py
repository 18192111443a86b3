"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shards.lib.platform import SQLAzurePlatform  # noqa: E402


class FakeFederatedConnection:
    """In-memory stand-in for a SQL Azure connection with federations.

    ``members`` maps a member's low range bound to the rows a query returns
    while that member is selected. Every executed statement is recorded.
    """

    def __init__(
        self,
        params: Dict[str, Any],
        members: Optional[Dict[Any, List[Dict[str, Any]]]] = None,
    ):
        self.params = params
        self.members = members or {}
        self.platform = SQLAzurePlatform()
        self.transaction_active = False
        self.executed: List[tuple] = []
        self.selected: Optional[Any] = None
        self.fail_on_member: Optional[Any] = None

    def get_params(self) -> Dict[str, Any]:
        return self.params

    def is_transaction_active(self) -> bool:
        return self.transaction_active

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        self.executed.append((sql, tuple(params)))
        self.selected = params[0] if params else None
        return 0

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        if "sys.federation_member_distributions" in sql:
            return [
                {
                    "id": i + 1,
                    "distribution_key": "CustID",
                    "range_low": low,
                    "range_high": None,
                }
                for i, low in enumerate(self.members)
            ]
        if self.fail_on_member is not None and self.selected == self.fail_on_member:
            raise RuntimeError("member is offline")
        return list(self.members.get(self.selected, []))


@pytest.fixture
def sharding_params():
    """Minimal valid connection parameters."""
    return {"federationName": "abc", "distributionKey": "foo"}


@pytest.fixture
def mock_conn(sharding_params):
    """MagicMock connection with no open transaction."""
    conn = MagicMock()
    conn.get_params.return_value = sharding_params
    conn.is_transaction_active.return_value = False
    conn.platform = SQLAzurePlatform()
    return conn


@pytest.fixture
def fake_conn():
    """Federated fake with three members keyed by low range bound."""
    return FakeFederatedConnection(
        {"sharding": {"federationName": "Orders_Federation", "distributionKey": "CustID"}},
        members={
            0: [{"CustID": 1}, {"CustID": 2}],
            100: [{"CustID": 150}],
            200: [{"CustID": 201}, {"CustID": 250}],
        },
    )
