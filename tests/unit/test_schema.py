"""Tests for shards.lib.schema and shards.lib.schema_loader."""

from pathlib import Path

import pytest

from shards.lib.errors import ConfigurationError
from shards.lib.schema import ForeignKey, Schema, Table
from shards.lib.schema_loader import load_schema, schema_from_dict, table_from_dict


# ============================================
# Schema model tests
# ============================================


class TestTable:
    """Tests for the Table model."""

    def test_get_column_is_case_insensitive(self):
        table = Table("t")
        column = table.add_column("CustID", "bigint")

        assert table.get_column("custid") is column
        assert table.has_column("CUSTID")
        assert table.get_column("other") is None

    def test_federate(self):
        table = Table("t")
        assert not table.is_federated

        table.federate("Fed", "dist", "col")

        assert table.is_federated
        assert (table.federation_name, table.federated_on_distribution, table.federated_on_column) == (
            "Fed",
            "dist",
            "col",
        )


class TestSchema:
    """Tests for the Schema model."""

    def test_walk_order(self):
        """Each table is followed by its own foreign keys."""
        schema = Schema()
        a = schema.create_table("a")
        fk = ForeignKey("fk_a_b", ["b_id"], "b", ["id"])
        a.foreign_keys.append(fk)
        b = schema.create_table("b")

        assert list(schema.walk()) == [(a, None), (a, fk), (b, None)]

    def test_get_table(self):
        schema = Schema()
        table = schema.create_table("Orders")

        assert schema.get_table("orders") is table
        assert schema.get_table("missing") is None


# ============================================
# YAML loader tests
# ============================================


class TestTableFromDict:
    """Tests for building tables from YAML mappings."""

    def test_full_table(self):
        table = table_from_dict(
            {
                "name": "orders",
                "federation": {
                    "name": "Orders_Federation",
                    "distribution": "CustID",
                    "column": "customer_id",
                },
                "columns": [
                    {"name": "id", "type": "guid"},
                    {"name": "customer_id", "type": "bigint"},
                    {"name": "status", "type": "string", "length": 20, "default": "open"},
                ],
                "primary_key": ["id", "customer_id"],
                "indexes": [{"name": "idx_status", "columns": "status", "unique": True}],
                "foreign_keys": [
                    {"name": "fk_cust", "columns": ["customer_id"], "references": "customers"}
                ],
            }
        )

        assert table.federation_name == "Orders_Federation"
        assert table.federated_on_distribution == "CustID"
        assert table.federated_on_column == "customer_id"
        assert table.get_column("status").length == 20
        assert table.indexes[0].columns == ["status"]
        assert table.indexes[0].unique is True
        assert table.foreign_keys[0].foreign_columns == ["customer_id"]

    def test_federation_as_string(self):
        """A bare federation name leaves the distribution unset."""
        table = table_from_dict({"name": "t", "federation": "Fed"})

        assert table.federation_name == "Fed"
        assert table.federated_on_distribution is None

    def test_missing_table_name(self):
        with pytest.raises(ConfigurationError, match="missing 'name'"):
            table_from_dict({"columns": []})

    def test_unknown_column_option(self):
        with pytest.raises(ConfigurationError, match="unknown option"):
            table_from_dict({"name": "t", "columns": [{"name": "a", "type": "integer", "size": 3}]})

    def test_bad_primary_key(self):
        with pytest.raises(ConfigurationError, match="list of column names"):
            table_from_dict({"name": "t", "primary_key": [1, 2]})


class TestLoadSchema:
    """Tests for loading schema YAML files."""

    def test_load_schema(self, tmp_path: Path):
        path = tmp_path / "schema.yaml"
        path.write_text(
            """
tables:
  - name: products
    columns:
      - {name: id, type: integer}
    primary_key: [id]
  - name: tasks
    federation: {name: UserFed, distribution: user_id, column: user_id}
    columns:
      - {name: id, type: guid}
      - {name: user_id, type: guid}
""",
            encoding="utf-8",
        )

        schema = load_schema(path)

        assert [t.name for t in schema.tables] == ["products", "tasks"]
        assert schema.get_table("tasks").is_federated

    def test_example_schema(self):
        """The bundled example schema loads and generates DDL."""
        from shards.lib.ddl import generate_federation_ddl

        path = Path(__file__).resolve().parents[2] / "examples" / "orders_schema.yaml"
        queries = generate_federation_ddl(load_schema(path))

        assert queries[0] == "CREATE FEDERATION Orders_Federation (CustID BIGINT)"
        assert (
            "CREATE TABLE products (id INT NOT NULL IDENTITY, title NVARCHAR(100) NOT NULL, "
            "PRIMARY KEY (id))"
        ) in queries
        assert queries[-1] == (
            "ALTER TABLE orders ADD CONSTRAINT fk_orders_customer FOREIGN KEY (customer_id) "
            "REFERENCES customers (customer_id) ON DELETE CASCADE"
        )

    def test_tables_required(self):
        with pytest.raises(ConfigurationError, match="'tables' list"):
            schema_from_dict({"table": []})

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_schema(tmp_path / "nope.yaml")
