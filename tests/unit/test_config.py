"""Tests for shards.lib.config."""

from pathlib import Path

import pytest

from shards.lib.config import (
    expand_env_vars,
    expand_options,
    load_connection_config,
    load_env_file,
    load_yaml,
    parse_bool,
)
from shards.lib.errors import ConfigurationError
from shards.lib.router import RouterConfig


class TestExpandEnvVars:
    """Tests for ${VAR} expansion."""

    def test_braced(self, monkeypatch):
        monkeypatch.setenv("AZURE_SQL_HOST", "srv.database.windows.net")
        monkeypatch.setenv("AZURE_SQL_PORT", "1433")

        assert expand_env_vars("${AZURE_SQL_HOST}:${AZURE_SQL_PORT}") == (
            "srv.database.windows.net:1433"
        )

    def test_bare_dollar_is_literal(self, monkeypatch):
        """Only ${VAR} is expanded; passwords may contain a plain $."""
        monkeypatch.setenv("word", "expanded")
        assert expand_env_vars("pa$word$") == "pa$word$"

    def test_unset_variable(self, monkeypatch):
        monkeypatch.delenv("SHARDS_UNSET_VAR", raising=False)
        with pytest.raises(ConfigurationError, match="SHARDS_UNSET_VAR") as exc_info:
            expand_env_vars("${SHARDS_UNSET_VAR}")
        assert exc_info.value.field == "SHARDS_UNSET_VAR"

    def test_empty_variable(self, monkeypatch):
        """A variable set to an empty string is not missing."""
        monkeypatch.setenv("SHARDS_EMPTY_VAR", "")
        assert expand_env_vars("x${SHARDS_EMPTY_VAR}y") == "xy"

    def test_expand_options_recurses(self, monkeypatch):
        monkeypatch.setenv("SHARDS_USER", "app")

        result = expand_options(
            {"connection": {"user": "${SHARDS_USER}", "port": 1433}, "name": "fixed"}
        )

        assert result == {"connection": {"user": "app", "port": 1433}, "name": "fixed"}


class TestParseBool:
    """Tests for yes/no settings."""

    @pytest.mark.parametrize(
        "value", [True, 1, "true", "TRUE", "yes", "Yes", "on", "ON", "1", " true "]
    )
    def test_true_values(self, value):
        assert parse_bool(value, field="flag") is True

    @pytest.mark.parametrize(
        "value", [False, 0, "false", "False", "no", "NO", "off", "Off", "0"]
    )
    def test_false_values(self, value):
        assert parse_bool(value, field="flag") is False

    def test_none_gives_default(self):
        assert parse_bool(None, field="flag") is False
        assert parse_bool(None, field="flag", default=True) is True

    @pytest.mark.parametrize("value", ["", "maybe", "2", 2, -1, 0.5, [], {}])
    def test_rejects_unrecognised(self, value):
        with pytest.raises(ConfigurationError, match="must be a boolean") as exc_info:
            parse_bool(value, field="filteringEnabled")
        assert exc_info.value.field == "filteringEnabled"

    def test_filtering_flag_from_env(self, monkeypatch):
        """filteringEnabled: ${FILTERING} with FILTERING=false stays off."""
        monkeypatch.setenv("FILTERING", "false")
        params = expand_options(
            {
                "sharding": {
                    "federationName": "Orders_Federation",
                    "distributionKey": "CustID",
                    "filteringEnabled": "${FILTERING}",
                }
            }
        )

        assert RouterConfig.from_params(params).filtering_enabled is False


class TestLoadYaml:
    """Tests for YAML loading."""

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("sharding: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_yaml(path)


class TestLoadConnectionConfig:
    """Tests for connection config files."""

    def test_expands_vars(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("AZURE_SQL_HOST", "srv.database.windows.net")
        path = tmp_path / "orders.yaml"
        path.write_text(
            "connection:\n"
            "  host: ${AZURE_SQL_HOST}\n"
            "  database: Orders\n"
            "sharding:\n"
            "  federationName: Orders_Federation\n"
            "  distributionKey: CustID\n",
            encoding="utf-8",
        )

        config = load_connection_config(path)

        assert config["connection"]["host"] == "srv.database.windows.net"
        assert config["sharding"]["federationName"] == "Orders_Federation"

    def test_sharding_section_required(self, tmp_path: Path):
        path = tmp_path / "orders.yaml"
        path.write_text("connection:\n  host: x\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="no 'sharding' section"):
            load_connection_config(path)


class TestLoadEnvFile:
    """Tests for .env loading through python-dotenv."""

    def test_loads_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("SHARDS_FROM_DOTENV", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("SHARDS_FROM_DOTENV=hello\n", encoding="utf-8")

        assert load_env_file(env_file) is True
        assert expand_env_vars("${SHARDS_FROM_DOTENV}") == "hello"

    def test_does_not_override_by_default(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("SHARDS_FROM_DOTENV", "keep")
        env_file = tmp_path / ".env"
        env_file.write_text("SHARDS_FROM_DOTENV=replaced\n", encoding="utf-8")

        load_env_file(env_file)

        assert expand_env_vars("${SHARDS_FROM_DOTENV}") == "keep"
