"""
Unit tests for config.py
"""

import os
import tempfile
from unittest import mock

import pytest
import yaml

from sqldump.config import ConfigLoader


def write_config(config):
    """Write a config dict to a temporary YAML file and return its path."""
    with tempfile.NamedTemporaryFile(
        mode='w', suffix='.yaml', delete=False
    ) as f:
        yaml.dump(config, f)
        f.flush()
        return f.name


class TestConfigLoader:
    """Tests for ConfigLoader class."""

    @pytest.fixture
    def sample_config(self):
        """Sample configuration dictionary."""
        return {
            "connection": {
                "host": "localhost",
                "port": 3306,
                "user": "root",
                "password": "secret",
                "database": "shop"
            },
            "dump": {
                "include_data": True,
                "drop_table": True,
                "batch_size": 500,
                "compression": "best"
            },
            "source": {
                "merge_insert": 100,
                "merge_mode": "safe"
            },
            "output": {
                "file": "./dumps/shop.sql"
            },
            "logging": {
                "level": "INFO",
                "file": "./dumps/dump.log"
            }
        }

    @pytest.fixture
    def config_file(self, sample_config):
        """Create a temporary config file."""
        path = write_config(sample_config)
        yield path
        os.unlink(path)

    def test_load_config(self, config_file):
        """Test loading a valid config file."""
        loader = ConfigLoader(config_file)
        assert loader.config is not None

    def test_file_not_found(self):
        """Test that FileNotFoundError is raised for missing file."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader("/nonexistent/path/config.yaml")

    def test_get_connection_settings(self, config_file):
        """Test getting host-based connection settings."""
        loader = ConfigLoader(config_file)
        connection = loader.get_connection_settings()
        assert connection == {
            "host": "localhost",
            "port": 3306,
            "user": "root",
            "password": "secret",
            "database": "shop"
        }

    def test_get_connection_settings_dsn(self):
        """Test that a DSN takes the place of the individual fields."""
        path = write_config({
            "connection": {"dsn": "root:secret@tcp(db:3306)/shop", "host": "ignored"}
        })
        loader = ConfigLoader(path)
        os.unlink(path)

        assert loader.get_connection_settings() == {"dsn": "root:secret@tcp(db:3306)/shop"}

    def test_connection_section_missing(self):
        """Test a config without a connection section."""
        path = write_config({"dump": {"include_data": True}})
        loader = ConfigLoader(path)
        os.unlink(path)

        with pytest.raises(ValueError) as exc_info:
            loader.get_connection_settings()
        assert "not found in configuration" in str(exc_info.value)

    def test_connection_settings_missing_user(self):
        """Test that host and user are required without a DSN."""
        path = write_config({"connection": {"host": "localhost"}})
        loader = ConfigLoader(path)
        os.unlink(path)

        with pytest.raises(ValueError) as exc_info:
            loader.get_connection_settings()
        assert "user" in str(exc_info.value)

    def test_get_dump_settings(self, config_file):
        """Test getting dump settings."""
        loader = ConfigLoader(config_file)
        dump = loader.get_dump_settings()
        assert dump["batch_size"] == 500
        assert dump["compression"] == "best"

    def test_get_source_settings(self, config_file):
        """Test getting source settings."""
        loader = ConfigLoader(config_file)
        source = loader.get_source_settings()
        assert source["merge_insert"] == 100
        assert source["merge_mode"] == "safe"

    def test_get_output_settings(self, config_file):
        """Test getting output settings."""
        loader = ConfigLoader(config_file)
        output = loader.get_output_settings()
        assert output["file"] == "./dumps/shop.sql"

    def test_get_logging_settings(self, config_file):
        """Test getting logging settings."""
        loader = ConfigLoader(config_file)
        logging = loader.get_logging_settings()
        assert logging["level"] == "INFO"
        assert logging["file"] == "./dumps/dump.log"

    def test_empty_sections(self):
        """Test handling of missing config sections."""
        path = write_config({"connection": {"host": "localhost", "user": "root"}})
        loader = ConfigLoader(path)
        os.unlink(path)

        assert loader.get_dump_settings() == {}
        assert loader.get_source_settings() == {}
        assert loader.get_output_settings() == {}
        assert loader.get_logging_settings() == {}

    def test_empty_file(self):
        """Test that an empty file loads as an empty config."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            path = f.name
        loader = ConfigLoader(path)
        os.unlink(path)

        assert loader.config == {}


class TestEnvironmentVariables:
    """Tests for environment variable resolution."""

    @pytest.fixture
    def env_config(self):
        """Configuration with environment variables."""
        return {
            "connection": {
                "host": "${DB_HOST}",
                "port": 3306,
                "user": "${DB_USER}",
                "password": "${DB_PASSWORD}"
            },
            "output": {
                "file": "${OUTPUT_DIR}/dump.sql"
            }
        }

    @pytest.fixture
    def env_config_file(self, env_config):
        """Create a temporary config file with env vars."""
        path = write_config(env_config)
        yield path
        os.unlink(path)

    def test_resolve_env_vars(self, env_config_file):
        """Test environment variables are resolved."""
        with mock.patch.dict(os.environ, {
            "DB_HOST": "db.example.com",
            "DB_USER": "myuser",
            "DB_PASSWORD": "mypassword",
            "OUTPUT_DIR": "/var/backups"
        }):
            loader = ConfigLoader(env_config_file)
            connection = loader.get_connection_settings()
            assert connection["host"] == "db.example.com"
            assert connection["user"] == "myuser"
            assert connection["password"] == "mypassword"

            output = loader.get_output_settings()
            assert output["file"] == "/var/backups/dump.sql"

    def test_missing_env_var_becomes_empty(self, env_config_file):
        """Test missing environment variables become empty strings."""
        with mock.patch.dict(os.environ, {}, clear=True):
            loader = ConfigLoader(env_config_file)
            connection = loader.get_connection_settings()
            assert connection["host"] == ""
            assert connection["user"] == ""
            assert connection["password"] == ""

    def test_partial_env_var_resolution(self, env_config_file):
        """Test partial environment variable resolution."""
        with mock.patch.dict(os.environ, {
            "DB_HOST": "localhost",
            "OUTPUT_DIR": "/data"
        }, clear=True):
            loader = ConfigLoader(env_config_file)
            connection = loader.get_connection_settings()
            assert connection["host"] == "localhost"
            assert connection["user"] == ""  # Not set

    def test_env_var_in_dsn(self):
        """Test env var resolution inside a DSN string."""
        path = write_config({"connection": {"dsn": "${DB_USER}:${DB_PASSWORD}@tcp(db:3306)/shop"}})

        with mock.patch.dict(os.environ, {"DB_USER": "app", "DB_PASSWORD": "pw"}):
            loader = ConfigLoader(path)
        os.unlink(path)

        assert loader.get_connection_settings()["dsn"] == "app:pw@tcp(db:3306)/shop"

    def test_env_var_in_nested_list(self):
        """Test env var resolution in nested lists."""
        path = write_config({
            "dump": {"databases": ["${DB_NAME}"], "tables": ["${TABLE_1}", "${TABLE_2}"]}
        })

        with mock.patch.dict(os.environ, {
            "DB_NAME": "production",
            "TABLE_1": "users",
            "TABLE_2": "orders"
        }):
            loader = ConfigLoader(path)
            dump = loader.get_dump_settings()
            assert dump["databases"] == ["production"]
            assert dump["tables"] == ["users", "orders"]

        os.unlink(path)

    def test_non_string_values_unchanged(self):
        """Test that non-string values are not modified."""
        path = write_config({
            "dump": {
                "batch_size": 250,
                "include_data": True,
                "compression": None
            }
        })
        loader = ConfigLoader(path)
        os.unlink(path)

        dump = loader.get_dump_settings()
        assert dump["batch_size"] == 250
        assert dump["include_data"] is True
        assert dump["compression"] is None
