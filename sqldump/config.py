"""
Configuration loading for sqldump.

Example config.yaml:

    connection:
      dsn: "${DB_USER}:${DB_PASSWORD}@tcp(localhost:3306)/shop"
    dump:
      include_data: true
      drop_table: true
      batch_size: 500
      compression: best
    source:
      merge_insert: 100
      merge_mode: safe
    output:
      file: ./dumps/shop.sql
    logging:
      level: INFO
"""

import os
import re
from typing import Any

import yaml


class ConfigLoader:
    """Loads configuration from YAML file."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')
    CONNECTION_KEYS = ('host', 'port', 'user', 'password', 'database')

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f)

        return self._resolve_env_vars(config or {})

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = os.environ.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def get_connection_settings(self) -> dict[str, Any]:
        """Get connection settings: either {'dsn': ...} or host/port/user/password/database."""
        connection = self.config.get('connection')
        if not connection:
            raise ValueError("Section 'connection' not found in configuration")
        if 'dsn' in connection:
            return {'dsn': connection['dsn']}
        missing = [key for key in ('host', 'user') if key not in connection]
        if missing:
            raise ValueError(f"Connection settings missing: {', '.join(missing)}")
        return {key: connection[key] for key in self.CONNECTION_KEYS if key in connection}

    def get_dump_settings(self) -> dict[str, Any]:
        """Get dump settings."""
        return self.config.get('dump', {})

    def get_source_settings(self) -> dict[str, Any]:
        """Get source (restore) settings."""
        return self.config.get('source', {})

    def get_output_settings(self) -> dict[str, Any]:
        """Get output settings."""
        return self.config.get('output', {})

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self.config.get('logging', {})
