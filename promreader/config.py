"""Configuration management using pydantic-settings."""

import os
from pathlib import Path
from typing import Any, Literal, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_ENV_VAR = "PROMREADER_CONFIG"

_YAML_KEYS: dict[str, dict[str, str]] = {
    "server": {
        "host": "promreader_host",
        "port": "promreader_port",
        "workers": "promreader_workers",
    },
    "store": {
        "duckdb_path": "duckdb_path",
        "table": "duckdb_table",
        "threads": "duckdb_threads",
        "memory_limit": "duckdb_memory_limit",
        "max_rows_per_query": "max_rows_per_query",
    },
    "read": {
        "max_request_size_mb": "max_request_size_mb",
        "series_identity": "series_identity",
        "timestamp_policy": "timestamp_policy",
        "metrics_enabled": "metrics_enabled",
    },
    "logging": {
        "level": "log_level",
        "format": "log_format",
    },
}


def load_yaml_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Priority:
    1. Explicitly provided config_path
    2. $PROMREADER_CONFIG
    3. ~/.promreader/config.yaml (default location)
    4. Empty dict if no file exists

    Args:
        config_path: Optional path to config file

    Returns:
        Dictionary of configuration values (flattened from nested YAML)
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        config_path = (
            Path(env_path) if env_path else Path.home() / ".promreader" / "config.yaml"
        )

    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            yaml_data = yaml.safe_load(f) or {}

        flattened = {}
        for section, keys in _YAML_KEYS.items():
            values = yaml_data.get(section) or {}
            for yaml_key, setting_name in keys.items():
                if yaml_key in values:
                    flattened[setting_name] = values[yaml_key]

        return flattened

    except Exception as e:
        import warnings

        warnings.warn(f"Failed to load config from {config_path}: {e}")
        return {}


_config_path: Path | None = None


class YamlSettingsSource(PydanticBaseSettingsSource):
    """
    Custom settings source that loads configuration from YAML file.

    This allows YAML config to be loaded with proper priority in the settings chain.
    """

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        """Not used since we override __call__."""
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        return load_yaml_config(_config_path)


class Settings(BaseSettings):
    """
    promreader configuration settings.

    Configuration priority (highest to lowest):
    1. Environment variables (e.g., PROMREADER_PORT=9201)
    2. YAML configuration file (~/.promreader/config.yaml)
    3. Default values defined in this class
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    promreader_host: str = Field(default="0.0.0.0", description="Server bind address")
    promreader_port: int = Field(
        default=9201, ge=1, le=65535, description="Server port"
    )
    promreader_workers: int = Field(
        default=1, ge=1, description="Number of worker processes"
    )

    duckdb_path: str = Field(
        default=":memory:",
        description="DuckDB database file holding the samples table",
    )
    duckdb_table: str = Field(default="samples", description="Samples table name")
    duckdb_threads: int = Field(default=4, ge=1, description="DuckDB thread count")
    duckdb_memory_limit: str = Field(default="4GB", description="DuckDB memory limit")
    max_rows_per_query: int | None = Field(
        default=None,
        ge=1,
        description="Reject store results larger than this many rows",
    )

    max_request_size_mb: int = Field(
        default=10, ge=1, description="Max compressed read request size"
    )
    series_identity: Literal["values", "labels"] = Field(
        default="values",
        description="Series key: sorted label values only, or name=value pairs",
    )
    timestamp_policy: Literal["strict", "lenient"] = Field(
        default="strict",
        description="Reject rows with malformed timestamps, or map them to epoch 0",
    )
    metrics_enabled: bool = Field(
        default=True, description="Expose read metrics on /metrics"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json", description="Log format"
    )

    @field_validator("duckdb_path")
    @classmethod
    def validate_duckdb_path(cls, v: str) -> str:
        """Expand ~ in database file paths."""
        if v != ":memory:" and v.startswith("~"):
            v = str(Path(v).expanduser())
        return v

    @field_validator("duckdb_table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        """Table name must be a plain identifier."""
        if not v.replace("_", "").isalnum():
            raise ValueError("Table name must contain only letters, digits and '_'")
        return v

    @property
    def max_request_size_bytes(self) -> int:
        """Get max request size in bytes."""
        return self.max_request_size_mb * 1024 * 1024

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize settings sources priority.

        Priority order (highest to lowest):
        1. Explicit kwargs (init_settings) - for testing and programmatic config
        2. Environment variables
        3. YAML configuration file
        4. .env file
        5. Field defaults
        """
        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls),
            dotenv_settings,
        )


_settings: Settings | None = None


def get_settings(config_path: Path | None = None, reload: bool = False) -> Settings:
    """
    Get global settings instance.

    Args:
        config_path: Optional path to YAML config file (defaults to ~/.promreader/config.yaml)
        reload: If True, force reload settings (useful for testing)

    Returns:
        Settings instance with merged configuration
    """
    global _settings, _config_path
    if _settings is None or reload:
        _config_path = config_path

        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings, _config_path
    _settings = None
    _config_path = None


def settings_by_section(settings: Settings) -> dict[str, dict[str, Any]]:
    """Regroup settings under the YAML section and key names.

    Example:
        >>> settings_by_section(Settings())["server"]["port"]
        9201
    """
    return {
        section: {
            yaml_key: getattr(settings, setting_name)
            for yaml_key, setting_name in keys.items()
        }
        for section, keys in _YAML_KEYS.items()
    }
