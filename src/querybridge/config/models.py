"""Configuration models for QueryBridge.

This module defines Pydantic models for every configuration object used by
QueryBridge. They provide validation, environment variable substitution and
loading from YAML files.

Classes:
    BaseConfig: Base configuration class
    PoolConfig: Per-connection-string pool settings and idle eviction
    QueryConfig: Execution limits and schema introspection caps
    ServerConfig: HTTP server settings
    LoggingConfig: Logging configuration
    AppConfig: Application-wide configuration

Functions:
    load_config: Build an AppConfig from an optional file plus environment

Example:
    >>> config = AppConfig.from_file("querybridge.yaml")
    >>> config.query.timeout
    30.0
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ConfigurationError, ErrorCodes

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class BaseConfig(BaseModel):
    """Base configuration class with common functionality.

    Supports ``${VAR_NAME}`` and ``${VAR_NAME:default}`` placeholders in any
    string value, resolved from the process environment at validation time.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_environment_variables(cls, values: Any) -> Any:
        """Resolve environment variables in configuration values.

        Args:
            values: Raw configuration values

        Returns:
            Values with environment variables resolved
        """
        if not isinstance(values, dict):
            return values

        def replace_env_var(match: "re.Match[str]") -> str:
            var_spec = match.group(1)
            if ":" in var_spec:
                var_name, default = var_spec.split(":", 1)
            else:
                var_name, default = var_spec, ""
            return os.getenv(var_name, default)

        def resolve_value(value: Any) -> Any:
            if isinstance(value, str):
                return _ENV_PATTERN.sub(replace_env_var, value)
            if isinstance(value, dict):
                return {k: resolve_value(v) for k, v in value.items()}
            if isinstance(value, list):
                return [resolve_value(item) for item in value]
            return value

        return {key: resolve_value(value) for key, value in values.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def update_from_dict(self, data: Dict[str, Any]) -> "BaseConfig":
        """Return a new configuration with ``data`` applied on top.

        Args:
            data: Dictionary with updated values

        Returns:
            New configuration instance with updated values
        """
        current_data = self.model_dump()
        current_data.update(data)
        return self.__class__(**current_data)


class PoolConfig(BaseConfig):
    """Connection pool configuration.

    One pool is created per distinct connection string; these settings apply
    to each of them.

    Attributes:
        max_size: Maximum connections per pool
        idle_timeout: Seconds an idle driver connection is kept open
        connect_timeout: Seconds allowed to establish a connection
        idle_eviction_seconds: Close whole pools unused for this long (0 disables)
        eviction_interval_seconds: How often the idle eviction sweep runs
    """

    max_size: PositiveInt = Field(10, description="Maximum connections per pool")
    idle_timeout: PositiveFloat = Field(30.0, description="Idle connection timeout in seconds")
    connect_timeout: PositiveFloat = Field(10.0, description="Connect timeout in seconds")
    idle_eviction_seconds: NonNegativeFloat = Field(
        600.0, description="Evict pools unused for this many seconds (0 disables)"
    )
    eviction_interval_seconds: PositiveFloat = Field(
        60.0, description="Interval between idle eviction sweeps"
    )


class QueryConfig(BaseConfig):
    """Query execution and schema introspection limits.

    Attributes:
        timeout: Hard execution timeout in seconds
        max_rows: Maximum rows returned to the caller
        max_query_length: Maximum accepted query length in characters
        default_find_limit: Documents returned by a find without a limit
        schema_column_limit: Maximum catalog rows read during introspection
        schema_sample_size: Documents sampled per collection
        schema_max_collections: Collections sampled per database
        postgres_schema: Schema introspected on PostgreSQL
        mongo_server_selection_timeout: MongoDB server selection timeout
        mongo_socket_timeout: MongoDB socket timeout
    """

    timeout: PositiveFloat = Field(30.0, description="Query timeout in seconds")
    max_rows: PositiveInt = Field(1000, description="Maximum rows returned")
    max_query_length: PositiveInt = Field(50000, description="Maximum query length")
    default_find_limit: PositiveInt = Field(100, description="Default MongoDB find limit")
    schema_column_limit: PositiveInt = Field(500, description="Catalog rows read per introspection")
    schema_sample_size: PositiveInt = Field(5, description="Documents sampled per collection")
    schema_max_collections: PositiveInt = Field(50, description="Collections sampled")
    postgres_schema: str = Field("public", min_length=1, description="PostgreSQL schema")
    mongo_server_selection_timeout: PositiveFloat = Field(
        10.0, description="MongoDB server selection timeout in seconds"
    )
    mongo_socket_timeout: PositiveFloat = Field(
        30.0, description="MongoDB socket timeout in seconds"
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "QueryConfig":
        """Ensure the default find limit never exceeds the row cap."""
        if self.default_find_limit > self.max_rows:
            raise ValueError(
                f"default_find_limit ({self.default_find_limit}) must be <= max_rows ({self.max_rows})"
            )
        return self


class ServerConfig(BaseConfig):
    """HTTP server configuration."""

    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(3001, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed origins")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class LoggingConfig(BaseConfig):
    """Logging configuration.

    Attributes:
        level: Log level
        format: Log format (json, text)
        file_path: Optional log file path
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of rotated files to keep
        console_output: Enable console output
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )
    format: Literal["json", "text"] = Field("json", description="Log format")
    file_path: Optional[Path] = Field(None, description="Log file path")
    max_file_size: PositiveInt = Field(10485760, description="Max file size in bytes (10MB)")
    backup_count: NonNegativeInt = Field(5, description="Number of backup files")
    console_output: bool = Field(True, description="Enable console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v


class AppConfig(BaseConfig):
    """Application-wide configuration.

    Attributes:
        app_name: Application name
        version: Application version
        environment: Deployment environment; raw driver errors are only
            exposed to API callers in ``development``
        server: HTTP server configuration
        pool: Connection pool configuration
        query: Query execution limits
        logging: Logging configuration

    Example:
        >>> config = AppConfig(environment="development")
        >>> config.is_development
        True
    """

    app_name: str = Field("QueryBridge", description="Application name")
    version: str = Field("1.0.0", pattern=r"^\d+\.\d+\.\d+", description="Application version")
    environment: Literal["development", "production", "test"] = Field(
        "production", description="Deployment environment"
    )
    server: ServerConfig = Field(default_factory=ServerConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def is_development(self) -> bool:
        """True when raw driver errors may be shown to callers."""
        return self.environment == "development"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Build configuration from a mapping.

        Args:
            data: Configuration values

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)",
                code=ErrorCodes.CONFIG_INVALID,
                context={"errors": e.errors(include_url=False, include_input=False)},
                cause=e,
            ) from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AppConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML file

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        return cls.from_dict(_read_yaml(Path(path)))


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            code=ErrorCodes.CONFIG_NOT_FOUND,
            context={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Configuration file is not valid YAML: {path}",
            code=ErrorCodes.CONFIG_INVALID,
            context={"path": str(path)},
            cause=e,
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping: {path}",
            code=ErrorCodes.CONFIG_INVALID,
            context={"path": str(path)},
        )
    return data


# Environment variable -> (section, key); section None means top level.
ENV_OVERRIDES = {
    "QUERYBRIDGE_ENV": (None, "environment"),
    "QUERYBRIDGE_LOG_LEVEL": ("logging", "level"),
    "QUERYBRIDGE_LOG_FORMAT": ("logging", "format"),
    "QUERYBRIDGE_QUERY_TIMEOUT": ("query", "timeout"),
    "QUERYBRIDGE_CORS_ORIGINS": ("server", "cors_origins"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
}


def load_config(
    path: Optional[Union[str, Path]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build the application configuration.

    The file named by ``path`` (or ``QUERYBRIDGE_CONFIG``) is loaded first
    when present; the variables in ``ENV_OVERRIDES`` are applied on top.

    Args:
        path: Optional YAML configuration file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated configuration
    """
    env = os.environ if environ is None else environ
    config_path = path or env.get("QUERYBRIDGE_CONFIG")
    data: Dict[str, Any] = _read_yaml(Path(config_path)) if config_path else {}

    for var_name, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var_name)
        if value is None or value == "":
            continue
        if section is None:
            data[key] = value
        else:
            section_data = data.get(section) or {}
            data[section] = {**section_data, key: value}

    return AppConfig.from_dict(data)
