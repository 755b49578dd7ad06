"""Unit tests for configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from querybridge.config.models import (
    AppConfig,
    LoggingConfig,
    PoolConfig,
    QueryConfig,
    ServerConfig,
    load_config,
)
from querybridge.core.exceptions import ConfigurationError, ErrorCodes


class TestDefaults:
    """Test documented default values."""

    def test_pool_defaults(self):
        pool = PoolConfig()

        assert pool.max_size == 10
        assert pool.idle_timeout == 30
        assert pool.connect_timeout == 10
        assert pool.idle_eviction_seconds == 600
        assert pool.eviction_interval_seconds == 60

    def test_query_defaults(self):
        query = QueryConfig()

        assert query.timeout == 30
        assert query.max_rows == 1000
        assert query.max_query_length == 50000
        assert query.default_find_limit == 100
        assert query.postgres_schema == "public"

    def test_server_defaults(self):
        server = ServerConfig()

        assert server.port == 3001
        assert server.cors_origins == ["*"]

    def test_app_defaults(self):
        config = AppConfig()

        assert config.environment == "production"
        assert config.is_development is False
        assert config.logging.level == "INFO"


class TestValidation:
    """Test field validation."""

    def test_find_limit_cannot_exceed_max_rows(self):
        with pytest.raises(PydanticValidationError):
            QueryConfig(max_rows=10, default_find_limit=50)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(PydanticValidationError):
            QueryConfig(timeout=0)

    def test_zero_idle_eviction_allowed(self):
        assert PoolConfig(idle_eviction_seconds=0).idle_eviction_seconds == 0

    def test_unknown_fields_rejected(self):
        with pytest.raises(PydanticValidationError):
            PoolConfig(max_connections=5)

    def test_cors_origins_from_comma_string(self):
        server = ServerConfig(cors_origins="http://a.test, http://b.test")
        assert server.cors_origins == ["http://a.test", "http://b.test"]

    def test_log_level_and_format_normalized(self):
        logging_config = LoggingConfig(level="debug", format="TEXT")

        assert logging_config.level == "DEBUG"
        assert logging_config.format == "text"

    def test_environment_normalized(self):
        assert AppConfig(environment="Development").is_development

    def test_environment_variable_substitution(self, monkeypatch):
        monkeypatch.setenv("QB_TEST_SCHEMA", "analytics")

        query = QueryConfig(postgres_schema="${QB_TEST_SCHEMA}")

        assert query.postgres_schema == "analytics"

    def test_environment_variable_default(self, monkeypatch):
        monkeypatch.delenv("QB_TEST_MISSING", raising=False)

        query = QueryConfig(postgres_schema="${QB_TEST_MISSING:public}")

        assert query.postgres_schema == "public"

    def test_update_from_dict(self):
        pool = PoolConfig().update_from_dict({"max_size": 3})

        assert pool.max_size == 3
        assert pool.idle_timeout == 30


class TestAppConfigLoading:
    """Test loading from mappings and files."""

    def test_from_dict(self, sample_config_data):
        config = AppConfig.from_dict(sample_config_data)

        assert config.server.port == 3101
        assert config.pool.max_size == 5
        assert config.query.max_rows == 50
        assert config.logging.level == "DEBUG"

    def test_from_dict_invalid(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_dict({"pool": {"max_size": -1}})

        assert exc_info.value.code == ErrorCodes.CONFIG_INVALID
        assert exc_info.value.context["errors"]

    def test_from_file(self, config_file: Path):
        config = AppConfig.from_file(config_file)
        assert config.environment == "test"

    def test_from_missing_file(self, temp_dir: Path):
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_file(temp_dir / "missing.yaml")

        assert exc_info.value.code == ErrorCodes.CONFIG_NOT_FOUND

    def test_from_invalid_yaml(self, temp_dir: Path):
        path = temp_dir / "broken.yaml"
        path.write_text("pool: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_file(path)

        assert exc_info.value.code == ErrorCodes.CONFIG_INVALID

    def test_from_yaml_that_is_not_a_mapping(self, temp_dir: Path):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            AppConfig.from_file(path)


class TestLoadConfig:
    """Test file plus environment resolution."""

    def test_defaults_without_file_or_environment(self):
        config = load_config(environ={})
        assert config == AppConfig()

    def test_environment_overrides(self):
        config = load_config(environ={
            "QUERYBRIDGE_ENV": "development",
            "QUERYBRIDGE_LOG_LEVEL": "warning",
            "QUERYBRIDGE_QUERY_TIMEOUT": "12.5",
            "PORT": "8080",
        })

        assert config.is_development
        assert config.logging.level == "WARNING"
        assert config.query.timeout == 12.5
        assert config.server.port == 8080

    def test_environment_overrides_file(self, config_file: Path):
        config = load_config(config_file, environ={"PORT": "9000"})

        assert config.server.port == 9000
        assert config.pool.max_size == 5

    def test_config_path_from_environment(self, config_file: Path):
        config = load_config(environ={"QUERYBRIDGE_CONFIG": str(config_file)})
        assert config.server.port == 3101

    def test_empty_values_are_ignored(self):
        config = load_config(environ={"PORT": ""})
        assert config.server.port == 3001
