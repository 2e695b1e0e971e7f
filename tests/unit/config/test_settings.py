"""
Unit tests for console settings.
"""

import pytest
from pydantic import ValidationError

import ar_admin.config.settings as settings_module
from ar_admin.config.settings import (
    AdminConsoleConfig,
    get_config,
    load_config,
    reload_config,
)

OPTIONAL_VARS = (
    "SUPABASE_SERVICE_ROLE_KEY",
    "SESSION_FILE",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "REQUEST_TIMEOUT",
    "FUNCTION_TIMEOUT",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "BATCH_SIZE",
    "BATCH_PAUSE_SECONDS",
    "POLL_INTERVAL_SECONDS",
    "PAGE_SIZE",
    "IN_QUERY_CHUNK_SIZE",
)


def build(**overrides) -> AdminConsoleConfig:
    values = {
        "SUPABASE_URL": "https://test-project.supabase.co",
        "SUPABASE_ANON_KEY": "test-anon-key",
    }
    values.update(overrides)
    return AdminConsoleConfig(_env_file=None, **values)


class TestAdminConsoleConfig:
    """Test cases for AdminConsoleConfig."""

    def test_config_with_valid_env_vars(self, test_config, tmp_path):
        assert test_config.supabase_url == "https://test-project.supabase.co"
        assert test_config.supabase_anon_key == "test-anon-key"
        assert test_config.supabase_service_role_key == "test-service-role-key"
        assert test_config.environment == "testing"
        assert test_config.debug is False
        assert test_config.log_level == "DEBUG"
        assert test_config.batch_pause_seconds == 0
        assert test_config.session_file == str(tmp_path / "session.json")

    def test_default_values(self, monkeypatch):
        for name in OPTIONAL_VARS:
            monkeypatch.delenv(name, raising=False)

        config = build()

        assert config.supabase_service_role_key is None
        assert config.session_file.endswith("session.json")
        assert config.environment == "development"
        assert config.debug is False
        assert config.log_level == "INFO"
        assert config.request_timeout == 10.0
        assert config.function_timeout == 150.0
        assert config.max_retries == 3
        assert config.batch_size == 100
        assert config.page_size == 1000
        assert config.in_query_chunk_size == 100

    def test_url_trailing_slash_stripped(self):
        config = build(SUPABASE_URL="https://abc.supabase.co/")
        assert config.supabase_url == "https://abc.supabase.co"

    @pytest.mark.parametrize("url", ["abc.supabase.co", "ftp://abc.supabase.co", ""])
    def test_invalid_url(self, url):
        with pytest.raises(ValidationError) as exc_info:
            build(SUPABASE_URL=url)
        assert "SUPABASE_URL" in str(exc_info.value)

    def test_blank_anon_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build(SUPABASE_ANON_KEY="   ")
        assert "cannot be empty" in str(exc_info.value)

    def test_anon_key_stripped(self):
        assert build(SUPABASE_ANON_KEY=" key ").supabase_anon_key == "key"

    def test_log_level_normalized(self):
        assert build(LOG_LEVEL="warning").log_level == "WARNING"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError) as exc_info:
            build(LOG_LEVEL="LOUD")
        assert "Log level must be one of" in str(exc_info.value)

    def test_environment_normalized(self):
        assert build(ENVIRONMENT="Production").environment == "production"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError) as exc_info:
            build(ENVIRONMENT="staging")
        assert "Environment must be one of" in str(exc_info.value)

    @pytest.mark.parametrize("size", [0, 1001, -5])
    def test_invalid_batch_size(self, size):
        with pytest.raises(ValidationError) as exc_info:
            build(BATCH_SIZE=size)
        assert "BATCH_SIZE must be between 1 and 1000" in str(exc_info.value)

    @pytest.mark.parametrize("size", [1, 1000])
    def test_batch_size_bounds_accepted(self, size):
        assert build(BATCH_SIZE=size).batch_size == size

    @pytest.mark.parametrize("field", ["PAGE_SIZE", "IN_QUERY_CHUNK_SIZE"])
    def test_non_positive_sizes_rejected(self, field):
        with pytest.raises(ValidationError):
            build(**{field: 0})

    def test_missing_url(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            AdminConsoleConfig(_env_file=None, SUPABASE_ANON_KEY="key")

    def test_url_helpers(self, test_config):
        base = "https://test-project.supabase.co"
        assert test_config.functions_url("sync-invoices") == (
            f"{base}/functions/v1/sync-invoices"
        )
        assert test_config.rest_url("/user_profiles") == (
            f"{base}/rest/v1/user_profiles"
        )
        assert test_config.auth_url("token") == f"{base}/auth/v1/token"


class TestConfigLoading:
    """Test the module level loaders."""

    def test_get_config_is_cached(self, mock_env):
        first = get_config()
        assert get_config() is first

    def test_reload_config_replaces_instance(self, mock_env, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        second = reload_config()

        assert second is not first
        assert second.log_level == "ERROR"
        assert settings_module._config is second

    def test_load_config_reads_env_file(self, mock_env, monkeypatch, tmp_path):
        # Registered so the value loaded from the file is removed afterwards
        monkeypatch.setenv("PAGE_SIZE", "1000")
        monkeypatch.delenv("PAGE_SIZE")
        env_file = tmp_path / "console.env"
        env_file.write_text("PAGE_SIZE=250\n")

        config = load_config(str(env_file))

        assert config.page_size == 250
