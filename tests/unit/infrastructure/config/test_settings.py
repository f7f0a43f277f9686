import os
from pathlib import Path

import pytest

from castkit.infrastructure.config import settings
from castkit.infrastructure.config.settings import (
    get_api_url, get_bearer_token, get_cache_settings, get_config, get_fid, get_http_timeout,
    get_private_key, get_rate_limit, load_configuration, set_config_for_testing,
)

CONFIG_ENV_VARS = (
    "WARPCAST_API_URL", "WARPCAST_FID", "WARPCAST_PRIVATE_KEY", "WARPCAST_BEARER_TOKEN",
    "RATE_LIMIT_REQUESTS", "RATE_LIMIT_INTERVAL_SECONDS", "CACHE_CAPACITY", "CACHE_TTL_SECONDS",
    "HTTP_TIMEOUT_SECONDS", "LOGGING_LEVEL",
)

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

@pytest.fixture
def yaml_config(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "WARPCAST_API_URL: https://staging.api.test\n"
        "rate_limit:\n"
        "  requests: 10\n"
        "  interval_seconds: 5\n"
        "cache:\n"
        "  capacity: 50\n"
    )
    return path

@pytest.fixture
def empty_env_file(tmp_path: Path) -> Path:
    path = tmp_path / ".env"
    path.write_text("")
    return path

def test_defaults_when_nothing_configured():
    assert get_api_url() == "https://api.warpcast.com"
    assert get_fid() is None
    assert get_private_key() is None
    assert get_bearer_token() is None
    assert get_rate_limit() == {'max_requests': 100, 'time_window': 60.0}
    assert get_cache_settings() == {'max_items': 1000, 'ttl': 1800.0}
    assert get_http_timeout() == 30.0

def test_nested_yaml_is_read_with_dotted_keys(yaml_config: Path, empty_env_file: Path):
    load_configuration(config_file=yaml_config, env_file=empty_env_file)

    assert get_api_url() == "https://staging.api.test"
    assert get_rate_limit() == {'max_requests': 10, 'time_window': 5.0}
    assert get_cache_settings()['max_items'] == 50
    # Unset nested keys still fall back to defaults
    assert get_cache_settings()['ttl'] == 1800.0

def test_environment_overrides_yaml(monkeypatch, yaml_config: Path, empty_env_file: Path):
    load_configuration(config_file=yaml_config, env_file=empty_env_file)
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "20")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "12.5")

    assert get_rate_limit()['max_requests'] == 20
    assert get_http_timeout() == 12.5

def test_dotenv_file_is_loaded(tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text("WARPCAST_FID=99\nWARPCAST_BEARER_TOKEN=from-dotenv\n")
    try:
        load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file)
        assert get_fid() == 99
        assert get_bearer_token() == "from-dotenv"
    finally:
        os.environ.pop("WARPCAST_FID", None)
        os.environ.pop("WARPCAST_BEARER_TOKEN", None)

def test_load_configuration_runs_once(yaml_config: Path, empty_env_file: Path, tmp_path: Path):
    load_configuration(config_file=yaml_config, env_file=empty_env_file)
    load_configuration(config_file=tmp_path / "other.yaml", env_file=empty_env_file)

    assert get_api_url() == "https://staging.api.test"

def test_invalid_yaml_is_logged_and_ignored(tmp_path: Path, empty_env_file: Path):
    broken = tmp_path / "config.yaml"
    broken.write_text("rate_limit: [unclosed\n")

    load_configuration(config_file=broken, env_file=empty_env_file)

    assert get_rate_limit()['max_requests'] == 100

def test_numeric_private_key_stays_a_string(monkeypatch):
    monkeypatch.setenv("WARPCAST_PRIVATE_KEY", "0123456789")
    assert get_private_key() == "0123456789"

def test_environment_values_are_coerced(monkeypatch):
    monkeypatch.setenv("LOGGING_LEVEL", "debug")
    monkeypatch.setenv("CACHE_CAPACITY", "25")

    assert get_config('logging.level') == "debug"
    assert get_config('cache.capacity') == 25
    assert get_config('cache.capacity', coerce=False) == "25"

def test_non_numeric_fid_is_ignored(monkeypatch):
    monkeypatch.setenv("WARPCAST_FID", "alice")
    assert get_fid() is None

def test_test_overrides_take_priority(monkeypatch):
    monkeypatch.setenv("CACHE_CAPACITY", "25")
    set_config_for_testing({'cache.capacity': 5})

    assert get_cache_settings()['max_items'] == 5

def test_find_dotenv_path_searches_parents(tmp_path: Path, monkeypatch):
    (tmp_path / ".env").write_text("")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert settings.find_dotenv_path() == tmp_path / ".env"
