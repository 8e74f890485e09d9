"""Tests for environment configuration loading."""

from __future__ import annotations

import pytest

from src.config import DEFAULT_API_URL, DEFAULT_CORS_ORIGIN_REGEX, AppConfig, ConfigError

REQUIRED = {"PORT": "8080", "SECRET": "s3cr3t", "ACCESS_TOKEN": "tok"}


def test_required_values_loaded() -> None:
    config = AppConfig.from_env(REQUIRED)
    assert config.port == 8080
    assert config.secret == "s3cr3t"
    assert config.access_token == "tok"


def test_defaults_applied() -> None:
    config = AppConfig.from_env(REQUIRED)
    assert config.api_url == DEFAULT_API_URL
    assert config.upload_dir == "uploads"
    assert config.cors_origin_regex == DEFAULT_CORS_ORIGIN_REGEX
    assert config.audit_log_path is None
    assert config.fetch_timeout is None


def test_optional_values_override_defaults() -> None:
    config = AppConfig.from_env({
        **REQUIRED,
        "API_URL": "http://localhost:9000/graphql",
        "UPLOAD_DIR": "/var/uploads",
        "MAX_UPLOAD_BYTES": "1024",
        "AUDIT_LOG_PATH": "/var/log/audit.jsonl",
        "FETCH_TIMEOUT": "2.5",
    })
    assert config.api_url == "http://localhost:9000/graphql"
    assert config.upload_dir == "/var/uploads"
    assert config.max_upload_bytes == 1024
    assert config.audit_log_path == "/var/log/audit.jsonl"
    assert config.fetch_timeout == 2.5


def test_blank_optional_value_uses_default() -> None:
    config = AppConfig.from_env({**REQUIRED, "API_URL": "  "})
    assert config.api_url == DEFAULT_API_URL


@pytest.mark.parametrize("missing", ["PORT", "SECRET", "ACCESS_TOKEN"])
def test_missing_required_value_fails(missing: str) -> None:
    env = {k: v for k, v in REQUIRED.items() if k != missing}
    with pytest.raises(ConfigError) as exc_info:
        AppConfig.from_env(env)
    assert any(p.startswith(f"{missing}:") for p in exc_info.value.problems)


def test_empty_required_value_fails() -> None:
    with pytest.raises(ConfigError, match="SECRET"):
        AppConfig.from_env({**REQUIRED, "SECRET": ""})


@pytest.mark.parametrize("port", ["abc", "0", "70000", "80.5"])
def test_malformed_port_fails(port: str) -> None:
    with pytest.raises(ConfigError, match="PORT"):
        AppConfig.from_env({**REQUIRED, "PORT": port})


def test_non_http_api_url_fails() -> None:
    with pytest.raises(ConfigError, match="API_URL"):
        AppConfig.from_env({**REQUIRED, "API_URL": "ftp://example.com"})


def test_all_problems_reported_together() -> None:
    with pytest.raises(ConfigError) as exc_info:
        AppConfig.from_env({"PORT": "nope"})
    names = {p.split(":")[0] for p in exc_info.value.problems}
    assert names == {"PORT", "SECRET", "ACCESS_TOKEN"}


def test_reads_os_environ_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in REQUIRED.items():
        monkeypatch.setenv(key, value)
    assert AppConfig.from_env().port == 8080
