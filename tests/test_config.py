"""Application Configuration — defaults, precedence and validation."""

import pytest
from pydantic import ValidationError

from dvstore.config import Settings, load_settings


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test in an empty directory so no dvstore.toml or .env leaks in."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults():
    settings = Settings()
    assert settings.http_address == "localhost:8080"
    assert settings.database_address == "sqlite+aiosqlite:///dvstore.db"
    assert settings.log_format == "console"
    assert settings.log_level == "info"
    assert settings.request_timeout == 0


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("DVSTORE_HTTP_ADDRESS", "0.0.0.0:9000")
    monkeypatch.setenv("DVSTORE_LOG_LEVEL", "DEBUG")
    settings = Settings()
    assert settings.http_address == "0.0.0.0:9000"
    assert settings.log_level == "debug"


def test_config_file_is_read(isolated_cwd):
    (isolated_cwd / "dvstore.toml").write_text('log_format = "json"\nrequest_timeout = 2.5\n')
    settings = Settings()
    assert settings.log_format == "json"
    assert settings.request_timeout == 2.5


def test_precedence_override_env_file(isolated_cwd, monkeypatch):
    (isolated_cwd / "dvstore.toml").write_text(
        'http_address = "file:1"\nlog_level = "error"\nlog_format = "logfmt"\n',
    )
    monkeypatch.setenv("DVSTORE_HTTP_ADDRESS", "env:2")
    monkeypatch.setenv("DVSTORE_LOG_LEVEL", "warn")

    settings = load_settings({"http_address": "flag:3"})
    assert settings.http_address == "flag:3"
    assert settings.log_level == "warn"
    assert settings.log_format == "logfmt"


def test_dotenv_is_read(isolated_cwd):
    (isolated_cwd / ".env").write_text("DVSTORE_LOG_FORMAT=json\n")
    assert Settings().log_format == "json"


def test_plain_postgres_url_uses_asyncpg():
    settings = Settings(database_address="postgresql://dv:pw@db:5432/dvstore")
    assert settings.database_address == "postgresql+asyncpg://dv:pw@db:5432/dvstore"


@pytest.mark.parametrize("field,value", [
    ("log_level", "verbose"),
    ("log_format", "xml"),
    ("request_timeout", -1),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        load_settings({field: value})


@pytest.mark.parametrize("address,expected", [
    ("localhost:8080", ("localhost", 8080)),
    (":9000", ("0.0.0.0", 9000)),
    ("[::1]:8080", ("::1", 8080)),
])
def test_http_host_port(address, expected):
    assert Settings(http_address=address).http_host_port() == expected


@pytest.mark.parametrize("address", ["localhost", "localhost:http", ""])
def test_http_host_port_malformed(address):
    with pytest.raises(ValueError, match="invalid http address"):
        Settings(http_address=address).http_host_port()
