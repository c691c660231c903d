from __future__ import annotations

import pytest
from keyring.errors import KeyringError

from gitflux.config import Config
from gitflux.exceptions import ConfigurationError


@pytest.fixture
def no_env_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_ACCESS_TOKEN", raising=False)


def test_defaults():
    config = Config()

    assert config.server.api_url == "https://api.github.com"
    assert config.api.timeout == 30
    assert config.fetch.max_records == 1000
    assert config.fetch.rate_limit_threshold == 50
    assert config.cache.fetch_ttl_seconds == 900
    assert config.cache.transform_ttl_seconds == 300
    assert config.defaults.period == "30d"


def test_missing_file_loads_defaults(tmp_path):
    config = Config.load(tmp_path / "missing.toml")

    assert config.fetch.max_records == 1000


def test_dump_and_load_round_trip_with_backup(tmp_path):
    path = tmp_path / "gitflux" / "config.toml"
    config = Config()
    config.fetch.page_delay = 0.5
    config.defaults.period = "1y"
    config.dump(path)
    config.dump(path)

    loaded = Config.load(path)

    assert loaded.fetch.page_delay == 0.5
    assert loaded.defaults.period == "1y"
    assert len(list(path.parent.glob("config.*.bak"))) == 1


def test_corrupted_file_raises_value_error(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[fetch\nmax_records = ", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        Config.load(path)


def test_invalid_values_in_file_raise_value_error(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[fetch]\nper_page = 500\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid configuration"):
        Config.load(path)


def test_set_and_get_values():
    config = Config()

    config.set_value("fetch.page_delay", "0.25")
    config.set_value("defaults.period", "3m")
    config.set_value("server.api_url", "https://ghe.example.com/api/v3")

    assert config.get_value("fetch.page_delay") == 0.25
    assert config.get_value("defaults.period") == "90d"
    assert config.get_value("server.api_url") == "https://ghe.example.com/api/v3"


@pytest.mark.parametrize(
    "key, value",
    [
        ("fetch", "1"),
        ("nope.field", "1"),
        ("fetch.nope", "1"),
        ("defaults.period", "2w"),
        ("fetch.per_page", "500"),
        ("fetch.max_records", "0"),
        ("server.api_url", "ftp://example.com"),
    ],
)
def test_set_value_rejects_invalid_input(key, value):
    config = Config()

    with pytest.raises(ValueError):
        config.set_value(key, value)


def test_environment_token_takes_precedence(monkeypatch, no_env_token):
    monkeypatch.setattr("gitflux.config.keyring.get_password", lambda service, username: "from-keyring")
    config = Config()

    assert config.get_pat() == "from-keyring"

    monkeypatch.setenv("GITHUB_ACCESS_TOKEN", "access-token")
    assert config.get_pat() == "access-token"

    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    assert config.get_pat() == "env-token"


def test_keyring_failure_means_unauthenticated(monkeypatch, no_env_token):
    def broken(service, username):
        raise KeyringError("no backend")

    monkeypatch.setattr("gitflux.config.keyring.get_password", broken)

    assert Config().get_pat() is None
    assert Config().to_display_dict()["auth"] == {"pat": "<not set>"}


def test_update_auth_surfaces_keyring_failure(monkeypatch):
    def broken(service, username, password):
        raise KeyringError("locked")

    monkeypatch.setattr("gitflux.config.keyring.set_password", broken)

    with pytest.raises(RuntimeError, match="GITHUB_TOKEN"):
        Config().update_auth("ghp_secret")


def test_display_dict_masks_token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")

    data = Config().to_display_dict()

    assert data["auth"] == {"pat": "<set>"}
    assert "ghp_secret" not in str(data)
    assert data["fetch"]["max_records"] == 1000
