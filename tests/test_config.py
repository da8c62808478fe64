"""Tests for settings: stored config merge and environment lookups."""

import json
from pathlib import Path

import pytest

from twittish import config
from twittish.errors import ValidationError

TEST_DATA_DIR = Path("data-tests")


def test_get_config_empty():
    """Returns defaults when no config file exists."""
    cfg = config.get_config(TEST_DATA_DIR)
    assert cfg == {
        "max_post_length": 280,
        "enforce_max_length": False,
        "allow_placeholder_claim": False,
        "media_only": False,
    }


def test_update_config_partial():
    config.update_config(TEST_DATA_DIR, {"enforce_max_length": True})
    config.update_config(TEST_DATA_DIR, {"max_post_length": 140})
    cfg = config.get_config(TEST_DATA_DIR)
    assert cfg["enforce_max_length"] is True
    assert cfg["max_post_length"] == 140
    assert cfg["allow_placeholder_claim"] is False


def test_update_config_ignores_unknown_keys():
    result = config.update_config(TEST_DATA_DIR, {"theme": "dark"})
    assert "theme" not in result
    stored = json.loads((TEST_DATA_DIR / "config.json").read_text())
    assert "theme" not in stored


def test_stored_unknown_keys_dropped():
    (TEST_DATA_DIR / "config.json").write_text(json.dumps({"media_only": True, "legacy": 1}))
    cfg = config.get_config(TEST_DATA_DIR)
    assert cfg["media_only"] is True
    assert "legacy" not in cfg


def test_default_config_is_a_copy():
    cfg = config.default_config()
    cfg["max_post_length"] = 1
    assert config.default_config()["max_post_length"] == 280


def test_environment(monkeypatch):
    monkeypatch.setenv("TWITTISH_DATA_DIR", "/tmp/tw")
    monkeypatch.setenv("TWITTISH_STORE_KEY", "custom")
    monkeypatch.setenv("TWITTISH_LOG_LEVEL", "debug")
    assert config.data_dir() == Path("/tmp/tw")
    assert config.store_key() == "custom"
    assert config.log_level() == "DEBUG"


def test_environment_defaults(monkeypatch):
    monkeypatch.delenv("TWITTISH_DATA_DIR", raising=False)
    monkeypatch.delenv("TWITTISH_STORE_KEY", raising=False)
    monkeypatch.delenv("TWITTISH_LOG_LEVEL", raising=False)
    assert config.data_dir() == Path("data")
    assert config.store_key() == "twittish_web_v1"
    assert config.log_level() == "WARNING"


def test_update_config_coerces_strings():
    cfg = config.update_config(TEST_DATA_DIR, {"max_post_length": "140", "media_only": "TRUE"})
    assert cfg["max_post_length"] == 140
    assert cfg["media_only"] is True


@pytest.mark.parametrize("fields", [
    {"max_post_length": "abc"},
    {"max_post_length": 0},
    {"max_post_length": True},
    {"enforce_max_length": "yes"},
    {"enforce_max_length": 1},
])
def test_update_config_rejects_bad_values(fields):
    config.update_config(TEST_DATA_DIR, {"media_only": True})
    with pytest.raises(ValidationError):
        config.update_config(TEST_DATA_DIR, {"allow_placeholder_claim": True, **fields})
    # nothing from the rejected update was written
    assert config.get_config(TEST_DATA_DIR) == dict(config.default_config(), media_only=True)


@pytest.mark.parametrize("key", ["a/b", "../up", "", "two words"])
def test_store_key_rejects_unsafe_names(monkeypatch, key):
    monkeypatch.setenv("TWITTISH_STORE_KEY", key)
    with pytest.raises(ValidationError):
        config.store_key()
