"""Tests for environment configuration."""

import pytest

from config import Config


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DISCORD_TOKEN", "DATABASE_PATH", "STORAGE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    clean_env.setenv("DISCORD_TOKEN", "token")

    config = Config.from_env()

    assert config.discord_token == "token"
    assert config.database_path == "burako_scores.db"
    assert config.storage_backend == "sqlite"


def test_overrides(clean_env):
    clean_env.setenv("DISCORD_TOKEN", "token")
    clean_env.setenv("DATABASE_PATH", "/tmp/other.db")
    clean_env.setenv("STORAGE_BACKEND", " Memory ")

    config = Config.from_env()

    assert config.database_path == "/tmp/other.db"
    assert config.storage_backend == "memory"


def test_token_is_required(clean_env):
    with pytest.raises(ValueError, match="DISCORD_TOKEN"):
        Config.from_env()


def test_unknown_backend_is_rejected(clean_env):
    clean_env.setenv("DISCORD_TOKEN", "token")
    clean_env.setenv("STORAGE_BACKEND", "firebase")

    with pytest.raises(ValueError, match="STORAGE_BACKEND"):
        Config.from_env()
