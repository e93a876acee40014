from __future__ import annotations

import pytest
from pydantic import ValidationError

from dex_indexer.app.config import Settings

REQUIRED = {
    "CSPR_CLOUD_ACCESS_KEY": "key",
    "DEX_CONTRACT_PACKAGE_HASH": "hash-dex00000",
    "POSITION_MANAGER_CONTRACT_PACKAGE_HASH": "contract-pm000000",
    "ROUTER_CONTRACT_PACKAGE_HASH": " router00 ",
}


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{**REQUIRED, **overrides})


def test_contract_hash_prefixes_are_stripped():
    settings = _settings(DATABASE_URL="sqlite+aiosqlite://")

    assert settings.dex_contract_package_hash == "dex00000"
    assert settings.position_manager_contract_package_hash == "pm000000"
    assert settings.router_contract_package_hash == "router00"


def test_database_url_assembled_from_parts():
    settings = _settings(
        POSTGRES_USER="indexer",
        POSTGRES_PASSWORD="p@ss word",
        POSTGRES_SERVER="db",
        POSTGRES_DB="dex",
    )

    assert settings.database_url == "postgresql+asyncpg://indexer:p%40ss+word@db:5432/dex"


def test_explicit_database_url_wins():
    settings = _settings(DATABASE_URL="postgresql+asyncpg://u:p@h/db", POSTGRES_USER="ignored")

    assert settings.database_url == "postgresql+asyncpg://u:p@h/db"


def test_missing_database_configuration_is_rejected():
    with pytest.raises(ValidationError, match="DATABASE_URL"):
        _settings()


def test_empty_contract_hash_is_rejected():
    with pytest.raises(ValidationError):
        _settings(DATABASE_URL="sqlite+aiosqlite://", DEX_CONTRACT_PACKAGE_HASH="hash-")


def test_defaults():
    settings = _settings(DATABASE_URL="sqlite+aiosqlite://")

    assert settings.heartbeat_message == "Ping"
    assert settings.max_reconnect_attempts == 5
    assert settings.reconnect_base_delay_seconds == 1.0
    assert settings.http_port == 3001
    assert settings.initial_tokens == []


def test_initial_tokens_are_split_and_normalized():
    settings = _settings(
        DATABASE_URL="sqlite+aiosqlite://",
        INITIAL_TOKEN_PACKAGE_HASHES="hash-tokA, tokB,,contract-tokC ",
    )

    assert settings.initial_tokens == ["tokA", "tokB", "tokC"]
