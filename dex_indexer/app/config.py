"""Config file."""
from functools import lru_cache
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dex_indexer.app.application.services.address import normalize_address


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("dex-indexer", alias="PROJECT_NAME")
    http_port: int = Field(3001, alias="HTTP_PORT")

    # CSPR.CLOUD
    cspr_cloud_url: str = Field("https://api.testnet.cspr.cloud", alias="CSPR_CLOUD_URL")
    cspr_cloud_streaming_url: str = Field(
        "wss://streaming.testnet.cspr.cloud", alias="CSPR_CLOUD_STREAMING_URL"
    )
    cspr_cloud_access_key: SecretStr = Field(..., alias="CSPR_CLOUD_ACCESS_KEY")

    # CONTRACTS (package hashes, prefixes are stripped)
    dex_contract_package_hash: str = Field(..., alias="DEX_CONTRACT_PACKAGE_HASH")
    position_manager_contract_package_hash: str = Field(
        ..., alias="POSITION_MANAGER_CONTRACT_PACKAGE_HASH"
    )
    router_contract_package_hash: str = Field(..., alias="ROUTER_CONTRACT_PACKAGE_HASH")
    initial_token_package_hashes: str = Field("", alias="INITIAL_TOKEN_PACKAGE_HASHES")

    # STREAM
    heartbeat_message: str = Field("Ping", alias="HEARTBEAT_MESSAGE")
    heartbeat_timeout_seconds: float = Field(30.0, alias="HEARTBEAT_TIMEOUT_SECONDS")
    heartbeat_check_interval_seconds: float = Field(30.0, alias="HEARTBEAT_CHECK_INTERVAL_SECONDS")
    max_reconnect_attempts: int = Field(5, alias="MAX_RECONNECT_ATTEMPTS")
    reconnect_base_delay_seconds: float = Field(1.0, alias="RECONNECT_BASE_DELAY_SECONDS")
    event_queue_size: int = Field(1000, alias="EVENT_QUEUE_SIZE")

    # BACKFILL
    backfill_page_size: int = Field(100, alias="BACKFILL_PAGE_SIZE")

    # DATABASE
    postgres_user: str | None = Field(None, alias="POSTGRES_USER")
    postgres_password: SecretStr | None = Field(None, alias="POSTGRES_PASSWORD")
    postgres_server: str | None = Field(None, alias="POSTGRES_SERVER")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str | None = Field(None, alias="POSTGRES_DB")
    database_url: str | None = Field(None, alias="DATABASE_URL")

    @field_validator(
        "dex_contract_package_hash",
        "position_manager_contract_package_hash",
        "router_contract_package_hash",
    )
    @classmethod
    def strip_address_prefix(cls, value: str) -> str:
        value = (normalize_address(value.strip()) or "").strip()
        if not value:
            raise ValueError("contract package hash must not be empty")
        return value

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        if not self.database_url:
            if not (self.postgres_user and self.postgres_password and self.postgres_server and self.postgres_db):
                raise ValueError(
                    "Either DATABASE_URL or POSTGRES_USER/POSTGRES_PASSWORD/POSTGRES_SERVER/POSTGRES_DB must be set"
                )
            user = quote_plus(self.postgres_user)
            password = quote_plus(self.postgres_password.get_secret_value())
            host = self.postgres_server
            port = self.postgres_port
            db = self.postgres_db

            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        return self

    @property
    def initial_tokens(self) -> list[str]:
        tokens = [t.strip() for t in self.initial_token_package_hashes.split(",")]
        return [normalize_address(t) or t for t in tokens if t]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
