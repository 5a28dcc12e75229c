"""
Configuration settings for the registry indexer.

Uses Pydantic Settings to load environment variables for the database
connection, the JSON-RPC endpoint, sync scheduling, the HTTP API and logging.
Contract addresses live in a separate deployments file (see `Deployments`).
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

IndexerMode = Literal["sync", "follow"]


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("registry_indexer", alias="DB_NAME")
    db_pool_min: int = Field(1, alias="DB_POOL_MIN")
    db_pool_max: int = Field(10, alias="DB_POOL_MAX")

    # Chain
    rpc_url: str = Field("http://127.0.0.1:8545", alias="RPC_URL")
    rpc_timeout_seconds: float = Field(10.0, alias="RPC_TIMEOUT_SECONDS")
    deployments_path: Path = Field(Path("deployments/local.json"), alias="DEPLOYMENTS_PATH")

    # Sync
    mode: IndexerMode = Field("sync", alias="INDEXER_MODE")
    from_block: int = Field(0, ge=0, alias="INDEXER_FROM_BLOCK")
    poll_interval_seconds: float = Field(4.0, gt=0, alias="INDEXER_POLL_INTERVAL_SECONDS")
    max_block_range: int = Field(2000, ge=0, alias="INDEXER_MAX_BLOCK_RANGE")

    # HTTP API
    api_host: str = Field("127.0.0.1", alias="INDEXER_HOST")
    api_port: int = Field(4000, alias="INDEXER_PORT")
    cors_origins: str = Field("http://localhost:3000", alias="CORS_ORIGINS")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def dsn(self) -> str:
        """Compose a PostgreSQL DSN from the database fields."""
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


class Deployments(BaseModel):
    """
    Contract addresses of one deployment, as written by the deploy scripts.

    The job board is optional; when it is absent its events are not indexed.
    """

    chain_id: int = Field(..., alias="chainId")
    identity_registry: str = Field(..., alias="identityRegistry")
    reputation_registry: str = Field(..., alias="reputationRegistry")
    validation_registry: str = Field(..., alias="validationRegistry")
    job_board_escrow: Optional[str] = Field(None, alias="jobBoardEscrow")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


def load_deployments(path: Path | str) -> Deployments:
    """
    Read a deployments JSON file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    pydantic.ValidationError
        If a required address is missing.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        return Deployments.model_validate(json.load(f))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Deployments", "IndexerMode", "Settings", "get_settings", "load_deployments"]
