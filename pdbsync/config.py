"""
Configuration settings for pdbsync.

Uses Pydantic Settings to load environment variables for the remote catalog,
the local PostgreSQL store, logging, and synchronization defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_BASE_URL = "https://peeringdb.com/api"
DEFAULT_OBJECTS = ["ix", "net", "netixlan"]


class Settings(BaseSettings):
    # Remote catalog
    pdb_base_url: str = Field(DEFAULT_BASE_URL, alias="PDB_BASE_URL")
    pdb_objects: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_OBJECTS), alias="PDB_OBJECTS"
    )
    http_timeout_seconds: float = Field(30.0, alias="HTTP_TIMEOUT_SECONDS", gt=0)
    http_verify_tls: bool = Field(True, alias="HTTP_VERIFY_TLS")

    # Database
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("pdb", alias="DB_NAME")
    db_connect_retries: int = Field(3, alias="DB_CONNECT_RETRIES", ge=1)

    # Synchronization
    sync_conflict_policy: Literal["upsert", "error"] = Field(
        "upsert", alias="SYNC_CONFLICT_POLICY"
    )

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("pdb_objects", mode="before")
    @classmethod
    def _split_objects(cls, value: object) -> object:
        # PDB_OBJECTS=ix,net,netixlan
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("pdb_objects")
    @classmethod
    def _require_objects(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one object type must be configured")
        return value

    @property
    def dsn(self) -> str:
        """Connection string for the local store, DATABASE_URL taking precedence."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["DEFAULT_BASE_URL", "DEFAULT_OBJECTS", "Settings", "get_settings"]
