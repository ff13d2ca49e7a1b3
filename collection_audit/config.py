"""
Configuration settings for the collection audit.

Uses Pydantic Settings to load environment variables for database connections,
logging, and audit defaults (output locations, group ownership and access
roles, detail batch size, query backend).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("collection_audit", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS", ge=0)

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Audit outputs
    audit_output_dir: Path = Field(Path("reports"), alias="AUDIT_OUTPUT_DIR")
    audit_results_dir: Path = Field(Path("results"), alias="AUDIT_RESULTS_DIR")
    audit_detail_batch_size: int = Field(500, alias="AUDIT_DETAIL_BATCH_SIZE", gt=0)
    audit_seed: Optional[int] = Field(None, alias="AUDIT_SEED")
    audit_plan_file: Optional[Path] = Field(None, alias="AUDIT_PLAN_FILE")

    # Group ownership and access control
    audit_owner_id: str = Field("audit", alias="AUDIT_OWNER_ID")
    audit_owner_name: str = Field("Collection Audit", alias="AUDIT_OWNER_NAME")
    audit_module: str = Field("ecatalogue", alias="AUDIT_MODULE")
    audit_edit_roles: List[str] = Field(default_factory=lambda: ["Admin"], alias="AUDIT_EDIT_ROLES")
    audit_display_roles: List[str] = Field(
        default_factory=lambda: ["Admin", "Everyone"], alias="AUDIT_DISPLAY_ROLES"
    )
    audit_delete_roles: List[str] = Field(
        default_factory=lambda: ["Admin"], alias="AUDIT_DELETE_ROLES"
    )

    # Query backend
    audit_query_backend: Literal["postgres", "command"] = Field(
        "postgres", alias="AUDIT_QUERY_BACKEND"
    )
    audit_query_command: List[str] = Field(
        default_factory=lambda: ["texql"], alias="AUDIT_QUERY_COMMAND"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
