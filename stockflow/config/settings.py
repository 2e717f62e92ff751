"""
Settings for the inventory core, read from the environment and ``.env``.

Each concern has its own prefix: ``STORAGE_`` for the SQLite database and
``WORKFLOW_`` for document numbering and workflow defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """SQLite database location and pool sizing."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "stockflow.db"
    pool_size: int = Field(default=5, ge=1, description="Concurrent transitions")
    busy_timeout: int = Field(default=30000, ge=0, description="Write-lock wait in ms")

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class WorkflowSettings(BaseSettings):
    """Document numbering and workflow behaviour."""

    model_config = SettingsConfigDict(env_prefix="WORKFLOW_")

    # Warehouse-scoped numbers: WH-<code>-IN-000001 / WH-<code>-OUT-000001
    warehouse_prefix: str = "WH"
    receipt_direction: str = "IN"
    delivery_direction: str = "OUT"
    warehouse_number_padding: int = Field(default=6, ge=1, le=12)

    # Global numbers: REQ-0001, TRF-0001, ADJ-0001
    requisition_prefix: str = "REQ"
    transfer_prefix: str = "TRF"
    adjustment_prefix: str = "ADJ"
    global_number_padding: int = Field(default=4, ge=1, le=12)

    default_reject_reason: str = "Rejected by manager"

    # Draw from other locations when the requested one is short at dispatch
    transfer_location_fallback: bool = True

    default_list_limit: int = Field(default=100, ge=1)

    @field_validator(
        "warehouse_prefix",
        "receipt_direction",
        "delivery_direction",
        "requisition_prefix",
        "transfer_prefix",
        "adjustment_prefix",
    )
    @classmethod
    def check_number_part(cls, v: str) -> str:
        if not v or not v.isalnum() or not v.isupper():
            raise ValueError("reference-number parts must be uppercase letters or digits")
        return v


class Settings(BaseSettings):
    """Top-level settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Stockflow Inventory Core"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    storage: StorageSettings = Field(default_factory=StorageSettings)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)

    @field_validator("storage", mode="before")
    @classmethod
    def prepare_data_dir(cls, v: Any) -> StorageSettings:
        """Accept a plain dict and make sure the database directory exists."""
        storage = StorageSettings(**v) if isinstance(v, dict) else v or StorageSettings()
        storage.data_dir.mkdir(parents=True, exist_ok=True)
        return storage


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
