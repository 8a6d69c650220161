"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a ``.env`` file and
``ASSETDB_*`` environment variables.  The resolver itself never reads this
module: configuration is handed to ``AssetResolver.from_config`` (or its
constructor) explicitly.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from assetdb.core.identifiers import is_absolute_url
from assetdb.core.locator import RaceStrategy

# Fallback used when no repositories are configured.
DEFAULT_REPOSITORIES: list[str] = [
    "https://assets.animatedchatroom.net",
]


class AssetDBConfig(BaseSettings):
    """Resolver configuration with environment variable overrides.

    Examples
    --------
    Override via environment (lists are JSON)::

        export ASSETDB_REPOSITORIES='["https://cdn.example.net", "https://mirror.example.org"]'
        export ASSETDB_VIRTUAL_BASES='["https://assets.example.net/legacy"]'
        export ASSETDB_STORE_PATH=/var/cache/assetdb/assets.db
        export ASSETDB_RACE_STRATEGY=priority

    Or via .env file::

        ASSETDB_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ASSETDB_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote sources
    repositories: list[str] = list(DEFAULT_REPOSITORIES)
    virtual_bases: list[str] = []

    # Local store
    store_path: Path = Path(".assetdb/assets.db")

    # Package format
    archive_ext: str = "zip"
    manifest_name: str = "asset.json"

    # Network
    probe_method: str = "OPTIONS"
    race_strategy: RaceStrategy = RaceStrategy.FASTEST
    request_timeout_seconds: float = 30.0

    # Observability
    log_level: str = "INFO"

    @field_validator("repositories")
    @classmethod
    def _repositories_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one repository must be configured")
        return value

    @field_validator("virtual_bases")
    @classmethod
    def _bases_are_urls(cls, value: list[str]) -> list[str]:
        for base in value:
            if not is_absolute_url(base):
                raise ValueError(f"Virtual base must be a valid URL: {base!r}")
        return value

    @field_validator("archive_ext")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        return value.lstrip(".")


# Module-level instance for the CLI — import as `from assetdb.config import config`
config = AssetDBConfig()
