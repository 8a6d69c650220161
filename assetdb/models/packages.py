"""Package manifest and installation record models.

A package archive carries an ``asset.json`` manifest at its root::

    {
        "name": "Base emotes",
        "parent": "3e12c59c...",          # optional
        "files": {"wave.gif": "d3e61a05..."}
    }

The manifest is validated on parse; anything that does not match this schema
is rejected with an installation error rather than failing later on a
missing key.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

MANIFEST_SCHEMA_VERSION = 1


class PackageManifest(BaseModel):
    """Schema for a package's ``asset.json`` manifest.

    Examples
    --------
    >>> manifest = PackageManifest(name="emotes", files={"wave.gif": "abc123"})
    >>> manifest.parent is None
    True
    >>> manifest.hashes()
    frozenset({'abc123'})
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: int = MANIFEST_SCHEMA_VERSION
    name: str = ""
    parent: str | None = None
    files: dict[str, str]  # filename -> content hash

    @field_validator("parent")
    @classmethod
    def _parent_not_empty(cls, value: str | None) -> str | None:
        # An empty string means "no parent" in hand-written manifests.
        return value or None

    @field_validator("files")
    @classmethod
    def _hashes_not_empty(cls, value: dict[str, str]) -> dict[str, str]:
        for filename, content_hash in value.items():
            if not filename:
                raise ValueError("manifest contains an empty filename")
            if not content_hash:
                raise ValueError(f"manifest entry {filename!r} has an empty hash")
        return value

    def hashes(self) -> frozenset[str]:
        """Return the distinct content hashes declared by this manifest."""
        return frozenset(self.files.values())


class PackageRecord(BaseModel):
    """An installed package.  Written once, after all of its assets are stored."""

    model_config = ConfigDict(frozen=True)

    id: str
    acquired_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    manifest: PackageManifest

    @property
    def name(self) -> str:
        return self.manifest.name or self.id
