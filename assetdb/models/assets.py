"""Content-addressed asset models.

An asset is a single deduplicated file.  It is keyed by its content hash and
exists in the store only while at least one installed package owns it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Asset(BaseModel):
    """A stored asset — bytes, MIME type, and the packages that reference it.

    The ``owning_packages`` set is never empty for a persisted asset: when the
    last owner is removed the asset is deleted from the store.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    data: bytes
    mime_type: str = "application/octet-stream"
    owning_packages: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("hash")
    @classmethod
    def _hash_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("asset hash must not be empty")
        return value

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def with_owner(self, package_id: str) -> Asset:
        """Return a copy of this asset with *package_id* added to its owners."""
        return self.model_copy(
            update={"owning_packages": self.owning_packages | {package_id}}
        )


class ResolvedAsset(BaseModel):
    """The result of resolving an identifier: bytes plus their MIME type.

    ``source`` records where the bytes came from — the content hash for
    cached package assets, or the URL for direct fetches.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str
    source: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)
