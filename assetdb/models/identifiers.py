"""Classified asset identifiers."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class IdentifierKind(str, Enum):
    """How an asset identifier is to be resolved.

    * ``package_hash`` — ``@<package>/<hash>``, looked up in the content store.
    * ``url`` — an absolute URL, fetched directly.
    * ``bare_path`` — anything else; expanded against the virtual bases.
    """

    PACKAGE_HASH = "package_hash"
    URL = "url"
    BARE_PATH = "bare_path"


class AssetIdentifier(BaseModel):
    """A raw identifier string together with its classification."""

    model_config = ConfigDict(frozen=True)

    raw: str
    kind: IdentifierKind
    package_id: str = ""
    content_hash: str = ""

    @property
    def is_package_reference(self) -> bool:
        return self.kind is IdentifierKind.PACKAGE_HASH
