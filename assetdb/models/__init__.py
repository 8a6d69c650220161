"""AssetDB data models — all Pydantic v2, all frozen (immutable)."""

from assetdb.models.assets import Asset, ResolvedAsset
from assetdb.models.identifiers import AssetIdentifier, IdentifierKind
from assetdb.models.packages import (
    MANIFEST_SCHEMA_VERSION,
    PackageManifest,
    PackageRecord,
)

__all__ = [
    # assets
    "Asset",
    "ResolvedAsset",
    # identifiers
    "AssetIdentifier",
    "IdentifierKind",
    # packages
    "MANIFEST_SCHEMA_VERSION",
    "PackageManifest",
    "PackageRecord",
]
