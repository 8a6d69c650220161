"""AssetDB: content-addressed asset resolution backed by package repositories.

Identifiers resolve through a local SQLite content store first and fall back
to installing the referencing package from the fastest (or highest-priority)
repository that hosts it.  Files shared between packages are stored once.
"""

__version__ = "0.1.0"
__description__ = "Content-addressed asset cache backed by package repositories"

from assetdb.config import AssetDBConfig
from assetdb.core.content_store import ContentStore
from assetdb.core.errors import AssetDBError, ErrorKind
from assetdb.core.resolver import AssetResolver

__all__ = [
    "AssetDBConfig",
    "AssetDBError",
    "AssetResolver",
    "ContentStore",
    "ErrorKind",
    "__version__",
]
