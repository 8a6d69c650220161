"""Bridge layer between the resolution engine and its external collaborators.

The engine never talks to the network, an archive format, or a MIME table
directly.  Each collaborator sits behind a small adapter here so it can be
swapped (or faked in tests) without touching the engine.

Modules
-------
transport
    ``HttpTransport`` — existence probes and full fetches over ``httpx``.
archive
    ``decode_archive`` — turns zip bytes into a mapping of path to
    extractable ``ArchiveEntry``.
mime
    ``mime_type_of`` — MIME inference from a filename.
"""

from assetdb.bridge.archive import ArchiveDecodeError, ArchiveEntry, decode_archive
from assetdb.bridge.mime import DEFAULT_MIME_TYPE, mime_type_of
from assetdb.bridge.transport import FetchResult, HttpTransport

__all__ = [
    "ArchiveDecodeError",
    "ArchiveEntry",
    "decode_archive",
    "DEFAULT_MIME_TYPE",
    "mime_type_of",
    "FetchResult",
    "HttpTransport",
]
