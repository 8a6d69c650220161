"""Package archive decoding.

A package archive is a zip file.  ``decode_archive`` reads its central
directory once and returns lazily-extracted entries, so bytes are only
decompressed for files that are not already in the content store.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

logger = logging.getLogger(__name__)


class ArchiveDecodeError(ValueError):
    """Raised when archive bytes are not a readable zip file."""


class ArchiveEntry:
    """A single file inside a decoded archive."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> None:
        self._archive = archive
        self._info = info

    @property
    def path(self) -> str:
        return self._info.filename

    @property
    def size_bytes(self) -> int:
        return self._info.file_size

    def extract(self) -> bytes:
        """Decompress and return the entry's bytes."""
        try:
            return self._archive.read(self._info)
        except (
            zipfile.BadZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            OSError,
            RuntimeError,
        ) as exc:
            raise ArchiveDecodeError(f"Cannot extract {self.path}: {exc}") from exc

    def extract_text(self, encoding: str = "utf-8") -> str:
        try:
            return self.extract().decode(encoding)
        except UnicodeDecodeError as exc:
            raise ArchiveDecodeError(f"{self.path} is not {encoding} text") from exc

    def __repr__(self) -> str:
        return f"ArchiveEntry({self.path!r}, {self.size_bytes} bytes)"


def decode_archive(data: bytes) -> dict[str, ArchiveEntry]:
    """Decode zip *data* into ``{path: ArchiveEntry}``; directories are skipped.

    Raises
    ------
    ArchiveDecodeError
        If *data* is not a valid zip archive.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveDecodeError(f"Not a zip archive: {exc}") from exc

    entries = {
        info.filename: ArchiveEntry(archive, info)
        for info in archive.infolist()
        if not info.is_dir()
    }
    logger.debug("Decoded archive with %d entries.", len(entries))
    return entries
