"""MIME type inference from filenames."""

from __future__ import annotations

import mimetypes
from urllib.parse import urlsplit

DEFAULT_MIME_TYPE = "application/octet-stream"

# Formats common in asset packages that older mimetypes tables lack.
_EXTRA_TYPES = {
    ".webp": "image/webp",
    ".apng": "image/apng",
    ".avif": "image/avif",
    ".opus": "audio/ogg",
    ".webm": "video/webm",
}


def mime_type_of(filename: str) -> str:
    """Guess the MIME type of *filename* (a path or URL).

    Falls back to ``application/octet-stream`` when the extension is unknown.
    """
    path = urlsplit(filename).path if "://" in filename else filename
    guessed, _ = mimetypes.guess_type(path, strict=False)
    if guessed:
        return guessed
    suffix = path[path.rfind("."):].lower() if "." in path else ""
    return _EXTRA_TYPES.get(suffix, DEFAULT_MIME_TYPE)
