"""Asset identifier parsing.

An identifier takes one of three forms, checked in this order:

- Package-hash reference: ``@0123abcd/4567afaf`` — package id, then the
  content hash of a file in that package.
- Absolute URL: ``https://example.com/assets/hello_world.webp``.
- Bare path: ``sprites/my_sprite.webp`` — expanded against the configured
  virtual bases.

Parsing is pure and total: every string yields an ``AssetIdentifier`` or an
``IdentifierParseError``.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from assetdb.core.errors import IdentifierParseError
from assetdb.models.identifiers import AssetIdentifier, IdentifierKind

PACKAGE_MARKER = "@"
PATH_SEPARATOR = "/"

# RFC 3986 scheme; single letters are excluded so "C:/x" stays a path.
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+$")


def is_absolute_url(value: str) -> bool:
    """Return ``True`` if *value* parses as an absolute URL."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme in ("http", "https"):
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


def parse_identifier(identifier: str) -> AssetIdentifier:
    """Classify *identifier*.

    Raises
    ------
    IdentifierParseError
        If the identifier is empty, or is a package reference without a
        ``/`` separator, an empty part, or more than one separator.
    """
    if not identifier:
        raise IdentifierParseError(identifier, "identifier is empty")

    if identifier.startswith(PACKAGE_MARKER):
        package_id, sep, content_hash = identifier[1:].partition(PATH_SEPARATOR)
        if not sep:
            raise IdentifierParseError(identifier, "expected @<package>/<hash>")
        if not package_id or not content_hash:
            raise IdentifierParseError(identifier, "package id and hash must not be empty")
        if PATH_SEPARATOR in content_hash:
            raise IdentifierParseError(identifier, "hash must not contain '/'")
        return AssetIdentifier(
            raw=identifier,
            kind=IdentifierKind.PACKAGE_HASH,
            package_id=package_id,
            content_hash=content_hash,
        )

    if is_absolute_url(identifier):
        return AssetIdentifier(raw=identifier, kind=IdentifierKind.URL)

    return AssetIdentifier(raw=identifier, kind=IdentifierKind.BARE_PATH)


def join_virtual_base(base: str, path: str) -> str:
    """Join a virtual base URL and a bare path with exactly one ``/``."""
    return f"{base.rstrip(PATH_SEPARATOR)}{PATH_SEPARATOR}{path.lstrip(PATH_SEPARATOR)}"
