"""Error taxonomy for asset resolution.

Every error raised by the engine is an ``AssetDBError`` tagged with an
``ErrorKind``.  Callers branch on ``exc.kind`` rather than on the concrete
class: a fallback chain (virtual bases, repositories) treats
``ErrorKind.NOT_FOUND`` as "try the next option" and propagates everything
else.

=====================  ==============  ======================================
Class                  Kind            Raised when
=====================  ==============  ======================================
IdentifierParseError   parse           identifier is malformed
AssetNotFoundError     not_found       direct URL answers 404/410
PackageNotFoundError   not_found       no repository hosts the package
TransportError         transport       other non-2xx status, network failure
InstallationError      installation    bad archive or manifest
CyclicDependencyError  installation    parent chain revisits a package
ConsistencyError       consistency     hash missing after a good install
ConfigurationError     config          invalid resolver configuration
=====================  ==============  ======================================
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag carried by every ``AssetDBError``."""

    PARSE = "parse"
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    INSTALLATION = "installation"
    CONSISTENCY = "consistency"
    CONFIG = "config"

    @property
    def is_retryable(self) -> bool:
        """Only transport failures may succeed on a later attempt."""
        return self is ErrorKind.TRANSPORT


class AssetDBError(RuntimeError):
    """Base class for all asset resolution errors."""

    kind: ErrorKind = ErrorKind.INSTALLATION

    @property
    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND


class IdentifierParseError(AssetDBError):
    """Raised when an identifier string cannot be classified."""

    kind = ErrorKind.PARSE

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Malformed asset identifier {identifier!r}: {reason}")
        self.identifier = identifier


class AssetNotFoundError(AssetDBError):
    """Raised when a directly referenced resource does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, url: str, status: int | None = None) -> None:
        super().__init__(f"Asset not found: {url}")
        self.url = url
        self.status = status


class PackageNotFoundError(AssetDBError):
    """Raised when no configured repository hosts a package."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, package_id: str, detail: str = "") -> None:
        message = f"No repositories contain package {package_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.package_id = package_id


class TransportError(AssetDBError):
    """Raised on a non-success HTTP status or a transport-level failure.

    ``status`` is ``None`` when no response was received at all.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(self, url: str, status: int | None = None, detail: str = "") -> None:
        if status is not None:
            message = f"Could not fetch {url}: HTTP {status}"
        else:
            message = f"Could not fetch {url}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.url = url
        self.status = status


class InstallationError(AssetDBError):
    """Raised when a package archive or its manifest cannot be used.

    No package record is written when this is raised.
    """

    kind = ErrorKind.INSTALLATION

    def __init__(self, package_id: str, reason: str) -> None:
        super().__init__(f"Cannot install package {package_id}: {reason}")
        self.package_id = package_id
        self.reason = reason


class CyclicDependencyError(InstallationError):
    """Raised when a package's parent chain loops back on itself."""

    def __init__(self, chain: tuple[str, ...]) -> None:
        super().__init__(
            chain[-1], "cyclic dependency " + " -> ".join(chain)
        )
        self.chain = chain


class ConsistencyError(AssetDBError):
    """Raised when an installed package does not provide a hash it was asked for."""

    kind = ErrorKind.CONSISTENCY

    def __init__(self, package_id: str, content_hash: str) -> None:
        super().__init__(
            f"Could not find asset @{package_id}/{content_hash}, "
            f"even from suggested package"
        )
        self.package_id = package_id
        self.content_hash = content_hash


class ConfigurationError(AssetDBError):
    """Raised when the resolver is configured with unusable values."""

    kind = ErrorKind.CONFIG
