"""Asset resolver — the single public entry point of the engine.

Resolution depends on the identifier's kind:

- **Package-hash reference** ``@pkg/hash``: served from the content store
  whenever the hash is present, without touching the network.  On a miss
  the package is installed (unless ``cache_only``) and the store re-checked;
  a hash still missing after a successful install is a ``ConsistencyError``.
- **Absolute URL**: fetched directly.  With ``cache_only`` the result is
  ``None`` since arbitrary URLs are not cached here.
- **Bare path**: each virtual base is tried in order as ``{base}/{path}``.
  A not-found answer moves on to the next base; any other error aborts.
  Exhausting the bases yields ``None``.

``resolve`` returns ``None`` only for "known absent"; every other failure is
raised as an ``AssetDBError`` whose ``kind`` tells the caller what happened.
"""

from __future__ import annotations

import asyncio
import logging

from assetdb.bridge.transport import HttpTransport, raise_for_status
from assetdb.config import DEFAULT_REPOSITORIES, AssetDBConfig
from assetdb.core.content_store import ContentStore
from assetdb.core.errors import AssetDBError, ConfigurationError, ConsistencyError
from assetdb.core.identifiers import is_absolute_url, join_virtual_base, parse_identifier
from assetdb.core.installer import DEFAULT_MANIFEST_NAME, PackageInstaller
from assetdb.core.locator import DEFAULT_ARCHIVE_EXT, RaceStrategy, RepositoryLocator
from assetdb.models.assets import ResolvedAsset
from assetdb.models.identifiers import AssetIdentifier, IdentifierKind
from assetdb.models.packages import PackageRecord

logger = logging.getLogger(__name__)


class AssetResolver:
    """Resolves asset identifiers against the local store and remote repositories.

    Parameters
    ----------
    store:
        The persistent content store.
    transport:
        HTTP transport used for probes and fetches.
    repositories:
        Ordered repository base URLs.  Defaults to ``DEFAULT_REPOSITORIES``;
        an empty list is a ``ConfigurationError``.
    virtual_bases:
        Ordered URL prefixes for bare-path identifiers.  Each must be an
        absolute URL.
    archive_ext:
        Package archive extension.
    manifest_name:
        Path of the manifest inside each archive.
    race_strategy:
        How repository probes are raced (see ``RaceStrategy``).

    Examples
    --------
    >>> import asyncio
    >>> from pathlib import Path
    >>> async def main():
    ...     async with AssetResolver(
    ...         ContentStore(Path("/tmp/assetdb_doc.db")),
    ...         HttpTransport(),
    ...     ) as resolver:
    ...         return await resolver.resolve("@pkg/hash", cache_only=True)
    >>> asyncio.run(main()) is None
    True
    """

    def __init__(
        self,
        store: ContentStore,
        transport: HttpTransport,
        *,
        repositories: list[str] | None = None,
        virtual_bases: list[str] | None = None,
        archive_ext: str = DEFAULT_ARCHIVE_EXT,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        race_strategy: RaceStrategy = RaceStrategy.FASTEST,
    ) -> None:
        bases = list(virtual_bases or [])
        for base in bases:
            if not is_absolute_url(base):
                raise ConfigurationError(f"Virtual base must be a valid URL: {base!r}")

        if repositories is not None and not repositories:
            raise ConfigurationError("At least one repository must be configured")

        self._store = store
        self._transport = transport
        self._repositories = list(DEFAULT_REPOSITORIES if repositories is None else repositories)
        self._virtual_bases = bases
        self._locator = RepositoryLocator(
            transport, archive_ext=archive_ext, strategy=race_strategy
        )
        self._installer = PackageInstaller(
            store,
            self._locator,
            transport,
            self._repositories,
            manifest_name=manifest_name,
        )

    @classmethod
    def from_config(
        cls, config: AssetDBConfig, *, transport: HttpTransport | None = None
    ) -> AssetResolver:
        """Build a resolver, its store and (unless given) its transport from *config*."""
        return cls(
            ContentStore(config.store_path),
            transport or HttpTransport(
                timeout=config.request_timeout_seconds,
                probe_method=config.probe_method,
            ),
            repositories=config.repositories,
            virtual_bases=config.virtual_bases,
            archive_ext=config.archive_ext,
            manifest_name=config.manifest_name,
            race_strategy=config.race_strategy,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def store(self) -> ContentStore:
        return self._store

    @property
    def installer(self) -> PackageInstaller:
        return self._installer

    @property
    def repositories(self) -> list[str]:
        return list(self._repositories)

    @property
    def virtual_bases(self) -> list[str]:
        return list(self._virtual_bases)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, identifier: str, *, cache_only: bool = False) -> ResolvedAsset | None:
        """Resolve *identifier* to its bytes and MIME type.

        Parameters
        ----------
        identifier:
            ``@package/hash``, an absolute URL, or a bare path.
        cache_only:
            Forbid network access; only already-stored assets resolve.

        Returns
        -------
        ResolvedAsset | None
            ``None`` when the asset is known to be absent (offline miss, or
            every virtual base exhausted).

        Raises
        ------
        AssetDBError
            Any other failure; inspect ``exc.kind``.
        """
        parsed = parse_identifier(identifier)
        if parsed.kind is IdentifierKind.PACKAGE_HASH:
            return await self._resolve_package_hash(parsed, cache_only)
        if parsed.kind is IdentifierKind.URL:
            return await self._resolve_url(parsed.raw, cache_only)
        return await self._resolve_bare_path(parsed.raw, cache_only)

    async def _resolve_bare_path(self, path: str, cache_only: bool) -> ResolvedAsset | None:
        if not self._virtual_bases:
            raise ConfigurationError(
                f"Cannot resolve bare path {path!r}: no virtual base configured"
            )
        for base in self._virtual_bases:
            candidate = join_virtual_base(base, path)
            try:
                result = await self.resolve(candidate, cache_only=cache_only)
            except AssetDBError as exc:
                if not exc.is_not_found:
                    raise
                logger.debug("Not found under virtual base %s: %s", base, exc)
                continue
            if result is not None:
                return result
        return None

    async def _resolve_url(self, url: str, cache_only: bool) -> ResolvedAsset | None:
        if cache_only:
            return None
        result = raise_for_status(await self._transport.fetch(url))
        return ResolvedAsset(data=result.content, mime_type=result.mime_type, source=url)

    async def _resolve_package_hash(
        self, parsed: AssetIdentifier, cache_only: bool
    ) -> ResolvedAsset | None:
        asset = await asyncio.to_thread(self._store.get_asset, parsed.content_hash)
        if asset is None:
            if cache_only:
                logger.debug("Cache miss for %s (offline).", parsed.raw)
                return None
            logger.debug("Cache miss for %s; installing %s.", parsed.raw, parsed.package_id)
            await self._installer.install(parsed.package_id)
            asset = await asyncio.to_thread(self._store.get_asset, parsed.content_hash)
            if asset is None:
                raise ConsistencyError(parsed.package_id, parsed.content_hash)
        return ResolvedAsset(
            data=asset.data, mime_type=asset.mime_type, source=asset.hash
        )

    # ------------------------------------------------------------------
    # Package management
    # ------------------------------------------------------------------

    async def install_package(self, package_id: str) -> PackageRecord:
        return await self._installer.install(package_id)

    async def delete_package(self, package_id: str) -> bool:
        """Delete an installed package and release its assets."""
        return await asyncio.to_thread(self._store.delete_package, package_id)

    async def list_packages(self) -> list[PackageRecord]:
        return await asyncio.to_thread(self._store.list_packages)

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._store.clear_all)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> AssetResolver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
