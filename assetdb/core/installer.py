"""Package installer — fetch, unpack, chase parents, merge into the store.

Installation of one package runs strictly in this order:

1. Return early if the package is already recorded in the store.
2. Locate a hosting repository and fetch the archive.
3. Decode the archive and validate its ``asset.json`` manifest.
4. Install the parent package, if any, before anything of this package.
5. Merge every manifest file into the store — an existing hash only gains
   this package as an owner; a new hash is extracted and inserted.
6. Write the package record.

The record is written last, so a package record never exists without all of
its assets.  An installation interrupted between steps 5 and 6 is simply
redone on the next call: step 5 is idempotent because it dedups by hash.
When step 5 fails with an ``InstallationError`` the package's ownership of
the assets merged so far is released, so a package that never got a record
does not pin assets no ``delete_package`` call could free.

Concurrent ``install`` calls for the same package share one in-flight task.
Parent chains are checked for cycles, both along one recursive chain and
across concurrent installs waiting on each other.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Protocol

from pydantic import ValidationError

from assetdb.bridge.archive import ArchiveDecodeError, ArchiveEntry, decode_archive
from assetdb.bridge.mime import mime_type_of
from assetdb.bridge.transport import FetchResult, raise_for_status
from assetdb.core.content_store import ContentStore
from assetdb.core.errors import (
    CyclicDependencyError,
    InstallationError,
    PackageNotFoundError,
)
from assetdb.core.locator import RepositoryLocator
from assetdb.models.assets import Asset
from assetdb.models.packages import PackageManifest, PackageRecord

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "asset.json"


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResult: ...


def parse_manifest(
    package_id: str,
    entries: dict[str, ArchiveEntry],
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> PackageManifest:
    """Read and validate the manifest of a decoded package archive.

    Raises
    ------
    InstallationError
        If the manifest is missing, is not JSON, or does not match the schema.
    """
    entry = entries.get(manifest_name)
    if entry is None:
        raise InstallationError(package_id, f"archive has no {manifest_name}")
    try:
        raw = json.loads(entry.extract_text())
    except (ArchiveDecodeError, json.JSONDecodeError) as exc:
        raise InstallationError(package_id, f"unreadable {manifest_name}: {exc}") from exc
    if not isinstance(raw, dict):
        raise InstallationError(package_id, f"{manifest_name} is not a JSON object")
    try:
        return PackageManifest.model_validate(raw)
    except ValidationError as exc:
        raise InstallationError(
            package_id, f"invalid {manifest_name}: {exc.error_count()} error(s)\n{exc}"
        ) from exc


class PackageInstaller:
    """Installs packages, and their parents, into a ``ContentStore``.

    Parameters
    ----------
    store:
        The content store to merge into.
    locator:
        Finds the repository hosting a package.
    transport:
        Anything with an ``async fetch(url) -> FetchResult`` method.
    repositories:
        Ordered repository base URLs handed to the locator.
    manifest_name:
        Path of the manifest inside each archive.
    """

    def __init__(
        self,
        store: ContentStore,
        locator: RepositoryLocator,
        transport: Fetcher,
        repositories: list[str],
        *,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
    ) -> None:
        self._store = store
        self._locator = locator
        self._transport = transport
        self._repositories = list(repositories)
        self._manifest_name = manifest_name
        self._inflight: dict[str, asyncio.Task[PackageRecord]] = {}
        # package id -> the parent package id its install is waiting on
        self._awaiting: dict[str, str] = {}

    @property
    def repositories(self) -> list[str]:
        return list(self._repositories)

    def in_flight(self) -> list[str]:
        """Package ids with an installation currently running."""
        return sorted(self._inflight)

    async def install(self, package_id: str) -> PackageRecord:
        """Install *package_id* (and its parents) if not already installed.

        Idempotent: an installed package returns its existing record without
        touching the network.

        Raises
        ------
        PackageNotFoundError
            No repository hosts the package (or one of its parents).
        TransportError
            The archive could not be fetched.
        InstallationError
            The archive or manifest is unusable, or the parent chain is cyclic.
        """
        return await self._install(package_id, ())

    async def _install(self, package_id: str, chain: tuple[str, ...]) -> PackageRecord:
        if package_id in chain:
            raise CyclicDependencyError(chain + (package_id,))

        # No await between the lookup and the registration below: a caller
        # either joins the running task or starts the only one.
        waiter = chain[-1] if chain else None
        task = self._inflight.get(package_id)
        if task is None:
            task = asyncio.ensure_future(self._run(package_id, chain))
            self._inflight[package_id] = task
            task.add_done_callback(lambda done: self._forget(package_id, done))
        else:
            logger.debug("Joining in-flight install of %s.", package_id)
            if waiter is not None and self._waits_on(package_id, waiter):
                raise CyclicDependencyError(chain + (package_id,))

        if waiter is not None:
            self._awaiting[waiter] = package_id
        try:
            # Shielded so a cancelled caller leaves the install running
            # for everyone else.
            return await asyncio.shield(task)
        finally:
            if waiter is not None:
                self._awaiting.pop(waiter, None)

    def _waits_on(self, package_id: str, waiter: str) -> bool:
        """Whether *package_id*'s install is (transitively) waiting on *waiter*."""
        seen: set[str] = set()
        node = package_id
        while node in self._awaiting and node not in seen:
            seen.add(node)
            node = self._awaiting[node]
            if node == waiter:
                return True
        return False

    def _forget(self, package_id: str, task: asyncio.Task[PackageRecord]) -> None:
        if self._inflight.get(package_id) is task:
            del self._inflight[package_id]
        if not task.cancelled():
            task.exception()  # mark retrieved; awaiting callers re-raise it

    async def _run(self, package_id: str, chain: tuple[str, ...]) -> PackageRecord:
        existing = await asyncio.to_thread(self._store.get_package, package_id)
        if existing is not None:
            logger.debug("Package %s already installed.", package_id)
            return existing

        url = await self._locator.locate(package_id, self._repositories)
        result = raise_for_status(
            await self._transport.fetch(url),
            PackageNotFoundError,
            package_id=package_id,
            detail=f"{url} disappeared after probing",
        )

        try:
            entries = decode_archive(result.content)
        except ArchiveDecodeError as exc:
            raise InstallationError(package_id, str(exc)) from exc
        manifest = parse_manifest(package_id, entries, self._manifest_name)

        if manifest.parent:
            logger.debug("Package %s depends on %s.", package_id, manifest.parent)
            await self._install(manifest.parent, chain + (package_id,))

        try:
            added, shared = await self._merge_files(package_id, manifest, entries)
        except InstallationError:
            released = await asyncio.to_thread(self._store.release_unrecorded, package_id)
            if released:
                logger.warning(
                    "Install of %s failed; released %d partially merged assets.",
                    package_id,
                    released,
                )
            raise

        record = PackageRecord(
            id=package_id,
            acquired_at=datetime.now(timezone.utc),
            manifest=manifest,
        )
        await asyncio.to_thread(self._store.put_package, record)
        logger.info(
            'Installed new package "%s" (%d new assets, %d shared).',
            record.name,
            added,
            shared,
        )
        return record

    async def _merge_files(
        self,
        package_id: str,
        manifest: PackageManifest,
        entries: dict[str, ArchiveEntry],
    ) -> tuple[int, int]:
        """Merge manifest files into the store; return (added, shared) counts."""
        added = shared = 0
        for filename, content_hash in manifest.files.items():
            if await asyncio.to_thread(self._store.add_owner, content_hash, package_id):
                shared += 1
                continue

            entry = entries.get(filename)
            if entry is None:
                raise InstallationError(
                    package_id, f"manifest lists {filename!r} but the archive lacks it"
                )
            try:
                data = entry.extract()
            except ArchiveDecodeError as exc:
                raise InstallationError(package_id, str(exc)) from exc

            asset = Asset(
                hash=content_hash,
                data=data,
                mime_type=mime_type_of(filename),
                owning_packages=frozenset({package_id}),
            )
            await asyncio.to_thread(self._store.merge_asset, asset)
            added += 1
        return added, shared
