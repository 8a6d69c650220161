"""Shared test fixtures for AssetDB.

Repositories are simulated with ``httpx.MockTransport``: a ``FakeRepositories``
instance serves package archives under one or more base URLs and records
every request, so tests can assert on network traffic (or its absence).
"""

from __future__ import annotations

import asyncio
import io
import struct
import zipfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from assetdb.bridge.transport import HttpTransport
from assetdb.core.content_store import ContentStore
from assetdb.core.packer import build_archive
from assetdb.core.resolver import AssetResolver
from assetdb.models.packages import PackageManifest

REPO_A = "https://repo-a.test"
REPO_B = "https://repo-b.test"


class FakeRepositories:
    """In-memory HTTP server for package archives and plain files."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, str]] = {}
        self.delays: dict[str, float] = {}
        self.statuses: dict[str, int] = {}  # GET status overrides
        self.requests: list[tuple[str, str]] = []

    def add_package(
        self,
        repository: str,
        package_id: str,
        files: dict[str, bytes],
        hashes: dict[str, str],
        *,
        name: str = "",
        parent: str | None = None,
    ) -> bytes:
        manifest = PackageManifest(name=name or package_id, parent=parent, files=hashes)
        archive = build_archive(files, manifest)
        self.files[f"{repository}/{package_id}.zip"] = (archive, "application/zip")
        return archive

    def add_file(self, url: str, data: bytes, content_type: str = "") -> None:
        self.files[url] = (data, content_type)

    def count(self, method: str | None = None, url: str | None = None) -> int:
        return sum(
            1
            for m, u in self.requests
            if (method is None or m == method) and (url is None or u == url)
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        delay = self.delays.get(url)
        if delay:
            await asyncio.sleep(delay)
        if request.method == "GET" and url in self.statuses:
            return httpx.Response(self.statuses[url])
        if url not in self.files:
            return httpx.Response(404)
        if request.method == "OPTIONS":
            return httpx.Response(200)
        data, content_type = self.files[url]
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(200, content=data, headers=headers)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def store(tmp_dir: Path) -> ContentStore:
    """Provide a fresh ContentStore backed by a temp SQLite database."""
    return ContentStore(tmp_dir / "assets.db")


@pytest.fixture
def repos() -> FakeRepositories:
    return FakeRepositories()


@pytest.fixture
def make_transport(repos: FakeRepositories) -> Callable[[], HttpTransport]:
    """Factory fixture: an HttpTransport wired to the fake repositories."""

    def _factory() -> HttpTransport:
        return HttpTransport(transport=httpx.MockTransport(repos.handler))

    return _factory


@pytest.fixture
def make_resolver(
    store: ContentStore, make_transport: Callable[[], HttpTransport]
) -> Callable[..., AssetResolver]:
    """Factory fixture: an AssetResolver over the temp store and fake repositories."""

    def _factory(**overrides) -> AssetResolver:
        defaults = {"repositories": [REPO_A]}
        defaults.update(overrides)
        return AssetResolver(store, make_transport(), **defaults)

    return _factory


@pytest.fixture
def corrupt_member() -> Callable[[bytes, str], bytes]:
    """Factory fixture: damage the deflate stream of one member of a zip.

    The central directory stays intact, so the archive still opens and only
    extracting that member fails.
    """

    def _corrupt(archive: bytes, name: str) -> bytes:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            info = zf.getinfo(name)
        data = bytearray(archive)
        offset = info.header_offset
        name_len, extra_len = struct.unpack("<HH", data[offset + 26 : offset + 30])
        # 0xFF starts a final block of the reserved (invalid) type
        data[offset + 30 + name_len + extra_len] = 0xFF
        return bytes(data)

    return _corrupt
