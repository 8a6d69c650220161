"""Tests for AssetResolver — resolution chain, offline mode, error kinds."""

from __future__ import annotations

import asyncio

import pytest

from assetdb.core.errors import (
    AssetNotFoundError,
    ConfigurationError,
    ConsistencyError,
    ErrorKind,
    IdentifierParseError,
    PackageNotFoundError,
    TransportError,
)
from assetdb.models.assets import Asset

REPO_A = "https://repo-a.test"
BASE_1 = "https://b1.test/assets"
BASE_2 = "https://b2.test/assets"


def _resolve(make_resolver, identifier: str, *, cache_only: bool = False, **kwargs):
    async def run():
        async with make_resolver(**kwargs) as resolver:
            return await resolver.resolve(identifier, cache_only=cache_only)

    return asyncio.run(run())


class TestPackageHash:
    def test_cached_asset_needs_no_network(self, store, repos, make_resolver):
        store.put_asset(
            Asset(hash="H1", data=b"A", mime_type="image/png", owning_packages=frozenset({"p"}))
        )
        result = _resolve(make_resolver, "@p/H1")
        assert result.data == b"A"
        assert result.mime_type == "image/png"
        assert result.source == "H1"
        assert repos.requests == []

    def test_cached_asset_from_other_package(self, store, repos, make_resolver):
        store.put_asset(
            Asset(hash="H1", data=b"A", owning_packages=frozenset({"other"}))
        )
        assert _resolve(make_resolver, "@unrelated/H1", cache_only=True).data == b"A"
        assert repos.requests == []

    def test_offline_miss_is_none(self, repos, make_resolver):
        repos.add_package(REPO_A, "p", {"a.png": b"A"}, {"a.png": "H1"})
        assert _resolve(make_resolver, "@p/H1", cache_only=True) is None
        assert repos.requests == []

    def test_miss_installs_package(self, store, repos, make_resolver):
        repos.add_package(REPO_A, "p", {"a.png": b"A"}, {"a.png": "H1"})
        result = _resolve(make_resolver, "@p/H1")
        assert result.data == b"A"
        assert result.mime_type == "image/png"
        assert store.has_package("p")

    def test_hash_not_in_package_is_consistency_error(self, repos, make_resolver):
        repos.add_package(REPO_A, "p", {"a.png": b"A"}, {"a.png": "H1"})
        with pytest.raises(ConsistencyError) as excinfo:
            _resolve(make_resolver, "@p/H9")
        assert excinfo.value.kind is ErrorKind.CONSISTENCY
        assert excinfo.value.content_hash == "H9"

    def test_unknown_package_is_not_found(self, make_resolver):
        with pytest.raises(PackageNotFoundError):
            _resolve(make_resolver, "@ghost/H1")

    def test_malformed_identifier(self, make_resolver):
        with pytest.raises(IdentifierParseError):
            _resolve(make_resolver, "@no-separator")


class TestDirectUrl:
    def test_fetch(self, repos, make_resolver):
        repos.add_file("https://cdn.test/banana.gif", b"GIF89a", "image/gif")
        result = _resolve(make_resolver, "https://cdn.test/banana.gif")
        assert result.data == b"GIF89a"
        assert result.mime_type == "image/gif"
        assert result.source == "https://cdn.test/banana.gif"

    def test_mime_inferred_without_header(self, repos, make_resolver):
        repos.add_file("https://cdn.test/banana.gif", b"GIF89a")
        assert _resolve(make_resolver, "https://cdn.test/banana.gif").mime_type == "image/gif"

    def test_offline_is_none(self, repos, make_resolver):
        repos.add_file("https://cdn.test/banana.gif", b"GIF89a")
        assert _resolve(make_resolver, "https://cdn.test/banana.gif", cache_only=True) is None
        assert repos.requests == []

    def test_404_is_not_found(self, make_resolver):
        with pytest.raises(AssetNotFoundError):
            _resolve(make_resolver, "https://cdn.test/missing.gif")

    def test_410_is_not_found(self, repos, make_resolver):
        repos.add_file("https://cdn.test/old.gif", b"")
        repos.statuses["https://cdn.test/old.gif"] = 410
        with pytest.raises(AssetNotFoundError):
            _resolve(make_resolver, "https://cdn.test/old.gif")

    def test_server_error_is_transport_error(self, repos, make_resolver):
        repos.statuses["https://cdn.test/a.gif"] = 500
        with pytest.raises(TransportError) as excinfo:
            _resolve(make_resolver, "https://cdn.test/a.gif")
        assert excinfo.value.status == 500


class TestVirtualBases:
    def test_falls_through_not_found(self, repos, make_resolver):
        repos.add_file(f"{BASE_2}/sprites/idle.png", b"PNG2", "image/png")
        result = _resolve(make_resolver, "sprites/idle.png", virtual_bases=[BASE_1, BASE_2])
        assert result.data == b"PNG2"
        assert repos.count(url=f"{BASE_1}/sprites/idle.png") == 1

    def test_stops_at_first_hit(self, repos, make_resolver):
        repos.add_file(f"{BASE_1}/a.png", b"ONE")
        repos.add_file(f"{BASE_2}/a.png", b"TWO")
        result = _resolve(make_resolver, "a.png", virtual_bases=[BASE_1, BASE_2])
        assert result.data == b"ONE"
        assert repos.count(url=f"{BASE_2}/a.png") == 0

    def test_no_further_attempt_after_hit(self, repos, make_resolver):
        repos.add_file(f"{BASE_2}/a.png", b"TWO")
        base_3 = "https://b3.test"
        _resolve(make_resolver, "a.png", virtual_bases=[BASE_1, BASE_2, base_3])
        assert repos.count(url=f"{base_3}/a.png") == 0

    def test_exhausted_is_none(self, make_resolver):
        assert _resolve(make_resolver, "a.png", virtual_bases=[BASE_1, BASE_2]) is None

    def test_other_errors_abort(self, repos, make_resolver):
        repos.statuses[f"{BASE_1}/a.png"] = 503
        repos.add_file(f"{BASE_2}/a.png", b"TWO")
        with pytest.raises(TransportError):
            _resolve(make_resolver, "a.png", virtual_bases=[BASE_1, BASE_2])
        assert repos.count(url=f"{BASE_2}/a.png") == 0

    def test_offline_is_none(self, repos, make_resolver):
        repos.add_file(f"{BASE_1}/a.png", b"ONE")
        assert _resolve(make_resolver, "a.png", cache_only=True, virtual_bases=[BASE_1]) is None
        assert repos.requests == []

    def test_bare_path_without_bases_is_error(self, make_resolver):
        with pytest.raises(ConfigurationError) as excinfo:
            _resolve(make_resolver, "a.png")
        assert excinfo.value.kind is ErrorKind.CONFIG

    def test_invalid_base_rejected(self, store, make_transport):
        from assetdb.core.resolver import AssetResolver

        with pytest.raises(ConfigurationError):
            AssetResolver(store, make_transport(), virtual_bases=["not a url"])

    def test_empty_repository_list_rejected(self, store, make_transport):
        from assetdb.core.resolver import AssetResolver

        with pytest.raises(ConfigurationError) as excinfo:
            AssetResolver(store, make_transport(), repositories=[])
        assert excinfo.value.kind is ErrorKind.CONFIG


class TestPackageManagement:
    def test_install_list_delete(self, store, repos, make_resolver):
        repos.add_package(REPO_A, "p", {"a.png": b"A"}, {"a.png": "H1"})

        async def run():
            async with make_resolver() as resolver:
                await resolver.install_package("p")
                listed = await resolver.list_packages()
                deleted = await resolver.delete_package("p")
                return listed, deleted

        listed, deleted = asyncio.run(run())
        assert [r.id for r in listed] == ["p"]
        assert deleted is True
        assert store.get_asset("H1") is None

    def test_clear_all(self, store, make_resolver):
        store.put_asset(Asset(hash="H1", data=b"A", owning_packages=frozenset({"p"})))

        async def run():
            async with make_resolver() as resolver:
                await resolver.clear_all()

        asyncio.run(run())
        assert store.asset_count() == 0

    def test_default_repositories(self, store, make_transport):
        from assetdb.config import DEFAULT_REPOSITORIES
        from assetdb.core.resolver import AssetResolver

        resolver = AssetResolver(store, make_transport())
        assert resolver.repositories == DEFAULT_REPOSITORIES
        asyncio.run(resolver.aclose())
