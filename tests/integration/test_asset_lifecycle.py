"""End-to-end tests: install, resolve, share and delete packages.

Exercises the full chain — identifier parsing, repository race, archive
fetch, manifest parse, parent chase, dedup merge and reference-counted
deletion — against fake repositories served over httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from assetdb.core.content_store import ContentStore
from assetdb.core.locator import RaceStrategy
from assetdb.core.packer import build_package

REPO_A = "https://repo-a.test"
REPO_B = "https://repo-b.test"


def test_shared_file_scenario(store: ContentStore, repos, make_resolver):
    repos.add_package(REPO_A, "pkgA", {"a.png": b"\x89PNG-shared"}, {"a.png": "H1"})
    repos.add_package(REPO_A, "pkgB", {"b.png": b"\x89PNG-shared"}, {"b.png": "H1"})

    async def run():
        async with make_resolver() as resolver:
            first = await resolver.resolve("@pkgA/H1")
            await resolver.install_package("pkgB")
            return first

    first = asyncio.run(run())
    assert first.data == b"\x89PNG-shared"
    assert first.mime_type == "image/png"
    assert store.asset_count() == 1
    assert store.get_asset("H1").owning_packages == {"pkgA", "pkgB"}

    store.delete_package("pkgA")
    assert store.get_asset("H1").owning_packages == {"pkgB"}

    store.delete_package("pkgB")
    assert store.get_asset("H1") is None


def test_referential_integrity_after_parent_chain(store: ContentStore, repos, make_resolver):
    repos.add_package(REPO_B, "base", {"a.png": b"A", "b.png": b"B"}, {"a.png": "H1", "b.png": "H2"})
    repos.add_package(
        REPO_A, "mid", {"c.png": b"C", "b.png": b"B"}, {"c.png": "H3", "b.png": "H2"}, parent="base"
    )
    repos.add_package(REPO_B, "top", {"d.gif": b"D"}, {"d.gif": "H4"}, parent="mid")

    async def run():
        async with make_resolver(repositories=[REPO_A, REPO_B]) as resolver:
            return await resolver.resolve("@top/H4")

    assert asyncio.run(run()).mime_type == "image/gif"

    for record in store.list_packages():
        for content_hash in record.manifest.files.values():
            asset = store.get_asset(content_hash)
            assert asset is not None
            assert record.id in asset.owning_packages

    assert store.get_asset("H2").owning_packages == {"base", "mid"}
    assert [r.id for r in store.list_packages()] == ["base", "mid", "top"]


def test_cached_resolution_survives_restart(tmp_dir: Path, repos, make_transport):
    from assetdb.core.resolver import AssetResolver

    repos.add_package(REPO_A, "pkgA", {"a.png": b"A"}, {"a.png": "H1"})
    db_path = tmp_dir / "persist.db"

    async def run(cache_only: bool):
        async with AssetResolver(
            ContentStore(db_path), make_transport(), repositories=[REPO_A]
        ) as resolver:
            return await resolver.resolve("@pkgA/H1", cache_only=cache_only)

    assert asyncio.run(run(False)).data == b"A"
    requests_after_install = len(repos.requests)
    assert asyncio.run(run(True)).data == b"A"
    assert len(repos.requests) == requests_after_install


def test_concurrent_resolves_share_one_install(store: ContentStore, repos, make_resolver):
    repos.add_package(
        REPO_A, "pkgA", {"a.png": b"A", "b.png": b"B"}, {"a.png": "H1", "b.png": "H2"}
    )
    repos.delays[f"{REPO_A}/pkgA.zip"] = 0.05

    async def run():
        async with make_resolver() as resolver:
            return await asyncio.gather(
                resolver.resolve("@pkgA/H1"),
                resolver.resolve("@pkgA/H2"),
                resolver.resolve("@pkgA/H1"),
            )

    results = asyncio.run(run())
    assert [r.data for r in results] == [b"A", b"B", b"A"]
    assert repos.count("GET", f"{REPO_A}/pkgA.zip") == 1


def test_built_package_round_trip(tmp_dir: Path, store: ContentStore, repos, make_resolver):
    source = tmp_dir / "emotes"
    source.mkdir()
    (source / "wave.gif").write_bytes(b"GIF89a-wave")
    built = build_package(source, name="Emotes")
    repos.add_file(f"{REPO_B}/{built.package_id}.zip", built.archive, "application/zip")
    wave_hash = built.manifest.files["wave.gif"]

    async def run():
        async with make_resolver(
            repositories=[REPO_A, REPO_B], race_strategy=RaceStrategy.PRIORITY
        ) as resolver:
            return await resolver.resolve(f"@{built.package_id}/{wave_hash}")

    result = asyncio.run(run())
    assert result.data == b"GIF89a-wave"
    assert store.get_package(built.package_id).name == "Emotes"
