"""Persistent content-addressed asset store backed by SQLite.

The store owns two collections:

- **assets** — one row per content hash (bytes + MIME type), plus an
  ``asset_owners`` join table holding the set of packages referencing it.
  An asset exists iff it has at least one owner.
- **packages** — one row per installed package (id, acquisition time,
  manifest JSON).  A package row is only written once every file in its
  manifest is present as an asset owned by that package.

Design:
- One connection per operation; WAL journal mode for concurrent readers.
- Every mutation runs inside a single ``BEGIN IMMEDIATE`` transaction, so a
  deletion or a merge is applied atomically.
- ``ON DELETE CASCADE`` removes owner rows along with their asset.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from datetime import datetime
from pathlib import Path

from assetdb.models.assets import Asset
from assetdb.models.packages import PackageManifest, PackageRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_ASSETS = """
CREATE TABLE IF NOT EXISTS assets (
    hash        TEXT PRIMARY KEY,
    data        BLOB NOT NULL,
    mime_type   TEXT NOT NULL
);
"""

_CREATE_ASSET_OWNERS = """
CREATE TABLE IF NOT EXISTS asset_owners (
    hash        TEXT NOT NULL REFERENCES assets(hash) ON DELETE CASCADE,
    package_id  TEXT NOT NULL,
    PRIMARY KEY (hash, package_id)
);
"""

_CREATE_IDX_OWNER_PACKAGE = """
CREATE INDEX IF NOT EXISTS idx_owner_package ON asset_owners(package_id);
"""

_CREATE_PACKAGES = """
CREATE TABLE IF NOT EXISTS packages (
    id              TEXT PRIMARY KEY,
    acquired_at     TEXT NOT NULL,
    manifest_json   TEXT NOT NULL
);
"""


class ContentStore:
    """SQLite-backed store for assets and installed package records.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.

    Examples
    --------
    >>> from pathlib import Path
    >>> store = ContentStore(Path("/tmp/assetdb_doc.db"))
    >>> store.get_asset("missing") is None
    True
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=30.0,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        with closing(self._connect()) as conn:
            yield conn

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        """Run the block inside one immediate transaction."""
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_schema(self) -> None:
        with self._write() as conn:
            conn.execute(_CREATE_ASSETS)
            conn.execute(_CREATE_ASSET_OWNERS)
            conn.execute(_CREATE_IDX_OWNER_PACKAGE)
            conn.execute(_CREATE_PACKAGES)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def get_asset(self, content_hash: str) -> Asset | None:
        """Return the asset stored under *content_hash*, or ``None``."""
        with self._read() as conn:
            row = conn.execute(
                "SELECT data, mime_type FROM assets WHERE hash = ?",
                (content_hash,),
            ).fetchone()
            if row is None:
                return None
            owners = conn.execute(
                "SELECT package_id FROM asset_owners WHERE hash = ?",
                (content_hash,),
            ).fetchall()
        return Asset(
            hash=content_hash,
            data=bytes(row[0]),
            mime_type=row[1],
            owning_packages=frozenset(owner[0] for owner in owners),
        )

    def has_asset(self, content_hash: str) -> bool:
        with self._read() as conn:
            row = conn.execute(
                "SELECT 1 FROM assets WHERE hash = ?", (content_hash,)
            ).fetchone()
        return row is not None

    def put_asset(self, asset: Asset) -> None:
        """Insert or overwrite an asset, replacing its owner set.

        Raises
        ------
        ValueError
            If the asset has no owners — an ownerless asset must not exist.
        """
        if not asset.owning_packages:
            raise ValueError(f"Asset {asset.hash} has no owning packages")
        with self._write() as conn:
            conn.execute(
                "INSERT INTO assets (hash, data, mime_type) VALUES (?, ?, ?) "
                "ON CONFLICT(hash) DO UPDATE SET "
                "data = excluded.data, mime_type = excluded.mime_type",
                (asset.hash, asset.data, asset.mime_type),
            )
            conn.execute("DELETE FROM asset_owners WHERE hash = ?", (asset.hash,))
            self._insert_owners(conn, asset.hash, asset.owning_packages)

    def merge_asset(self, asset: Asset) -> None:
        """Insert an asset, or add its owners to the existing one.

        Existing bytes are never overwritten: two packages declaring the same
        hash are expected to carry the same content.
        """
        if not asset.owning_packages:
            raise ValueError(f"Asset {asset.hash} has no owning packages")
        with self._write() as conn:
            conn.execute(
                "INSERT INTO assets (hash, data, mime_type) VALUES (?, ?, ?) "
                "ON CONFLICT(hash) DO NOTHING",
                (asset.hash, asset.data, asset.mime_type),
            )
            self._insert_owners(conn, asset.hash, asset.owning_packages)

    def add_owner(self, content_hash: str, package_id: str) -> bool:
        """Add *package_id* to an existing asset's owners.

        Returns ``False`` (and changes nothing) when no asset is stored under
        *content_hash*.
        """
        with self._write() as conn:
            row = conn.execute(
                "SELECT 1 FROM assets WHERE hash = ?", (content_hash,)
            ).fetchone()
            if row is None:
                return False
            self._insert_owners(conn, content_hash, (package_id,))
        return True

    def asset_count(self) -> int:
        with self._read() as conn:
            row = conn.execute("SELECT COUNT(*) FROM assets").fetchone()
        return row[0] if row else 0

    @staticmethod
    def _insert_owners(
        conn: sqlite3.Connection, content_hash: str, owners: frozenset[str] | tuple[str, ...]
    ) -> None:
        conn.executemany(
            "INSERT OR IGNORE INTO asset_owners (hash, package_id) VALUES (?, ?)",
            [(content_hash, owner) for owner in sorted(owners)],
        )

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def get_package(self, package_id: str) -> PackageRecord | None:
        """Return the installation record for *package_id*, or ``None``."""
        with self._read() as conn:
            row = conn.execute(
                "SELECT id, acquired_at, manifest_json FROM packages WHERE id = ?",
                (package_id,),
            ).fetchone()
        return self._row_to_package(row) if row else None

    def has_package(self, package_id: str) -> bool:
        with self._read() as conn:
            row = conn.execute(
                "SELECT 1 FROM packages WHERE id = ?", (package_id,)
            ).fetchone()
        return row is not None

    def put_package(self, record: PackageRecord) -> None:
        with self._write() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO packages (id, acquired_at, manifest_json) "
                "VALUES (?, ?, ?)",
                (
                    record.id,
                    record.acquired_at.isoformat(),
                    record.manifest.model_dump_json(),
                ),
            )

    def list_packages(self) -> list[PackageRecord]:
        """Return every installed package, oldest first."""
        with self._read() as conn:
            rows = conn.execute(
                "SELECT id, acquired_at, manifest_json FROM packages "
                "ORDER BY acquired_at ASC, id ASC"
            ).fetchall()
        return [self._row_to_package(row) for row in rows]

    def delete_package(self, package_id: str) -> bool:
        """Remove a package and release its ownership of every asset.

        Assets left with no owners are deleted.  Hashes the manifest declares
        but that are missing from the store are skipped with a warning rather
        than aborting the deletion.

        Returns ``True`` if a package record was deleted.
        """
        with self._write() as conn:
            row = conn.execute(
                "SELECT id, acquired_at, manifest_json FROM packages WHERE id = ?",
                (package_id,),
            ).fetchone()
            if row is None:
                return False
            record = self._row_to_package(row)

            released = 0
            for content_hash in sorted(record.manifest.hashes()):
                exists = conn.execute(
                    "SELECT 1 FROM assets WHERE hash = ?", (content_hash,)
                ).fetchone()
                if exists is None:
                    logger.warning(
                        "Package %s declares asset %s, which is not in the store.",
                        package_id,
                        content_hash,
                    )
                    continue
                conn.execute(
                    "DELETE FROM asset_owners WHERE hash = ? AND package_id = ?",
                    (content_hash, package_id),
                )
                remaining = conn.execute(
                    "SELECT COUNT(*) FROM asset_owners WHERE hash = ?",
                    (content_hash,),
                ).fetchone()[0]
                if remaining == 0:
                    conn.execute("DELETE FROM assets WHERE hash = ?", (content_hash,))
                    released += 1

            conn.execute("DELETE FROM packages WHERE id = ?", (package_id,))

        logger.info(
            "Deleted package %s (%d assets released).", package_id, released
        )
        return True

    def release_unrecorded(self, package_id: str) -> int:
        """Drop *package_id*'s ownership of assets when it has no package record.

        Used after a failed installation.  Assets left without owners are
        deleted.  Returns the number of ownerships released; a recorded
        package is left untouched and yields 0.
        """
        with self._write() as conn:
            recorded = conn.execute(
                "SELECT 1 FROM packages WHERE id = ?", (package_id,)
            ).fetchone()
            if recorded is not None:
                return 0
            hashes = [
                row[0]
                for row in conn.execute(
                    "SELECT hash FROM asset_owners WHERE package_id = ?", (package_id,)
                ).fetchall()
            ]
            conn.execute("DELETE FROM asset_owners WHERE package_id = ?", (package_id,))
            for content_hash in hashes:
                conn.execute(
                    "DELETE FROM assets WHERE hash = ? AND NOT EXISTS "
                    "(SELECT 1 FROM asset_owners WHERE hash = ?)",
                    (content_hash, content_hash),
                )
        return len(hashes)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Empty both the asset and package collections."""
        with self._write() as conn:
            conn.execute("DELETE FROM asset_owners")
            conn.execute("DELETE FROM assets")
            conn.execute("DELETE FROM packages")
        logger.info("Cleared content store at %s.", self._db_path)

    @staticmethod
    def _row_to_package(row: tuple[str, str, str]) -> PackageRecord:
        return PackageRecord(
            id=row[0],
            acquired_at=datetime.fromisoformat(row[1]),
            manifest=PackageManifest.model_validate_json(row[2]),
        )
