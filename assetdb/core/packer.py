"""Package builder — turns a directory of files into an installable archive.

Each file is content-addressed with SHA-256; the archive holds the files
under their relative paths plus an ``asset.json`` manifest mapping each path
to its hash.  The package id is the SHA-256 of the canonical manifest, so
identical content always produces the same id.

Layout of a built archive::

    {package_id}.zip
        asset.json
        sprites/idle.png
        sprites/wave.gif
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from assetdb.core.hasher import content_hash, sha256_hex
from assetdb.core.installer import DEFAULT_MANIFEST_NAME
from assetdb.core.locator import DEFAULT_ARCHIVE_EXT
from assetdb.models.packages import PackageManifest

logger = logging.getLogger(__name__)


class BuiltPackage(BaseModel):
    """A freshly built package archive and its manifest."""

    model_config = ConfigDict(frozen=True)

    package_id: str
    manifest: PackageManifest
    archive: bytes

    def write(self, dest_dir: Path, archive_ext: str = DEFAULT_ARCHIVE_EXT) -> Path:
        """Write the archive as ``{dest_dir}/{package_id}.{archive_ext}``."""
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / f"{self.package_id}.{archive_ext}"
        dest.write_bytes(self.archive)
        return dest


def build_archive(
    files: dict[str, bytes],
    manifest: PackageManifest,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> bytes:
    """Zip *files* together with *manifest* serialized at *manifest_name*."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(
            manifest_name,
            manifest.model_dump_json(exclude_none=True, indent=2),
        )
        for name in sorted(files):
            archive.writestr(name, files[name])
    return buffer.getvalue()


def build_package(
    directory: Path,
    *,
    name: str,
    parent: str | None = None,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> BuiltPackage:
    """Build a package from every file under *directory*.

    Raises
    ------
    FileNotFoundError
        If *directory* does not exist.
    ValueError
        If *directory* holds no files, or holds its own manifest file.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Package directory not found: {directory}")

    files: dict[str, bytes] = {}
    for file_path in sorted(directory.rglob("*")):
        if file_path.is_file():
            files[file_path.relative_to(directory).as_posix()] = file_path.read_bytes()

    if not files:
        raise ValueError(f"No files to package in {directory}")
    if manifest_name in files:
        raise ValueError(f"{directory} already contains a {manifest_name}")

    manifest = PackageManifest(
        name=name,
        parent=parent,
        files={rel: sha256_hex(data) for rel, data in files.items()},
    )
    package_id = content_hash(manifest.model_dump(mode="json", exclude_none=True))
    logger.info("Built package %s (%s, %d files).", package_id, name, len(files))
    return BuiltPackage(
        package_id=package_id,
        manifest=manifest,
        archive=build_archive(files, manifest, manifest_name),
    )
