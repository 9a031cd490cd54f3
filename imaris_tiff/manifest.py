"""Utilities for discovering Imaris 3 TIFF files and building a metadata manifest."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd
import tifffile as tiff  # type: ignore

from .errors import ImarisTiffError
from .metadata import ImarisTiffMetadata, read_metadata
from .options import MetadataOptions
from .reader import ImarisTiffReader

logger = logging.getLogger(__name__)

MANIFEST_COLUMNS = [
    "ims_path",
    "ims_relpath",
    "filename",
    "stem",
    "size_x",
    "size_y",
    "size_z",
    "size_c",
    "size_t",
    "pixel_type",
    "channel_names",
    "description",
    "acquisition_date",
    "metadata_error",
]


@dataclass(frozen=True)
class IMSManifestEntry:
    """Row of manifest information for a single ``.ims`` file."""

    path: Path
    relative_path: Path
    metadata: Optional[ImarisTiffMetadata] = None
    metadata_error: Optional[str] = None

    def to_record(self) -> dict[str, object]:
        meta = self.metadata
        dims = meta.dimensions_xyzct if meta is not None else (None,) * 5
        return {
            "ims_path": str(self.path),
            "ims_relpath": str(self.relative_path),
            "filename": self.path.name,
            "stem": self.path.stem,
            "size_x": dims[0],
            "size_y": dims[1],
            "size_z": dims[2],
            "size_c": dims[3],
            "size_t": dims[4],
            "pixel_type": meta.pixel_type if meta is not None else None,
            "channel_names": [c.name for c in meta.channels] if meta is not None else [],
            "description": meta.description if meta is not None else None,
            "acquisition_date": meta.acquisition_date if meta is not None else None,
            "metadata_error": self.metadata_error,
        }


def discover_ims_files(root: str | Path, *, recursive: bool = True) -> list[Path]:
    """Return Imaris 3 TIFF files beneath ``root``.

    Files with the ``.ims`` suffix that are not TIFF containers (Imaris 5
    HDF files) are skipped.

    Parameters
    ----------
    root:
        Directory to scan, or a single ``.ims`` file.
    recursive:
        When true, traverse subdirectories.
    """

    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"IMS root does not exist: {root_path}")
    if root_path.is_file():
        if root_path.suffix.lower() != ".ims":
            raise ValueError(f"Requested root {root_path} is a file but not an IMS")
        return [root_path] if ImarisTiffReader.is_this_type(root_path) else []

    walker = root_path.rglob if recursive else root_path.glob
    candidates = [p for p in walker("*") if p.is_file() and p.suffix.lower() == ".ims"]
    ims_files = []
    for path in candidates:
        if ImarisTiffReader.is_this_type(path):
            ims_files.append(path)
        else:
            logger.info("Skipping %s: not a TIFF-based Imaris file", path)

    def sort_key(path: Path):
        rel = path.relative_to(root_path)
        parts = rel.parts
        return (len(parts), parts)

    ims_files.sort(key=sort_key)
    return ims_files


def build_ims_manifest(
    root: str | Path,
    *,
    recursive: bool = True,
    options: Optional[MetadataOptions] = None,
) -> pd.DataFrame:
    """Construct a manifest for every Imaris 3 TIFF beneath ``root``.

    The resulting DataFrame contains one row per file. Files that fail to
    open are reported through the ``metadata_error`` column instead of
    aborting the whole manifest.
    """

    root_path = Path(root).expanduser().resolve()
    root_dir = root_path if root_path.is_dir() else root_path.parent

    entries: list[IMSManifestEntry] = []
    for path in discover_ims_files(root_path, recursive=recursive):
        try:
            relative_path = path.relative_to(root_dir)
        except ValueError:
            relative_path = Path(path.name)
        try:
            metadata = read_metadata(path, options=options)
        except (ImarisTiffError, tiff.TiffFileError, OSError) as exc:
            logger.warning("Failed to read metadata for %s: %s", path, exc)
            entries.append(
                IMSManifestEntry(
                    path=path,
                    relative_path=relative_path,
                    metadata_error=f"{exc.__class__.__name__}: {exc}",
                )
            )
            continue
        entries.append(IMSManifestEntry(path=path, relative_path=relative_path, metadata=metadata))

    if not entries:
        return pd.DataFrame(columns=MANIFEST_COLUMNS)

    records = [entry.to_record() for entry in entries]
    return pd.DataFrame.from_records(records, columns=MANIFEST_COLUMNS)


__all__ = [
    "IMSManifestEntry",
    "MANIFEST_COLUMNS",
    "discover_ims_files",
    "build_ims_manifest",
]
