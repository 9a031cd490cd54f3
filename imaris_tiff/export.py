from __future__ import annotations

import csv
import json
import logging
import re
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import tifffile as tiff  # type: ignore

from .manifest import discover_ims_files
from .metadata import ImarisChannelMetadata, ImarisTiffMetadata, metadata_from_reader
from .options import MetadataOptions
from .reader import ImarisTiffReader
from .store import OMEMetadataStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9_.-]+")

SUMMARY_FIELDNAMES = [
    "source_path",
    "file_name",
    "output_folder",
    "channel_index",
    "channel_name",
    "emission_wavelength_nm",
    "excitation_wavelength_nm",
    "size_x",
    "size_y",
    "size_z",
    "pixel_type",
    "description",
    "acquisition_date",
    "stack_path",
    "metadata_json_path",
    "ome_xml_path",
]


def export_directory(
    source: PathLike,
    *,
    output_root: Optional[PathLike] = None,
    csv_path: Optional[PathLike] = None,
    recursive: bool = False,
    options: Optional[MetadataOptions] = None,
    overwrite: bool = False,
) -> Path:
    """Export per-channel stacks and metadata for every Imaris 3 TIFF in ``source``.

    Each file gets a folder under ``output_root`` holding one ``(Z, Y, X)``
    TIFF per channel, ``metadata.json`` and ``ome.xml``. A summary CSV with
    one row per channel is written last and its path returned.
    """
    base_dir = Path(source)
    if not base_dir.exists():
        raise FileNotFoundError(f"{base_dir} does not exist")

    output_dir = Path(output_root) if output_root is not None else (base_dir / "imaris_exports")
    output_dir.mkdir(parents=True, exist_ok=True)
    summary_csv = Path(csv_path) if csv_path is not None else (output_dir / "metadata_summary.csv")

    rows: List[Dict[str, object]] = []
    for ims_path in discover_ims_files(base_dir, recursive=recursive):
        per_file_dir = output_dir / ims_path.stem
        if per_file_dir.exists() and overwrite:
            shutil.rmtree(per_file_dir)
        per_file_dir.mkdir(parents=True, exist_ok=True)

        metadata, stack_paths, ome_xml = _write_channel_stacks(ims_path, per_file_dir, options)

        ome_xml_path = per_file_dir / "ome.xml"
        ome_xml_path.write_text(ome_xml, encoding="utf-8")
        metadata_json_path = per_file_dir / "metadata.json"
        _write_metadata_json(metadata, stack_paths=stack_paths, json_path=metadata_json_path)
        logger.info("Exported %s to %s", ims_path.name, per_file_dir)

        size_x, size_y, size_z, _, _ = metadata.dimensions_xyzct
        for channel in metadata.channels:
            rows.append(
                {
                    "source_path": str(ims_path),
                    "file_name": ims_path.name,
                    "output_folder": str(per_file_dir),
                    "channel_index": channel.index,
                    "channel_name": channel.name or "",
                    "emission_wavelength_nm": channel.emission_wavelength_nm,
                    "excitation_wavelength_nm": channel.excitation_wavelength_nm,
                    "size_x": size_x,
                    "size_y": size_y,
                    "size_z": size_z,
                    "pixel_type": metadata.pixel_type,
                    "description": metadata.description or "",
                    "acquisition_date": metadata.acquisition_date or "",
                    "stack_path": str(stack_paths[channel.index]),
                    "metadata_json_path": str(metadata_json_path),
                    "ome_xml_path": str(ome_xml_path),
                }
            )

    _write_summary_csv(summary_csv, rows)
    return summary_csv


def _write_channel_stacks(
    ims_path: Path,
    folder: Path,
    options: Optional[MetadataOptions],
) -> Tuple[ImarisTiffMetadata, Dict[int, Path], str]:
    store = OMEMetadataStore()
    stack_paths: Dict[int, Path] = {}
    with ImarisTiffReader(options, store).open(ims_path) as reader:
        core = reader.core
        metadata = metadata_from_reader(reader)
        for channel in metadata.channels:
            planes = [
                reader.get_plane_array(reader.get_index(z, channel.index))
                for z in range(core.size_z)
            ]
            stack_path = folder / f"{channel.index:02d}_{_channel_label(channel)}.tif"
            tiff.imwrite(stack_path, np.stack(planes), metadata={"axes": "ZYX"})
            stack_paths[channel.index] = stack_path
    return metadata, stack_paths, store.to_xml()


def _channel_label(channel: ImarisChannelMetadata) -> str:
    name = channel.name or f"channel_{channel.index}"
    sanitized = _SANITIZE_PATTERN.sub("_", name.strip())
    sanitized = sanitized.strip("_.")
    return sanitized or "channel"


def _write_metadata_json(
    metadata: ImarisTiffMetadata,
    *,
    stack_paths: Dict[int, Path],
    json_path: Path,
) -> None:
    payload = {
        "source_path": str(metadata.source_path),
        "description": metadata.description,
        "acquisition_date": metadata.acquisition_date,
        "dimensions_xyzct": list(metadata.dimensions_xyzct),
        "pixel_type": metadata.pixel_type,
        "channels": [
            {
                "index": channel.index,
                "name": channel.name,
                "emission_wavelength_nm": channel.emission_wavelength_nm,
                "excitation_wavelength_nm": channel.excitation_wavelength_nm,
                "stack_path": str(stack_paths[channel.index]),
            }
            for channel in metadata.channels
        ],
        "global_metadata": metadata.global_metadata,
    }
    with json_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def _write_summary_csv(csv_path: Path, rows: List[Dict[str, object]]) -> None:
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=SUMMARY_FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


__all__ = ["export_directory", "SUMMARY_FIELDNAMES"]
