from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .comment import ChannelMetadataAccumulator
from .options import MetadataOptions
from .reader import ImarisTiffReader

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ImarisChannelMetadata:
    """Metadata describing a single Imaris channel."""

    index: int
    name: Optional[str]
    emission_wavelength_nm: Optional[int] = None
    excitation_wavelength_nm: Optional[int] = None


@dataclass(frozen=True)
class ImarisTiffMetadata:
    """Parsed metadata for an Imaris 3 TIFF dataset."""

    source_path: Path
    description: Optional[str]
    acquisition_date: Optional[str]
    dimensions_xyzct: Tuple[int, int, int, int, int]
    pixel_type: str
    channels: Tuple[ImarisChannelMetadata, ...]
    global_metadata: Dict[str, str]


def read_metadata(
    path: PathLike,
    *,
    options: Optional[MetadataOptions] = None,
) -> ImarisTiffMetadata:
    """Read high-level metadata from an Imaris 3 ``.ims`` TIFF.

    Parameters
    ----------
    path:
        Path to the ``.ims`` file.
    options:
        Reader options; with ``MetadataLevel.MINIMUM`` only geometry is filled
        in and every channel field is ``None``.
    """
    with ImarisTiffReader(options).open(path) as reader:
        return metadata_from_reader(reader)


def metadata_from_reader(reader: ImarisTiffReader) -> ImarisTiffMetadata:
    """Summarise an open reader as an :class:`ImarisTiffMetadata`."""
    core = reader.core
    accumulator = reader.channel_metadata or ChannelMetadataAccumulator()
    channels = tuple(_channel_entry(accumulator, index) for index in range(core.size_c))
    return ImarisTiffMetadata(
        source_path=Path(reader.current_path),
        description=accumulator.description,
        acquisition_date=accumulator.creation_date,
        dimensions_xyzct=core.dimensions_xyzct,
        pixel_type=core.pixel_type,
        channels=channels,
        global_metadata=dict(reader.global_metadata),
    )


def read_stack(path: PathLike) -> np.ndarray:
    """Return every plane of ``path`` as a ``(C, Z, Y, X)`` array."""
    with ImarisTiffReader().open(path) as reader:
        core = reader.core
        planes = [reader.get_plane_array(index) for index in range(core.image_count)]
    stack = np.stack(planes)
    return stack.reshape(core.size_c, core.size_z, core.size_y, core.size_x)


def _channel_entry(accumulator: ChannelMetadataAccumulator, index: int) -> ImarisChannelMetadata:
    return ImarisChannelMetadata(
        index=index,
        name=_positional(accumulator.channel_names, index),
        emission_wavelength_nm=_positive(_positional(accumulator.emission_wavelengths, index)),
        excitation_wavelength_nm=_positive(_positional(accumulator.excitation_wavelengths, index)),
    )


def _positional(values, index):
    return values[index] if index < len(values) else None


def _positive(value: Optional[int]) -> Optional[int]:
    if value is None or value <= 0:
        return None
    return value


__all__ = [
    "ImarisChannelMetadata",
    "ImarisTiffMetadata",
    "metadata_from_reader",
    "read_metadata",
    "read_stack",
]
