from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import MalformedGeometry
from .ifd import IFD, TILE_BYTE_COUNTS, TILE_OFFSETS

logger = logging.getLogger(__name__)

DIMENSION_ORDER = "XYZCT"


@dataclass(frozen=True)
class CoreGeometry:
    """Canonical summary of an Imaris 3 image's dimensions and layout."""

    size_x: int
    size_y: int
    size_z: int
    size_c: int
    size_t: int
    image_count: int
    pixel_type: str
    dimension_order: str = DIMENSION_ORDER
    interleaved: bool = False
    rgb: bool = False
    little_endian: bool = True

    @property
    def dimensions_xyzct(self) -> Tuple[int, int, int, int, int]:
        return (self.size_x, self.size_y, self.size_z, self.size_c, self.size_t)


@dataclass(frozen=True)
class SynthesizedGeometry:
    """Result of flattening channel IFDs into per-plane descriptors."""

    core: CoreGeometry
    planes: Tuple[IFD, ...]
    comment: Optional[str]


def flatten_planes(ifds: Sequence[IFD]) -> List[IFD]:
    """Lift every strip of every IFD into its own plane descriptor.

    Channel order follows IFD order and Z order follows strip index order.
    Every IFD must carry the same number of strips as the first one.
    """
    planes: List[IFD] = []
    expected = len(ifds[0].strip_byte_counts) if ifds else 0
    for ifd_index, ifd in enumerate(ifds):
        byte_counts = ifd.strip_byte_counts
        offsets = ifd.strip_offsets
        if not byte_counts or not offsets:
            raise MalformedGeometry(f"IFD {ifd_index} has no strips")
        if len(byte_counts) != len(offsets):
            raise MalformedGeometry(
                f"IFD {ifd_index} has {len(byte_counts)} StripByteCounts "
                f"but {len(offsets)} StripOffsets"
            )
        if len(byte_counts) != expected:
            raise MalformedGeometry(
                f"IFD {ifd_index} has {len(byte_counts)} strips, expected {expected}"
            )
        for byte_count, offset in zip(byte_counts, offsets):
            planes.append(ifd.with_overrides({TILE_BYTE_COUNTS: byte_count, TILE_OFFSETS: offset}))
    return planes


def synthesize_geometry(ifds: Sequence[IFD], *, little_endian: bool = True) -> SynthesizedGeometry:
    """Reinterpret Imaris channel IFDs as an XYZCT stack.

    Parameters
    ----------
    ifds:
        Non-thumbnail IFDs in file order; each one is a channel whose strips
        are its Z planes.
    little_endian:
        Byte order of the pixel data, carried into the core record.
    """
    if not ifds:
        raise MalformedGeometry("No image IFDs left after thumbnail removal")

    logger.info("Verifying IFD sanity")
    planes = flatten_planes(ifds)

    first = ifds[0]
    comment = first.comment

    logger.info("Populating metadata")
    size_c = len(ifds)
    size_z, remainder = divmod(len(planes), size_c)
    if remainder:
        raise MalformedGeometry(
            f"{len(planes)} planes cannot be split evenly across {size_c} channels"
        )
    size_t = 1
    image_count = size_c * size_z

    core = CoreGeometry(
        size_x=first.image_width,
        size_y=first.image_length,
        size_z=size_z,
        size_c=size_c,
        size_t=size_t,
        image_count=image_count,
        pixel_type=first.pixel_type,
        dimension_order=DIMENSION_ORDER,
        interleaved=False,
        rgb=image_count != size_z * size_c * size_t,
        little_endian=little_endian,
    )
    return SynthesizedGeometry(core=core, planes=tuple(planes), comment=comment)


def plane_index(core: CoreGeometry, z: int, c: int, t: int = 0) -> int:
    """Return the rasterized plane index of ``(z, c, t)`` in XYZCT order."""
    if not (0 <= z < core.size_z and 0 <= c < core.size_c and 0 <= t < core.size_t):
        raise IndexError(f"Coordinates (z={z}, c={c}, t={t}) outside {core.dimensions_xyzct}")
    return z + core.size_z * (c + core.size_c * t)


def zct_coords(core: CoreGeometry, index: int) -> Tuple[int, int, int]:
    """Inverse of :func:`plane_index`."""
    if not 0 <= index < core.image_count:
        raise IndexError(f"Plane index {index} outside [0, {core.image_count})")
    z = index % core.size_z
    c = (index // core.size_z) % core.size_c
    t = index // (core.size_z * core.size_c)
    return z, c, t


__all__ = [
    "CoreGeometry",
    "SynthesizedGeometry",
    "DIMENSION_ORDER",
    "flatten_planes",
    "synthesize_geometry",
    "plane_index",
    "zct_coords",
]
