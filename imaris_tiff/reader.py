from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import Callable, Dict, Mapping, Optional, Tuple, Type, Union, cast

import numpy as np

from .comment import (
    COMMENT_KEY,
    ChannelMetadataAccumulator,
    emit_channel_metadata,
    is_ini_comment,
    parse_comment,
    validate_alignment,
)
from .errors import ReaderStateError
from .geometry import CoreGeometry, plane_index, synthesize_geometry, zct_coords
from .ifd import (
    BITS_PER_SAMPLE,
    COMPRESSION,
    IFD,
    IMAGE_DESCRIPTION,
    IMAGE_LENGTH,
    IMAGE_WIDTH,
    PHOTOMETRIC_INTERPRETATION,
    PIXEL_TYPE_DTYPES,
    SAMPLES_PER_PIXEL,
    TAG_NAMES,
)
from .options import MetadataLevel, MetadataOptions
from .store import MetadataStore, OMEMetadataStore
from .substrate import TiffSubstrate

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TIFF_MAGIC = (b"II*\x00", b"MM\x00*", b"II+\x00", b"MM\x00+")

_SEED_TAGS = (
    IMAGE_WIDTH,
    IMAGE_LENGTH,
    BITS_PER_SAMPLE,
    COMPRESSION,
    PHOTOMETRIC_INTERPRETATION,
    SAMPLES_PER_PIXEL,
)


class ImarisTiffReader:
    """Reader for Bitplane Imaris 3 files (TIFF variant).

    Imaris 3 stores a thumbnail in the first IFD; every remaining IFD is one
    channel whose strip table enumerates that channel's Z planes. ``open``
    reinterprets that layout as an XYZCT stack and, unless the metadata level
    is :attr:`MetadataLevel.MINIMUM`, parses the INI-style ImageDescription of
    the first channel for acquisition metadata.

    The reader is not thread-safe; use one instance per thread.
    """

    format_name = "Bitplane Imaris 3 (TIFF)"
    suffixes: Tuple[str, ...] = ("ims",)
    suffix_necessary = True
    suffix_sufficient = False

    def __init__(
        self,
        options: Optional[MetadataOptions] = None,
        store: Optional[MetadataStore] = None,
        *,
        substrate_factory: Callable[[PathLike], TiffSubstrate] = TiffSubstrate.open,
    ) -> None:
        self.options = options or MetadataOptions()
        self._store_override = store
        self._substrate_factory = substrate_factory
        self._reset()

    def _reset(self) -> None:
        self._substrate: Optional[TiffSubstrate] = None
        self._core: Optional[CoreGeometry] = None
        self._planes: Tuple[IFD, ...] = ()
        self._global_metadata: Dict[str, str] = {}
        self._channel_metadata: Optional[ChannelMetadataAccumulator] = None
        self._store: Optional[MetadataStore] = None
        self._current_path: Optional[Path] = None

    # -- type detection --

    @classmethod
    def is_this_type(cls, path: PathLike, *, open_file: bool = True) -> bool:
        """Return whether ``path`` looks like an Imaris 3 TIFF.

        The ``.ims`` suffix is required but not sufficient: Imaris 5 files
        share it and are HDF5, so the TIFF magic bytes are checked as well.
        """
        file_path = Path(path)
        if file_path.suffix.lower().lstrip(".") not in cls.suffixes:
            return False
        if not open_file:
            return True
        try:
            with file_path.open("rb") as handle:
                header = handle.read(4)
        except OSError:
            return False
        return header in TIFF_MAGIC

    # -- lifecycle --

    def open(self, path: PathLike) -> "ImarisTiffReader":
        """Open ``path`` and populate geometry and metadata.

        On failure the reader is left closed and nothing is written to the
        metadata store.
        """
        self.close()
        file_path = Path(path)
        substrate = self._substrate_factory(file_path)
        try:
            synthesized = synthesize_geometry(substrate.ifds, little_endian=substrate.little_endian)
            core = synthesized.core
            global_metadata = _seed_global_metadata(substrate.ifds[0])

            channel_metadata: Optional[ChannelMetadataAccumulator] = None
            if self.options.metadata_level is not MetadataLevel.MINIMUM:
                channel_metadata = parse_comment(synthesized.comment, file_path, global_metadata)
                validate_alignment(channel_metadata)

            store = self._store_override if self._store_override is not None else OMEMetadataStore()
            store.populate_pixels(core, name=file_path.name)
            if channel_metadata is not None and is_ini_comment(synthesized.comment):
                emit_channel_metadata(channel_metadata, store)
        except BaseException:
            substrate.close()
            raise

        self._substrate = substrate
        self._core = core
        self._planes = synthesized.planes
        self._global_metadata = global_metadata
        self._channel_metadata = channel_metadata
        self._store = store
        self._current_path = file_path
        logger.info(
            "Opened %s: %d channel(s) x %d plane(s), %dx%d %s",
            file_path.name,
            core.size_c,
            core.size_z,
            core.size_x,
            core.size_y,
            core.pixel_type,
        )
        return self

    def close(self) -> None:
        if self._substrate is not None:
            self._substrate.close()
        self._reset()

    def __enter__(self) -> "ImarisTiffReader":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # -- accessors --

    @property
    def is_open(self) -> bool:
        return self._substrate is not None

    @property
    def core(self) -> CoreGeometry:
        self._require_open()
        return cast(CoreGeometry, self._core)

    def get_core_geometry(self) -> CoreGeometry:
        return self.core

    @property
    def planes(self) -> Tuple[IFD, ...]:
        self._require_open()
        return self._planes

    @property
    def global_metadata(self) -> Mapping[str, str]:
        self._require_open()
        return MappingProxyType(self._global_metadata)

    @property
    def channel_metadata(self) -> Optional[ChannelMetadataAccumulator]:
        self._require_open()
        return self._channel_metadata

    @property
    def store(self) -> MetadataStore:
        self._require_open()
        return cast(MetadataStore, self._store)

    @property
    def current_path(self) -> Optional[Path]:
        return self._current_path

    # -- pixel access --

    def get_plane(self, index: int) -> bytes:
        """Return the decoded bytes of plane ``index`` in XYZCT order."""
        self._require_open()
        core = self.core
        if not 0 <= index < core.image_count:
            raise IndexError(f"Plane index {index} outside [0, {core.image_count})")
        descriptor = self._planes[index]
        offset = descriptor.tile_offsets[0]
        byte_count = descriptor.tile_byte_counts[0]
        logger.debug("Reading plane %d (%d bytes at offset %d)", index, byte_count, offset)
        substrate = cast(TiffSubstrate, self._substrate)
        return substrate.decode_strip(offset, byte_count, descriptor)

    def get_plane_array(self, index: int) -> np.ndarray:
        """Return plane ``index`` as a ``(size_y, size_x)`` array in native byte order."""
        core = self.core
        data = self.get_plane(index)
        byteorder = "<" if core.little_endian else ">"
        dtype = np.dtype(byteorder + PIXEL_TYPE_DTYPES[core.pixel_type])
        expected = core.size_x * core.size_y * dtype.itemsize
        if len(data) < expected:
            raise ValueError(
                f"Plane {index} holds {len(data)} bytes, expected {expected} "
                f"for {core.size_x}x{core.size_y} {core.pixel_type}"
            )
        array = np.frombuffer(data, dtype=dtype, count=core.size_x * core.size_y)
        array = array.reshape(core.size_y, core.size_x)
        return array.astype(dtype.newbyteorder("="), copy=True)

    def get_index(self, z: int, c: int, t: int = 0) -> int:
        return plane_index(self.core, z, c, t)

    def get_zct_coords(self, index: int) -> Tuple[int, int, int]:
        return zct_coords(self.core, index)

    def _require_open(self) -> None:
        if self._substrate is None:
            raise ReaderStateError("Reader is not open; call open(path) first")


def _seed_global_metadata(ifd: IFD) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    for code in _SEED_TAGS:
        if code in ifd:
            value = ifd[code]
            if isinstance(value, tuple):
                metadata[TAG_NAMES[code]] = " ".join(str(v) for v in value)
            else:
                metadata[TAG_NAMES[code]] = str(value)
    comment = ifd.get(IMAGE_DESCRIPTION)
    if isinstance(comment, str):
        metadata[COMMENT_KEY] = comment
    return metadata


__all__ = ["ImarisTiffReader", "TIFF_MAGIC"]
