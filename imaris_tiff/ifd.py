from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from .errors import MalformedGeometry

TagValue = Union[int, str, Tuple[int, ...]]

NEW_SUBFILE_TYPE = 254
IMAGE_WIDTH = 256
IMAGE_LENGTH = 257
BITS_PER_SAMPLE = 258
COMPRESSION = 259
PHOTOMETRIC_INTERPRETATION = 262
IMAGE_DESCRIPTION = 270
STRIP_OFFSETS = 273
SAMPLES_PER_PIXEL = 277
STRIP_BYTE_COUNTS = 279
TILE_OFFSETS = 324
TILE_BYTE_COUNTS = 325
SAMPLE_FORMAT = 339

# NewSubfileType value flagging a reduced-resolution (thumbnail) image.
THUMBNAIL_SUBFILE_TYPE = 1

TAG_NAMES: Dict[int, str] = {
    NEW_SUBFILE_TYPE: "NewSubfileType",
    IMAGE_WIDTH: "ImageWidth",
    IMAGE_LENGTH: "ImageLength",
    BITS_PER_SAMPLE: "BitsPerSample",
    COMPRESSION: "Compression",
    PHOTOMETRIC_INTERPRETATION: "PhotometricInterpretation",
    IMAGE_DESCRIPTION: "ImageDescription",
    STRIP_OFFSETS: "StripOffsets",
    SAMPLES_PER_PIXEL: "SamplesPerPixel",
    STRIP_BYTE_COUNTS: "StripByteCounts",
    TILE_OFFSETS: "TileOffsets",
    TILE_BYTE_COUNTS: "TileByteCounts",
    SAMPLE_FORMAT: "SampleFormat",
}

# (SampleFormat, bits) -> pixel type name used in the OME model.
_PIXEL_TYPES: Dict[Tuple[int, int], str] = {
    (1, 8): "uint8",
    (1, 16): "uint16",
    (1, 32): "uint32",
    (2, 8): "int8",
    (2, 16): "int16",
    (2, 32): "int32",
    (3, 32): "float",
    (3, 64): "double",
}

PIXEL_TYPE_DTYPES: Dict[str, str] = {
    "uint8": "u1",
    "uint16": "u2",
    "uint32": "u4",
    "int8": "i1",
    "int16": "i2",
    "int32": "i4",
    "float": "f4",
    "double": "f8",
}


def _freeze(value: Any) -> TagValue:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="ignore").rstrip("\x00")
    if isinstance(value, str):
        return value
    if isinstance(value, (tuple, list)):
        return tuple(int(v) for v in value)
    return int(value)


@dataclass(frozen=True, eq=False)
class IFD(Mapping[int, TagValue]):
    """Immutable TIFF image file directory keyed by numeric tag code.

    Plane descriptors are built with :meth:`with_overrides`, which copies the
    tag table so a derived IFD never aliases its parent's strip arrays.
    """

    entries: Mapping[int, TagValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {int(code): _freeze(value) for code, value in self.entries.items()}
        object.__setattr__(self, "entries", MappingProxyType(frozen))

    def __getitem__(self, code: int) -> TagValue:
        return self.entries[code]

    def __iter__(self) -> Iterator[int]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def with_overrides(self, overrides: Mapping[int, Any]) -> "IFD":
        merged = dict(self.entries)
        merged.update(overrides)
        return IFD(merged)

    def _array(self, code: int) -> Tuple[int, ...]:
        value = self.entries.get(code)
        if value is None:
            return ()
        if isinstance(value, tuple):
            return value
        if isinstance(value, str):
            raise MalformedGeometry(f"{TAG_NAMES.get(code, code)} holds text, expected integers")
        return (value,)

    def _scalar(self, code: int, default: Optional[int] = None) -> Optional[int]:
        value = self.entries.get(code)
        if value is None:
            return default
        if isinstance(value, tuple):
            return value[0] if value else default
        if isinstance(value, str):
            raise MalformedGeometry(f"{TAG_NAMES.get(code, code)} holds text, expected an integer")
        return value

    @property
    def strip_byte_counts(self) -> Tuple[int, ...]:
        return self._array(STRIP_BYTE_COUNTS)

    @property
    def strip_offsets(self) -> Tuple[int, ...]:
        return self._array(STRIP_OFFSETS)

    @property
    def tile_byte_counts(self) -> Tuple[int, ...]:
        return self._array(TILE_BYTE_COUNTS)

    @property
    def tile_offsets(self) -> Tuple[int, ...]:
        return self._array(TILE_OFFSETS)

    @property
    def image_width(self) -> int:
        value = self._scalar(IMAGE_WIDTH)
        if value is None:
            raise MalformedGeometry("IFD has no ImageWidth")
        return value

    @property
    def image_length(self) -> int:
        value = self._scalar(IMAGE_LENGTH)
        if value is None:
            raise MalformedGeometry("IFD has no ImageLength")
        return value

    @property
    def compression(self) -> int:
        return self._scalar(COMPRESSION, 1) or 1

    @property
    def bits_per_sample(self) -> int:
        return self._scalar(BITS_PER_SAMPLE, 1) or 1

    @property
    def samples_per_pixel(self) -> int:
        return self._scalar(SAMPLES_PER_PIXEL, 1) or 1

    @property
    def subfile_type(self) -> int:
        return self._scalar(NEW_SUBFILE_TYPE, 0) or 0

    @property
    def comment(self) -> Optional[str]:
        """Return the ImageDescription text, or ``None`` when absent."""
        value = self.entries.get(IMAGE_DESCRIPTION)
        if value is None or isinstance(value, str):
            return value
        return None

    @property
    def pixel_type(self) -> str:
        sample_format = self._scalar(SAMPLE_FORMAT, 1) or 1
        key = (sample_format, self.bits_per_sample)
        try:
            return _PIXEL_TYPES[key]
        except KeyError:
            raise MalformedGeometry(
                f"Unsupported pixel layout: SampleFormat={key[0]}, BitsPerSample={key[1]}"
            ) from None


__all__ = [
    "IFD",
    "TagValue",
    "TAG_NAMES",
    "PIXEL_TYPE_DTYPES",
    "NEW_SUBFILE_TYPE",
    "IMAGE_WIDTH",
    "IMAGE_LENGTH",
    "BITS_PER_SAMPLE",
    "COMPRESSION",
    "PHOTOMETRIC_INTERPRETATION",
    "IMAGE_DESCRIPTION",
    "STRIP_OFFSETS",
    "SAMPLES_PER_PIXEL",
    "STRIP_BYTE_COUNTS",
    "TILE_OFFSETS",
    "TILE_BYTE_COUNTS",
    "SAMPLE_FORMAT",
    "THUMBNAIL_SUBFILE_TYPE",
]
