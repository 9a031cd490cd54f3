"""Writer for synthetic Imaris 3 TIFF files used by the tests.

tifffile cannot produce the Imaris layout (an IFD whose strip table lists Z
planes rather than row bands), so the container is assembled by hand: a
little- or big-endian classic TIFF with an optional thumbnail IFD followed by
one IFD per channel.
"""
from __future__ import annotations

import struct
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

SHORT = 3
LONG = 4
ASCII = 2

_SAMPLE_FORMATS = {"u": 1, "i": 2, "f": 3}


def write_imaris_tiff(
    path: Path,
    channels: Sequence[np.ndarray],
    *,
    description: Optional[str] = None,
    thumbnail: bool = True,
    byteorder: str = "<",
) -> Path:
    """Write ``channels`` (each ``(Z, Y, X)``) as an Imaris 3 TIFF at ``path``."""
    pages: List[Tuple[np.ndarray, Optional[str], int]] = []
    if thumbnail:
        pages.append((np.zeros((1, 4, 4), dtype=np.uint8), None, 1))
    for index, stack in enumerate(channels):
        pages.append((np.asarray(stack), description if index == 0 else None, 0))

    magic = b"II*\x00" if byteorder == "<" else b"MM\x00*"
    buf = bytearray(magic + b"\x00\x00\x00\x00")

    strip_tables = []
    for stack, _, _ in pages:
        dtype = stack.dtype.newbyteorder(byteorder)
        offsets, counts = [], []
        for plane in stack:
            data = np.ascontiguousarray(plane, dtype=dtype).tobytes()
            _pad(buf)
            offsets.append(len(buf))
            counts.append(len(data))
            buf += data
        strip_tables.append((offsets, counts))

    next_pointer = 4
    for (stack, desc, subfile), (offsets, counts) in zip(pages, strip_tables):
        _, height, width = stack.shape
        entries = [
            (254, LONG, [subfile]),
            (256, LONG, [width]),
            (257, LONG, [height]),
            (258, SHORT, [stack.dtype.itemsize * 8]),
            (259, SHORT, [1]),
            (262, SHORT, [1]),
            (273, LONG, offsets),
            (277, SHORT, [1]),
            (278, LONG, [height]),
            (279, LONG, counts),
            (339, SHORT, [_SAMPLE_FORMATS[stack.dtype.kind]]),
        ]
        if desc is not None:
            entries.append((270, ASCII, desc.encode("utf-8") + b"\x00"))
        entries.sort(key=lambda entry: entry[0])

        _pad(buf)
        ifd_offset = len(buf)
        struct.pack_into(byteorder + "I", buf, next_pointer, ifd_offset)
        extra_offset = ifd_offset + 2 + 12 * len(entries) + 4
        body = bytearray(struct.pack(byteorder + "H", len(entries)))
        extra = bytearray()
        for code, kind, values in entries:
            if kind == ASCII:
                payload = bytes(values)
                count = len(payload)
            else:
                fmt = "H" if kind == SHORT else "I"
                payload = struct.pack(byteorder + fmt * len(values), *values)
                count = len(values)
            if len(payload) <= 4:
                field = payload.ljust(4, b"\x00")
            else:
                if (extra_offset + len(extra)) % 2:
                    extra += b"\x00"
                field = struct.pack(byteorder + "I", extra_offset + len(extra))
                extra += payload
            body += struct.pack(byteorder + "HHI", code, kind, count) + field
        next_pointer = len(buf) + len(body)
        body += b"\x00\x00\x00\x00"
        buf += body + extra

    Path(path).write_bytes(bytes(buf))
    return Path(path)


def make_channels(
    size_c: int,
    size_z: int,
    size_y: int = 8,
    size_x: int = 6,
    dtype=np.uint16,
) -> List[np.ndarray]:
    """Return ``size_c`` stacks whose every plane has distinct content."""
    channels = []
    for c in range(size_c):
        base = np.arange(size_z * size_y * size_x, dtype=np.int64).reshape(size_z, size_y, size_x)
        channels.append(((base + 1000 * c) % np.iinfo(np.int16).max).astype(dtype))
    return channels


def _pad(buf: bytearray) -> None:
    if len(buf) % 2:
        buf += b"\x00"


class RecordingStore:
    """Metadata sink that records every call in order."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def populate_pixels(self, core, *, name=None) -> None:
        self.calls.append(("populate_pixels", core))

    def set_image_description(self, description, image_index) -> None:
        self.calls.append(("description", description, image_index))

    def set_image_acquired_date(self, date, image_index) -> None:
        self.calls.append(("date", date, image_index))

    def set_channel_emission_wavelength(self, wavelength, image_index, channel_index) -> None:
        self.calls.append(("emission", wavelength, image_index, channel_index))

    def set_channel_excitation_wavelength(self, wavelength, image_index, channel_index) -> None:
        self.calls.append(("excitation", wavelength, image_index, channel_index))

    def set_channel_name(self, name, image_index, channel_index) -> None:
        self.calls.append(("name", name, image_index, channel_index))

    def kinds(self) -> List[str]:
        return [call[0] for call in self.calls]
