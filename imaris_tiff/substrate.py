"""Thin adapter over :mod:`tifffile` exposing the IFD sequence of a file.

Only the tags listed in :data:`imaris_tiff.ifd.TAG_NAMES` are copied out of
each ``TiffPage``; strip bytes are read straight from the file handle so that
non-standard strip tables (one strip per Z plane) stay addressable.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence, Union

import tifffile as tiff  # type: ignore

from .ifd import IFD, TAG_NAMES, THUMBNAIL_SUBFILE_TYPE

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class TiffSubstrate:
    """Open TIFF container with thumbnails removed from its IFD list."""

    def __init__(self, handle: tiff.TiffFile) -> None:
        self._tif = handle
        all_ifds = [_page_to_ifd(page) for page in handle.pages]
        self.ifds: List[IFD] = remove_thumbnails(all_ifds)
        self.byteorder: str = handle.byteorder
        logger.debug(
            "%s: %d IFDs, %d after thumbnail removal", handle.filename, len(all_ifds), len(self.ifds)
        )

    @classmethod
    def open(cls, path: PathLike) -> "TiffSubstrate":
        handle = tiff.TiffFile(str(path))
        try:
            return cls(handle)
        except BaseException:
            handle.close()
            raise

    @property
    def little_endian(self) -> bool:
        return self.byteorder == "<"

    def read_strip(self, offset: int, byte_count: int) -> bytes:
        """Return ``byte_count`` raw bytes starting at ``offset``."""
        fh = self._tif.filehandle
        fh.seek(offset)
        data = fh.read(byte_count)
        if len(data) != byte_count:
            raise OSError(
                f"Short read at offset {offset}: expected {byte_count} bytes, got {len(data)}"
            )
        return data

    def decode_strip(self, offset: int, byte_count: int, ifd: IFD) -> bytes:
        """Return the decompressed bytes of one strip described by ``ifd``."""
        data = self.read_strip(offset, byte_count)
        compression = ifd.compression
        if compression == 1:
            return data
        decompress = tiff.TIFF.DECOMPRESSORS[compression]
        decoded = decompress(data)
        return bytes(decoded)

    def close(self) -> None:
        self._tif.close()


def remove_thumbnails(ifds: Sequence[IFD]) -> List[IFD]:
    """Drop IFDs flagged as reduced-resolution images.

    When every IFD carries the flag the list is returned unchanged.
    """
    kept = [ifd for ifd in ifds if ifd.subfile_type != THUMBNAIL_SUBFILE_TYPE]
    if not kept:
        return list(ifds)
    return kept


def _page_to_ifd(page: tiff.TiffPage) -> IFD:
    entries: Dict[int, object] = {}
    for tag in page.tags.values():
        if tag.code in TAG_NAMES:
            entries[tag.code] = tag.value
    return IFD(entries)


__all__ = ["TiffSubstrate", "remove_thumbnails"]
