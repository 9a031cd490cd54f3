"""Exception types raised while reading Imaris 3 TIFF files.

Errors coming from the TIFF layer itself (``tifffile.TiffFileError`` and
``OSError``) are not wrapped and reach the caller unchanged.
"""

from __future__ import annotations


class ImarisTiffError(Exception):
    """Base class for reader errors."""


class MalformedGeometry(ImarisTiffError, ValueError):
    """The IFD layout cannot be reinterpreted as a channel/Z stack."""


class MalformedMetadata(ImarisTiffError, ValueError):
    """The ImageDescription comment holds values that cannot be used."""


class ReaderStateError(ImarisTiffError, RuntimeError):
    """The reader was used before ``open`` or after ``close``."""


__all__ = [
    "ImarisTiffError",
    "MalformedGeometry",
    "MalformedMetadata",
    "ReaderStateError",
]
