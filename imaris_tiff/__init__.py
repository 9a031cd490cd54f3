"""
Reader for Bitplane Imaris 3 ``.ims`` files (TIFF variant).

Imaris 3 hides a multi-channel Z-stack inside an ordinary TIFF: the first IFD
is a thumbnail and every following IFD is one channel whose strips are its Z
planes. The package reinterprets that layout and recovers the acquisition
metadata written into the ImageDescription tag. The core entry points are:

* :class:`ImarisTiffReader` – open a file, query its :class:`CoreGeometry`
  and read individual planes.
* :func:`read_metadata` – one-shot summary of geometry and channel metadata.
* :func:`read_stack` – load a whole file as a ``(C, Z, Y, X)`` array.
* :func:`build_ims_manifest` – tabulate every Imaris 3 file in a folder.
* :func:`export_directory` – write per-channel stacks plus metadata JSON,
  OME-XML and a CSV summary for a folder of files.
"""

from .comment import ChannelMetadataAccumulator, parse_comment
from .errors import ImarisTiffError, MalformedGeometry, MalformedMetadata, ReaderStateError
from .export import export_directory
from .geometry import CoreGeometry, synthesize_geometry
from .ifd import IFD
from .manifest import build_ims_manifest, discover_ims_files
from .metadata import ImarisChannelMetadata, ImarisTiffMetadata, read_metadata, read_stack
from .options import MetadataLevel, MetadataOptions, load_metadata_options
from .reader import ImarisTiffReader
from .store import MetadataStore, OMEMetadataStore
from .substrate import TiffSubstrate

__all__ = [
    "ImarisTiffReader",
    "CoreGeometry",
    "IFD",
    "TiffSubstrate",
    "synthesize_geometry",
    "ChannelMetadataAccumulator",
    "parse_comment",
    "MetadataStore",
    "OMEMetadataStore",
    "MetadataLevel",
    "MetadataOptions",
    "load_metadata_options",
    "ImarisChannelMetadata",
    "ImarisTiffMetadata",
    "read_metadata",
    "read_stack",
    "build_ims_manifest",
    "discover_ims_files",
    "export_directory",
    "ImarisTiffError",
    "MalformedGeometry",
    "MalformedMetadata",
    "ReaderStateError",
]
