"""Parse the INI-style ImageDescription block written by Imaris 3.

The block looks like::

    [Description]
    Description=Nuclei
    RecordingDate=2011-06-15 10:45:22.314
    [Channel 0]
    LSMEmissionWavelength=520
    LSMExcitationWavelength=488
    Name=GFP

Section headers are ignored; only ``key=value`` lines are inspected. Every
pair is copied into the reader's global metadata map and a handful of keys
are lifted into a :class:`ChannelMetadataAccumulator`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, MutableMapping, Optional, Union

from .errors import MalformedMetadata
from .store import MetadataStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

COMMENT_KEY = "Comment"
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class ChannelMetadataAccumulator:
    """Per-open collection of image and channel values, aligned by channel index."""

    emission_wavelengths: List[int] = field(default_factory=list)
    excitation_wavelengths: List[int] = field(default_factory=list)
    channel_names: List[str] = field(default_factory=list)
    description: Optional[str] = None
    creation_date: Optional[str] = None


def is_ini_comment(comment: Optional[str]) -> bool:
    return comment is not None and comment.startswith("[")


def parse_comment(
    comment: Optional[str],
    current_path: PathLike,
    global_metadata: MutableMapping[str, str],
) -> ChannelMetadataAccumulator:
    """Parse ``comment`` into a new accumulator, updating ``global_metadata``.

    Comments that do not start with ``[`` are not parsed and leave
    ``global_metadata`` untouched.
    """
    accumulator = ChannelMetadataAccumulator()
    if not is_ini_comment(comment):
        return accumulator

    logger.info("Parsing comment")
    current_id = str(current_path)
    for line in comment.split("\n"):
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        global_metadata[key] = value

        if key == "Description":
            accumulator.description = value
        elif key == "LSMEmissionWavelength" and value != "0":
            accumulator.emission_wavelengths.append(_parse_int(key, value))
        elif key == "LSMExcitationWavelength" and value != "0":
            accumulator.excitation_wavelengths.append(_parse_int(key, value))
        elif key == "Name" and not current_id.endswith(value):
            accumulator.channel_names.append(value)
        elif key == "RecordingDate":
            accumulator.creation_date = _recording_date(value)

    global_metadata.pop(COMMENT_KEY, None)
    return accumulator


def validate_alignment(accumulator: ChannelMetadataAccumulator) -> None:
    """Raise :class:`MalformedMetadata` if any channel list is shorter than emission."""
    expected = len(accumulator.emission_wavelengths)
    excitation = len(accumulator.excitation_wavelengths)
    names = len(accumulator.channel_names)
    if excitation < expected or names < expected:
        raise MalformedMetadata(
            f"Channel metadata is misaligned: {expected} emission wavelengths, "
            f"{excitation} excitation wavelengths, {names} channel names"
        )


def emit_channel_metadata(
    accumulator: ChannelMetadataAccumulator,
    store: MetadataStore,
    image_index: int = 0,
) -> None:
    """Write image-level then per-channel values to ``store`` in channel order."""
    validate_alignment(accumulator)

    store.set_image_description(accumulator.description, image_index)
    store.set_image_acquired_date(accumulator.creation_date, image_index)

    for channel, emission in enumerate(accumulator.emission_wavelengths):
        if emission > 0:
            store.set_channel_emission_wavelength(emission, image_index, channel)
        else:
            logger.warning("Expected positive value for EmissionWavelength; got %s", emission)
        excitation = accumulator.excitation_wavelengths[channel]
        if excitation > 0:
            store.set_channel_excitation_wavelength(excitation, image_index, channel)
        else:
            logger.warning("Expected positive value for ExcitationWavelength; got %s", excitation)
        store.set_channel_name(accumulator.channel_names[channel], image_index, channel)


def _parse_int(key: str, value: str) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise MalformedMetadata(f"{key} must be an integer, got {value!r}")
    return int(value)


def _recording_date(value: str) -> str:
    return value.replace(" ", "T").split(".", 1)[0]


__all__ = [
    "COMMENT_KEY",
    "ChannelMetadataAccumulator",
    "is_ini_comment",
    "parse_comment",
    "validate_alignment",
    "emit_channel_metadata",
]
