"""Metadata sinks receiving the values extracted by the reader.

:class:`MetadataStore` is the narrow interface the reader writes to;
:class:`OMEMetadataStore` builds an :class:`ome_types.OME` model from those
calls.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Protocol

from ome_types import OME, to_xml
from ome_types.model import Channel, Image, Pixels

from .geometry import CoreGeometry

logger = logging.getLogger(__name__)


class MetadataStore(Protocol):
    def populate_pixels(self, core: CoreGeometry, *, name: Optional[str] = None) -> None:
        ...

    def set_image_description(self, description: Optional[str], image_index: int) -> None:
        ...

    def set_image_acquired_date(self, date: Optional[str], image_index: int) -> None:
        ...

    def set_channel_emission_wavelength(
        self, wavelength: int, image_index: int, channel_index: int
    ) -> None:
        ...

    def set_channel_excitation_wavelength(
        self, wavelength: int, image_index: int, channel_index: int
    ) -> None:
        ...

    def set_channel_name(self, name: str, image_index: int, channel_index: int) -> None:
        ...


class OMEMetadataStore:
    """Accumulate reader output into an OME data model."""

    def __init__(self) -> None:
        self.ome = OME()

    def populate_pixels(self, core: CoreGeometry, *, name: Optional[str] = None) -> None:
        """Create (or replace) image 0 with the pixel geometry of ``core``."""
        image_index = 0
        pixels = Pixels(
            id=f"Pixels:{image_index}",
            dimension_order=core.dimension_order,
            type=core.pixel_type,
            size_x=core.size_x,
            size_y=core.size_y,
            size_z=core.size_z,
            size_c=core.size_c,
            size_t=core.size_t,
            big_endian=not core.little_endian,
            interleaved=core.interleaved,
            channels=[
                Channel(id=f"Channel:{image_index}:{c}", samples_per_pixel=1)
                for c in range(core.size_c)
            ],
        )
        image = Image(id=f"Image:{image_index}", name=name, pixels=pixels)
        if self.ome.images:
            self.ome.images[image_index] = image
        else:
            self.ome.images.append(image)

    def set_image_description(self, description: Optional[str], image_index: int) -> None:
        self._image(image_index).description = description

    def set_image_acquired_date(self, date: Optional[str], image_index: int) -> None:
        image = self._image(image_index)
        if date is None:
            image.acquisition_date = None
            return
        try:
            image.acquisition_date = datetime.fromisoformat(date)
        except ValueError:
            logger.warning("Ignoring acquisition date %r: not an ISO 8601 timestamp", date)
            image.acquisition_date = None

    def set_channel_emission_wavelength(
        self, wavelength: int, image_index: int, channel_index: int
    ) -> None:
        self._channel(image_index, channel_index).emission_wavelength = float(wavelength)

    def set_channel_excitation_wavelength(
        self, wavelength: int, image_index: int, channel_index: int
    ) -> None:
        self._channel(image_index, channel_index).excitation_wavelength = float(wavelength)

    def set_channel_name(self, name: str, image_index: int, channel_index: int) -> None:
        self._channel(image_index, channel_index).name = name

    def to_xml(self) -> str:
        return to_xml(self.ome)

    def _image(self, image_index: int) -> Image:
        try:
            return self.ome.images[image_index]
        except IndexError:
            raise IndexError(
                f"Image {image_index} has not been populated; call populate_pixels first"
            ) from None

    def _channel(self, image_index: int, channel_index: int) -> Channel:
        channels = self._image(image_index).pixels.channels
        while len(channels) <= channel_index:
            channels.append(
                Channel(id=f"Channel:{image_index}:{len(channels)}", samples_per_pixel=1)
            )
        return channels[channel_index]


__all__ = ["MetadataStore", "OMEMetadataStore"]
