import pytest

from imaris_tiff.errors import MalformedGeometry
from imaris_tiff.geometry import plane_index, synthesize_geometry, zct_coords
from imaris_tiff.ifd import (
    BITS_PER_SAMPLE,
    IFD,
    IMAGE_DESCRIPTION,
    IMAGE_LENGTH,
    IMAGE_WIDTH,
    SAMPLE_FORMAT,
    STRIP_BYTE_COUNTS,
    STRIP_OFFSETS,
)


def _channel_ifd(strips, *, width=256, length=256, bits=16, base_offset=0, description=None):
    entries = {
        IMAGE_WIDTH: width,
        IMAGE_LENGTH: length,
        BITS_PER_SAMPLE: bits,
        SAMPLE_FORMAT: 1,
        STRIP_BYTE_COUNTS: [width * length * bits // 8] * strips,
        STRIP_OFFSETS: [base_offset + i * 1000 for i in range(strips)],
    }
    if description is not None:
        entries[IMAGE_DESCRIPTION] = description
    return IFD(entries)


def test_two_channel_three_plane_geometry():
    ifds = [_channel_ifd(3), _channel_ifd(3, base_offset=50_000)]
    result = synthesize_geometry(ifds)
    core = result.core

    assert (core.size_x, core.size_y) == (256, 256)
    assert core.size_z == 3
    assert core.size_c == 2
    assert core.size_t == 1
    assert core.image_count == 6
    assert core.dimension_order == "XYZCT"
    assert core.interleaved is False
    assert core.rgb is False
    assert core.pixel_type == "uint16"
    assert result.comment is None
    assert len(result.planes) == 6


def test_planes_are_channel_major_with_strip_order_inside():
    ifds = [_channel_ifd(3), _channel_ifd(3, base_offset=50_000)]
    planes = synthesize_geometry(ifds).planes

    offsets = [plane.tile_offsets for plane in planes]
    assert offsets == [(0,), (1000,), (2000,), (50_000,), (51_000,), (52_000,)]
    for plane in planes:
        assert len(plane.tile_byte_counts) == 1
        assert plane.image_width == 256


@pytest.mark.parametrize("size_c, size_z", [(1, 1), (1, 5), (3, 2), (4, 7)])
def test_plane_count_equals_channels_times_depth(size_c, size_z):
    ifds = [_channel_ifd(size_z, base_offset=c * 100_000) for c in range(size_c)]
    core = synthesize_geometry(ifds).core
    assert core.size_c == size_c
    assert core.size_z == size_z
    assert core.image_count == size_c * size_z


def test_single_strip_stored_as_scalar_gives_one_plane():
    ifd = IFD(
        {
            IMAGE_WIDTH: 4,
            IMAGE_LENGTH: 4,
            BITS_PER_SAMPLE: 8,
            STRIP_BYTE_COUNTS: 16,
            STRIP_OFFSETS: 8,
        }
    )
    result = synthesize_geometry([ifd])
    assert result.core.image_count == 1
    assert result.core.pixel_type == "uint8"
    assert result.planes[0].tile_offsets == (8,)


def test_comment_comes_from_first_ifd():
    ifds = [_channel_ifd(1, description="[first]"), _channel_ifd(1, description="[second]")]
    assert synthesize_geometry(ifds).comment == "[first]"


def test_uneven_planes_raise_malformed_geometry():
    with pytest.raises(MalformedGeometry):
        synthesize_geometry([_channel_ifd(3), _channel_ifd(2)])


def test_mismatched_strip_arrays_raise_malformed_geometry():
    ifd = IFD({IMAGE_WIDTH: 4, IMAGE_LENGTH: 4, STRIP_BYTE_COUNTS: [16, 16], STRIP_OFFSETS: [8]})
    with pytest.raises(MalformedGeometry):
        synthesize_geometry([ifd])


def test_empty_input_raises_malformed_geometry():
    with pytest.raises(MalformedGeometry):
        synthesize_geometry([])


def test_plane_index_round_trips_with_coordinates():
    core = synthesize_geometry([_channel_ifd(3), _channel_ifd(3)]).core
    for index in range(core.image_count):
        z, c, t = zct_coords(core, index)
        assert t == 0
        assert plane_index(core, z, c, t) == index
    assert plane_index(core, 2, 1) == 5
    with pytest.raises(IndexError):
        zct_coords(core, 6)
    with pytest.raises(IndexError):
        plane_index(core, 3, 0)


def test_strip_counts_that_divide_evenly_but_differ_raise():
    ifds = [_channel_ifd(1), _channel_ifd(2, base_offset=10_000), _channel_ifd(3, base_offset=20_000)]
    with pytest.raises(MalformedGeometry):
        synthesize_geometry(ifds)
