import numpy as np
import pytest

from VRS.config import FoveationParams, RenderRegion
from VRS.density_map import (
    MAX_RENDER_VIEWS,
    GenerationRequest,
    build_density_map,
    compute_map_size,
    compute_radii,
    compute_region_transform,
    focus_to_map_center,
    generate_density_maps,
    validate_texel_size,
)
from VRS.errors import InvalidArgument, UnsupportedBackend


@pytest.mark.parametrize("target, texel, expected", [
    ((1024, 1024), (8, 8), (128, 128)),
    ((1920, 1080), (16, 16), (120, 68)),
    ((1020, 1019), (8, 8), (128, 127)),
    ((3, 3), (8, 8), (1, 1)),
    ((1, 1), (16, 16), (1, 1)),
])
def test_compute_map_size(target, texel, expected):
    assert compute_map_size(target, texel) == expected


@pytest.mark.parametrize("texel", [(0, 8), (8, 0), (-1, -1), (0, 0)])
def test_invalid_texel_size(texel):
    with pytest.raises(UnsupportedBackend) as info:
        validate_texel_size(texel)
    assert info.value.texel_size == tuple(texel)


def test_valid_texel_size():
    assert validate_texel_size([16, 8]) == (16, 8)


def test_radii_scenario():
    assert compute_radii((128, 128), FoveationParams(min_radius=50.0, strength=1.0)) == (32.0, 32.0)


def test_radii_use_smaller_dimension():
    min_radius, outer_radius = compute_radii((200, 100), FoveationParams(min_radius=20.0, strength=2.0))
    assert min_radius == pytest.approx(10.0)
    assert outer_radius == pytest.approx(20.0)


def test_outer_radius_never_below_one():
    _, outer_radius = compute_radii((4, 4), FoveationParams(min_radius=100.0, strength=10.0))
    assert outer_radius == 1.0


def test_region_transform_without_region():
    assert compute_region_transform((1024, 1024), (128, 128), RenderRegion()) == ((1.0, 1.0), (0.0, 0.0))


def test_region_without_area_is_ignored():
    region = RenderRegion(100, 100, 0, 0)
    assert compute_region_transform((1024, 1024), (128, 128), region) == ((1.0, 1.0), (0.0, 0.0))


def test_region_transform():
    ratio, offset = compute_region_transform((1024, 1024), (128, 128), RenderRegion(512, 256, 512, 512))
    assert ratio == (0.5, 0.5)
    assert offset == (64.0, 32.0)


@pytest.mark.parametrize("focus, expected", [
    ((0.0, 0.0), (64.0, 64.0)),
    ((1.0, 1.0), (128.0, 0.0)),
    ((-1.0, -1.0), (0.0, 128.0)),
    ((0.5, -0.5), (96.0, 96.0)),
])
def test_focus_to_map_center_flips_y(focus, expected):
    assert focus_to_map_center(focus, (128, 128), (1.0, 1.0), (0.0, 0.0)) == expected


def test_scenario_1024_with_8x8_tiles():
    request = GenerationRequest.create((1024, 1024), [(0.0, 0.0)])
    params = FoveationParams(min_radius=50.0, strength=1.0)
    maps = generate_density_maps(params, request, (8, 8))

    assert maps.map_size == (128, 128)
    assert maps.layers == 1
    buffer = maps.buffers[0]
    assert buffer.shape == (128, 128, 2)
    assert buffer.dtype == np.uint8
    assert buffer.nbytes == 128 * 128 * 2
    # buffers are indexed [y, x]
    assert tuple(buffer[64, 64]) == (0, 0)
    assert tuple(buffer[64, 0]) == (255, 255)


def test_focus_texel_has_full_detail():
    buffer = build_density_map((32, 16), (10.0, 5.0), min_radius=1.0, outer_radius=4.0)
    assert tuple(buffer[5, 10]) == (0, 0)


def test_channels_are_identical():
    buffer = build_density_map((40, 30), (7.3, 21.9), min_radius=2.0, outer_radius=9.0)
    np.testing.assert_array_equal(buffer[:, :, 0], buffer[:, :, 1])


def test_density_ramp_values():
    buffer = build_density_map((64, 1), (0.0, 0.0), min_radius=10.0, outer_radius=20.0)
    row = buffer[0, :, 0]
    assert row[:11].max() == 0
    # (15 - 10) / 20 * 255 = 63.75
    assert row[15] == 64
    # (20 - 10) / 20 * 255 = 127.5, rounded half up
    assert row[20] == 128
    assert row[30:].min() == 255
    assert np.all(np.diff(row.astype(int)) >= 0)


def test_density_spans_full_byte_range():
    request = GenerationRequest.create((333, 777), [(0.9, -0.7), (-1.0, 1.0)])
    maps = generate_density_maps(FoveationParams(min_radius=5.0, strength=10.0), request, (7, 5))
    assert maps.map_size == (48, 155)
    for buffer in maps.buffers:
        assert buffer.dtype == np.uint8
        assert buffer.shape == (maps.map_size[1], maps.map_size[0], 2)
        # full detail at the focus, clipped to the coarsest rate far away
        assert buffer.min() == 0
        assert buffer.max() == 255
        assert np.any((buffer > 0) & (buffer < 255))


def test_one_buffer_per_eye():
    request = GenerationRequest.create((800, 600), [(-0.2, 0.0), (0.2, 0.0)])
    maps = generate_density_maps(FoveationParams(), request, (8, 8))
    assert maps.layers == 2
    left, right = maps.buffers
    assert not np.array_equal(left, right)
    # map is 100x75, the foci land on x=40 and x=60
    assert left[37, 40, 0] == 0
    assert right[37, 60, 0] == 0
    assert left[37, 60, 0] > 0
    assert right[37, 40, 0] > 0


def test_extra_views_are_dropped():
    foci = [(0.0, 0.0)] * (MAX_RENDER_VIEWS + 2)
    request = GenerationRequest.create((256, 256), foci)
    maps = generate_density_maps(FoveationParams(), request, (8, 8))
    assert maps.layers == MAX_RENDER_VIEWS


def test_region_corrects_anisotropy():
    # The right half of the target is rendered, squeezed horizontally.
    request = GenerationRequest.create((1024, 1024), [(0.0, 0.0)])
    params = FoveationParams(min_radius=1.0, strength=1.0, render_region=RenderRegion(512, 0, 512, 1024))
    buffer = generate_density_maps(params, request, (8, 8)).buffers[0]

    assert tuple(buffer[64, 96]) == (0, 0)
    # 8 texels in x count as 16 once the region ratio is undone
    assert buffer[64, 104, 0] == buffer[80, 96, 0]
    assert buffer[64, 104, 0] > 0


def test_degenerate_target_gives_single_texel():
    request = GenerationRequest.create((2, 2), [(0.0, 0.0)])
    maps = generate_density_maps(FoveationParams(), request, (16, 16))
    assert maps.map_size == (1, 1)
    assert maps.buffers[0].shape == (1, 1, 2)


def test_empty_foci_rejected():
    with pytest.raises(InvalidArgument):
        GenerationRequest.create((1024, 1024), [])


@pytest.mark.parametrize("target, expected", [
    ((0, 0), (1, 1)),
    ((-50, -50), (1, 1)),
    ((0, 100), (1, 13)),
    ((100, -1), (13, 1)),
])
def test_non_positive_target_floors_map_size(target, expected):
    request = GenerationRequest.create(target, [(0.0, 0.0)])
    params = FoveationParams(render_region=RenderRegion(0, 0, 64, 64))
    maps = generate_density_maps(params, request, (8, 8))
    assert maps.map_size == expected
    assert maps.buffers[0].shape == (expected[1], expected[0], 2)


@pytest.mark.parametrize("foci", [[(0.0,)], [None], [(0.0, "x")]])
def test_malformed_focus_rejected(foci):
    with pytest.raises(InvalidArgument):
        GenerationRequest.create((64, 64), foci)


def test_request_normalises_numpy_input():
    request = GenerationRequest.create(np.array([640, 480]), np.array([[0.25, -0.5]], dtype=np.float32))
    assert request.target_size == (640, 480)
    assert request.eye_foci == ((0.25, -0.5),)
    assert isinstance(request.eye_foci[0][0], float)


def test_invalid_texel_size_fails_generation():
    request = GenerationRequest.create((64, 64), [(0.0, 0.0)])
    with pytest.raises(UnsupportedBackend):
        generate_density_maps(FoveationParams(), request, (0, 8))
