"""
Core density map generator.

Turns a render target size, per-eye gaze focus points and the current
foveation parameters into one two-channel byte buffer per eye. A value of
0 asks for full shading detail, 255 for the coarsest rate the backend has.
Everything here is a pure function; uploading the result is left to the
texture cache.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from .config import FoveationParams, RenderRegion
from .errors import InvalidArgument, UnsupportedBackend

logger = logging.getLogger(__name__)

# Stereo is the most views a single render pass produces.
MAX_RENDER_VIEWS = 2

# Two 8-bit channels per texel.
DENSITY_CHANNELS = 2

Size = Tuple[int, int]
Point = Tuple[float, float]


@dataclass(frozen=True)
class GenerationRequest:
    """
    Inputs of one density map generation.

    Attributes:
        target_size: Render target (width, height) in pixels.
        eye_foci: Gaze focus per view in normalized device coordinates
            (y-up, range [-1, 1]).
    """
    target_size: Size
    eye_foci: Tuple[Point, ...]

    def __post_init__(self):
        if not self.eye_foci:
            raise InvalidArgument("At least one eye focus point is required")

    @classmethod
    def create(cls, target_size: Sequence[float], eye_foci: Sequence[Sequence[float]]) -> 'GenerationRequest':
        """
        Build a request from loosely typed input (lists, tuples, numpy arrays).

        Raises:
            InvalidArgument: If the input is empty or malformed.
        """
        try:
            width, height = (int(v) for v in target_size)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"Target size must be (width, height), got {target_size!r}") from e

        foci = []
        for focus in eye_foci:
            try:
                fx, fy = (float(v) for v in focus)
            except (TypeError, ValueError) as e:
                raise InvalidArgument(f"Eye focus must be an (x, y) point, got {focus!r}") from e
            foci.append((fx, fy))

        return cls(target_size=(width, height), eye_foci=tuple(foci))


@dataclass
class DensityMaps:
    """Result of a generation: the map resolution and one buffer per eye."""
    map_size: Size
    buffers: List[np.ndarray] = field(default_factory=list)

    @property
    def layers(self) -> int:
        return len(self.buffers)


def validate_texel_size(texel_size: Sequence[int]) -> Size:
    """
    Check the backend's shading-rate tile size.

    Raises:
        UnsupportedBackend: If either dimension is below 1, meaning the
            graphics API does not support VRS.
    """
    tx, ty = (int(v) for v in texel_size)
    if tx < 1 or ty < 1:
        raise UnsupportedBackend(
            f"Backend reported texel size {tx}x{ty}; variable rate shading is unsupported",
            texel_size=(tx, ty),
        )
    return tx, ty


def compute_map_size(target_size: Size, texel_size: Size) -> Size:
    """
    Density map resolution for a render target.

    Each texel covers one shading-rate tile, rounded to the nearest tile
    count and never smaller than 1x1.
    """
    width = int(np.floor(target_size[0] / texel_size[0] + 0.5))
    height = int(np.floor(target_size[1] / texel_size[1] + 0.5))
    return max(width, 1), max(height, 1)


def compute_radii(map_size: Size, params: FoveationParams) -> Tuple[float, float]:
    """
    Compute the full-detail radius and the ramp width in map texels.

    Returns:
        Tuple of (min_radius, outer_radius).
    """
    # Largest radius that fits inside the map
    max_radius = 0.5 * min(map_size)
    min_radius = params.min_radius * max_radius / 100.0
    outer_radius = max(1.0, (max_radius - min_radius) / params.strength)
    return min_radius, outer_radius


def compute_region_transform(target_size: Size,
                             map_size: Size,
                             region: RenderRegion) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Scale and offset that place a cropped render region inside the map.

    Returns:
        Tuple of (region_ratio, region_offset).
    """
    # A target without area has nothing to crop.
    if not region.has_area() or target_size[0] <= 0 or target_size[1] <= 0:
        return (1.0, 1.0), (0.0, 0.0)

    ratio = (region.width / target_size[0], region.height / target_size[1])
    offset = (
        region.x / target_size[0] * map_size[0],
        region.y / target_size[1] * map_size[1],
    )
    return ratio, offset


def focus_to_map_center(focus: Point,
                        map_size: Size,
                        region_ratio: Tuple[float, float],
                        region_offset: Tuple[float, float]) -> Point:
    """
    Convert a focus point from normalized device coordinates to map texels.

    NDC is y-up while the map is stored top-down, hence the flipped y.
    """
    fx, fy = focus
    cx = map_size[0] * (fx + 1.0) * region_ratio[0] * 0.5 + region_offset[0]
    cy = map_size[1] * (-fy + 1.0) * region_ratio[1] * 0.5 + region_offset[1]
    return cx, cy


def build_density_map(map_size: Size,
                      center: Point,
                      min_radius: float,
                      outer_radius: float,
                      region_ratio: Tuple[float, float] = (1.0, 1.0)) -> np.ndarray:
    """
    Fill one eye's density buffer.

    Args:
        map_size: Map (width, height) in texels.
        center: Focus location in map texels.
        min_radius: Radius around the focus kept at full detail.
        outer_radius: Distance over which density ramps from 0 to 1.
        region_ratio: Render region scale; dividing by it undoes the
            stretching a non-square region introduces.

    Returns:
        uint8 array of shape (height, width, 2).
    """
    width, height = map_size
    y_coords, x_coords = np.ogrid[:height, :width]

    dx = (x_coords - center[0]) / region_ratio[0]
    dy = (y_coords - center[1]) / region_ratio[1]
    distance = np.sqrt(dx * dx + dy * dy)

    density = np.clip((distance - min_radius) / outer_radius, 0.0, 1.0)
    values = np.floor(255.0 * density + 0.5).astype(np.uint8)

    # Both channels carry the same density; per-axis rates are not used.
    return np.repeat(values[:, :, np.newaxis], DENSITY_CHANNELS, axis=2)


def generate_density_maps(params: FoveationParams,
                          request: GenerationRequest,
                          texel_size: Sequence[int]) -> DensityMaps:
    """
    Generate the density buffers for every eye of a request.

    Args:
        params: Foveation parameters snapshot.
        request: Target size and eye focus points.
        texel_size: Shading-rate tile size reported by the backend.

    Returns:
        DensityMaps with one buffer per eye.

    Raises:
        UnsupportedBackend: If the texel size is not usable.
    """
    texel_size = validate_texel_size(texel_size)
    map_size = compute_map_size(request.target_size, texel_size)
    min_radius, outer_radius = compute_radii(map_size, params)
    region_ratio, region_offset = compute_region_transform(
        request.target_size, map_size, params.render_region
    )

    foci = request.eye_foci
    if len(foci) > MAX_RENDER_VIEWS:
        logger.warning(
            f"{len(foci)} eye foci given, only the first {MAX_RENDER_VIEWS} views are generated"
        )
        foci = foci[:MAX_RENDER_VIEWS]

    result = DensityMaps(map_size=map_size)
    for focus in foci:
        center = focus_to_map_center(focus, map_size, region_ratio, region_offset)
        result.buffers.append(
            build_density_map(map_size, center, min_radius, outer_radius, region_ratio)
        )

    logger.debug(
        f"Generated {result.layers} density map(s) of {map_size[0]}x{map_size[1]} "
        f"(min_radius={min_radius:.2f}, outer_radius={outer_radius:.2f})"
    )
    return result
