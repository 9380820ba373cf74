"""
Utility functions for VRS density maps.

Provides a timing helper, scalar clamping and conversion of density
buffers into displayable images.
"""

import numpy as np
from typing import Tuple
import time
import logging

logger = logging.getLogger(__name__)


class Timer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str = "Operation", log: bool = True):
        """
        Initialize timer.

        Args:
            name: Name of the operation being timed.
            log: Whether to log the result.
        """
        self.name = name
        self.log = log
        self.elapsed: float = 0.0

    def __enter__(self) -> 'Timer':
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        if self.log:
            logger.debug(f"{self.name} took {self.elapsed * 1000:.2f}ms")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """
    Clamp a value to a range.

    Args:
        value: Value to clamp.
        min_val: Minimum allowed value.
        max_val: Maximum allowed value.

    Returns:
        Clamped value.
    """
    return max(min_val, min(value, max_val))


# Low density (full detail) is drawn green, high density (coarse) red.
_LOW_COLOR = np.array([40, 200, 90], dtype=float)
_HIGH_COLOR = np.array([220, 40, 40], dtype=float)


def density_to_rgb(buffer: np.ndarray, channel: int = 0) -> np.ndarray:
    """
    Colourise one channel of a density buffer.

    Args:
        buffer: uint8 array of shape (height, width, 2).
        channel: Which of the two density channels to show.

    Returns:
        uint8 RGB image of shape (height, width, 3).
    """
    if buffer.ndim != 3 or buffer.shape[2] != 2:
        raise ValueError(f"Expected a (H, W, 2) density buffer, got {buffer.shape}")

    t = buffer[:, :, channel].astype(float)[:, :, np.newaxis] / 255.0
    rgb = _LOW_COLOR * (1.0 - t) + _HIGH_COLOR * t
    return np.clip(np.rint(rgb), 0, 255).astype(np.uint8)


def upscale_nearest(image: np.ndarray, new_width: int, new_height: int) -> np.ndarray:
    """
    Resize an image with nearest-neighbour sampling.

    Density texels are meant to be seen as blocks, so no filtering is done.
    """
    old_height, old_width = image.shape[:2]

    x_indices = np.floor(np.arange(new_width) * (old_width / new_width)).astype(int)
    y_indices = np.floor(np.arange(new_height) * (old_height / new_height)).astype(int)
    x_indices = np.clip(x_indices, 0, old_width - 1)
    y_indices = np.clip(y_indices, 0, old_height - 1)

    return image[y_indices[:, np.newaxis], x_indices]


def tile_horizontally(images: list, gap: int = 0) -> np.ndarray:
    """
    Place images of equal height side by side, separated by a black gap.
    """
    if not images:
        raise ValueError("No images to tile")

    parts = []
    for idx, image in enumerate(images):
        if idx and gap > 0:
            parts.append(np.zeros((image.shape[0], gap) + image.shape[2:], dtype=image.dtype))
        parts.append(image)
    return np.concatenate(parts, axis=1)


def pixel_to_ndc(x: float, y: float, size: Tuple[int, int]) -> Tuple[float, float]:
    """
    Convert a window pixel position (y-down) into normalized device
    coordinates (y-up, range [-1, 1]).
    """
    width, height = size
    return (
        clamp(2.0 * x / width - 1.0, -1.0, 1.0),
        clamp(1.0 - 2.0 * y / height, -1.0, 1.0),
    )
