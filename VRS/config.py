"""
Configuration module for foveated variable-rate shading.

Holds the user-tunable density map parameters with validated setters and
tracks whether a previously generated map is out of date.
"""

import logging
import math
import threading
import warnings
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from .errors import InvalidArgument, VRSConfigWarning

logger = logging.getLogger(__name__)

MIN_RADIUS_RANGE = (1.0, 100.0)
STRENGTH_RANGE = (0.1, 10.0)

DEFAULT_MIN_RADIUS = 20.0
DEFAULT_STRENGTH = 1.0


@dataclass(frozen=True)
class RenderRegion:
    """
    Sub-rectangle of the render target that is actually rendered.

    Attributes:
        x: Left edge in target pixels.
        y: Top edge in target pixels.
        width: Width in target pixels.
        height: Height in target pixels.
    """
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def has_area(self) -> bool:
        """Only regions with a positive area crop the frame."""
        return self.width > 0 and self.height > 0

    @classmethod
    def coerce(cls, value: Union['RenderRegion', Sequence[int], None]) -> 'RenderRegion':
        """
        Build a region from a RenderRegion, an (x, y, w, h) sequence or None.

        Raises:
            InvalidArgument: If the value cannot be read as a rectangle.
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        try:
            x, y, width, height = (int(v) for v in value)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"Render region must be (x, y, width, height), got {value!r}") from e
        return cls(x, y, width, height)


@dataclass(frozen=True)
class FoveationParams:
    """Immutable snapshot of the parameters the density map depends on."""
    min_radius: float = DEFAULT_MIN_RADIUS
    strength: float = DEFAULT_STRENGTH
    render_region: RenderRegion = RenderRegion()


class VRSConfig:
    """
    Parameter store for the density map.

    Setters clamp out-of-range values to the nearest bound and issue a
    VRSConfigWarning. Any change marks the configuration dirty so the
    texture cache rebuilds its map on the next request.
    """

    def __init__(self,
                 min_radius: float = DEFAULT_MIN_RADIUS,
                 strength: float = DEFAULT_STRENGTH,
                 render_region: Union[RenderRegion, Sequence[int], None] = None):
        self.lock = threading.RLock()
        self._min_radius = self._clamped("minimum radius", float(min_radius), MIN_RADIUS_RANGE, 2)
        self._strength = self._clamped("strength", float(strength), STRENGTH_RANGE, 2)
        self._render_region = RenderRegion.coerce(render_region)
        # Nothing has been generated from this config yet.
        self._dirty = True

    def __repr__(self) -> str:
        return (f"VRSConfig(min_radius={self._min_radius}, strength={self._strength}, "
                f"render_region={self._render_region}, dirty={self._dirty})")

    def _clamped(self, name: str, value: float, bounds: Tuple[float, float], stacklevel: int) -> float:
        """
        Clamp a setter argument to its bounds.

        Args:
            name: Parameter name used in the warning text.
            value: Requested value.
            bounds: (low, high) range.
            stacklevel: Frame the warning is attributed to, counted from the
                setter that called this method.

        Returns:
            The value inside the range. NaN becomes the lower bound.
        """
        low, high = bounds
        # one extra frame for this method
        stacklevel += 1
        if math.isnan(value):
            warnings.warn(f"VRS {name} can not be NaN, using {low}", VRSConfigWarning, stacklevel=stacklevel)
            return low
        if value < low:
            warnings.warn(f"VRS {name} can not be set below {low}", VRSConfigWarning, stacklevel=stacklevel)
            return low
        if value > high:
            warnings.warn(f"VRS {name} can not be set above {high}", VRSConfigWarning, stacklevel=stacklevel)
            return high
        return value

    def get_min_radius(self) -> float:
        return self._min_radius

    def set_min_radius(self, radius: float, stacklevel: int = 2) -> None:
        """
        Set the full-detail radius as a percentage of the largest radius
        that fits inside the map.

        Args:
            radius: Requested radius; clamped to [1, 100].
            stacklevel: Frame a clamping warning is attributed to, as in
                warnings.warn. Wrappers add one per frame they introduce.
        """
        value = self._clamped("minimum radius", float(radius), MIN_RADIUS_RANGE, stacklevel)
        with self.lock:
            if value != self._min_radius:
                self._min_radius = value
                self._dirty = True
                logger.debug(f"min_radius set to {value}")

    def get_strength(self) -> float:
        return self._strength

    def set_strength(self, strength: float, stacklevel: int = 2) -> None:
        """Set how quickly density ramps up outside the minimum radius."""
        value = self._clamped("strength", float(strength), STRENGTH_RANGE, stacklevel)
        with self.lock:
            if value != self._strength:
                self._strength = value
                self._dirty = True
                logger.debug(f"strength set to {value}")

    def get_render_region(self) -> RenderRegion:
        return self._render_region

    def set_render_region(self, region: Union[RenderRegion, Sequence[int], None]) -> None:
        """
        Set the rendered sub-rectangle. Always marks the config dirty, even
        when the region is unchanged.
        """
        region = RenderRegion.coerce(region)
        with self.lock:
            self._render_region = region
            self._dirty = True
            logger.debug(f"render_region set to {region}")

    min_radius = property(get_min_radius)
    strength = property(get_strength)
    render_region = property(get_render_region)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        with self.lock:
            self._dirty = True

    def clear_dirty(self) -> None:
        with self.lock:
            self._dirty = False

    def snapshot(self) -> FoveationParams:
        """Return the current parameters as an immutable value."""
        with self.lock:
            return FoveationParams(
                min_radius=self._min_radius,
                strength=self._strength,
                render_region=self._render_region,
            )


def create_default_config() -> VRSConfig:
    """Factory function to create a default VRS configuration."""
    return VRSConfig()


def create_config_for_region(region: Union[RenderRegion, Sequence[int], None],
                             min_radius: float = DEFAULT_MIN_RADIUS,
                             strength: float = DEFAULT_STRENGTH) -> VRSConfig:
    """
    Factory function for a configuration that only renders part of the target.

    Args:
        region: Rendered sub-rectangle as RenderRegion or (x, y, w, h).
        min_radius: Full-detail radius percentage.
        strength: Density ramp strength.

    Returns:
        VRSConfig with clamped values.
    """
    return VRSConfig(min_radius=min_radius, strength=strength, render_region=region)
