"""
Cache for the VRS density texture.

Keeps the last uploaded density texture and only rebuilds it when the
render target, the eye foci or the configuration changed.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple, Union

from .backend import RenderingBackend, TextureFormat, TextureHandle
from .config import RenderRegion, VRSConfig, create_default_config
from .density_map import (
    GenerationRequest,
    compute_map_size,
    generate_density_maps,
    validate_texel_size,
)
from .utils import Timer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedState:
    """What the currently held texture was generated from."""
    last_target_size: Optional[Tuple[int, int]] = None
    last_eye_foci: Tuple[Tuple[float, float], ...] = ()
    last_map_size: Optional[Tuple[int, int]] = None
    texture_handle: Optional[TextureHandle] = None


class VRSTextureCache:
    """
    Owns the density texture and the configuration it was built from.

    The texture handle is released exactly once, either when it is replaced
    by a regenerated one or when the cache is released.
    """

    def __init__(self, backend: RenderingBackend, config: Optional[VRSConfig] = None):
        """
        Args:
            backend: Rendering service that creates and frees textures.
            config: Foveation parameters; a default config is created if None.
        """
        self.backend = backend
        self.config = config or create_default_config()
        self._state = CachedState()
        self.regenerations = 0

    def __enter__(self) -> 'VRSTextureCache':
        return self

    def __exit__(self, *args) -> None:
        self.release()

    # Parameter store passthrough

    def get_min_radius(self) -> float:
        return self.config.get_min_radius()

    def set_min_radius(self, radius: float) -> None:
        self.config.set_min_radius(radius, stacklevel=3)

    def get_strength(self) -> float:
        return self.config.get_strength()

    def set_strength(self, strength: float) -> None:
        self.config.set_strength(strength, stacklevel=3)

    def get_render_region(self) -> RenderRegion:
        return self.config.get_render_region()

    def set_render_region(self, region: Union[RenderRegion, Sequence[int], None]) -> None:
        self.config.set_render_region(region)

    @property
    def state(self) -> CachedState:
        return self._state

    @property
    def texture(self) -> Optional[TextureHandle]:
        return self._state.texture_handle

    @property
    def is_valid(self) -> bool:
        """True when a held texture matches the last request and config."""
        return self._state.texture_handle is not None and not self.config.dirty

    def invalidate(self) -> None:
        """Force a rebuild on the next generate call."""
        self.config.mark_dirty()

    def _needs_regeneration(self, request: GenerationRequest, map_size: Tuple[int, int]) -> bool:
        state = self._state
        return (
            state.texture_handle is None
            or self.config.dirty
            or request.target_size != state.last_target_size
            or request.eye_foci != state.last_eye_foci
            or map_size != state.last_map_size
        )

    def _free_texture(self) -> None:
        handle = self._state.texture_handle
        if handle is None:
            return
        # Forget the handle before the backend sees it.
        self._state = replace(self._state, texture_handle=None)
        self.backend.free_texture(handle)
        logger.info(f"Released VRS texture {handle.id}")

    def generate(self, target_size: Sequence[int], eye_foci: Sequence[Sequence[float]]) -> TextureHandle:
        """
        Return a density texture for the given target size and eye foci.

        Reuses the held texture when nothing changed since it was built.

        Args:
            target_size: Render target (width, height) in pixels.
            eye_foci: One (x, y) focus point in normalized device
                coordinates per view.

        Returns:
            Handle of a 2D texture for one view or of a 2D array texture
            with one layer per view.

        Raises:
            InvalidArgument: If eye_foci is empty or an input is malformed.
            UnsupportedBackend: If the backend has no usable texel size.
        """
        request = GenerationRequest.create(target_size, eye_foci)

        with self.config.lock:
            texel_size = validate_texel_size(self.backend.query_texel_granularity())
            map_size = compute_map_size(request.target_size, texel_size)

            if not self._needs_regeneration(request, map_size):
                logger.debug("VRS texture reused")
                return self._state.texture_handle

            self._free_texture()

            with Timer("VRS density map generation") as timer:
                maps = generate_density_maps(self.config.snapshot(), request, texel_size)

            width, height = maps.map_size
            if maps.layers == 1:
                handle = self.backend.create_texture(maps.buffers[0], width, height, TextureFormat.RG8)
            else:
                handle = self.backend.create_layered_texture(maps.buffers, width, height, TextureFormat.RG8)

            self._state = CachedState(
                last_target_size=request.target_size,
                last_eye_foci=request.eye_foci,
                last_map_size=maps.map_size,
                texture_handle=handle,
            )
            self.config.clear_dirty()
            self.regenerations += 1

        logger.info(
            f"Created VRS texture {handle.id}: {width}x{height}, {maps.layers} layer(s) "
            f"in {timer.elapsed * 1000:.2f}ms"
        )
        return handle

    def release(self) -> None:
        """Free the held texture, if any. Safe to call repeatedly."""
        with self.config.lock:
            self._free_texture()

    close = release
