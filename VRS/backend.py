"""
Rendering backend contract used by the texture cache.

The cache never talks to a GPU directly. It queries the shading-rate tile
size and creates or frees textures through an object implementing
RenderingBackend. InMemoryBackend keeps the uploaded buffers on the host,
which is what the preview application and the tests use.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Protocol, Sequence, Tuple

import numpy as np

from .errors import TextureError

logger = logging.getLogger(__name__)


class TextureFormat(Enum):
    """Pixel formats a density texture can be uploaded in."""
    RG8 = auto()    # Two unsigned 8-bit channels


@dataclass(frozen=True)
class TextureHandle:
    """
    Opaque reference to a texture owned by a rendering backend.

    Attributes:
        id: Backend-assigned identifier.
        size: Texture (width, height) in texels.
        layers: Number of array layers; 1 for a plain 2D texture.
    """
    id: int
    size: Tuple[int, int]
    layers: int = 1

    @property
    def layered(self) -> bool:
        return self.layers > 1


class RenderingBackend(Protocol):
    """Services the texture cache needs from the renderer."""

    def query_texel_granularity(self) -> Tuple[int, int]:
        """Return the shading-rate tile size in pixels."""

    def create_texture(self, buffer: np.ndarray, width: int, height: int,
                       fmt: TextureFormat = TextureFormat.RG8) -> TextureHandle:
        """Upload a single 2D texture."""

    def create_layered_texture(self, buffers: Sequence[np.ndarray], width: int, height: int,
                               fmt: TextureFormat = TextureFormat.RG8) -> TextureHandle:
        """Upload a 2D array texture with one layer per buffer."""

    def free_texture(self, handle: TextureHandle) -> None:
        """Release a texture created by this backend."""


@dataclass
class BackendStats:
    """Call counters of an InMemoryBackend."""
    textures_created: int = 0
    layered_textures_created: int = 0
    textures_freed: int = 0

    @property
    def total_created(self) -> int:
        return self.textures_created + self.layered_textures_created


class InMemoryBackend:
    """
    Host-side rendering backend.

    Stores every live texture as a uint8 array of shape
    (layers, height, width, channels) and rejects double frees.
    """

    CHANNELS = {TextureFormat.RG8: 2}

    def __init__(self, texel_size: Tuple[int, int] = (8, 8)):
        """
        Args:
            texel_size: Tile size reported by query_texel_granularity.
        """
        self.texel_size = tuple(texel_size)
        self.stats = BackendStats()
        self._textures: Dict[int, np.ndarray] = {}
        self._ids = itertools.count(1)

    def query_texel_granularity(self) -> Tuple[int, int]:
        return self.texel_size

    def _check_buffer(self, buffer: np.ndarray, width: int, height: int, fmt: TextureFormat) -> np.ndarray:
        channels = self.CHANNELS[fmt]
        array = np.asarray(buffer, dtype=np.uint8)
        if array.size != width * height * channels:
            raise TextureError(
                f"Buffer of {array.size} bytes does not match {width}x{height} {fmt.name}"
            )
        return array.reshape(height, width, channels)

    def create_texture(self, buffer: np.ndarray, width: int, height: int,
                       fmt: TextureFormat = TextureFormat.RG8) -> TextureHandle:
        data = self._check_buffer(buffer, width, height, fmt)
        handle = TextureHandle(id=next(self._ids), size=(width, height), layers=1)
        self._textures[handle.id] = data[np.newaxis].copy()
        self.stats.textures_created += 1
        logger.debug(f"Created texture {handle.id} ({width}x{height})")
        return handle

    def create_layered_texture(self, buffers: Sequence[np.ndarray], width: int, height: int,
                               fmt: TextureFormat = TextureFormat.RG8) -> TextureHandle:
        if not buffers:
            raise TextureError("A layered texture needs at least one layer")
        layers = [self._check_buffer(b, width, height, fmt) for b in buffers]
        handle = TextureHandle(id=next(self._ids), size=(width, height), layers=len(layers))
        self._textures[handle.id] = np.stack(layers)
        self.stats.layered_textures_created += 1
        logger.debug(f"Created layered texture {handle.id} ({width}x{height}x{len(layers)})")
        return handle

    def free_texture(self, handle: TextureHandle) -> None:
        if handle.id not in self._textures:
            raise TextureError(f"Texture {handle.id} is not alive")
        del self._textures[handle.id]
        self.stats.textures_freed += 1
        logger.debug(f"Freed texture {handle.id}")

    def is_alive(self, handle: TextureHandle) -> bool:
        return handle.id in self._textures

    def texture_data(self, handle: TextureHandle) -> np.ndarray:
        """
        Return the stored layers of a live texture.

        Raises:
            TextureError: If the handle was freed or never created here.
        """
        try:
            return self._textures[handle.id]
        except KeyError:
            raise TextureError(f"Texture {handle.id} is not alive") from None

    def live_textures(self) -> List[int]:
        return sorted(self._textures)
