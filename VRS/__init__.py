"""
Foveated VRS Package

Generates per-eye density maps for variable-rate shading and caches the
resulting texture until the gaze focus, target size or parameters change.
"""

from .config import RenderRegion, VRSConfig
from .density_map import GenerationRequest, generate_density_maps
from .backend import InMemoryBackend, RenderingBackend, TextureFormat, TextureHandle
from .texture_cache import VRSTextureCache
from .errors import InvalidArgument, UnsupportedBackend, VRSConfigWarning, VRSError

__all__ = [
    'RenderRegion',
    'VRSConfig',
    'GenerationRequest',
    'generate_density_maps',
    'InMemoryBackend',
    'RenderingBackend',
    'TextureFormat',
    'TextureHandle',
    'VRSTextureCache',
    'InvalidArgument',
    'UnsupportedBackend',
    'VRSConfigWarning',
    'VRSError',
]

__version__ = '1.0.0'
