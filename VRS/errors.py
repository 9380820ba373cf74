"""
Exception and warning types for the VRS density map package.
"""

from typing import Optional, Tuple


class VRSError(Exception):
    """Base class for all VRS errors."""


class InvalidArgument(VRSError, ValueError):
    """A caller passed input that violates the generation contract."""


class UnsupportedBackend(VRSError, RuntimeError):
    """The rendering backend does not report a usable shading-rate texel size."""

    def __init__(self, message: str, texel_size: Optional[Tuple[int, int]] = None):
        super().__init__(message)
        self.texel_size = texel_size


class TextureError(VRSError, RuntimeError):
    """A texture handle was used in a way the backend cannot honour."""


class VRSConfigWarning(UserWarning):
    """A configuration value was out of range and has been clamped."""
