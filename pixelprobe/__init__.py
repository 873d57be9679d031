"""Pixel-level image analysis toolkit operating on RGBA pixel buffers."""

from pixelprobe.buffer import PixelBuffer, luminance
from pixelprobe.errors import (
    CapacityExceededError,
    ErrorKind,
    NoHiddenMessageError,
    PixelProbeError,
    SizeMismatchError,
    UnencodableTextError,
    UnrecognizedKernelError,
)

__version__ = "1.0.0"

__all__ = [
    "PixelBuffer",
    "luminance",
    "ErrorKind",
    "PixelProbeError",
    "SizeMismatchError",
    "CapacityExceededError",
    "NoHiddenMessageError",
    "UnrecognizedKernelError",
    "UnencodableTextError",
]
