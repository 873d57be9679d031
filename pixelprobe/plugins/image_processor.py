# image_processor.py
# Per-pixel color transforms, two-image arithmetic/boolean ops and index-remapping geometry.

import numpy as np

from pixelprobe.buffer import PixelBuffer, clamp_channel, luminance
from pixelprobe.constants import DEFAULT_BINARY_THRESHOLD
from pixelprobe.errors import SizeMismatchError

ARITHMETIC_OPS = ("add", "subtract", "multiply")
BOOLEAN_OPS = ("and", "or", "xor")


def _require_same_length(first: PixelBuffer, second: PixelBuffer):
    if first.data.size != second.data.size:
        raise SizeMismatchError(first.shape, second.shape)


def _with_rgb(buffer: PixelBuffer, rgb: np.ndarray, alpha=None) -> PixelBuffer:
    out = buffer.copy_pixels()
    out[:, :, :3] = rgb
    if alpha is not None:
        out[:, :, 3] = alpha
    return PixelBuffer.from_pixels(out)


def _check_op(op, allowed):
    if op not in allowed:
        raise ValueError(f"unknown operation {op!r}; expected one of {', '.join(allowed)}")


# ---------------- COLOR ----------------

def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    gray = buffer.gray()
    return _with_rgb(buffer, gray[:, :, None])


def to_binary(buffer: PixelBuffer, threshold: int = DEFAULT_BINARY_THRESHOLD) -> PixelBuffer:
    """R=G=B=255 where luminance >= threshold, else 0. Alpha is kept as is."""
    binary = np.where(buffer.gray() >= threshold, 255, 0).astype(np.uint8)
    return _with_rgb(buffer, binary[:, :, None])


def adjust_brightness(buffer: PixelBuffer, delta) -> PixelBuffer:
    rgb = buffer.pixels[:, :, :3].astype(np.float64)
    return _with_rgb(buffer, clamp_channel(rgb + delta))


def arithmetic_constant(buffer: PixelBuffer, op: str, constant) -> PixelBuffer:
    """
    add / subtract / multiply every R, G, B value by a constant, clamped.
    Multiplication is not normalized (unlike arithmetic_image).
    """
    _check_op(op, ARITHMETIC_OPS)
    rgb = buffer.pixels[:, :, :3].astype(np.float64)
    if op == "add":
        result = rgb + constant
    elif op == "subtract":
        result = rgb - constant
    else:
        result = rgb * constant
    return _with_rgb(buffer, clamp_channel(result))


def arithmetic_image(first: PixelBuffer, op: str, second: PixelBuffer) -> PixelBuffer:
    """
    Channel-wise add / subtract / multiply of two same-size images.
    Multiplication is normalized: a * b / 255. Alpha is forced to 255.
    """
    _check_op(op, ARITHMETIC_OPS)
    _require_same_length(first, second)
    a = first.data.reshape(-1, 4)[:, :3].astype(np.float64)
    b = second.data.reshape(-1, 4)[:, :3].astype(np.float64)
    if op == "add":
        result = a + b
    elif op == "subtract":
        result = a - b
    else:
        result = a * b / 255
    rgb = clamp_channel(result).reshape(first.height, first.width, 3)
    return _with_rgb(first, rgb, alpha=255)


def boolean_operation(first: PixelBuffer, op: str, second: PixelBuffer) -> PixelBuffer:
    """Bitwise and / or / xor of R, G, B; alpha forced to 255."""
    _check_op(op, BOOLEAN_OPS)
    _require_same_length(first, second)
    a = first.data.reshape(-1, 4)[:, :3]
    b = second.data.reshape(-1, 4)[:, :3]
    if op == "and":
        result = a & b
    elif op == "or":
        result = a | b
    else:
        result = a ^ b
    return _with_rgb(first, result.reshape(first.height, first.width, 3), alpha=255)


# ---------------- GEOMETRY ----------------
# Pure index permutations on the (H, W, 4) view; alpha travels with its pixel.

def rotate90(buffer: PixelBuffer) -> PixelBuffer:
    """Clockwise: dest(height-1-y, x) = src(x, y)."""
    return PixelBuffer.from_pixels(np.rot90(buffer.pixels, k=-1))


def rotate180(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_pixels(buffer.pixels[::-1, ::-1])


def rotate270(buffer: PixelBuffer) -> PixelBuffer:
    """dest(y, width-1-x) = src(x, y)."""
    return PixelBuffer.from_pixels(np.rot90(buffer.pixels, k=1))


def flip_horizontal(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_pixels(buffer.pixels[:, ::-1])


def flip_vertical(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_pixels(buffer.pixels[::-1, :])


__all__ = [
    "luminance",
    "to_grayscale",
    "to_binary",
    "adjust_brightness",
    "arithmetic_constant",
    "arithmetic_image",
    "boolean_operation",
    "rotate90",
    "rotate180",
    "rotate270",
    "flip_horizontal",
    "flip_vertical",
]
