# buffer.py
# RGBA pixel buffer shared by every plugin, plus the rounding rules they agree on.

from PIL import Image
import numpy as np


def round_half_up(values):
    """
    Round to the nearest integer with ties going up (2.5 -> 3, -2.5 -> -2).
    np.round rounds ties to even, which would shift luminance and clamp results.
    """
    values = np.asarray(values, dtype=np.float64)
    floored = np.floor(values)
    return floored + (values - floored >= 0.5)


def clamp_channel(values):
    """Round half-up, clip to [0, 255] and return uint8."""
    return np.clip(round_half_up(values), 0, 255).astype(np.uint8)


def luminance(r, g, b):
    """
    round(0.299*r + 0.587*g + 0.114*b).

    Accepts scalars or arrays; scalars give back a plain int.
    """
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    gray = round_half_up(0.299 * r + 0.587 * g + 0.114 * b)
    if gray.ndim == 0:
        return int(gray)
    return gray.astype(np.uint8)


class PixelBuffer:
    """
    Width, height and a flat, read-only RGBA byte array (row-major).

    Every transform returns a new PixelBuffer; the array held here is a
    private copy and is marked non-writeable.
    """

    __slots__ = ("width", "height", "data")

    def __init__(self, width: int, height: int, data):
        width = int(width)
        height = int(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"dimensions must be positive, got {width}x{height}")

        if isinstance(data, (bytes, bytearray, memoryview)):
            arr = np.frombuffer(data, dtype=np.uint8).copy()
        else:
            arr = np.array(data).ravel()
            if arr.dtype != np.uint8:
                if arr.size and (arr.min() < 0 or arr.max() > 255):
                    raise ValueError("pixel values must be within 0..255")
                if arr.dtype.kind == "f" and not np.array_equal(arr, np.floor(arr)):
                    raise ValueError("pixel values must be whole numbers; use clamp_channel to round")
                arr = arr.astype(np.uint8)

        expected = width * height * 4
        if arr.size != expected:
            raise ValueError(
                f"data length {arr.size} does not match {width}x{height}x4 = {expected}"
            )

        arr.setflags(write=False)
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "data", arr)

    def __setattr__(self, name, value):
        raise AttributeError("PixelBuffer is immutable")

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.data, other.data)
        )

    __hash__ = None

    def __repr__(self):
        return f"PixelBuffer(width={self.width}, height={self.height})"

    # ---------------- CONSTRUCTORS ----------------

    @classmethod
    def from_pixels(cls, pixels: np.ndarray) -> "PixelBuffer":
        """Build from an (H, W, 4) array."""
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"expected an (H, W, 4) array, got shape {pixels.shape}")
        h, w, _ = pixels.shape
        return cls(w, h, pixels)

    @classmethod
    def filled(cls, width: int, height: int, rgba=(0, 0, 0, 0)) -> "PixelBuffer":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = np.asarray(rgba, dtype=np.uint8)
        return cls(width, height, pixels)

    @classmethod
    def from_image(cls, im: Image.Image) -> "PixelBuffer":
        """Rasterize a Pillow image to RGBA."""
        arr = np.array(im.convert("RGBA"), dtype=np.uint8)
        return cls.from_pixels(arr)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels), "RGBA")

    # ---------------- VIEWS ----------------

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (H, W, 4) view of the data."""
        return self.data.reshape(self.height, self.width, 4)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def shape(self):
        return (self.width, self.height)

    def channel(self, index: int) -> np.ndarray:
        """Flat view of one channel (0=R, 1=G, 2=B, 3=A)."""
        return self.data[index::4]

    def rgb_bytes(self) -> np.ndarray:
        """R, G, B bytes in raster order with alpha skipped (copy)."""
        return self.data.reshape(-1, 4)[:, :3].ravel()

    def gray(self) -> np.ndarray:
        """(H, W) uint8 luminance plane."""
        px = self.pixels
        return luminance(px[:, :, 0], px[:, :, 1], px[:, :, 2])

    def pixel(self, x: int, y: int):
        i = 4 * (y * self.width + x)
        return tuple(int(v) for v in self.data[i:i + 4])

    def copy_pixels(self) -> np.ndarray:
        """Writeable (H, W, 4) copy for building a derived buffer."""
        return self.pixels.copy()
