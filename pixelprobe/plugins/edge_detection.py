# edge_detection.py
# Convolution-based edge detection (Sobel, Prewitt, Roberts, Laplacian) on the
# luminance plane. Border pixels the kernel cannot fully cover are never evaluated.

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from pixelprobe.buffer import PixelBuffer
from pixelprobe.constants import DEFAULT_EDGE_KERNEL, DEFAULT_EDGE_THRESHOLD
from pixelprobe.errors import UnrecognizedKernelError

logger = logging.getLogger(__name__)

SOBEL_X = ((-1, 0, 1),
           (-2, 0, 2),
           (-1, 0, 1))
SOBEL_Y = ((-1, -2, -1),
           (0, 0, 0),
           (1, 2, 1))

PREWITT_X = ((-1, 0, 1),
             (-1, 0, 1),
             (-1, 0, 1))
PREWITT_Y = ((-1, -1, -1),
             (0, 0, 0),
             (1, 1, 1))

ROBERTS_X = ((1, 0),
             (0, -1))
ROBERTS_Y = ((0, 1),
             (-1, 0))

LAPLACIAN = ((0, -1, 0),
             (-1, 4, -1),
             (0, -1, 0))

KERNELS = {
    "sobel": (SOBEL_X, SOBEL_Y),
    "prewitt": (PREWITT_X, PREWITT_Y),
    "roberts": (ROBERTS_X, ROBERTS_Y),
    "laplacian": (LAPLACIAN, None),
}


@dataclass(frozen=True)
class KernelPair:
    name: str
    kernel_x: tuple
    kernel_y: Optional[tuple]  # None for the single-kernel Laplacian


@dataclass
class ConvolutionStep:
    x: int
    y: int
    input_matrix: list
    kernel: tuple
    result: int


@dataclass
class ConvolutionResult:
    buffer: PixelBuffer
    steps: Optional[List[ConvolutionStep]] = None


@dataclass
class EdgeDetectionResult:
    buffer: PixelBuffer
    kernel_name: str
    kernel_x: tuple
    kernel_y: Optional[tuple]
    threshold: float
    steps: Optional[List[ConvolutionStep]] = None

    @property
    def edge_pixels(self) -> int:
        return int(np.count_nonzero(self.buffer.channel(0)))


def get_kernel(name: str = DEFAULT_EDGE_KERNEL, strict: bool = False) -> KernelPair:
    """
    Look up a kernel pair by name (case-insensitive). Unknown names fall back
    to Sobel unless strict is set.
    """
    key = (name or "").lower()
    if key not in KERNELS:
        if strict:
            raise UnrecognizedKernelError(name, tuple(KERNELS))
        logger.warning("unknown kernel %r, falling back to sobel", name)
        key = "sobel"
    kernel_x, kernel_y = KERNELS[key]
    return KernelPair(key, kernel_x, kernel_y)


def kernel_cell_signs(kernel):
    """'positive' / 'negative' / 'zero' for every cell, for display."""
    return [
        ["positive" if v > 0 else "negative" if v < 0 else "zero" for v in row]
        for row in kernel
    ]


def _convolve(gray: np.ndarray, kernel, capture: bool = False):
    """
    Clamped convolution sums on the interior of a (H, W) plane.

    Returns a (H, W) uint8 array that is 0 outside the interior, and the
    captured steps when requested.
    """
    k = np.asarray(kernel, dtype=np.int64)
    size = k.shape[0]
    offset = size // 2
    height, width = gray.shape
    rows = height - 2 * offset
    cols = width - 2 * offset

    out = np.zeros((height, width), dtype=np.uint8)
    steps = [] if capture else None
    if rows <= 0 or cols <= 0:
        return out, steps

    src = gray.astype(np.int64)
    sums = np.zeros((rows, cols), dtype=np.int64)
    for ky in range(size):
        for kx in range(size):
            if k[ky, kx]:
                sums += k[ky, kx] * src[ky:ky + rows, kx:kx + cols]

    out[offset:offset + rows, offset:offset + cols] = np.clip(sums, 0, 255)

    if capture:
        for j in range(rows):
            for i in range(cols):
                steps.append(ConvolutionStep(
                    x=i + offset,
                    y=j + offset,
                    input_matrix=src[j:j + size, i:i + size].tolist(),
                    kernel=kernel,
                    result=int(sums[j, i]),
                ))
    return out, steps


def _interior_mask(height, width, kernel):
    offset = len(kernel) // 2
    mask = np.zeros((height, width), dtype=bool)
    mask[offset:height - offset, offset:width - offset] = True
    return mask


def apply_convolution(buffer: PixelBuffer, kernel, capture: bool = False) -> ConvolutionResult:
    """
    Convolve the luminance plane with kernel. Interior pixels get the clamped
    sum in R, G, B and alpha 255; border pixels stay all zero.
    """
    values, steps = _convolve(buffer.gray(), kernel, capture)
    out = np.zeros((buffer.height, buffer.width, 4), dtype=np.uint8)
    out[:, :, :3] = values[:, :, None]
    out[:, :, 3] = np.where(_interior_mask(buffer.height, buffer.width, kernel), 255, 0)
    return ConvolutionResult(PixelBuffer.from_pixels(out), steps)


def detect_edges(
    buffer: PixelBuffer,
    kernel_name: str = DEFAULT_EDGE_KERNEL,
    threshold: float = DEFAULT_EDGE_THRESHOLD,
    capture: bool = False,
    strict: bool = False,
) -> EdgeDetectionResult:
    """
    Binary edge map: white where the response exceeds threshold.

    Laplacian compares |response| with threshold; directional pairs compare
    sqrt(gx^2 + gy^2). Both operate on the clamped (0..255) responses.
    Only the X pass is captured for directional pairs.
    """
    kernels = get_kernel(kernel_name, strict=strict)
    gray = buffer.gray()

    gx, steps = _convolve(gray, kernels.kernel_x, capture)
    if kernels.kernel_y is None:
        strength = np.abs(gx.astype(np.float64))
    else:
        gy, _ = _convolve(gray, kernels.kernel_y)
        gx = gx.astype(np.float64)
        gy = gy.astype(np.float64)
        strength = np.sqrt(gx * gx + gy * gy)

    binary = np.where(strength > threshold, 255, 0).astype(np.uint8)
    out = np.empty((buffer.height, buffer.width, 4), dtype=np.uint8)
    out[:, :, :3] = binary[:, :, None]
    out[:, :, 3] = 255

    return EdgeDetectionResult(
        buffer=PixelBuffer.from_pixels(out),
        kernel_name=kernels.name,
        kernel_x=kernels.kernel_x,
        kernel_y=kernels.kernel_y,
        threshold=threshold,
        steps=steps,
    )


class EdgeDetectionPlugin:
    name = "edge_detection"

    def __init__(self, threshold=DEFAULT_EDGE_THRESHOLD):
        self.threshold = threshold

    def can_handle(self, buffer):
        return isinstance(buffer, PixelBuffer)

    def analyze(self, buffer: PixelBuffer):
        total = buffer.pixel_count
        ratios = {}
        for name in KERNELS:
            result = detect_edges(buffer, name, self.threshold)
            ratios[name] = round(result.edge_pixels / total, 4)
        return {
            "threshold": self.threshold,
            "edge_ratio": ratios,
            "notes": "Fraction of pixels marked as edges by each operator.",
        }
