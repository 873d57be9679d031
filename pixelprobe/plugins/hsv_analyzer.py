# hsv_analyzer.py
# RGB <-> HSV conversion and HSV-window green (vegetation) detection.
#
# Hue is in degrees [0, 360); saturation and value are percentages [0, 100].

import math
from dataclasses import dataclass

import numpy as np

from pixelprobe.buffer import PixelBuffer, round_half_up
from pixelprobe.constants import (
    DEFAULT_HUE_MAX,
    DEFAULT_HUE_MIN,
    DEFAULT_SATURATION_MIN,
    DEFAULT_VALUE_MIN,
)


@dataclass
class GreenDetectionOptions:
    hue_min: float = DEFAULT_HUE_MIN
    hue_max: float = DEFAULT_HUE_MAX
    saturation_min: float = DEFAULT_SATURATION_MIN
    value_min: float = DEFAULT_VALUE_MIN
    color_output: bool = False  # keep original colour for green pixels instead of white


@dataclass
class GreenStatistics:
    total_pixels: int
    green_pixels: int
    green_percentage: float
    avg_hue: float
    avg_saturation: float
    avg_value: float

    def to_dict(self):
        return {
            "total_pixels": self.total_pixels,
            "green_pixels": self.green_pixels,
            "green_percentage": round(self.green_percentage, 2),
            "avg_hue": round(self.avg_hue, 2),
            "avg_saturation": round(self.avg_saturation, 2),
            "avg_value": round(self.avg_value, 2),
        }


# ---------------- CONVERSION ----------------

def rgb_to_hsv(r, g, b):
    r, g, b = r / 255, g / 255, b / 255
    mx = max(r, g, b)
    mn = min(r, g, b)
    delta = mx - mn

    h = 0.0
    s = 0.0
    v = mx * 100

    if mx != 0:
        s = (delta / mx) * 100

    if delta != 0:
        if mx == r:
            h = 60 * math.fmod((g - b) / delta, 6)
        elif mx == g:
            h = 60 * ((b - r) / delta + 2)
        else:
            h = 60 * ((r - g) / delta + 4)

    if h < 0:
        h += 360

    return h, s, v


def hsv_to_rgb(h, s, v):
    s = s / 100
    v = v / 100

    c = v * s
    x = c * (1 - abs(math.fmod(h / 60, 2) - 1))
    m = v - c

    if h < 60:
        r, g, b = c, x, 0
    elif h < 120:
        r, g, b = x, c, 0
    elif h < 180:
        r, g, b = 0, c, x
    elif h < 240:
        r, g, b = 0, x, c
    elif h < 300:
        r, g, b = x, 0, c
    else:
        r, g, b = c, 0, x

    return (
        int(round_half_up((r + m) * 255)),
        int(round_half_up((g + m) * 255)),
        int(round_half_up((b + m) * 255)),
    )


def rgb_to_hsv_arrays(r, g, b):
    """Vectorized rgb_to_hsv; same branch order and arithmetic as the scalar form."""
    r = np.asarray(r, dtype=np.float64) / 255
    g = np.asarray(g, dtype=np.float64) / 255
    b = np.asarray(b, dtype=np.float64) / 255

    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    delta = mx - mn

    safe_mx = np.where(mx != 0, mx, 1.0)
    safe_delta = np.where(delta != 0, delta, 1.0)

    v = mx * 100
    s = np.where(mx != 0, (delta / safe_mx) * 100, 0.0)

    h_r = 60 * np.fmod((g - b) / safe_delta, 6)
    h_g = 60 * ((b - r) / safe_delta + 2)
    h_b = 60 * ((r - g) / safe_delta + 4)
    h = np.where(mx == r, h_r, np.where(mx == g, h_g, h_b))
    h = np.where(delta != 0, h, 0.0)
    h = np.where(h < 0, h + 360, h)

    return h, s, v


def hsv_to_rgb_arrays(h, s, v):
    """Vectorized hsv_to_rgb; returns an (..., 3) uint8 array."""
    h = np.asarray(h, dtype=np.float64)
    s = np.asarray(s, dtype=np.float64) / 100
    v = np.asarray(v, dtype=np.float64) / 100

    c = v * s
    x = c * (1 - np.abs(np.fmod(h / 60, 2) - 1))
    m = v - c
    zero = np.zeros_like(c)

    sectors = [h < 60, h < 120, h < 180, h < 240, h < 300]
    r = np.select(sectors, [c, x, zero, zero, x], default=c)
    g = np.select(sectors, [x, c, c, x, zero], default=zero)
    b = np.select(sectors, [zero, zero, x, c, c], default=x)

    rgb = np.stack([r, g, b], axis=-1) + m[..., None]
    return np.clip(round_half_up(rgb * 255), 0, 255).astype(np.uint8)


# ---------------- GREEN DETECTION ----------------

def _green_mask(buffer: PixelBuffer, options: GreenDetectionOptions):
    px = buffer.pixels
    h, s, v = rgb_to_hsv_arrays(px[:, :, 0], px[:, :, 1], px[:, :, 2])
    mask = (
        (h >= options.hue_min)
        & (h <= options.hue_max)
        & (s >= options.saturation_min)
        & (v >= options.value_min)
    )
    return mask, h, s, v


def detect_green(buffer: PixelBuffer, options: GreenDetectionOptions = None) -> PixelBuffer:
    """
    Green pixels become white (or keep their colour and alpha with
    color_output); everything else becomes opaque black.
    """
    options = options or GreenDetectionOptions()
    mask, _, _, _ = _green_mask(buffer, options)

    out = np.zeros((buffer.height, buffer.width, 4), dtype=np.uint8)
    out[:, :, 3] = 255
    if options.color_output:
        out[mask] = buffer.pixels[mask]
    else:
        out[mask] = 255
    return PixelBuffer.from_pixels(out)


def analyze_green_statistics(buffer: PixelBuffer, options: GreenDetectionOptions = None) -> GreenStatistics:
    options = options or GreenDetectionOptions()
    mask, h, s, v = _green_mask(buffer, options)

    total = buffer.pixel_count
    count = int(mask.sum())
    if count:
        avg_h, avg_s, avg_v = (float(arr[mask].mean()) for arr in (h, s, v))
    else:
        avg_h = avg_s = avg_v = 0.0

    return GreenStatistics(
        total_pixels=total,
        green_pixels=count,
        green_percentage=count / total * 100,
        avg_hue=avg_h,
        avg_saturation=avg_s,
        avg_value=avg_v,
    )


def green_distribution(statistics: GreenStatistics):
    """(green %, non-green %) for a two-slice breakdown."""
    green = round(statistics.green_percentage, 2)
    return green, 100 - green


def hsv_wheel(width: int, height: int) -> PixelBuffer:
    """
    Hue by angle around the centre, saturation by distance, full value.
    Pixels outside the wheel (radius = min(width, height) / 2 - 10) are white.
    """
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    dx = xs - width / 2
    dy = ys - height / 2
    distance = np.sqrt(dx * dx + dy * dy)
    radius = min(width, height) / 2 - 10

    hue = np.fmod(np.arctan2(dy, dx) * 180 / math.pi + 180, 360)
    saturation = distance / radius * 100 if radius > 0 else np.zeros_like(distance)

    out = np.full((height, width, 4), 255, dtype=np.uint8)
    inside = distance <= radius
    out[inside, :3] = hsv_to_rgb_arrays(hue[inside], saturation[inside], 100.0)
    return PixelBuffer.from_pixels(out)


class HsvGreenDetectionPlugin:
    name = "hsv_green_detection"

    def __init__(self, options: GreenDetectionOptions = None):
        self.options = options or GreenDetectionOptions()

    def can_handle(self, buffer):
        return isinstance(buffer, PixelBuffer)

    def analyze(self, buffer: PixelBuffer):
        stats = analyze_green_statistics(buffer, self.options).to_dict()
        stats["window"] = {
            "hue": [self.options.hue_min, self.options.hue_max],
            "saturation_min": self.options.saturation_min,
            "value_min": self.options.value_min,
        }
        return stats
