# histogram_analyzer.py
# Intensity histograms, two-peak automatic threshold and histogram equalization.

import math
from dataclasses import dataclass

import numpy as np

from pixelprobe.buffer import PixelBuffer, round_half_up
from pixelprobe.constants import HISTOGRAM_BINS, SMOOTHING_WINDOW
from pixelprobe.plugins.image_processor import to_binary


@dataclass
class Peak:
    intensity: int
    value: float


@dataclass
class TwoPeakThreshold:
    peak1: Peak
    peak2: Peak
    threshold: int


def rgb_histogram(buffer: PixelBuffer):
    """Return (hist_r, hist_g, hist_b), 256 bins each."""
    return tuple(
        np.bincount(buffer.channel(c), minlength=HISTOGRAM_BINS) for c in range(3)
    )


def grayscale_histogram(buffer: PixelBuffer) -> np.ndarray:
    return np.bincount(buffer.gray().ravel(), minlength=HISTOGRAM_BINS)


def histogram_stats(histogram):
    """Mean and population standard deviation of intensity, weighted by bin count."""
    hist = np.asarray(histogram, dtype=np.float64)
    levels = np.arange(hist.size)
    count = hist.sum()
    if count == 0:
        return 0.0, 0.0
    m = float(np.sum(levels * hist) / count)
    variance = float(np.sum(hist * (levels - m) ** 2) / count)
    return m, math.sqrt(variance)


def smooth_histogram(histogram, window_size: int = SMOOTHING_WINDOW) -> np.ndarray:
    """Moving average; windows are truncated at both ends."""
    hist = np.asarray(histogram, dtype=np.float64)
    half = window_size // 2
    kernel = np.ones(2 * half + 1)
    sums = np.convolve(hist, kernel, mode="same")
    counts = np.convolve(np.ones_like(hist), kernel, mode="same")
    return sums / counts


def detect_two_peaks(histogram) -> TwoPeakThreshold:
    """
    Threshold halfway between the two strongest local maxima of the smoothed
    histogram. Falls back to intensities 0 and 255 when fewer than two exist.
    """
    hist = np.asarray(histogram)
    smoothed = smooth_histogram(hist)

    inner = smoothed[1:-1]
    is_peak = (inner > smoothed[:-2]) & (inner > smoothed[2:])
    indices = np.flatnonzero(is_peak) + 1
    peaks = sorted(
        (Peak(int(i), float(smoothed[i])) for i in indices),
        key=lambda p: -p.value,
    )

    if len(peaks) < 2:
        last = hist.size - 1
        peak1 = Peak(0, float(hist[0]))
        peak2 = Peak(last, float(hist[last]))
    else:
        peak1, peak2 = peaks[0], peaks[1]

    threshold = int(round_half_up((peak1.intensity + peak2.intensity) / 2))
    return TwoPeakThreshold(peak1, peak2, threshold)


def auto_threshold(buffer: PixelBuffer) -> PixelBuffer:
    """Binarize at the two-peak threshold of the grayscale histogram."""
    result = detect_two_peaks(grayscale_histogram(buffer))
    return to_binary(buffer, result.threshold)


def equalize_histogram(buffer: PixelBuffer) -> PixelBuffer:
    """Grayscale histogram equalization through the normalized CDF; alpha is kept."""
    gray = buffer.gray()
    cdf = np.cumsum(np.bincount(gray.ravel(), minlength=HISTOGRAM_BINS))
    cdf_min = cdf[np.flatnonzero(cdf)[0]]
    total = buffer.pixel_count

    if total == cdf_min:
        lookup = np.zeros(HISTOGRAM_BINS, dtype=np.uint8)
    else:
        scaled = (cdf - cdf_min) / (total - cdf_min) * 255
        # bins below the first occupied one go negative; they are never looked up
        lookup = np.clip(round_half_up(scaled), 0, 255).astype(np.uint8)

    out = buffer.copy_pixels()
    out[:, :, :3] = lookup[gray][:, :, None]
    return PixelBuffer.from_pixels(out)


class HistogramAnalyzerPlugin:
    name = "histogram_analyzer"

    def can_handle(self, buffer):
        return isinstance(buffer, PixelBuffer)

    def analyze(self, buffer: PixelBuffer):
        stats = {}
        for label, hist in zip(("R", "G", "B"), rgb_histogram(buffer)):
            m, sd = histogram_stats(hist)
            stats[label] = {"mean": round(m, 2), "std_dev": round(sd, 2)}

        gray_hist = grayscale_histogram(buffer)
        m, sd = histogram_stats(gray_hist)
        stats["gray"] = {"mean": round(m, 2), "std_dev": round(sd, 2)}

        peaks = detect_two_peaks(gray_hist)
        return {
            "stats": stats,
            "suggested_threshold": peaks.threshold,
            "peaks": [peaks.peak1.intensity, peaks.peak2.intensity],
        }
