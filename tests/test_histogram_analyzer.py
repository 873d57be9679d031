"""Tests for histograms, two-peak thresholding and equalization."""

import numpy as np
import pytest

from pixelprobe.buffer import PixelBuffer
from pixelprobe.plugins.histogram_analyzer import (
    HistogramAnalyzerPlugin,
    auto_threshold,
    detect_two_peaks,
    equalize_histogram,
    grayscale_histogram,
    histogram_stats,
    rgb_histogram,
    smooth_histogram,
)


def bimodal_histogram():
    hist = np.zeros(256, dtype=np.int64)
    hist[48:53] = [10, 20, 40, 20, 10]
    hist[198:203] = [5, 10, 20, 10, 5]
    return hist


def test_rgb_histogram_counts_every_pixel():
    buf = PixelBuffer.filled(3, 2, (5, 6, 7, 255))
    hist_r, hist_g, hist_b = rgb_histogram(buf)
    assert hist_r[5] == 6 and hist_g[6] == 6 and hist_b[7] == 6
    assert hist_r.sum() == 6


def test_grayscale_histogram_uses_luminance():
    hist = grayscale_histogram(PixelBuffer.filled(2, 2, (255, 0, 0, 255)))
    assert hist[76] == 4


def test_histogram_stats():
    hist = np.zeros(256)
    hist[0] = 2
    hist[10] = 2
    m, sd = histogram_stats(hist)
    assert m == pytest.approx(5.0)
    assert sd == pytest.approx(5.0)


def test_smoothing_truncates_at_edges():
    smoothed = smooth_histogram(np.ones(256))
    assert np.allclose(smoothed, 1.0)
    hist = np.zeros(256)
    hist[0] = 9
    assert smooth_histogram(hist)[0] == pytest.approx(3.0), "Window at index 0 covers 3 bins"


def test_detect_two_peaks():
    result = detect_two_peaks(bimodal_histogram())
    assert result.peak1.intensity == 50
    assert result.peak2.intensity == 200
    assert result.threshold == 125


def test_detect_two_peaks_fallback():
    result = detect_two_peaks(np.zeros(256))
    assert (result.peak1.intensity, result.peak2.intensity) == (0, 255)
    assert result.threshold == 128


def test_auto_threshold_binarizes():
    pixels = np.zeros((2, 2, 4), dtype=np.uint8)
    pixels[0, 0, :3] = 200
    pixels[..., 3] = 255
    out = auto_threshold(PixelBuffer.from_pixels(pixels))
    assert set(np.unique(out.pixels[:, :, :3]).tolist()) <= {0, 255}
    assert out.pixel(0, 0) == (255, 255, 255, 255)


def test_equalize_two_levels():
    pixels = np.array([[[0, 0, 0, 255], [100, 100, 100, 30]]], dtype=np.uint8)
    out = equalize_histogram(PixelBuffer.from_pixels(pixels))
    assert out.pixel(0, 0) == (0, 0, 0, 255)
    assert out.pixel(1, 0) == (255, 255, 255, 30), "Alpha must be preserved"


def test_equalize_single_intensity_goes_black():
    out = equalize_histogram(PixelBuffer.filled(3, 3, (90, 90, 90, 200)))
    assert out.pixel(1, 1) == (0, 0, 0, 200)


def test_plugin_analyze():
    report = HistogramAnalyzerPlugin().analyze(PixelBuffer.filled(2, 2, (10, 20, 30, 255)))
    assert report["stats"]["R"]["mean"] == 10.0
    assert report["stats"]["R"]["std_dev"] == 0.0
    assert isinstance(report["suggested_threshold"], int)
