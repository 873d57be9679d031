"""Tests for the moment statistics, entropy, chi-square and image comparison."""

import numpy as np
import pytest

from pixelprobe.buffer import PixelBuffer
from pixelprobe.errors import SizeMismatchError
from pixelprobe.plugins.statistical_analyzer import (
    StatisticalAnalyzer,
    StatisticalAnalyzerPlugin,
    _standardized_moment,
    chi_square,
    compare_with_image,
    entropy,
    kurtosis,
    mean,
    pearson_correlation,
    skewness,
    std_dev,
)


def test_mean_and_population_std():
    assert mean([1, 2, 3, 4]) == 2.5
    assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
    assert std_dev([2, 4, 4, 4, 5, 5, 7, 9], 5.0) == pytest.approx(2.0)
    assert mean([]) == 0.0


def test_pearson_symmetry_and_bounds():
    rng = np.random.default_rng(7)
    a = rng.integers(0, 256, 500)
    b = rng.integers(0, 256, 500)
    r_ab = pearson_correlation(a, b)
    assert r_ab == pytest.approx(pearson_correlation(b, a))
    assert -1.0 <= r_ab <= 1.0


def test_pearson_self_and_inverse():
    a = np.arange(100)
    assert pearson_correlation(a, a) == pytest.approx(1.0)
    assert pearson_correlation(a, 255 - a) == pytest.approx(-1.0)


def test_pearson_degenerate_inputs_return_zero():
    """Zero variance, empty and mismatched inputs all give 0."""
    assert pearson_correlation([5, 5, 5], [1, 2, 3]) == 0.0
    assert pearson_correlation([], []) == 0.0
    assert pearson_correlation([1, 2], [1, 2, 3]) == 0.0


def test_skewness_and_kurtosis_known_values():
    data = [0, 0, 0, 10]
    assert skewness(data) == pytest.approx(1.1547005, rel=1e-6)
    assert kurtosis(data) == pytest.approx(-0.6666667, rel=1e-6)
    assert skewness([1, 2, 3]) == pytest.approx(0.0)


def test_skewness_and_kurtosis_degenerate():
    assert skewness([1, 2]) == 0.0, "N < 3 gives 0"
    assert kurtosis([1, 2, 3]) == 0.0, "N < 4 gives 0"
    assert skewness([4, 4, 4, 4]) == 0.0
    assert kurtosis([4, 4, 4, 4]) == 0.0


def test_degenerate_moments_are_flagged_not_zero():
    """Degenerate input is reported as None, so it cannot be confused with a real 0.0 moment."""
    assert _standardized_moment([1, 2, 3], 4, 4) is None
    assert _standardized_moment([7, 7, 7, 7], 4, 4) is None
    assert _standardized_moment([1, 2, 3], 3, 3) == pytest.approx(0.0), "symmetric data has a real zero skew"
    assert kurtosis([0, 10, 0, 10]) == pytest.approx(-2.0)


def test_entropy_bounds():
    assert entropy([42] * 1000) == 0.0
    assert entropy(np.arange(256)) == pytest.approx(8.0)
    assert entropy([0, 255] * 10) == pytest.approx(1.0)


def test_chi_square():
    assert chi_square(np.arange(256)) == pytest.approx(0.0)
    # 256 samples in one bin: (256-1)^2/1 + 255 * (0-1)^2/1
    assert chi_square([9] * 256) == pytest.approx(65280.0)
    assert chi_square([]) == 0.0


def test_channel_arrays_extracted_once():
    buf = PixelBuffer.filled(3, 3, (1, 2, 3, 255))
    analyzer = StatisticalAnalyzer(buf)
    assert analyzer.channels is analyzer.channels
    assert analyzer.channels["G"].tolist() == [2] * 9


def test_all_statistics_shape():
    rng = np.random.default_rng(1)
    buf = PixelBuffer.from_pixels(rng.integers(0, 256, (8, 8, 4), dtype=np.uint8))
    summary = StatisticalAnalyzer(buf).all_statistics()
    assert set(summary.pearson_correlation) == {"RG", "RB", "GB"}
    for family in (summary.skewness, summary.kurtosis, summary.entropy, summary.chi_square):
        assert set(family) == {"R", "G", "B"}


def test_correlated_channels():
    """A gray image has perfectly correlated channels."""
    values = np.arange(16, dtype=np.uint8)
    pixels = np.stack([values, values, values, np.full(16, 255, np.uint8)], axis=-1).reshape(4, 4, 4)
    summary = StatisticalAnalyzer(PixelBuffer.from_pixels(pixels)).all_statistics()
    assert summary.pearson_correlation["RG"] == pytest.approx(1.0)


def test_compare_identical_images_has_zero_differences():
    rng = np.random.default_rng(4)
    buf = PixelBuffer.from_pixels(rng.integers(0, 256, (6, 5, 4), dtype=np.uint8))
    result = compare_with_image(buf, buf)
    for diffs in (
        result.pearson_correlation_diff,
        result.skewness_diff,
        result.kurtosis_diff,
        result.entropy_diff,
        result.chi_square_diff,
    ):
        assert all(v == 0 for v in diffs.values())
    assert len(result.pearson_correlation_diff) == 3


def test_compare_reports_absolute_difference():
    flat = PixelBuffer.filled(4, 4, (10, 10, 10, 255))
    values = np.arange(16, dtype=np.uint8) * 16
    pixels = np.stack([values] * 3 + [np.full(16, 255, np.uint8)], axis=-1).reshape(4, 4, 4)
    varied = PixelBuffer.from_pixels(pixels)
    result = StatisticalAnalyzer(flat).compare_with_image(varied)
    assert result.entropy_diff["R"] == pytest.approx(4.0)
    assert result.to_dict()["first"]["entropy"]["R"] == 0.0


def test_compare_requires_same_size():
    with pytest.raises(SizeMismatchError):
        compare_with_image(PixelBuffer.filled(2, 2), PixelBuffer.filled(2, 3))


def test_plugin_analyze():
    report = StatisticalAnalyzerPlugin().analyze(PixelBuffer.filled(2, 2, (1, 2, 3, 4)))
    assert report["entropy"] == {"R": 0.0, "G": 0.0, "B": 0.0}
    assert "notes" in report
