# statistical_analyzer.py
# Per-channel moment statistics, Shannon entropy, chi-square uniformity and
# cross-channel Pearson correlation.

import logging
import math
from dataclasses import dataclass, field, asdict
from functools import cached_property
from typing import Optional

import numpy as np

from pixelprobe.buffer import PixelBuffer
from pixelprobe.constants import HISTOGRAM_BINS
from pixelprobe.errors import SizeMismatchError

logger = logging.getLogger(__name__)

CHANNELS = ("R", "G", "B")
CHANNEL_PAIRS = (("R", "G"), ("R", "B"), ("G", "B"))


def _as_array(arr) -> np.ndarray:
    return np.asarray(arr, dtype=np.float64).ravel()


def _histogram(arr) -> np.ndarray:
    values = np.asarray(arr).ravel().astype(np.int64)
    return np.bincount(values, minlength=HISTOGRAM_BINS)


# ---------------- REDUCTIONS ----------------

def mean(arr) -> float:
    values = _as_array(arr)
    return float(values.mean()) if values.size else 0.0


def std_dev(arr, mean_value=None) -> float:
    """Population standard deviation (divides by N)."""
    values = _as_array(arr)
    if values.size == 0:
        return 0.0
    if mean_value is None:
        mean_value = values.mean()
    return math.sqrt(float(np.mean((values - mean_value) ** 2)))


def pearson_correlation(first, second) -> float:
    """
    sum((x - mx)(y - my)) / sqrt(sum((x - mx)^2) * sum((y - my)^2)).
    0.0 for empty or mismatched inputs and for zero variance.
    """
    x = _as_array(first)
    y = _as_array(second)
    if x.size != y.size or x.size == 0:
        logger.debug("pearson_correlation: empty or mismatched input (%d vs %d)", x.size, y.size)
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    numerator = float(np.sum(dx * dy))
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        logger.debug("pearson_correlation: zero variance")
        return 0.0
    return numerator / denominator


def _standardized_moment(arr, order: int, min_size: int) -> Optional[float]:
    """None when there are fewer than min_size values or sigma is 0."""
    values = _as_array(arr)
    if values.size < min_size:
        return None
    m = values.mean()
    sigma = std_dev(values, m)
    if sigma == 0:
        logger.debug("standardized moment %d: zero variance", order)
        return None
    return float(np.mean(((values - m) / sigma) ** order))


def skewness(arr) -> float:
    """Third standardized moment; 0.0 when N < 3 or sigma = 0."""
    moment = _standardized_moment(arr, 3, 3)
    return 0.0 if moment is None else moment


def kurtosis(arr) -> float:
    """Excess kurtosis (fourth standardized moment - 3); 0.0 when N < 4 or sigma = 0."""
    moment = _standardized_moment(arr, 4, 4)
    return 0.0 if moment is None else moment - 3


def entropy(arr) -> float:
    """Shannon entropy of the 256-bin histogram, in bits (0..8)."""
    hist = _histogram(arr)
    n = hist.sum()
    if n == 0:
        return 0.0
    p = hist[hist > 0] / n
    return float(-np.sum(p * np.log2(p)))


def chi_square(arr) -> float:
    """Goodness of fit of the 256-bin histogram against a uniform distribution."""
    hist = _histogram(arr)
    expected = hist.sum() / HISTOGRAM_BINS
    if expected == 0:
        return 0.0
    return float(np.sum((hist - expected) ** 2 / expected))


# ---------------- SUMMARIES ----------------

@dataclass
class StatisticalSummary:
    pearson_correlation: dict = field(default_factory=dict)  # RG, RB, GB
    skewness: dict = field(default_factory=dict)  # R, G, B
    kurtosis: dict = field(default_factory=dict)
    entropy: dict = field(default_factory=dict)
    chi_square: dict = field(default_factory=dict)

    def to_dict(self):
        return asdict(self)


@dataclass
class StatisticalComparison:
    pearson_correlation_diff: dict
    skewness_diff: dict
    kurtosis_diff: dict
    entropy_diff: dict
    chi_square_diff: dict
    first: StatisticalSummary
    second: StatisticalSummary

    def to_dict(self):
        return asdict(self)


class StatisticalAnalyzer:
    """
    Statistics for one image. The R, G, B channel arrays are extracted once
    and reused by every statistic.
    """

    def __init__(self, buffer: PixelBuffer):
        self.buffer = buffer

    @cached_property
    def channels(self) -> dict:
        return {ch: self.buffer.channel(i) for i, ch in enumerate(CHANNELS)}

    def _per_channel(self, fn) -> dict:
        return {ch: fn(values) for ch, values in self.channels.items()}

    def all_pearson_correlations(self) -> dict:
        return {
            a + b: pearson_correlation(self.channels[a], self.channels[b])
            for a, b in CHANNEL_PAIRS
        }

    def all_skewness(self) -> dict:
        return self._per_channel(skewness)

    def all_kurtosis(self) -> dict:
        return self._per_channel(kurtosis)

    def all_entropy(self) -> dict:
        return self._per_channel(entropy)

    def all_chi_square(self) -> dict:
        return self._per_channel(chi_square)

    def all_statistics(self) -> StatisticalSummary:
        return StatisticalSummary(
            pearson_correlation=self.all_pearson_correlations(),
            skewness=self.all_skewness(),
            kurtosis=self.all_kurtosis(),
            entropy=self.all_entropy(),
            chi_square=self.all_chi_square(),
        )

    def compare_with_image(self, other: PixelBuffer) -> StatisticalComparison:
        """Absolute per-metric differences between this image and another of the same size."""
        if other.shape != self.buffer.shape:
            raise SizeMismatchError(self.buffer.shape, other.shape)

        first = self.all_statistics()
        second = StatisticalAnalyzer(other).all_statistics()

        def diff(name):
            a, b = getattr(first, name), getattr(second, name)
            return {key: abs(a[key] - b[key]) for key in a}

        return StatisticalComparison(
            pearson_correlation_diff=diff("pearson_correlation"),
            skewness_diff=diff("skewness"),
            kurtosis_diff=diff("kurtosis"),
            entropy_diff=diff("entropy"),
            chi_square_diff=diff("chi_square"),
            first=first,
            second=second,
        )


def compare_with_image(first: PixelBuffer, second: PixelBuffer) -> StatisticalComparison:
    return StatisticalAnalyzer(first).compare_with_image(second)


class StatisticalAnalyzerPlugin:
    name = "statistical_analyzer"

    def can_handle(self, buffer):
        return isinstance(buffer, PixelBuffer)

    def analyze(self, buffer: PixelBuffer):
        summary = StatisticalAnalyzer(buffer).all_statistics().to_dict()
        summary["notes"] = (
            "Entropy near 8 bits and a low chi-square indicate a near-uniform "
            "intensity distribution."
        )
        return summary
