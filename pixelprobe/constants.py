"""Shared defaults for pixelprobe.

Per-call arguments always take precedence over these values.
"""

# Binarization
DEFAULT_BINARY_THRESHOLD = 128

# Edge detection
DEFAULT_EDGE_KERNEL = "sobel"
DEFAULT_EDGE_THRESHOLD = 50

# Green detection window (degrees / percent)
DEFAULT_HUE_MIN = 90
DEFAULT_HUE_MAX = 180
DEFAULT_SATURATION_MIN = 20
DEFAULT_VALUE_MIN = 10

# Steganography
END_DELIMITER = "<<END>>"
MAX_DECODE_BITS = 1_000_000
LSB_SAMPLE_BYTES = 1000
BALANCED_RATIO_MIN = 0.4
BALANCED_RATIO_MAX = 0.6

# Histogram
HISTOGRAM_BINS = 256
SMOOTHING_WINDOW = 5
