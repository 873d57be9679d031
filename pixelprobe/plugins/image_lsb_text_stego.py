# image_lsb_text_stego.py
# Sequential LSB text steganography on the R, G, B bytes of a pixel buffer.
# The message is 7-bit text followed by END_DELIMITER, 8 bits per character, MSB first.

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pixelprobe.buffer import PixelBuffer
from pixelprobe.constants import (
    BALANCED_RATIO_MAX,
    BALANCED_RATIO_MIN,
    END_DELIMITER,
    LSB_SAMPLE_BYTES,
    MAX_DECODE_BITS,
)
from pixelprobe.errors import (
    CapacityExceededError,
    NoHiddenMessageError,
    SizeMismatchError,
    UnencodableTextError,
)

logger = logging.getLogger(__name__)


@dataclass
class EncodeResult:
    buffer: PixelBuffer
    message_length: int
    bits_used: int
    bits_available: int

    @property
    def capacity_used(self) -> float:
        """Percentage of LSB slots written."""
        return self.bits_used / self.bits_available * 100


@dataclass
class DecodeResult:
    text: str
    bits_read: int
    warning: Optional[str] = None

    @property
    def message_length(self) -> int:
        return len(self.text)


# ---------------- BIT UTILS ----------------

def text_to_bits(text: str) -> np.ndarray:
    for pos, ch in enumerate(text):
        if ord(ch) > 127:
            raise UnencodableTextError(ch, pos)
    return np.unpackbits(np.frombuffer(text.encode("ascii"), dtype=np.uint8))


def bits_to_text(bits) -> str:
    """Pack bits into characters; a trailing partial byte is dropped."""
    bits = np.asarray(bits, dtype=np.uint8)
    usable = bits.size - bits.size % 8
    return bytes(np.packbits(bits[:usable])).decode("latin-1")


def calculate_capacity(width: int, height: int) -> int:
    """Characters that fit alongside the end delimiter."""
    return max(0, (width * height * 3) // 8 - len(END_DELIMITER))


# ---------------- EMBED ----------------

def encode(buffer: PixelBuffer, text: str) -> EncodeResult:
    """
    Overwrite the LSB of successive R, G, B bytes with text + END_DELIMITER.
    Bytes after the last message bit are left untouched.
    """
    bits = text_to_bits(text + END_DELIMITER)
    capacity_bits = buffer.pixel_count * 3

    if bits.size > capacity_bits:
        raise CapacityExceededError(len(text), int(bits.size), capacity_bits)

    arr = buffer.copy_pixels()
    target = arr[..., :3]
    flat = target.ravel()  # copy: target is not contiguous
    flat[:bits.size] = (flat[:bits.size] & np.uint8(0xFE)) | bits
    arr[..., :3] = flat.reshape(target.shape)

    return EncodeResult(
        buffer=PixelBuffer.from_pixels(arr),
        message_length=len(text),
        bits_used=int(bits.size),
        bits_available=capacity_bits,
    )


# ---------------- EXTRACT ----------------

def decode(buffer: PixelBuffer) -> DecodeResult:
    """
    Read LSBs in embedding order, keep 7-bit characters, and stop at the first
    END_DELIMITER. Without a delimiter the collected text is returned with a
    warning; with no text at all NoHiddenMessageError is raised.
    """
    lsb = buffer.rgb_bytes() & 1
    total_bits = int(lsb.size)
    # one bit past the cap is read before giving up
    bits_read = min(total_bits, MAX_DECODE_BITS + 1)
    nbytes = min(total_bits, MAX_DECODE_BITS) // 8

    codes = np.packbits(lsb[:nbytes * 8])
    valid = np.flatnonzero(codes <= 127)
    text = bytes(codes[valid]).decode("ascii")

    end = text.find(END_DELIMITER)
    if end >= 0:
        last_code = valid[end + len(END_DELIMITER) - 1]
        return DecodeResult(text=text[:end], bits_read=int(last_code + 1) * 8)

    if text:
        logger.warning("no end delimiter after %d bits; message may be incomplete", bits_read)
        return DecodeResult(
            text=text,
            bits_read=bits_read,
            warning="No end delimiter found. The message may be incomplete.",
        )

    raise NoHiddenMessageError()


# ---------------- ANALYSIS ----------------

def _binary_entropy(bits: np.ndarray) -> float:
    if bits.size == 0:
        return 0.0
    p1 = float(np.mean(bits))
    p0 = 1.0 - p1
    eps = 1e-12
    return -(p0 * math.log2(p0 + eps) + p1 * math.log2(p1 + eps))


def _lsb_chi_square(ones: int, total: int) -> float:
    exp = total / 2.0
    return ((ones - exp) ** 2 / exp) + (((total - ones) - exp) ** 2 / exp)


def analyze_image(buffer: PixelBuffer) -> dict:
    """
    Heuristic check for embedded data: a near 50/50 split of zeros and ones
    among the LSBs of the first LSB_SAMPLE_BYTES bytes (alpha skipped).
    Per-channel LSB entropy and chi-square over the whole image are reported
    alongside.
    """
    sample = buffer.data[:LSB_SAMPLE_BYTES]
    sample = sample[(np.arange(sample.size) + 1) % 4 != 0] & 1
    ones = int(sample.sum())
    zeros = int(sample.size - ones)
    ratio = ones / (zeros + ones)
    balanced = BALANCED_RATIO_MIN <= ratio <= BALANCED_RATIO_MAX

    total = buffer.pixel_count
    channels = {}
    for i, ch in enumerate(("R", "G", "B")):
        plane = buffer.channel(i) & 1
        set_bits = int(np.count_nonzero(plane))
        channels[ch] = {
            "ones": set_bits,
            "entropy": round(_binary_entropy(plane), 4),
            "chi_square": round(_lsb_chi_square(set_bits, total), 4),
        }

    return {
        "width": buffer.width,
        "height": buffer.height,
        "capacity": calculate_capacity(buffer.width, buffer.height),
        "lsb_ratio": {"zeros": zeros, "ones": ones, "ratio": round(ratio, 3)},
        "possible_hidden_data": balanced,
        "lsb_channels": channels,
        "analysis": (
            "Balanced LSB distribution - the image may carry hidden data"
            if balanced
            else "Unbalanced LSB distribution - hidden data is unlikely"
        ),
    }


def difference_image(original: PixelBuffer, encoded: PixelBuffer) -> PixelBuffer:
    """|original - encoded| * 255 per channel, clamped; opaque."""
    if original.shape != encoded.shape:
        raise SizeMismatchError(original.shape, encoded.shape)
    a = original.pixels[:, :, :3].astype(np.int32)
    b = encoded.pixels[:, :, :3].astype(np.int32)
    out = np.empty((original.height, original.width, 4), dtype=np.uint8)
    out[:, :, :3] = np.minimum(np.abs(a - b) * 255, 255)
    out[:, :, 3] = 255
    return PixelBuffer.from_pixels(out)


class ImageLSBTextStegoPlugin:
    name = "image_lsb_text_stego"

    def can_handle(self, buffer):
        return isinstance(buffer, PixelBuffer)

    def analyze(self, buffer: PixelBuffer):
        return analyze_image(buffer)

    def embed(self, buffer: PixelBuffer, text: str):
        result = encode(buffer, text)
        return result.buffer, {
            "message_length": result.message_length,
            "bits_used": result.bits_used,
            "bits_available": result.bits_available,
            "capacity_used": round(result.capacity_used, 2),
        }

    def extract(self, buffer: PixelBuffer):
        result = decode(buffer)
        out = {"text": result.text, "message_length": result.message_length, "bits_read": result.bits_read}
        if result.warning:
            out["warning"] = result.warning
        return out
