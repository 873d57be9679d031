"""Tests for color transforms, two-image operations and geometry."""

import numpy as np
import pytest

from pixelprobe.buffer import PixelBuffer
from pixelprobe.errors import ErrorKind, SizeMismatchError
from pixelprobe.plugins.image_processor import (
    adjust_brightness,
    arithmetic_constant,
    arithmetic_image,
    boolean_operation,
    flip_horizontal,
    flip_vertical,
    rotate90,
    rotate180,
    rotate270,
    to_binary,
    to_grayscale,
)


def random_buffer(width=5, height=3, seed=0):
    rng = np.random.default_rng(seed)
    return PixelBuffer.from_pixels(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


def test_brightness_scenario():
    """4x4 of RGB(100,150,200) brightened by 50 gives RGB(150,200,250)."""
    buf = PixelBuffer.filled(4, 4, (100, 150, 200, 255))
    out = adjust_brightness(buf, 50)
    assert all(out.pixel(x, y) == (150, 200, 250, 255) for x in range(4) for y in range(4))


def test_brightness_clamps_at_255():
    buf = PixelBuffer.filled(4, 4, (100, 150, 250, 77))
    out = adjust_brightness(buf, 50)
    assert out.pixel(3, 3) == (150, 200, 255, 77), "Alpha must be unchanged"


def test_brightness_clamps_at_zero():
    out = adjust_brightness(PixelBuffer.filled(1, 1, (10, 20, 30, 255)), -25)
    assert out.pixel(0, 0) == (0, 0, 5, 255)


def test_transforms_return_new_buffers():
    buf = PixelBuffer.filled(2, 2, (100, 100, 100, 255))
    out = adjust_brightness(buf, 10)
    assert buf.pixel(0, 0) == (100, 100, 100, 255)
    assert out is not buf


def test_grayscale_keeps_alpha():
    out = to_grayscale(PixelBuffer.filled(1, 1, (255, 0, 0, 12)))
    assert out.pixel(0, 0) == (76, 76, 76, 12)


def test_binary_threshold_is_inclusive_and_keeps_alpha():
    buf = PixelBuffer.filled(1, 1, (128, 128, 128, 40))
    assert to_binary(buf, 128).pixel(0, 0) == (255, 255, 255, 40)
    assert to_binary(buf, 129).pixel(0, 0) == (0, 0, 0, 40)


@pytest.mark.parametrize("threshold", [0, 1, 64, 128, 200, 255])
def test_binary_idempotent(threshold):
    buf = random_buffer()
    once = to_binary(buf, threshold)
    assert to_binary(once, threshold) == once


def test_rotation_group():
    buf = random_buffer(5, 3)
    r = rotate90(buf)
    assert (r.width, r.height) == (3, 5), "rotate90 swaps dimensions"
    assert rotate90(rotate90(rotate90(r))) == buf
    assert rotate180(buf) == rotate90(rotate90(buf))
    assert rotate270(buf) == rotate90(rotate180(buf))


def test_rotation_index_mapping():
    """Each mapping matches the documented (x, y) -> destination formula."""
    buf = random_buffer(4, 3, seed=3)
    w, h = buf.width, buf.height
    r90, r180, r270 = rotate90(buf), rotate180(buf), rotate270(buf)
    fh, fv = flip_horizontal(buf), flip_vertical(buf)
    for y in range(h):
        for x in range(w):
            src = buf.pixel(x, y)
            assert r90.pixel(h - 1 - y, x) == src
            assert r180.pixel(w - 1 - x, h - 1 - y) == src
            assert r270.pixel(y, w - 1 - x) == src
            assert fh.pixel(w - 1 - x, y) == src
            assert fv.pixel(x, h - 1 - y) == src


def test_flip_involution():
    buf = random_buffer(4, 6, seed=1)
    assert flip_horizontal(flip_horizontal(buf)) == buf
    assert flip_vertical(flip_vertical(buf)) == buf
    assert (flip_horizontal(buf).width, flip_horizontal(buf).height) == (4, 6)


def test_xor_with_self_is_zero():
    buf = random_buffer(seed=2)
    out = boolean_operation(buf, "xor", buf)
    assert not out.pixels[:, :, :3].any()
    assert (out.pixels[:, :, 3] == 255).all(), "Boolean output alpha must be 255"


def test_boolean_and_or():
    a = PixelBuffer.filled(1, 1, (0b1100, 0xFF, 0, 10))
    b = PixelBuffer.filled(1, 1, (0b1010, 0x0F, 0, 20))
    assert boolean_operation(a, "and", b).pixel(0, 0) == (0b1000, 0x0F, 0, 255)
    assert boolean_operation(a, "or", b).pixel(0, 0) == (0b1110, 0xFF, 0, 255)


def test_arithmetic_constant_clamps():
    buf = PixelBuffer.filled(1, 1, (200, 100, 0, 9))
    assert arithmetic_constant(buf, "add", 300).pixel(0, 0) == (255, 255, 255, 9)
    assert arithmetic_constant(buf, "subtract", 150).pixel(0, 0) == (50, 0, 0, 9)


def test_arithmetic_constant_multiply_is_not_normalized():
    buf = PixelBuffer.filled(1, 1, (100, 200, 3, 255))
    assert arithmetic_constant(buf, "multiply", 2).pixel(0, 0) == (200, 255, 6, 255)
    assert arithmetic_constant(buf, "multiply", 0.5).pixel(0, 0) == (50, 100, 2, 255)


def test_arithmetic_image():
    a = PixelBuffer.filled(2, 1, (255, 100, 50, 10))
    b = PixelBuffer.filled(2, 1, (128, 100, 100, 20))
    assert arithmetic_image(a, "add", b).pixel(0, 0) == (255, 200, 150, 255)
    assert arithmetic_image(a, "subtract", b).pixel(0, 0) == (127, 0, 0, 255)
    # normalized: 255*128/255 = 128, 100*100/255 = 39.2, 50*100/255 = 19.6
    assert arithmetic_image(a, "multiply", b).pixel(1, 0) == (128, 39, 20, 255)


def test_two_image_ops_require_same_size():
    a = PixelBuffer.filled(2, 2)
    b = PixelBuffer.filled(3, 2)
    with pytest.raises(SizeMismatchError) as exc:
        arithmetic_image(a, "add", b)
    assert exc.value.kind is ErrorKind.SIZE_MISMATCH
    with pytest.raises(SizeMismatchError):
        boolean_operation(a, "and", b)


def test_unknown_operation():
    buf = PixelBuffer.filled(1, 1)
    with pytest.raises(ValueError):
        arithmetic_constant(buf, "divide", 2)
    with pytest.raises(ValueError):
        boolean_operation(buf, "nand", buf)
