import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from camconv.pixformat import Frame, PixFormat
from camconv.to_bmp import BMP_HEADER_LEN, fmt2bmp, fmt2rgb888, frame2bmp
from camconv.yuv import yuv2rgb

HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def test_header_length_matches_struct():
    out = fmt2bmp(bytes(6), 2, 1, PixFormat.RGB888)
    assert HEADER.size == BMP_HEADER_LEN
    assert len(out) == BMP_HEADER_LEN + 6


def test_rgb888_header_and_pixels():
    src = bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12])
    out = fmt2bmp(src, 2, 2, PixFormat.RGB888)
    fields = HEADER.unpack(out[:BMP_HEADER_LEN])
    assert fields == (
        b"BM", BMP_HEADER_LEN + 12, 0, BMP_HEADER_LEN, 40, 2, -2, 1, 24, 0, 12,
        0x0B13, 0x0B13, 0, 0,
    )
    assert out[BMP_HEADER_LEN:] == src


def test_grayscale_has_palette():
    src = bytes([0, 128, 255, 7])
    out = fmt2bmp(src, 2, 2, PixFormat.GRAYSCALE)
    fields = HEADER.unpack(out[:BMP_HEADER_LEN])
    assert fields[1] == len(out) == BMP_HEADER_LEN + 1024 + 4
    assert fields[3] == BMP_HEADER_LEN + 1024
    assert fields[8] == 8
    palette = out[BMP_HEADER_LEN:BMP_HEADER_LEN + 1024]
    assert palette[4 * 200:4 * 200 + 4] == bytes([200, 200, 200, 0])
    assert out[-4:] == src


def test_rgb565_bmp_matches_rgb888_conversion():
    src = bytes((i * 37) & 0xFF for i in range(3 * 2 * 2))
    out = fmt2bmp(src, 3, 2, PixFormat.RGB565)
    assert out[BMP_HEADER_LEN:] == fmt2rgb888(src, PixFormat.RGB565)


def test_yuv422_bmp_matches_rgb888_conversion():
    src = bytes((i * 11) & 0xFF for i in range(4 * 2 * 2))
    out = fmt2bmp(src, 4, 2, PixFormat.YUV422)
    assert out[BMP_HEADER_LEN:] == fmt2rgb888(src, PixFormat.YUV422)


def test_rgb565_to_rgb888_white():
    assert fmt2rgb888(b"\xff\xff", PixFormat.RGB565) == bytes([0xF8, 0xFC, 0xF8])


def test_rgb565_low_byte_bits_go_first():
    assert fmt2rgb888(b"\x00\x1f", PixFormat.RGB565) == bytes([0xF8, 0, 0])


def test_grayscale_to_rgb888_repeats():
    assert fmt2rgb888(bytes([5, 9]), PixFormat.GRAYSCALE) == bytes([5, 5, 5, 9, 9, 9])


def test_rgb888_is_copied():
    src = bytes([9, 8, 7])
    assert fmt2rgb888(src, PixFormat.RGB888) == src


def test_yuv422_to_rgb888_blue_first():
    out = fmt2rgb888(bytes([50, 100, 150, 200]), PixFormat.YUV422)
    r0, g0, b0 = yuv2rgb(50, 100, 200)
    r1, g1, b1 = yuv2rgb(150, 100, 200)
    assert out == bytes([b0, g0, r0, b1, g1, r1])


def test_jpeg_input_rejected():
    with pytest.raises(ValueError):
        fmt2rgb888(b"\xff\xd8", PixFormat.JPEG)
    with pytest.raises(ValueError):
        fmt2bmp(b"\xff\xd8", 1, 1, PixFormat.JPEG)


def test_short_source_rejected():
    with pytest.raises(ValueError):
        fmt2bmp(bytes(5), 2, 1, PixFormat.RGB888)


def test_frame2bmp_matches_fmt2bmp():
    buf = bytes(range(8))
    frame = Frame(buf, 2, 2, PixFormat.RGB565)
    assert frame2bmp(frame) == fmt2bmp(buf, 2, 2, PixFormat.RGB565)


@settings(max_examples=30, deadline=None)
@given(
    width=st.integers(min_value=1, max_value=8),
    height=st.integers(min_value=1, max_value=8),
    data=st.data(),
)
def test_rgb565_bmp_size_invariant(width, height, data):
    src = data.draw(st.binary(min_size=width * height * 2, max_size=width * height * 2))
    out = fmt2bmp(src, width, height, PixFormat.RGB565)
    fields = HEADER.unpack(out[:BMP_HEADER_LEN])
    assert len(out) == fields[1] == BMP_HEADER_LEN + width * height * 3
    assert (fields[5], fields[6]) == (width, -height)