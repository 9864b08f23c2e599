"""Convert raw camera frames to packed 24-bit pixels and BMP files."""

from __future__ import annotations

import struct

from camconv.pixformat import Frame, PixFormat
from camconv.yuv import yuv2rgb

Buffer = bytes | bytearray | memoryview

BMP_HEADER_LEN = 54
_PIXELS_PER_METER = 0x0B13  # 72 DPI
_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def _rgb565_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for hb, lb in zip(data[0::2], data[1::2]):
        out += bytes(((lb & 0x1F) << 3, (hb & 0x07) << 5 | (lb & 0xE0) >> 3, hb & 0xF8))
    return bytes(out)


def _yuv422_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for y0, u, y1, v in zip(data[0::4], data[1::4], data[2::4], data[3::4]):
        for y in (y0, y1):
            r, g, b = yuv2rgb(y, u, v)
            out += bytes((b, g, r))
    return bytes(out)


def fmt2rgb888(src: Buffer, fmt: PixFormat) -> bytes:
    """Convert a whole source buffer to three bytes per pixel.

    RGB565 and YUV422 input comes out blue first; RGB888 is copied as is and
    grayscale is repeated into all three bytes.
    """
    data = bytes(src)
    if fmt is PixFormat.JPEG:
        raise ValueError("JPEG input cannot be converted: no decoder available")
    if fmt is PixFormat.RGB888:
        return data
    if fmt is PixFormat.RGB565:
        return _rgb565_to_bgr(data)
    if fmt is PixFormat.GRAYSCALE:
        return bytes(b for b in data for _ in range(3))
    if fmt is PixFormat.YUV422:
        return _yuv422_to_bgr(data)
    raise ValueError(f"unsupported source format {fmt!r}")


def _require(data: bytes, needed: int) -> bytes:
    if len(data) < needed:
        raise ValueError(f"source buffer too short: need {needed} bytes, got {len(data)}")
    return data[:needed]


def fmt2bmp(src: Buffer, width: int, height: int, fmt: PixFormat) -> bytes:
    """Build a top-down BMP file from ``src``.

    Grayscale images become 8-bit BMPs with a grey palette; every other
    format becomes 24-bit.
    """
    if fmt is PixFormat.JPEG:
        raise ValueError("JPEG input cannot be converted: no decoder available")
    if not (0 <= width <= 0xFFFF and 0 <= height <= 0xFFFF):
        raise ValueError(f"invalid image size {width}x{height}")

    pix_count = width * height
    grayscale = fmt is PixFormat.GRAYSCALE
    bpp = 1 if grayscale else 3
    palette_size = 4 * 256 if grayscale else 0
    image_size = pix_count * bpp
    out_size = image_size + BMP_HEADER_LEN + palette_size

    data = bytes(src)
    if fmt is PixFormat.RGB888:
        pixels = _require(data, pix_count * 3)
    elif fmt is PixFormat.RGB565:
        pixels = _rgb565_to_bgr(_require(data, pix_count * 2))
    elif grayscale:
        pixels = _require(data, pix_count)
    elif fmt is PixFormat.YUV422:
        pixels = _yuv422_to_bgr(_require(data, (pix_count // 2) * 4))
    else:
        raise ValueError(f"unsupported source format {fmt!r}")

    header = _HEADER.pack(
        b"BM",
        out_size,
        0,
        BMP_HEADER_LEN + palette_size,
        40,
        width,
        -height,
        1,
        bpp * 8,
        0,
        image_size,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )
    palette = b"".join(bytes((i, i, i, 0)) for i in range(256)) if grayscale else b""
    # A trailing odd YUV422 pixel has no source data and stays zero.
    return header + palette + pixels.ljust(image_size, b"\0")


def frame2bmp(frame: Frame) -> bytes:
    """Build a BMP file from a camera frame."""
    return fmt2bmp(frame.buf, frame.width, frame.height, frame.format)