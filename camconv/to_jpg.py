"""Encode raw camera frames (RGB565, RGB888, YUV422, grayscale) to JPEG."""

from __future__ import annotations

from collections.abc import Callable

from camconv.jpeg_encoder import EncoderParams, JpegEncoder, Subsampling
from camconv.pixformat import Frame, PixFormat
from camconv.yuv import yuv2rgb

Buffer = bytes | bytearray | memoryview

# Capacity of the in-memory output buffer; longer output is truncated.
JPG_BUF_LEN = 128 * 1024


def _line_slice(src: Buffer, start: int, length: int) -> bytes:
    data = bytes(src[start:start + length])
    if len(data) < length:
        raise ValueError(
            f"source buffer too short: need {start + length} bytes, got {len(src)}"
        )
    return data


def convert_line_format(src: Buffer, fmt: PixFormat, width: int, line: int) -> bytes:
    """Return scanline ``line`` of ``src`` as encoder input.

    Grayscale yields one byte per pixel; every other format yields R, G, B
    triples. RGB888 sources are stored blue first and are reordered.
    """
    if width < 0 or line < 0:
        raise ValueError(f"invalid width {width} or line {line}")
    if fmt is PixFormat.GRAYSCALE:
        return _line_slice(src, line * width, width)
    if fmt is PixFormat.RGB888:
        data = _line_slice(src, line * width * 3, width * 3)
        out = bytearray(len(data))
        out[0::3] = data[2::3]
        out[1::3] = data[1::3]
        out[2::3] = data[0::3]
        return bytes(out)
    if fmt is PixFormat.RGB565:
        data = _line_slice(src, line * width * 2, width * 2)
        out = bytearray()
        for hb, lb in zip(data[0::2], data[1::2]):
            out += bytes((hb & 0xF8, (hb & 0x07) << 5 | (lb & 0xE0) >> 3, (lb & 0x1F) << 3))
        return bytes(out)
    if fmt is PixFormat.YUV422:
        start = line * width * 2
        data = _line_slice(src, start, width * 2)
        # An odd width still needs a whole Y/U/Y/V group for its last pixel.
        extra = (-len(data)) % 4
        data += bytes(src[start + len(data):start + len(data) + extra]).ljust(extra, b"\0")
        out = bytearray()
        for y0, u, y1, v in zip(data[0::4], data[1::4], data[2::4], data[3::4]):
            out += bytes(yuv2rgb(y0, u, v))
            out += bytes(yuv2rgb(y1, u, v))
        return bytes(out[:width * 3])
    raise ValueError(f"cannot encode source format {fmt.name}")


def _convert_image(
    src: Buffer,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    write: Callable[[bytes], object],
) -> None:
    if fmt is PixFormat.JPEG:
        raise ValueError("source is already JPEG")
    if fmt is PixFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(quality, 1), 100)

    encoder = JpegEncoder(
        write, width, height, channels, EncoderParams(quality, subsampling)
    )
    for line in range(height):
        encoder.process_scanline(convert_line_format(src, fmt, width, line))
    encoder.finish()


def fmt2jpg_cb(
    src: Buffer,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    callback: Callable[[int, bytes], int | None],
) -> int:
    """Encode ``src`` to JPEG, handing the output to ``callback`` in chunks.

    ``callback(index, data)`` receives the running output offset and the next
    chunk, and an empty chunk once the image is complete. It returns how many
    bytes it consumed (``None`` counts as all of them). Returns the final
    offset.
    """
    index = 0

    def write(data: bytes) -> bool:
        nonlocal index
        written = callback(index, data)
        index += len(data) if written is None else written
        return True

    _convert_image(src, width, height, fmt, quality, write)
    return index


def fmt2jpg(src: Buffer, width: int, height: int, fmt: PixFormat, quality: int) -> bytes:
    """Encode ``src`` to JPEG and return the bytes, capped at ``JPG_BUF_LEN``."""
    out = bytearray()

    def write(data: bytes) -> bool:
        if data:
            out.extend(data[:JPG_BUF_LEN - len(out)])
        return True

    _convert_image(src, width, height, fmt, quality, write)
    return bytes(out)


def frame2jpg_cb(
    frame: Frame, quality: int, callback: Callable[[int, bytes], int | None]
) -> int:
    """Encode a camera frame to JPEG through ``callback``."""
    return fmt2jpg_cb(frame.buf, frame.width, frame.height, frame.format, quality, callback)


def frame2jpg(frame: Frame, quality: int) -> bytes:
    """Encode a camera frame to JPEG bytes."""
    return fmt2jpg(frame.buf, frame.width, frame.height, frame.format, quality)