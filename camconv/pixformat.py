"""Pixel formats understood by the converters and the frame container."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PixFormat(Enum):
    """Layout of the pixel data held in a source buffer."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    @property
    def bytes_per_pixel(self) -> int | None:
        """Bytes one pixel takes, or None for compressed data."""
        return _BYTES_PER_PIXEL[self]


_BYTES_PER_PIXEL = {
    PixFormat.RGB565: 2,
    PixFormat.YUV422: 2,
    PixFormat.GRAYSCALE: 1,
    PixFormat.JPEG: None,
    PixFormat.RGB888: 3,
}


@dataclass(frozen=True)
class Frame:
    """A captured image: raw bytes plus their dimensions and format."""

    buf: bytes
    width: int
    height: int
    format: PixFormat

    def __len__(self) -> int:
        return len(self.buf)