"""Streaming baseline JPEG encoder fed one scanline at a time."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

from camconv.jpeg_core import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_CHROMA_BITS,
    DC_CHROMA_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    M_APP0,
    M_DHT,
    M_DQT,
    M_EOI,
    M_SOF0,
    M_SOI,
    M_SOS,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZIGZAG,
    compute_huffman_table,
    fdct_8x8,
    quantization_table,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

OUT_BUF_SIZE = 512


class Subsampling(IntEnum):
    """Chroma subsampling of the encoded image."""

    Y_ONLY = 0
    H1V1 = 1
    H2V1 = 2
    H2V2 = 3


@dataclass
class EncoderParams:
    """Compression parameters: quality 1..100 and chroma subsampling."""

    quality: int = 85
    subsampling: Subsampling = Subsampling.H2V2

    def check(self) -> bool:
        """Return True when the parameters are within their valid ranges."""
        if not 1 <= self.quality <= 100:
            return False
        try:
            Subsampling(self.subsampling)
        except ValueError:
            return False
        return True


class EncoderError(Exception):
    """Raised when the output stream fails or the encoder is misused."""


@dataclass(frozen=True)
class _HuffTable:
    bits: tuple[int, ...]
    values: tuple[int, ...]
    codes: tuple[int, ...]
    sizes: tuple[int, ...]


def _make_table(bits, values) -> _HuffTable:
    codes, sizes = compute_huffman_table(bits, values)
    return _HuffTable(tuple(bits), tuple(values), tuple(codes), tuple(sizes))


# Indexed as [ac][component > 0].
_HUFF = (
    (_make_table(DC_LUM_BITS, DC_LUM_VAL), _make_table(DC_CHROMA_BITS, DC_CHROMA_VAL)),
    (_make_table(AC_LUM_BITS, AC_LUM_VAL), _make_table(AC_CHROMA_BITS, AC_CHROMA_VAL)),
)

_LAYOUTS = {
    Subsampling.Y_ONLY: (1, (1,), (1,), 8, 8),
    Subsampling.H1V1: (3, (1, 1, 1), (1, 1, 1), 8, 8),
    Subsampling.H2V1: (3, (2, 1, 1), (1, 1, 1), 16, 8),
    Subsampling.H2V2: (3, (2, 1, 1), (2, 1, 1), 16, 16),
}


def _int16(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


class JpegEncoder:
    """Encode an image to baseline JPEG, writing output through ``write``.

    ``write`` receives chunks of at most 512 bytes and an empty chunk once the
    image is complete. A return value of ``False`` marks the write as failed.
    """

    def __init__(
        self,
        write: Callable[[bytes], object],
        width: int,
        height: int,
        channels: int,
        params: EncoderParams | None = None,
    ) -> None:
        params = EncoderParams() if params is None else params
        if write is None or width < 1 or height < 1:
            raise ValueError(f"invalid image size {width}x{height}")
        if channels not in (1, 3, 4):
            raise ValueError(f"channels must be 1, 3 or 4, got {channels}")
        if not params.check():
            raise ValueError(f"invalid encoder parameters {params!r}")

        self._write = write
        self._params = params
        subsampling = Subsampling(params.subsampling)
        (self._num_components, self._h_samp, self._v_samp,
         self._mcu_x, self._mcu_y) = _LAYOUTS[subsampling]

        self._width = width
        self._height = height
        self._bpp = channels
        self._x_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_xlt = width * self._num_components
        self._bpl_mcu = self._x_mcu * self._num_components
        self._mcus_per_row = self._x_mcu // self._mcu_x
        self._lines = [bytearray(self._bpl_mcu) for _ in range(self._mcu_y)]

        self._quant = (
            quantization_table(STD_LUM_QUANT, params.quality),
            quantization_table(STD_CHROMA_QUANT, params.quality),
        )

        self._out = bytearray()
        self._ok = True
        self._bit_buffer = 0
        self._bits_in = 0
        self._mcu_y_ofs = 0
        self._last_dc = [0, 0, 0]
        self._pass_num = 2

        self._emit_marker(M_SOI)
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()
        if not self._ok:
            raise EncoderError("writing the JPEG header failed")

    # Output -----------------------------------------------------------------

    def _put_buf(self, data: bytes) -> None:
        if self._ok and self._write(data) is False:
            self._ok = False

    def _flush(self) -> None:
        if self._out:
            self._put_buf(bytes(self._out))
        self._out.clear()

    def _emit_byte(self, value: int) -> None:
        self._out.append(value & 0xFF)
        if len(self._out) == OUT_BUF_SIZE:
            self._flush()

    def _emit_word(self, value: int) -> None:
        self._emit_byte(value >> 8)
        self._emit_byte(value & 0xFF)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer = (self._bit_buffer | (bits << (24 - self._bits_in))) & 0xFFFFFFFF
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # Headers ----------------------------------------------------------------

    def _emit_jfif_app0(self) -> None:
        self._emit_marker(M_APP0)
        self._emit_word(2 + 4 + 1 + 2 + 1 + 2 + 2 + 1 + 1)
        for value in b"JFIF\x00":
            self._emit_byte(value)
        self._emit_byte(1)
        self._emit_byte(1)
        self._emit_byte(0)
        self._emit_word(1)
        self._emit_word(1)
        self._emit_byte(0)
        self._emit_byte(0)

    def _emit_dqt(self) -> None:
        for index in range(2 if self._num_components == 3 else 1):
            self._emit_marker(M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            for value in self._quant[index]:
                self._emit_byte(value)

    def _emit_sof(self) -> None:
        self._emit_marker(M_SOF0)
        self._emit_word(3 * self._num_components + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._height)
        self._emit_word(self._width)
        self._emit_byte(self._num_components)
        for index in range(self._num_components):
            self._emit_byte(index + 1)
            self._emit_byte((self._h_samp[index] << 4) + self._v_samp[index])
            self._emit_byte(1 if index > 0 else 0)

    def _emit_dht(self, table: _HuffTable, index: int, ac: bool) -> None:
        self._emit_marker(M_DHT)
        length = sum(table.bits[1:17])
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (16 if ac else 0))
        for value in table.bits[1:17]:
            self._emit_byte(value)
        for value in table.values[:length]:
            self._emit_byte(value)

    def _emit_dhts(self) -> None:
        self._emit_dht(_HUFF[0][0], 0, False)
        self._emit_dht(_HUFF[1][0], 0, True)
        if self._num_components == 3:
            self._emit_dht(_HUFF[0][1], 1, False)
            self._emit_dht(_HUFF[1][1], 1, True)

    def _emit_sos(self) -> None:
        self._emit_marker(M_SOS)
        self._emit_word(2 * self._num_components + 2 + 1 + 3)
        self._emit_byte(self._num_components)
        for index in range(self._num_components):
            self._emit_byte(index + 1)
            self._emit_byte(0x00 if index == 0 else 0x11)
        self._emit_byte(0)
        self._emit_byte(63)
        self._emit_byte(0)

    # Block loading ----------------------------------------------------------

    def _block_8_8_grey(self, x: int) -> list[int]:
        x <<= 3
        return [v - 128 for line in self._lines[:8] for v in line[x:x + 8]]

    def _block_8_8(self, x: int, y: int, c: int) -> list[int]:
        start = x * 24 + c
        y <<= 3
        return [
            v - 128
            for line in self._lines[y:y + 8]
            for v in line[start:start + 24:3]
        ]

    def _block_16_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block = []
        a, b = 0, 2
        for top, bottom in zip(self._lines[0:16:2], self._lines[1:16:2]):
            s1 = top[start:start + 48:3]
            s2 = bottom[start:start + 48:3]
            for k in range(8):
                bias = a if k % 2 == 0 else b
                total = s1[2 * k] + s1[2 * k + 1] + s2[2 * k] + s2[2 * k + 1] + bias
                block.append((total >> 2) - 128)
            a, b = b, a
        return block

    def _block_16_8_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block = []
        for line in self._lines[:8]:
            s = line[start:start + 48:3]
            block.extend(((s[2 * k] + s[2 * k + 1]) >> 1) - 128 for k in range(8))
        return block

    # Coding -----------------------------------------------------------------

    def _quantize(self, samples: list[int], component: int) -> list[int]:
        table = self._quant[1 if component > 0 else 0]
        coefficients = []
        for zig, q in zip(ZIGZAG, table):
            j = samples[zig]
            if j < 0:
                j = -j + (q >> 1)
                coefficients.append(0 if j < q else _int16(-(j // q)))
            else:
                j += q >> 1
                coefficients.append(0 if j < q else _int16(j // q))
        return coefficients

    def _code_coefficients(self, coefficients: list[int], component: int) -> None:
        dc = _HUFF[0][1 if component > 0 else 0]
        ac = _HUFF[1][1 if component > 0 else 0]

        temp1 = temp2 = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        if temp1 < 0:
            temp1 = -temp1
            temp2 -= 1
        nbits = temp1.bit_length()
        self._put_bits(dc.codes[nbits], dc.sizes[nbits])
        if nbits:
            self._put_bits(temp2 & ((1 << nbits) - 1), nbits)

        run_len = 0
        for value in coefficients[1:]:
            if value == 0:
                run_len += 1
                continue
            while run_len >= 16:
                self._put_bits(ac.codes[0xF0], ac.sizes[0xF0])
                run_len -= 16
            temp1 = temp2 = value
            if temp1 < 0:
                temp1 = -temp1
                temp2 -= 1
            nbits = temp1.bit_length()
            symbol = (run_len << 4) + nbits
            self._put_bits(ac.codes[symbol], ac.sizes[symbol])
            self._put_bits(temp2 & ((1 << nbits) - 1), nbits)
            run_len = 0
        if run_len:
            self._put_bits(ac.codes[0], ac.sizes[0])

    def _code_block(self, samples: list[int], component: int) -> None:
        coefficients = self._quantize(fdct_8x8(samples), component)
        self._code_coefficients(coefficients, component)

    def _process_mcu_row(self) -> None:
        code = self._code_block
        if self._num_components == 1:
            for i in range(self._mcus_per_row):
                code(self._block_8_8_grey(i), 0)
        elif self._h_samp[0] == 1 and self._v_samp[0] == 1:
            for i in range(self._mcus_per_row):
                for c in range(3):
                    code(self._block_8_8(i, 0, c), c)
        elif self._h_samp[0] == 2 and self._v_samp[0] == 1:
            for i in range(self._mcus_per_row):
                code(self._block_8_8(i * 2, 0, 0), 0)
                code(self._block_8_8(i * 2 + 1, 0, 0), 0)
                code(self._block_16_8_8(i, 1), 1)
                code(self._block_16_8_8(i, 2), 2)
        else:
            for i in range(self._mcus_per_row):
                code(self._block_8_8(i * 2, 0, 0), 0)
                code(self._block_8_8(i * 2 + 1, 0, 0), 0)
                code(self._block_8_8(i * 2, 1, 0), 0)
                code(self._block_8_8(i * 2 + 1, 1, 0), 0)
                code(self._block_16_8(i, 1), 1)
                code(self._block_16_8(i, 2), 2)

    def _load_mcu(self, scanline: bytes) -> None:
        width = self._width
        if self._num_components == 1:
            if self._bpp == 3:
                converted = rgb_to_y(scanline[:width * 3])
            else:
                converted = scanline[:width]
        elif self._bpp == 3:
            converted = rgb_to_ycc(scanline[:width * 3])
        else:
            converted = y_to_ycc(scanline[:width])

        pad = self._x_mcu - width
        tail = converted[-self._num_components:]
        self._lines[self._mcu_y_ofs] = bytearray(converted + tail * pad)

        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0

    def _end_of_image(self) -> None:
        if self._mcu_y_ofs:
            last = self._lines[self._mcu_y_ofs - 1]
            for i in range(self._mcu_y_ofs, self._mcu_y):
                self._lines[i] = bytearray(last)
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(M_EOI)
        self._flush()
        self._put_buf(b"")
        self._pass_num += 1

    # Public API -------------------------------------------------------------

    def process_scanline(self, scanline: bytes | bytearray | memoryview) -> None:
        """Encode one scanline of ``width * channels`` bytes."""
        if not 1 <= self._pass_num <= 2:
            raise EncoderError("encoder has already finished")
        data = bytes(scanline)
        needed = self._width * self._bpp
        if len(data) < needed:
            raise ValueError(f"scanline needs {needed} bytes, got {len(data)}")
        if self._ok:
            self._load_mcu(data)
        if not self._ok:
            raise EncoderError("writing to the output stream failed")

    def finish(self) -> None:
        """Flush the remaining rows and write the end-of-image marker."""
        if not 1 <= self._pass_num <= 2:
            raise EncoderError("encoder has already finished")
        if self._ok:
            self._end_of_image()
        if not self._ok:
            raise EncoderError("writing to the output stream failed")