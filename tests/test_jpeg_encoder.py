import random
import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from camconv.jpeg_core import STD_CHROMA_QUANT, STD_LUM_QUANT, quantization_table
from camconv.jpeg_encoder import (
    EncoderError,
    EncoderParams,
    JpegEncoder,
    Subsampling,
)


def encode(width, height, channels, pixels, params=None):
    chunks = []
    encoder = JpegEncoder(chunks.append, width, height, channels, params)
    row = width * channels
    for y in range(height):
        encoder.process_scanline(pixels[y * row:(y + 1) * row])
    encoder.finish()
    return chunks


def noise(width, height, channels, seed=1):
    rng = random.Random(seed)
    return bytes(rng.randrange(256) for _ in range(width * height * channels))


def find_segment(data, marker):
    index = data.index(bytes((0xFF, marker)))
    length = struct.unpack(">H", data[index + 2:index + 4])[0]
    return index, data[index + 4:index + 2 + length]


def test_default_params():
    params = EncoderParams()
    assert params.quality == 85
    assert params.subsampling == Subsampling.H2V2
    assert params.check() is True


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_check_rejects_bad_quality(quality):
    assert EncoderParams(quality=quality).check() is False


def test_check_rejects_bad_subsampling():
    assert EncoderParams(subsampling=7).check() is False


def test_stream_framing():
    data = b"".join(encode(16, 16, 3, noise(16, 16, 3)))
    assert data[:4] == b"\xff\xd8\xff\xe0"
    assert data[-2:] == b"\xff\xd9"
    _, app0 = find_segment(data, 0xE0)
    assert app0[:5] == b"JFIF\x00"


def test_chunks_bounded_and_end_signal():
    chunks = encode(40, 24, 3, noise(40, 24, 3))
    assert chunks[-1] == b""
    assert all(len(chunk) <= 512 for chunk in chunks)
    assert all(len(chunk) == 512 for chunk in chunks[:-2])


def test_dqt_tables_match_quality():
    params = EncoderParams(quality=60)
    data = b"".join(encode(8, 8, 3, noise(8, 8, 3), params))
    first, lum = find_segment(data, 0xDB)
    assert lum[0] == 0
    assert list(lum[1:]) == quantization_table(STD_LUM_QUANT, 60)
    _, chroma = find_segment(data[first + 2:], 0xDB)
    assert chroma[0] == 1
    assert list(chroma[1:]) == quantization_table(STD_CHROMA_QUANT, 60)


def test_sof_dimensions_and_sampling():
    data = b"".join(encode(21, 13, 3, noise(21, 13, 3)))
    _, sof = find_segment(data, 0xC0)
    precision, height, width, components = struct.unpack(">BHHB", sof[:6])
    assert (precision, height, width, components) == (8, 13, 21, 3)
    assert sof[6:] == bytes((1, 0x22, 0, 2, 0x11, 1, 3, 0x11, 1))


@pytest.mark.parametrize(
    "subsampling, sampling",
    [(Subsampling.H1V1, 0x11), (Subsampling.H2V1, 0x21), (Subsampling.H2V2, 0x22)],
)
def test_luma_sampling_factor(subsampling, sampling):
    params = EncoderParams(subsampling=subsampling)
    data = b"".join(encode(17, 9, 3, noise(17, 9, 3), params))
    _, sof = find_segment(data, 0xC0)
    assert sof[7] == sampling
    assert data[-2:] == b"\xff\xd9"


def test_grayscale_has_single_component_and_table():
    params = EncoderParams(subsampling=Subsampling.Y_ONLY)
    data = b"".join(encode(8, 8, 1, noise(8, 8, 1), params))
    assert data.count(b"\xff\xdb") == 1
    assert data.count(b"\xff\xc4") == 2
    _, sof = find_segment(data, 0xC0)
    assert sof[5] == 1


def test_uniform_grey_block_scan_data():
    params = EncoderParams(subsampling=Subsampling.Y_ONLY)
    data = b"".join(encode(8, 8, 1, bytes([128]) * 64, params))
    sos = data.index(b"\xff\xda")
    assert data[sos + 2:sos + 10] == bytes((0, 8, 1, 1, 0, 0, 63, 0))
    assert data[sos + 10:-2] == b"\x2b"


def test_entropy_data_is_byte_stuffed():
    data = b"".join(encode(32, 32, 3, noise(32, 32, 3, seed=7)))
    sos = data.index(b"\xff\xda")
    length = struct.unpack(">H", data[sos + 2:sos + 4])[0]
    scan = data[sos + 2 + length:-2]
    for i, value in enumerate(scan):
        if value == 0xFF:
            assert scan[i + 1] == 0


def test_deterministic_output():
    pixels = noise(24, 16, 3, seed=3)
    first = b"".join(encode(24, 16, 3, pixels))
    second = b"".join(encode(24, 16, 3, pixels))
    assert first[:2] == b"\xff\xd8"
    assert first[-2:] == b"\xff\xd9"
    assert len(first) == len(second)
    assert first == second


def test_higher_quality_is_larger():
    pixels = noise(32, 32, 3, seed=5)
    low = b"".join(encode(32, 32, 3, pixels, EncoderParams(quality=10)))
    high = b"".join(encode(32, 32, 3, pixels, EncoderParams(quality=95)))
    assert len(high) > len(low)


@pytest.mark.parametrize(
    "width, height, channels",
    [(0, 8, 3), (8, 0, 3), (8, 8, 2), (8, 8, 5)],
)
def test_invalid_init_arguments(width, height, channels):
    with pytest.raises(ValueError):
        JpegEncoder(lambda chunk: None, width, height, channels)


def test_invalid_params_rejected():
    with pytest.raises(ValueError):
        JpegEncoder(lambda chunk: None, 8, 8, 3, EncoderParams(quality=0))


def test_short_scanline_rejected():
    encoder = JpegEncoder(lambda chunk: None, 8, 8, 3)
    with pytest.raises(ValueError):
        encoder.process_scanline(bytes(5))


def test_use_after_finish_raises():
    encoder = JpegEncoder(lambda chunk: None, 8, 8, 3)
    encoder.finish()
    with pytest.raises(EncoderError):
        encoder.process_scanline(bytes(24))
    with pytest.raises(EncoderError):
        encoder.finish()


def test_failing_stream_raises():
    with pytest.raises(EncoderError):
        JpegEncoder(lambda chunk: False, 8, 8, 3)


def test_stream_failing_later_raises_on_finish():
    calls = []

    def write(chunk):
        calls.append(chunk)
        return len(calls) < 2

    encoder = JpegEncoder(write, 8, 8, 3)
    with pytest.raises(EncoderError):
        for _ in range(8):
            encoder.process_scanline(bytes(24))
        encoder.finish()
    assert len(calls) == 2


def test_four_channel_input_accepted():
    data = b"".join(encode(8, 8, 4, noise(8, 8, 4)))
    assert data[-2:] == b"\xff\xd9"


@settings(max_examples=15, deadline=None)
@given(
    width=st.integers(1, 20),
    height=st.integers(1, 20),
    subsampling=st.sampled_from(list(Subsampling)),
    quality=st.integers(1, 100),
)
def test_any_size_produces_complete_stream(width, height, subsampling, quality):
    channels = 1 if subsampling == Subsampling.Y_ONLY else 3
    params = EncoderParams(quality=quality, subsampling=subsampling)
    data = b"".join(encode(width, height, channels, noise(width, height, channels), params))
    assert data[:2] == b"\xff\xd8"
    assert data[-2:] == b"\xff\xd9"
    _, sof = find_segment(data, 0xC0)
    assert struct.unpack(">HH", sof[1:5]) == (height, width)