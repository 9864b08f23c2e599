import pytest
from hypothesis import given
from hypothesis import strategies as st

from camconv.yuv import yuv2rgb

byte = st.integers(min_value=0, max_value=255)


@given(byte, byte, byte)
def test_output_is_three_bytes(y, u, v):
    rgb = yuv2rgb(y, u, v)
    assert len(rgb) == 3
    assert all(0 <= c <= 255 for c in rgb)


@given(byte)
def test_neutral_chroma_is_grey(y):
    r, g, b = yuv2rgb(y, 128, 128)
    assert r == g == b


def test_black_and_white_extremes():
    assert yuv2rgb(0, 128, 128) == (0, 0, 0)
    assert yuv2rgb(255, 128, 128) == (255, 255, 255)


def test_all_max_saturates_red_and_blue():
    r, _, b = yuv2rgb(255, 255, 255)
    assert r == 255
    assert b == 255


@given(byte, byte)
def test_luma_is_monotonic(u, v):
    previous = yuv2rgb(0, u, v)
    for y in range(1, 256):
        current = yuv2rgb(y, u, v)
        assert all(c >= p for c, p in zip(current, previous))
        previous = current


@given(byte, byte)
def test_red_rises_with_v_and_blue_with_u(y, other):
    reds = [yuv2rgb(y, other, v)[0] for v in range(256)]
    blues = [yuv2rgb(y, u, other)[2] for u in range(256)]
    assert reds == sorted(reds)
    assert blues == sorted(blues)


@given(byte, byte, byte)
def test_red_ignores_u_and_blue_ignores_v(y, u, v):
    r, _, b = yuv2rgb(y, u, v)
    assert r == yuv2rgb(y, 0, v)[0]
    assert b == yuv2rgb(y, u, 0)[2]


@pytest.mark.parametrize(
    "args", [(-1, 0, 0), (0, 256, 0), (0, 0, 300), (256, 128, 128)]
)
def test_out_of_range_rejected(args):
    with pytest.raises(ValueError):
        yuv2rgb(*args)