# camconv

Pure-Python conversions for raw camera frames. The package encodes frames from
image sensors as baseline JPEG, builds BMP files from them, and converts them to
packed 3-byte-per-pixel data. It needs nothing outside the standard library.

## Pixel formats

`camconv.pixformat.PixFormat` names the source layouts:

- `RGB565`: 2 bytes per pixel, high byte first
- `RGB888`: 3 bytes per pixel
- `YUV422`: YUYV order, 4 bytes for every 2 pixels
- `GRAYSCALE`: 1 byte per pixel
- `JPEG`: already-encoded data (rejected by every converter, see below)

`PixFormat.bytes_per_pixel` gives 2, 3 or 1, or `None` for `JPEG`.
`camconv.pixformat.Frame` is a frozen dataclass holding `buf`, `width`,
`height` and `format`; `len(frame)` is the length of its buffer.

## Encoding to JPEG

```python
from camconv.pixformat import PixFormat
from camconv.to_jpg import fmt2jpg

width, height = 32, 16
gray = bytes((x * 8) % 256 for _ in range(height) for x in range(width))
jpeg_bytes = fmt2jpg(gray, width, height, PixFormat.GRAYSCALE, 80)
```

Grayscale input gives a single-component JPEG; every other format is encoded
in colour with 2x2 (H2V2) chroma subsampling. Quality is clamped to 1..100, so
0 acts as 1. RGB888 sources are taken to be stored blue first and are reordered
before encoding. `fmt2jpg` collects the output in memory and keeps at most
`camconv.to_jpg.JPG_BUF_LEN` (128 KiB) bytes; anything beyond is dropped.

To stream the output instead, use `fmt2jpg_cb` with a callback. It is called as
`callback(index, data)` with the running offset and the next chunk (at most 512
bytes), and with an empty chunk once the image is complete. It returns how many
bytes it took; `None` counts as all of them. `fmt2jpg_cb` returns the final
offset.

```python
from camconv.to_jpg import fmt2jpg_cb

chunks = []

def sink(index, data):
    chunks.append(bytes(data))
    return len(data)

total = fmt2jpg_cb(gray, width, height, PixFormat.GRAYSCALE, 80, sink)
```

`frame2jpg` and `frame2jpg_cb` do the same for a `Frame`.
`convert_line_format(src, fmt, width, line)` returns a single scanline as
encoder input: one byte per pixel for grayscale, R, G, B triples otherwise.

A source buffer shorter than the image needs raises `ValueError`, as does a
`JPEG` source.

## Lower-level encoder

`camconv.jpeg_encoder.JpegEncoder(write, width, height, channels, params)` is a
streaming baseline JPEG encoder. `write` is called with output chunks and an
empty chunk at the end; if it returns `False` the write counts as failed.
`channels` is 1, 3 or 4, and `params` is an `EncoderParams` with `quality`
(default 85) and `subsampling`, a `Subsampling` of `Y_ONLY`, `H1V1`, `H2V1` or
`H2V2` (default). `EncoderParams.check()` reports whether the values are in
range.

Call `process_scanline` once per row with `width * channels` bytes (RGB or
luminance), then `finish`. A bad size, channel count or parameter set raises
`ValueError`. `EncoderError` is raised when a write fails or when the encoder is
used after `finish`.

## BMP and RGB888

```python
from camconv.to_bmp import fmt2bmp, fmt2rgb888

bmp_bytes = fmt2bmp(gray, width, height, PixFormat.GRAYSCALE)
rgb = fmt2rgb888(gray, PixFormat.GRAYSCALE)
```

BMP files are top-down (negative height in the header) at 72 DPI. Grayscale
frames become 8-bit images with a 256-entry grey palette; all other formats
become 24-bit, with RGB565 and YUV422 written blue first and RGB888 copied as
it is. `frame2bmp` takes a `Frame`.

`fmt2rgb888` converts a whole buffer to three bytes per pixel: RGB565 and
YUV422 come out blue first, RGB888 is returned unchanged and grayscale is
repeated into all three bytes.

## Colour helpers

- `camconv.yuv.yuv2rgb(y, u, v)` converts one YUV sample to an `(r, g, b)`
  tuple using fixed-point tables; values outside 0..255 raise `ValueError`.
- `camconv.jpeg_core` holds the encoder's building blocks:
  `compute_huffman_table`, `quantization_table`, `rgb_to_ycc`, `rgb_to_y`,
  `y_to_ycc`, `fdct_8x8`, and the standard JPEG tables.

## What it does not do

There is no JPEG decoder. JPEG frames cannot be turned into BMP or RGB888, and
the converters raise `ValueError` for them. The package only converts buffers
it is given; it does not talk to cameras or capture frames, and it has no
command-line tool or server.

## Running the tests

```
pip install -e ".[test]"
pytest
```