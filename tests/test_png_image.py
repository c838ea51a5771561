import pytest

from matools.png_image import (
    Chunk,
    ColorType,
    PngImage,
    get_pixel_reader,
    get_pixel_writer,
    pixelsize_for_format,
    png_id,
)


def _rgba_image(pixels, w, h):
    image = PngImage()
    image.allocate_pixels(w, h, 8, ColorType.RGBA)
    image.pixels[:] = bytes(c for px in pixels for c in px)
    return image


def _rgba_tuples(image):
    data = bytes(image.pixels)
    return [tuple(data[i:i + 4]) for i in range(0, len(data), 4)]


def test_png_id_matches_chunk_name_bytes():
    assert png_id("IHDR") == 0x49484452
    assert png_id(b"PLTE") == png_id("PLTE")


def test_png_id_rejects_wrong_length():
    with pytest.raises(ValueError):
        png_id("ABC")


@pytest.mark.parametrize(
    "depth,colortype",
    [(16, ColorType.INDEX), (4, ColorType.RGB), (3, ColorType.GRAY), (8, 1), (8, 5)],
)
def test_pixelsize_invalid_formats(depth, colortype):
    assert pixelsize_for_format(depth, colortype) == 0


def test_pixelsize_valid_formats_scale_with_channels():
    assert pixelsize_for_format(8, ColorType.GRAY) == 8
    assert pixelsize_for_format(8, ColorType.RGBA) == 4 * pixelsize_for_format(8, ColorType.GRAY)
    assert pixelsize_for_format(16, ColorType.RGB) == 3 * pixelsize_for_format(16, ColorType.GRAY)
    assert pixelsize_for_format(8, ColorType.GRAYA) == 2 * pixelsize_for_format(8, ColorType.INDEX)


def test_allocate_pixels_sets_fields_and_zeroes():
    image = PngImage()
    image.allocate_pixels(5, 2, 8, ColorType.RGB)
    assert (image.w, image.h, image.depth, image.colortype) == (5, 2, 8, ColorType.RGB)
    assert image.stride == 5 * 3
    assert image.pixels == bytearray(5 * 3 * 2)


def test_allocate_pixels_rounds_stride_up_to_whole_bytes():
    image = PngImage()
    image.allocate_pixels(9, 1, 1, ColorType.GRAY)
    assert image.stride == 2
    assert len(image.pixels) == image.stride * image.h


@pytest.mark.parametrize("w,h", [(0, 1), (1, 0), (-3, 4)])
def test_allocate_pixels_rejects_bad_dimensions(w, h):
    with pytest.raises(ValueError):
        PngImage().allocate_pixels(w, h, 8, ColorType.RGBA)


def test_allocate_pixels_rejects_bad_format():
    with pytest.raises(ValueError):
        PngImage().allocate_pixels(4, 4, 16, ColorType.INDEX)


def test_chunks_first_match_and_missing():
    image = PngImage()
    source = bytearray(b"abc")
    image.add_chunk(png_id("tEXt"), source)
    image.add_chunk(png_id("tEXt"), b"second")
    source[0] = ord("z")
    assert image.get_chunk(png_id("tEXt")) == b"abc"
    assert image.get_chunk(png_id("zTXt")) is None
    assert image.chunks[1] == Chunk(png_id("tEXt"), b"second")


def test_same_format_convert_copies_independently():
    src = _rgba_image([(1, 2, 3, 4), (5, 6, 7, 8)], 2, 1)
    src.add_chunk(png_id("tEXt"), b"x")
    dst = src.convert(8, ColorType.RGBA)
    assert dst.pixels == src.pixels
    assert dst.chunks == []
    dst.pixels[0] = 99
    assert src.pixels[0] == 1


def test_rgba_to_rgb_and_back_sets_opaque():
    pixels = [(10, 20, 30, 0), (200, 100, 50, 128)]
    src = _rgba_image(pixels, 2, 1)
    rgb = src.convert(8, ColorType.RGB)
    assert bytes(rgb.pixels) == bytes([10, 20, 30, 200, 100, 50])
    back = rgb.convert(8, ColorType.RGBA)
    assert _rgba_tuples(back) == [(10, 20, 30, 0xFF), (200, 100, 50, 0xFF)]


def test_rgba16_round_trip_preserves_8bit_values():
    pixels = [(1, 2, 3, 4), (250, 251, 252, 253), (0, 128, 255, 64)]
    src = _rgba_image(pixels, 3, 1)
    wide = src.convert(16, ColorType.RGBA)
    assert _rgba_tuples(wide.convert(8, ColorType.RGBA)) == pixels


def test_gray1_conversion_thresholds_and_reads_back():
    src = _rgba_image([(255, 255, 255, 255), (0, 0, 0, 255), (200, 200, 200, 255)], 3, 1)
    mono = src.convert(1, ColorType.GRAY)
    reader = get_pixel_reader(1, ColorType.GRAY)
    row = memoryview(mono.pixels)
    assert reader(row, 0) == 0xFFFFFFFF
    assert reader(row, 1) == 0x000000FF
    assert reader(row, 2) == 0xFFFFFFFF


def test_gray8_round_trip_keeps_gray_values():
    values = [0, 17, 128, 255]
    src = _rgba_image([(v, v, v, 255) for v in values], 4, 1)
    gray = src.convert(8, ColorType.GRAY)
    assert list(gray.pixels) == values
    assert _rgba_tuples(gray.convert(8, ColorType.RGBA)) == [(v, v, v, 255) for v in values]


@pytest.mark.parametrize(
    "depth,colortype",
    [(d, ColorType.GRAY) for d in (8, 16)]
    + [(d, ColorType.GRAYA) for d in (8, 16)]
    + [(d, ColorType.RGB) for d in (8, 16)]
    + [(d, ColorType.RGBA) for d in (8, 16)],
)
def test_writer_then_reader_round_trip_for_gray_pixels(depth, colortype):
    image = PngImage()
    image.allocate_pixels(3, 1, depth, colortype)
    writer = get_pixel_writer(depth, colortype)
    reader = get_pixel_reader(depth, colortype)
    row = memoryview(image.pixels)
    has_alpha = colortype in (ColorType.GRAYA, ColorType.RGBA)
    for x, v in enumerate((0, 90, 255)):
        px = (v << 24) | (v << 16) | (v << 8) | 0x40
        writer(row, x, px)
        expected_alpha = 0x40 if has_alpha else 0xFF
        assert reader(row, x) == (px & 0xFFFFFF00) | expected_alpha


@pytest.mark.parametrize("depth", [2, 4])
def test_low_depth_gray_extremes_round_trip(depth):
    image = PngImage()
    image.allocate_pixels(4, 1, depth, ColorType.GRAY)
    writer = get_pixel_writer(depth, ColorType.GRAY)
    reader = get_pixel_reader(depth, ColorType.GRAY)
    row = memoryview(image.pixels)
    pattern = [0xFFFFFFFF, 0x000000FF, 0x000000FF, 0xFFFFFFFF]
    for x, px in enumerate(pattern):
        writer(row, x, px)
    assert [reader(row, x) for x in range(4)] == pattern


def test_unsupported_accessors_are_none():
    assert get_pixel_reader(4, ColorType.RGB) is None
    assert get_pixel_writer(2, ColorType.RGBA) is None


def _indexed(depth, w, rowbytes, plte=None, trns=None):
    image = PngImage()
    image.allocate_pixels(w, 1, depth, ColorType.INDEX)
    image.pixels[:] = bytes(rowbytes)
    if plte is not None:
        image.add_chunk(png_id("PLTE"), plte)
    if trns is not None:
        image.add_chunk(png_id("tRNS"), trns)
    return image


def test_index8_to_rgba_uses_palette_and_trns():
    plte = bytes([10, 20, 30, 40, 50, 60])
    src = _indexed(8, 3, [0, 1, 2], plte=plte, trns=bytes([7]))
    out = src.convert(8, ColorType.RGBA)
    assert _rgba_tuples(out) == [(10, 20, 30, 7), (40, 50, 60, 0xFF), (0, 0, 0, 0xFF)]


def test_index8_to_rgb_fast_path():
    plte = bytes([1, 2, 3, 4, 5, 6])
    src = _indexed(8, 2, [1, 0], plte=plte)
    assert bytes(src.convert(8, ColorType.RGB).pixels) == bytes([4, 5, 6, 1, 2, 3])


def test_index1_to_rgba16_expands_bits():
    plte = bytes([9, 8, 7, 100, 110, 120])
    src = _indexed(1, 3, [0b10100000], plte=plte)
    out = src.convert(16, ColorType.RGBA).convert(8, ColorType.RGBA)
    assert _rgba_tuples(out) == [
        (100, 110, 120, 0xFF),
        (9, 8, 7, 0xFF),
        (100, 110, 120, 0xFF),
    ]


def test_index2_to_rgba16_with_trns():
    plte = bytes([11, 12, 13, 21, 22, 23, 31, 32, 33])
    src = _indexed(2, 4, [0b00011011], plte=plte, trns=bytes([5, 6]))
    out = src.convert(16, ColorType.RGBA).convert(8, ColorType.RGBA)
    assert _rgba_tuples(out) == [
        (11, 12, 13, 5),
        (21, 22, 23, 6),
        (31, 32, 33, 0xFF),
        (0, 0, 0, 0xFF),
    ]


def test_index_without_plte_behaves_like_gray():
    src = _indexed(8, 2, [0x40, 0xC0])
    out = src.convert(8, ColorType.RGBA)
    assert _rgba_tuples(out) == [(0x40, 0x40, 0x40, 0xFF), (0xC0, 0xC0, 0xC0, 0xFF)]


def test_convert_to_invalid_format_raises():
    src = _rgba_image([(1, 2, 3, 4)], 1, 1)
    with pytest.raises(ValueError):
        src.convert(3, ColorType.RGB)