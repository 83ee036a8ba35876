import pytest

from oz_textures import (
    OZJ,
    OZT,
    DecodedBitmap,
    DecodeError,
    TruncatedData,
    UnsupportedContainer,
    decode_oz_container,
    decode_ozt,
    decode_standard_image,
    decode_texture_bytes,
    sniff_container,
)


@pytest.mark.parametrize("offset", range(20, 30))
def test_sniff_finds_jpeg_marker_in_scan_window(offset):
    data = bytes(offset) + b"\xff\xd8\xff" + bytes(8)
    info = sniff_container(data)
    assert info.kind == OZJ
    assert info.offset == offset


def test_sniff_ignores_marker_outside_scan_window():
    data = bytes(30) + b"\xff\xd8\xff" + bytes(8)
    with pytest.raises(UnsupportedContainer):
        sniff_container(data)


def test_sniff_marker_needs_three_bytes_inside_buffer():
    # Marker cut off at the end of the buffer
    data = bytes(28) + b"\xff\xd8"
    with pytest.raises(UnsupportedContainer):
        sniff_container(data)


def test_sniff_classifies_ozt(make_ozt):
    info = sniff_container(make_ozt(2, 1, bytes(8)))
    assert info.kind == OZT
    assert (info.width, info.height) == (2, 1)


@pytest.mark.parametrize("width,height,depth", [
    (0, 1, 32),
    (1, 0, 32),
    (1025, 1, 32),
    (1, 1025, 32),
    (-1, 1, 32),
    (1, 1, 24),
])
def test_sniff_rejects_invalid_ozt_headers(make_ozt, width, height, depth):
    data = make_ozt(width, height, bytes(64), depth=depth)
    with pytest.raises(UnsupportedContainer):
        sniff_container(data)


def test_sniff_rejects_tiny_buffer():
    with pytest.raises(UnsupportedContainer):
        sniff_container(b"\x00" * 10)


def test_sniff_rejects_ozt_shorter_than_declared(make_ozt):
    with pytest.raises(UnsupportedContainer):
        sniff_container(make_ozt(2, 2, bytes(15)))


def test_ozt_reorders_bgra_to_rgba(make_ozt):
    data = make_ozt(2, 1, [0x00, 0x00, 0xFF, 0xFF, 0x10, 0x20, 0x30, 0xFF])
    bitmap = decode_oz_container(data)
    assert (bitmap.width, bitmap.height) == (2, 1)
    assert bitmap.pixels == bytes([0xFF, 0x00, 0x00, 0xFF, 0x30, 0x20, 0x10, 0xFF])


def test_ozt_keeps_source_row_order(make_ozt):
    top = [1, 2, 3, 4]
    bottom = [5, 6, 7, 8]
    bitmap = decode_ozt(make_ozt(1, 2, top + bottom))
    assert bitmap.pixel(0, 0) == (3, 2, 1, 4)
    assert bitmap.pixel(0, 1) == (7, 6, 5, 8)


def test_ozt_ignores_trailing_bytes(make_ozt):
    bitmap = decode_ozt(make_ozt(1, 1, [1, 2, 3, 4, 99, 99]))
    assert bitmap.pixels == bytes([3, 2, 1, 4])


def test_ozt_decoding_is_deterministic(make_ozt):
    data = make_ozt(3, 2, range(24))
    assert decode_ozt(data) == decode_ozt(data)


@pytest.mark.parametrize("available", [0, 1, 15])
def test_ozt_truncated_pixel_data(make_ozt, available):
    data = make_ozt(2, 2, bytes(available))
    with pytest.raises(TruncatedData):
        decode_ozt(data)


def test_ozt_truncated_header():
    with pytest.raises(TruncatedData):
        decode_ozt(b"\x00" * 21)


def test_ozj_decodes_embedded_jpeg(make_ozj, jpeg_data):
    bitmap = decode_oz_container(make_ozj(jpeg_data))
    assert (bitmap.width, bitmap.height) == (16, 16)
    assert len(bitmap.pixels) == 16 * 16 * 4
    assert bitmap.pixel(0, 0)[3] == 255


@pytest.mark.parametrize("orientation", [0, 1])
def test_ozj_orientation_flag_does_not_flip(make_ozj, jpeg_data, orientation):
    bitmap = decode_oz_container(make_ozj(jpeg_data, orientation=orientation))
    assert bitmap.pixel(8, 0)[0] > 200
    assert bitmap.pixel(8, 15)[0] < 50


def test_ozj_with_corrupt_stream_raises_decode_error():
    data = bytes(20) + b"\xff\xd8\xff" + b"not really a jpeg"
    with pytest.raises(DecodeError) as excinfo:
        decode_oz_container(data, path="broken.ozj")
    assert "broken.ozj" in str(excinfo.value)


def test_standard_image_gets_alpha(png_data):
    bitmap = decode_standard_image(png_data)
    assert (bitmap.width, bitmap.height) == (3, 2)
    assert bitmap.pixel(2, 1) == (10, 20, 30, 255)


def test_tga_decodes_without_reordering(tga_data):
    bitmap = decode_texture_bytes(tga_data, "tga")
    assert bitmap.pixel(1, 1) == (1, 2, 3, 128)


def test_standard_image_rejects_garbage():
    with pytest.raises(DecodeError):
        decode_standard_image(b"definitely not an image")


def test_standard_image_rejects_decompression_bomb(oversized_png):
    with pytest.raises(DecodeError) as excinfo:
        decode_standard_image(oversized_png, "huge.png")
    assert excinfo.value.path == "huge.png"


def test_bitmap_validates_buffer_size():
    with pytest.raises(ValueError):
        DecodedBitmap(pixels=bytes(7), width=1, height=2)


def test_bitmap_png_roundtrip(make_ozt):
    bitmap = decode_ozt(make_ozt(2, 1, [0, 0, 255, 255, 16, 32, 48, 128]))
    assert decode_standard_image(bitmap.to_png_bytes()) == bitmap
