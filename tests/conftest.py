import io
import struct
import zlib

import pytest
from PIL import Image


def ozt_bytes(width, height, bgra, depth=32):
    header = b"\x00" * 16 + struct.pack("<hhBB", width, height, depth, 0)
    return header + bytes(bgra)


def image_bytes(img, fmt, **params):
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


def png_header_bytes(width, height):
    """PNG whose IHDR declares width x height; the pixel data never follows."""
    def chunk(kind, payload):
        return (struct.pack(">I", len(payload)) + kind + payload
                + struct.pack(">I", zlib.crc32(kind + payload) & 0xFFFFFFFF))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr)
            + chunk(b"IDAT", zlib.compress(b"\x00" * 16)) + chunk(b"IEND", b""))


def ozj_bytes(jpeg, offset=24, orientation=0):
    header = bytearray(offset)
    header[17] = orientation
    return bytes(header) + jpeg


@pytest.fixture
def make_ozt():
    return ozt_bytes


@pytest.fixture
def make_ozj():
    return ozj_bytes


@pytest.fixture
def jpeg_data():
    """16x16 JPEG, top half white, bottom half black."""
    img = Image.new("RGB", (16, 16), (0, 0, 0))
    img.paste((255, 255, 255), (0, 0, 16, 8))
    return image_bytes(img, "JPEG", quality=95)


@pytest.fixture
def png_data():
    return image_bytes(Image.new("RGB", (3, 2), (10, 20, 30)), "PNG")


@pytest.fixture
def tga_data():
    return image_bytes(Image.new("RGBA", (2, 2), (1, 2, 3, 128)), "TGA")


@pytest.fixture
def texture_dir(tmp_path, jpeg_data, png_data, tga_data):
    """A small client Data tree with one file of every supported kind."""
    root = tmp_path / "Data"
    item = root / "Item"
    item.mkdir(parents=True)
    (item / "Weapon01.jpg").write_bytes(jpeg_data)
    (item / "Shield.OZJ").write_bytes(ozj_bytes(jpeg_data))
    (item / "Wing.ozt").write_bytes(ozt_bytes(1, 1, [0x10, 0x20, 0x30, 0x80]))
    (item / "Cape.tga").write_bytes(tga_data)
    (item / "Face.png").write_bytes(png_data)
    return root


@pytest.fixture
def oversized_png():
    """40000x40000 PNG header, far past Pillow's decompression bomb limit."""
    return png_header_bytes(40000, 40000)
