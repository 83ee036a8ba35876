#!/usr/bin/env python3
"""
Decode MU Online OZJ / OZT texture containers to canonical RGBA bitmaps.

OZJ wraps a JPEG stream behind a small header; OZT holds raw 32-bit BGRA
pixels behind a fixed 22-byte header. Everything else (jpg, png, tga) goes
straight to Pillow.
"""

import io
import struct
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from texture_match import split_extension

# JPEG start-of-image marker, searched for inside the OZJ header
JPEG_SOI = b"\xff\xd8\xff"
OZJ_SCAN_START = 20
OZJ_SCAN_END = 30
OZJ_ORIENTATION_OFFSET = 17

# OZT header: 16 reserved bytes + width:int16 + height:int16 + depth:uint8 + 1 reserved
OZT_HEADER_SIZE = 22
OZT_DIMENSION_OFFSET = 16
OZT_DEPTH_OFFSET = 20
OZT_MAX_DIMENSION = 1024
OZT_DEPTH = 32

OZJ = "ozj"
OZT = "ozt"


# ── Errors ───────────────────────────────────────────────────────────────────

class TextureError(RuntimeError):
    """Base class for every texture conversion / binding failure."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path

    def __str__(self):
        message = super().__str__()
        return f"{self.path}: {message}" if self.path else message


class UnsupportedContainer(TextureError):
    pass


class TruncatedData(TextureError):
    pass


class DecodeError(TextureError):
    pass


class NoMatchingTexture(TextureError):
    """A mesh asked for a texture no discovered file could satisfy."""


class NoMatchingMesh(TextureError):
    """A discovered texture was not consumed by any mesh."""


# ── Bitmap ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DecodedBitmap:
    """Row-major RGBA pixels, first row is the top of the image."""
    pixels: bytes
    width: int
    height: int

    def __post_init__(self):
        if len(self.pixels) != self.width * self.height * 4:
            raise ValueError(
                f"pixel buffer is {len(self.pixels)} bytes, "
                f"expected {self.width}x{self.height}x4"
            )

    def pixel(self, x, y):
        i = (y * self.width + x) * 4
        return tuple(self.pixels[i : i + 4])

    def to_image(self):
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    def to_png_bytes(self):
        buf = io.BytesIO()
        self.to_image().save(buf, format="PNG")
        return buf.getvalue()

    @classmethod
    def from_image(cls, img):
        img = img.convert("RGBA")
        return cls(pixels=img.tobytes(), width=img.width, height=img.height)


# ── Container sniffing ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContainerInfo:
    kind: str
    offset: int = 0          # start of the embedded JPEG stream (OZJ)
    width: int = 0           # OZT only
    height: int = 0          # OZT only
    orientation: int = 0     # OZJ header byte 17, read but not applied


def find_jpeg_stream(data):
    """Return the offset of the JPEG SOI marker in the OZJ scan window, or -1."""
    for i in range(OZJ_SCAN_START, min(OZJ_SCAN_END, len(data) - 2)):
        if data[i : i + 3] == JPEG_SOI:
            return i
    return -1


def read_ozt_header(data):
    """Unpack (width, height, depth) from an OZT header."""
    width, height = struct.unpack_from("<hh", data, OZT_DIMENSION_OFFSET)
    depth = data[OZT_DEPTH_OFFSET]
    return width, height, depth


def sniff_container(data, path=None):
    """Classify a raw buffer as OZJ or OZT.

    Raises UnsupportedContainer when neither layout fits.
    """
    jpeg_start = find_jpeg_stream(data)
    if jpeg_start != -1:
        return ContainerInfo(kind=OZJ, offset=jpeg_start,
                             orientation=data[OZJ_ORIENTATION_OFFSET])

    if len(data) < OZT_HEADER_SIZE:
        raise UnsupportedContainer(f"buffer too small for OZT ({len(data)} bytes)", path)

    width, height, depth = read_ozt_header(data)
    expected_size = OZT_HEADER_SIZE + width * height * 4
    looks_like_ozt = (
        0 < width <= OZT_MAX_DIMENSION
        and 0 < height <= OZT_MAX_DIMENSION
        and depth == OZT_DEPTH
        and expected_size <= len(data)
    )
    if not looks_like_ozt:
        raise UnsupportedContainer(
            f"unrecognized OZ container (width={width}, height={height}, depth={depth})", path
        )
    return ContainerInfo(kind=OZT, width=width, height=height)


# ── Decoders ─────────────────────────────────────────────────────────────────

def decode_standard_image(data, path=None):
    """Decode JPEG/PNG/TGA bytes with Pillow into an RGBA bitmap."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError,
            ValueError, SyntaxError) as e:
        raise DecodeError(f"image codec rejected stream: {e}", path) from e
    return DecodedBitmap.from_image(img)


def decode_ozj(data, offset, path=None):
    """Decode the JPEG stream embedded at `offset`.

    Header byte 17 (orientation) is not applied; the stream keeps its own
    row order.
    """
    return decode_standard_image(bytes(data[offset:]), path)


def decode_ozt(data, path=None):
    """Reinterpret the BGRA pixel stream of an OZT buffer as RGBA.

    Source row y maps to destination row y (no flip).
    """
    if len(data) < OZT_HEADER_SIZE:
        raise TruncatedData(f"OZT header needs {OZT_HEADER_SIZE} bytes, got {len(data)}", path)

    width, height, _ = read_ozt_header(data)
    if width <= 0 or height <= 0:
        raise UnsupportedContainer(f"invalid OZT dimensions {width}x{height}", path)

    pixel_bytes = width * height * 4
    if OZT_HEADER_SIZE + pixel_bytes > len(data):
        raise TruncatedData(
            f"OZT declares {width}x{height} ({pixel_bytes} pixel bytes) "
            f"but only {len(data) - OZT_HEADER_SIZE} are present",
            path,
        )

    bgra = np.frombuffer(data, dtype=np.uint8, count=pixel_bytes, offset=OZT_HEADER_SIZE)
    rgba = bgra.reshape(height, width, 4)[:, :, [2, 1, 0, 3]]
    return DecodedBitmap(pixels=rgba.tobytes(), width=width, height=height)


def decode_oz_container(data, path=None):
    """Sniff an OZJ/OZT buffer and dispatch to the matching decoder."""
    info = sniff_container(data, path)
    if info.kind == OZJ:
        return decode_ozj(data, info.offset, path)
    return decode_ozt(data, path)


def decode_texture_bytes(data, extension, path=None):
    """Decode a texture file's bytes according to its (normalized) extension."""
    if extension in (OZJ, OZT):
        return decode_oz_container(data, path)
    return decode_standard_image(data, path)


def decode_texture_file(path):
    path_str = str(path)
    with open(path_str, "rb") as f:
        data = f.read()
    return decode_texture_bytes(data, split_extension(path_str)[1], path_str)
