"""Helpers for performing tests."""
from typing import List, Tuple
import struct

from vtfloader import Pixel, PixelBuffer


__all__ = [
    'HEADER_FMT', 'make_header', 'make_vtf', 'pixel_rows',
    'DXT1_WHITE_BLACK', 'DXT1_BLACK_WHITE', 'FailingStore',
]

# Written out independently from the loader, so mistakes there aren't duplicated.
HEADER_FMT = '<4sIIIHHIHH4xfff4xfiBiBBH15x'

# Endpoints for DXT colour blocks, in little-endian order.
DXT1_WHITE_BLACK = b'\xFF\xFF\x00\x00'
DXT1_BLACK_WHITE = b'\x00\x00\xFF\xFF'


def make_header(
    width: int, height: int,
    fmt: int,
    *,
    frames: int = 1,
    mipmaps: int = 1,
    version: Tuple[int, int] = (7, 2),
    depth: int = 1,
    flags: int = 0,
    signature: bytes = b'VTF\0',
) -> bytes:
    """Construct the 80-byte header."""
    return struct.pack(
        HEADER_FMT,
        signature,
        version[0], version[1],
        80,
        width, height,
        flags,
        frames,
        0,  # First frame
        0.25, 0.5, 0.75,  # Reflectivity
        1.0,  # Bumpmap scale
        fmt,
        mipmaps,
        -1,  # No low-res image
        0, 0,
        depth,
    )


def make_vtf(
    width: int, height: int,
    fmt: int,
    payload: bytes,
    *,
    thumbnail: bytes = b'',
    **kwargs: object,
) -> bytes:
    """Construct an entire file. The thumbnail is ignored when decoding, so it can be junk."""
    return make_header(width, height, fmt, **kwargs) + thumbnail + payload  # type: ignore[arg-type]


def pixel_rows(pixbuf: PixelBuffer) -> List[List[Pixel]]:
    """Read all the pixels out of the buffer."""
    return [
        [pixbuf[x, y] for x in range(pixbuf.width)]
        for y in range(pixbuf.height)
    ]


class FailingStore(bytearray):
    """A byte store which can't be enlarged, as if memory ran out."""
    def extend(self, data: object) -> None:
        raise MemoryError
