"""Functions for decoding VTF pixel data into RGB/RGBA buffers."""
# Wherever possible, use memoryview slicing to copy channels a row at a time.
# This is much faster than a loop. Rows must be written separately, since the
# destination buffer may be padded.

from typing import Callable, Dict, Iterable, List, NewType, Optional, Tuple
from typing_extensions import Buffer, TypeAlias

from .const import ImageFormats
from .errors import UnsupportedFormat
from .pixbuf import PixelBuffer


ROView = NewType('ROView', memoryview)
LoadFunc: TypeAlias = Callable[[PixelBuffer, ROView, int, int], None]
_LOAD: Dict[ImageFormats, LoadFunc] = {}


def upsample(bits: int, data: int) -> int:
    """Stretch bits worth of data to fill the byte.

    The value must already be shifted to the top of the byte. This is done by
    duplicating the MSBs to fill the remaining space, so 0 and the maximum map to 0 and 255.
    """
    return data | (data >> bits)


def decomp565(color: int) -> Tuple[int, int, int]:
    """Decompress a 16-bit 565-packed colour into an RGB triplet."""
    return (
        upsample(5, ((color >> 11) & 0b11111) << 3),
        upsample(6, ((color >> 5) & 0b111111) << 2),
        upsample(5, (color & 0b11111) << 3),
    )


def init(formats: Iterable[ImageFormats]) -> None:
    """Create a mapping from formats to functions."""
    glob = globals()
    for fmt in formats:
        try:
            _LOAD[fmt] = glob['load_' + fmt.name.casefold()]
        except KeyError:
            pass


def get_loader(fmt: Optional[ImageFormats], tag: int) -> LoadFunc:
    """Find the function for decoding this format.

    :raises UnsupportedFormat: If the format is unknown or not implemented.
    """
    if fmt is None:
        raise UnsupportedFormat(f'Unsupported VTF format {tag}!', tag)
    try:
        return _LOAD[fmt]
    except KeyError:
        raise UnsupportedFormat(f'Loading {fmt.name} ({tag}) is not implemented!', tag) from None


def supported_formats() -> List[ImageFormats]:
    """Return the formats which can be decoded."""
    return list(_LOAD)


def load(fmt: ImageFormats, pixbuf: PixelBuffer, data: Buffer) -> None:
    """Decode a whole 2D image from data in the given format, writing into the buffer."""
    width = pixbuf.width
    height = pixbuf.height
    func = get_loader(fmt, fmt.ind)
    if pixbuf.has_alpha != fmt.has_alpha:
        raise BufferError(
            f'{fmt.name} {"has" if fmt.has_alpha else "has no"} alpha, '
            f'but the pixel buffer {"does" if pixbuf.has_alpha else "does not"}.'
        )
    if len(pixbuf.pixels) < pixbuf.rowstride * height:
        raise BufferError(
            f"Incorrect pixel array size. Expected {pixbuf.rowstride * height} bytes, "
            f"got {len(pixbuf.pixels)} bytes."
        )
    view_data = ROView(memoryview(data).cast('B'))
    expected_size = fmt.frame_size(width, height)
    if view_data.nbytes != expected_size:
        raise BufferError(
            f"Incorrect data block size. Expected {expected_size} bytes, "
            f"got {view_data.nbytes} bytes."
        )
    func(pixbuf, view_data, width, height)


def load_channels(mode: str) -> LoadFunc:
    """Make a function for formats which store each channel as a byte.

    The mode gives the channels in the order they appear in the file.
    """
    size = len(mode)
    # For each destination channel, which source byte it comes from.
    offsets = [mode.index(chan) for chan in 'rgba'[:size]]

    def loader(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
        view_pix = memoryview(pixbuf.pixels)
        row_len = size * width
        for y in range(height):
            src = data[row_len * y: row_len * (y + 1)]
            dest = view_pix[pixbuf.rowstride * y: pixbuf.rowstride * y + row_len]
            for dest_off, src_off in enumerate(offsets):
                dest[dest_off::size] = src[src_off::size]

    loader.__name__ = 'load_' + mode
    return loader


load_rgba8888 = load_channels('rgba')
load_abgr8888 = load_channels('abgr')
load_bgra8888 = load_channels('bgra')
# This is totally the wrong order, but it's how files are actually read.
load_argb8888 = load_channels('gbar')

load_rgb888 = load_channels('rgb')
load_bgr888 = load_channels('bgr')


def load_rgb565(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """RGB format, packed into 2 little-endian bytes by dropping LSBs."""
    pixels = pixbuf.pixels
    for y in range(height):
        row = pixbuf.rowstride * y
        for x in range(width):
            offset = 2 * (width * y + x)
            pixels[row + 3 * x: row + 3 * x + 3] = bytes(decomp565(
                data[offset] | data[offset + 1] << 8
            ))


def load_i8(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """I8 format, R=G=B"""
    view_pix = memoryview(pixbuf.pixels)
    for y in range(height):
        src = data[width * y: width * (y + 1)]
        dest = view_pix[pixbuf.rowstride * y: pixbuf.rowstride * y + 3 * width]
        dest[0::3] = src
        dest[1::3] = src
        dest[2::3] = src


def load_ia88(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """I8 format, R=G=B + A"""
    view_pix = memoryview(pixbuf.pixels)
    for y in range(height):
        src = data[2 * width * y: 2 * width * (y + 1)]
        dest = view_pix[pixbuf.rowstride * y: pixbuf.rowstride * y + 4 * width]
        dest[0::4] = dest[1::4] = dest[2::4] = src[0::2]
        dest[3::4] = src[1::2]

# ImageFormats.P8 is not implemented by Valve either.


def load_a8(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """Single alpha bytes, on white."""
    view_pix = memoryview(pixbuf.pixels)
    white = b'\xFF' * width
    for y in range(height):
        dest = view_pix[pixbuf.rowstride * y: pixbuf.rowstride * y + 4 * width]
        dest[0::4] = dest[1::4] = dest[2::4] = white
        dest[3::4] = data[width * y: width * (y + 1)]


def write_block(
    pixbuf: PixelBuffer,
    block_x: int, block_y: int,
    table: List[bytes],
    lookup: int,
    bits: int,
    channel: int = 0,
) -> None:
    """Write a 4x4 block of pixels, using a packed index into the table for each.

    Each table entry is written starting at the given channel. The first pixel
    uses the lowest bits. Pixels outside the image are skipped, but still consume
    their index.
    """
    pixels = pixbuf.pixels
    mask = (1 << bits) - 1
    for y in range(block_y, block_y + 4):
        for x in range(block_x, block_x + 4):
            if x < pixbuf.width and y < pixbuf.height:
                entry = table[lookup & mask]
                pos = pixbuf.rowstride * y + 4 * x + channel
                pixels[pos: pos + len(entry)] = entry
            lookup >>= bits


def color_table(data: ROView, offset: int, has_black: bool) -> List[bytes]:
    """Decode the two 565 endpoints at this position, and interpolate the palette.

    If has_black is set and the first colour is not larger, the palette has
    a midpoint and transparent black instead of two interpolated colours.
    The entries are RGBA if has_black is set, RGB otherwise.
    """
    color0 = data[offset] | data[offset + 1] << 8
    color1 = data[offset + 2] | data[offset + 3] << 8
    r0, g0, b0 = decomp565(color0)
    r1, g1, b1 = decomp565(color1)
    alpha = (255, ) if has_black else ()

    if color0 > color1 or not has_black:
        c2 = (
            (4 * r0 + 2 * r1 + 3) // 6,
            (4 * g0 + 2 * g1 + 3) // 6,
            (4 * b0 + 2 * b1 + 3) // 6,
            *alpha,
        )
        c3 = (
            (2 * r0 + 4 * r1 + 3) // 6,
            (2 * g0 + 4 * g1 + 3) // 6,
            (2 * b0 + 4 * b1 + 3) // 6,
            *alpha,
        )
    else:
        c2 = (
            (r0 + r1 + 1) // 2,
            (g0 + g1 + 1) // 2,
            (b0 + b1 + 1) // 2,
            255,
        )
        c3 = (0, 0, 0, 0)
    return [
        bytes((r0, g0, b0, *alpha)),
        bytes((r1, g1, b1, *alpha)),
        bytes(c2),
        bytes(c3),
    ]


def alpha_table(alpha0: int, alpha1: int) -> List[bytes]:
    """Build the 8-entry alpha palette for a DXT5 block."""
    if alpha0 > alpha1:
        table = [
            alpha0,
            alpha1,
            (12 * alpha0 + 2 * alpha1 + 7) // 14,
            (10 * alpha0 + 4 * alpha1 + 7) // 14,
            (8 * alpha0 + 6 * alpha1 + 7) // 14,
            (6 * alpha0 + 8 * alpha1 + 7) // 14,
            (4 * alpha0 + 10 * alpha1 + 7) // 14,
            (2 * alpha0 + 12 * alpha1 + 7) // 14,
        ]
    else:
        table = [
            alpha0,
            alpha1,
            (8 * alpha0 + 2 * alpha1 + 5) // 10,
            (6 * alpha0 + 4 * alpha1 + 5) // 10,
            (4 * alpha0 + 6 * alpha1 + 5) // 10,
            (2 * alpha0 + 8 * alpha1 + 5) // 10,
            0,
            255,
        ]
    return [bytes((alpha, )) for alpha in table]


def load_dxt1(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """Load compressed DXT1 data, with 1-bit alpha."""
    block_off = 0
    for block_y in range(0, height, 4):
        for block_x in range(0, width, 4):
            table = color_table(data, block_off, True)
            lookup = int.from_bytes(data[block_off + 4:block_off + 8], 'little')
            write_block(pixbuf, block_x, block_y, table, lookup, 2)
            block_off += 8


def load_dxt5(pixbuf: PixelBuffer, data: ROView, width: int, height: int) -> None:
    """Load compressed DXT5 data, with interpolated alpha."""
    block_off = 0
    for block_y in range(0, height, 4):
        for block_x in range(0, width, 4):
            # The alpha data is a 48-bit integer, where each 3 bits maps to an alpha value.
            write_block(
                pixbuf, block_x, block_y,
                alpha_table(data[block_off], data[block_off + 1]),
                int.from_bytes(data[block_off + 2:block_off + 8], 'little'),
                3,
                channel=3,
            )
            # Then the colour, which never has the 3-colour mode.
            write_block(
                pixbuf, block_x, block_y,
                color_table(data, block_off + 8, False),
                int.from_bytes(data[block_off + 12:block_off + 16], 'little'),
                2,
            )
            block_off += 16


init(ImageFormats)
