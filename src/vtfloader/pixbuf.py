"""The decoded pixel buffers handed to image sinks."""
from typing import TYPE_CHECKING, Iterator, Tuple

import attrs

from .errors import OutOfMemory


# Only import while type checking, so Pillow is only loaded if actually used.
if TYPE_CHECKING:
    from PIL.Image import Image as PIL_Image


__all__ = ['PixelBuffer', 'Pixel', 'row_stride']


def row_stride(width: int, channels: int) -> int:
    """Compute the length of a row, rounded up so each row starts on a 4-byte boundary."""
    return (width * channels + 3) & ~3


@attrs.frozen
class Pixel:
    """Data structure to hold colour data retrieved from a buffer."""
    r: int
    g: int
    b: int
    a: int = 255

    def __iter__(self) -> Iterator[int]:
        yield self.r
        yield self.g
        yield self.b
        yield self.a


class PixelBuffer:
    """An 8-bit RGB or RGBA image, stored row by row.

    Rows may be padded, so :py:attr:`rowstride` must be used to find the start of each.
    """
    __slots__ = ['width', 'height', 'has_alpha', 'n_channels', 'rowstride', 'pixels']
    width: int
    height: int
    has_alpha: bool
    n_channels: int
    rowstride: int
    pixels: bytearray

    def __init__(self, width: int, height: int, has_alpha: bool, rowstride: int = 0) -> None:
        """Create a blank image.

        If the stride is not given, rows are padded to a multiple of 4 bytes.
        """
        self.width = width
        self.height = height
        self.has_alpha = has_alpha
        self.n_channels = 4 if has_alpha else 3
        if not rowstride:
            rowstride = row_stride(width, self.n_channels)
        elif rowstride < width * self.n_channels:
            raise ValueError(
                f'Row stride {rowstride} is too small for {width} '
                f'{"RGBA" if has_alpha else "RGB"} pixels!'
            )
        self.rowstride = rowstride
        try:
            self.pixels = bytearray(rowstride * height)
        except MemoryError:
            raise OutOfMemory(f'Not enough memory for a {width}x{height} image.') from None

    def __repr__(self) -> str:
        return (
            f'<PixelBuffer {self.width}x{self.height} '
            f'{"RGBA" if self.has_alpha else "RGB"}, stride={self.rowstride}>'
        )

    @property
    def size(self) -> Tuple[int, int]:
        """The width and height of the image."""
        return self.width, self.height

    def __getitem__(self, item: Tuple[int, int]) -> Pixel:
        """Retrieve an individual pixel at (x, y). RGB images have an alpha of 255."""
        x, y = item
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(item)
        off = y * self.rowstride + x * self.n_channels
        return Pixel(*self.pixels[off: off + self.n_channels])

    def rows(self) -> Iterator[memoryview]:
        """Iterate over each row of pixels, excluding the padding."""
        view = memoryview(self.pixels)
        row_len = self.width * self.n_channels
        for y in range(self.height):
            yield view[y * self.rowstride: y * self.rowstride + row_len]

    def tobytes(self) -> bytes:
        """Return the pixels with the row padding removed."""
        return b''.join(self.rows())

    def to_PIL(self) -> 'PIL_Image':
        """Convert into a PIL image.

        Requires Pillow to be installed.
        """
        from PIL.Image import frombuffer
        mode = 'RGBA' if self.has_alpha else 'RGB'
        return frombuffer(
            mode,
            (self.width, self.height),
            bytes(self.pixels),
            'raw',
            mode,
            self.rowstride,
            1,
        ).copy()
