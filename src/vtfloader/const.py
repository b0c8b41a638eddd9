"""Constants describing the VTF format: image format tags and header flags."""
from typing import Any, Dict, MutableMapping, Optional, Tuple
from enum import Enum, Flag
import functools
import operator
import sys


__all__ = [
    'add_unknown',
    'ImageFormats', 'VTFFlags', 'FORMAT_ORDER', 'FORMAT_NONE', 'SIGNATURE',
]

#: The first four bytes of every VTF file.
SIGNATURE = b'VTF\0'


def add_unknown(ns: MutableMapping[str, Any], long: bool = False) -> None:
    """Add dummy members for :external:class:`enum.Flag` to allow all bits to be set.

    It should be called at the end of the class body, so flags we don't know
    about are still preserved when the header is parsed.

    :param ns: The class namespace to add members to. This should be set to \
        :external:func:`locals()` or :external:func:`vars()`.
    :param long: If set, extend to 64 bits, not 32 bits.
    """
    used_bits = functools.reduce(
        operator.or_,
        # Skip dunder names like __firstlineno__ added to the namespace.
        [
            value for name, value in ns.items()
            if isinstance(value, int) and not name.startswith('__')
        ],
        0,
    )
    for i in range(64 if long else 32):
        bit = 1 << i
        if not bit & used_bits:
            ns[sys.intern(str(i))] = bit


def _mk_fmt(
    r: int = 0, g: int = 0, b: int = 0,
    a: int = 0, *,
    grey: int = 0, size: int = 0,
) -> Tuple[int, int, int, int, int, int]:
    """Helper function to construct ImageFormats, numbering them in order."""
    global _mk_fmt_ind
    if grey:
        r = g = b = grey
        size = grey + a
    if not size:
        size = r + g + b + a
    _mk_fmt_ind += 1

    return r, g, b, a, size, _mk_fmt_ind


_mk_fmt_ind = -1  # Incremented first time to 0


class ImageFormats(Enum):
    """Every VTF image format, with channel sizes in bits and the total bits per unit.

    For block-compressed formats the size is the number of bits in one 4x4 block.
    """
    def __init__(self, r: int, g: int, b: int, a: int, size: int, ind: int) -> None:
        self.r = r
        self.g = g
        self.b = b
        self.a = a
        self.size = size
        self.ind = ind

    RGBA8888 = _mk_fmt(8, 8, 8, 8)
    ABGR8888 = _mk_fmt(8, 8, 8, 8)
    RGB888 = _mk_fmt(8, 8, 8, 0)
    BGR888 = _mk_fmt(8, 8, 8)
    RGB565 = _mk_fmt(5, 6, 5, 0)
    I8 = _mk_fmt(a=0, grey=8)
    IA88 = _mk_fmt(a=8, grey=8)
    P8 = _mk_fmt(size=8)  # Palettised, never implemented by Valve either.
    A8 = _mk_fmt(a=8)
    RGB888_BLUESCREEN = _mk_fmt(8, 8, 8)
    BGR888_BLUESCREEN = _mk_fmt(8, 8, 8)
    ARGB8888 = _mk_fmt(8, 8, 8, 8)
    BGRA8888 = _mk_fmt(8, 8, 8, 8)
    DXT1 = _mk_fmt(size=64)
    DXT3 = _mk_fmt(size=128)
    DXT5 = _mk_fmt(size=128)
    BGRX8888 = _mk_fmt(8, 8, 8, 8)
    BGR565 = _mk_fmt(5, 6, 5)
    BGRX5551 = _mk_fmt(5, 5, 5, 1)
    BGRA4444 = _mk_fmt(4, 4, 4, 4)
    DXT1_ONEBITALPHA = _mk_fmt(size=64)
    BGRA5551 = _mk_fmt(5, 5, 5, 1)
    UV88 = _mk_fmt(size=16)
    UVWQ8888 = _mk_fmt(size=32)
    RGBA16161616F = _mk_fmt(16, 16, 16, 16)
    RGBA16161616 = _mk_fmt(16, 16, 16, 16)
    UVLX8888 = _mk_fmt(size=32)

    def __repr__(self) -> str:
        return f'<ImageFormats[{self.ind:02}] {self.name}: size={self.size}>'

    @property
    def is_compressed(self) -> bool:
        """Checks if the format is compressed in 4x4 blocks."""
        return self.name.startswith('DXT')

    @property
    def has_alpha(self) -> bool:
        """Whether decoded frames of this format carry an alpha channel.

        DXT1 does, since its three-colour mode encodes transparent black.
        """
        return self.a > 0 or self.is_compressed

    @property
    def unit_size(self) -> int:
        """The number of bytes per pixel, or per 4x4 block for compressed formats."""
        return self.size // 8

    def frame_size(self, width: int, height: int) -> int:
        """Compute the number of bytes needed for a single 2D image this size."""
        if self.is_compressed:
            block_wid, mod = divmod(width, 4)
            if mod:
                block_wid += 1

            block_height, mod = divmod(height, 4)
            if mod:
                block_height += 1
            return self.size * block_wid * block_height // 8
        else:
            return self.size * width * height // 8

    @classmethod
    def from_tag(cls, tag: int) -> Optional['ImageFormats']:
        """Look up the format for the value stored in the header.

        ``-1`` (no image) and values past the end of the table return ``None``.
        """
        return FORMAT_ORDER.get(tag)


del _mk_fmt, _mk_fmt_ind

FORMAT_ORDER: Dict[int, ImageFormats] = {
    fmt.ind: fmt
    for fmt in ImageFormats.__members__.values()
}
#: The tag used for "no image".
FORMAT_NONE = -1


class VTFFlags(Flag):
    """The various image flags that may be set. The decoder does not use these."""
    EMPTY = 0
    # Flags from the *.txt config file
    POINT_SAMPLE = 0x00000001
    TRILINEAR = 0x00000002
    CLAMP_S = 0x00000004
    CLAMP_T = 0x00000008
    ANISOTROPIC = 0x00000010
    HINT_DXT5 = 0x00000020
    PWL_CORRECTED = 0x00000040
    NORMAL = 0x00000080
    NO_MIP = 0x00000100
    NO_LOD = 0x00000200
    ALL_MIPS = 0x00000400
    PROCEDURAL = 0x00000800

    # These are automatically generated by vtex from the texture data.
    ONEBITALPHA = 0x00001000
    EIGHTBITALPHA = 0x00002000

    ENVMAP = 0x00004000
    RENDER_TARGET = 0x00008000
    DEPTH_RENDER_TARGET = 0x00010000
    NO_DEBUG_OVERRIDE = 0x00020000
    SINGLE_COPY = 0x00040000
    PRE_SRGB = 0x00080000

    NO_DEPTH_BUFFER = 0x00800000

    CLAMP_U = 0x02000000
    VERTEX_TEXTURE = 0x04000000
    SS_BUMP = 0x08000000
    BORDER = 0x20000000

    add_unknown(locals())
