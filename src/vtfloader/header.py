"""Parses and validates the fixed-size VTF header."""
from typing import Final, Optional, Tuple
import struct

import attrs

from .const import SIGNATURE, ImageFormats, VTFFlags
from .errors import CorruptImage


__all__ = ['FileHeader', 'HEADER_SIZE', 'is_vtf', 'FORMAT_INFO']

# The whole header, in the order it is stored.
# The struct is packed, there is no alignment other than the explicit padding.
_HEADER: Final = struct.Struct(
    '<'    # Align
    '4s'   # Signature
    'II'   # Version major, minor
    'I'    # Header size
    'HH'   # Width, height
    'I'    # Flags
    'H'    # Frame count
    'H'    # First frame index
    '4x'
    'fff'  # Reflectivity vector
    '4x'
    'f'    # Bumpmap scale
    'i'    # High-res image format
    'B'    # Mipmap count
    'i'    # Low-res format (DXT1 usually)
    'BB'   # Low-res width, height
    'H'    # Depth, 7.2+
    '15x'  # Pad to 80 bytes.
)
HEADER_SIZE: Final = _HEADER.size
assert HEADER_SIZE == 80, HEADER_SIZE

#: Volumetric textures were added in this version, earlier files always have a depth of 1.
VERSION_VOLUME: Final = 0x0702


#: Registration details for image-loading frameworks which sniff file types.
FORMAT_INFO: Final = {
    'name': 'vtf',
    'description': 'Valve Texture format',
    'mime_types': ('image/x-vtf', ),
    'extensions': ('vtf', ),
    # (prefix, mask, relevance)
    'signature': ((SIGNATURE, None, 100), ),
    'license': 'LGPL',
}


def is_vtf(data: bytes) -> bool:
    """Check if this data looks like the start of a VTF file."""
    return bytes(data[:len(SIGNATURE)]) == SIGNATURE


@attrs.frozen
class FileHeader:
    """The header of a VTF file.

    The thumbnail fields and reflectivity are read, but only the geometry and
    the high-res format are used for decoding.
    """
    version: Tuple[int, int]
    header_size: int
    width: int
    height: int
    flags: VTFFlags
    frames: int
    first_frame: int
    reflectivity: Tuple[float, float, float]
    bumpmap_scale: float
    high_res_format: int
    mipmap_count: int
    low_res_format: int
    low_res_width: int
    low_res_height: int
    #: Always 1 for files before 7.2, whatever the file contains.
    depth: int
    signature: bytes = SIGNATURE

    @classmethod
    def parse(cls, data: bytes) -> 'FileHeader':
        """Read and validate the header at the start of this buffer.

        :raises CorruptImage: If the data is too short, the signature is wrong,
            or there are no frames or mipmaps.
        """
        if len(data) < HEADER_SIZE:
            raise CorruptImage(
                f'File corrupt or incomplete: expected a {HEADER_SIZE}-byte header, '
                f'got {len(data)} bytes.'
            )
        (
            signature,
            version_major, version_minor,
            header_size,
            width, height,
            flags,
            frames,
            first_frame,
            ref_r, ref_g, ref_b,
            bumpmap_scale,
            high_format,
            mipmap_count,
            low_format,
            low_width, low_height,
            depth,
        ) = _HEADER.unpack_from(data)

        if signature != SIGNATURE:
            raise CorruptImage(f'File corrupt or incomplete: bad signature {signature!r}.')
        if frames == 0:
            raise CorruptImage('File corrupt or incomplete: no frames.')
        if mipmap_count == 0:
            raise CorruptImage('File corrupt or incomplete: no mipmaps.')
        if width == 0 or height == 0:
            raise CorruptImage(f'File corrupt or incomplete: image is {width}x{height}.')

        if version_major * 256 + version_minor < VERSION_VOLUME:
            depth = 1

        return cls(
            version=(version_major, version_minor),
            header_size=header_size,
            width=width,
            height=height,
            flags=VTFFlags(flags),
            frames=frames,
            first_frame=first_frame,
            reflectivity=(ref_r, ref_g, ref_b),
            bumpmap_scale=bumpmap_scale,
            high_res_format=high_format,
            mipmap_count=mipmap_count,
            low_res_format=low_format,
            low_res_width=low_width,
            low_res_height=low_height,
            depth=depth,
            signature=signature,
        )

    @property
    def version_code(self) -> int:
        """The version as a single number, ``major * 256 + minor``."""
        major, minor = self.version
        return major * 256 + minor

    @property
    def format(self) -> Optional[ImageFormats]:
        """The high-res image format, or None if the tag isn't a known format."""
        return ImageFormats.from_tag(self.high_res_format)

