"""Computes where each image lives inside the high-resolution data.

The high-res block stores every mipmap level from smallest to largest. Inside
each level come all the frames, then (for cubemaps) faces, then depth slices::

    for mipmap in reversed(range(mipmap_count)):
        for frame in range(frames):
            for face in range(faces):
                for slice in range(mip_depth):
                    ...

Offsets are relative to the start of that block. In files before 7.3 the block
is the last thing in the file, so its start is found from the file size.
"""
from typing import Final, Tuple

from .const import ImageFormats
from .errors import CorruptImage, UnsupportedFormat
from .header import HEADER_SIZE, FileHeader


__all__ = [
    'FACE_COUNT', 'ALL_MIPMAPS',
    'mip_dimensions', 'mip_size', 'offset', 'high_res_size', 'high_res_start',
]

#: Cubemap faces are never iterated, so every frame has one face.
FACE_COUNT: Final = 1
#: Pass as the mipmap level to :py:func:`offset` to get the size of all the data.
ALL_MIPMAPS: Final = -1


def _format(header: FileHeader) -> ImageFormats:
    """Find the high-res format, or fail if the tag isn't known."""
    fmt = header.format
    if fmt is None:
        raise UnsupportedFormat(
            f'Unknown VTF format {header.high_res_format}!',
            header.high_res_format,
        )
    return fmt


def mip_dimensions(header: FileHeader, level: int, depth: int) -> Tuple[int, int, int]:
    """Compute the width, height and depth of the given mipmap level.

    Each level halves every dimension, but none go below 1.
    """
    if level < 0:
        raise ValueError(f'Invalid mipmap level {level}!')
    return (
        max(header.width >> level, 1),
        max(header.height >> level, 1),
        max(depth >> level, 1),
    )


def mip_size(header: FileHeader, level: int, depth: int) -> int:
    """Compute the number of bytes used by one mipmap level, for a volume this deep.

    Pass ``header.depth`` to get the size of a whole frame, or 1 for a single slice.
    """
    fmt = _format(header)
    mip_width, mip_height, mip_depth = mip_dimensions(header, level, depth)
    return fmt.frame_size(mip_width, mip_height) * mip_depth


def offset(header: FileHeader, frame: int, face: int, slice: int, mip_level: int) -> int:
    """Compute the position of an image, relative to the start of the high-res data.

    If ``mip_level`` is :py:data:`ALL_MIPMAPS`, this instead returns the size of the
    entire high-res block. The frame, face and slice are ignored in that case.
    """
    pos = 0
    # Smaller mipmaps come first, skip over all of them.
    for level in range(header.mipmap_count - 1, mip_level, -1):
        pos += mip_size(header, level, header.depth)

    pos *= header.frames * FACE_COUNT
    if mip_level == ALL_MIPMAPS:
        return pos

    volume_bytes = mip_size(header, mip_level, header.depth)
    slice_bytes = mip_size(header, mip_level, 1)

    pos += volume_bytes * (frame * FACE_COUNT + face)
    pos += slice_bytes * slice
    return pos


def high_res_size(header: FileHeader) -> int:
    """The total size of the high-res data, for every mipmap and frame."""
    return offset(header, 0, 0, 0, ALL_MIPMAPS)


def high_res_start(header: FileHeader, total_size: int) -> int:
    """Locate the high-res data in a file of this size.

    The data is assumed to be the final part of the file, so it must not
    overlap the header.

    :raises CorruptImage: If the file is too small to contain the data.
    """
    start = total_size - high_res_size(header)
    if start < HEADER_SIZE:
        raise CorruptImage(
            f'File corrupt or incomplete: {header.width}x{header.height} image with '
            f'{header.frames} frames needs {high_res_size(header)} bytes, '
            f'but the file is {total_size} bytes.'
        )
    return start
