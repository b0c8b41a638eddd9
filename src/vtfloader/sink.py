"""The interface used to hand decoded frames back to the caller.

A load produces an :py:class:`AnimationSequence`, which the sink is told about
once the first frame is decoded. Every frame, including the first, is then
appended to it in order.
"""
from typing import List, Optional
from typing_extensions import Protocol

import attrs

from .pixbuf import PixelBuffer


__all__ = ['AnimationSequence', 'ImageSink', 'CollectingSink', 'FRAME_DELAY']

#: The delay between each frame of animated textures.
FRAME_DELAY = 8


@attrs.define(eq=False)
class AnimationSequence:
    """A looping sequence of frames, all the same size."""
    width: int
    height: int
    delay: int = FRAME_DELAY
    loop: bool = True
    frames: List[PixelBuffer] = attrs.Factory(list)

    def __len__(self) -> int:
        return len(self.frames)

    def add_frame(self, pixbuf: PixelBuffer) -> None:
        """Add a frame to the end of the sequence."""
        if pixbuf.size != (self.width, self.height):
            raise ValueError(
                f'Frame is {pixbuf.width}x{pixbuf.height}, '
                f'but the sequence is {self.width}x{self.height}!'
            )
        self.frames.append(pixbuf)

    @property
    def static_image(self) -> Optional[PixelBuffer]:
        """The first frame, for callers which cannot show animations."""
        return self.frames[0] if self.frames else None


class ImageSink(Protocol):
    """Receives the output of a load."""
    def notify_geometry(self, width: int, height: int, sequence: AnimationSequence) -> None:
        """Called once the first frame has been decoded, before it is appended."""
        ...

    def allocate_frame_buffer(self, width: int, height: int, has_alpha: bool) -> PixelBuffer:
        """Produce a blank buffer to decode a frame into.

        The buffer may use any row stride which fits the row.
        """
        ...

    def append_frame(self, sequence: AnimationSequence, pixbuf: PixelBuffer) -> None:
        """Called with each completed frame, in order."""
        ...


class CollectingSink:
    """The default sink, which just stores the sequence."""
    sequence: Optional[AnimationSequence]

    def __init__(self) -> None:
        self.sequence = None

    def notify_geometry(self, width: int, height: int, sequence: AnimationSequence) -> None:
        """Record the sequence being produced."""
        self.sequence = sequence

    def allocate_frame_buffer(self, width: int, height: int, has_alpha: bool) -> PixelBuffer:
        """Make a buffer using the default stride."""
        return PixelBuffer(width, height, has_alpha)

    def append_frame(self, sequence: AnimationSequence, pixbuf: PixelBuffer) -> None:
        """Add the frame to the sequence."""
        sequence.add_frame(pixbuf)
