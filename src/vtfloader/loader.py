"""Loads VTF files, producing an animation with every frame.

The file is fed in as chunks, then decoded all at once when the load is closed::

    with VTFLoader() as loader:
        for chunk in stream:
            loader.feed(chunk)
        anim = loader.close()

Only the largest mipmap of the first face and depth slice is decoded for each frame.
"""
from typing import IO, Iterable, Iterator, Optional, Type, Union
from types import TracebackType
import os

from typing_extensions import Buffer

from . import _py_decode as _format_funcs, volume
from .accumulator import INITIAL_CAPACITY, ByteAccumulator
from .errors import CorruptImage, UnsupportedFormat
from .header import FileHeader
from .logger import context, get_logger
from .sink import FRAME_DELAY, AnimationSequence, CollectingSink, ImageSink


__all__ = ['VTFLoader', 'assemble', 'load', 'load_file', 'read_chunks']
LOGGER = get_logger(__name__)
#: The default amount to read from files at once.
CHUNK_SIZE = 64 * 1024


def assemble(
    header: FileHeader,
    data: Buffer,
    sink: ImageSink,
    delay: int = FRAME_DELAY,
) -> AnimationSequence:
    """Decode every frame in the file, passing them to the sink.

    :param header: The already validated header.
    :param data: The entire file. The high-res image data must be at the end.
    :param sink: Allocates frame buffers, and receives the frames once decoded.
    :param delay: The frame delay for the animation.
    """
    fmt = header.format
    try:
        _format_funcs.get_loader(fmt, header.high_res_format)
    except UnsupportedFormat:
        LOGGER.error('Unsupported VTF format - {}.', header.high_res_format)
        raise
    assert fmt is not None

    view = memoryview(data).cast('B')
    try:
        start = volume.high_res_start(header, view.nbytes)
    except CorruptImage:
        LOGGER.warning(
            'Image data needs {} bytes, but the file is only {} bytes!',
            volume.high_res_size(header), view.nbytes,
        )
        raise
    frame_size = volume.mip_size(header, 0, 1)
    LOGGER.debug(
        'VTF {}.{}: {}x{}x{} {}, {} frames, {} mipmaps, image data at {}',
        *header.version,
        header.width, header.height, header.depth,
        fmt.name, header.frames, header.mipmap_count, start,
    )

    sequence = AnimationSequence(header.width, header.height, delay)
    for frame in range(header.frames):
        with context(f'frame {frame}'):
            pos = start + volume.offset(header, frame, 0, 0, 0)
            frame_data = view[pos: pos + frame_size]
            if frame_data.nbytes != frame_size:
                raise CorruptImage(
                    f'File corrupt or incomplete: frame {frame} needs {frame_size} bytes, '
                    f'got {frame_data.nbytes}.'
                )

            pixbuf = sink.allocate_frame_buffer(header.width, header.height, fmt.has_alpha)
            if pixbuf.size != (header.width, header.height) or pixbuf.has_alpha != fmt.has_alpha:
                raise ValueError(f'Sink produced the wrong buffer: {pixbuf!r}')
            _format_funcs.load(fmt, pixbuf, frame_data)

            if frame == 0:
                sink.notify_geometry(header.width, header.height, sequence)
            sink.append_frame(sequence, pixbuf)
    return sequence


class VTFLoader:
    """Incrementally loads a single VTF file.

    Feed chunks of the file in order, then call :py:meth:`close` to decode it.
    A loader cannot be reused. If used as a context manager, exiting the block
    discards the data if the load is unfinished.
    """
    sink: ImageSink
    sequence: Optional[AnimationSequence]
    delay: int
    _buffer: Optional[ByteAccumulator]

    def __init__(
        self,
        sink: Optional[ImageSink] = None,
        *,
        capacity: int = INITIAL_CAPACITY,
        delay: int = FRAME_DELAY,
    ) -> None:
        """Begin a load.

        :param sink: Receives the decoded frames. If not set, a :py:class:`CollectingSink` is used.
        :param capacity: The initial size of the byte store.
        :param delay: The frame delay for the produced animation.
        """
        self.sink = sink if sink is not None else CollectingSink()
        self.sequence = None
        self.delay = delay
        self._buffer = ByteAccumulator(capacity)

    def __repr__(self) -> str:
        if self._buffer is None:
            return '<VTFLoader (finished)>'
        return f'<VTFLoader: {len(self._buffer)} bytes>'

    @property
    def finished(self) -> bool:
        """Whether the load has been closed or discarded."""
        return self._buffer is None

    def feed(self, chunk: Buffer) -> None:
        """Add the next part of the file."""
        if self._buffer is None:
            raise ValueError('Load has already finished!')
        try:
            self._buffer.append(chunk)
        except MemoryError:
            self.discard()
            raise

    def close(self) -> AnimationSequence:
        """Finish the load, decoding all frames.

        The data is released whether or not this succeeds.

        :raises CorruptImage: If the header is invalid, or the file is truncated.
        :raises UnsupportedFormat: If the image format cannot be decoded.
        """
        if self._buffer is None:
            raise ValueError('Load has already finished!')
        try:
            view = self._buffer.view()
            header = FileHeader.parse(view)
            sequence = assemble(header, view, self.sink, self.delay)
        finally:
            self.discard()
        self.sequence = sequence
        return sequence

    def discard(self) -> None:
        """Abandon the load, freeing the data."""
        if self._buffer is not None:
            self._buffer.release()
            self._buffer = None

    def __enter__(self) -> 'VTFLoader':
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Discard the data if the load was not closed."""
        self.discard()


def read_chunks(file: IO[bytes], chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Read the file in chunks, until the end."""
    while True:
        chunk = file.read(chunk_size)
        if not chunk:
            return
        yield chunk


def load(
    chunks: Iterable[Buffer],
    sink: Optional[ImageSink] = None,
    **kwargs: int,
) -> AnimationSequence:
    """Load a VTF file, from each part of the file in order.

    Extra keyword arguments are passed to :py:class:`VTFLoader`.
    """
    with VTFLoader(sink, **kwargs) as loader:
        for chunk in chunks:
            loader.feed(chunk)
        return loader.close()


def load_file(
    file: Union[str, 'os.PathLike[str]', IO[bytes]],
    sink: Optional[ImageSink] = None,
    chunk_size: int = CHUNK_SIZE,
    **kwargs: int,
) -> AnimationSequence:
    """Load a VTF file from a filename or binary stream."""
    if isinstance(file, (str, os.PathLike)):
        LOGGER.debug('Loading "{}"', os.fspath(file))
        with context(os.path.basename(file)), open(file, 'rb') as f:
            return load(read_chunks(f, chunk_size), sink, **kwargs)
    else:
        return load(read_chunks(file, chunk_size), sink, **kwargs)
