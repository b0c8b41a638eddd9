"""Test loading entire files."""
from typing import List, Tuple
from io import BytesIO
from pathlib import Path
import logging

import pytest

from vtfloader import (
    AnimationSequence, CollectingSink, CorruptImage, ImageFormats, OutOfMemory, Pixel, PixelBuffer,
    UnsupportedFormat, VTFLoader, load, load_file,
)
from vtfloader.loader import read_chunks

from helpers import DXT1_WHITE_BLACK, FailingStore, make_vtf, pixel_rows


RGBA = ImageFormats.RGBA8888.ind


class RecordingSink(CollectingSink):
    """Records each call made, in order."""
    calls: List[Tuple[object, ...]]

    def __init__(self) -> None:
        super().__init__()
        self.calls = []

    def notify_geometry(self, width: int, height: int, sequence: AnimationSequence) -> None:
        self.calls.append(('notify', width, height, len(sequence)))
        super().notify_geometry(width, height, sequence)

    def allocate_frame_buffer(self, width: int, height: int, has_alpha: bool) -> PixelBuffer:
        self.calls.append(('allocate', width, height, has_alpha))
        # Use an unusual stride, to check it's respected.
        return PixelBuffer(width, height, has_alpha, width * (4 if has_alpha else 3) + 5)

    def append_frame(self, sequence: AnimationSequence, pixbuf: PixelBuffer) -> None:
        self.calls.append(('append', len(sequence)))
        super().append_frame(sequence, pixbuf)


def test_end_to_end() -> None:
    """A single 4x4 RGBA image."""
    payload = bytes(range(64))
    data = make_vtf(4, 4, RGBA, payload)
    assert len(data) == 80 + 64

    anim = load([data])
    assert (anim.width, anim.height) == (4, 4)
    assert anim.delay == 8
    assert anim.loop
    assert len(anim) == 1
    frame = anim.static_image
    assert frame is not None
    assert frame.has_alpha
    assert frame[0, 0] == Pixel(0, 1, 2, 3)
    assert frame[3, 3] == Pixel(60, 61, 62, 63)
    assert frame.tobytes() == payload


def test_thumbnail_skipped() -> None:
    """Data between the header and the image is ignored."""
    payload = bytes(range(64))
    data = make_vtf(4, 4, RGBA, payload, thumbnail=b'\xAA' * 24)
    anim = load([data])
    assert anim.frames[0].tobytes() == payload


def test_mipmaps_and_frames() -> None:
    """Each frame is read from the largest mipmap."""
    # 4x4 RGB888 image, 3 mipmaps, 2 frames. Smallest first.
    mip2 = [b'\x01' * 3, b'\x02' * 3]
    mip1 = [b'\x03' * 12, b'\x04' * 12]
    mip0 = [bytes([10 + i] * 48) for i in range(2)]
    payload = b''.join(mip2 + mip1 + mip0)
    data = make_vtf(4, 4, ImageFormats.RGB888.ind, payload, frames=2, mipmaps=3)

    anim = load([data])
    assert len(anim) == 2
    assert [frame.tobytes() for frame in anim.frames] == mip0
    assert not anim.frames[0].has_alpha


def test_volume_first_slice() -> None:
    """Only the first slice of a volume texture is decoded."""
    slices = [bytes([i] * 64) for i in range(1, 4)]
    data = make_vtf(4, 4, RGBA, b''.join(slices), depth=3, version=(7, 2))
    anim = load([data])
    assert anim.frames[0].tobytes() == slices[0]


def test_old_version_ignores_depth() -> None:
    """Before 7.2, depth is always 1 even if the header contains garbage."""
    data = make_vtf(4, 4, RGBA, bytes(64), depth=3, version=(7, 1))
    anim = load([data])
    assert len(anim) == 1


def test_dxt() -> None:
    """Block compressed images load too."""
    block = DXT1_WHITE_BLACK + b'\x55' * 4
    anim = load([make_vtf(8, 4, ImageFormats.DXT1.ind, block * 2)])
    assert pixel_rows(anim.frames[0]) == [[Pixel(0, 0, 0, 255)] * 8] * 4


@pytest.mark.parametrize('chunk_size', [1, 7, 80, 1000])
def test_chunks(chunk_size: int) -> None:
    """The file may arrive in any number of pieces."""
    payload = bytes(range(128))
    data = make_vtf(4, 4, RGBA, payload, frames=2)
    anim = load(
        [data[i: i + chunk_size] for i in range(0, len(data), chunk_size)],
        capacity=16,
    )
    assert [frame.tobytes() for frame in anim.frames] == [payload[:64], payload[64:]]


def test_call_order() -> None:
    """Geometry is notified after the first frame is decoded, and frames are appended in order."""
    sink = RecordingSink()
    data = make_vtf(2, 2, RGBA, bytes(range(48)), frames=3)
    anim = load([data], sink)
    assert sink.calls == [
        ('allocate', 2, 2, True),
        ('notify', 2, 2, 0),
        ('append', 0),
        ('allocate', 2, 2, True),
        ('append', 1),
        ('allocate', 2, 2, True),
        ('append', 2),
    ]
    assert sink.sequence is anim
    assert len(anim) == 3
    # Check the stride was respected.
    assert anim.frames[2].rowstride == 13
    assert anim.frames[2].tobytes() == bytes(range(32, 48))


def test_wrong_buffer() -> None:
    """Sinks must produce a buffer matching the image."""
    class BadSink(CollectingSink):
        def allocate_frame_buffer(self, width: int, height: int, has_alpha: bool) -> PixelBuffer:
            return PixelBuffer(width, height, not has_alpha)

    with pytest.raises(ValueError, match='wrong buffer'):
        load([make_vtf(4, 4, RGBA, bytes(64))], BadSink())


def test_short_pixel_array() -> None:
    """The pixel array is checked before decoding into it."""
    class ShortSink(RecordingSink):
        def allocate_frame_buffer(self, width: int, height: int, has_alpha: bool) -> PixelBuffer:
            pixbuf = super().allocate_frame_buffer(width, height, has_alpha)
            del pixbuf.pixels[-1]
            return pixbuf

    sink = ShortSink()
    with pytest.raises(BufferError, match='pixel array size'):
        load([make_vtf(4, 4, RGBA, bytes(64))], sink)
    assert sink.calls == [('allocate', 4, 4, True)]


@pytest.mark.parametrize('data', [
    b'',
    b'VTF\0' + bytes(20),
    make_vtf(4, 4, RGBA, bytes(64), signature=b'XTF\0'),
    make_vtf(4, 4, RGBA, bytes(64), frames=0),
], ids=['empty', 'short', 'signature', 'frames'])
def test_corrupt_header(data: bytes) -> None:
    """Bad headers fail before the sink is used."""
    sink = RecordingSink()
    with pytest.raises(CorruptImage, match='File corrupt or incomplete'):
        load([data], sink)
    assert sink.calls == []


@pytest.mark.parametrize('fmt', [
    ImageFormats.RGBA8888, ImageFormats.RGB565, ImageFormats.DXT1,
], ids=lambda fmt: fmt.name.lower())
def test_no_mipmaps(fmt: ImageFormats) -> None:
    """Without any mipmaps there is no image to decode."""
    sink = RecordingSink()
    data = make_vtf(4, 4, fmt.ind, bytes(fmt.frame_size(4, 4)), mipmaps=0)
    with pytest.raises(CorruptImage, match='no mipmaps'):
        load([data], sink)
    assert sink.calls == []


def test_truncated(caplog: pytest.LogCaptureFixture) -> None:
    """Missing image data fails before any frame is requested."""
    sink = RecordingSink()
    data = make_vtf(4, 4, RGBA, bytes(128), frames=2)
    with caplog.at_level(logging.WARNING, logger='vtfloader'):
        with pytest.raises(CorruptImage, match='File corrupt or incomplete'):
            load([data[:-1]], sink)
    assert sink.calls == []
    assert 'Image data needs 128 bytes, but the file is only 207 bytes!' in caplog.text


@pytest.mark.parametrize('tag', [99, ImageFormats.DXT3.ind, ImageFormats.P8.ind, -1])
def test_unsupported(tag: int, caplog: pytest.LogCaptureFixture) -> None:
    """Unknown formats fail before any buffers are allocated, and are logged."""
    sink = RecordingSink()
    with caplog.at_level(logging.ERROR, logger='vtfloader'):
        with pytest.raises(UnsupportedFormat) as exc:
            load([make_vtf(4, 4, tag, bytes(64))], sink)
    assert exc.value.tag == tag
    assert sink.calls == []
    assert f'Unsupported VTF format - {tag}.' in caplog.text


def test_loader_lifecycle() -> None:
    """The loader is single-use."""
    loader = VTFLoader()
    assert not loader.finished
    loader.feed(make_vtf(4, 4, RGBA, bytes(64)))
    anim = loader.close()
    assert loader.finished
    assert loader.sequence is anim
    with pytest.raises(ValueError):
        loader.close()
    with pytest.raises(ValueError):
        loader.feed(b'more')


def test_loader_failure_releases() -> None:
    """A failed load can't be retried."""
    loader = VTFLoader()
    loader.feed(b'VTF\0')
    with pytest.raises(CorruptImage):
        loader.close()
    assert loader.finished
    assert loader.sequence is None
    with pytest.raises(ValueError):
        loader.close()


def test_loader_out_of_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    """If the file doesn't fit in memory, the load is abandoned."""
    loader = VTFLoader(capacity=16)
    buffer = loader._buffer
    assert buffer is not None
    monkeypatch.setattr(buffer, '_store', FailingStore(16))
    with pytest.raises(OutOfMemory):
        loader.feed(bytes(32))
    assert loader.finished
    assert buffer.released
    with pytest.raises(ValueError):
        loader.feed(b'x')
    with pytest.raises(ValueError):
        loader.close()


def test_loader_discard() -> None:
    """Leaving the block without closing discards the data."""
    with VTFLoader() as loader:
        loader.feed(b'VTF\0')
    assert loader.finished
    with pytest.raises(ValueError):
        loader.close()


def test_loader_options() -> None:
    """The delay and capacity can be changed."""
    loader = VTFLoader(capacity=8, delay=3)
    loader.feed(make_vtf(4, 4, RGBA, bytes(64)))
    assert loader.close().delay == 3


def test_read_chunks() -> None:
    assert list(read_chunks(BytesIO(b'abcdefgh'), 3)) == [b'abc', b'def', b'gh']
    assert list(read_chunks(BytesIO(b''), 3)) == []


def test_load_file(tmp_path: Path) -> None:
    """Load from either a stream or a filename."""
    payload = bytes(range(32, 96))
    data = make_vtf(4, 4, RGBA, payload)

    anim = load_file(BytesIO(data), chunk_size=16)
    assert anim.frames[0].tobytes() == payload

    path = tmp_path / 'test.vtf'
    path.write_bytes(data)
    sink = CollectingSink()
    anim = load_file(path, sink)
    assert sink.sequence is anim
    assert anim.frames[0].tobytes() == payload
    assert load_file(str(path)).frames[0].tobytes() == payload
