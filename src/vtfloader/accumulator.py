"""Collects the file as it arrives in chunks."""
from typing import Optional
from typing_extensions import Buffer

from .errors import OutOfMemory


__all__ = ['ByteAccumulator', 'INITIAL_CAPACITY']

#: The starting size of the store, which is enough for most textures.
INITIAL_CAPACITY = 1_000_000


class ByteAccumulator:
    """A growable byte store, which is appended to until the whole file is read.

    The capacity doubles whenever the data would no longer fit.
    """
    _store: Optional[bytearray]
    _size: int

    def __init__(self, capacity: int = INITIAL_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f'Capacity must be positive, not {capacity!r}!')
        try:
            self._store = bytearray(capacity)
        except MemoryError:
            raise OutOfMemory('Not enough memory') from None
        self._size = 0

    def __repr__(self) -> str:
        if self._store is None:
            return '<ByteAccumulator (released)>'
        return f'<ByteAccumulator {self._size}/{len(self._store)} bytes>'

    def __len__(self) -> int:
        """The number of bytes read so far."""
        return self._size

    @property
    def capacity(self) -> int:
        """The number of bytes which can be stored before growing."""
        return len(self._check())

    @property
    def released(self) -> bool:
        """Whether the store has been freed."""
        return self._store is None

    def _check(self) -> bytearray:
        if self._store is None:
            raise ValueError('Byte store has already been released!')
        return self._store

    def append(self, chunk: Buffer) -> None:
        """Copy this chunk to the end of the data.

        :raises OutOfMemory: If the store could not be enlarged.
        """
        store = self._check()
        view = memoryview(chunk).cast('B')
        end = self._size + view.nbytes
        if end > len(store):
            capacity = len(store)
            while end > capacity:
                capacity *= 2
            try:
                store.extend(bytes(capacity - len(store)))
            except MemoryError:
                raise OutOfMemory('Not enough memory') from None
        store[self._size:end] = view
        self._size = end

    def view(self) -> memoryview:
        """Return a read-only view of the data read so far."""
        return memoryview(self._check()).toreadonly()[:self._size]

    def release(self) -> None:
        """Free the store. After this no other methods may be used."""
        self._store = None
