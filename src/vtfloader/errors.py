"""Exceptions raised while loading a VTF file.

Every failure is terminal for the load it occurs in. The three concrete
classes also derive from the matching builtin, so callers which only know
about ``MemoryError`` or ``ValueError`` still catch them.
"""


__all__ = ['VTFError', 'OutOfMemory', 'CorruptImage', 'UnsupportedFormat']


class VTFError(Exception):
    """Base class for all loading failures."""


class OutOfMemory(VTFError, MemoryError):
    """The byte store or a pixel buffer could not be allocated."""


class CorruptImage(VTFError, ValueError):
    """The file is truncated, or the header is invalid."""


class UnsupportedFormat(VTFError, NotImplementedError):
    """The high-resolution image uses a format we cannot decode."""
    def __init__(self, message: str, tag: int) -> None:
        super().__init__(message)
        self.tag = tag
