"""Decodes Valve Texture Format (VTF) files into RGB/RGBA frames."""
from .const import SIGNATURE, ImageFormats, VTFFlags
from .errors import CorruptImage, OutOfMemory, UnsupportedFormat, VTFError
from .header import FORMAT_INFO, FileHeader, is_vtf
from .loader import VTFLoader, load, load_file
from .pixbuf import Pixel, PixelBuffer
from .sink import AnimationSequence, CollectingSink, ImageSink


__version__ = '1.0.0'

__all__ = [
    '__version__',
    'VTFLoader', 'load', 'load_file',
    'FileHeader', 'is_vtf', 'FORMAT_INFO', 'SIGNATURE',
    'ImageFormats', 'VTFFlags',
    'PixelBuffer', 'Pixel',
    'AnimationSequence', 'ImageSink', 'CollectingSink',
    'VTFError', 'OutOfMemory', 'CorruptImage', 'UnsupportedFormat',
]
