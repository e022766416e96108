"""
PDF image extraction (embedded rasters -> PNG files + per-page manifest).

This package is intentionally limited to extraction:
- It walks each page's operator list and writes every painted image as PNG.
- It performs NO rendering, OCR or content filtering.
- It does not create the destination directory and never rolls back writes.
"""

from .contracts import (
    ChannelPolicy,
    ExtractEngineName,
    ExtractImagesConfig,
    ExtractionResult,
    ImageKind,
    Ops,
)
from .errors import (
    DocumentLoadFailure,
    EncodingFailure,
    ExtractImagesError,
    ImageResolutionFailure,
    InvalidImageChannels,
    InvalidInputKind,
)
from .module import extract_images

__all__ = [
    "ChannelPolicy",
    "DocumentLoadFailure",
    "EncodingFailure",
    "ExtractEngineName",
    "ExtractImagesConfig",
    "ExtractImagesError",
    "ExtractionResult",
    "ImageKind",
    "ImageResolutionFailure",
    "InvalidImageChannels",
    "InvalidInputKind",
    "Ops",
    "extract_images",
]
