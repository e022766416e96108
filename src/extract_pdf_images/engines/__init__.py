"""
PDF parsing backends.

Engines turn a PDF into per-page operator lists and decoded raw images.
The public API lives in `extract_pdf_images.*`.
"""

from .base import EngineDocument, EnginePage, PdfImageEngine, raw_image_from_pil
from .pypdf_engine import PypdfEngine
from .pypdfium2_engine import Pypdfium2Engine

__all__ = [
    "EngineDocument",
    "EnginePage",
    "PdfImageEngine",
    "PypdfEngine",
    "Pypdfium2Engine",
    "raw_image_from_pil",
]
