from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image

from ..contracts import ImageKind, OperatorList, RawImage

# Pillow modes that have no direct raw-layout counterpart, and what they become.
_MODE_CONVERSIONS = {
    "1": "L",
    "I": "L",
    "I;16": "L",
    "I;16B": "L",
    "I;16L": "L",
    "F": "L",
    "CMYK": "RGB",
    "YCbCr": "RGB",
    "LAB": "RGB",
    "HSV": "RGB",
    "PA": "RGBA",
    "RGBX": "RGB",
    "RGBa": "RGBA",
    "La": "LA",
}


def raw_image_from_pil(*, name: str, image: Image.Image) -> RawImage:
    """
    Flatten a decoded Pillow image into a tightly packed raw pixel buffer.
    """

    if image.mode == "P":
        target = "RGBA" if "transparency" in image.info else "RGB"
    else:
        target = _MODE_CONVERSIONS.get(image.mode, image.mode)
    if target != image.mode:
        image = image.convert(target)

    kind = ImageKind(image.mode)
    width, height = image.size
    return RawImage(name=name, width=int(width), height=int(height), kind=kind, data=image.tobytes())


class EnginePage(ABC):
    """
    One page of an opened document.

    Pages resolve image names through two namespaces: objects shared across
    pages ("common") and objects local to this page.
    """

    @abstractmethod
    def get_operator_list(self) -> OperatorList:
        raise NotImplementedError

    @abstractmethod
    def has_common_object(self, name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_common_object(self, name: str) -> RawImage:
        raise NotImplementedError

    @abstractmethod
    def get_object(self, name: str) -> RawImage:
        raise NotImplementedError


class EngineDocument(ABC):
    @property
    @abstractmethod
    def page_count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_page(self, page_num: int) -> EnginePage:  # 1-indexed
        raise NotImplementedError

    def close(self) -> None:
        return None


class PdfImageEngine(ABC):
    """
    PDF parsing backend abstraction.

    Engines must:
    - Parse the document and each page's content stream
    - Report image painting instructions in content order
    - Decode image objects to raw pixels
    - Perform NO encoding and NO file writes
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def open_document(self, *, pdf_file: Path) -> EngineDocument:
        """
        Raise DocumentLoadFailure when the file cannot be opened or parsed.
        """

        raise NotImplementedError
