from __future__ import annotations

from pathlib import Path
from typing import Any

from ..contracts import ExtractEngineName, OperatorList, Ops, RawImage
from ..errors import DocumentLoadFailure, ImageResolutionFailure
from .base import EngineDocument, EnginePage, PdfImageEngine, raw_image_from_pil


def _require_pdfium():
    try:
        import pypdfium2 as pdfium  # type: ignore

        return pdfium
    except ImportError as e:
        raise RuntimeError(
            "Missing dependency: pypdfium2 is required for the pypdfium2 engine."
        ) from e


class Pypdfium2EnginePage(EnginePage):
    """
    PDFium exposes image page objects but not their resource names, so every
    image is named after its page index and position ("img_p0_1", ...).
    There is no shared object table.
    """

    def __init__(self, *, page: Any, page_index: int) -> None:
        self._page = page
        self._page_index = page_index  # 0-indexed
        self._objs: dict[str, Any] = {}

    def get_operator_list(self) -> OperatorList:
        pdfium = _require_pdfium()
        import pypdfium2.raw as pdfium_c  # type: ignore

        self._objs = {}
        ops = OperatorList()
        try:
            # get_objects() descends into form XObjects, in content order
            image_objects = self._page.get_objects(filter=(pdfium_c.FPDF_PAGEOBJ_IMAGE,))
            for idx, obj in enumerate(image_objects, start=1):
                name = f"img_p{self._page_index}_{idx}"
                self._objs[name] = obj
                ops.append(Ops.PAINT_IMAGE_XOBJECT, name)
        except pdfium.PdfiumError as e:
            raise DocumentLoadFailure(
                f"Failed to read page objects of page {self._page_index + 1}"
            ) from e
        return ops

    def has_common_object(self, name: str) -> bool:
        return False

    def get_common_object(self, name: str) -> RawImage:
        raise ImageResolutionFailure(f"Unknown common object {name}")

    def get_object(self, name: str) -> RawImage:
        pdfium = _require_pdfium()
        try:
            obj = self._objs[name]
        except KeyError as e:
            raise ImageResolutionFailure(
                f"Unknown object {name} on page {self._page_index + 1}"
            ) from e

        try:
            bitmap = obj.get_bitmap(render=False)
            return raw_image_from_pil(name=name, image=bitmap.to_pil())
        except (pdfium.PdfiumError, ValueError) as e:
            raise ImageResolutionFailure(f"Image {name} could not be decoded") from e


class Pypdfium2EngineDocument(EngineDocument):
    def __init__(self, *, doc: Any) -> None:
        self._doc = doc
        self._page_count = len(doc)

    @property
    def page_count(self) -> int:
        return self._page_count

    def get_page(self, page_num: int) -> Pypdfium2EnginePage:
        if page_num < 1 or page_num > self._page_count:
            raise ValueError(f"Page out of range: {page_num} (1..{self._page_count})")
        return Pypdfium2EnginePage(page=self._doc[page_num - 1], page_index=page_num - 1)

    def close(self) -> None:
        self._doc.close()


class Pypdfium2Engine(PdfImageEngine):
    def backend_id(self) -> str:
        return ExtractEngineName.PYPDFIUM2.value

    def backend_version(self) -> str | None:
        try:
            pdfium = _require_pdfium()
        except RuntimeError:
            return None
        return getattr(pdfium, "__version__", None)

    def open_document(self, *, pdf_file: Path) -> Pypdfium2EngineDocument:
        pdfium = _require_pdfium()
        try:
            doc = pdfium.PdfDocument(str(pdf_file))
        except (pdfium.PdfiumError, OSError) as e:
            raise DocumentLoadFailure(f"Failed to open PDF: {pdf_file}") from e
        return Pypdfium2EngineDocument(doc=doc)
