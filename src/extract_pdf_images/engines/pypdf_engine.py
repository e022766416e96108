from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, BinaryIO, Iterator

import pypdf
from pypdf import PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import ContentStream, DictionaryObject, IndirectObject, PdfObject

from ..contracts import ExtractEngineName, OperatorList, Ops, RawImage
from ..errors import DocumentLoadFailure, ImageResolutionFailure
from .base import EngineDocument, EnginePage, PdfImageEngine, raw_image_from_pil

logger = logging.getLogger(__name__)


def _resolve(obj: PdfObject | None) -> Any:
    return None if obj is None else obj.get_object()


def _resolve_dict(obj: PdfObject | None) -> DictionaryObject | None:
    """
    Resolve to a dictionary (or stream); dangling references give None.
    """

    resolved = _resolve(obj)
    return resolved if isinstance(resolved, DictionaryObject) else None


def _object_key(ref: Any) -> tuple[int, int] | int:
    if isinstance(ref, IndirectObject):
        return (ref.idnum, ref.generation)
    return id(ref)


def _xobject_table(resources: DictionaryObject | None) -> DictionaryObject | None:
    if resources is None:
        return None
    return _resolve_dict(resources.get("/XObject"))


def _iter_image_xobject_refs(page: Any) -> Iterator[tuple[str, IndirectObject]]:
    xobjects = _xobject_table(_resolve_dict(page.get("/Resources")))
    if xobjects is None:
        return
    for key in xobjects:
        ref = xobjects.raw_get(key)
        if not isinstance(ref, IndirectObject):
            continue
        xobject = _resolve_dict(ref)
        if xobject is not None and xobject.get("/Subtype") == "/Image":
            yield str(key)[1:], ref


def _build_common_table(reader: PdfReader) -> dict[str, IndirectObject]:
    """
    Image XObjects painted under the same name from more than one page.

    A name qualifies only if every page that declares it points at the same
    indirect object.
    """

    refs_by_name: dict[str, set[Any]] = defaultdict(set)
    pages_by_ref: dict[Any, set[int]] = defaultdict(set)
    refs: dict[Any, IndirectObject] = {}
    for page_index, page in enumerate(reader.pages):
        for name, ref in _iter_image_xobject_refs(page):
            key = _object_key(ref)
            refs_by_name[name].add(key)
            pages_by_ref[key].add(page_index)
            refs[key] = ref

    common: dict[str, IndirectObject] = {}
    for name, keys in sorted(refs_by_name.items()):
        if len(keys) != 1:
            continue
        (key,) = keys
        if len(pages_by_ref[key]) > 1:
            common[name] = refs[key]
    return common


def _decode_xobject(*, name: str, xobject: Any) -> RawImage:
    try:
        image = xobject.decode_as_image()
        if image is None:
            raise ImageResolutionFailure(f"Image {name} could not be decoded")
        return raw_image_from_pil(name=name, image=image)
    except (PyPdfError, OSError, ValueError, NotImplementedError) as e:
        raise ImageResolutionFailure(f"Image {name} could not be decoded") from e


class PypdfEnginePage(EnginePage):
    def __init__(
        self,
        *,
        reader: PdfReader,
        page: Any,
        page_index: int,
        common: dict[str, IndirectObject],
    ) -> None:
        self._reader = reader
        self._page = page
        self._page_index = page_index  # 0-indexed, used for generated names
        self._common = common
        # name -> image XObject, or "~n~" key of an inline image on this page
        self._objs: dict[str, Any] = {}
        self._inline_count = 0

    def get_operator_list(self) -> OperatorList:
        self._objs = {}
        self._inline_count = 0
        ops = OperatorList()
        try:
            contents = self._page.get_contents()
            if contents is None:
                return ops
            self._walk(
                ops,
                contents.operations,
                resources=_resolve_dict(self._page.get("/Resources")),
                prefix="",
                active=frozenset(),
            )
        except PyPdfError as e:
            raise DocumentLoadFailure(
                f"Failed to parse content stream of page {self._page_index + 1}"
            ) from e
        return ops

    def _walk(
        self,
        ops: OperatorList,
        operations: list[tuple[Any, bytes]],
        *,
        resources: Any,
        prefix: str,
        active: frozenset[Any],
    ) -> None:
        xobjects = _xobject_table(resources)
        for operands, operator in operations:
            if operator == b"Do":
                self._paint_xobject(ops, str(operands[0])[1:], xobjects, prefix=prefix, active=active)
            elif operator == b"INLINE IMAGE":
                if prefix:
                    # pypdf only indexes inline images of the page content itself
                    logger.debug("Skipping inline image inside form %s", prefix.rstrip("_"))
                    ops.append("BI")
                    continue
                self._inline_count += 1
                name = f"img_p{self._page_index}_{self._inline_count}"
                self._objs[name] = f"~{self._inline_count - 1}~"
                ops.append(Ops.PAINT_INLINE_IMAGE_XOBJECT, name)
            else:
                ops.append(operator.decode("latin-1"), *operands)

    def _paint_xobject(
        self,
        ops: OperatorList,
        name: str,
        xobjects: Any,
        *,
        prefix: str,
        active: frozenset[Any],
    ) -> None:
        qualified = f"{prefix}{name}"
        if xobjects is None or f"/{name}" not in xobjects:
            logger.warning("Page %d paints undefined XObject %s", self._page_index + 1, qualified)
            ops.append("Do", qualified)
            return

        ref = xobjects.raw_get(f"/{name}")
        xobject = _resolve_dict(ref)
        if xobject is None:
            raise ImageResolutionFailure(
                f"XObject {qualified} on page {self._page_index + 1} does not resolve to an object"
            )
        subtype = xobject.get("/Subtype")
        if subtype == "/Image":
            self._objs[qualified] = xobject
            ops.append(Ops.PAINT_IMAGE_XOBJECT, qualified)
        elif subtype == "/Form":
            key = _object_key(ref)
            if key in active:
                logger.warning("Form XObject %s references itself; not expanded", qualified)
                return
            ops.append(Ops.PAINT_FORM_XOBJECT_BEGIN, qualified)
            form_resources = _resolve_dict(xobject.get("/Resources"))
            self._walk(
                ops,
                ContentStream(xobject, self._reader).operations,
                resources=form_resources if form_resources is not None else _resolve_dict(self._page.get("/Resources")),
                prefix=f"{qualified}_",
                active=active | {key},
            )
            ops.append(Ops.PAINT_FORM_XOBJECT_END, qualified)
        else:
            ops.append("Do", qualified)

    def has_common_object(self, name: str) -> bool:
        return name in self._common

    def get_common_object(self, name: str) -> RawImage:
        try:
            ref = self._common[name]
        except KeyError as e:
            raise ImageResolutionFailure(f"Unknown common object {name}") from e
        return _decode_xobject(name=name, xobject=_resolve(ref))

    def get_object(self, name: str) -> RawImage:
        try:
            source = self._objs[name]
        except KeyError as e:
            raise ImageResolutionFailure(
                f"Unknown object {name} on page {self._page_index + 1}"
            ) from e

        if isinstance(source, str):
            try:
                image = self._page.images[source].image
                return raw_image_from_pil(name=name, image=image)
            except (PyPdfError, OSError, ValueError, KeyError, NotImplementedError) as e:
                raise ImageResolutionFailure(f"Inline image {name} could not be decoded") from e
        return _decode_xobject(name=name, xobject=source)


class PypdfEngineDocument(EngineDocument):
    def __init__(self, *, reader: PdfReader, stream: BinaryIO) -> None:
        self._reader = reader
        self._stream = stream
        self._page_count = len(reader.pages)
        self._common = _build_common_table(reader)

    @property
    def page_count(self) -> int:
        return self._page_count

    def get_page(self, page_num: int) -> PypdfEnginePage:
        if page_num < 1 or page_num > self._page_count:
            raise ValueError(f"Page out of range: {page_num} (1..{self._page_count})")
        return PypdfEnginePage(
            reader=self._reader,
            page=self._reader.pages[page_num - 1],
            page_index=page_num - 1,
            common=self._common,
        )

    def close(self) -> None:
        self._stream.close()


class PypdfEngine(PdfImageEngine):
    def backend_id(self) -> str:
        return ExtractEngineName.PYPDF.value

    def backend_version(self) -> str | None:
        return getattr(pypdf, "__version__", None)

    def open_document(self, *, pdf_file: Path) -> PypdfEngineDocument:
        try:
            stream = pdf_file.open("rb")
        except OSError as e:
            raise DocumentLoadFailure(f"Failed to open PDF: {pdf_file}") from e

        try:
            return PypdfEngineDocument(reader=PdfReader(stream), stream=stream)
        except (PyPdfError, OSError, ValueError) as e:
            stream.close()
            raise DocumentLoadFailure(f"Failed to parse PDF: {pdf_file}") from e
