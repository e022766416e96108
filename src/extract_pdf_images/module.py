from __future__ import annotations

import logging
import os
from pathlib import Path

from .contracts import (
    PAINT_IMAGE_OPS,
    ChannelPolicy,
    ExtractEngineName,
    ExtractImagesConfig,
    ExtractionResult,
    RawImage,
)
from .encoder import encode_png
from .engines import EngineDocument, EnginePage, PdfImageEngine, PypdfEngine, Pypdfium2Engine
from .errors import InvalidImageChannels, InvalidInputKind

logger = logging.getLogger(__name__)

VALID_CHANNELS = (1, 2, 3, 4)
LEGACY_DECLARED_CHANNELS = 3


def _get_engine(engine: ExtractEngineName) -> PdfImageEngine:
    if engine == ExtractEngineName.PYPDF:
        return PypdfEngine()
    if engine == ExtractEngineName.PYPDFIUM2:
        return Pypdfium2Engine()
    raise ValueError(f"Unsupported extraction engine: {engine}")


def validate_inputs(
    source_path: str | os.PathLike[str] | None,
    destination: str | os.PathLike[str] | None,
) -> tuple[str, str]:
    """
    Check both paths before any I/O and return them as plain strings.
    """

    source = "" if source_path is None else os.fspath(source_path)
    if not source.endswith(".pdf"):
        raise InvalidInputKind("Not a valid file, Please upload correct file format (PDF)")

    # "." is refused even though it names a usable directory.
    dest = "" if destination is None else os.fspath(destination)
    if not dest or dest == ".":
        raise InvalidInputKind("Not a valid folder, Please give correct folder extract images")
    return source, dest


def channel_count(image: RawImage) -> float:
    if image.width <= 0 or image.height <= 0:
        return 0.0
    return len(image.data) / image.width / image.height


def _resolve_image(page: EnginePage, name: str) -> RawImage:
    if page.has_common_object(name):
        return page.get_common_object(name)
    return page.get_object(name)


def _extract_page(
    *,
    page: EnginePage,
    page_number: int,
    destination: Path,
    config: ExtractImagesConfig,
) -> ExtractionResult:
    ops = page.get_operator_list()
    images: list[str] = []

    for op in ops.operations:
        if op.fn not in PAINT_IMAGE_OPS:
            continue

        name = op.args[0]
        image = _resolve_image(page, name)

        channels = channel_count(image)
        if channels not in VALID_CHANNELS:
            raise InvalidImageChannels(name=name, page_number=page_number, channels=channels)

        if config.channel_policy == ChannelPolicy.DETECTED:
            declared = int(channels)
        else:
            declared = LEGACY_DECLARED_CHANNELS

        out_file = destination / f"{name}.png"
        encode_png(
            data=image.data,
            width=image.width,
            height=image.height,
            channels=declared,
            kind=image.kind,
            quality=config.png_quality,
            out_file=out_file,
        )
        images.append(str(out_file))

    logger.debug("Page %d: %d operators, %d images", page_number, len(ops), len(images))
    return ExtractionResult(page_number=page_number, images=images)


def extract_images_from_document(
    *,
    doc: EngineDocument,
    destination: Path,
    config: ExtractImagesConfig,
) -> list[ExtractionResult]:
    """
    Walk every page of an opened document in order and write its images.

    The first error aborts the walk; files written before it are kept.
    """

    results: list[ExtractionResult] = []
    for page_number in range(1, doc.page_count + 1):
        page = doc.get_page(page_number)
        results.append(
            _extract_page(page=page, page_number=page_number, destination=destination, config=config)
        )
    return results


def extract_images(
    source_path: str | os.PathLike[str] | None,
    destination: str | os.PathLike[str] | None,
    *,
    config: ExtractImagesConfig | None = None,
) -> list[ExtractionResult]:
    """
    Preferred programmatic entrypoint.

    Input: a `.pdf` path and an existing destination directory
    Output: one ExtractionResult per page, ascending by page_number; each
    painted image is written as `<destination>/<resource name>.png`
    """

    source_path, destination = validate_inputs(source_path, destination)

    config = config or ExtractImagesConfig()
    engine = _get_engine(config.engine)
    logger.info("Extracting images from %s into %s (engine=%s)", source_path, destination, engine.backend_id())

    doc = engine.open_document(pdf_file=Path(source_path))
    try:
        results = extract_images_from_document(doc=doc, destination=Path(destination), config=config)
    finally:
        doc.close()

    logger.info(
        "Extracted %d images from %d pages of %s",
        sum(len(r.images) for r in results),
        len(results),
        source_path,
    )
    return results
