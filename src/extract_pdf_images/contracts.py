from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ExtractEngineName(str, Enum):
    """
    PDF parsing backend identifiers.
    """

    PYPDF = "pypdf"
    PYPDFIUM2 = "pypdfium2"


class ChannelPolicy(str, Enum):
    """
    How many channels the encoder is told the raw buffer has.

    LEGACY_RGB always declares 3 channels, whatever was detected.
    DETECTED declares the validated channel count.
    """

    LEGACY_RGB = "legacy-rgb"
    DETECTED = "detected"


class Ops(str, Enum):
    PAINT_IMAGE_XOBJECT = "paintImageXObject"
    PAINT_INLINE_IMAGE_XOBJECT = "paintInlineImageXObject"
    PAINT_FORM_XOBJECT_BEGIN = "paintFormXObjectBegin"
    PAINT_FORM_XOBJECT_END = "paintFormXObjectEnd"


PAINT_IMAGE_OPS = frozenset({Ops.PAINT_IMAGE_XOBJECT, Ops.PAINT_INLINE_IMAGE_XOBJECT})


class ImageKind(str, Enum):
    """
    Pixel layout of a raw image buffer (values are Pillow mode names).
    """

    GRAY = "L"
    GRAY_ALPHA = "LA"
    RGB = "RGB"
    RGBA = "RGBA"

    @property
    def channels(self) -> int:
        return len(self.value)


@dataclass(frozen=True, slots=True)
class Operation:
    fn: str  # an Ops member, or the raw PDF operator for everything else
    args: tuple[Any, ...] = ()


@dataclass(slots=True)
class OperatorList:
    operations: list[Operation] = field(default_factory=list)

    @property
    def fn_array(self) -> list[str]:
        return [op.fn for op in self.operations]

    @property
    def args_array(self) -> list[tuple[Any, ...]]:
        return [op.args for op in self.operations]

    def append(self, fn: str, *args: Any) -> None:
        self.operations.append(Operation(fn=fn, args=tuple(args)))

    def __len__(self) -> int:
        return len(self.operations)


@dataclass(frozen=True, slots=True)
class RawImage:
    name: str
    width: int
    height: int
    kind: ImageKind
    data: bytes  # tightly packed rows, len == width * height * channels


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    page_number: int  # 1-indexed
    images: list[str]  # output PNG paths, in paint order

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ExtractImagesConfig:
    """
    Extraction configuration.

    All values are passed explicitly; nothing is read from the environment.
    """

    engine: ExtractEngineName = ExtractEngineName.PYPDF
    png_quality: int = 50
    channel_policy: ChannelPolicy = ChannelPolicy.LEGACY_RGB

    def __post_init__(self) -> None:
        if not 0 <= self.png_quality <= 100:
            raise ValueError("png_quality must be within 0..100")
