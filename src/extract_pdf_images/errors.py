from __future__ import annotations

from pathlib import Path


class ExtractImagesError(Exception):
    pass


class InvalidInputKind(ExtractImagesError):
    pass


class DocumentLoadFailure(ExtractImagesError):
    pass


class ImageResolutionFailure(ExtractImagesError):
    pass


class InvalidImageChannels(ExtractImagesError):
    def __init__(self, *, name: str, page_number: int, channels: float) -> None:
        super().__init__(f"Invalid image channel: {channels} for image {name} on page {page_number}")
        self.name = name
        self.page_number = page_number
        self.channels = channels


class EncodingFailure(ExtractImagesError):
    def __init__(self, message: str, *, out_file: Path) -> None:
        super().__init__(f"{message}: {out_file}")
        self.out_file = out_file
