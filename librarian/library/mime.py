from __future__ import annotations

import enum
import mimetypes
import os
from typing import Mapping, Optional, Protocol

from librarian.db.models import AssetType


class MimeClass(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    OTHER = "OTHER"
    UNSUPPORTED = "UNSUPPORTED"


# Camera RAW and HEIF containers are missing from most platform mime tables.
IMAGE_TYPES: Mapping[str, str] = {
    ".3fr": "image/x-hasselblad-3fr",
    ".ari": "image/x-arriflex-ari",
    ".arw": "image/x-sony-arw",
    ".avif": "image/avif",
    ".cap": "image/x-phaseone-cap",
    ".cin": "image/x-phantom-cin",
    ".cr2": "image/x-canon-cr2",
    ".cr3": "image/x-canon-cr3",
    ".crw": "image/x-canon-crw",
    ".dcr": "image/x-kodak-dcr",
    ".dng": "image/x-adobe-dng",
    ".erf": "image/x-epson-erf",
    ".fff": "image/x-hasselblad-fff",
    ".gif": "image/gif",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".iiq": "image/x-phaseone-iiq",
    ".insp": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".jxl": "image/jxl",
    ".k25": "image/x-kodak-k25",
    ".kdc": "image/x-kodak-kdc",
    ".mrw": "image/x-minolta-mrw",
    ".nef": "image/x-nikon-nef",
    ".orf": "image/x-olympus-orf",
    ".ori": "image/x-olympus-ori",
    ".pef": "image/x-pentax-pef",
    ".png": "image/png",
    ".raf": "image/x-fuji-raf",
    ".raw": "image/x-panasonic-raw",
    ".rwl": "image/x-leica-rwl",
    ".sr2": "image/x-sony-sr2",
    ".srf": "image/x-sony-srf",
    ".srw": "image/x-samsung-srw",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
    ".x3f": "image/x-sigma-x3f",
}

VIDEO_TYPES: Mapping[str, str] = {
    ".3gp": "video/3gpp",
    ".avi": "video/x-msvideo",
    ".flv": "video/x-flv",
    ".insv": "video/mp4",
    ".m2ts": "video/mp2t",
    ".m4v": "video/x-m4v",
    ".mkv": "video/x-matroska",
    ".mov": "video/quicktime",
    ".mp4": "video/mp4",
    ".mpg": "video/mpeg",
    ".mts": "video/mp2t",
    ".webm": "video/webm",
    ".wmv": "video/x-ms-wmv",
}


class Classifier(Protocol):
    def lookup(self, path: str) -> Optional[str]: ...

    def classify(self, path: str) -> Optional[MimeClass]: ...

    def is_media(self, path: str) -> bool: ...

    def is_supported(self, path: str) -> bool: ...


class MediaClassifier:
    """Extension driven MIME resolution with an allow-list of importable media."""

    def __init__(
        self,
        image_types: Mapping[str, str] = IMAGE_TYPES,
        video_types: Mapping[str, str] = VIDEO_TYPES,
    ) -> None:
        self.image_types = dict(image_types)
        self.video_types = dict(video_types)

    @staticmethod
    def _extension(path: str) -> str:
        return os.path.splitext(path)[1].lower()

    def lookup(self, path: str) -> Optional[str]:
        ext = self._extension(path)
        known = self.image_types.get(ext) or self.video_types.get(ext)
        if known:
            return known
        guessed, _ = mimetypes.guess_type(path, strict=False)
        return guessed

    def classify(self, path: str) -> Optional[MimeClass]:
        mime_type = self.lookup(path)
        if mime_type is None:
            return None
        ext = self._extension(path)
        if ext in self.image_types:
            return MimeClass.IMAGE
        if ext in self.video_types:
            return MimeClass.VIDEO
        top_level = mime_type.split("/", 1)[0]
        if top_level == "audio":
            return MimeClass.AUDIO
        if top_level in {"image", "video"}:
            # Media we recognise but cannot import, e.g. SVG or ICO.
            return MimeClass.UNSUPPORTED
        return MimeClass.OTHER

    def is_media(self, path: str) -> bool:
        ext = self._extension(path)
        return ext in self.image_types or ext in self.video_types

    def is_supported(self, path: str) -> bool:
        return self.classify(path) in {MimeClass.IMAGE, MimeClass.VIDEO}


def asset_type_for(mime_type: str) -> AssetType:
    top_level = mime_type.split("/", 1)[0].upper()
    try:
        return AssetType(top_level)
    except ValueError:
        return AssetType.OTHER


__all__ = [
    "MimeClass",
    "IMAGE_TYPES",
    "VIDEO_TYPES",
    "Classifier",
    "MediaClassifier",
    "asset_type_for",
]
