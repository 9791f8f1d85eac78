from __future__ import annotations

import pytest

from librarian.db.models import AssetType
from librarian.library.mime import MediaClassifier, MimeClass, asset_type_for


@pytest.fixture()
def classifier() -> MediaClassifier:
    return MediaClassifier()


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/photos/a.jpg", MimeClass.IMAGE),
        ("/photos/A.JPEG", MimeClass.IMAGE),
        ("/photos/raw/b.CR2", MimeClass.IMAGE),
        ("/photos/c.heic", MimeClass.IMAGE),
        ("/videos/d.mp4", MimeClass.VIDEO),
        ("/videos/e.MOV", MimeClass.VIDEO),
        ("/music/f.mp3", MimeClass.AUDIO),
        ("/docs/g.txt", MimeClass.OTHER),
        ("/docs/h.pdf", MimeClass.OTHER),
        ("/icons/logo.svg", MimeClass.UNSUPPORTED),
    ],
)
def test_classify(classifier, path, expected):
    assert classifier.classify(path) == expected


def test_unknown_extension_has_no_mime_type(classifier):
    assert classifier.lookup("/misc/file.qqzz") is None
    assert classifier.classify("/misc/file.qqzz") is None
    assert not classifier.is_supported("/misc/file.qqzz")


def test_lookup_prefers_media_table(classifier):
    assert classifier.lookup("/photos/raw/b.nef") == "image/x-nikon-nef"
    assert classifier.lookup("/videos/d.mkv") == "video/x-matroska"


def test_is_media_only_accepts_images_and_videos(classifier):
    assert classifier.is_media("a.jpg")
    assert classifier.is_media("b.webm")
    assert not classifier.is_media("c.mp3")
    assert not classifier.is_media("a.jpg.xmp")
    assert not classifier.is_media("no_extension")


def test_custom_tables():
    classifier = MediaClassifier(image_types={".foo": "image/x-foo"}, video_types={})
    assert classifier.is_supported("x.foo")
    assert not classifier.is_supported("x.mp4")


@pytest.mark.parametrize(
    ("mime_type", "expected"),
    [
        ("image/jpeg", AssetType.IMAGE),
        ("video/mp4", AssetType.VIDEO),
        ("audio/mpeg", AssetType.AUDIO),
        ("application/pdf", AssetType.OTHER),
    ],
)
def test_asset_type_for(mime_type, expected):
    assert asset_type_for(mime_type) == expected
