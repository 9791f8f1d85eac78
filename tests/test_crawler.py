from __future__ import annotations

import os

import pytest

from librarian.library import crawler as crawler_module
from librarian.library.crawler import LibraryCrawler, crawl
from tests.conftest import write_file


def test_finds_media_in_nested_directories(media_root):
    write_file(media_root / "a.jpg")
    write_file(media_root / "2024" / "summer" / "b.MP4")
    write_file(media_root / "2024" / "c.heic")

    found = set(LibraryCrawler().find_all_media([str(media_root)]))

    assert found == {
        str(media_root / "a.jpg"),
        str(media_root / "2024" / "summer" / "b.MP4"),
        str(media_root / "2024" / "c.heic"),
    }


def test_skips_unsupported_files(media_root):
    write_file(media_root / "notes.txt")
    write_file(media_root / "song.mp3")
    write_file(media_root / "photo.jpg.xmp")
    write_file(media_root / "photo.jpg")

    assert list(LibraryCrawler().find_all_media([str(media_root)])) == [str(media_root / "photo.jpg")]


def test_missing_root_yields_nothing(tmp_path):
    assert list(crawl([str(tmp_path / "does-not-exist")])) == []


def test_duplicate_roots_are_walked_once(media_root):
    write_file(media_root / "a.jpg")

    found = list(LibraryCrawler().find_all_media([str(media_root), f"{media_root}/./", str(media_root)]))

    assert found == [str(media_root / "a.jpg")]


def test_unreadable_subtree_does_not_abort_siblings(media_root, monkeypatch):
    write_file(media_root / "locked" / "hidden.jpg")
    write_file(media_root / "open" / "visible.jpg")
    locked = str(media_root / "locked")
    real_scandir = os.scandir

    def fake_scandir(path):
        if os.path.normpath(path) == locked:
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    monkeypatch.setattr(crawler_module.os, "scandir", fake_scandir)

    found = list(LibraryCrawler().find_all_media([str(media_root)]))

    assert found == [str(media_root / "open" / "visible.jpg")]


def test_custom_media_predicate(media_root):
    write_file(media_root / "a.jpg")
    write_file(media_root / "b.raw-ish")

    found = list(LibraryCrawler(is_media=lambda name: name.endswith(".raw-ish")).find_all_media([str(media_root)]))

    assert found == [str(media_root / "b.raw-ish")]


def test_each_walk_starts_fresh(media_root):
    crawler = LibraryCrawler()
    write_file(media_root / "a.jpg")
    first = set(crawler.find_all_media([str(media_root)]))

    write_file(media_root / "b.png")
    second = set(crawler.find_all_media([str(media_root)]))

    assert first == {str(media_root / "a.jpg")}
    assert second == {str(media_root / "a.jpg"), str(media_root / "b.png")}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinked_directories_are_opt_in(tmp_path, media_root):
    outside = tmp_path / "outside"
    write_file(outside / "linked.jpg")
    try:
        os.symlink(outside, media_root / "link", target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    assert list(LibraryCrawler().find_all_media([str(media_root)])) == []
    assert list(LibraryCrawler(follow_symlinks=True).find_all_media([str(media_root)])) == [
        str(media_root / "link" / "linked.jpg")
    ]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlink_cycles_terminate(media_root):
    write_file(media_root / "a.jpg")
    try:
        os.symlink(media_root, media_root / "loop", target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    found = list(LibraryCrawler(follow_symlinks=True).find_all_media([str(media_root)]))

    assert found == [str(media_root / "a.jpg")]


def test_relative_roots_yield_absolute_paths(media_root, monkeypatch):
    write_file(media_root / "a.jpg")
    monkeypatch.chdir(media_root.parent)

    assert list(crawl(["./media/"])) == [str(media_root / "a.jpg")]
