from __future__ import annotations

import os
from typing import Callable, Iterable, Iterator, Optional

from librarian.core.logging import get_logger
from librarian.library.mime import MediaClassifier

logger = get_logger(component="crawler")


def normalize_path(path: str) -> str:
    """Canonical absolute form of ``path``; relative paths resolve against the working directory."""
    return os.path.abspath(os.path.normpath(path))


class LibraryCrawler:
    """Walks import paths and yields every file the media predicate accepts.

    Each call to :meth:`find_all_media` starts a fresh walk; nothing is cached
    between calls. Unreadable directories are skipped without aborting the
    walk of their siblings, and yield order follows ``os.scandir`` so callers
    must not rely on it.
    """

    def __init__(
        self,
        is_media: Optional[Callable[[str], bool]] = None,
        *,
        follow_symlinks: bool = False,
    ) -> None:
        self.is_media = is_media or MediaClassifier().is_media
        self.follow_symlinks = follow_symlinks

    def find_all_media(self, paths_to_crawl: Iterable[str]) -> Iterator[str]:
        seen_roots: set[str] = set()
        for root in paths_to_crawl:
            root = normalize_path(root)
            if root in seen_roots:
                continue
            seen_roots.add(root)
            yield from self._walk(root)

    def _walk(self, root: str) -> Iterator[str]:
        stack: list[str] = [root]
        visited: set[str] = set()
        while stack:
            current = stack.pop()
            if self.follow_symlinks:
                # Symlinked directories can form cycles.
                real = os.path.realpath(current)
                if real in visited:
                    continue
                visited.add(real)
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as exc:
                logger.warning("crawl_subtree_skipped", path=current, error=str(exc))
                continue
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=self.follow_symlinks):
                        stack.append(entry.path)
                        continue
                    if not entry.is_file(follow_symlinks=self.follow_symlinks):
                        continue
                except OSError as exc:
                    logger.warning("crawl_entry_skipped", path=entry.path, error=str(exc))
                    continue
                if self.is_media(entry.name):
                    yield entry.path


def crawl(paths: Iterable[str], *, follow_symlinks: bool = False) -> Iterator[str]:
    return LibraryCrawler(follow_symlinks=follow_symlinks).find_all_media(paths)


__all__ = ["LibraryCrawler", "crawl", "normalize_path"]
