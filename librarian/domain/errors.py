"""Failure taxonomy shared by the API, the reconciler and the library workers.

Permanent errors describe bad input: retrying the same job cannot succeed, so
workers fail it once and move on. Everything else is treated as transient and
left to the queue's retry schedule.
"""

from __future__ import annotations


class LibrarianError(Exception):
    permanent = False


class InvalidRequestError(LibrarianError, ValueError):
    permanent = True


class NotFoundError(LibrarianError, LookupError):
    permanent = True


class UnprocessableAssetError(LibrarianError, ValueError):
    permanent = True


class PathLockTimeout(LibrarianError, TimeoutError):
    pass


def is_permanent(exc: BaseException) -> bool:
    return bool(getattr(exc, "permanent", False))


__all__ = [
    "LibrarianError",
    "InvalidRequestError",
    "NotFoundError",
    "UnprocessableAssetError",
    "PathLockTimeout",
    "is_permanent",
]
