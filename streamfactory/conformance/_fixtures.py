# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Temporary files and handles handed to each conformance test.

These are test utilities, not part of the factory contract.  Everything a
:class:`Fixtures` instance creates is released by :meth:`Fixtures.cleanup`,
which the runner calls after every test.
"""

from __future__ import annotations

import contextlib
import itertools
import logging
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, TypeVar

__all__ = ["Fixtures"]

_logger = logging.getLogger("streamfactory.conformance")

_T = TypeVar("_T")


def _as_bytes(content: str | bytes) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


class Fixtures:
    """Per-test factory of temporary files and open handles."""

    def __init__(self) -> None:
        """Initialize without touching the file system."""
        self._directory: tempfile.TemporaryDirectory[str] | None = None
        self._counter = itertools.count()
        self._closeables: list[Any] = []

    def _path(self) -> Path:
        if self._directory is None:
            self._directory = tempfile.TemporaryDirectory(prefix="streamfactory-")
        return Path(self._directory.name) / f"fixture-{next(self._counter)}.tmp"

    def temporary_file(self, content: str | bytes | None = None) -> str:
        """Create a file, optionally holding *content*, and return its path."""
        path = self._path()
        path.write_bytes(_as_bytes(content) if content is not None else b"")
        return str(path)

    def missing_file(self) -> str:
        """Return a path inside the fixture directory that does not exist."""
        return str(self._path())

    def temporary_resource(self, content: str | bytes) -> BinaryIO:
        """Return an open read-write handle holding *content*, positioned at its end."""
        fd, _ = tempfile.mkstemp(dir=self._path().parent, suffix=".res")
        handle = open(fd, "w+b")  # noqa: SIM115
        self._closeables.append(handle)
        handle.write(_as_bytes(content))
        handle.flush()
        return handle

    def open_read_handle(self, path: str) -> BinaryIO:
        """Open an independent read handle on *path*."""
        handle = open(path, "rb")  # noqa: SIM115
        self._closeables.append(handle)
        return handle

    def adopt(self, obj: _T) -> _T:
        """Close *obj* during cleanup if it has a ``close`` method."""
        if callable(getattr(obj, "close", None)):
            self._closeables.append(obj)
        return obj

    def cleanup(self) -> None:
        """Close every adopted object and remove the fixture directory."""
        closeables, self._closeables = self._closeables, []
        for obj in reversed(closeables):
            try:
                obj.close()
            except Exception:
                _logger.debug("Error closing fixture %r", obj, exc_info=True)
        if self._directory is not None:
            with contextlib.suppress(OSError):
                self._directory.cleanup()
            self._directory = None

    def __enter__(self) -> Fixtures:
        """Enter the context manager."""
        return self

    def __exit__(self, *exc: object) -> None:
        """Clean up on context exit."""
        self.cleanup()

