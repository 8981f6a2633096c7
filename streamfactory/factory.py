# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""StreamFactory protocol and the ``io``-backed reference factory.

Usage::

    from streamfactory import DefaultStreamFactory

    factory = DefaultStreamFactory()
    stream = factory.create_stream("would you like some crumpets?")
    with factory.create_stream_from_file("data.bin", "r+b") as stream:
        stream.write(b"crumpets")

"""

from __future__ import annotations

import io
import logging
import os
from typing import Any, Protocol, runtime_checkable

from streamfactory.errors import InvalidArgumentError, ResourceUnavailableError
from streamfactory.modes import DEFAULT_MODE, Mode, parse_mode
from streamfactory.stream import NativeStream, Stream, _encode_text

__all__ = [
    "DefaultStreamFactory",
    "StreamFactory",
]

_logger = logging.getLogger("streamfactory.factory")

StrPath = str | os.PathLike[str]


@runtime_checkable
class StreamFactory(Protocol):
    """Creates streams from strings, files, and open handles."""

    def create_stream(self, content: str | bytes = "") -> Stream:
        """Create an in-memory stream holding *content*."""
        ...

    def create_stream_from_file(self, filename: StrPath, mode: str = DEFAULT_MODE) -> Stream:
        """Open *filename* with *mode* and return a stream over it.

        Raises:
            InvalidArgumentError: If *mode* is empty or not recognized.
            ResourceUnavailableError: If the file cannot be opened.

        """
        ...

    def create_stream_from_resource(self, resource: Any) -> Stream:
        """Wrap an already-open handle, keeping its cursor position."""
        ...


def _encode(content: str | bytes, encoding: str) -> bytes:
    if isinstance(content, str):
        return _encode_text(content, encoding)
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    raise InvalidArgumentError(f"content must be str or bytes, got {type(content).__name__}")


def _check_path(filename: StrPath) -> str:
    """Coerce *filename* to a string path, rejecting empty paths as unopenable."""
    try:
        path = os.fspath(filename)
    except TypeError as e:
        raise InvalidArgumentError(f"filename must be a path, got {type(filename).__name__}") from e
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    if path == "":
        raise ResourceUnavailableError("unable to open '': path is empty")
    return path


def _handle_name(handle: Any) -> str | None:
    name = getattr(handle, "name", None)
    return name if isinstance(name, str) else None


def _check_resource(resource: Any) -> io.IOBase:
    """Require an open binary file object."""
    if isinstance(resource, io.TextIOBase):
        raise InvalidArgumentError("resource must be a binary handle, got a text handle")
    if not isinstance(resource, io.IOBase):
        raise InvalidArgumentError(f"resource must be an open file object, got {type(resource).__name__}")
    if resource.closed:
        raise InvalidArgumentError("resource is closed")
    return resource


class DefaultStreamFactory:
    """StreamFactory backed by Python ``io`` objects.

    In-memory streams use :class:`io.BytesIO`; file streams are opened with
    :func:`os.open` so every mode in :mod:`streamfactory.modes` maps to
    exact open flags.

    Args:
        encoding: Encoding applied to text content and used by ``str()``.

    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        """Initialize with the text encoding for created streams."""
        self.encoding = encoding

    def create_stream(self, content: str | bytes = "") -> NativeStream:
        """Create a readable, writable in-memory stream positioned at 0."""
        data = _encode(content, self.encoding)
        return NativeStream(io.BytesIO(data), readable=True, writable=True, encoding=self.encoding)

    def create_stream_from_file(self, filename: StrPath, mode: str = DEFAULT_MODE) -> NativeStream:
        """Open *filename* with *mode*.

        The mode is validated before the path is looked at, so a bad mode
        is reported as InvalidArgumentError whatever the file system holds.

        Raises:
            InvalidArgumentError: If *mode* is empty or not recognized.
            ResourceUnavailableError: If the file cannot be opened.

        """
        parsed = parse_mode(mode)
        path = _check_path(filename)
        handle = _open_file(path, parsed)
        _logger.debug(
            "Opened file stream: path=%s, mode=%s",
            path,
            parsed.token,
            extra={"path": path, "mode": parsed, "backend": "io"},
        )
        return NativeStream(
            handle,
            readable=parsed.readable,
            writable=parsed.writable,
            encoding=self.encoding,
            uri=path,
        )

    def create_stream_from_resource(self, resource: Any) -> NativeStream:
        """Take over an open binary handle without duplicating or seeking it.

        Raises:
            InvalidArgumentError: If *resource* is not an open binary file object.

        """
        handle = _check_resource(resource)
        _logger.debug("Wrapping resource: %r", handle)
        return NativeStream(handle, encoding=self.encoding, uri=_handle_name(handle))


def _open_file(path: str, mode: Mode) -> io.IOBase:
    fd: int | None = None
    try:
        fd = os.open(path, mode.os_flags(), 0o666)
        return open(fd, mode.file_mode())  # noqa: SIM115
    except (OSError, ValueError) as e:
        if fd is not None:
            os.close(fd)
        error = ResourceUnavailableError(f"unable to open {path!r} using mode {mode.token!r}: {e}")
        _logger.debug(
            "Unable to open %s with mode %s: %s",
            path,
            mode.token,
            e,
            extra={"path": path, "mode": mode, "backend": "io", "error": error},
        )
        raise error from e
