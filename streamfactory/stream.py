# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Stream protocol and the handle-backed stream used by the bundled factories.

KEY CLASSES
-----------
Stream : Protocol naming the capability set conformance tests rely on
NativeStream : Stream over any binary file-like object, including Python
    ``io`` objects and ``pyarrow.NativeFile`` instances

I/O tracing for ``NativeStream`` is written to stderr when the environment
variable ``STREAMFACTORY_IO_DEBUG`` is set to ``1``.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import sys
from collections.abc import Iterator
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

import structlog

from streamfactory.errors import (
    InvalidArgumentError,
    OperationNotPermittedError,
    ResourceUnavailableError,
    StreamError,
)

__all__ = [
    "NativeStream",
    "Stream",
]

_logger = logging.getLogger("streamfactory.stream")

# Stream I/O tracing - enable with STREAMFACTORY_IO_DEBUG=1
_IO_DEBUG = os.environ.get("STREAMFACTORY_IO_DEBUG", "").lower() in ("1", "true", "yes")
_io_log: structlog.stdlib.BoundLogger | None = None

_WHENCE: frozenset[int] = frozenset({io.SEEK_SET, io.SEEK_CUR, io.SEEK_END})


def _get_io_log() -> structlog.stdlib.BoundLogger:
    """Get or create the I/O trace logger, configured to write to stderr."""
    global _io_log
    if _io_log is None:
        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.dev.ConsoleRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        )
        _io_log = structlog.get_logger().bind(component="stream")
    return _io_log


@runtime_checkable
class Stream(Protocol):
    """Byte stream produced by a stream factory.

    ``str(stream)`` yields the full logical content regardless of the
    current cursor position.
    """

    def __str__(self) -> str: ...

    def read(self, size: int, /) -> bytes: ...

    def write(self, data: bytes | str, /) -> int: ...

    def tell(self) -> int: ...

    def seek(self, offset: int, whence: int = io.SEEK_SET, /) -> int: ...


@contextlib.contextmanager
def _classified(action: str) -> Iterator[None]:
    """Translate errors raised by the underlying handle into classified errors."""
    try:
        yield
    except StreamError:
        raise
    except io.UnsupportedOperation as e:
        raise OperationNotPermittedError(f"{action} is not supported by the underlying handle") from e
    except (OSError, ValueError) as e:
        # ValueError covers "I/O operation on closed file" from io objects
        raise ResourceUnavailableError(f"{action} failed: {e}") from e


def _encode_text(text: str, encoding: str) -> bytes:
    """Encode *text* so that ``str()`` output of a stream encodes back to the same bytes."""
    try:
        return text.encode(encoding, errors="surrogateescape")
    except UnicodeError as e:
        raise InvalidArgumentError(f"text cannot be encoded as {encoding}: {e}") from e


def _probe(raw: Any, capability: str, fallback: str) -> bool:
    """Ask *raw* for a capability, falling back to attribute presence."""
    probe = getattr(raw, capability, None)
    if probe is None:
        return hasattr(raw, fallback)
    try:
        return bool(probe())
    except (OSError, ValueError):
        return False


class NativeStream:
    """Stream backed by a binary file-like object.

    The wrapped object is used directly: no duplication and no initial
    seek, so the stream's cursor is the handle's cursor.

    Args:
        raw: Object with ``read``/``write``/``tell``/``seek``.
        readable: Override the read capability reported by *raw*.
        writable: Override the write capability reported by *raw*.
        encoding: Encoding used for text passed to ``write`` and for ``str()``.
        uri: Optional description of the backing resource, e.g. a file path.

    """

    __slots__ = ("_closed", "_encoding", "_raw", "_readable", "_seekable", "_uri", "_writable")

    def __init__(
        self,
        raw: Any,
        *,
        readable: bool | None = None,
        writable: bool | None = None,
        encoding: str = "utf-8",
        uri: str | None = None,
    ) -> None:
        """Wrap *raw*, probing its capabilities where not given."""
        self._raw = raw
        self._readable = _probe(raw, "readable", "read") if readable is None else readable
        self._writable = _probe(raw, "writable", "write") if writable is None else writable
        self._seekable = _probe(raw, "seekable", "seek")
        self._encoding = encoding
        self._uri = uri
        self._closed = False

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def readable(self) -> bool:
        """Whether ``read`` is permitted."""
        return self._raw is not None and self._readable

    def writable(self) -> bool:
        """Whether ``write`` is permitted."""
        return self._raw is not None and self._writable

    def seekable(self) -> bool:
        """Whether ``seek`` is permitted."""
        return self._raw is not None and self._seekable

    @property
    def closed(self) -> bool:
        """Whether the stream has been closed or detached."""
        return self._raw is None

    @property
    def uri(self) -> str | None:
        """Description of the backing resource, if known."""
        return self._uri

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def _require(self) -> Any:
        if self._raw is None:
            raise ResourceUnavailableError("stream is closed" if self._closed else "stream is detached")
        if getattr(self._raw, "closed", False):
            raise ResourceUnavailableError("underlying handle is closed")
        return self._raw

    def _require_readable(self) -> Any:
        raw = self._require()
        if not self._readable:
            raise OperationNotPermittedError("cannot read from a stream that is not readable")
        return raw

    def read(self, size: int, /) -> bytes:
        """Read up to *size* bytes from the current position.

        Raises:
            InvalidArgumentError: If *size* is negative.
            OperationNotPermittedError: If the stream is not readable.
            ResourceUnavailableError: If the stream is closed or the read fails.

        """
        raw = self._require_readable()
        if size < 0:
            raise InvalidArgumentError(f"read size must be non-negative, got {size}")
        with _classified("read"):
            data = raw.read(size)
        if data is None:
            data = b""
        if _IO_DEBUG:
            _get_io_log().debug("read", uri=self._uri, requested=size, returned=len(data))
        return bytes(data)

    def write(self, data: bytes | str, /) -> int:
        """Write *data* at the current position and return the byte count.

        Text is encoded with the stream's encoding; no newline translation
        is applied.

        Raises:
            InvalidArgumentError: If text cannot be encoded with the stream's encoding.
            OperationNotPermittedError: If the stream is not writable.
            ResourceUnavailableError: If the stream is closed or the write fails.

        """
        raw = self._require()
        if not self._writable:
            raise OperationNotPermittedError("cannot write to a stream that is not writable")
        payload = _encode_text(data, self._encoding) if isinstance(data, str) else bytes(data)
        with _classified("write"):
            written = raw.write(payload)
        if written is None:
            written = len(payload)
        if _IO_DEBUG:
            _get_io_log().debug("write", uri=self._uri, requested=len(payload), written=written)
        return int(written)

    def tell(self) -> int:
        """Return the current cursor position."""
        raw = self._require()
        with _classified("tell"):
            return int(raw.tell())

    def seek(self, offset: int, whence: int = io.SEEK_SET, /) -> int:
        """Move the cursor and return the new position.

        Raises:
            InvalidArgumentError: If *whence* is unknown or an absolute *offset* is negative.
            OperationNotPermittedError: If the stream is not seekable.

        """
        raw = self._require()
        if not self._seekable:
            raise OperationNotPermittedError("cannot seek a stream that is not seekable")
        if whence not in _WHENCE:
            raise InvalidArgumentError(f"invalid whence {whence!r}: must be SEEK_SET, SEEK_CUR or SEEK_END")
        if whence == io.SEEK_SET and offset < 0:
            raise InvalidArgumentError(f"negative seek position {offset}")
        with _classified("seek"):
            raw.seek(offset, whence)
            position = int(raw.tell())
        if _IO_DEBUG:
            _get_io_log().debug("seek", uri=self._uri, offset=offset, whence=whence, position=position)
        return position

    def rewind(self) -> None:
        """Seek to the beginning of the stream."""
        self.seek(0)

    def get_size(self) -> int | None:
        """Return the total size in bytes, or ``None`` when it cannot be determined."""
        raw = self._require()
        if not self._seekable:
            return None
        with _classified("size"):
            position = raw.tell()
            end = raw.seek(0, io.SEEK_END)
            if end is None:
                end = raw.tell()
            raw.seek(position)
        return int(end)

    def eof(self) -> bool:
        """Whether the cursor is at or past the end of the content."""
        size = self.get_size()
        return size is not None and self.tell() >= size

    def get_contents(self) -> bytes:
        """Read everything from the current position to the end."""
        raw = self._require_readable()
        with _classified("read"):
            data = raw.read()
        return bytes(data) if data is not None else b""

    def _full_content(self) -> bytes:
        raw = self._require_readable()
        if not self._seekable:
            raise OperationNotPermittedError("full content requires a seekable stream")
        with _classified("read"):
            position = raw.tell()
            raw.seek(0)
            try:
                data = raw.read()
            finally:
                raw.seek(position)
        return bytes(data) if data is not None else b""

    def __bytes__(self) -> bytes:
        """Return the full content as bytes, leaving the cursor where it was."""
        return self._full_content()

    def __str__(self) -> str:
        """Return the full content as text, or ``""`` when it cannot be read."""
        try:
            content = self._full_content()
        except StreamError as e:
            _logger.debug(
                "String conversion of %r yielded no content: %s", self, e, extra={"stream": self, "error": e}
            )
            return ""
        return content.decode(self._encoding, errors="surrogateescape")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def detach(self) -> Any:
        """Separate the underlying handle from the stream and return it.

        The stream is unusable afterwards.  Returns ``None`` if already
        detached or closed.
        """
        raw, self._raw = self._raw, None
        return raw

    def close(self) -> None:
        """Close the stream and its underlying handle."""
        raw = self.detach()
        self._closed = True
        if raw is not None:
            raw.close()

    def __enter__(self) -> Self:
        """Enter the context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the stream on context exit."""
        self.close()

    def __repr__(self) -> str:
        """Return a debug representation."""
        state = "closed" if self._raw is None else "open"
        flags = "".join(
            flag for flag, on in (("r", self._readable), ("w", self._writable), ("s", self._seekable)) if on
        )
        return f"NativeStream({state}, {flags or '-'}, uri={self._uri!r})"
