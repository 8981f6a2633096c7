# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""StreamFactory backed by pyarrow native files.

In-memory streams wrap an immutable :class:`pyarrow.BufferReader`, file
streams use :class:`pyarrow.OSFile`, and existing handles are adapted with
:class:`pyarrow.PythonFile`.  ``OSFile`` only opens files for reading,
truncating writes, or appending, so modes asking for anything else are
rejected up front as invalid for this backend.
"""

from __future__ import annotations

import logging
from typing import Any, Final

import pyarrow as pa

from streamfactory.errors import InvalidArgumentError, ResourceUnavailableError
from streamfactory.factory import StrPath, _check_path, _check_resource, _encode, _handle_name
from streamfactory.modes import DEFAULT_MODE, Mode, parse_mode
from streamfactory.stream import NativeStream

__all__ = ["ArrowStreamFactory"]

_logger = logging.getLogger("streamfactory.arrow")

_OSFILE_MODES: Final[dict[str, str]] = {"r": "rb", "w": "wb", "a": "ab"}


def _osfile_mode(mode: Mode) -> str:
    """Map a parsed mode onto the modes ``pa.OSFile`` understands."""
    if mode.readable and mode.writable:
        raise InvalidArgumentError(f"mode {mode.token!r} is not supported: Arrow files are read-only or write-only")
    if mode.exclusive:
        raise InvalidArgumentError(f"mode {mode.token!r} is not supported: Arrow files cannot be created exclusively")
    primary = mode.token[0]
    if primary not in _OSFILE_MODES:
        raise InvalidArgumentError(f"mode {mode.token!r} is not supported by the Arrow backend")
    return _OSFILE_MODES[primary]


class ArrowStreamFactory:
    """StreamFactory producing streams over ``pyarrow.NativeFile`` objects.

    Args:
        encoding: Encoding applied to text content and used by ``str()``.

    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        """Initialize with the text encoding for created streams."""
        self.encoding = encoding

    def create_stream(self, content: str | bytes = "") -> NativeStream:
        """Create a read-only stream over an Arrow buffer holding *content*."""
        reader = pa.BufferReader(_encode(content, self.encoding))
        return NativeStream(reader, readable=True, writable=False, encoding=self.encoding)

    def create_stream_from_file(self, filename: StrPath, mode: str = DEFAULT_MODE) -> NativeStream:
        """Open *filename* as an Arrow ``OSFile``.

        Raises:
            InvalidArgumentError: If *mode* is empty, not recognized, or has
                no ``OSFile`` equivalent.
            ResourceUnavailableError: If the file cannot be opened.

        """
        parsed = parse_mode(mode)
        osfile_mode = _osfile_mode(parsed)
        path = _check_path(filename)
        try:
            handle = pa.OSFile(path, mode=osfile_mode)
        except (OSError, pa.ArrowException) as e:
            error = ResourceUnavailableError(f"unable to open {path!r} using mode {parsed.token!r}: {e}")
            _logger.debug(
                "Unable to open %s with mode %s: %s",
                path,
                parsed.token,
                e,
                extra={"path": path, "mode": parsed, "backend": "arrow", "error": error},
            )
            raise error from e
        _logger.debug(
            "Opened Arrow file stream: path=%s, mode=%s",
            path,
            osfile_mode,
            extra={"path": path, "mode": parsed, "backend": "arrow"},
        )
        return NativeStream(
            handle,
            readable=parsed.readable,
            writable=parsed.writable,
            encoding=self.encoding,
            uri=path,
        )

    def create_stream_from_resource(self, resource: Any) -> NativeStream:
        """Adapt an open binary handle with ``pa.PythonFile``.

        Position queries and seeks are delegated to the handle, so the
        stream starts wherever the handle currently is.

        Raises:
            InvalidArgumentError: If *resource* is not an open binary file object.

        """
        handle = _check_resource(resource)
        python_file = pa.PythonFile(handle, mode="r" if handle.readable() else "w")
        _logger.debug("Wrapping resource with PythonFile: %r", handle)
        return NativeStream(python_file, encoding=self.encoding, uri=_handle_name(handle))
