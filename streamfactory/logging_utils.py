# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON log formatting for streamfactory records.

:class:`StreamJsonFormatter` writes one JSON object per record.  Library
records attach streams, modes and classified errors as ``extra`` fields;
the formatter flattens those into plain JSON so log pipelines can filter on
``error_kind``, ``uri`` or ``mode`` without parsing messages::

    {"timestamp": "...", "level": "DEBUG", "logger": "streamfactory.factory",
     "message": "Unable to open ...", "path": "/tmp/x", "mode": "r",
     "error_kind": "resource_unavailable", "error": "unable to open ..."}

This module is **not** auto-imported by ``streamfactory``; the CLI imports
it for ``--log-format json``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from streamfactory.errors import StreamError
from streamfactory.modes import Mode
from streamfactory.stream import NativeStream

__all__ = ["StreamJsonFormatter"]

_STANDARD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _stream_fields(stream: NativeStream) -> dict[str, object]:
    return {
        "uri": stream.uri,
        "closed": stream.closed,
        "readable": stream.readable(),
        "writable": stream.writable(),
    }


def _flatten(key: str, value: Any) -> dict[str, object]:
    """Expand one ``extra`` field into JSON-ready key/value pairs."""
    if isinstance(value, StreamError):
        return {f"{key}_kind": value.kind.value, key: str(value)}
    if isinstance(value, NativeStream):
        return {key: _stream_fields(value)}
    if isinstance(value, Mode):
        return {key: value.token}
    return {key: value}


class StreamJsonFormatter(logging.Formatter):
    """Single-line JSON formatter aware of streamfactory types.

    - ``StreamError`` values become ``<key>_kind`` plus the message under ``<key>``.
    - ``NativeStream`` values become an object with ``uri``, ``closed``,
      ``readable`` and ``writable``.
    - ``Mode`` values become their token.
    - When the record carries a ``StreamError`` as ``exc_info``, its kind is
      emitted as ``error_kind`` next to the formatted traceback.

    The envelope keys (``timestamp``, ``level``, ``logger``, ``message``) are
    never replaced by extras.  Anything else json cannot encode is
    stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format *record* as a JSON object on one line."""
        extras: dict[str, object] = {}
        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS:
                extras.update(_flatten(key, value))

        if record.exc_info and record.exc_info[1] is not None:
            extras["exception"] = self.formatException(record.exc_info)
            if isinstance(record.exc_info[1], StreamError):
                extras.setdefault("error_kind", record.exc_info[1].kind.value)
        if record.stack_info:
            extras["stack_info"] = self.formatStack(record.stack_info)

        obj: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in extras.items():
            obj.setdefault(key, value)
        return json.dumps(obj, default=str)
