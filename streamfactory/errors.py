# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Classified errors raised by stream factories and streams.

Every failure falls into exactly one of three kinds, and callers can branch
on the kind either by class or by the ``kind`` attribute:

    try:
        stream = factory.create_stream_from_file(path, mode)
    except StreamError as e:
        if e.kind is ErrorKind.INVALID_ARGUMENT:
            ...

KEY CLASSES
-----------
ErrorKind : StrEnum of the three failure kinds
StreamError : Base class of all classified errors
InvalidArgumentError : Malformed input detectable without I/O
ResourceUnavailableError : I/O-level failure (missing file, unopenable path)
OperationNotPermittedError : Operation forbidden by the stream's access mode

"""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar

__all__ = [
    "ErrorKind",
    "InvalidArgumentError",
    "OperationNotPermittedError",
    "ResourceUnavailableError",
    "StreamError",
]


class ErrorKind(StrEnum):
    """Failure classes a stream operation can report."""

    INVALID_ARGUMENT = "invalid_argument"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    OPERATION_NOT_PERMITTED = "operation_not_permitted"


class StreamError(Exception):
    """Base class for classified stream errors.

    Attributes:
        kind: The failure class, identical for every instance of a subclass.

    """

    kind: ClassVar[ErrorKind]


class InvalidArgumentError(StreamError, ValueError):
    """Raised for malformed input, e.g. an empty or unrecognized mode."""

    kind = ErrorKind.INVALID_ARGUMENT


class ResourceUnavailableError(StreamError, OSError):
    """Raised when the backing resource cannot be opened or is no longer usable."""

    kind = ErrorKind.RESOURCE_UNAVAILABLE


class OperationNotPermittedError(StreamError):
    """Raised when the stream's access mode forbids the requested operation."""

    kind = ErrorKind.OPERATION_NOT_PERMITTED
