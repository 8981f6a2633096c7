# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Parsing and validation of ``fopen``-style mode tokens.

A mode token is one primary letter followed by optional flags:

    ==========  =======  ===========================
    Primary     Access   On open
    ==========  =======  ===========================
    ``r``       read     file must exist
    ``w``       write    create, truncate
    ``a``       write    create, writes append
    ``x``       write    create, fail if it exists
    ``c``       write    create, no truncation
    ==========  =======  ===========================

Flags: ``+`` (read-write), ``b`` (binary), ``t`` (text, no effect since
content is always bytes), ``e`` (close-on-exec, descriptors are already
non-inheritable).  Each flag may appear at most once and ``b``/``t`` are
mutually exclusive.

Validation never touches the file system, so callers can reject a bad mode
before attempting to open anything.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from streamfactory.errors import InvalidArgumentError

__all__ = [
    "DEFAULT_MODE",
    "Mode",
    "parse_mode",
]

DEFAULT_MODE: Final[str] = "r"

_PRIMARY: Final[frozenset[str]] = frozenset("rwaxc")
_FLAGS: Final[frozenset[str]] = frozenset("+bte")
_O_BINARY: Final[int] = getattr(os, "O_BINARY", 0)


@dataclass(frozen=True)
class Mode:
    """A validated access mode.

    Attributes:
        token: The mode token as given.
        readable: Whether the stream may be read.
        writable: Whether the stream may be written.
        create: Whether a missing file is created.
        truncate: Whether an existing file is emptied on open.
        append: Whether every write goes to the end of the file.
        exclusive: Whether opening fails when the file already exists.

    """

    token: str
    readable: bool
    writable: bool
    create: bool = False
    truncate: bool = False
    append: bool = False
    exclusive: bool = False

    def os_flags(self) -> int:
        """Return the ``os.open`` flags for this mode."""
        if self.readable and self.writable:
            flags = os.O_RDWR
        elif self.writable:
            flags = os.O_WRONLY
        else:
            flags = os.O_RDONLY
        if self.create:
            flags |= os.O_CREAT
        if self.truncate:
            flags |= os.O_TRUNC
        if self.append:
            flags |= os.O_APPEND
        if self.exclusive:
            flags |= os.O_EXCL
        return flags | _O_BINARY

    def file_mode(self) -> str:
        """Return the binary mode for wrapping a descriptor with ``open(fd, ...)``.

        Truncation and creation already happened in ``os.open``, so the
        result only encodes direction and append behaviour.
        """
        if self.append:
            return "a+b" if self.readable else "ab"
        if self.readable and self.writable:
            return "r+b"
        return "wb" if self.writable else "rb"


def parse_mode(token: str) -> Mode:
    """Validate a mode token and describe the access it requests.

    Args:
        token: An ``fopen``-style mode such as ``"r"``, ``"w+"`` or ``"rb"``.

    Returns:
        The parsed Mode.

    Raises:
        InvalidArgumentError: If the token is empty or not recognized.

    """
    if not isinstance(token, str):
        raise InvalidArgumentError(f"mode must be a string, got {type(token).__name__}")
    if token == "":
        raise InvalidArgumentError("mode must not be empty")

    primary, flags = token[0], token[1:]
    if primary not in _PRIMARY:
        raise InvalidArgumentError(f"invalid mode {token!r}: must start with one of 'r', 'w', 'a', 'x', 'c'")
    if any(f not in _FLAGS for f in flags) or len(set(flags)) != len(flags):
        raise InvalidArgumentError(f"invalid mode {token!r}: unrecognized or repeated flag")
    if "b" in flags and "t" in flags:
        raise InvalidArgumentError(f"invalid mode {token!r}: 'b' and 't' are mutually exclusive")

    plus = "+" in flags
    return Mode(
        token=token,
        readable=primary == "r" or plus,
        writable=primary != "r" or plus,
        create=primary != "r",
        truncate=primary == "w",
        append=primary == "a",
        exclusive=primary == "x",
    )
