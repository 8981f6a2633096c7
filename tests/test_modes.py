# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for streamfactory.modes: mode token parsing and open flags."""

from __future__ import annotations

import os

import pytest

from streamfactory.errors import InvalidArgumentError
from streamfactory.modes import DEFAULT_MODE, Mode, parse_mode

# ---------------------------------------------------------------------------
# parse_mode: accepted tokens
# ---------------------------------------------------------------------------


class TestParseModeAccepted:
    """Tokens that parse, and the access they describe."""

    @pytest.mark.parametrize(
        ("token", "readable", "writable"),
        [
            ("r", True, False),
            ("rb", True, False),
            ("rt", True, False),
            ("r+", True, True),
            ("r+b", True, True),
            ("rb+", True, True),
            ("w", False, True),
            ("w+", True, True),
            ("a", False, True),
            ("a+", True, True),
            ("x", False, True),
            ("xb", False, True),
            ("c", False, True),
            ("c+", True, True),
            ("re", True, False),
        ],
    )
    def test_direction(self, token: str, readable: bool, writable: bool) -> None:
        """Primary letter and ``+`` determine read/write access."""
        mode = parse_mode(token)
        assert mode.token == token
        assert mode.readable is readable
        assert mode.writable is writable

    def test_default_mode_is_read_only(self) -> None:
        """The default mode reads and never writes."""
        mode = parse_mode(DEFAULT_MODE)
        assert mode.readable
        assert not mode.writable
        assert not mode.create

    def test_write_truncates_and_creates(self) -> None:
        """``w`` creates and truncates."""
        mode = parse_mode("w")
        assert mode.create and mode.truncate
        assert not mode.append and not mode.exclusive

    def test_append(self) -> None:
        """``a`` creates and appends without truncating."""
        mode = parse_mode("a")
        assert mode.create and mode.append
        assert not mode.truncate

    def test_exclusive(self) -> None:
        """``x`` creates exclusively."""
        mode = parse_mode("x")
        assert mode.create and mode.exclusive

    def test_create_without_truncate(self) -> None:
        """``c`` creates but neither truncates nor appends."""
        mode = parse_mode("c")
        assert mode.create
        assert not mode.truncate and not mode.append and not mode.exclusive


# ---------------------------------------------------------------------------
# parse_mode: rejected tokens
# ---------------------------------------------------------------------------


class TestParseModeRejected:
    """Tokens that raise InvalidArgumentError."""

    def test_empty(self) -> None:
        """An empty mode is an invalid argument."""
        with pytest.raises(InvalidArgumentError, match="must not be empty"):
            parse_mode("")

    @pytest.mark.parametrize(
        "token",
        ["☠", "z", "+r", "R", "rw", "r++", "rbb", "rbt", "w+x", " r", "read"],
    )
    def test_unrecognized(self, token: str) -> None:
        """Unknown primaries, unknown flags, and repeated flags are rejected."""
        with pytest.raises(InvalidArgumentError):
            parse_mode(token)

    def test_non_string(self) -> None:
        """A non-string mode is rejected without raising TypeError."""
        with pytest.raises(InvalidArgumentError, match="must be a string"):
            parse_mode(None)  # type: ignore[arg-type]

    def test_is_value_error(self) -> None:
        """Callers catching ValueError still see mode errors."""
        with pytest.raises(ValueError):
            parse_mode("")


# ---------------------------------------------------------------------------
# Mode.os_flags / Mode.file_mode
# ---------------------------------------------------------------------------


class TestOpenFlags:
    """Translation of a Mode into ``os.open`` flags and ``open(fd)`` modes."""

    def test_read_only_flags(self) -> None:
        """``r`` opens read-only without creating."""
        flags = parse_mode("r").os_flags()
        assert flags & (os.O_WRONLY | os.O_RDWR) == 0
        assert not flags & os.O_CREAT

    def test_read_write_flags(self) -> None:
        """``r+`` opens read-write."""
        assert parse_mode("r+").os_flags() & os.O_RDWR

    def test_write_flags(self) -> None:
        """``w`` opens write-only, creating and truncating."""
        flags = parse_mode("w").os_flags()
        assert flags & os.O_WRONLY
        assert flags & os.O_CREAT
        assert flags & os.O_TRUNC

    def test_append_flags(self) -> None:
        """``a`` sets O_APPEND."""
        assert parse_mode("a").os_flags() & os.O_APPEND

    def test_exclusive_flags(self) -> None:
        """``x`` sets O_EXCL."""
        assert parse_mode("x").os_flags() & os.O_EXCL

    def test_create_flags_do_not_truncate(self) -> None:
        """``c`` creates without O_TRUNC."""
        flags = parse_mode("c").os_flags()
        assert flags & os.O_CREAT
        assert not flags & os.O_TRUNC

    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("r", "rb"),
            ("r+", "r+b"),
            ("w", "wb"),
            ("w+", "r+b"),
            ("x", "wb"),
            ("c", "wb"),
            ("c+", "r+b"),
            ("a", "ab"),
            ("a+", "a+b"),
        ],
    )
    def test_file_mode(self, token: str, expected: str) -> None:
        """Descriptor wrapping modes are always binary and never truncate."""
        assert parse_mode(token).file_mode() == expected

    def test_mode_is_frozen(self) -> None:
        """Mode instances are immutable."""
        mode = Mode(token="r", readable=True, writable=False)
        with pytest.raises(AttributeError):
            mode.writable = True  # type: ignore[misc]
