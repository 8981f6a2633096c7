# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for streamfactory.factory: DefaultStreamFactory beyond the conformance suite."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path

import pytest

from streamfactory import DefaultStreamFactory, StreamFactory
from streamfactory.errors import (
    InvalidArgumentError,
    OperationNotPermittedError,
    ResourceUnavailableError,
)

_CONTENT = "would you like some crumpets?"


@pytest.fixture
def factory() -> DefaultStreamFactory:
    """Return a fresh DefaultStreamFactory."""
    return DefaultStreamFactory()


@pytest.fixture
def crumpets(tmp_path: Path) -> Path:
    """Return a file holding the crumpets sentence."""
    path = tmp_path / "crumpets.txt"
    path.write_bytes(_CONTENT.encode())
    return path


# ---------------------------------------------------------------------------
# create_stream
# ---------------------------------------------------------------------------


class TestCreateStream:
    """In-memory streams."""

    def test_satisfies_protocol(self, factory: DefaultStreamFactory) -> None:
        """DefaultStreamFactory is a StreamFactory."""
        assert isinstance(factory, StreamFactory)

    def test_read_write(self, factory: DefaultStreamFactory) -> None:
        """In-memory streams are readable and writable, starting at 0."""
        stream = factory.create_stream("crumpets")
        assert stream.tell() == 0
        stream.seek(0, io.SEEK_END)
        stream.write(b" and tea")
        assert str(stream) == "crumpets and tea"

    def test_bytes_content(self, factory: DefaultStreamFactory) -> None:
        """Bytes are stored verbatim."""
        assert bytes(factory.create_stream(b"\x00\xff\r\n")) == b"\x00\xff\r\n"

    def test_encoding(self) -> None:
        """Text is encoded with the factory's encoding."""
        stream = DefaultStreamFactory(encoding="utf-16-le").create_stream("ab")
        assert bytes(stream) == b"a\x00b\x00"
        assert str(stream) == "ab"

    def test_str_output_round_trips(self, factory: DefaultStreamFactory) -> None:
        """Text rendered from undecodable bytes recreates the same bytes."""
        text = str(factory.create_stream(b"\xff\xfe crumpets"))
        assert bytes(factory.create_stream(text)) == b"\xff\xfe crumpets"

    def test_unencodable_text(self, factory: DefaultStreamFactory) -> None:
        """Text the encoding cannot represent is a classified invalid argument."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            factory.create_stream("\ud800")
        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)

    def test_invalid_content(self, factory: DefaultStreamFactory) -> None:
        """Content must be text or bytes."""
        with pytest.raises(InvalidArgumentError):
            factory.create_stream(42)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# create_stream_from_file
# ---------------------------------------------------------------------------


class TestCreateStreamFromFile:
    """File-backed streams and mode semantics."""

    def test_path_object(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``os.PathLike`` paths are accepted."""
        with factory.create_stream_from_file(crumpets) as stream:
            assert str(stream) == _CONTENT
            assert stream.uri == str(crumpets)

    def test_write_mode_truncates(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``w`` empties an existing file."""
        with factory.create_stream_from_file(crumpets, "w") as stream:
            stream.write(b"tea")
        assert crumpets.read_bytes() == b"tea"

    def test_write_mode_creates(self, factory: DefaultStreamFactory, tmp_path: Path) -> None:
        """``w`` creates a missing file."""
        path = tmp_path / "new.txt"
        with factory.create_stream_from_file(path, "w") as stream:
            stream.write("crumpets")
        assert path.read_text() == "crumpets"

    def test_read_write_mode(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``r+`` reads and overwrites in place."""
        with factory.create_stream_from_file(crumpets, "r+") as stream:
            assert stream.read(5) == b"would"
            stream.seek(0)
            stream.write(b"could")
        assert crumpets.read_bytes() == b"could you like some crumpets?"

    def test_append_mode(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``a`` writes at the end."""
        with factory.create_stream_from_file(crumpets, "a") as stream:
            stream.write(b" yes")
        assert crumpets.read_bytes() == (_CONTENT + " yes").encode()

    def test_append_plus_reads(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``a+`` can read back the whole file."""
        with factory.create_stream_from_file(crumpets, "a+") as stream:
            stream.write(b"!")
            assert str(stream) == _CONTENT + "!"

    def test_exclusive_on_existing(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``x`` refuses an existing file as an unavailable resource."""
        with pytest.raises(ResourceUnavailableError) as exc_info:
            factory.create_stream_from_file(crumpets, "x")
        assert isinstance(exc_info.value.__cause__, FileExistsError)

    def test_exclusive_creates(self, factory: DefaultStreamFactory, tmp_path: Path) -> None:
        """``x`` creates a missing file."""
        path = tmp_path / "fresh.bin"
        with factory.create_stream_from_file(path, "x") as stream:
            stream.write(b"1")
        assert path.read_bytes() == b"1"

    def test_create_mode_keeps_content(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``c`` opens for writing without truncating."""
        with factory.create_stream_from_file(crumpets, "c") as stream:
            assert stream.tell() == 0
            stream.write(b"C")
        assert crumpets.read_bytes() == b"C" + _CONTENT.encode()[1:]

    def test_create_mode_is_write_only(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """``c`` without ``+`` cannot read."""
        with factory.create_stream_from_file(crumpets, "c") as stream, pytest.raises(OperationNotPermittedError):
            stream.read(1)

    def test_directory_is_unavailable(self, factory: DefaultStreamFactory, tmp_path: Path) -> None:
        """A directory cannot be opened as a stream."""
        with pytest.raises(ResourceUnavailableError):
            factory.create_stream_from_file(tmp_path, "w")
        with pytest.raises(ResourceUnavailableError):
            factory.create_stream_from_file(tmp_path)

    def test_embedded_nul_is_unavailable(self, factory: DefaultStreamFactory) -> None:
        """A path that the OS cannot represent is unavailable, not a crash."""
        with pytest.raises(ResourceUnavailableError):
            factory.create_stream_from_file("bad\x00name")

    def test_non_path(self, factory: DefaultStreamFactory) -> None:
        """A non-path filename is an invalid argument."""
        with pytest.raises(InvalidArgumentError):
            factory.create_stream_from_file(3.5)  # type: ignore[arg-type]

    def test_mode_checked_first(self, factory: DefaultStreamFactory) -> None:
        """A bad mode wins over a bad path."""
        with pytest.raises(InvalidArgumentError):
            factory.create_stream_from_file("", "")

    def test_no_descriptor_leak_on_failure(self, factory: DefaultStreamFactory, tmp_path: Path) -> None:
        """Failed opens do not leave descriptors behind."""
        if not Path("/proc/self/fd").exists():
            pytest.skip("requires /proc")
        before = len(os.listdir("/proc/self/fd"))
        for _ in range(20):
            with pytest.raises(ResourceUnavailableError):
                factory.create_stream_from_file(tmp_path)
        assert len(os.listdir("/proc/self/fd")) <= before

    def test_debug_logging(
        self, factory: DefaultStreamFactory, crumpets: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Opens and failures are logged at DEBUG."""
        with caplog.at_level(logging.DEBUG, logger="streamfactory.factory"):
            factory.create_stream_from_file(crumpets).close()
            with pytest.raises(ResourceUnavailableError):
                factory.create_stream_from_file(crumpets.with_name("missing.txt"))
        messages = [r.getMessage() for r in caplog.records]
        assert any("Opened file stream" in m for m in messages)
        assert any("Unable to open" in m for m in messages)


# ---------------------------------------------------------------------------
# create_stream_from_resource
# ---------------------------------------------------------------------------


class TestCreateStreamFromResource:
    """Wrapping open handles."""

    def test_bytes_io(self, factory: DefaultStreamFactory) -> None:
        """In-memory handles are accepted and keep their position."""
        buf = io.BytesIO(_CONTENT.encode())
        buf.seek(15)
        stream = factory.create_stream_from_resource(buf)
        assert stream.tell() == 15
        assert str(stream) == _CONTENT

    def test_handle_is_not_duplicated(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """Reads through the stream move the original handle."""
        with open(str(crumpets), "rb") as handle:
            stream = factory.create_stream_from_resource(handle)
            stream.read(6)
            assert handle.tell() == 6
            assert stream.uri == str(crumpets)

    def test_read_only_handle(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """Access mode is inherited from the handle."""
        with open(crumpets, "rb") as handle:
            stream = factory.create_stream_from_resource(handle)
            with pytest.raises(OperationNotPermittedError):
                stream.write(b"x")

    def test_text_handle_rejected(self, factory: DefaultStreamFactory, crumpets: Path) -> None:
        """Text handles are not byte streams."""
        with open(crumpets) as handle, pytest.raises(InvalidArgumentError, match="binary"):
            factory.create_stream_from_resource(handle)

    def test_closed_handle_rejected(self, factory: DefaultStreamFactory) -> None:
        """A closed handle cannot be taken over."""
        buf = io.BytesIO()
        buf.close()
        with pytest.raises(InvalidArgumentError, match="closed"):
            factory.create_stream_from_resource(buf)

    def test_non_handle_rejected(self, factory: DefaultStreamFactory) -> None:
        """Arbitrary objects are invalid arguments."""
        with pytest.raises(InvalidArgumentError):
            factory.create_stream_from_resource("not a handle")
