# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Conformance test runner library.

Provides test registration, execution, and result collection for validating
that a stream factory creates streams from strings, files, and open handles
with the expected content, access modes, cursor positions, and error kinds.

Usage::

    from streamfactory.conformance import run_conformance

    suite = run_conformance(MyStreamFactory)
    assert suite.success

"""

from __future__ import annotations

import contextlib
import fnmatch
import io
import logging
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from streamfactory.conformance._fixtures import Fixtures
from streamfactory.errors import (
    ErrorKind,
    InvalidArgumentError,
    OperationNotPermittedError,
    ResourceUnavailableError,
    StreamError,
)
from streamfactory.factory import StreamFactory
from streamfactory.stream import Stream

_logger = logging.getLogger("streamfactory.conformance")

# Default per-test timeout in seconds for the standalone runner.
DEFAULT_TEST_TIMEOUT: float = 5.0

FactorySource = StreamFactory | Callable[[], StreamFactory]
"""A factory instance, or a zero-argument callable building a fresh one per test."""

_CRUMPETS = "would you like some crumpets?"
_MULTIBYTE_MULTILINE = "would you\r\nlike some\n\U0001f950?"


class _TestTimeoutError(Exception):
    """Raised when a conformance test exceeds its timeout."""


def _run_with_timeout(fn: Callable[[], None], timeout: float) -> None:
    """Run *fn* in a worker thread, raising ``_TestTimeoutError`` if it exceeds *timeout* seconds."""
    exc: BaseException | None = None
    finished = threading.Event()

    def _target() -> None:
        nonlocal exc
        try:
            fn()
        except BaseException as e:
            exc = e
        finally:
            finished.set()

    thread = threading.Thread(target=_target, daemon=True)
    thread.start()
    if not finished.wait(timeout):
        raise _TestTimeoutError(f"Test exceeded {timeout}s timeout")
    if exc is not None:
        raise exc


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConformanceResult:
    """Result of a single conformance test."""

    name: str
    category: str
    passed: bool
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True)
class ConformanceSuite:
    """Aggregate results of a conformance test run."""

    results: list[ConformanceResult]
    total: int
    passed: int
    failed: int
    duration_ms: float

    @property
    def success(self) -> bool:
        """Whether all tests passed."""
        return self.failed == 0


# ---------------------------------------------------------------------------
# Test registration
# ---------------------------------------------------------------------------

_TestFn = Callable[[StreamFactory, Fixtures], None]


@dataclass(frozen=True)
class _ConformanceTest:
    """A registered conformance test."""

    category: str
    name: str
    fn: _TestFn

    @property
    def full_name(self) -> str:
        """Return category.name format."""
        return f"{self.category}.{self.name}"


_TESTS: list[_ConformanceTest] = []


def _conformance_test(*, category: str, name: str) -> Callable[[_TestFn], _TestFn]:
    """Register a conformance test function."""

    def decorator(fn: _TestFn) -> _TestFn:
        _TESTS.append(_ConformanceTest(category=category, name=name, fn=fn))
        return fn

    return decorator


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


def _assert_stream(stream: object, content: str) -> None:
    assert isinstance(stream, Stream), f"Expected a Stream, got {type(stream).__name__}"
    actual = str(stream)
    assert actual == content, f"Expected content {content!r}, got {actual!r}"


@contextlib.contextmanager
def _expect_error(expected: type[StreamError], action: str) -> Iterator[None]:
    """Assert that the block raises *expected* and nothing else."""
    try:
        yield
    except expected:
        return
    except Exception as e:
        raise AssertionError(f"{action}: expected {expected.__name__}, got {type(e).__name__}: {e}") from e
    raise AssertionError(f"{action}: expected {expected.__name__}, nothing was raised")


# ---------------------------------------------------------------------------
# create_stream tests
# ---------------------------------------------------------------------------


@_conformance_test(category="create_stream", name="without_argument")
def _test_create_stream_without_argument(factory: StreamFactory, fixtures: Fixtures) -> None:
    _assert_stream(fixtures.adopt(factory.create_stream()), "")


@_conformance_test(category="create_stream", name="empty_string")
def _test_create_stream_empty_string(factory: StreamFactory, fixtures: Fixtures) -> None:
    _assert_stream(fixtures.adopt(factory.create_stream("")), "")


@_conformance_test(category="create_stream", name="ascii_string")
def _test_create_stream_ascii_string(factory: StreamFactory, fixtures: Fixtures) -> None:
    _assert_stream(fixtures.adopt(factory.create_stream(_CRUMPETS)), _CRUMPETS)


@_conformance_test(category="create_stream", name="multibyte_multiline_string")
def _test_create_stream_multibyte_multiline(factory: StreamFactory, fixtures: Fixtures) -> None:
    _assert_stream(fixtures.adopt(factory.create_stream(_MULTIBYTE_MULTILINE)), _MULTIBYTE_MULTILINE)


@_conformance_test(category="create_stream", name="cursor_independent_content")
def _test_create_stream_cursor_independent(factory: StreamFactory, fixtures: Fixtures) -> None:
    stream = fixtures.adopt(factory.create_stream(_CRUMPETS))
    head = stream.read(5)
    assert head == b"would", f"Expected first five bytes b'would', got {head!r}"
    _assert_stream(stream, _CRUMPETS)


# ---------------------------------------------------------------------------
# create_stream_from_file tests
# ---------------------------------------------------------------------------


@_conformance_test(category="create_stream_from_file", name="content")
def _test_from_file_content(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file(_CRUMPETS)
    _assert_stream(fixtures.adopt(factory.create_stream_from_file(path)), _CRUMPETS)


@_conformance_test(category="create_stream_from_file", name="non_existing_file")
def _test_from_file_non_existing(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.missing_file()
    with _expect_error(ResourceUnavailableError, "opening a missing file"):
        fixtures.adopt(factory.create_stream_from_file(path))


@_conformance_test(category="create_stream_from_file", name="invalid_file_name")
def _test_from_file_invalid_name(factory: StreamFactory, fixtures: Fixtures) -> None:
    with _expect_error(ResourceUnavailableError, "opening an empty file name"):
        fixtures.adopt(factory.create_stream_from_file(""))


@_conformance_test(category="create_stream_from_file", name="read_only_by_default")
def _test_from_file_read_only_by_default(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file()
    stream = fixtures.adopt(factory.create_stream_from_file(path))
    with _expect_error(OperationNotPermittedError, "writing to a default-mode stream"):
        stream.write(_CRUMPETS.encode())


@_conformance_test(category="create_stream_from_file", name="write_only_mode")
def _test_from_file_write_only(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file()
    stream = fixtures.adopt(factory.create_stream_from_file(path, "w"))
    with _expect_error(OperationNotPermittedError, "reading from a write-only stream"):
        stream.read(1)


@_conformance_test(category="create_stream_from_file", name="no_mode")
def _test_from_file_no_mode(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file()
    with _expect_error(InvalidArgumentError, "opening with an empty mode"):
        fixtures.adopt(factory.create_stream_from_file(path, ""))


@_conformance_test(category="create_stream_from_file", name="invalid_mode")
def _test_from_file_invalid_mode(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file()
    with _expect_error(InvalidArgumentError, "opening with an unrecognized mode"):
        fixtures.adopt(factory.create_stream_from_file(path, "☠"))


@_conformance_test(category="create_stream_from_file", name="mode_checked_before_open")
def _test_from_file_mode_before_open(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.missing_file()
    with _expect_error(InvalidArgumentError, "opening a missing file with an empty mode"):
        fixtures.adopt(factory.create_stream_from_file(path, ""))
    with _expect_error(InvalidArgumentError, "opening a missing file with an unrecognized mode"):
        fixtures.adopt(factory.create_stream_from_file(path, "☠"))


@_conformance_test(category="create_stream_from_file", name="cursor_position")
def _test_from_file_cursor_position(factory: StreamFactory, fixtures: Fixtures) -> None:
    path = fixtures.temporary_file(_CRUMPETS)
    expected = fixtures.open_read_handle(path).tell()
    stream = fixtures.adopt(factory.create_stream_from_file(path))
    actual = stream.tell()
    assert actual == expected, f"Expected cursor at {expected} like a fresh read handle, got {actual}"


# ---------------------------------------------------------------------------
# create_stream_from_resource tests
# ---------------------------------------------------------------------------


@_conformance_test(category="create_stream_from_resource", name="content")
def _test_from_resource_content(factory: StreamFactory, fixtures: Fixtures) -> None:
    handle = fixtures.temporary_resource(_CRUMPETS)
    _assert_stream(fixtures.adopt(factory.create_stream_from_resource(handle)), _CRUMPETS)


def _check_resource_cursor(factory: StreamFactory, fixtures: Fixtures, offset: int, whence: int) -> None:
    handle = fixtures.temporary_resource(_CRUMPETS)
    expected = handle.seek(offset, whence)
    stream = fixtures.adopt(factory.create_stream_from_resource(handle))
    actual = stream.tell()
    assert actual == expected, f"Expected cursor at {expected} inherited from the handle, got {actual}"


@_conformance_test(category="create_stream_from_resource", name="cursor_at_start")
def _test_from_resource_cursor_start(factory: StreamFactory, fixtures: Fixtures) -> None:
    _check_resource_cursor(factory, fixtures, 0, io.SEEK_SET)


@_conformance_test(category="create_stream_from_resource", name="cursor_at_end")
def _test_from_resource_cursor_end(factory: StreamFactory, fixtures: Fixtures) -> None:
    _check_resource_cursor(factory, fixtures, 0, io.SEEK_END)


@_conformance_test(category="create_stream_from_resource", name="cursor_at_offset")
def _test_from_resource_cursor_offset(factory: StreamFactory, fixtures: Fixtures) -> None:
    _check_resource_cursor(factory, fixtures, 15, io.SEEK_SET)


@_conformance_test(category="create_stream_from_resource", name="shares_handle")
def _test_from_resource_shares_handle(factory: StreamFactory, fixtures: Fixtures) -> None:
    handle = fixtures.temporary_resource(_CRUMPETS)
    handle.seek(0)
    stream = fixtures.adopt(factory.create_stream_from_resource(handle))
    stream.seek(5)
    position = handle.tell()
    assert position == 5, f"Expected seeking the stream to move the handle to 5, handle is at {position}"


# ---------------------------------------------------------------------------
# Error classification tests
# ---------------------------------------------------------------------------


@_conformance_test(category="errors", name="kinds_are_distinguishable")
def _test_error_kinds(factory: StreamFactory, fixtures: Fixtures) -> None:
    observed: dict[ErrorKind, type[BaseException]] = {}

    def _capture(fn: Callable[[], object]) -> None:
        try:
            fixtures.adopt(fn())
        except StreamError as e:
            observed[e.kind] = type(e)
            return
        raise AssertionError("Expected a StreamError, nothing was raised")

    path = fixtures.temporary_file(_CRUMPETS)
    _capture(lambda: factory.create_stream_from_file(path, ""))
    _capture(lambda: factory.create_stream_from_file(fixtures.missing_file()))
    stream = fixtures.adopt(factory.create_stream_from_file(path))
    _capture(lambda: stream.write(b"x"))

    assert set(observed) == set(ErrorKind), f"Expected one error of each kind, got {sorted(observed)}"
    classes = list(observed.values())
    for cls in classes:
        others = [other for other in classes if other is not cls]
        assert not any(issubclass(cls, other) for other in others), f"{cls.__name__} overlaps another error kind"


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _matches_filter(name: str, patterns: list[str]) -> bool:
    """Check if a test name matches any of the given glob patterns."""
    return any(fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(name.split(".")[0], pattern) for pattern in patterns)


def _make_factory(source: FactorySource) -> StreamFactory:
    """Return *source* itself, or the factory built by calling it."""
    if isinstance(source, type) or not isinstance(source, StreamFactory):
        if not callable(source):
            raise TypeError(f"Expected a StreamFactory or a callable returning one, got {type(source).__name__}")
        return source()
    return source


def list_conformance_tests(filter_patterns: list[str] | None = None) -> list[str]:
    """Return sorted names of available tests, optionally filtered.

    Args:
        filter_patterns: Optional glob patterns to filter tests.

    Returns:
        Sorted list of test names in ``category.name`` format.

    """
    names = [t.full_name for t in _TESTS]
    if filter_patterns:
        names = [n for n in names if _matches_filter(n, filter_patterns)]
    return sorted(names)


def _execute(test: _ConformanceTest, factory: StreamFactory, timeout: float) -> None:
    fixtures = Fixtures()
    try:
        if timeout > 0:
            _run_with_timeout(lambda: test.fn(factory, fixtures), timeout)
        else:
            test.fn(factory, fixtures)
    finally:
        fixtures.cleanup()


def run_conformance_test(source: FactorySource, name: str, *, timeout: float = DEFAULT_TEST_TIMEOUT) -> None:
    """Run a single named conformance test, raising on failure.

    Args:
        source: A StreamFactory, or a callable returning one.
        name: Test name in ``category.name`` format.
        timeout: Per-test timeout in seconds.  Set to ``0`` to disable.

    Raises:
        KeyError: If no test has that name.
        AssertionError: If the factory violates the contract.

    """
    for test in _TESTS:
        if test.full_name == name:
            _execute(test, _make_factory(source), timeout)
            return
    raise KeyError(name)


def run_conformance(
    source: FactorySource,
    *,
    filter_patterns: list[str] | None = None,
    on_progress: Callable[[ConformanceResult], None] | None = None,
    timeout: float = DEFAULT_TEST_TIMEOUT,
) -> ConformanceSuite:
    """Run conformance tests against a stream factory and return results.

    Args:
        source: A StreamFactory, or a callable returning one.  A callable
            is invoked once per test so every test gets a fresh factory.
        filter_patterns: Optional glob patterns to filter which tests run.
        on_progress: Optional callback invoked after each test completes.
        timeout: Per-test timeout in seconds.  Set to ``0`` to disable.

    Returns:
        A ConformanceSuite with all results.

    Raises:
        TypeError: If *source* is neither a StreamFactory nor callable.

    """
    if not isinstance(source, StreamFactory) and not callable(source):
        raise TypeError(f"Expected a StreamFactory or a callable returning one, got {type(source).__name__}")
    suite_start = time.monotonic()
    results: list[ConformanceResult] = []

    tests_to_run = _TESTS
    if filter_patterns:
        tests_to_run = [t for t in _TESTS if _matches_filter(t.full_name, filter_patterns)]

    for test in tests_to_run:
        start = time.monotonic()
        error: str | None = None
        passed = True
        try:
            _execute(test, _make_factory(source), timeout)
        except _TestTimeoutError as e:
            passed = False
            error = str(e)
        except AssertionError as e:
            passed = False
            error = str(e) if str(e) else "Assertion failed"
        except StreamError as e:
            passed = False
            error = f"{type(e).__name__}({e.kind}): {e}"
        except Exception as e:
            passed = False
            error = f"{type(e).__name__}: {e}"
        elapsed_ms = (time.monotonic() - start) * 1000

        result = ConformanceResult(
            name=test.full_name,
            category=test.category,
            passed=passed,
            duration_ms=elapsed_ms,
            error=error,
        )
        _logger.debug(
            "Conformance test %s: %s",
            result.name,
            "passed" if passed else f"failed: {error}",
            extra={"test": result.name, "passed": passed, "duration_ms": round(elapsed_ms, 1)},
        )
        results.append(result)
        if on_progress:
            on_progress(result)

    suite_elapsed = (time.monotonic() - suite_start) * 1000
    passed_count = sum(1 for r in results if r.passed)
    failed_count = sum(1 for r in results if not r.passed)
    _logger.info(
        "Conformance run finished: %d passed, %d failed",
        passed_count,
        failed_count,
        extra={"passed": passed_count, "failed": failed_count},
    )

    return ConformanceSuite(
        results=results,
        total=len(results),
        passed=passed_count,
        failed=failed_count,
        duration_ms=suite_elapsed,
    )
