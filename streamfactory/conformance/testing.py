# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""pytest mixin that runs the conformance suite against a concrete factory.

Subclass :class:`StreamFactoryTestCase` in your own test module and return
the factory under test::

    from streamfactory.conformance.testing import StreamFactoryTestCase

    class TestMyFactory(StreamFactoryTestCase):
        def create_stream_factory(self) -> StreamFactory:
            return MyFactory()

Each registered scenario becomes one ``test_conformance[<category.name>]``
test item.  This module imports pytest and is not imported by
``streamfactory.conformance``.
"""

from __future__ import annotations

import abc

import pytest

from streamfactory.conformance._runner import (
    DEFAULT_TEST_TIMEOUT,
    list_conformance_tests,
    run_conformance_test,
)
from streamfactory.factory import StreamFactory

__all__ = ["StreamFactoryTestCase"]


class StreamFactoryTestCase(abc.ABC):
    """Abstract conformance test case for StreamFactory implementations."""

    conformance_timeout: float = DEFAULT_TEST_TIMEOUT

    @abc.abstractmethod
    def create_stream_factory(self) -> StreamFactory:
        """Return a fresh instance of the factory under test."""

    @pytest.mark.parametrize("name", list_conformance_tests())
    def test_conformance(self, name: str) -> None:
        """Run one conformance scenario against the factory."""
        run_conformance_test(self.create_stream_factory, name, timeout=self.conformance_timeout)
