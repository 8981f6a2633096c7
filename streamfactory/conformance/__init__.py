# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Conformance suite for stream factory implementations.

Validates that a factory creates streams from strings, files, and open
handles with the expected content, access-mode enforcement, cursor
positions, and error kinds.

Usage::

    from streamfactory import DefaultStreamFactory
    from streamfactory.conformance import run_conformance

    suite = run_conformance(DefaultStreamFactory)
    assert suite.success

For pytest integration see :mod:`streamfactory.conformance.testing`.
"""

from streamfactory.conformance._fixtures import Fixtures
from streamfactory.conformance._runner import (
    DEFAULT_TEST_TIMEOUT,
    ConformanceResult,
    ConformanceSuite,
    FactorySource,
    list_conformance_tests,
    run_conformance,
    run_conformance_test,
)

__all__ = [
    "ConformanceResult",
    "ConformanceSuite",
    "DEFAULT_TEST_TIMEOUT",
    "FactorySource",
    "Fixtures",
    "list_conformance_tests",
    "run_conformance",
    "run_conformance_test",
]
