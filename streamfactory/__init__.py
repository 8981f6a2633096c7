# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Stream factories and a conformance suite for validating them."""

import logging

from streamfactory.arrow import ArrowStreamFactory
from streamfactory.errors import (
    ErrorKind,
    InvalidArgumentError,
    OperationNotPermittedError,
    ResourceUnavailableError,
    StreamError,
)
from streamfactory.factory import DefaultStreamFactory, StreamFactory
from streamfactory.modes import DEFAULT_MODE, Mode, parse_mode
from streamfactory.stream import NativeStream, Stream

__all__ = [
    "ArrowStreamFactory",
    "DEFAULT_MODE",
    "DefaultStreamFactory",
    "ErrorKind",
    "InvalidArgumentError",
    "Mode",
    "NativeStream",
    "OperationNotPermittedError",
    "ResourceUnavailableError",
    "Stream",
    "StreamError",
    "StreamFactory",
    "parse_mode",
]

# Attach NullHandler to the package logger so library users don't get
# "No handler found" warnings.
logging.getLogger("streamfactory").addHandler(logging.NullHandler())
