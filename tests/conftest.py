from __future__ import annotations

import pytest

from pyglue.processors import Generator
from pyglue.sink import Sink


@pytest.fixture
def generator() -> Generator:
    """Provide a generator with the default primitive types."""
    return Generator()


@pytest.fixture
def header_sink() -> Sink:
    return Sink(is_header=True, path="grid.h")


@pytest.fixture
def source_sink() -> Sink:
    return Sink(is_header=False, path="plugins.cpp")
