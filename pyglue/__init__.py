"""Glue code generator for annotated C++ declarations embedded in a Python host."""

from .errors import LinkError, LinkProtocolError, ModelError, TemplateError, UsageError
from .processors import ClassScope, Generator
from .sink import Sink

__version__ = "0.1.0"

__all__ = [
    "ClassScope",
    "Generator",
    "LinkError",
    "LinkProtocolError",
    "ModelError",
    "Sink",
    "TemplateError",
    "UsageError",
    "__version__",
]
