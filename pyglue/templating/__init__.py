"""Glue code templates and the placeholder substitution engine."""

from .engine import Conditional, Literal, Placeholder, Template, expand
from .library import DEFERRED, KEYS, get_template

__all__ = [
    "Conditional",
    "DEFERRED",
    "KEYS",
    "Literal",
    "Placeholder",
    "Template",
    "expand",
    "get_template",
]
