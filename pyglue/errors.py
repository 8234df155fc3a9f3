"""Exception types raised by the generator and the linker."""

from __future__ import annotations


class UsageError(RuntimeError):
    """Raised when an annotated declaration is used incorrectly; fatal for its file."""

    def __init__(self, path: str, line: int, message: str) -> None:
        super().__init__(f"{path}:{line}: error: {message}")
        self.path = path
        self.line = line
        self.message = message


class TemplateError(RuntimeError):
    """Raised when a glue template is malformed or references an unknown key."""


class LinkProtocolError(ValueError):
    """Raised when a link protocol line cannot be decoded."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"invalid link directive {line!r}: {reason}")
        self.line = line
        self.reason = reason


class LinkError(RuntimeError):
    """Raised when registrations cannot be resolved across translation units."""


class ModelError(RuntimeError):
    """Raised when a declaration model document is malformed."""


__all__ = [
    "LinkError",
    "LinkProtocolError",
    "ModelError",
    "TemplateError",
    "UsageError",
]
