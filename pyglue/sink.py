"""Output channels for one generated file."""

from __future__ import annotations

from io import StringIO
from typing import List

from .link.protocol import LinkRecord, dump


class Sink:
    """Collects inline replacement text and link records for a single file."""

    def __init__(self, is_header: bool, path: str = "<memory>") -> None:
        self.is_header = is_header
        self.path = path
        self._inplace = StringIO()
        self.link: List[LinkRecord] = []

    def write(self, text: str) -> None:
        self._inplace.write(text)

    def emit(self, record: LinkRecord) -> None:
        self.link.append(record)

    def text(self) -> str:
        return self._inplace.getvalue()

    def link_text(self) -> str:
        return dump(self.link)


__all__ = ["Sink"]
