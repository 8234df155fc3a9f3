"""Placeholder substitution over a parsed template tree."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import TemplateError

_DIRECTIVE_PATTERN = re.compile(r"@IF\(\s*\$?([A-Za-z_][A-Za-z0-9_]*)\s*\)|@ELSE\b|@END\b")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    key: str


@dataclass(frozen=True)
class Conditional:
    """``@IF(key) then @ELSE otherwise @END``; taken when the key's value is non-empty."""

    key: str
    then: Tuple["Node", ...]
    otherwise: Tuple["Node", ...] = ()


Node = Union[Literal, Placeholder, Conditional]


class Template:
    """A template parsed once against a fixed vocabulary of placeholder keys."""

    def __init__(self, source: str, keys: Iterable[str]) -> None:
        self.source = source
        # Longest first so a key that prefixes another never wins.
        self._vocabulary: Tuple[str, ...] = tuple(sorted(set(keys), key=lambda k: (-len(k), k)))
        self.nodes: Tuple[Node, ...] = tuple(_parse(source, self._vocabulary))

    def placeholders(self) -> List[str]:
        """Return placeholder keys referenced anywhere in the template, in order."""
        found: List[str] = []
        for node in _walk(self.nodes):
            if isinstance(node, Placeholder) and node.key not in found:
                found.append(node.key)
        return found

    def conditions(self) -> List[str]:
        return [node.key for node in _walk(self.nodes) if isinstance(node, Conditional)]

    def expand(self, table: Mapping[str, str]) -> str:
        return "".join(_render(self.nodes, table))

    def __repr__(self) -> str:
        return f"Template({self.source[:40]!r}...)"


def expand(source: str, table: Mapping[str, str]) -> str:
    """Parse ``source`` with the table's keys as vocabulary and expand it."""
    return Template(source, table.keys()).expand(table)


def _parse(source: str, vocabulary: Sequence[str]) -> List[Node]:
    root: List[Node] = []
    open_key: Optional[str] = None
    then_branch: List[Node] = []
    else_branch: List[Node] = []
    in_else = False
    target = root
    position = 0

    for match in _DIRECTIVE_PATTERN.finditer(source):
        target.extend(_split_placeholders(source[position : match.start()], vocabulary))
        position = match.end()
        directive = match.group(0)
        if directive.startswith("@IF"):
            if open_key is not None:
                raise TemplateError(f"nested @IF({match.group(1)}) inside @IF({open_key})")
            open_key = match.group(1)
            then_branch, else_branch, in_else = [], [], False
            target = then_branch
        elif directive == "@ELSE":
            if open_key is None or in_else:
                raise TemplateError("@ELSE without matching @IF")
            in_else = True
            target = else_branch
        else:
            if open_key is None:
                raise TemplateError("@END without matching @IF")
            root.append(Conditional(open_key, tuple(then_branch), tuple(else_branch)))
            open_key = None
            target = root

    if open_key is not None:
        raise TemplateError(f"unterminated @IF({open_key})")
    root.extend(_split_placeholders(source[position:], vocabulary))
    return root


def _split_placeholders(text: str, vocabulary: Sequence[str]) -> Iterator[Node]:
    start = 0
    cursor = text.find("$")
    while cursor != -1:
        key = next((k for k in vocabulary if text.startswith(k, cursor + 1)), None)
        if key is None:
            snippet = text[cursor : cursor + 16]
            raise TemplateError(f"unknown placeholder at {snippet!r}")
        if cursor > start:
            yield Literal(text[start:cursor])
        yield Placeholder(key)
        start = cursor + 1 + len(key)
        cursor = text.find("$", start)
    if start < len(text):
        yield Literal(text[start:])


def _render(nodes: Sequence[Node], table: Mapping[str, str]) -> Iterator[str]:
    for node in nodes:
        if isinstance(node, Literal):
            yield node.text
        elif isinstance(node, Placeholder):
            if node.key not in table:
                raise TemplateError(f"no value for placeholder ${node.key}")
            yield table[node.key]
        else:
            branch = node.then if table.get(node.key) else node.otherwise
            yield from _render(branch, table)


def _walk(nodes: Sequence[Node]) -> Iterator[Node]:
    for node in nodes:
        yield node
        if isinstance(node, Conditional):
            yield from _walk(node.then)
            yield from _walk(node.otherwise)


__all__ = ["Conditional", "Literal", "Node", "Placeholder", "Template", "expand"]
