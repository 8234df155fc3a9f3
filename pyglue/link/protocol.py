"""Link protocol records and their line encoding.

A ``.reg`` document holds one directive per line:

``+Class^statement``
    registration statement for a class (may contain ``$CT``/``$CL``/``$BT``)
``>Class^args``
    instantiate ``Class`` for the template argument list ``args`` (may be empty)
``@Class^args^Base^base_args``
    instantiating ``Class<args>`` requires ``Base<base_args>``
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Union

from ..errors import LinkProtocolError

SEPARATOR = "^"


@dataclass(frozen=True)
class Register:
    class_name: str
    statement: str


@dataclass(frozen=True)
class Instantiate:
    class_name: str
    template_args: str = ""


@dataclass(frozen=True)
class DependsOn:
    class_name: str
    template_args: str
    base_name: str
    base_args: str


LinkRecord = Union[Register, Instantiate, DependsOn]


def encode(record: LinkRecord) -> str:
    """Encode one record as a single protocol line (without newline)."""
    if isinstance(record, Register):
        fields = ["+" + record.class_name, record.statement]
    elif isinstance(record, Instantiate):
        fields = [">" + record.class_name, record.template_args]
    elif isinstance(record, DependsOn):
        fields = [
            "@" + record.class_name,
            record.template_args,
            record.base_name,
            record.base_args,
        ]
    else:
        raise TypeError(f"Not a link record: {record!r}")
    for value in fields:
        if "\n" in value:
            raise LinkProtocolError(value, "field contains a line break")
    return SEPARATOR.join(fields)


def decode(line: str) -> LinkRecord:
    """Decode a single protocol line."""
    text = line.rstrip("\r\n")
    if not text:
        raise LinkProtocolError(line, "empty directive")
    tag, body = text[0], text[1:]
    if tag == "+":
        class_name, sep, statement = body.partition(SEPARATOR)
        if not sep or not class_name:
            raise LinkProtocolError(line, "expected '+Class^statement'")
        return Register(class_name, statement)
    if tag == ">":
        fields = body.split(SEPARATOR)
        if len(fields) != 2 or not fields[0]:
            raise LinkProtocolError(line, "expected '>Class^args'")
        return Instantiate(fields[0], fields[1])
    if tag == "@":
        fields = body.split(SEPARATOR)
        if len(fields) != 4 or not fields[0] or not fields[2]:
            raise LinkProtocolError(line, "expected '@Class^args^Base^base_args'")
        return DependsOn(*fields)
    raise LinkProtocolError(line, f"unknown directive tag {tag!r}")


def dump(records: Iterable[LinkRecord]) -> str:
    return "".join(encode(record) + "\n" for record in records)


def load(text: str) -> List[LinkRecord]:
    """Decode a whole ``.reg`` document, skipping blank lines."""
    return [decode(line) for line in text.splitlines() if line.strip()]


__all__ = [
    "DependsOn",
    "Instantiate",
    "LinkRecord",
    "Register",
    "SEPARATOR",
    "decode",
    "dump",
    "encode",
    "load",
]
