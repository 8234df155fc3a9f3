"""Declaration model handed over by the scanner for one annotated source file."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Union


@dataclass
class TypeList:
    """Template argument list with the exact text it was written as."""

    types: List["Type"] = field(default_factory=list)
    list_text: str = ""

    def __bool__(self) -> bool:
        return bool(self.types) or bool(self.list_text.strip())


@dataclass
class Type:
    """A declared C++ type with its qualifiers."""

    name: str
    is_pointer: bool = False
    is_ref: bool = False
    is_const: bool = False
    minimal: str = ""
    template_types: Optional[TypeList] = None

    def __post_init__(self) -> None:
        if not self.minimal and self.name:
            self.minimal = self.build()

    def is_templated(self) -> bool:
        return bool(self.template_types)

    def build(self) -> str:
        """Render the canonical declaration text from name and flags."""
        text = f"const {self.name}" if self.is_const else self.name
        if self.is_templated():
            text += f"<{self.template_types.list_text}>"
        if self.is_pointer:
            text += "*"
        if self.is_ref:
            text += "&"
        return text

    def stripped(self) -> "Type":
        return replace(self, is_pointer=False, is_ref=False, is_const=False, minimal="")

    def as_pointer(self) -> "Type":
        return replace(self, is_pointer=True, is_ref=False, is_const=False, minimal="")


@dataclass
class Argument:
    """One function parameter; ``value`` holds the default text, if any."""

    name: str
    type: Type
    index: int
    value: str = ""

    def is_optional(self) -> bool:
        return bool(self.value)


@dataclass
class Function:
    """Function or constructor declaration; constructors have an empty return type."""

    name: str
    return_type: Type
    arguments: List[Argument] = field(default_factory=list)
    minimal: str = ""

    def is_constructor(self) -> bool:
        return not self.return_type.minimal

    def returns_void(self) -> bool:
        """``void*`` is a value, only a plain ``void`` return has none."""
        return self.return_type.name == "void" and not self.return_type.is_pointer

    def call_string(self) -> str:
        return ", ".join(argument.name for argument in self.arguments)


@dataclass
class Variable:
    """Member field declaration."""

    name: str
    type: Type
    minimal: str = ""


@dataclass
class BaseClass:
    name: str = ""
    template_types: Optional[TypeList] = None

    def is_templated(self) -> bool:
        return bool(self.template_types)

    def tpl_string(self) -> str:
        return self.template_types.list_text if self.template_types else ""


@dataclass
class Class:
    """Class declaration; ``members`` is the body between the braces."""

    name: str
    minimal: str
    base_class: BaseClass = field(default_factory=BaseClass)
    template_types: Optional[TypeList] = None
    members: List[Union[str, "Block"]] = field(default_factory=list)

    def is_templated(self) -> bool:
        return bool(self.template_types)

    def tpl_string(self) -> str:
        return self.template_types.list_text if self.template_types else ""


@dataclass
class Instantiation:
    """Template alias such as ``typedef Grid<Real> RealGrid``."""

    alias_name: str
    alias_type: Type


@dataclass(frozen=True)
class Option:
    name: str
    value: str = ""


Payload = Union[Function, Variable, Class, Instantiation]

_KINDS = {
    Function: "function",
    Variable: "variable",
    Class: "class",
    Instantiation: "instantiation",
}


@dataclass
class Block:
    """One annotated declaration occurrence and its context."""

    line: int
    payload: Payload
    options: List[Option] = field(default_factory=list)
    parent: Optional[Class] = None
    linebreak_count: int = 0
    code: str = ""
    init_list: str = ""

    @property
    def kind(self) -> str:
        return _KINDS[type(self.payload)]

    def linebreaks(self) -> str:
        """Blank lines swallowed by the annotation, re-emitted to keep line numbers."""
        return "\n" * self.linebreak_count


@dataclass
class SourceFile:
    """A scanned file: verbatim text segments interleaved with top-level blocks."""

    path: str
    is_header: bool
    items: List[Union[str, Block]] = field(default_factory=list)

    def blocks(self) -> List[Block]:
        return [item for item in self.items if isinstance(item, Block)]


__all__ = [
    "Argument",
    "BaseClass",
    "Block",
    "Class",
    "Function",
    "Instantiation",
    "Option",
    "Payload",
    "SourceFile",
    "Type",
    "TypeList",
    "Variable",
]
