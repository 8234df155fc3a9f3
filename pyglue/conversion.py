"""Static selection of the marshaling form for a declared type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AbstractSet, FrozenSet

from .models import Type

DEFAULT_PRIMITIVE_TYPES: FrozenSet[str] = frozenset(
    {
        "int",
        "unsigned",
        "unsigned int",
        "long",
        "char",
        "float",
        "double",
        "Real",
        "bool",
        "string",
        "std::string",
        "Vec3",
        "Vec3i",
        "Vec4",
        "PbType",
        "PbTypeVec",
    }
)


class Convertible(ABC):
    """How a value of one declared type crosses the Python boundary."""

    def __init__(self, declared: Type) -> None:
        self.declared = declared

    @abstractmethod
    def load_type(self) -> Type:
        """Type requested from the argument marshaling layer."""

    def dereference(self) -> bool:
        """Whether the loaded value must be dereferenced before use."""
        return False

    def inward(self, expr: str) -> str:
        prefix = "*" if self.dereference() else ""
        return f"{prefix}fromPy<{self.load_type().build()} >({expr})"

    def outward(self, expr: str) -> str:
        return f"toPy({expr})"


class PrimitiveConversion(Convertible):
    """Scalars and small value types, always copied by value."""

    def load_type(self) -> Type:
        return self.declared.stripped()


class HandleReferenceConversion(Convertible):
    """Reference to a host-managed object.

    The marshaling layer hands out non-owning pointers for handle types, never
    references, so the value is loaded as ``T*`` and dereferenced at the use site.
    """

    def load_type(self) -> Type:
        return self.declared.as_pointer()

    def dereference(self) -> bool:
        return True


class DeclaredConversion(Convertible):
    def load_type(self) -> Type:
        return self.declared


def is_primitive(type_: Type, primitives: AbstractSet[str] = DEFAULT_PRIMITIVE_TYPES) -> bool:
    return type_.name in primitives


def conversion_for(
    type_: Type, primitives: AbstractSet[str] = DEFAULT_PRIMITIVE_TYPES
) -> Convertible:
    """Pick the conversion for ``type_`` from its declaration alone."""
    if is_primitive(type_, primitives):
        return PrimitiveConversion(type_)
    if type_.is_ref:
        return HandleReferenceConversion(type_)
    return DeclaredConversion(type_)


__all__ = [
    "Convertible",
    "DEFAULT_PRIMITIVE_TYPES",
    "DeclaredConversion",
    "HandleReferenceConversion",
    "PrimitiveConversion",
    "conversion_for",
    "is_primitive",
]
