"""Argument loader statements for wrapped calls."""

from __future__ import annotations

from typing import AbstractSet, List

from .conversion import DEFAULT_PRIMITIVE_TYPES, conversion_for
from .models import Argument, Function


def generate_loader(
    argument: Argument, primitives: AbstractSet[str] = DEFAULT_PRIMITIVE_TYPES
) -> str:
    """Return the statement binding one argument from the call's args/kwargs.

    Lookup is by keyword first, then by position. Mandatory arguments use
    ``get``; arguments with a default use ``getOpt`` and pass the default
    through. Every lookup registers with ``_lock`` so touched references are
    released when the enclosing scope ends.
    """
    conversion = conversion_for(argument.type, primitives)
    accessor = "getOpt" if argument.is_optional() else "get"
    parts = [f'{argument.index},"{argument.name}",']
    if argument.is_optional():
        parts.append(f"{argument.value},")
    parts.append("&_lock")
    deref = "*" if conversion.dereference() else ""
    return (
        f"{argument.type.minimal} {argument.name} = {deref}_args.{accessor}"
        f"<{conversion.load_type().build()} >({''.join(parts)}); "
    )


def generate_loaders(
    function: Function, primitives: AbstractSet[str] = DEFAULT_PRIMITIVE_TYPES
) -> List[str]:
    ordered = sorted(function.arguments, key=lambda argument: argument.index)
    return [generate_loader(argument, primitives) for argument in ordered]


__all__ = ["generate_loader", "generate_loaders"]
