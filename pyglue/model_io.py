"""Reads declaration model documents produced by the scanner.

A document describes one scanned file::

    path: grid.h
    header: true            # optional, otherwise derived from the suffix
    items:
      - "#include \\"general.h\\"\\n"
      - class:
          name: Grid
          minimal: "template<class T> class Grid : public GridBase"
          template: T
          base: {name: GridBase}
          members:
            - "\\n"
            - function:
                name: Grid
                return: ""
                minimal: "Grid(FluidSolver* parent, FlagGrid* obstacle = NULL)"
                arguments:
                  - {name: parent, type: "FluidSolver*"}
                  - {name: obstacle, type: "FlagGrid*", default: NULL}
              line: 12
              code: " {}"
        line: 10
        options: {name: RealGrid}

Plain strings are copied verbatim; mappings are annotated blocks keyed by
their payload kind (``function``, ``variable``, ``class``, ``instantiation``).
Argument ``default`` values are C++ source text and are kept exactly as
written rather than resolved as YAML scalars.
"""

from __future__ import annotations

from pathlib import Path
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import yaml

from .config import DEFAULT_HEADER_SUFFIXES, has_header_suffix
from .errors import ModelError
from .link.linker import split_template_args
from .models import (
    Argument,
    BaseClass,
    Block,
    Class,
    Function,
    Instantiation,
    Option,
    SourceFile,
    Type,
    TypeList,
    Variable,
)

_PAYLOAD_KINDS = ("function", "variable", "class", "instantiation")
_TYPE_PATTERN = re.compile(r"^(?P<const>const\s+)?(?P<name>[^<*&]+?)\s*(?:<(?P<tpl>.*)>)?\s*(?P<ptr>\*)?\s*(?P<ref>&)?$")
_SOURCE_TEXT_KEYS = frozenset({"default"})


class _ModelLoader(yaml.SafeLoader):
    """Safe loader that keeps argument defaults as written.

    A default is C++ source text: ``NULL``, ``010`` or ``1.50`` must reach the
    generated loader unchanged instead of being resolved to YAML null, int or float.
    """

    def construct_mapping(self, node, deep=False):  # type: ignore[no-untyped-def]
        mapping = super().construct_mapping(node, deep=deep)
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode) or key_node.value not in _SOURCE_TEXT_KEYS:
                continue
            if isinstance(value_node, yaml.ScalarNode):
                mapping[key_node.value] = value_node.value
        return mapping


def load_model(
    path: Path,
    *,
    is_header: Optional[bool] = None,
    header_suffixes: Sequence[str] = DEFAULT_HEADER_SUFFIXES,
) -> SourceFile:
    """Read a YAML or JSON model document from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModelError(f"Cannot read declaration model {path}: {exc}") from exc
    return loads_model(
        text,
        default_path=path.stem,
        is_header=is_header,
        header_suffixes=header_suffixes,
    )


def loads_model(
    text: str,
    *,
    default_path: str = "<memory>",
    is_header: Optional[bool] = None,
    header_suffixes: Sequence[str] = DEFAULT_HEADER_SUFFIXES,
) -> SourceFile:
    try:
        data = yaml.load(text, Loader=_ModelLoader)
    except yaml.YAMLError as exc:
        raise ModelError(f"Failed to parse declaration model: {exc}") from exc
    return parse_model(
        data,
        default_path=default_path,
        is_header=is_header,
        header_suffixes=header_suffixes,
    )


def parse_model(
    data: Any,
    *,
    default_path: str = "<memory>",
    is_header: Optional[bool] = None,
    header_suffixes: Sequence[str] = DEFAULT_HEADER_SUFFIXES,
) -> SourceFile:
    """Build a ``SourceFile`` from an already decoded document."""
    document = _require_mapping(data, "document")
    source_path = _optional_str(document.get("path"), "path") or default_path
    header_flag = document.get("header")
    if is_header is None:
        if header_flag is None:
            is_header = has_header_suffix(source_path, header_suffixes)
        elif isinstance(header_flag, bool):
            is_header = header_flag
        else:
            raise ModelError("'header' must be a boolean")
    items = _parse_items(document.get("items") or [], "items", parent=None)
    return SourceFile(path=source_path, is_header=is_header, items=items)


def parse_type(raw: Any, where: str = "type") -> Type:
    """Parse a type given as text (``const Grid<Real>&``) or as a mapping."""
    if raw is None or raw == "":
        return Type(name="")
    if isinstance(raw, str):
        match = _TYPE_PATTERN.match(raw.strip())
        if match is None:
            raise ModelError(f"{where}: cannot read type '{raw}'")
        tpl = match.group("tpl")
        return Type(
            name=match.group("name").strip(),
            is_pointer=bool(match.group("ptr")),
            is_ref=bool(match.group("ref")),
            is_const=bool(match.group("const")),
            template_types=_type_list(tpl, where) if tpl is not None else None,
        )
    mapping = _require_mapping(raw, where)
    name = _require_str(mapping.get("name"), f"{where}.name")
    template = mapping.get("template")
    return Type(
        name=name,
        is_pointer=bool(mapping.get("pointer", False)),
        is_ref=bool(mapping.get("ref", False)),
        is_const=bool(mapping.get("const", False)),
        minimal=_optional_str(mapping.get("minimal"), f"{where}.minimal") or "",
        template_types=_type_list(template, where) if template is not None else None,
    )


def _parse_items(raw: Any, where: str, parent: Optional[Class]) -> List[Union[str, Block]]:
    if not isinstance(raw, list):
        raise ModelError(f"{where}: expected a list")
    items: List[Union[str, Block]] = []
    for index, entry in enumerate(raw):
        location = f"{where}[{index}]"
        if isinstance(entry, str):
            items.append(entry)
        else:
            items.append(_parse_block(entry, location, parent))
    return items


def _parse_block(raw: Any, where: str, parent: Optional[Class]) -> Block:
    mapping = _require_mapping(raw, where)
    kinds = [kind for kind in _PAYLOAD_KINDS if kind in mapping]
    if len(kinds) != 1:
        raise ModelError(
            f"{where}: a block needs exactly one of {', '.join(_PAYLOAD_KINDS)}"
        )
    kind = kinds[0]
    payload_where = f"{where}.{kind}"
    payload_data = mapping[kind]
    if kind == "function":
        payload: Any = _parse_function(payload_data, payload_where)
    elif kind == "variable":
        payload = _parse_variable(payload_data, payload_where)
    elif kind == "class":
        payload = _parse_class(payload_data, payload_where)
    else:
        payload = _parse_instantiation(payload_data, payload_where)

    line = mapping.get("line", 0)
    if not isinstance(line, int) or isinstance(line, bool):
        raise ModelError(f"{where}.line: expected an integer")
    linebreaks = mapping.get("linebreaks", 0)
    if not isinstance(linebreaks, int) or isinstance(linebreaks, bool) or linebreaks < 0:
        raise ModelError(f"{where}.linebreaks: expected a non-negative integer")
    return Block(
        line=line,
        payload=payload,
        options=_parse_options(mapping.get("options"), f"{where}.options"),
        parent=parent,
        linebreak_count=linebreaks,
        code=_optional_str(mapping.get("code"), f"{where}.code") or "",
        init_list=_optional_str(mapping.get("init_list"), f"{where}.init_list") or "",
    )


def _parse_function(raw: Any, where: str) -> Function:
    mapping = _require_mapping(raw, where)
    name = _require_str(mapping.get("name"), f"{where}.name")
    return_type = parse_type(mapping.get("return"), f"{where}.return")
    arguments = [
        _parse_argument(entry, position, f"{where}.arguments[{position}]")
        for position, entry in enumerate(_as_list(mapping.get("arguments"), f"{where}.arguments"))
    ]
    minimal = _optional_str(mapping.get("minimal"), f"{where}.minimal")
    if not minimal:
        params = ", ".join(
            f"{arg.type.minimal} {arg.name}" + (f" = {arg.value}" if arg.value else "")
            for arg in arguments
        )
        prefix = f"{return_type.minimal} " if return_type.minimal else ""
        minimal = f"{prefix}{name}({params})"
    return Function(name=name, return_type=return_type, arguments=arguments, minimal=minimal)


def _parse_argument(raw: Any, position: int, where: str) -> Argument:
    mapping = _require_mapping(raw, where)
    index = mapping.get("index", position)
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise ModelError(f"{where}.index: expected a non-negative integer")
    default = mapping.get("default", "")
    if not isinstance(default, str):
        raise ModelError(f"{where}.default: expected the default value's source text")
    return Argument(
        name=_require_str(mapping.get("name"), f"{where}.name"),
        type=parse_type(mapping.get("type"), f"{where}.type"),
        index=index,
        value=default.strip(),
    )


def _parse_variable(raw: Any, where: str) -> Variable:
    mapping = _require_mapping(raw, where)
    name = _require_str(mapping.get("name"), f"{where}.name")
    var_type = parse_type(mapping.get("type"), f"{where}.type")
    minimal = _optional_str(mapping.get("minimal"), f"{where}.minimal") or f"{var_type.minimal} {name}"
    return Variable(name=name, type=var_type, minimal=minimal)


def _parse_class(raw: Any, where: str) -> Class:
    mapping = _require_mapping(raw, where)
    name = _require_str(mapping.get("name"), f"{where}.name")
    template = mapping.get("template")
    base_data = mapping.get("base")
    if base_data is None:
        base = BaseClass()
    elif isinstance(base_data, str):
        base_type = parse_type(base_data, f"{where}.base")
        base = BaseClass(name=base_type.name, template_types=base_type.template_types)
    else:
        base_mapping = _require_mapping(base_data, f"{where}.base")
        base_template = base_mapping.get("template")
        base = BaseClass(
            name=_optional_str(base_mapping.get("name"), f"{where}.base.name") or "",
            template_types=_type_list(base_template, f"{where}.base") if base_template is not None else None,
        )
    minimal = _optional_str(mapping.get("minimal"), f"{where}.minimal") or f"class {name}"
    cls = Class(
        name=name,
        minimal=minimal,
        base_class=base,
        template_types=_type_list(template, where) if template is not None else None,
    )
    cls.members = _parse_items(mapping.get("members") or [], f"{where}.members", parent=cls)
    return cls


def _parse_instantiation(raw: Any, where: str) -> Instantiation:
    mapping = _require_mapping(raw, where)
    alias_type = parse_type(mapping.get("type"), f"{where}.type")
    if not alias_type.name:
        raise ModelError(f"{where}.type: an instantiation needs a type")
    return Instantiation(
        alias_name=_optional_str(mapping.get("alias"), f"{where}.alias") or "",
        alias_type=alias_type,
    )


def _parse_options(raw: Any, where: str) -> List[Option]:
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [Option(str(name), _option_value(value)) for name, value in raw.items()]
    options: List[Option] = []
    for index, entry in enumerate(_as_list(raw, where)):
        entry_where = f"{where}[{index}]"
        if isinstance(entry, str):
            name, _, value = entry.partition("=")
            options.append(Option(name.strip(), value.strip().strip('"')))
        else:
            mapping = _require_mapping(entry, entry_where)
            options.append(
                Option(
                    _require_str(mapping.get("name"), f"{entry_where}.name"),
                    _option_value(mapping.get("value")),
                )
            )
    return options


def _option_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _type_list(raw: Any, where: str) -> TypeList:
    if isinstance(raw, str):
        entries: Iterable[str] = split_template_args(raw)
        text = raw.strip()
    elif isinstance(raw, list):
        entries = [str(item) for item in raw]
        text = ", ".join(entries)
    else:
        raise ModelError(f"{where}.template: expected text or a list")
    return TypeList(types=[parse_type(entry, f"{where}.template") for entry in entries if entry], list_text=text)


def _require_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ModelError(f"{where}: expected a mapping")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ModelError(f"{where}: expected a non-empty string")
    return value


def _optional_str(value: Any, where: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ModelError(f"{where}: expected a string")
    return value


def _as_list(value: Any, where: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ModelError(f"{where}: expected a list")
    return value


__all__ = ["load_model", "loads_model", "parse_model", "parse_type"]
