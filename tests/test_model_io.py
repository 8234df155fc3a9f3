"""Declaration model document tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from pyglue.errors import ModelError
from pyglue.loader import generate_loaders
from pyglue.model_io import load_model, loads_model, parse_model, parse_type
from pyglue.models import Block, Class, Function, Instantiation, Variable

GRID_MODEL = """
path: grid.h
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
            minimal: "Grid(FluidSolver* parent)"
            arguments:
              - {name: parent, type: "FluidSolver*"}
          line: 12
          code: " {}"
        - variable:
            name: mSize
            type: int
          line: 13
          options: {name: size}
    line: 10
  - instantiation:
      alias: RealGrid
      type: Grid<Real>
    line: 20
    linebreaks: 1
"""


def test_parse_type_from_text() -> None:
    parsed = parse_type("const Grid<Vec3, int>&")
    assert parsed.name == "Grid"
    assert parsed.is_const and parsed.is_ref and not parsed.is_pointer
    assert parsed.template_types is not None
    assert [t.name for t in parsed.template_types.types] == ["Vec3", "int"]
    assert parsed.minimal == "const Grid<Vec3, int>&"


def test_parse_type_from_mapping() -> None:
    parsed = parse_type({"name": "FluidSolver", "pointer": True})
    assert parsed.build() == "FluidSolver*"


def test_empty_type_is_a_constructor_return() -> None:
    assert parse_type("").minimal == ""
    assert parse_type(None).name == ""


def test_loads_model_builds_nested_blocks() -> None:
    model = loads_model(GRID_MODEL)
    assert model.path == "grid.h"
    assert model.is_header
    assert model.items[0] == '#include "general.h"\n'

    class_block = model.items[1]
    assert isinstance(class_block, Block)
    assert class_block.kind == "class"
    assert class_block.line == 10
    cls = class_block.payload
    assert isinstance(cls, Class)
    assert cls.is_templated()
    assert cls.base_class.name == "GridBase"
    assert not cls.base_class.is_templated()

    ctor_block, field_block = [m for m in cls.members if isinstance(m, Block)]
    assert ctor_block.parent is cls
    assert isinstance(ctor_block.payload, Function)
    assert ctor_block.payload.is_constructor()
    assert ctor_block.payload.arguments[0].type.is_pointer
    assert ctor_block.code == " {}"
    assert isinstance(field_block.payload, Variable)
    assert field_block.options[0].name == "name"
    assert field_block.options[0].value == "size"

    alias_block = model.items[2]
    assert isinstance(alias_block.payload, Instantiation)
    assert alias_block.payload.alias_type.template_types.list_text == "Real"
    assert alias_block.linebreaks() == "\n"


def test_header_flag_follows_suffix_unless_overridden() -> None:
    text = "path: solver.cpp\nitems: []\n"
    assert not loads_model(text).is_header
    assert loads_model(text, is_header=True).is_header
    assert loads_model("path: solver.cuh\nitems: []\n", header_suffixes=[".cuh"]).is_header
    assert loads_model("path: solver.cpp\nheader: true\n").is_header


def test_function_minimal_is_derived_when_missing() -> None:
    text = """
path: plugins.cpp
items:
  - function:
      name: foo
      return: void
      arguments:
        - {name: a, type: int}
        - {name: b, type: float, default: 2.0}
    options: [fast]
"""
    (func_block,) = loads_model(text).blocks()
    func = func_block.payload
    assert func.minimal == "void foo(int a, float b = 2.0)"
    assert func.arguments[1].value == "2.0"
    assert func.arguments[1].index == 1
    assert func_block.options[0].name == "fast"


def test_load_model_defaults_path_to_file_stem(tmp_path: Path) -> None:
    model_path = tmp_path / "plugins.cpp.yml"
    model_path.write_text("items: []\n", encoding="utf-8")
    assert load_model(model_path).path == "plugins.cpp"


def test_missing_model_file(tmp_path: Path) -> None:
    with pytest.raises(ModelError, match="Cannot read"):
        load_model(tmp_path / "absent.yml")


@pytest.mark.parametrize(
    "text, message",
    [
        ("- just a list\n", "expected a mapping"),
        ("items: {a: 1}\n", "expected a list"),
        ("items:\n  - {line: 3}\n", "exactly one of"),
        ("items:\n  - {function: {name: f}, line: x}\n", "expected an integer"),
        ("items:\n  - {variable: {type: int}}\n", "non-empty string"),
        ("items: [\n", "Failed to parse"),
        ("header: maybe\n", "'header' must be a boolean"),
    ],
)
def test_malformed_documents(text: str, message: str) -> None:
    with pytest.raises(ModelError, match=message):
        loads_model(text)


def test_argument_defaults_keep_their_source_text() -> None:
    text = """
path: plugins.cpp
items:
  - function:
      name: setObstacle
      return: void
      arguments:
        - {name: obstacle, type: "Grid<Real>&", default: NULL}
        - {name: mode, type: int, default: 010}
        - name: scale
          type: Real
          default: 1.50
        - {name: label, type: string, default: "\\"solid\\""}
        - {name: clamp, type: bool, default: true}
"""
    (func_block,) = loads_model(text).blocks()
    func = func_block.payload
    assert [arg.value for arg in func.arguments] == ["NULL", "010", "1.50", '"solid"', "true"]
    assert all(arg.is_optional() for arg in func.arguments)


def test_null_default_selects_optional_loader() -> None:
    text = """
path: plugins.cpp
items:
  - function:
      name: setObstacle
      return: void
      arguments:
        - {name: obstacle, type: "FlagGrid*", default: NULL}
"""
    (func_block,) = loads_model(text).blocks()
    (loader,) = generate_loaders(func_block.payload)
    assert loader == 'FlagGrid* obstacle = _args.getOpt<FlagGrid* >(0,"obstacle",NULL,&_lock); '


def test_decoded_documents_need_textual_defaults() -> None:
    document = {
        "path": "plugins.cpp",
        "items": [
            {
                "function": {
                    "name": "step",
                    "return": "void",
                    "arguments": [{"name": "dt", "type": "Real", "default": None}],
                }
            }
        ],
    }
    with pytest.raises(ModelError, match="default: expected the default value's source text"):
        parse_model(document)
