"""Declaration processor tests."""

from __future__ import annotations

import pytest

from pyglue.errors import UsageError
from pyglue.link.protocol import DependsOn, Instantiate, Register
from pyglue.models import Type
from pyglue.processors import ClassScope, Generator
from pyglue.sink import Sink

from tests._fixtures.declarations import (
    block,
    constructor,
    function,
    instantiation,
    klass,
    source,
    variable,
)

SOLVER_PTR = Type("FluidSolver", is_pointer=True)


def _sphere(*members):
    return klass("Sphere", [block(constructor("Sphere", [("parent", SOLVER_PTR)])), *members])


def test_plugin_function_in_source_file(generator: Generator) -> None:
    foo = function("foo", "void", [("a", Type("int")), ("b", Type("float"), "2.0")])
    sink = generator.process_file(source([block(foo, line=3)], header=False, path="plugins.cpp"))

    text = sink.text()
    assert text.startswith("void foo(int a, float b = 2.0) {}static PyObject* _P_foo (")
    assert text.count("_args.get<") == 1
    assert text.count("_args.getOpt<") == 1
    assert 'int a = _args.get<int >(0,"a",&_lock);' in text
    assert 'float b = _args.getOpt<float >(1,"b",2.0,&_lock);' in text
    assert "_retval = getPyNone(); foo(a, b);" in text
    assert 'static const PbRegister _RP_foo ("", "foo", _P_foo);' in text
    assert "\n" not in text
    assert sink.link == []
    assert sink.link_text() == ""


def test_plugin_with_return_value_converts_result(generator: Generator, source_sink: Sink) -> None:
    generator.process_block(block(function("count", "int")), source_sink)
    assert "_retval = toPy(count());" in source_sink.text()
    assert "getPyNone" not in source_sink.text()


def test_plugin_in_header_is_rejected(generator: Generator, header_sink: Sink) -> None:
    with pytest.raises(UsageError) as excinfo:
        generator.process_block(block(function("foo"), line=9), header_sink)
    assert excinfo.value.message == "plugin python functions can't be defined in headers."
    assert str(excinfo.value) == (
        "grid.h:9: error: plugin python functions can't be defined in headers."
    )


def test_function_options_are_rejected(generator: Generator, source_sink: Sink) -> None:
    func_block = block(function("foo"), line=4, options=[("fast", "")])
    with pytest.raises(UsageError, match="unknown keyword fast"):
        generator.process_block(func_block, source_sink)


def test_member_variable_with_python_name(generator: Generator, header_sink: Sink) -> None:
    radius = block(variable("radius", Type("Real")), options=[("name", "r")], code="")
    cls = _sphere("\n", radius)
    generator.process_block(block(cls, line=2), header_sink)

    text = header_sink.text()
    assert "Real radius;" in text
    assert "return toPy(pbo->radius);" in text
    assert "pbo->radius = fromPy<Real >(val);" in text
    assert text.count("\n") == 1
    assert header_sink.link[0] == Register(
        "Sphere",
        'static const PbRegister _R_Sphere_radius ("Sphere","r",'
        "Sphere::_GET_radius,Sphere::_SET_radius);",
    )
    assert header_sink.link_text().splitlines()[0] == (
        '+Sphere^static const PbRegister _R_Sphere_radius ("Sphere","r",'
        "Sphere::_GET_radius,Sphere::_SET_radius);"
    )


def test_accessors_convert_with_field_type(generator: Generator, header_sink: Sink) -> None:
    cls = _sphere(block(variable("cells", Type("int")), code=""))
    generator.process_block(block(cls), header_sink)
    assert "pbo->cells = fromPy<int >(val);" in header_sink.text()


def test_variable_outside_class_is_rejected(generator: Generator, source_sink: Sink) -> None:
    with pytest.raises(UsageError, match="python variables can only be used inside classes"):
        generator.process_block(block(variable("x", Type("int"))), source_sink)


def test_variable_with_unknown_option(generator: Generator, header_sink: Sink) -> None:
    bad = block(variable("radius", Type("Real")), line=6, options=[("alias", "r")])
    cls = _sphere(bad)
    with pytest.raises(UsageError) as excinfo:
        generator.process_block(block(cls, line=2), header_sink)
    assert excinfo.value.line == 6
    assert excinfo.value.message == "PYTHON(opt): illegal option. Supported options are: 'name'"


def test_plain_class_emits_register_and_instantiate(
    generator: Generator, header_sink: Sink
) -> None:
    generator.process_block(block(_sphere(), options=[("name", "Ball")]), header_sink)

    text = header_sink.text()
    assert text.startswith("class Sphere : public PbClass{Sphere(FluidSolver* parent) {}")
    assert "static int _Sphere (PyObject* _self" in text
    assert "obj = new Sphere(parent);" in text
    assert text.endswith("public: PbArgs _args;static const char* _class;}")

    assert len(header_sink.link) == 2
    register, instantiate = header_sink.link
    assert isinstance(register, Register)
    assert register.class_name == "Sphere"
    assert '_R_Sphere ("Sphere","Ball","PbClass");' in register.statement
    assert "Sphere::_Sphere" in register.statement
    assert instantiate == Instantiate("Sphere", "")


def test_member_function_registration(generator: Generator, header_sink: Sink) -> None:
    cls = _sphere(block(function("volume", "Real")))
    generator.process_block(block(cls), header_sink)

    text = header_sink.text()
    assert "Real volume() {}static PyObject* _volume (" in text
    assert 'pbPreparePlugin(pbo->getParent(), "Sphere::volume");' in text
    assert header_sink.link[0] == Register(
        "Sphere", 'static const PbRegister _R_Sphere_volume ("Sphere","volume",Sphere::_volume);'
    )


def test_templated_class_defers_template_arguments(
    generator: Generator, header_sink: Sink
) -> None:
    cls = klass(
        "MACGrid",
        [
            block(constructor("MACGrid", [("parent", SOLVER_PTR)])),
            block(function("getSize", "int")),
        ],
        template="T",
        base="Grid",
        base_template="T",
    )
    generator.process_block(block(cls), header_sink)

    method, registration, dependency = header_sink.link
    assert method == Register(
        "MACGrid",
        'static const PbRegister _R_MACGrid_$CL_getSize ("MACGrid<$CT>","getSize",'
        "MACGrid<$CT>::_getSize);",
    )
    assert isinstance(registration, Register)
    assert '_R_MACGrid_$CL ("MACGrid<$CT>","MACGrid<$CT>","Grid<$BT>");' in registration.statement
    assert "template<> const char* MACGrid<$CT>::_class" in registration.statement
    assert dependency == DependsOn("MACGrid", "T", "Grid", "T")
    assert not any(isinstance(record, Instantiate) for record in header_sink.link)


def test_missing_constructor_names_class_and_line(
    generator: Generator, header_sink: Sink
) -> None:
    cls = klass("Empty", [block(function("get", "int"), line=7)])
    with pytest.raises(UsageError) as excinfo:
        generator.process_block(block(cls, line=5), header_sink)
    assert str(excinfo.value) == "grid.h:5: error: no PYTHON constructor found in class 'Empty'"


def test_constructor_flag_is_scoped_per_class(generator: Generator, header_sink: Sink) -> None:
    generator.process_block(block(_sphere()), header_sink)
    with pytest.raises(UsageError, match="no PYTHON constructor found in class 'Cube'"):
        generator.process_block(block(klass("Cube"), line=20), header_sink)


def test_constructor_marks_scope(generator: Generator, header_sink: Sink) -> None:
    cls = klass("Sphere")
    scope = ClassScope(cls)
    ctor = block(constructor("Sphere"), parent=cls)
    generator.process_block(ctor, header_sink, scope)
    assert scope.found_constructor
    assert header_sink.link == []


def test_class_outside_header_is_rejected(generator: Generator, source_sink: Sink) -> None:
    with pytest.raises(UsageError, match="PYTHON classes can only be defined in header files."):
        generator.process_block(block(_sphere()), source_sink)


def test_class_with_unknown_option(generator: Generator, header_sink: Sink) -> None:
    with pytest.raises(UsageError, match="illegal kernel option"):
        generator.process_block(block(_sphere(), options=[("kernel", "")]), header_sink)


def test_instantiation_emits_request(generator: Generator, header_sink: Sink) -> None:
    alias = block(instantiation("RealGrid", "Grid", "Real"), code="")
    alias.linebreak_count = 2
    generator.process_block(alias, header_sink)
    assert header_sink.text() == "\n\n"
    assert header_sink.link == [Instantiate("Grid", "Real")]


def test_instantiation_outside_header_is_rejected(
    generator: Generator, source_sink: Sink
) -> None:
    with pytest.raises(UsageError, match="instantiate allowed in headers only"):
        generator.process_block(block(instantiation("G", "Grid", "int")), source_sink)


def test_first_usage_error_aborts_the_file(generator: Generator) -> None:
    items = [
        "#include <vector>\n",
        block(function("foo"), line=2),
        block(variable("x", Type("int")), line=3),
    ]
    with pytest.raises(UsageError) as excinfo:
        generator.process_file(source(items, header=False, path="plugins.cpp"))
    assert excinfo.value.line == 3


def test_verbatim_text_is_kept_between_blocks(generator: Generator) -> None:
    items = ["// header\n", block(function("foo")), "\nint helper();\n"]
    sink = generator.process_file(source(items, header=False, path="plugins.cpp"))
    assert sink.text().startswith("// header\nvoid foo() {}")
    assert sink.text().endswith("\nint helper();\n")
    assert sink.text().count("\n") == 3


class TestDocMode:
    @pytest.fixture
    def doc_generator(self) -> Generator:
        return Generator(doc_mode=True)

    def test_plugin_stub(self, doc_generator: Generator, source_sink: Sink) -> None:
        foo = function("foo", "void", [("a", Type("int"))])
        doc_generator.process_block(block(foo), source_sink)
        assert source_sink.text() == "//! \\ingroup Plugins\nPYTHON void foo(int a){}\n"
        assert source_sink.link == []

    def test_class_stub(self, doc_generator: Generator, header_sink: Sink) -> None:
        doc_generator.process_block(block(_sphere()), header_sink)
        assert header_sink.text() == (
            "//! \\ingroup PyClasses\nPYTHON class Sphere : public PbClass"
        )
        assert header_sink.link == []

    def test_member_stubs(self, doc_generator: Generator, header_sink: Sink) -> None:
        cls = klass("Sphere")
        scope = ClassScope(cls)
        method = block(function("volume", "Real"), parent=cls)
        field = block(variable("radius", Type("Real")), parent=cls)
        doc_generator.process_block(method, header_sink, scope)
        doc_generator.process_block(field, header_sink, scope)
        assert header_sink.text() == "PYTHON Real volume(){}\nPYTHON Real radius;\n"

    def test_instantiation_keeps_line_breaks_only(
        self, doc_generator: Generator, header_sink: Sink
    ) -> None:
        alias = block(instantiation("RealGrid", "Grid", "Real"))
        alias.linebreak_count = 1
        doc_generator.process_block(alias, header_sink)
        assert header_sink.text() == "\n"
        assert header_sink.link == []


def test_templated_class_with_plain_base_has_no_dependency(
    generator: Generator, header_sink: Sink
) -> None:
    cls = klass("Grid", [block(constructor("Grid"))], template="T", base="GridBase")
    generator.process_block(block(cls), header_sink)

    (registration,) = header_sink.link
    assert isinstance(registration, Register)
    assert '_R_Grid_$CL ("Grid<$CT>","Grid<$CT>","GridBase");' in registration.statement


def test_void_pointer_result_is_converted(generator: Generator, source_sink: Sink) -> None:
    generator.process_block(block(function("buffer", Type("void", is_pointer=True))), source_sink)
    assert "_retval = toPy(buffer());" in source_sink.text()
