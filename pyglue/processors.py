"""Declaration processors turning annotated blocks into glue code and link records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, Optional

from .conversion import DEFAULT_PRIMITIVE_TYPES, conversion_for
from .errors import UsageError
from .link.protocol import DependsOn, Instantiate, Register
from .loader import generate_loaders
from .logging import get_logger
from .models import Block, Class, Function, Instantiation, SourceFile, Variable
from .sink import Sink
from .templating import library
from .templating.library import DEFERRED, get_template

_NAME_OPTION = "name"


@dataclass
class ClassScope:
    """Activation record of the class whose body is being processed."""

    cls: Class
    found_constructor: bool = False


class Generator:
    """Processes the blocks of one file at a time, in source order.

    ``doc_mode`` replaces all glue with ``PYTHON`` stub lines meant for the
    documentation build.
    """

    def __init__(
        self,
        primitives: AbstractSet[str] = DEFAULT_PRIMITIVE_TYPES,
        *,
        doc_mode: bool = False,
    ) -> None:
        self.primitives = frozenset(primitives)
        self.doc_mode = doc_mode
        self.logger = get_logger("processors")
        self._handlers: Dict[str, Callable[[Block, Sink, Optional[ClassScope]], None]] = {
            "function": self.process_function,
            "variable": self.process_variable,
            "class": self.process_class,
            "instantiation": self.process_instantiation,
        }

    def process_file(self, source: SourceFile) -> Sink:
        """Generate one file; the first usage error aborts it."""
        sink = Sink(source.is_header, source.path)
        for item in source.items:
            if isinstance(item, Block):
                self.process_block(item, sink)
            else:
                sink.write(item)
        return sink

    def process_block(self, block: Block, sink: Sink, scope: Optional[ClassScope] = None) -> None:
        self.logger.debug("%s:%d: processing %s block", sink.path, block.line, block.kind)
        self._handlers[block.kind](block, sink, scope)

    def process_function(self, block: Block, sink: Sink, scope: Optional[ClassScope] = None) -> None:
        func = _payload(block, Function)
        if block.options:
            raise _usage_error(sink, block, f"unknown keyword {block.options[0].name}")

        owner = _owner(block, scope)
        is_constructor = func.is_constructor()
        is_plugin = owner is None
        if is_constructor and scope is not None:
            scope.found_constructor = True
        if is_plugin and sink.is_header:
            raise _usage_error(sink, block, "plugin python functions can't be defined in headers.")

        signature = func.minimal + block.init_list
        if self.doc_mode:
            if is_plugin:
                sink.write("//! \\ingroup Plugins\n")
            sink.write(f"PYTHON {signature}{{}}\n")
            return
        sink.write(block.linebreaks() + signature + block.code)

        table = {
            "FUNCNAME": func.name,
            "ARGLOADER": "".join(generate_loaders(func, self.primitives)),
            "CLASS": owner.name if owner is not None else "",
            "CTPL": "$CT" if owner is not None and owner.is_templated() else "",
            "CALLSTRING": func.call_string(),
            "RET_VOID": "Y" if func.returns_void() else "",
            **DEFERRED,
        }
        if is_constructor:
            wrapper = library.CONSTRUCTOR
        elif is_plugin:
            wrapper = library.FREE_FUNCTION
        else:
            wrapper = library.MEMBER_FUNCTION
        sink.write(get_template(wrapper).expand(table))

        if owner is not None and not is_constructor:
            statement = get_template(library.REGISTER_METHOD).expand(table).strip()
            sink.emit(Register(owner.name, statement))

    def process_variable(self, block: Block, sink: Sink, scope: Optional[ClassScope] = None) -> None:
        var = _payload(block, Variable)
        owner = _owner(block, scope)
        if owner is None:
            raise _usage_error(sink, block, "python variables can only be used inside classes")

        python_name = var.name
        for option in block.options:
            if option.name != _NAME_OPTION:
                raise _usage_error(
                    sink, block, "PYTHON(opt): illegal option. Supported options are: 'name'"
                )
            python_name = option.value

        declaration = var.minimal or f"{var.type.minimal} {var.name}"
        if self.doc_mode:
            sink.write(f"PYTHON {declaration};\n")
            return

        conversion = conversion_for(var.type, self.primitives)
        table = {
            "NAME": var.name,
            "CLASS": owner.name,
            "CTPL": "$CT" if owner.is_templated() else "",
            "PYNAME": python_name,
            "OUTWARD": conversion.outward(f"pbo->{var.name}"),
            "INWARD": conversion.inward("val"),
            **DEFERRED,
        }
        sink.write(block.linebreaks() + declaration + ";")
        sink.write(get_template(library.GETSET).expand(table))
        statement = get_template(library.REGISTER_GETSET).expand(table).strip()
        sink.emit(Register(owner.name, statement))

    def process_class(self, block: Block, sink: Sink, scope: Optional[ClassScope] = None) -> None:
        cls = _payload(block, Class)
        if not sink.is_header:
            raise _usage_error(sink, block, "PYTHON classes can only be defined in header files.")

        python_name = cls.name
        for option in block.options:
            if option.name != _NAME_OPTION:
                raise _usage_error(
                    sink,
                    block,
                    "PYTHON(opt): illegal kernel option. Supported options are: 'name'",
                )
            python_name = option.value

        if self.doc_mode:
            sink.write(f"//! \\ingroup PyClasses\nPYTHON {cls.minimal}")
            return

        sink.write(block.linebreaks() + cls.minimal + "{")
        class_scope = ClassScope(cls)
        for member in cls.members:
            if isinstance(member, Block):
                self.process_block(member, sink, class_scope)
            else:
                sink.write(member)
        if not class_scope.found_constructor:
            raise _usage_error(sink, block, f"no PYTHON constructor found in class '{cls.name}'")

        sink.write("public: PbArgs _args;")
        sink.write("static const char* _class;")
        sink.write("}")

        base = cls.base_class
        table = {
            "CLASS": cls.name,
            "BASE": base.name,
            "BTPL": "<$BT>" if base.is_templated() else "",
            "PYNAME": python_name,
            "TPL": "Y" if cls.is_templated() else "",
            **DEFERRED,
        }
        sink.emit(Register(cls.name, get_template(library.REGISTER_CLASS).expand(table).strip()))
        if not cls.is_templated():
            sink.emit(Instantiate(cls.name, ""))
        if base.is_templated():
            sink.emit(DependsOn(cls.name, cls.tpl_string(), base.name, base.tpl_string()))

    def process_instantiation(
        self, block: Block, sink: Sink, scope: Optional[ClassScope] = None
    ) -> None:
        alias = _payload(block, Instantiation)
        if not sink.is_header:
            raise _usage_error(sink, block, "instantiate allowed in headers only")

        if not self.doc_mode:
            alias_type = alias.alias_type
            args = alias_type.template_types.list_text if alias_type.template_types else ""
            sink.emit(Instantiate(alias_type.name, args))
        sink.write(block.linebreaks())


def _payload(block: Block, expected: type):  # type: ignore[no-untyped-def]
    if not isinstance(block.payload, expected):
        raise TypeError(f"expected {expected.__name__} payload, got {type(block.payload).__name__}")
    return block.payload


def _owner(block: Block, scope: Optional[ClassScope]) -> Optional[Class]:
    if scope is not None:
        return scope.cls
    return block.parent


def _usage_error(sink: Sink, block: Block, message: str) -> UsageError:
    return UsageError(sink.path, block.line, message)


__all__ = ["ClassScope", "Generator"]
