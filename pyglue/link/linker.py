"""Aggregates link records from many files into one registration unit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..errors import LinkError
from ..logging import get_logger
from ..templating.engine import expand
from .protocol import DependsOn, Instantiate, LinkRecord, Register, load

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]+")

DEFAULT_TEMPLATE = "registry.cpp.j2"


@dataclass
class ClassInstance:
    """One concrete class instantiation and its resolved registration statements."""

    class_name: str
    template_args: str = ""
    base_args: str = ""
    statements: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        if self.template_args:
            return f"{self.class_name}<{self.template_args}>"
        return self.class_name


def split_template_args(text: str) -> List[str]:
    """Split a template argument list at top-level commas."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in "<([":
            depth += 1
        elif char in ">)]":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def normalise_args(text: str) -> str:
    return ", ".join(split_template_args(text))


def mangle(args: str) -> str:
    """Turn a template argument list into an identifier fragment."""
    return _NON_IDENTIFIER.sub("_", args).strip("_")


def bind_template_args(base_args: str, params: str, args: str) -> str:
    """Substitute the class's template parameter names inside ``base_args``."""
    names = [_parameter_name(param) for param in split_template_args(params)]
    values = split_template_args(args)
    if len(names) != len(values):
        raise LinkError(
            f"template parameters <{params}> do not match arguments <{args}>"
        )
    mapping = dict(zip(names, values))
    if not mapping:
        return normalise_args(base_args)
    bound = _IDENTIFIER.sub(lambda match: mapping.get(match.group(0), match.group(0)), base_args)
    return normalise_args(bound)


def _parameter_name(param: str) -> str:
    identifiers = _IDENTIFIER.findall(param)
    if not identifiers:
        raise LinkError(f"invalid template parameter '{param}'")
    return identifiers[-1]


class Linker:
    """Resolves deferred class registrations once the whole program is known."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self.logger = get_logger("link")
        self._registrations: Dict[str, List[str]] = {}
        self._requests: List[Instantiate] = []
        self._dependencies: Dict[str, DependsOn] = {}
        self._env = self._create_env(templates_dir)

    def add(self, records: Iterable[LinkRecord]) -> None:
        for record in records:
            if isinstance(record, Register):
                self._registrations.setdefault(record.class_name, []).append(record.statement)
            elif isinstance(record, Instantiate):
                self._requests.append(record)
            elif isinstance(record, DependsOn):
                existing = self._dependencies.get(record.class_name)
                if existing is not None and existing != record:
                    raise LinkError(
                        f"conflicting base classes for '{record.class_name}': "
                        f"{existing.base_name}<{existing.base_args}> and "
                        f"{record.base_name}<{record.base_args}>"
                    )
                self._dependencies[record.class_name] = record
            else:
                raise TypeError(f"Not a link record: {record!r}")

    def add_text(self, text: str) -> None:
        self.add(load(text))

    def resolve(self) -> List[ClassInstance]:
        """Return every required instance, bases before the classes deriving from them."""
        resolved: Dict[Tuple[str, str], ClassInstance] = {}
        for request in self._requests:
            self._visit(request.class_name, normalise_args(request.template_args), resolved, [])

        instantiated = {name for name, _ in resolved}
        for name in self._registrations:
            if name not in instantiated:
                self.logger.warning("Class '%s' is registered but never instantiated", name)
        return list(resolved.values())

    def render(
        self,
        *,
        includes: Sequence[str] = (),
        namespace: Optional[str] = None,
        template_name: str = DEFAULT_TEMPLATE,
        instances: Optional[Sequence[ClassInstance]] = None,
    ) -> str:
        if instances is None:
            instances = self.resolve()
        self.logger.debug("Rendering %d class instances", len(instances))
        template = self._env.get_template(template_name)
        return template.render(
            instances=instances,
            includes=list(includes),
            namespace=namespace,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _visit(
        self,
        class_name: str,
        args: str,
        resolved: Dict[Tuple[str, str], ClassInstance],
        active: List[Tuple[str, str]],
    ) -> None:
        key = (class_name, args)
        if key in resolved:
            return
        if key in active:
            chain = " -> ".join(_label(*item) for item in active + [key])
            raise LinkError(f"cyclic base class dependency: {chain}")
        statements = self._registrations.get(class_name)
        if statements is None:
            raise LinkError(f"cannot instantiate unregistered class '{_label(*key)}'")

        active.append(key)
        base_args = ""
        dependency = self._dependencies.get(class_name)
        if dependency is not None:
            base_args = bind_template_args(dependency.base_args, dependency.template_args, args)
            self._visit(dependency.base_name, base_args, resolved, active)
        active.pop()

        table = {"CT": args, "CL": mangle(args), "BT": base_args}
        resolved[key] = ClassInstance(
            class_name=class_name,
            template_args=args,
            base_args=base_args,
            statements=[expand(statement, table) for statement in statements],
        )

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )


def _label(class_name: str, args: str) -> str:
    return f"{class_name}<{args}>" if args else class_name


__all__ = [
    "ClassInstance",
    "Linker",
    "bind_template_args",
    "mangle",
    "normalise_args",
    "split_template_args",
]
