"""Configuration loading for pyglue (.pyglue.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .conversion import DEFAULT_PRIMITIVE_TYPES

CONFIG_FILENAME = ".pyglue.yml"
DEFAULT_HEADER_SUFFIXES: tuple[str, ...] = (".h", ".hh", ".hpp", ".hxx")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GeneratorConfig:
    """Glue generation settings."""

    doc_mode: bool = False
    primitive_types: List[str] = field(default_factory=lambda: sorted(DEFAULT_PRIMITIVE_TYPES))
    header_suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_HEADER_SUFFIXES))


@dataclass
class LinkConfig:
    """Registration unit rendering settings."""

    includes: List[str] = field(default_factory=list)
    namespace: Optional[str] = None
    templates_dir: Optional[Path] = None


@dataclass
class OutputConfig:
    """Where generated files go when no explicit path is given."""

    directory: Optional[Path] = None
    suffix: str = ".glue"


@dataclass
class PyGlueConfig:
    """Represents the settings defined in .pyglue.yml."""

    root: Path
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    link: LinkConfig = field(default_factory=LinkConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def has_header_suffix(path: str, suffixes: Sequence[str] = DEFAULT_HEADER_SUFFIXES) -> bool:
    """Whether ``path`` names a header, compared case-insensitively."""
    lower = path.lower()
    return any(lower.endswith(suffix.lower()) for suffix in suffixes)


def load_config(config_path: Path) -> PyGlueConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PyGlueConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    generator = GeneratorConfig()
    generator_data = _as_dict(data.get("generator"))
    if generator_data:
        doc_mode = _as_bool(generator_data.get("doc_mode"))
        if doc_mode is not None:
            generator.doc_mode = doc_mode
        primitives = _as_str_list(generator_data.get("primitive_types"))
        if primitives:
            generator.primitive_types = primitives
        extra = _as_str_list(generator_data.get("extra_primitive_types"))
        for name in extra:
            if name not in generator.primitive_types:
                generator.primitive_types.append(name)
        suffixes = _as_str_list(generator_data.get("header_suffixes"))
        if suffixes:
            generator.header_suffixes = suffixes

    link = LinkConfig()
    link_data = _as_dict(data.get("link"))
    if link_data:
        link.includes = _as_str_list(link_data.get("includes"))
        link.namespace = _as_str(link_data.get("namespace"))
        templates_dir = _as_str(link_data.get("templates_dir"))
        link.templates_dir = root / templates_dir if templates_dir else None

    output = OutputConfig()
    output_data = _as_dict(data.get("output"))
    if output_data:
        directory = _as_str(output_data.get("directory"))
        output.directory = root / directory if directory else None
        suffix = _as_str(output_data.get("suffix"))
        if suffix:
            output.suffix = suffix if suffix.startswith(".") else f".{suffix}"

    return PyGlueConfig(root=root, generator=generator, link=link, output=output)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GeneratorConfig",
    "LinkConfig",
    "OutputConfig",
    "PyGlueConfig",
    "has_header_suffix",
    "load_config",
]
