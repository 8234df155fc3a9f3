"""Pipeline orchestration for the generate and link commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import PyGlueConfig, load_config
from .link.linker import Linker
from .link.protocol import LinkRecord, load
from .logging import get_logger
from .model_io import load_model, parse_model
from .models import SourceFile
from .processors import Generator
from .sink import Sink


@dataclass
class GenerateOutcome:
    """Files written for one generated source file."""

    source: str
    output_path: Path
    link_path: Path
    link_records: List[LinkRecord]


@dataclass
class LinkOutcome:
    output_path: Path
    instance_count: int


class Orchestrator:
    """Coordinates model loading, glue generation and registration linking."""

    def __init__(self, config: PyGlueConfig | None = None) -> None:
        self._config_override = config
        self.logger = get_logger("orchestrator")

    def build_generator(self, config: PyGlueConfig, *, doc_mode: Optional[bool] = None) -> Generator:
        effective_doc_mode = config.generator.doc_mode if doc_mode is None else doc_mode
        return Generator(config.generator.primitive_types, doc_mode=effective_doc_mode)

    def generate(
        self,
        source: SourceFile,
        *,
        config: PyGlueConfig | None = None,
        doc_mode: Optional[bool] = None,
    ) -> Sink:
        """Generate glue for an in-memory model without touching the filesystem."""
        effective = config or self._config_override or PyGlueConfig(root=Path.cwd())
        generator = self.build_generator(effective, doc_mode=doc_mode)
        return generator.process_file(source)

    def generate_document(
        self,
        document: object,
        *,
        is_header: Optional[bool] = None,
        doc_mode: Optional[bool] = None,
    ) -> Sink:
        config = self._config_override or PyGlueConfig(root=Path.cwd())
        source = parse_model(
            document,
            is_header=is_header,
            header_suffixes=config.generator.header_suffixes,
        )
        return self.generate(source, config=config, doc_mode=doc_mode)

    def run_generate(
        self,
        model_path: str,
        *,
        output: str | None = None,
        link_output: str | None = None,
        is_header: Optional[bool] = None,
        doc_mode: Optional[bool] = None,
    ) -> GenerateOutcome:
        """Generate glue for one model document and write both output channels."""
        path = Path(model_path).expanduser().resolve()
        self.logger.info("Generating glue for %s", path)
        config = self._load_config(path.parent)
        source = load_model(
            path,
            is_header=is_header,
            header_suffixes=config.generator.header_suffixes,
        )
        self.logger.debug(
            "Model %s has %d top-level blocks (header=%s)",
            source.path,
            len(source.blocks()),
            source.is_header,
        )

        # A usage error propagates from here before anything is written.
        sink = self.generate(source, config=config, doc_mode=doc_mode)

        output_path = Path(output) if output else self._default_output(path, source, config)
        if link_output:
            link_path = Path(link_output)
        else:
            link_path = output_path.with_name(f"{Path(source.path).stem}.reg")
        if link_path == output_path:
            link_path = output_path.with_name(output_path.name + ".reg")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        link_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(sink.text(), encoding="utf-8")
        link_path.write_text(sink.link_text(), encoding="utf-8")
        self.logger.info(
            "Wrote %s and %d link directives to %s", output_path, len(sink.link), link_path
        )
        return GenerateOutcome(
            source=source.path,
            output_path=output_path,
            link_path=link_path,
            link_records=list(sink.link),
        )

    def link(self, documents: Iterable[str], *, config: PyGlueConfig | None = None) -> str:
        """Link in-memory ``.reg`` documents and return the rendered unit."""
        effective = config or self._config_override or PyGlueConfig(root=Path.cwd())
        linker = Linker(effective.link.templates_dir)
        for text in documents:
            linker.add(load(text))
        return linker.render(includes=effective.link.includes, namespace=effective.link.namespace)

    def run_link(self, reg_paths: Sequence[str], output: str) -> LinkOutcome:
        """Resolve the link directives of all files and write the registration unit."""
        paths = [Path(p).expanduser().resolve() for p in reg_paths]
        if not paths:
            raise FileNotFoundError("No link files given")
        config = self._load_config(paths[0].parent)
        linker = Linker(config.link.templates_dir)
        for reg_path in paths:
            if not reg_path.exists():
                raise FileNotFoundError(f"Link file not found: {reg_path}")
            records = load(reg_path.read_text(encoding="utf-8"))
            self.logger.debug("Read %d link directives from %s", len(records), reg_path)
            linker.add(records)

        instances = linker.resolve()
        rendered = linker.render(
            includes=config.link.includes,
            namespace=config.link.namespace,
            instances=instances,
        )
        output_path = Path(output).expanduser()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered, encoding="utf-8")
        self.logger.info(
            "Linked %d files into %s (%d class instances)", len(paths), output_path, len(instances)
        )
        return LinkOutcome(output_path=output_path, instance_count=len(instances))

    # ------------------------------------------------------------------
    # Internal helpers

    def _load_config(self, directory: Path) -> PyGlueConfig:
        if self._config_override is not None:
            return self._config_override
        config = load_config(directory)
        self.logger.debug("Loaded configuration rooted at %s", config.root)
        return config

    @staticmethod
    def _default_output(model_path: Path, source: SourceFile, config: PyGlueConfig) -> Path:
        directory = config.output.directory or model_path.parent
        source_name = Path(source.path).name
        stem, dot, extension = source_name.rpartition(".")
        if not dot:
            return directory / f"{source_name}{config.output.suffix}"
        return directory / f"{stem}{config.output.suffix}.{extension}"


__all__ = ["GenerateOutcome", "LinkOutcome", "Orchestrator"]
