"""CLI entrypoints for pyglue commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .errors import LinkError, LinkProtocolError, ModelError, UsageError
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    # Subcommands must not overwrite a value given before the subcommand name.
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Show debug messages on the console.",
    )
    parser.add_argument(
        "--log-file",
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write a debug-level log of the run to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyglue",
        description="Generate Python glue code and registration units from annotated declarations.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate inline glue code and link directives for one declaration model.",
    )
    _add_logging_options(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "model",
        help="Path to the declaration model document (YAML or JSON) produced by the scanner.",
    )
    generate_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Where to write the generated source (defaults next to the model).",
    )
    generate_parser.add_argument(
        "--link-output",
        default=None,
        help="Where to write the link directives (defaults to <stem>.reg beside the output).",
    )
    kind_group = generate_parser.add_mutually_exclusive_group()
    kind_group.add_argument(
        "--header",
        dest="is_header",
        action="store_const",
        const=True,
        default=None,
        help="Treat the scanned file as a header regardless of its name.",
    )
    kind_group.add_argument(
        "--source",
        dest="is_header",
        action="store_const",
        const=False,
        help="Treat the scanned file as a non-header source file.",
    )
    generate_parser.add_argument(
        "--doc-mode",
        action="store_true",
        default=None,
        help="Emit documentation stubs instead of glue code.",
    )

    link_parser = subparsers.add_parser(
        "link",
        help="Resolve link directives from many files into one registration unit.",
    )
    _add_logging_options(link_parser, suppress_default=True)
    link_parser.add_argument("reg_files", nargs="+", help="Link directive files (.reg).")
    link_parser.add_argument(
        "-o",
        "--output",
        required=True,
        help="Path of the registration unit to write.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing generate and link.",
    )
    _add_logging_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pyglue commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file).expanduser() if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    orchestrator = Orchestrator()

    if args.command == "generate":
        try:
            outcome = orchestrator.run_generate(
                args.model,
                output=args.output,
                link_output=args.link_output,
                is_header=args.is_header,
                doc_mode=args.doc_mode,
            )
        except UsageError as exc:
            parser.exit(1, f"{exc}\n")
        except (ModelError, ConfigError) as exc:
            parser.exit(1, f"pyglue generate failed: {exc}\n")
        except Exception as exc:  # pragma: no cover
            parser.exit(1, f"pyglue generate failed: {exc}\nRun with --verbose for more details.\n")
        print(f"Glue written to {_relativize(outcome.output_path)}")
        print(f"Link directives written to {_relativize(outcome.link_path)}")
    elif args.command == "link":
        try:
            link_outcome = orchestrator.run_link(args.reg_files, args.output)
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except (LinkError, LinkProtocolError, ConfigError) as exc:
            parser.exit(1, f"pyglue link failed: {exc}\n")
        except Exception as exc:  # pragma: no cover
            parser.exit(1, f"pyglue link failed: {exc}\nRun with --verbose for more details.\n")
        print(
            f"Registration unit written to {_relativize(link_outcome.output_path)} "
            f"({link_outcome.instance_count} class instances)"
        )
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
