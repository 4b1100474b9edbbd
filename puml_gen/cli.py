# puml_gen/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import load_config
from .diagnostics import CyclicHierarchyError, SceneParseError
from .generator import run_pass


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="puml-gen",
        description="Generate PlantUML hierarchy diagrams from Godot scenes and C# sources.",
    )
    parser.add_argument(
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project root to scan (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: <project-dir>/puml_gen.yaml when present)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on warnings (e.g., unresolved parent paths, duplicate node names). Errors always fail.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render every document but write nothing",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log build and wiring details",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entrypoint."""
    args = _parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    project_dir: Path = args.project_dir.resolve()
    try:
        cfg = load_config(project_dir, args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2)

    try:
        result = run_pass(project_dir, cfg, dry_run=args.dry_run)
    except (SceneParseError, CyclicHierarchyError) as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(1)

    errors = [d for d in result.diagnostics if d.severity == "error"]
    warnings = [d for d in result.diagnostics if d.severity == "warning"]
    for warning in warnings:
        print(f"warning: {warning.code}: {warning.format()}", file=sys.stderr)

    if errors or (args.strict and warnings):
        for error in errors:
            print(f"error: {error.code}: {error.format()}", file=sys.stderr)
        raise SystemExit(2)

    if args.dry_run:
        for doc in result.documents:
            print(doc.relative_path)


if __name__ == "__main__":
    main()
