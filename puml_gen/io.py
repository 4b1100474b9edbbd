# puml_gen/io.py
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from .diagnostics import GenerationCancelled

logger = logging.getLogger(__name__)


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Load a YAML file whose top level must be a mapping (empty file -> {})."""
    raw = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML {path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise TypeError(
            f"Top-level YAML must be a mapping in {path}, got {type(data).__name__}"
        )

    return data


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise GenerationCancelled("generation cancelled by caller")


def read_text(path: Path, cancel: Optional[threading.Event] = None) -> str:
    """Read one input file, honouring the pass cancellation token."""
    check_cancelled(cancel)
    return path.read_text(encoding="utf-8-sig")


def discover_inputs(
    project_dir: Path,
    extensions: Iterable[str],
    exclude_dirs: Iterable[str] = (),
) -> list[Path]:
    """Find input files under project_dir, sorted for a deterministic pass.

    Hidden directories and `exclude_dirs` (matched by name) are pruned.
    """
    exts = {e.lower() for e in extensions}
    excluded = set(exclude_dirs)
    found: list[Path] = []

    for root, dirs, files in os.walk(project_dir):
        dirs[:] = sorted(d for d in dirs if d not in excluded and not d.startswith("."))
        for name in sorted(files):
            if Path(name).suffix.lower() in exts:
                found.append(Path(root) / name)

    found.sort(key=lambda p: p.relative_to(project_dir).as_posix())
    logger.debug("discovered %d file(s) with %s under %s", len(found), sorted(exts), project_dir)
    return found


def find_generated(project_dir: Path, suffix: str, exclude_dirs: Iterable[str] = ()) -> list[Path]:
    """Previously generated documents (files ending with the output suffix)."""
    excluded = set(exclude_dirs)
    out: list[Path] = []
    for root, dirs, files in os.walk(project_dir):
        dirs[:] = sorted(d for d in dirs if d not in excluded and not d.startswith("."))
        for name in sorted(files):
            if name.endswith(suffix):
                out.append(Path(root) / name)
    return out
