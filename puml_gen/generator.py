"""
One generation pass: discover inputs, parse, build, render, write.

Every document is rendered in memory before the first write. A scene that
cannot be read or parsed, or a cyclic hierarchy, aborts the pass; when
`clean_on_failure` is set, previously generated documents are removed so
none are left stale.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .builder import HierarchyGraph, build_hierarchy, output_path
from .config import GeneratorConfig
from .constants import ROOTS_OPTED_IN
from .declarations import load_declarations
from .diagnostics import (
    CyclicHierarchyError,
    Diagnostic,
    DiagnosticSink,
    GenerationCancelled,
    SceneParseError,
)
from .io import check_cancelled, discover_inputs, find_generated, read_text
from .puml_fmt import puml_document
from .render import PathStyle, output_depth, render
from .tscn import SceneFile, read_scene
from .writer import remove_documents, write_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    node_name: str
    relative_path: str
    path: Path
    text: str


@dataclass
class PassResult:
    graph: HierarchyGraph
    documents: list[Document] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _previous_text(path: Path) -> Optional[str]:
    return path.read_text(encoding="utf-8") if path.is_file() else None


def _roll_back(written: list[Path], previous: dict[Path, Optional[str]]) -> None:
    for path in written:
        old = previous.get(path)
        if old is None:
            remove_documents([path])
        else:
            write_document(path, old)


def read_scenes(
    project_dir: Path,
    cfg: GeneratorConfig,
    sink: DiagnosticSink,
    cancel: Optional[threading.Event] = None,
) -> list[SceneFile]:
    scenes: list[SceneFile] = []
    for path in discover_inputs(project_dir, cfg.scene_extensions, cfg.exclude_dirs):
        try:
            text = read_text(path, cancel)
        except (OSError, UnicodeDecodeError) as e:
            raise SceneParseError(f"could not read scene file: {e}", str(path)) from e
        scenes.append(read_scene(text, str(path), sink))
    return scenes


def assemble_documents(
    graph: HierarchyGraph,
    project_dir: Path,
    cfg: GeneratorConfig,
    sink: DiagnosticSink,
) -> list[Document]:
    """Render one document per root (only opted-in roots with `roots: opted_in`)."""
    documents: list[Document] = []
    seen: dict[str, str] = {}

    for root in graph.roots():
        if cfg.roots == ROOTS_OPTED_IN and root.diagram_options(cfg.diagram_attribute, cfg.absolute_links_option) is None:
            logger.debug("skipping %s: not opted in with [%s]", root.name, cfg.diagram_attribute)
            continue

        rel = output_path(root, cfg.output_suffix)
        if rel in seen:
            sink.warn(
                "W_DUPLICATE_OUTPUT",
                f"{root.name!r} would overwrite the document of {seen[rel]!r}; skipped",
                path=rel,
            )
            continue
        seen[rel] = root.name

        body = render(root, output_depth(rel), PathStyle.for_node(root, cfg))
        documents.append(Document(root.name, rel, project_dir / rel, puml_document(body)))

    return documents


def run_pass(
    project_dir: Path,
    cfg: Optional[GeneratorConfig] = None,
    *,
    cancel: Optional[threading.Event] = None,
    dry_run: bool = False,
) -> PassResult:
    """Run one full pass over `project_dir`.

    Raises SceneParseError or CyclicHierarchyError (fatal; nothing is written)
    and GenerationCancelled when `cancel` is set. A pass cancelled while
    writing puts every document it already wrote back the way it found it.
    """
    cfg = cfg or GeneratorConfig()
    project_dir = Path(project_dir)
    sink = DiagnosticSink(ignore=cfg.ignore, escalate=cfg.escalate)

    try:
        scenes = read_scenes(project_dir, cfg, sink, cancel)
        sources = discover_inputs(project_dir, cfg.source_extensions, cfg.exclude_dirs)
        declarations = load_declarations(sources, sink, cancel)
        graph = build_hierarchy(scenes, declarations, project_dir, cfg, sink)
        documents = assemble_documents(graph, project_dir, cfg, sink)
    except (SceneParseError, CyclicHierarchyError) as e:
        logger.debug("pass aborted: %s", e)
        if cfg.clean_on_failure and not dry_run:
            remove_documents(find_generated(project_dir, cfg.output_suffix, cfg.exclude_dirs))
        raise

    result = PassResult(graph=graph, documents=documents)
    previous = {} if dry_run else {doc.path: _previous_text(doc.path) for doc in documents}
    try:
        for doc in documents:
            check_cancelled(cancel)
            if dry_run:
                continue
            if write_document(doc.path, doc.text):
                result.written.append(doc.path)
            else:
                result.unchanged.append(doc.path)
    except GenerationCancelled:
        logger.debug("pass cancelled after %d write(s); rolling back", len(result.written))
        _roll_back(result.written, previous)
        raise

    result.diagnostics = list(sink.items)
    logger.info(
        "%d document(s): %d written, %d unchanged",
        len(documents),
        len(result.written),
        len(result.unchanged),
    )
    return result
