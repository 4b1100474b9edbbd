"""
Hierarchy graph builder.

Builds the name -> node arena from parsed scenes and scanned declarations,
freezes it, then wires parent/child edges by scene containment and by
declared property types. The finished graph is checked for cycles before it
is handed to the renderer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .config import GeneratorConfig
from .declarations import TypeDeclaration
from .diagnostics import CyclicHierarchyError, Diagnostic, DiagnosticSink
from .hierarchy import HierarchyNode, SceneHierarchy, TypeHierarchy
from .naming import file_stem, strip_resource_scheme, type_name_candidates
from .tscn import SceneFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchyGraph:
    nodes: Mapping[str, HierarchyNode]
    diagnostics: tuple[Diagnostic, ...] = ()

    def __getitem__(self, name: str) -> HierarchyNode:
        return self.nodes[name]

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def roots(self) -> list[HierarchyNode]:
        """Nodes with no parents, in build order."""
        return [n for n in self.nodes.values() if n.is_root]


def project_paths(path: str | Path, project_dir: Path) -> Optional[tuple[str, str]]:
    """(project-relative POSIX path, absolute POSIX path); None outside the project."""
    p = Path(path)
    if not p.is_absolute():
        p = project_dir / p
    try:
        rel = p.relative_to(project_dir)
    except ValueError:
        return None
    return rel.as_posix(), p.as_posix()


def group_declarations(
    declarations: Iterable[TypeDeclaration],
    project_dir: Path,
) -> dict[str, list[TypeDeclaration]]:
    """Group declarations by project-relative source path, in sorted path order."""
    groups: dict[str, list[TypeDeclaration]] = {}
    for decl in declarations:
        paths = project_paths(decl.file_path, project_dir)
        if paths is None:
            logger.debug("ignoring %s declared outside the project: %s", decl.name, decl.file_path)
            continue
        groups.setdefault(paths[0], []).append(decl)
    return {key: groups[key] for key in sorted(groups)}


def _interface_index(groups: Mapping[str, list[TypeDeclaration]]) -> dict[str, TypeDeclaration]:
    index: dict[str, TypeDeclaration] = {}
    for decls in groups.values():
        for decl in decls:
            if decl.is_interface:
                index.setdefault(decl.name, decl)
    return index


def build_hierarchy(
    scenes: Iterable[SceneFile],
    declarations: Iterable[TypeDeclaration],
    project_dir: Path,
    cfg: Optional[GeneratorConfig] = None,
    sink: Optional[DiagnosticSink] = None,
) -> HierarchyGraph:
    """Build and wire the hierarchy graph for one pass.

    Raises CyclicHierarchyError when the wired edges form a cycle.
    """
    cfg = cfg or GeneratorConfig()
    sink = sink if sink is not None else DiagnosticSink(ignore=cfg.ignore, escalate=cfg.escalate)
    project_dir = Path(project_dir)

    groups = group_declarations(declarations, project_dir)
    interfaces = _interface_index(groups)
    node_kwargs = dict(interface_index=interfaces, interface_prefix=cfg.interface_prefix, sink=sink)

    arena: dict[str, HierarchyNode] = {}
    claimed: set[str] = set()

    for scene in scenes:
        paths = project_paths(scene.path, project_dir)
        if paths is None:
            logger.debug("ignoring scene outside the project: %s", scene.path)
            continue
        rel, full = paths

        if scene.root is None:
            name = file_stem(rel)
            sink.warn("W_SCENE_WITHOUT_ROOT", "scene declares no root node; using the file name", path=rel)
        else:
            name = scene.root.name

        if name in arena:
            sink.warn(
                "W_DUPLICATE_NODE",
                f"node name {name!r} is already used by {arena[name].file_path}; scene ignored",
                path=rel,
            )
            continue

        source_key = next((k for k in groups if k not in claimed and file_stem(k) == name), None)
        attached = groups[source_key] if source_key is not None else []
        if source_key is not None:
            claimed.add(source_key)

        script_rel, script_full = "", ""
        if scene.script is not None:
            script_paths = project_paths(strip_resource_scheme(scene.script.path), project_dir)
            if script_paths is not None:
                script_rel, script_full = script_paths

        arena[name] = SceneHierarchy(
            name,
            scene,
            rel,
            full,
            script_path=script_rel,
            full_script_path=script_full,
            declarations=attached,
            **node_kwargs,
        )

    for key, decls in groups.items():
        if key in claimed:
            continue
        name = file_stem(key)
        if name in arena:
            sink.warn(
                "W_DUPLICATE_NODE",
                f"node name {name!r} is already used by {arena[name].file_path}; declarations ignored",
                path=key,
            )
            continue
        arena[name] = TypeHierarchy(name, key, (project_dir / key).as_posix(), declarations=decls, **node_kwargs)

    nodes: Mapping[str, HierarchyNode] = MappingProxyType(arena)
    logger.debug("build arena: %d node(s)", len(nodes))

    for node in nodes.values():
        wire_node(node, nodes, cfg)

    check_acyclic(nodes)
    return HierarchyGraph(nodes=nodes, diagnostics=tuple(sink.items))


def connect(parent: HierarchyNode, child: HierarchyNode, label: Optional[str] = None) -> bool:
    """Add a parent -> child edge unless it exists already or is a self edge."""
    if child is parent or child.name == parent.name:
        return False
    if child.name in parent.children:
        if label and child.name not in parent.edge_labels:
            parent.edge_labels[child.name] = label
        return False
    parent.add_child(child, label)
    child.add_parent(parent)
    logger.debug("edge %s -> %s%s", parent.name, child.name, f" ({label})" if label else "")
    return True


def wire_node(node: HierarchyNode, nodes: Mapping[str, HierarchyNode], cfg: GeneratorConfig) -> None:
    # scene containment, at any depth of the scene tree
    root = node.scene_root
    if root is not None:
        for desc in root.all_children():
            key = desc.name if desc.name in nodes else desc.type
            if key in nodes:
                connect(node, nodes[key])

    # declared property types
    decl = node.type_declaration
    if decl is None:
        return
    for prop in decl.properties():
        if prop.has_attribute(cfg.skip_attributes):
            continue
        for candidate in type_name_candidates(prop.type_name, cfg.interface_prefix):
            if candidate in nodes and candidate != node.name:
                connect(node, nodes[candidate], prop.name)
                break


def check_acyclic(nodes: Mapping[str, HierarchyNode]) -> None:
    """Depth-first search over child edges; raises CyclicHierarchyError on a back edge."""
    done: set[str] = set()

    def visit(node: HierarchyNode, path: list[str]) -> None:
        if node.name in path:
            raise CyclicHierarchyError(path[path.index(node.name):] + [node.name])
        if node.name in done:
            return
        path.append(node.name)
        for child in node.children.values():
            visit(child, path)
        path.pop()
        done.add(node.name)

    for node in nodes.values():
        visit(node, [])


def output_path(node: HierarchyNode, suffix: str) -> str:
    """Project-relative destination of the document rendered for `node`."""
    return str(PurePosixPath(node.file_path).with_suffix("")) + suffix
