from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from .constants import ABSOLUTE_LINKS_OPTION, DIAGRAM_ATTRIBUTE, INTERFACE_PREFIX
from .declarations import DiagramOptions, TypeDeclaration
from .diagnostics import DiagnosticSink
from .naming import interface_name_for
from .tscn import SceneFile, SceneNode

logger = logging.getLogger(__name__)


def resolve_interface(
    type_name: str,
    declarations: Iterable[TypeDeclaration],
    interface_index: Optional[Mapping[str, TypeDeclaration]] = None,
    prefix: str = INTERFACE_PREFIX,
) -> Optional[TypeDeclaration]:
    """Find the interface a type is expected to implement.

    Declarations from the type's own file are searched first, then the
    project-wide interface index.
    """
    wanted = interface_name_for(type_name, prefix)
    for decl in declarations:
        if decl.is_interface and decl.name == wanted:
            return decl
    if interface_index is not None:
        return interface_index.get(wanted)
    return None


def _backing_type(name: str, declarations: tuple[TypeDeclaration, ...]) -> Optional[TypeDeclaration]:
    concrete = [d for d in declarations if not d.is_interface]
    for decl in concrete:
        if decl.name == name:
            return decl
    return concrete[0] if concrete else None


class HierarchyNode:
    """One scene file or one group of declarations sharing a source file.

    Children and parents are keyed by node name and keep insertion order.
    Edges are added once by the graph builder and never changed afterwards.
    """

    package_kind = ""

    def __init__(
        self,
        name: str,
        file_path: str,
        full_file_path: str,
        script_path: str = "",
        full_script_path: str = "",
        declarations: Iterable[TypeDeclaration] = (),
        *,
        interface_index: Optional[Mapping[str, TypeDeclaration]] = None,
        interface_prefix: str = INTERFACE_PREFIX,
        sink: Optional[DiagnosticSink] = None,
    ) -> None:
        self.name = name
        self.file_path = file_path
        self.full_file_path = full_file_path
        self.script_path = script_path
        self.full_script_path = full_script_path
        self.declarations: tuple[TypeDeclaration, ...] = tuple(declarations)

        self.children: dict[str, HierarchyNode] = {}
        self.parents: dict[str, HierarchyNode] = {}
        self.edge_labels: dict[str, str] = {}

        # resolved once; the renderer only reads these
        self.type_declaration = _backing_type(name, self.declarations)
        self.interface_declaration = resolve_interface(
            name, self.declarations, interface_index, interface_prefix
        )

        self._sink = sink if sink is not None else DiagnosticSink()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def has_script(self) -> bool:
        return bool(self.script_path)

    @property
    def scene_root(self) -> Optional[SceneNode]:
        return None

    def add_child(self, node: "HierarchyNode", label: Optional[str] = None) -> bool:
        if node.name in self.children:
            self._sink.warn(
                "W_DUPLICATE_EDGE",
                f"found duplicate child {node.name!r} in {self.name!r}",
                path=self.file_path,
            )
            return False
        self.children[node.name] = node
        if label:
            self.edge_labels[node.name] = label
        return True

    def add_parent(self, node: "HierarchyNode") -> bool:
        if node.name in self.parents:
            self._sink.warn(
                "W_DUPLICATE_EDGE",
                f"found duplicate parent {node.name!r} in {self.name!r}",
                path=self.file_path,
            )
            return False
        self.parents[node.name] = node
        return True

    def diagram_options(
        self,
        attribute: str = DIAGRAM_ATTRIBUTE,
        option: str = ABSOLUTE_LINKS_OPTION,
    ) -> Optional[DiagramOptions]:
        for decl in self.declarations:
            opts = decl.diagram_options(attribute, option)
            if opts is not None:
                return opts
        return None

    def scene_member_for(self, child: "HierarchyNode") -> Optional[str]:
        """Name of the scene node standing for `child`, matched by name then by type."""
        root = self.scene_root
        if root is None:
            return None
        match = root.find_by_name(child.name) or root.find_by_type(child.name)
        return match.name if match is not None else None


class SceneHierarchy(HierarchyNode):
    """Node backed by a scene file (and the script of its root node, if any)."""

    package_kind = "Scene"

    def __init__(self, name: str, scene: SceneFile, file_path: str, full_file_path: str, **kwargs) -> None:
        super().__init__(name, file_path, full_file_path, **kwargs)
        self.scene = scene

    @property
    def scene_root(self) -> Optional[SceneNode]:
        return self.scene.root


class TypeHierarchy(HierarchyNode):
    """Node backed only by declarations, for types with no scene file."""

    package_kind = "Type"

    def __init__(self, name: str, file_path: str, full_file_path: str, **kwargs) -> None:
        kwargs.setdefault("script_path", file_path)
        kwargs.setdefault("full_script_path", full_file_path)
        super().__init__(name, file_path, full_file_path, **kwargs)
