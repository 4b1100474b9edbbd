"""
PlantUML renderer for a finished hierarchy graph.

Rendering is read-only: each call builds a small tree of Block/Line items
for one root and serializes it with two-space indentation. Children keep
their insertion order and interface members are sorted by identifier, so
rendering an unchanged graph always yields the same text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .config import GeneratorConfig
from .constants import IDE_PROTOCOL, SCENE_SPOT
from .diagnostics import CyclicHierarchyError
from .hierarchy import HierarchyNode
from .puml_fmt import (
    absolute_ide_path,
    puml_bare_link,
    puml_class_header,
    puml_link,
    puml_package_header,
    puml_relation,
    relative_path,
)

SEPARATOR = "--"
INDENT = "  "


@dataclass(frozen=True)
class Line:
    text: str


@dataclass
class Block:
    header: str
    items: list["Item"] = field(default_factory=list)

    def blocks(self) -> list["Block"]:
        return [i for i in self.items if isinstance(i, Block)]

    def lines(self) -> list[str]:
        return [i.text for i in self.items if isinstance(i, Line)]


Item = Union[Block, Line]


@dataclass(frozen=True)
class PathStyle:
    """How links are written in one document."""

    use_absolute_ide_links: bool = False
    protocol: str = IDE_PROTOCOL

    @classmethod
    def for_node(cls, node: HierarchyNode, cfg: Optional[GeneratorConfig] = None) -> "PathStyle":
        """Style requested by the node's diagram opt-in marker (relative links when absent)."""
        cfg = cfg or GeneratorConfig()
        opts = node.diagram_options(cfg.diagram_attribute, cfg.absolute_links_option)
        return cls(
            use_absolute_ide_links=bool(opts and opts.use_absolute_ide_links),
            protocol=cfg.ide_protocol,
        )

    def link(self, relative: str, absolute: str, depth: int) -> str:
        if self.use_absolute_ide_links:
            return absolute_ide_path(absolute, self.protocol)
        return relative_path(relative, depth)


def output_depth(output_path: str) -> int:
    """Directory depth of a project-relative output path (`a/b/C.g.puml` -> 2)."""
    return output_path.replace("\\", "/").count("/")


def to_text(items: list[Item], level: int = 0) -> str:
    out: list[str] = []
    _emit(items, level, out)
    return "\n".join(out)


def _emit(items: list[Item], level: int, out: list[str]) -> None:
    pad = INDENT * level
    for item in items:
        if isinstance(item, Line):
            out.append(pad + item.text)
        else:
            out.append(pad + item.header)
            _emit(item.items, level + 1, out)
            out.append(pad + "}")


def render(node: HierarchyNode, depth: int = 0, style: Optional[PathStyle] = None) -> str:
    """Render `node` and everything below it as PlantUML text (no delimiters)."""
    return to_text(build_blocks(node, depth, style or PathStyle()))


def build_blocks(
    node: HierarchyNode,
    depth: int,
    style: PathStyle,
    _active: tuple[str, ...] = (),
) -> list[Item]:
    """Class block for `node`, plus a package block holding its children if it has any."""
    if node.name in _active:
        raise CyclicHierarchyError(_active[_active.index(node.name):] + (node.name,))
    active = _active + (node.name,)

    items: list[Item] = [class_block(node, depth, style)]
    if node.is_leaf:
        return items

    own_link = style.link(node.file_path, node.full_file_path, depth)
    package = Block(puml_package_header(f"{node.name}{node.package_kind}", puml_bare_link(own_link)))
    for child in node.children.values():
        package.items.extend(build_blocks(child, depth, style, active))
    for child in node.children.values():
        package.items.append(
            Line(puml_relation(node.name, relation_label(node, child), child.name, composite=not child.is_leaf))
        )
    items.append(package)
    return items


def relation_label(node: HierarchyNode, child: HierarchyNode) -> str:
    label = node.edge_labels.get(child.name)
    if label:
        return label
    return node.scene_member_for(child) or child.name


def _backing_link(node: HierarchyNode, depth: int, style: PathStyle) -> tuple[str, str]:
    """(link to the node's script or scene file, matching `Script`/`Scene` kind)."""
    if node.has_script:
        return style.link(node.script_path, node.full_script_path, depth), "Script"
    return style.link(node.file_path, node.full_file_path, depth), "Scene"


def class_block(node: HierarchyNode, depth: int, style: PathStyle) -> Block:
    own_link, kind = _backing_link(node, depth, style)
    block = Block(puml_class_header(node.name, "" if node.has_script else SCENE_SPOT))
    block.items.append(Line(puml_link(own_link, f"{kind}File")))

    decl = node.type_declaration
    iface = node.interface_declaration
    label_to_child = {label: node.children[name] for name, label in node.edge_labels.items()}

    interface_props: list[str] = []
    if decl is not None and iface is not None:
        iface_props = {m.name for m in iface.properties()}
        props = sorted((p for p in decl.properties() if p.name in iface_props), key=lambda p: p.name)
        if props:
            block.items.append(Line(SEPARATOR))
        for prop in props:
            text = "+ " + puml_link(own_link, prop.name, prop.line)
            child = label_to_child.get(prop.name)
            if child is not None:
                child_link, child_kind = _backing_link(child, depth, style)
                text += " - " + puml_link(child_link, child_kind)
            block.items.append(Line(text))
            interface_props.append(prop.name)

        iface_methods = {m.name for m in iface.methods()}
        methods = sorted((m for m in decl.methods() if m.name in iface_methods), key=lambda m: m.name)
        if methods:
            block.items.append(Line(SEPARATOR))
        for method in methods:
            block.items.append(Line(puml_link(own_link, f"{method.name}()", method.line)))

    external: list[Line] = []
    for child in node.children.values():
        label = node.edge_labels.get(child.name)
        if label in interface_props:
            continue
        key = label or child.name
        prop = decl.member(key, "property") if decl is not None else None
        if prop is not None:
            text = puml_link(own_link, key, prop.line)
        else:
            text = node.scene_member_for(child) or key
        child_link, child_kind = _backing_link(child, depth, style)
        if child_link:
            text += " - " + puml_link(child_link, child_kind)
        external.append(Line(text))

    if external:
        block.items.append(Line(SEPARATOR))
        block.items.extend(external)
    return block
