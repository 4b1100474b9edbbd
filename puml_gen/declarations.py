"""
C# declaration scanner.

Extracts the type-level structure the hierarchy graph needs from C# sources:
classes, records, structs and interfaces, their attributes, and the
properties and methods declared directly in their bodies, each with the
1-based line its declaration (attributes included) starts on.

Sources are parsed with tree-sitter's C# grammar. Syntax errors do not stop a
scan; declarations tree-sitter cannot place are skipped.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

import tree_sitter_c_sharp
from tree_sitter import Language, Node, Parser

from .constants import ABSOLUTE_LINKS_OPTION, DIAGRAM_ATTRIBUTE
from .diagnostics import DiagnosticSink
from .io import read_text

logger = logging.getLogger(__name__)

CSHARP = Language(tree_sitter_c_sharp.language())

TYPE_KINDS: dict[str, str] = {
    "class_declaration": "class",
    "struct_declaration": "struct",
    "interface_declaration": "interface",
    "record_declaration": "record",
    "record_struct_declaration": "record",
}
MEMBER_KINDS: dict[str, str] = {
    "property_declaration": "property",
    "method_declaration": "method",
}

_NAMED_ARG_RE = re.compile(r"^\s*(?P<key>[A-Za-z_]\w*)\s*(?:=(?!=)|:)\s*(?P<value>.+?)\s*$", re.S)


# -----------------------------------------------------------------------------
# MODEL
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Attribute:
    name: str
    arguments: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DiagramOptions:
    """Options carried by the diagram opt-in attribute of a type."""

    use_absolute_ide_links: bool = False


@dataclass(frozen=True)
class Member:
    kind: str  # "property" | "method"
    name: str
    type_name: str
    line: int
    attributes: tuple[Attribute, ...] = ()

    def has_attribute(self, names: Iterable[str]) -> bool:
        wanted = set(names)
        return any(a.name in wanted for a in self.attributes)


@dataclass(frozen=True)
class TypeDeclaration:
    name: str
    kind: str
    file_path: str
    line: int
    attributes: tuple[Attribute, ...] = ()
    members: tuple[Member, ...] = ()
    base_types: tuple[str, ...] = ()

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"

    def properties(self) -> list[Member]:
        return [m for m in self.members if m.kind == "property"]

    def methods(self) -> list[Member]:
        return [m for m in self.members if m.kind == "method"]

    def member(self, name: str, kind: Optional[str] = None) -> Optional[Member]:
        for m in self.members:
            if m.name == name and (kind is None or m.kind == kind):
                return m
        return None

    def attribute(self, name: str) -> Optional[Attribute]:
        return next((a for a in self.attributes if a.name == name), None)

    def diagram_options(
        self,
        attribute: str = DIAGRAM_ATTRIBUTE,
        option: str = ABSOLUTE_LINKS_OPTION,
    ) -> Optional[DiagramOptions]:
        """Read the diagram opt-in marker; None when the type does not carry it."""
        attr = self.attribute(attribute)
        if attr is None:
            return None
        raw = attr.arguments.get(option, "false")
        return DiagramOptions(use_absolute_ide_links=raw.strip().lower() == "true")


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def scan_declarations(source: str, file_path: str) -> list[TypeDeclaration]:
    """Return every type declared in `source`, nested types included, in source order."""
    tree = Parser(CSHARP).parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug("%s: syntax errors; scanning what parsed", file_path)

    out: list[TypeDeclaration] = []
    for node in _type_nodes(tree.root_node):
        name_node = _field_or_first(node, "name", "identifier")
        if name_node is None:
            continue

        members: list[Member] = []
        params = _first_child(node, "parameter_list")
        if params is not None and TYPE_KINDS[node.type] == "record":
            members.extend(_record_parameters(params))
        body = _first_child(node, "declaration_list")
        if body is not None:
            members.extend(_members(body))

        out.append(
            TypeDeclaration(
                name=_text(name_node),
                kind=TYPE_KINDS[node.type],
                file_path=file_path,
                line=_line(node),
                attributes=tuple(_attributes(node)),
                members=tuple(members),
                base_types=tuple(_base_types(node)),
            )
        )

    return out


def load_declarations(
    paths: Iterable[Path],
    sink: DiagnosticSink,
    cancel: Optional[threading.Event] = None,
) -> list[TypeDeclaration]:
    """Scan every source file; unreadable files are reported and skipped."""
    out: list[TypeDeclaration] = []
    for path in paths:
        try:
            source = read_text(path, cancel)
        except (OSError, UnicodeDecodeError) as e:
            sink.warn("W_SOURCE_UNREADABLE", f"could not read source file: {e}", path=str(path))
            continue
        found = scan_declarations(source, str(path))
        logger.debug("%s: %d type declaration(s)", path, len(found))
        out.extend(found)
    return out


# -----------------------------------------------------------------------------
# TREE HELPERS
# -----------------------------------------------------------------------------

def _text(node: Node) -> str:
    return " ".join(node.text.decode("utf-8", errors="replace").split())


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _first_child(node: Node, node_type: str) -> Optional[Node]:
    return next((c for c in node.named_children if c.type == node_type), None)


def _field_or_first(node: Node, field_name: str, node_type: str) -> Optional[Node]:
    found = node.child_by_field_name(field_name)
    return found if found is not None else _first_child(node, node_type)


def _type_nodes(root: Node) -> Iterator[Node]:
    """Type declarations in document order (pre-order walk)."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in TYPE_KINDS:
            yield node
        stack.extend(reversed(node.named_children))


def _body_items(body: Node) -> Iterator[Node]:
    # members wrapped in #if/#region blocks belong to the enclosing body
    for child in body.named_children:
        if child.type.startswith("preproc"):
            yield from _body_items(child)
        else:
            yield child


# -----------------------------------------------------------------------------
# DECLARATION PARTS
# -----------------------------------------------------------------------------

def _attribute_name(attr: Node) -> str:
    name_node = attr.child_by_field_name("name")
    if name_node is None:
        name_node = attr.named_children[0] if attr.named_children else attr
    name = _text(name_node).rsplit(".", 1)[-1]
    if name.endswith("Attribute") and name != "Attribute":
        name = name[: -len("Attribute")]
    return name


def _attribute_arguments(attr: Node) -> dict[str, str]:
    args: dict[str, str] = {}
    arg_list = _first_child(attr, "attribute_argument_list")
    if arg_list is None:
        return args
    for arg in arg_list.named_children:
        if arg.type != "attribute_argument":
            continue
        named = _NAMED_ARG_RE.match(_text(arg))
        if named is not None:
            args[named.group("key")] = named.group("value")
    return args


def _attributes(node: Node) -> list[Attribute]:
    out: list[Attribute] = []
    for attr_list in node.named_children:
        if attr_list.type != "attribute_list":
            continue
        for attr in attr_list.named_children:
            if attr.type == "attribute":
                out.append(Attribute(name=_attribute_name(attr), arguments=_attribute_arguments(attr)))
    return out


def _base_types(node: Node) -> list[str]:
    bases = _first_child(node, "base_list")
    if bases is None:
        return []
    out: list[str] = []
    for child in bases.named_children:
        if child.type in ("argument_list", "comment"):
            continue
        # `Base(Left)` in a record base list names the type `Base`
        out.append(_text(child).split("(", 1)[0].strip())
    return out


def _members(body: Node) -> list[Member]:
    out: list[Member] = []
    for item in _body_items(body):
        kind = MEMBER_KINDS.get(item.type)
        if kind is None:
            continue
        name_node = item.child_by_field_name("name")
        if name_node is None:
            continue
        type_node = item.child_by_field_name("type")
        if type_node is None:
            type_node = item.child_by_field_name("returns")
        out.append(
            Member(
                kind=kind,
                name=_text(name_node),
                type_name=_text(type_node) if type_node is not None else "",
                line=_line(item),
                attributes=tuple(_attributes(item)),
            )
        )
    return out


def _record_parameters(params: Node) -> list[Member]:
    """Positional record parameters, which the compiler turns into properties."""
    out: list[Member] = []
    for param in params.named_children:
        if param.type != "parameter":
            continue
        name_node = param.child_by_field_name("name")
        type_node = param.child_by_field_name("type")
        if name_node is None or type_node is None:
            continue
        out.append(
            Member(
                kind="property",
                name=_text(name_node),
                type_name=_text(type_node),
                line=_line(param),
                attributes=tuple(_attributes(param)),
            )
        )
    return out
