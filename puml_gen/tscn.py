"""
Godot text scene (.tscn) reader.

Turns scene text into a tree of SceneNode objects plus the registries of
external resources and scripts it references. Only the parts of the format
needed to build the hierarchy graph are interpreted; every other section and
property is parsed for well-formedness and then ignored. The text format
itself is described by a pyparsing grammar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

import pyparsing as pp

from .diagnostics import Diagnostic, DiagnosticSink, SceneParseError
from .naming import class_name_from_path

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# MODEL
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Script:
    class_name: str
    path: str


@dataclass(frozen=True)
class ExtResource:
    uid: str
    id: str
    type: str
    path: str


@dataclass(frozen=True)
class ResourceRef:
    """`ExtResource("id")` / `SubResource("id")` value."""

    kind: str
    id: str


@dataclass(frozen=True)
class Call:
    """Any other constructor-style value, e.g. `Vector3(0, 1, 0)`."""

    name: str
    args: tuple[Any, ...]


class SceneNode:
    """One `[node]` entry of a scene, linked to its parent and children."""

    def __init__(
        self,
        name: str,
        type: str,
        parent: Optional["SceneNode"] = None,
        parent_path: Optional[str] = None,
        script: Optional[Script] = None,
        groups: Optional[set[str]] = None,
    ) -> None:
        self.name = name
        self.type = type
        self.parent = parent
        self.parent_path = parent_path
        self.script = script
        self.groups: set[str] = set(groups or ())
        self.children: list[SceneNode] = []

    def __repr__(self) -> str:
        return f"SceneNode({self.full_name!r}, type={self.type!r})"

    @property
    def full_name(self) -> str:
        if self.parent_path and self.parent_path != ".":
            return f"{self.parent_path}/{self.name}"
        return self.name

    def all_children(self) -> Iterator["SceneNode"]:
        """Depth-first, pre-order walk over every descendant."""
        for child in self.children:
            yield child
            yield from child.all_children()

    def select_child(self, path: str) -> Optional["SceneNode"]:
        node: Optional[SceneNode] = self
        for segment in path.split("/"):
            if node is None:
                return None
            node = next((c for c in node.children if c.name == segment), None)
        return node

    def find_by_type(self, type_name: str) -> Optional["SceneNode"]:
        return next((c for c in self.all_children() if c.type == type_name), None)

    def find_by_name(self, name: str) -> Optional["SceneNode"]:
        return next((c for c in self.all_children() if c.name == name), None)


@dataclass
class Section:
    tag: str
    line: int
    attributes: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class SceneFile:
    path: str
    root: Optional[SceneNode] = None
    script: Optional[Script] = None
    scripts: dict[str, Script] = field(default_factory=dict)
    ext_resources: dict[str, ExtResource] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def parse_sections(text: str, path: str = "") -> list[Section]:
    """Split scene text into sections; raises SceneParseError on malformed text."""
    return _read_sections(text, path)


def read_scene(text: str, path: str = "", sink: Optional[DiagnosticSink] = None) -> SceneFile:
    """Parse scene text and resolve its node tree.

    Malformed text raises SceneParseError. A node whose parent path cannot be
    resolved is reported as a warning and left unattached.
    """
    sink = sink if sink is not None else DiagnosticSink()
    start = len(sink.items)

    scene = SceneFile(path=path)
    last_node: Optional[SceneNode] = None

    for section in parse_sections(text, path):
        if section.tag == "ext_resource":
            _register_ext_resource(scene, section)
        elif section.tag == "node":
            last_node = _add_node(scene, section, last_node, sink) or last_node

    scene.diagnostics = list(sink.items[start:])
    logger.debug(
        "read scene %s: root=%s, %d script(s), %d ext resource(s)",
        path or "<text>",
        scene.root.name if scene.root else None,
        len(scene.scripts),
        len(scene.ext_resources),
    )
    return scene


# -----------------------------------------------------------------------------
# NODE RESOLUTION
# -----------------------------------------------------------------------------

def _register_ext_resource(scene: SceneFile, section: Section) -> None:
    attrs = section.attributes
    res_type = attrs.get("type")
    res_path = attrs.get("path")
    res_id = attrs.get("id")
    if not isinstance(res_type, str) or not res_path or res_id in (None, ""):
        return

    res_id = str(res_id)
    if res_type == "Script":
        scene.scripts[res_id] = Script(class_name_from_path(str(res_path)), str(res_path))
    else:
        uid = attrs.get("uid")
        scene.ext_resources[res_id] = ExtResource(
            uid=str(uid) if uid else "",
            id=res_id,
            type=res_type,
            path=str(res_path),
        )


def _resolve_type(scene: SceneFile, pairs: dict[str, Any]) -> tuple[Optional[str], Optional[Script]]:
    script: Optional[Script] = None
    ref = pairs.get("script")
    if isinstance(ref, ResourceRef) and ref.kind == "ExtResource":
        script = scene.scripts.get(ref.id)
        if script is not None:
            return script.class_name, script

    node_type = pairs.get("type")
    if isinstance(node_type, str) and node_type:
        return node_type, script

    instance = pairs.get("instance")
    if isinstance(instance, ResourceRef) and instance.kind == "ExtResource":
        ext = scene.ext_resources.get(instance.id)
        if ext is not None:
            return class_name_from_path(ext.path), script

    return None, script


def _add_node(
    scene: SceneFile,
    section: Section,
    last_node: Optional[SceneNode],
    sink: DiagnosticSink,
) -> Optional[SceneNode]:
    # Header attributes win over body properties of the same name.
    pairs = {**section.properties, **section.attributes}

    name = pairs.get("name")
    if not isinstance(name, str) or not name:
        return None

    node_type, script = _resolve_type(scene, pairs)
    if not node_type:
        return None

    groups_raw = pairs.get("groups")
    groups = {g for g in groups_raw if isinstance(g, str) and g.strip()} if isinstance(groups_raw, list) else set()

    if "parent" not in pairs:
        if scene.root is not None:
            sink.warn(
                "W_TSCN_MULTIPLE_ROOTS",
                f"node {name!r} has no parent but the scene already has root {scene.root.name!r}",
                path=f"{scene.path}:{section.line}",
            )
            return None
        scene.root = SceneNode(name, node_type, None, None, script, groups)
        scene.script = script
        return scene.root

    parent_path = str(pairs["parent"])
    parent: Optional[SceneNode] = last_node
    if parent_path == ".":
        parent = scene.root
    elif last_node is None or last_node.full_name != parent_path:
        while parent is not None and parent.full_name != parent_path:
            parent = parent.parent

    if parent is None:
        sink.warn(
            "W_TSCN_PARENT_NOT_FOUND",
            f"could not find parent node for node {name!r} with parent path {parent_path!r}",
            path=f"{scene.path}:{section.line}",
        )
        return None

    node = SceneNode(name, node_type, parent, parent_path, script, groups)
    parent.children.append(node)
    return node


# -----------------------------------------------------------------------------
# GRAMMAR
# -----------------------------------------------------------------------------

def _number(tokens: pp.ParseResults) -> list[Any]:
    raw = tokens[0]
    try:
        return [int(raw)]
    except ValueError:
        return [float(raw)]


def _special_float(tokens: pp.ParseResults) -> list[Any]:
    return [float("-inf" if tokens[0] == "inf_neg" else tokens[0])]


def _hashable(key: Any) -> Any:
    try:
        hash(key)
    except TypeError:
        return repr(key)
    return key


def _to_dict(pairs: Iterable[tuple[Any, Any]]) -> dict[Any, Any]:
    return {_hashable(k): v for k, v in pairs}


def _call(tokens: pp.ParseResults) -> list[Any]:
    name, args = tokens[0], tuple(tokens[1:])
    if name in ("ExtResource", "SubResource") and args:
        return [ResourceRef(kind=name, id=str(args[0]))]
    return [Call(name=name, args=args)]


def _section(text: str, loc: int, tokens: pp.ParseResults) -> list[Section]:
    line, tag, attrs, props = tokens
    return [Section(tag=tag, line=line, attributes=_to_dict(attrs), properties=_to_dict(props))]


def _comma_list(expr: pp.ParserElement) -> pp.ParserElement:
    # trailing commas are legal in arrays, dictionaries and argument lists
    return pp.Opt(expr + pp.ZeroOrMore(pp.Suppress(",") + expr) + pp.Opt(pp.Suppress(",")))


def _scene_grammar() -> pp.ParserElement:
    lbrack, rbrack = pp.Suppress("["), pp.Suppress("]").set_name("']'")
    lparen, rparen = pp.Suppress("("), pp.Suppress(")").set_name("')'")
    lbrace, rbrace = pp.Suppress("{"), pp.Suppress("}").set_name("'}'")
    colon, equals = pp.Suppress(":"), pp.Suppress("=")

    value = pp.Forward().set_name("value")
    ident = pp.Word(pp.alphas + "_", pp.alphanums + "_")

    string = pp.QuotedString('"', esc_char="\\", multiline=True)
    string_name = pp.Suppress("&") + string
    node_path = (pp.Suppress("^") + string).set_parse_action(lambda t: [Call("NodePath", (t[0],))])

    number = pp.Regex(r"[-+]?(?:\d+\.?\d*(?:[eE][-+]?\d+)?|\.\d+(?:[eE][-+]?\d+)?)").set_parse_action(_number)
    special_float = pp.Regex(r"(?:-?inf|inf_neg|nan)(?!\w)").set_parse_action(_special_float)
    true = pp.Keyword("true").set_parse_action(lambda: [True])
    false = pp.Keyword("false").set_parse_action(lambda: [False])
    null = pp.Keyword("null").set_parse_action(lambda: [None])

    pair = (value + colon + value).set_parse_action(lambda t: [(t[0], t[1])])
    array = (lbrack + _comma_list(value) + rbrack).set_parse_action(lambda t: [list(t)])
    dictionary = (lbrace + _comma_list(pair) + rbrace).set_parse_action(lambda t: [_to_dict(t)])

    # Object(InputEventKey,"device":-1,...) embeds an object as class name + properties
    embedded = (
        pp.Suppress(pp.Keyword("Object")) + lparen + ident
        + pp.ZeroOrMore(pp.Suppress(",") + pair) + pp.Opt(pp.Suppress(",")) + rparen
    ).set_parse_action(lambda t: [Call("Object", (t[0], _to_dict(t[1:])))])
    # Array[int]([1, 2]) and Dictionary[String, int]({...}) keep only the contents
    typed = (
        ident + pp.Suppress(lbrack + _comma_list(value) + rbrack) + lparen + value + rparen
    ).set_parse_action(lambda t: [Call(t[0], (t[1],))])
    call = (ident + lparen + _comma_list(value) + rparen).set_parse_action(_call)

    value <<= (
        string | string_name | node_path | array | dictionary
        | special_float | number | true | false | null
        | embedded | typed | call | ident
    )

    key = pp.Regex(r'"[^"\n]*"|[\w/:.\-]+').set_parse_action(lambda t: [t[0].strip('"')])
    entry = (key + equals - value).set_parse_action(lambda t: [(t[0], t[1])])

    header_line = pp.Literal("[").set_parse_action(lambda s, loc, t: [pp.lineno(loc, s)])
    header = header_line - (ident + pp.Group(pp.ZeroOrMore(entry)) + rbrack)
    section = (header + pp.Group(pp.ZeroOrMore(entry))).set_parse_action(_section)

    scene = pp.ZeroOrMore(section) + pp.StringEnd().set_name("section header or `key = value`")
    scene.ignore(pp.Regex(r";[^\n]*"))
    return scene.parse_with_tabs()


_SCENE_GRAMMAR = _scene_grammar()


def _read_sections(text: str, path: str) -> list[Section]:
    try:
        return list(_SCENE_GRAMMAR.parse_string(text))
    except pp.ParseBaseException as e:
        raise SceneParseError(e.msg, path, e.lineno, e.col) from None
