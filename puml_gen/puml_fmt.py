from __future__ import annotations

import re
from typing import Optional

from .constants import DOCUMENT_END, DOCUMENT_START, IDE_PROTOCOL

# PlantUML link targets end at the first whitespace; the label follows it.
_LINK_UNSAFE_RE = re.compile(r"[\[\]\s]")


def puml_document(body: str) -> str:
    """Wrap a rendered body in the PlantUML document delimiters."""
    return f"{DOCUMENT_START}\n{body.rstrip()}\n{DOCUMENT_END}\n"


def relative_path(path: str, depth: int) -> str:
    """Project-relative path as seen from a document `depth` directories deep."""
    if not path.strip():
        return ""
    return "../" * depth + path


def absolute_ide_path(path: str, protocol: str = IDE_PROTOCOL) -> str:
    if not path.strip():
        return ""
    return f"{protocol}{path}"


def puml_link_target(target: str) -> str:
    """Percent-encode characters that would end or break a link target."""
    return _LINK_UNSAFE_RE.sub(lambda m: f"%{ord(m.group(0)):02X}", target)


def puml_link(target: str, label: str, line: Optional[int] = None) -> str:
    """`[[target label]]` or `[[target:line label]]`."""
    where = puml_link_target(target)
    if line is not None:
        where = f"{where}:{line}"
    return f"[[{where} {label}]]"


def puml_bare_link(target: str) -> str:
    return f"[[{puml_link_target(target)}]]"


def puml_class_header(name: str, spot: str = "") -> str:
    parts = ["class", name, spot, "{"]
    return " ".join(p for p in parts if p)


def puml_package_header(name: str, link: str = "") -> str:
    parts = ["package", name, link, "{"]
    return " ".join(p for p in parts if p)


def puml_relation(source: str, member: str, target: str, *, composite: bool) -> str:
    """`Source::member --> Target`; composite targets get the longer `--->` arrow."""
    arrow = "--->" if composite else "-->"
    return f"{source}::{member} {arrow} {target}"
