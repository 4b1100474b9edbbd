from __future__ import annotations

import re
from pathlib import PurePath, PurePosixPath
from typing import Optional

from .constants import INTERFACE_PREFIX, RESOURCE_SCHEME

_GENERIC_ARGS_RE = re.compile(r"<.*>")


def to_pascal_case(text: str) -> str:
    """Capitalize after every non-alphanumeric character and drop those characters."""
    out: list[str] = []
    upper_next = True
    for ch in text:
        if not ch.isalnum():
            upper_next = True
            continue
        if upper_next:
            out.append(ch.upper())
            upper_next = False
        else:
            out.append(ch)
    return "".join(out)


def class_name_from_path(path: str) -> str:
    """Class name behind a resource path: `res://ui/main_menu.gd` -> `MainMenu`.

    Only the part of the file name before the first `.` counts, so
    `player.tscn` and `player.gd` both map to `Player`.
    """
    raw = PurePosixPath(strip_resource_scheme(path)).name
    head = raw.split(".", 1)[0]
    return to_pascal_case(head)


def file_stem(path: str | PurePath) -> str:
    return PurePath(path).stem


def strip_resource_scheme(path: str) -> str:
    if path.startswith(RESOURCE_SCHEME):
        return path[len(RESOURCE_SCHEME):]
    return path


def interface_name_for(type_name: str, prefix: str = INTERFACE_PREFIX) -> str:
    """Name of the interface a type is expected to implement (`Foo` -> `IFoo`).

    This is the only place the naming convention is encoded.
    """
    return f"{prefix}{type_name}"


def strip_interface_prefix(type_name: str, prefix: str = INTERFACE_PREFIX) -> Optional[str]:
    """Inverse of interface_name_for; None when the name does not follow the convention."""
    if not prefix or not type_name.startswith(prefix):
        return None
    rest = type_name[len(prefix):]
    if not rest or not rest[0].isupper():
        return None
    return rest


def normalize_type_name(type_name: str) -> str:
    """Reduce a declared C# type to the bare identifier used as a node key.

    `global::Game.IPlayer?` -> `IPlayer`, `Repo<int>` -> `Repo`.
    """
    name = type_name.strip()
    if name.startswith("global::"):
        name = name[len("global::"):]
    name = name.rstrip("?").strip()
    name = _GENERIC_ARGS_RE.sub("", name)
    if "." in name:
        name = name.rsplit(".", 1)[1]
    return name.strip()


def type_name_candidates(type_name: str, prefix: str = INTERFACE_PREFIX) -> list[str]:
    """Node keys a property of `type_name` may refer to.

    `IFoo` yields `Foo` before `IFoo` so the concrete type wins over an
    interface that lives in its own file.
    """
    base = normalize_type_name(type_name)
    if not base:
        return []
    stripped = strip_interface_prefix(base, prefix)
    return [stripped, base] if stripped else [base]
