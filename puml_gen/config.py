from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

from .constants import (
    ABSOLUTE_LINKS_OPTION,
    CONFIG_FILENAME,
    DIAGRAM_ATTRIBUTE,
    EXCLUDE_DIRS,
    IDE_PROTOCOL,
    INTERFACE_PREFIX,
    OUTPUT_SUFFIX,
    ROOTS_ALL,
    ROOTS_MODES,
    SCENE_EXTENSIONS,
    SKIP_ATTRIBUTES,
    SOURCE_EXTENSIONS,
)
from .io import load_yaml_mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings for one generation pass.

    Every field can be set from `puml_gen.yaml` at the project root; keys are
    the field names.
    """

    # Input discovery
    scene_extensions: tuple[str, ...] = SCENE_EXTENSIONS
    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    exclude_dirs: tuple[str, ...] = EXCLUDE_DIRS

    # Output assembly
    output_suffix: str = OUTPUT_SUFFIX
    roots: str = ROOTS_ALL
    clean_on_failure: bool = True

    # Declaration conventions
    skip_attributes: tuple[str, ...] = SKIP_ATTRIBUTES
    diagram_attribute: str = DIAGRAM_ATTRIBUTE
    absolute_links_option: str = ABSOLUTE_LINKS_OPTION
    ide_protocol: str = IDE_PROTOCOL
    interface_prefix: str = INTERFACE_PREFIX

    # Diagnostic rule controls
    ignore: frozenset[str] = frozenset()
    escalate: frozenset[str] = frozenset()


_TUPLE_FIELDS = {"scene_extensions", "source_extensions", "exclude_dirs", "skip_attributes"}
_SET_FIELDS = {"ignore", "escalate"}
_BOOL_FIELDS = {"clean_on_failure"}


def _require_str_list(value: Any, *, key: str, src: Path) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise TypeError(f"{src}: `{key}` must be a string or a list of strings")
    return value


def config_from_mapping(data: dict[str, Any], *, src: Path) -> GeneratorConfig:
    known = {f.name for f in fields(GeneratorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"{src}: unknown configuration key(s): {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _TUPLE_FIELDS:
            kwargs[key] = tuple(_require_str_list(value, key=key, src=src))
        elif key in _SET_FIELDS:
            kwargs[key] = frozenset(_require_str_list(value, key=key, src=src))
        elif key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise TypeError(f"{src}: `{key}` must be true or false")
            kwargs[key] = value
        else:
            if not isinstance(value, str):
                raise TypeError(f"{src}: `{key}` must be a string")
            kwargs[key] = value

    roots = kwargs.get("roots", ROOTS_ALL)
    if roots not in ROOTS_MODES:
        raise ValueError(f"{src}: `roots` must be one of {', '.join(ROOTS_MODES)}, got {roots!r}")

    return GeneratorConfig(**kwargs)


def load_config(project_dir: Path, path: Optional[Path] = None) -> GeneratorConfig:
    """Load the pass configuration.

    An explicit `path` must exist. Without one, `<project_dir>/puml_gen.yaml`
    is used when present, else the defaults.
    """
    if path is None:
        candidate = project_dir / CONFIG_FILENAME
        if not candidate.is_file():
            return GeneratorConfig()
        path = candidate
    elif not path.exists():
        raise FileNotFoundError(str(path))

    logger.debug("loading configuration from %s", path)
    return config_from_mapping(load_yaml_mapping(path), src=path)
