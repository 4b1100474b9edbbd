# puml_gen/constants.py
from __future__ import annotations

SCENE_EXTENSIONS: tuple[str, ...] = (".tscn",)
SOURCE_EXTENSIONS: tuple[str, ...] = (".cs",)

# Directories never scanned for inputs (Godot import cache, build output).
EXCLUDE_DIRS: tuple[str, ...] = (
    ".godot",
    ".import",
    "bin",
    "obj",
    "addons",
)

CONFIG_FILENAME = "puml_gen.yaml"

OUTPUT_SUFFIX = ".g.puml"
DOCUMENT_START = "@startuml"
DOCUMENT_END = "@enduml"

# Godot resource paths are rooted at the project directory.
RESOURCE_SCHEME = "res://"

DIAGRAM_ATTRIBUTE = "ClassDiagram"
ABSOLUTE_LINKS_OPTION = "UseVSCodePaths"
IDE_PROTOCOL = "vscode://file/"
SKIP_ATTRIBUTES: tuple[str, ...] = ("Dependency",)
INTERFACE_PREFIX = "I"

ROOTS_ALL = "all"
ROOTS_OPTED_IN = "opted_in"
ROOTS_MODES: tuple[str, ...] = (ROOTS_ALL, ROOTS_OPTED_IN)

# PlantUML spot marking a class block that is backed by a scene file only.
SCENE_SPOT = "<< (S,black) >>"
