from pathlib import Path

import pytest

from puml_gen.diagnostics import DiagnosticSink, SceneParseError
from puml_gen.tscn import Call, ResourceRef, parse_sections, read_scene


WORLD_TSCN = (
    Path(__file__).resolve().parents[1] / "fixtures" / "sample_project" / "World" / "World.tscn"
).read_text(encoding="utf-8")


def test_world_scene_root_and_script():
    scene = read_scene(WORLD_TSCN, "World/World.tscn")

    assert scene.root is not None
    assert scene.root.name == "World"
    # the script's class name wins over the literal node type
    assert scene.root.type == "World"
    assert scene.script is not None
    assert scene.script.class_name == "World"
    assert scene.script.path == "res://World/World.cs"
    assert scene.diagnostics == []


def test_instanced_children_resolve_to_scene_class_names():
    scene = read_scene(WORLD_TSCN, "World/World.tscn")

    children = [(c.name, c.type) for c in scene.root.children]
    assert children == [
        ("WorldEnvironment", "WorldEnvironment"),
        ("Camera", "Camera"),
        ("Player", "Player"),
        ("WorldUI", "WorldUI"),
    ]
    assert set(scene.ext_resources) == {"2_kpuu5", "3_361h0", "6_sm85h"}
    assert scene.ext_resources["6_sm85h"].uid == "uid://sy4j1aiba33y"
    assert set(scene.scripts) == {"1_1kawg"}


def test_all_children_is_depth_first_and_restartable():
    text = """
[gd_scene format=3]

[node name="Root" type="Node3D"]

[node name="Body" type="Node3D" parent="."]

[node name="Mesh" type="MeshInstance3D" parent="Body"]

[node name="Arm" type="Node3D" parent="Body/Mesh"]

[node name="Hud" type="Control" parent="."]
"""
    root = read_scene(text).root

    first = [c.full_name for c in root.all_children()]
    second = [c.full_name for c in root.all_children()]
    assert first == ["Body", "Body/Mesh", "Body/Mesh/Arm", "Hud"]
    assert first == second
    assert root.select_child("Body/Mesh/Arm").type == "Node3D"
    assert root.select_child("Body/Missing") is None
    assert root.find_by_type("Control").name == "Hud"


def test_parent_lookup_walks_back_up_from_the_last_node():
    text = """
[node name="Root" type="Node"]

[node name="A" type="Node" parent="."]

[node name="B" type="Node" parent="A"]

[node name="C" type="Node" parent="A/B"]

[node name="D" type="Node" parent="A"]
"""
    root = read_scene(text).root
    a = root.select_child("A")
    assert [c.name for c in a.children] == ["B", "D"]
    assert root.select_child("A/B/C") is not None


def test_unresolved_parent_is_a_warning_and_node_is_dropped():
    text = """
[node name="Root" type="Node"]

[node name="Orphan" type="Node" parent="Nowhere"]

[node name="Kept" type="Node" parent="."]
"""
    sink = DiagnosticSink()
    scene = read_scene(text, "orphan.tscn", sink)

    assert [c.name for c in scene.root.children] == ["Kept"]
    assert sink.codes() == ["W_TSCN_PARENT_NOT_FOUND"]
    assert scene.diagnostics[0].path == "orphan.tscn:4"
    assert "Nowhere" in scene.diagnostics[0].message


def test_groups_and_multiline_values():
    text = """
[sub_resource type="Animation" id="Animation_1"]
tracks/0/keys = {
"times": PackedFloat32Array(0, 1),
"values": [Vector3(0, 0, 0), Vector3(0, 1, 0)]
}
length = -inf

[node name="Root" type="Node" groups=["persist", "actors"]]
"""
    sections = parse_sections(text)
    keys = sections[0].properties["tracks/0/keys"]
    assert keys["times"] == Call("PackedFloat32Array", (0, 1))
    assert keys["values"][1] == Call("Vector3", (0, 1, 0))
    assert sections[0].properties["length"] == float("-inf")

    scene = read_scene(text)
    assert scene.root.groups == {"persist", "actors"}


def test_values_and_comments():
    text = """; saved by the editor
[node name="Root" type="Node"]
visible = false
text = "say \\"hi\\""
path = NodePath("A/B")
name_ref = &"jump"
script = ExtResource("1_missing")
metadata/items = Array[int]([1, 2])
"""
    props = parse_sections(text)[0].properties
    assert props["visible"] is False
    assert props["text"] == 'say "hi"'
    assert props["path"] == Call("NodePath", ("A/B",))
    assert props["name_ref"] == "jump"
    assert props["script"] == ResourceRef("ExtResource", "1_missing")
    assert props["metadata/items"] == Call("Array", ([1, 2],))

    # an unknown script id falls back to the literal type
    assert read_scene(text).root.type == "Node"


def test_node_without_resolvable_type_is_skipped():
    text = """
[node name="Root" type="Node"]

[node name="Ghost" parent="." instance=ExtResource("9_gone")]
"""
    assert read_scene(text).root.children == []


@pytest.mark.parametrize(
    "text, line",
    [
        # unterminated section header
        ('[node name="Broken" type="Node"', 1),
        # unterminated string
        ('[node name="Root" type="Node"]\ntext = "open\n', 2),
        # unbalanced array
        ('[node name="Root" type="Node"]\nitems = [1, 2', 2),
        # property outside of a section
        ('visible = true\n[node name="Root" type="Node"]\n', 1),
        # not `key = value`
        ('[node name="Root" type="Node"]\njust some words\n', 2),
    ],
)
def test_malformed_text_raises_scene_parse_error(text, line):
    with pytest.raises(SceneParseError) as excinfo:
        read_scene(text, "bad.tscn")

    err = excinfo.value
    assert err.message
    assert err.line == line
    assert str(err).startswith(f"bad.tscn:{line}:")


def test_embedded_objects_and_typed_containers():
    text = """[gd_scene load_steps=3 format=3]

[ext_resource type="Texture2D" path="res://icon.png" id="2_icon"]

[sub_resource type="InputEventKey" id="InputEventKey_1"]
keycode = 4194305

[sub_resource type="Shortcut" id="Shortcut_1"]
events = [Object(InputEventKey,"resource_local_to_scene":false,"resource_name":"","device":-1,"keycode":4194305,"unicode":0,"echo":false,"script":null)
]

[node name="Menu" type="Control"]
metadata/scores = Dictionary[String, int]({
"a": 1,
"b": 2
})
metadata/icons = Array[ExtResource("2_icon")]([ExtResource("2_icon")])

[node name="Quit" type="Button" parent="."]
shortcut = SubResource("Shortcut_1")
"""
    sections = parse_sections(text)
    event = sections[2].properties["events"][0]
    assert event.name == "Object"
    assert event.args[0] == "InputEventKey"
    assert event.args[1]["device"] == -1
    assert event.args[1]["script"] is None

    menu = sections[3].properties
    assert menu["metadata/scores"] == Call("Dictionary", ({"a": 1, "b": 2},))
    assert menu["metadata/icons"] == Call("Array", ([ResourceRef("ExtResource", "2_icon")],))

    scene = read_scene(text, "Menu.tscn")
    assert [c.name for c in scene.root.children] == ["Quit"]
