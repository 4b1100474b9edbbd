import pytest

from puml_gen.naming import (
    class_name_from_path,
    interface_name_for,
    normalize_type_name,
    strip_interface_prefix,
    to_pascal_case,
    type_name_candidates,
)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("res://World/World.cs", "World"),
        ("res://ui/main_menu.gd", "MainMenu"),
        ("res://player/player.tscn", "Player"),
        ("res://enemies/big-slime.generated.tscn", "BigSlime"),
        ("Camera.tscn", "Camera"),
    ],
)
def test_class_name_from_path(path, expected):
    assert class_name_from_path(path) == expected


def test_to_pascal_case_keeps_inner_capitals():
    assert to_pascal_case("WorldUI") == "WorldUI"
    assert to_pascal_case("hud_v2") == "HudV2"


def test_interface_convention_round_trip():
    assert interface_name_for("Player") == "IPlayer"
    assert strip_interface_prefix("IPlayer") == "Player"
    # not the convention: lowercase after the prefix, or the prefix alone
    assert strip_interface_prefix("Inventory") is None
    assert strip_interface_prefix("I") is None
    assert interface_name_for("Player", prefix="Abstract") == "AbstractPlayer"


@pytest.mark.parametrize(
    "declared, expected",
    [
        ("IPlayer?", "IPlayer"),
        ("global::Sample.Game.IPlayer", "IPlayer"),
        ("Repo<int>", "Repo"),
        ("  Camera  ", "Camera"),
    ],
)
def test_normalize_type_name(declared, expected):
    assert normalize_type_name(declared) == expected


def test_type_name_candidates_prefer_the_concrete_type():
    assert type_name_candidates("IWeapon?") == ["Weapon", "IWeapon"]
    assert type_name_candidates("Weapon") == ["Weapon"]
    assert type_name_candidates("") == []
