from pathlib import Path

from puml_gen.declarations import load_declarations, scan_declarations
from puml_gen.diagnostics import DiagnosticSink


GAME_CS = """namespace Sample;

using Godot;

[ClassDiagram(UseVSCodePaths = true)]
[Meta(typeof(IAutoNode))]
public partial class Game : Node, IProvide<IGameRepo>
{
	#region Provisions

	IGameRepo IProvide<IGameRepo>.Value() => GameRepo;

	#endregion

	public IGameRepo GameRepo { get; set; } = null!;
	public LogicBlock<GameLogic.State>.IBinding AppBinding { get; set; } = null!;
	[Dependency] public IPlayer Player => this.DependOn<IPlayer>();
	private int _counter = 0;
	private Action _callback = () => { Log("}"); };

	public override void _Notification(int what) => this.Notify(what);

	public void Setup()
	{
		// class NotAType {
		var text = "{ not a block";
		GameRepo = new GameRepo();
	}

	public Game(int seed) { }

	private class Nested
	{
		public int Depth { get; set; }
	}
}
"""


def _by_name(decls):
    return {d.name: d for d in decls}


def test_type_declarations_and_attributes():
    decls = _by_name(scan_declarations(GAME_CS, "Game.cs"))
    assert set(decls) == {"Game", "Nested"}

    game = decls["Game"]
    assert game.kind == "class"
    # the declaration starts at its first attribute list
    assert game.line == 5
    assert game.base_types == ("Node", "IProvide<IGameRepo>")
    assert [a.name for a in game.attributes] == ["ClassDiagram", "Meta"]
    assert game.attribute("ClassDiagram").arguments == {"UseVSCodePaths": "true"}

    options = game.diagram_options()
    assert options is not None
    assert options.use_absolute_ide_links is True


def test_members_with_lines():
    game = _by_name(scan_declarations(GAME_CS, "Game.cs"))["Game"]

    props = {p.name: p for p in game.properties()}
    assert set(props) == {"GameRepo", "AppBinding", "Player"}
    assert props["GameRepo"].line == 15
    assert props["GameRepo"].type_name == "IGameRepo"
    assert props["AppBinding"].type_name == "LogicBlock<GameLogic.State>.IBinding"
    assert props["Player"].has_attribute(["Dependency"])
    assert not props["GameRepo"].has_attribute(["Dependency"])

    methods = [m.name for m in game.methods()]
    assert methods == ["Value", "_Notification", "Setup"]
    assert game.member("Setup").line == 23


def test_nested_type_members_stay_with_the_nested_type():
    decls = _by_name(scan_declarations(GAME_CS, "Game.cs"))
    assert [p.name for p in decls["Nested"].properties()] == ["Depth"]
    assert decls["Game"].member("Depth") is None


def test_interface_and_record_declarations():
    source = """
public interface IFoo
{
	int Count { get; }
	void Bar();
}

public record Point(int X, [property: Dependency] IFoo Source);

public sealed record class Pair<T>(T Left, T Right) : Base(Left)
{
	public T Max() => Left;
}
"""
    decls = _by_name(scan_declarations(source, "Shapes.cs"))

    foo = decls["IFoo"]
    assert foo.is_interface
    assert [p.name for p in foo.properties()] == ["Count"]
    assert [m.name for m in foo.methods()] == ["Bar"]
    assert foo.diagram_options() is None

    point = decls["Point"]
    assert point.kind == "record"
    assert [(p.name, p.type_name) for p in point.properties()] == [("X", "int"), ("Source", "IFoo")]
    assert point.member("Source").has_attribute(["Dependency"])
    assert point.member("X").line == 8

    pair = decls["Pair"]
    assert [p.name for p in pair.properties()] == ["Left", "Right"]
    assert [m.name for m in pair.methods()] == ["Max"]


def test_diagram_options_default_to_relative_links():
    source = "[ClassDiagram]\npublic class Plain { }\n"
    plain = scan_declarations(source, "Plain.cs")[0]
    assert plain.diagram_options().use_absolute_ide_links is False


def test_comments_and_strings_do_not_confuse_the_scan():
    source = """public class Noisy
{
    // public int Commented { get; set; }
    /* class Hidden { } */
    public string Label { get; set; } = "class Fake { int X { get; } }";
    public char Brace { get; set; } = '{';
}
"""
    decls = scan_declarations(source, "Noisy.cs")

    assert [d.name for d in decls] == ["Noisy"]
    assert [p.name for p in decls[0].properties()] == ["Label", "Brace"]


def test_member_lines_start_at_their_attributes():
    source = """public class Hud
{
    [Export]
    public int Score { get; set; }

    [Signal]
    public delegate void ChangedEventHandler();

    public void Refresh() { }
}
"""
    hud = scan_declarations(source, "Hud.cs")[0]

    assert hud.member("Score").line == 3
    assert hud.member("Score").has_attribute(["Export"])
    assert hud.member("Refresh").line == 9
    assert [m.name for m in hud.methods()] == ["Refresh"]


def test_tuple_and_nullable_property_types():
    source = "public class Grid { public (int X, int Y) Size { get; set; } public Cell? Focus { get; set; } }"
    grid = scan_declarations(source, "Grid.cs")[0]

    assert [(p.name, p.type_name) for p in grid.properties()] == [
        ("Size", "(int X, int Y)"),
        ("Focus", "Cell?"),
    ]


def test_unreadable_source_is_reported(tmp_path: Path):
    good = tmp_path / "Good.cs"
    good.write_text("public class Good { }\n", encoding="utf-8")
    bad = tmp_path / "Bad.cs"
    bad.write_bytes(b"\xff\xfe\x00broken \xc3\x28")

    sink = DiagnosticSink()
    decls = load_declarations([good, bad, tmp_path / "Missing.cs"], sink)

    assert [d.name for d in decls] == ["Good"]
    assert sink.codes() == ["W_SOURCE_UNREADABLE", "W_SOURCE_UNREADABLE"]
