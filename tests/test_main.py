import pytest

import babelfont
from babelfont.__main__ import main
from babelfont.codec import dumps

from .testSupport import make_font


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "Test.babelfont"
    path.write_text(dumps(make_font()), encoding="utf-8")
    return path


def test_convert(source, tmp_path):
    main([str(source), str(tmp_path / "out" / "Test.designspace")])
    assert {p.name for p in (tmp_path / "out").iterdir()} == {
        "Test.designspace",
        "TestSans-Regular.ufo",
        "TestSans-Bold.ufo",
    }


def test_shortcut_filters(source, tmp_path):
    output = tmp_path / "out.babelfont"
    main(
        [
            str(source),
            str(output),
            "--retain-glyphs",
            "A,Aacute",
            "--drop-axis",
            "wght",
            "--drop-kerning",
            "--scale-upem",
            "2000",
        ]
    )
    font = babelfont.load(output)
    assert font.glyphs.names() == ["A", "Aacute"]
    assert font.axes == []
    assert font.upm == 2000
    assert all(master.kerning == {} for master in font.masters)
    layer = font.glyphs.get("Aacute").master_layer("m01")
    assert [c.reference for c in layer.components] == ["A"]
    assert len(layer.paths) == 1
    assert layer.width == 1200


def test_decompose_components_flag(source, tmp_path):
    output = tmp_path / "out.babelfont"
    main([str(source), str(output), "--decompose-components", "acutecomb"])
    layer = babelfont.load(output).glyphs.get("Aacute").master_layer("m02")
    assert [c.reference for c in layer.components] == ["A"]

    main([str(source), str(output), "--decompose-components"])
    layer = babelfont.load(output).glyphs.get("Aacute").master_layer("m02")
    assert layer.components == []
    assert len(layer.paths) == 2


def test_filter_option(source, tmp_path):
    output = tmp_path / "out.babelfont"
    main(
        [
            str(source),
            str(output),
            "--drop-guides",
            "--filter",
            "dropInstances(instances=['Semibold'])",
        ]
    )
    assert [i.id for i in babelfont.load(output).instances] == ["i01"]


def test_filter_none(source, tmp_path):
    output = tmp_path / "out.babelfont"
    main([str(source), str(output), "--drop-kerning", "--filter", "None"])
    assert babelfont.load(output).masters[0].kerning == {
        ("A", "V"): -50,
        ("@A", "@V"): -30,
    }


@pytest.mark.parametrize(
    "extra_args, message",
    [
        (["--filter", "noSuchFilter"], "Failed to load --filter"),
        (["--filter", "dropAxis()"], "Bad arguments for filter 'dropAxis'"),
        (["--scale-upem", "many"], "Failed to set up scaleUpem"),
    ],
)
def test_bad_filter(source, tmp_path, capsys, extra_args, message):
    with pytest.raises(SystemExit) as excinfo:
        main([str(source), str(tmp_path / "out.babelfont")] + extra_args)
    assert excinfo.value.code == 2
    assert message in capsys.readouterr().err


def test_unknown_formats(source, tmp_path, capsys):
    with pytest.raises(SystemExit):
        main([str(source), str(tmp_path / "out.otf")])
    assert "Don't know how to write" in capsys.readouterr().err
    with pytest.raises(SystemExit):
        main([str(tmp_path / "Test.otf"), str(tmp_path / "out.babelfont")])
    assert "Don't know how to read" in capsys.readouterr().err


def test_error_message(tmp_path):
    font = make_font()
    font.features.features.append(("liga", "include(missing.fea);"))
    source = tmp_path / "Test.babelfont"
    source.write_text(dumps(font), encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        main([str(source), str(tmp_path / "out.babelfont"), "--resolve-includes"])
    message = str(excinfo.value.code)
    assert message.startswith("babelfont: Error: ")
    assert "Included feature file 'missing.fea' not found" in message
    assert not (tmp_path / "out.babelfont").exists()


def test_strict(source, tmp_path):
    output = tmp_path / "Test.fontra"
    main([str(source), str(output)])
    assert output.is_dir()

    with pytest.raises(SystemExit, match="Kerning groups are not saved"):
        main([str(source), str(tmp_path / "Strict.fontra"), "--strict"])

    main(
        [
            str(source),
            str(tmp_path / "Strict.fontra"),
            "--strict",
            "--drop-kerning",
            "--drop-instances",
        ]
    )
    assert (tmp_path / "Strict.fontra").is_dir()


def test_traceback_in_debug_mode(tmp_path, caplog):
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                str(tmp_path / "Missing.babelfont"),
                str(tmp_path / "out.babelfont"),
                "--verbose",
                "DEBUG",
            ]
        )
    assert excinfo.value.code == 1
    assert "No such file or directory" in caplog.text


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == babelfont.__version__
