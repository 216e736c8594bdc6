import json

import pytest

from babelfont import codec
from babelfont.errors import FormatError
from babelfont.layer import AssociatedWithMaster, FreeFloating
from babelfont.shape import Component, NodeType, Path

from .testSupport import make_font


def test_nodes_to_string():
    path = Path(codec.nodes_from_string("0 0 l 10 0 o 20 10.5 o 20 20 cs"))
    assert [n.nodetype for n in path.nodes] == [
        NodeType.Line,
        NodeType.OffCurve,
        NodeType.OffCurve,
        NodeType.Curve,
    ]
    assert path.nodes[-1].smooth
    assert path.nodes[2].y == 10.5
    assert codec.nodes_to_string(path.nodes) == "0 0 l 10 0 o 20 10.5 o 20 20 cs"


def test_nodes_to_string_drops_integral_decimals():
    nodes = codec.nodes_from_string("1.0 2.0 m 3 4 q")
    assert codec.nodes_to_string(nodes) == "1 2 m 3 4 q"


@pytest.mark.parametrize(
    "string", ["0 0", "0 0 x", "a 0 l", "0 0 l 1"], ids=["short", "type", "x", "rest"]
)
def test_bad_node_string(string):
    with pytest.raises(FormatError):
        codec.nodes_from_string(string)


def test_round_trip(font):
    data = codec.dump(font)
    assert json.loads(json.dumps(data)) == data
    loaded = codec.load(data)
    assert codec.dump(loaded) == data
    assert loaded.glyphs.get("A").layers[0].paths[0].parent is (
        loaded.glyphs.get("A").layers[0]
    )


def test_dumps_is_idempotent(font):
    text = codec.dumps(font)
    assert codec.dumps(codec.loads(text)) == text


def test_document_layout(font):
    data = codec.dump(font)
    assert data["upm"] == 1000
    assert data["axes"][0]["tag"] == "wght"
    assert data["masters"][0]["kerning"] == [["A", "V", -50], ["@A", "@V", -30]]
    glyph = data["glyphs"][3]
    assert glyph["name"] == "Aacute"
    layer = glyph["layers"][0]
    assert layer["master"] == {"DefaultForMaster": "m01"}
    assert layer["shapes"][1]["reference"] == "acutecomb"
    assert layer["shapes"][1]["transform"]["translation"] == [150, 700]
    assert "nodes" in data["glyphs"][0]["layers"][0]["shapes"][0]
    # Parent links are not serialized.
    assert "parent" not in json.dumps(data)


def test_layer_types():
    font = make_font()
    glyph = font.glyphs.get("A")
    glyph.layers[0].master = AssociatedWithMaster("m01")
    glyph.layers[1].master = FreeFloating()
    glyph.layers[1].location = {"wght": 550}
    data = codec.dump(font)
    layers = data["glyphs"][0]["layers"]
    assert layers[0]["master"] == {"AssociatedWithMaster": "m01"}
    assert layers[1]["master"] == "FreeFloating"
    loaded = codec.load(data).glyphs.get("A")
    assert loaded.layers[0].master == AssociatedWithMaster("m01")
    assert loaded.layers[1].master == FreeFloating()
    assert loaded.layers[1].location == {"wght": 550}


def test_kerning_mapping_is_accepted(font):
    data = codec.dump(font)
    data["masters"][0]["kerning"] = {"A:V": -10}
    loaded = codec.load(data)
    assert loaded.masters[0].kerning == {("A", "V"): -10}


def test_shape_discrimination(font):
    data = codec.dump(font)
    layer = codec.load(data).glyphs.get("Aacute").layers[0]
    assert all(isinstance(shape, Component) for shape in layer.shapes)
    data["glyphs"][0]["layers"][0]["shapes"].append({"closed": True})
    with pytest.raises(FormatError, match="neither nodes nor a reference"):
        codec.load(data)


def test_format_specific_plist_values(font):
    import datetime

    font.masters[0].format_specific["ufo"] = {
        "lib": {
            "created": datetime.datetime(2020, 1, 2, 3, 4, 5),
            "blob": b"\x00\x01",
        }
    }
    data = json.loads(codec.dumps(font))
    lib = data["masters"][0]["format_specific"]["ufo"]["lib"]
    assert lib == {"created": "2020-01-02T03:04:05", "blob": "AAE="}


@pytest.mark.parametrize(
    "text, message",
    [
        ("[]", "must be a JSON object"),
        ("{", "Not a JSON document"),
        ('{"masters": [{"name": {}}]}', "Malformed babelfont document"),
        ('{"names": {"nickname": {"dflt": "x"}}}', "Unknown name fields"),
    ],
)
def test_malformed_documents(text, message):
    with pytest.raises(FormatError, match=message):
        codec.loads(text)
