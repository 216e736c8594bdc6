import logging

import pytest

from babelfont.axis import Axis
from babelfont.common import Guide, Position
from babelfont.errors import (
    CyclicIncludeError,
    FilterError,
    IncludeNotFoundError,
    MissingReferenceError,
)
from babelfont.filters import BaseFilter, applyFilters, loadFilterFromString
from babelfont.filters.decomposeComponents import DecomposeComponentsFilter
from babelfont.filters.decomposeSmartComponents import DecomposeSmartComponentsFilter
from babelfont.filters.dropAxis import DropAxisFilter
from babelfont.filters.dropFeatures import DropFeaturesFilter
from babelfont.filters.dropGuides import DropGuidesFilter
from babelfont.filters.dropIncompatiblePaths import DropIncompatiblePathsFilter
from babelfont.filters.dropInstances import DropInstancesFilter
from babelfont.filters.dropKerning import DropKerningFilter
from babelfont.filters.dropSparseMasters import DropSparseMastersFilter
from babelfont.filters.dropVariations import DropVariationsFilter
from babelfont.filters.resolveIncludes import ResolveIncludesFilter
from babelfont.filters.retainGlyphs import RetainGlyphsFilter
from babelfont.filters.scaleUpem import ScaleUpemFilter
from babelfont.glyph import Glyph
from babelfont.layer import AssociatedWithMaster, Layer
from babelfont.master import Master
from babelfont.shape import Component, DecomposedAffine

from .testSupport import master_layer, square


def coordinates(path):
    return sorted((node.x, node.y) for node in path.nodes)


class TestLoadFilterFromString:
    def test_name_only(self):
        filter_ = loadFilterFromString("dropKerning")
        assert isinstance(filter_, DropKerningFilter)

    def test_arguments(self):
        filter_ = loadFilterFromString("dropAxis('wght', prune=True)")
        assert isinstance(filter_, DropAxisFilter)
        assert filter_.axis == "wght"
        assert filter_.prune is True
        assert repr(filter_) == "DropAxisFilter(axis='wght', prune=True)"

    def test_list_argument(self):
        filter_ = loadFilterFromString("retainGlyphs(['A', 'V'])")
        assert filter_.glyphs == ["A", "V"]

    @pytest.mark.parametrize(
        "text, message",
        [
            ("dropAxis('wght'", "Malformed filter specification"),
            ("noSuchThing", "Unknown filter 'noSuchThing'"),
            ("dropAxis(wght)", "incorrect format"),
            ("dropAxis()", "Bad arguments for filter 'dropAxis'"),
            ("dropKerning(bogus=1)", "Bad arguments"),
            ("scaleUpem(0)", "Bad arguments"),
        ],
    )
    def test_errors(self, text, message):
        with pytest.raises(FilterError, match=message):
            loadFilterFromString(text)


class TestBaseFilter:
    def test_failure_leaves_font_untouched(self, font):
        class BoomFilter(BaseFilter):
            def filter(self, font):
                font.glyphs = []
                raise RuntimeError("boom")

        with pytest.raises(FilterError, match="BoomFilter failed") as excinfo:
            BoomFilter()(font)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert font.glyphs.names() == ["A", "V", "acutecomb", "Aacute"]

    def test_result_is_validated(self, font):
        class BreakLocationsFilter(BaseFilter):
            def filter(self, font):
                font.masters[1].location = {}

        with pytest.raises(FilterError, match="left the font inconsistent"):
            BreakLocationsFilter()(font)
        assert font.masters[1].location == {"wght": 700}

    def test_apply_filters_in_order(self, font):
        applyFilters(
            font, [RetainGlyphsFilter(["A", "V"]), RetainGlyphsFilter(["A"])]
        )
        assert font.glyphs.names() == ["A"]


class TestRetainGlyphs:
    def test_decomposes_dropped_references(self, font):
        RetainGlyphsFilter(["Aacute"])(font)
        assert font.glyphs.names() == ["Aacute"]
        layer = font.glyphs.get("Aacute").master_layer("m01")
        assert layer.components == []
        assert len(layer.paths) == 2
        assert coordinates(layer.paths[1]) == [
            (150, 700),
            (150, 750),
            (200, 700),
            (200, 750),
        ]

    def test_keeps_retained_references(self, font):
        RetainGlyphsFilter("Aacute,acutecomb")(font)
        layer = font.glyphs.get("Aacute").master_layer("m02")
        assert [c.reference for c in layer.components] == ["acutecomb"]
        assert coordinates(layer.paths[0])[0] == (100, 0)

    def test_prunes_kerning(self, font):
        RetainGlyphsFilter(["A", "Aacute"])(font)
        assert font.first_kern_groups == {"A": ["A", "Aacute"]}
        assert font.second_kern_groups == {}
        assert font.masters[0].kerning == {}

    def test_prunes_group_members(self, font):
        RetainGlyphsFilter(["Aacute", "V"])(font)
        assert font.first_kern_groups == {"A": ["Aacute"]}
        assert font.masters[0].kerning == {("@A", "@V"): -30}

    def test_missing_component_target(self, font):
        font.glyphs.get("A").master_layer("m01").shapes.append(Component("nope"))
        with pytest.raises(MissingReferenceError):
            RetainGlyphsFilter(["A"])(font)

    def test_warns_about_unknown_glyphs(self, font, caplog):
        with caplog.at_level(logging.WARNING):
            RetainGlyphsFilter(["A", "Z"])(font)
        assert "Glyphs to retain not in font: ['Z']" in caplog.text


class TestDecomposeComponents:
    def test_all(self, font):
        DecomposeComponentsFilter()(font)
        for master_id in ("m01", "m02"):
            layer = font.glyphs.get("Aacute").master_layer(master_id)
            assert layer.components == []
            assert len(layer.paths) == 2
        bold = font.glyphs.get("Aacute").master_layer("m02")
        assert coordinates(bold.paths[0]) == coordinates(
            font.glyphs.get("A").master_layer("m02").paths[0]
        )

    def test_only_some(self, font):
        DecomposeComponentsFilter(glyphs=["acutecomb"])(font)
        layer = font.glyphs.get("Aacute").master_layer("m01")
        assert [c.reference for c in layer.components] == ["A"]
        assert len(layer.paths) == 1

    def test_nested(self, font):
        font.glyphs.append(
            Glyph(
                name="Aacute.alt",
                layers=[
                    master_layer(
                        "m01",
                        600,
                        [Component("Aacute", DecomposedAffine(translation=(0, 10)))],
                    )
                ],
            )
        )
        DecomposeComponentsFilter()(font)
        layer = font.glyphs.get("Aacute.alt").master_layer("m01")
        assert len(layer.paths) == 2
        assert coordinates(layer.paths[1])[0] == (150, 710)


class TestDecomposeSmartComponents:
    @pytest.fixture
    def smart_font(self, font):
        font.glyphs.append(
            Glyph(
                name="_part.stem",
                exported=False,
                component_axes=[
                    Axis(name="Height", tag="Height", min=0, default=0, max=100)
                ],
                layers=[
                    master_layer("m01", 100, [square(0, 0, 100)]),
                    Layer(
                        width=100,
                        master=AssociatedWithMaster("m01"),
                        id="tall",
                        smart_component_location={"Height": 100},
                        shapes=[square(0, 0, 300)],
                    ),
                ],
            )
        )
        font.glyphs.append(
            Glyph(
                name="stem",
                layers=[
                    master_layer(
                        "m01",
                        300,
                        [
                            Component(
                                "_part.stem",
                                DecomposedAffine(translation=(10, 0)),
                                location={"Height": 50},
                            )
                        ],
                    ),
                    master_layer("m02", 300, [Component("_part.stem")]),
                ],
            )
        )
        return font

    def test_decompose(self, smart_font):
        DecomposeSmartComponentsFilter()(smart_font)
        glyph = smart_font.glyphs.get("stem")
        regular = glyph.master_layer("m01")
        assert regular.components == []
        assert coordinates(regular.paths[0]) == [
            (10, 0),
            (10, 200),
            (210, 0),
            (210, 200),
        ]
        # The smart glyph has no bold layers; the default master's are used.
        bold = glyph.master_layer("m02")
        assert coordinates(bold.paths[0]) == [(0, 0), (0, 100), (100, 0), (100, 100)]

    def test_plain_components_stay(self, smart_font):
        DecomposeSmartComponentsFilter()(smart_font)
        layer = smart_font.glyphs.get("Aacute").master_layer("m01")
        assert [c.reference for c in layer.components] == ["A", "acutecomb"]


class TestDropIncompatiblePaths:
    def test_compatible_font_is_unchanged(self, font):
        before = [len(g.layers[0].paths) for g in font.glyphs]
        DropIncompatiblePathsFilter()(font)
        assert [len(g.layers[0].paths) for g in font.glyphs] == before

    def test_incompatible_nodes(self, font):
        glyph = font.glyphs.get("A")
        glyph.master_layer("m02").paths[0].nodes.pop()
        glyph.master_layer("m01").shapes.append(square(400, 0, 10))
        glyph.master_layer("m02").shapes.append(square(400, 0, 20))
        DropIncompatiblePathsFilter()(font)
        for layer in glyph.layers:
            assert len(layer.paths) == 1
            assert coordinates(layer.paths[0])[0][0] == 400

    def test_incompatible_path_count(self, font):
        glyph = font.glyphs.get("V")
        glyph.master_layer("m01").shapes.append(square(400, 0, 10))
        DropIncompatiblePathsFilter()(font)
        assert all(layer.paths == [] for layer in glyph.layers)

    @pytest.mark.parametrize("extra_paths", [0, 1])
    def test_background_is_left_alone(self, font, extra_paths):
        glyph = font.glyphs.get("A")
        glyph.master_layer("m02").paths[0].nodes.pop()
        glyph.master_layer("m01").shapes.extend(
            square(400, 0, 10) for _ in range(extra_paths)
        )
        background = Layer(
            master=AssociatedWithMaster("m01"),
            id="bg",
            is_background=True,
            shapes=[square(0, 0, 10), square(50, 50, 10)],
        )
        glyph.layers.append(background)
        DropIncompatiblePathsFilter()(font)
        assert glyph.master_layer("m02").paths == []
        assert len(glyph.layer("bg").paths) == 2


class TestDropAxis:
    def test_drop(self, font, caplog):
        with caplog.at_level(logging.WARNING):
            duplicates = DropAxisFilter("wght")(font)
        assert duplicates == [["m01", "m02"]]
        assert "Masters m01, m02 share a location" in caplog.text
        assert font.axes == []
        assert [m.location for m in font.masters] == [{}, {}]
        assert [i.location for i in font.instances] == [{}, {}]

    def test_unknown_axis(self, font, caplog):
        with caplog.at_level(logging.WARNING):
            assert DropAxisFilter("wdth")(font) == []
        assert "Axis wdth not found" in caplog.text
        assert len(font.axes) == 1

    def test_prune(self, font):
        font.glyphs.get("V").layers.append(
            Layer(master=AssociatedWithMaster("m01"), id="b", location={"wght": 550})
        )
        assert DropAxisFilter("wght", prune=True)(font) == []
        assert [m.id for m in font.masters] == ["m01"]
        for glyph in font.glyphs:
            assert [layer.id for layer in glyph.layers] == ["m01"]


class TestDropSparseMasters:
    def test_sparse_master_becomes_layer(self, font):
        font.masters.append(
            Master(
                name="Medium",
                id="m03",
                location={"wght": 550},
                kerning={("A", "V"): -60},
            )
        )
        font.glyphs.get("A").layers.append(master_layer("m03", 650))
        DropSparseMastersFilter()(font)
        assert [m.id for m in font.masters] == ["m01", "m02"]
        layer = font.glyphs.get("A").layer("m03")
        assert layer.master == AssociatedWithMaster("m01")
        assert layer.location == {"wght": 550}
        assert layer.name == "Medium"
        assert not layer.is_master_layer

    def test_no_sparse_masters(self, font):
        DropSparseMastersFilter()(font)
        assert len(font.masters) == 2


class TestDropVariations:
    def test_drop(self, font):
        font.glyphs.get("V").layers.append(
            Layer(master=AssociatedWithMaster("m01"), id="b", location={"wght": 550})
        )
        DropVariationsFilter()(font)
        assert font.axes == []
        assert font.instances == []
        assert [m.id for m in font.masters] == ["m01"]
        assert font.masters[0].location == {}
        for glyph in font.glyphs:
            assert [layer.id for layer in glyph.layers] == ["m01"]


class TestDropInstances:
    def test_all(self, font):
        DropInstancesFilter()(font)
        assert font.instances == []

    def test_by_name_or_id(self, font):
        DropInstancesFilter(instances=["Semibold"])(font)
        assert [i.id for i in font.instances] == ["i01"]
        DropInstancesFilter(instances=["i01"])(font)
        assert font.instances == []


class TestDropKerning:
    def test_groups_used_in_features_stay(self, font):
        font.features.features.append(("kern", "pos @A V -10;"))
        DropKerningFilter()(font)
        assert all(master.kerning == {} for master in font.masters)
        assert font.first_kern_groups == {"A": ["A", "Aacute"]}
        assert font.second_kern_groups == {}


def test_drop_guides(font):
    font.masters[0].guides.append(Guide(Position(0, 500)))
    font.glyphs.get("A").layers[0].guides.append(Guide(Position(10, 0, 90)))
    DropGuidesFilter()(font)
    assert font.masters[0].guides == []
    assert font.glyphs.get("A").layers[0].guides == []


def test_drop_features(font):
    font.features.classes["upper"] = "A V"
    font.features.features.append(("liga", "sub A V by Aacute;"))
    DropFeaturesFilter()(font)
    assert not font.features


class TestResolveIncludes:
    def test_resolve(self, font, tmp_path):
        (tmp_path / "kern.fea").write_text("include(sub/marks.fea);\npos A V -10;")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "marks.fea").write_text("include(more.fea)")
        (tmp_path / "sub" / "more.fea").write_text("# marks")
        font.features.features.append(("kern", "include(kern.fea);"))
        ResolveIncludesFilter(base_path=str(tmp_path))(font)
        assert font.features.features == [("kern", "# marks\npos A V -10;")]

    def test_uses_source_directory(self, font, tmp_path):
        (tmp_path / "prefix.fea").write_text("languagesystem DFLT dflt;")
        font.source = str(tmp_path / "Test.babelfont")
        font.features.prefixes["anonymous"] = "include(prefix.fea);"
        ResolveIncludesFilter()(font)
        assert font.features.prefixes["anonymous"] == "languagesystem DFLT dflt;"

    def test_no_base_path(self, font):
        with pytest.raises(FilterError, match="No base path"):
            ResolveIncludesFilter()(font)

    def test_cycle(self, font, tmp_path):
        (tmp_path / "a.fea").write_text("include(b.fea);")
        (tmp_path / "b.fea").write_text("include(a.fea);")
        font.features.features.append(("liga", "include(a.fea);"))
        with pytest.raises(CyclicIncludeError, match="a.fea -> b.fea -> a.fea"):
            ResolveIncludesFilter(base_path=str(tmp_path))(font)
        assert font.features.features == [("liga", "include(a.fea);")]

    def test_not_found(self, font, tmp_path):
        font.features.features.append(("liga", "include(missing.fea);"))
        with pytest.raises(IncludeNotFoundError, match="missing.fea"):
            ResolveIncludesFilter(base_path=str(tmp_path))(font)


class TestScaleUpem:
    def test_scale(self, font):
        font.masters[0].metrics["italicAngle"] = -10
        ScaleUpemFilter(2000)(font)
        assert font.upm == 2000
        master = font.masters[0]
        assert master.metrics["ascender"] == 1600
        assert master.metrics["italicAngle"] == -10
        assert master.kerning[("A", "V")] == -100
        layer = font.glyphs.get("A").master_layer("m01")
        assert layer.width == 1200
        assert coordinates(layer.paths[0])[0] == (200, 0)
        assert (layer.anchors[0].x, layer.anchors[0].y) == (400, 1400)
        accent = font.glyphs.get("Aacute").master_layer("m01").components[1]
        assert accent.transform.translation == (300, 1400)

    def test_vertical_advances(self, font):
        font.glyphs.get("A").master_layer("m01").format_specific["ufo"] = {
            "height": 1000,
            "note": "tall",
        }
        font.glyphs.get("V").master_layer("m01").format_specific["fontra"] = {
            "yAdvance": 900
        }
        ScaleUpemFilter(2000)(font)
        stash = font.glyphs.get("A").master_layer("m01").format_specific["ufo"]
        assert stash == {"height": 2000, "note": "tall"}
        layer = font.glyphs.get("V").master_layer("m01")
        assert layer.format_specific["fontra"]["yAdvance"] == 1800
        assert font.glyphs.get("V").master_layer("m02").format_specific == {}

    def test_same_upem(self, font):
        ScaleUpemFilter(1000)(font)
        assert font.glyphs.get("A").master_layer("m01").width == 600

    def test_invalid(self):
        with pytest.raises(ValueError):
            ScaleUpemFilter(-1)
