"""UFO sources.

The conversion helpers here are shared with the DesignSpace convertor,
which reads and writes one UFO per master.
"""

import copy
import datetime
import logging
import uuid

import attr
import ufoLib2
from fontTools.misc.transform import Transform
from fontTools.ufoLib import fontInfoAttributesVersion3

from babelfont.common import Anchor, Color, Guide, I18NDictionary, Position
from babelfont.convertors import BaseConvertor, merge_shapes, shape_order
from babelfont.errors import FormatError
from babelfont.features import Features
from babelfont.font import Font
from babelfont.glyph import Glyph, GlyphCategory
from babelfont.layer import AssociatedWithMaster, DefaultForMaster, Layer
from babelfont.master import Master, MetricType
from babelfont.shape import Component, DecomposedAffine, Path

logger = logging.getLogger(__name__)

# Key of the format-specific data kept for UFO-derived entities.
UFO_KEY = "ufo"

KERN1_PREFIX = "public.kern1."
KERN2_PREFIX = "public.kern2."
GLYPH_ORDER_KEY = "public.glyphOrder"
POSTSCRIPT_NAMES_KEY = "public.postscriptNames"
CATEGORIES_KEY = "public.openTypeCategories"
SKIP_EXPORT_KEY = "public.skipExportGlyphs"
MARK_COLOR_KEY = "public.markColor"
SHAPE_ORDER_KEY = "com.github.babelfont.shapeOrder"
# Lib keys derived from the model, not stashed.
DERIVED_LIB_KEYS = (
    GLYPH_ORDER_KEY,
    POSTSCRIPT_NAMES_KEY,
    CATEGORIES_KEY,
    SKIP_EXPORT_KEY,
)

HEAD_CREATED_FORMAT = "%Y/%m/%d %H:%M:%S"

# fontinfo attribute -> Names field
INFO_NAMES = {
    "familyName": "family_name",
    "copyright": "copyright",
    "trademark": "trademark",
    "openTypeNameDesigner": "designer",
    "openTypeNameDesignerURL": "designer_url",
    "openTypeNameManufacturer": "manufacturer",
    "openTypeNameManufacturerURL": "manufacturer_url",
    "openTypeNameLicense": "license",
    "openTypeNameLicenseURL": "license_url",
    "openTypeNameDescription": "description",
    "openTypeNameVersion": "version",
    "openTypeNameUniqueID": "unique_id",
    "openTypeNameSampleText": "sample_text",
    "openTypeNamePreferredFamilyName": "typographic_family",
    "openTypeNamePreferredSubfamilyName": "typographic_subfamily",
    "openTypeNameCompatibleFullName": "compatible_full_name",
    "openTypeNameWWSFamilyName": "wws_family_name",
    "openTypeNameWWSSubfamilyName": "wws_subfamily_name",
    "postscriptFontName": "postscript_name",
    "postscriptFullName": "full_name",
}

# fontinfo attribute -> master metric
INFO_METRICS = {
    "ascender": MetricType.Ascender,
    "descender": MetricType.Descender,
    "xHeight": MetricType.XHeight,
    "capHeight": MetricType.CapHeight,
    "italicAngle": MetricType.ItalicAngle,
    "openTypeHheaAscender": MetricType.HheaAscender,
    "openTypeHheaDescender": MetricType.HheaDescender,
    "openTypeHheaLineGap": MetricType.HheaLineGap,
    "openTypeHheaCaretSlopeRise": MetricType.HheaCaretSlopeRise,
    "openTypeHheaCaretSlopeRun": MetricType.HheaCaretSlopeRun,
    "openTypeHheaCaretOffset": MetricType.HheaCaretOffset,
    "openTypeOS2WinAscent": MetricType.WinAscent,
    "openTypeOS2WinDescent": MetricType.WinDescent,
    "openTypeOS2TypoAscender": MetricType.TypoAscender,
    "openTypeOS2TypoDescender": MetricType.TypoDescender,
    "openTypeOS2TypoLineGap": MetricType.TypoLineGap,
    "openTypeOS2SubscriptXSize": MetricType.SubscriptXSize,
    "openTypeOS2SubscriptYSize": MetricType.SubscriptYSize,
    "openTypeOS2SubscriptXOffset": MetricType.SubscriptXOffset,
    "openTypeOS2SubscriptYOffset": MetricType.SubscriptYOffset,
    "openTypeOS2SuperscriptXSize": MetricType.SuperscriptXSize,
    "openTypeOS2SuperscriptYSize": MetricType.SuperscriptYSize,
    "openTypeOS2SuperscriptXOffset": MetricType.SuperscriptXOffset,
    "openTypeOS2SuperscriptYOffset": MetricType.SuperscriptYOffset,
    "openTypeOS2StrikeoutSize": MetricType.StrikeoutSize,
    "openTypeOS2StrikeoutPosition": MetricType.StrikeoutPosition,
    "postscriptUnderlinePosition": MetricType.UnderlinePosition,
    "postscriptUnderlineThickness": MetricType.UnderlineThickness,
}

# fontinfo attribute -> (table, field) of a custom OpenType value
INFO_OT_VALUES = {
    "openTypeOS2VendorID": ("OS/2", "achVendID"),
    "openTypeOS2Type": ("OS/2", "fsType"),
    "openTypeOS2WeightClass": ("OS/2", "usWeightClass"),
    "openTypeOS2WidthClass": ("OS/2", "usWidthClass"),
    "openTypeHeadFlags": ("head", "flags"),
    "openTypeHeadLowestRecPPEM": ("head", "lowestRecPPEM"),
}
# UFO stores these bit fields as lists of set bits.
BIT_LIST_ATTRIBUTES = {"openTypeOS2Type", "openTypeHeadFlags"}

_HANDLED_INFO = (
    set(INFO_NAMES)
    | set(INFO_METRICS)
    | set(INFO_OT_VALUES)
    | {
        "unitsPerEm",
        "versionMajor",
        "versionMinor",
        "openTypeHeadCreated",
        "note",
        "guidelines",
        "styleName",
    }
)

_CATEGORIES = {
    "base": GlyphCategory.Base,
    "mark": GlyphCategory.Mark,
    "ligature": GlyphCategory.Ligature,
}


def bits_to_int(bits):
    return sum(1 << bit for bit in bits)


def int_to_bits(value):
    return [bit for bit in range(value.bit_length()) if value & (1 << bit)]


def _stash(obj):
    return copy.deepcopy(dict(obj))


def load_guide(guideline):
    return Guide(
        pos=Position(guideline.x or 0, guideline.y or 0, guideline.angle or 0),
        name=guideline.name,
        color=Color.from_ufo(guideline.color),
    )


def save_guide(guide):
    return ufoLib2.objects.Guideline(
        x=guide.pos.x,
        y=guide.pos.y,
        angle=guide.pos.angle,
        name=guide.name,
        color=guide.color.to_ufo() if guide.color else None,
    )


def load_layer(ufo_glyph, **kwargs):
    """Convert a ufoLib2 glyph into a Layer."""
    layer = Layer(width=ufo_glyph.width, **kwargs)
    lib = _stash(ufo_glyph.lib)
    paths = [
        Path.from_points((p.x, p.y, p.type, p.smooth) for p in contour)
        for contour in ufo_glyph.contours
    ]
    components = [
        Component(
            component.baseGlyph,
            DecomposedAffine.from_transform(Transform(*component.transformation)),
        )
        for component in ufo_glyph.components
    ]
    order = lib.pop(SHAPE_ORDER_KEY, None)
    layer.shapes.extend(merge_shapes(paths, components, order))
    for anchor in ufo_glyph.anchors:
        layer.anchors.append(Anchor(anchor.name, anchor.x, anchor.y))
    layer.guides.extend(load_guide(g) for g in ufo_glyph.guidelines)
    layer.color = Color.from_ufo(lib.pop(MARK_COLOR_KEY, None))
    stash = {}
    if lib:
        stash["lib"] = lib
    if ufo_glyph.height:
        stash["height"] = ufo_glyph.height
    if ufo_glyph.note:
        stash["note"] = ufo_glyph.note
    if stash:
        layer.format_specific[UFO_KEY] = stash
    return layer


def save_layer(layer, ufo_glyph):
    """Draw a Layer into a (new) ufoLib2 glyph."""
    stash = layer.format_specific.get(UFO_KEY, {})
    ufo_glyph.width = layer.width
    ufo_glyph.height = stash.get("height", 0)
    ufo_glyph.note = stash.get("note")
    layer.drawPoints(ufo_glyph.getPointPen())
    for anchor in layer.anchors:
        ufo_glyph.appendAnchor({"name": anchor.name, "x": anchor.x, "y": anchor.y})
    for guide in layer.guides:
        ufo_glyph.appendGuideline(save_guide(guide))
    ufo_glyph.lib.update(copy.deepcopy(stash.get("lib", {})))
    if layer.color is not None:
        ufo_glyph.lib[MARK_COLOR_KEY] = layer.color.to_ufo()
    # Point pens keep contours and components apart.
    order = shape_order(layer.shapes)
    if "CP" in order:
        ufo_glyph.lib[SHAPE_ORDER_KEY] = order


def _group_ref(name):
    if name.startswith(KERN1_PREFIX):
        return "@" + name[len(KERN1_PREFIX) :]
    if name.startswith(KERN2_PREFIX):
        return "@" + name[len(KERN2_PREFIX) :]
    return name


def load_master(ufo, master_id=None, name=None):
    """Build a Master (without location) from a UFO's info and kerning."""
    info = ufo.info
    master = Master(
        name=I18NDictionary.from_value(name or info.styleName or "Regular"),
        id=master_id or str(uuid.uuid4()),
    )
    for attribute, metric in INFO_METRICS.items():
        value = getattr(info, attribute)
        if value is not None:
            master.metrics[metric] = value
    master.guides.extend(load_guide(g) for g in info.guidelines or [])
    master.kerning = {
        (_group_ref(left), _group_ref(right)): value
        for (left, right), value in ufo.kerning.items()
    }
    stash = {}
    leftover = {
        attribute: _stash_value(getattr(info, attribute))
        for attribute in sorted(fontInfoAttributesVersion3 - _HANDLED_INFO)
        if getattr(info, attribute, None) is not None
    }
    if leftover:
        stash["info"] = leftover
    lib = {k: v for k, v in _stash(ufo.lib).items() if k not in DERIVED_LIB_KEYS}
    if lib:
        stash["lib"] = lib
    if stash:
        master.format_specific[UFO_KEY] = stash
    return master


def _stash_value(value):
    if isinstance(value, list):
        return [_stash_value(v) for v in value]
    if attr.has(type(value)):
        return attr.asdict(value)
    return copy.deepcopy(value)


def load_font_info(font, ufo):
    """Font-wide data from the default master's UFO."""
    info = ufo.info
    if info.unitsPerEm is not None:
        font.upm = int(info.unitsPerEm)
    font.version = (info.versionMajor or 1, info.versionMinor or 0)
    font.note = info.note
    if info.openTypeHeadCreated:
        try:
            font.date = datetime.datetime.strptime(
                info.openTypeHeadCreated, HEAD_CREATED_FORMAT
            )
        except ValueError as e:
            raise FormatError(
                f"Bad openTypeHeadCreated '{info.openTypeHeadCreated}'"
            ) from e
    for attribute, field in INFO_NAMES.items():
        value = getattr(info, attribute)
        if value is not None:
            getattr(font.names, field).set_default(value)
    for attribute, (table, field) in INFO_OT_VALUES.items():
        value = getattr(info, attribute)
        if value is None:
            continue
        if attribute in BIT_LIST_ATTRIBUTES:
            value = bits_to_int(value)
        font.set_ot_value(table, field, value)

    for name, members in ufo.groups.items():
        if name.startswith(KERN1_PREFIX):
            font.first_kern_groups[name[len(KERN1_PREFIX) :]] = list(members)
        elif name.startswith(KERN2_PREFIX):
            font.second_kern_groups[name[len(KERN2_PREFIX) :]] = list(members)
        else:
            font.features.classes[name] = " ".join(members)
    fea = Features.from_fea(ufo.features.text)
    font.features.prefixes.update(fea.prefixes)


def glyph_order(ufo):
    order = [n for n in ufo.lib.get(GLYPH_ORDER_KEY, []) if n in ufo]
    seen = set(order)
    order.extend(name for name in ufo.keys() if name not in seen)
    return order


def load_glyph(ufo, name):
    """A Glyph (without layers) from a UFO's default layer and lib."""
    ufo_glyph = ufo[name]
    categories = ufo.lib.get(CATEGORIES_KEY, {})
    return Glyph(
        name=name,
        production_name=ufo.lib.get(POSTSCRIPT_NAMES_KEY, {}).get(name),
        category=_CATEGORIES.get(categories.get(name), GlyphCategory.Unknown),
        codepoints=list(ufo_glyph.unicodes),
        exported=name not in ufo.lib.get(SKIP_EXPORT_KEY, []),
    )


def is_background_layer(name):
    return name == "public.background" or name.endswith(".background")


def load_ufo_layers(font, ufo, master, brace_layers=(), skip=()):
    """Add the layers of one master's UFO to the font's glyphs.

    ``brace_layers`` maps UFO layer names to the design-space location of
    the sparse source using them; layers named in ``skip`` are left out.
    """
    brace_layers = dict(brace_layers)
    for ufo_layer in ufo.layers:
        if ufo_layer.name in skip:
            continue
        default = ufo_layer is ufo.layers.defaultLayer
        for ufo_glyph in ufo_layer:
            glyph = font.glyphs.get(ufo_glyph.name)
            if glyph is None:
                logger.warning(
                    "Glyph '%s' of layer '%s' is not in the default layer; skipped",
                    ufo_glyph.name,
                    ufo_layer.name,
                )
                continue
            if default:
                layer = load_layer(ufo_glyph, master=DefaultForMaster(master.id))
                layer.id = master.id
            else:
                layer = load_layer(
                    ufo_glyph,
                    master=AssociatedWithMaster(master.id),
                    name=ufo_layer.name,
                    id=str(uuid.uuid4()),
                )
                if ufo_layer.name in brace_layers:
                    layer.location = dict(brace_layers[ufo_layer.name])
                elif is_background_layer(ufo_layer.name):
                    layer.is_background = True
            glyph.layers.append(layer)


def open_ufo(path):
    try:
        return ufoLib2.Font.open(path)
    except Exception as e:
        raise FormatError("Reading UFO source failed", path) from e


class Convertor(BaseConvertor):
    suffixes = (".ufo",)
    can_load = True

    def _load(self):
        ufo = open_ufo(self.path)
        font = Font()
        load_font_info(font, ufo)
        master = load_master(ufo)
        font.masters.append(master)
        for name in glyph_order(ufo):
            font.glyphs.append(load_glyph(ufo, name))
        load_ufo_layers(font, ufo, master)
        return font


# Writing, used by the DesignSpace convertor.


def save_font_info(font, ufo, warn):
    info = ufo.info
    info.unitsPerEm = font.upm
    info.versionMajor, info.versionMinor = font.version
    info.note = font.note
    if font.date is not None:
        info.openTypeHeadCreated = font.date.strftime(HEAD_CREATED_FORMAT)
    for attribute, field in INFO_NAMES.items():
        value = getattr(font.names, field)
        setattr(info, attribute, value.get_default())
        if set(value) - {I18NDictionary.DEFAULT}:
            warn(f"UFO cannot store localized {field} names")
    handled = set()
    for attribute, (table, field) in INFO_OT_VALUES.items():
        value = font.ot_value(table, field)
        if value is None:
            continue
        handled.add((table, field))
        if attribute in BIT_LIST_ATTRIBUTES:
            value = int_to_bits(value)
        setattr(info, attribute, value)
    for value in font.custom_ot_values:
        if (value.table, value.field) not in handled:
            warn(f"UFO cannot store custom {value.table}.{value.field} value")


def save_master(font, master, ufo, warn):
    info = ufo.info
    info.styleName = master.display_name
    for attribute, metric in INFO_METRICS.items():
        value = master.metrics.get(metric)
        if value is not None:
            setattr(info, attribute, value)
    for metric in master.metrics:
        if metric not in INFO_METRICS.values():
            warn(f"UFO cannot store the '{metric}' metric of {master.display_name}")
    if master.guides:
        info.guidelines = [save_guide(g) for g in master.guides]
    if master.custom_ot_values:
        warn(f"Custom OpenType values of master {master.display_name} not saved")
    stash = master.format_specific.get(UFO_KEY, {})
    for attribute, value in stash.get("info", {}).items():
        setattr(info, attribute, copy.deepcopy(value))
    ufo.lib.update(copy.deepcopy(stash.get("lib", {})))

    for name, members in font.first_kern_groups.items():
        ufo.groups[KERN1_PREFIX + name] = list(members)
    for name, members in font.second_kern_groups.items():
        ufo.groups[KERN2_PREFIX + name] = list(members)
    for (left, right), value in master.kerning.items():
        if left.startswith("@"):
            left = KERN1_PREFIX + left[1:]
        if right.startswith("@"):
            right = KERN2_PREFIX + right[1:]
        ufo.kerning[(left, right)] = value


def save_glyph_data(font, ufo):
    """Glyph order and per-glyph public lib keys of a master UFO."""
    ufo.lib[GLYPH_ORDER_KEY] = font.glyphs.names()
    names = {g.name: g.production_name for g in font.glyphs if g.production_name}
    if names:
        ufo.lib[POSTSCRIPT_NAMES_KEY] = names
    categories = {
        g.name: g.category.value
        for g in font.glyphs
        if g.category is not GlyphCategory.Unknown
    }
    if categories:
        ufo.lib[CATEGORIES_KEY] = categories
    skipped = [g.name for g in font.glyphs if not g.exported]
    if skipped:
        ufo.lib[SKIP_EXPORT_KEY] = skipped
    for name, code in font.features.classes.items():
        ufo.groups[name] = code.split()
    ufo.features.text = _features_without_classes(font.features)


def _features_without_classes(features):
    return Features(
        prefixes=features.prefixes, features=features.features
    ).to_fea()
