"""Fontra ``.fontra`` project directories.

A project holds ``font-data.json`` (axes, sources, font info and units per
em), ``glyph-info.csv`` (glyph names and code points), one JSON file per
glyph in ``glyphs/`` and the feature code in ``features.fea``.
"""

import csv
import datetime
import json
import logging
import os

from fontTools.misc.filenames import userNameToFileName
from fontTools.misc.transform import DecomposedTransform

from babelfont.axis import Axis
from babelfont.common import Anchor, Guide, Position
from babelfont.convertors import (
    BaseConvertor,
    atomic_output,
    merge_shapes,
    shape_order,
)
from babelfont.errors import FormatError
from babelfont.features import Features
from babelfont.font import Font
from babelfont.glyph import Glyph, GlyphCategory
from babelfont.layer import AssociatedWithMaster, DefaultForMaster, Layer
from babelfont.master import Master, MetricType
from babelfont.shape import Component, DecomposedAffine, Path

logger = logging.getLogger(__name__)

FONT_DATA = "font-data.json"
GLYPH_INFO = "glyph-info.csv"
GLYPHS_DIR = "glyphs"
FEATURES = "features.fea"

ON_CURVE = 0
OFF_CURVE_QUAD = 1
OFF_CURVE_CUBIC = 2
SMOOTH_FLAG = 8

# fontInfo key -> Names field
FONT_INFO_NAMES = {
    "familyName": "family_name",
    "copyright": "copyright",
    "trademark": "trademark",
    "description": "description",
    "sampleText": "sample_text",
    "designer": "designer",
    "designerURL": "designer_url",
    "manufacturer": "manufacturer",
    "manufacturerURL": "manufacturer_url",
    "licenseDescription": "license",
    "licenseInfoURL": "license_url",
}

# Model fields with no Fontra counterpart, kept in customData
NOTE_KEY = "babelfont.note"
DATE_KEY = "babelfont.date"
CATEGORY_KEY = "babelfont.category"
SHAPE_ORDER_KEY = "babelfont.shapeOrder"

# lineMetricsHorizontalLayout key -> master metric
LINE_METRICS = {
    "ascender": MetricType.Ascender,
    "descender": MetricType.Descender,
    "xHeight": MetricType.XHeight,
    "capHeight": MetricType.CapHeight,
}


def _read_json(path):
    try:
        with open(path, encoding="utf-8") as fp:
            return json.load(fp)
    except (OSError, ValueError) as e:
        raise FormatError("Reading Fontra data failed", path) from e


def _write_json(path, data):
    with open(path, "w", encoding="utf-8") as fp:
        json.dump(data, fp, indent=2, ensure_ascii=False)
        fp.write("\n")


def parse_codepoints(text):
    codepoints = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        if item.upper().startswith("U+"):
            item = item[2:]
        codepoints.append(int(item, 16))
    return codepoints


def format_codepoints(codepoints):
    return ",".join("U+%04X" % cp for cp in codepoints)


# Packed paths


def unpack_path(path):
    """Yield model Paths from a Fontra packed path."""
    coordinates = path.get("coordinates", [])
    point_types = path.get("pointTypes", [])
    start = 0
    for contour in path.get("contourInfo", []):
        end = contour["endPoint"] + 1
        closed = contour.get("isClosed", True)
        types = point_types[start:end]
        points = [
            (coordinates[2 * i], coordinates[2 * i + 1])
            for i in range(start, end)
        ]
        yield Path.from_points(_point_tuples(points, types, closed))
        start = end


def _point_tuples(points, types, closed):
    result = []
    for index, ((x, y), point_type) in enumerate(zip(points, types)):
        base = point_type & ~SMOOTH_FLAG
        smooth = bool(point_type & SMOOTH_FLAG)
        if base != ON_CURVE:
            result.append((x, y, None, False))
            continue
        if index == 0 and not closed:
            segment_type = "move"
        else:
            previous = types[index - 1] & ~SMOOTH_FLAG
            if previous == OFF_CURVE_QUAD:
                segment_type = "qcurve"
            elif previous == OFF_CURVE_CUBIC:
                segment_type = "curve"
            else:
                segment_type = "line"
        result.append((x, y, segment_type, smooth))
    return result


def pack_paths(paths):
    coordinates = []
    point_types = []
    contour_info = []
    for path in paths:
        points = path.to_points()
        # Off-curve points take their kind from the segment they lead to.
        following = None
        kinds = []
        for x, y, segment_type, smooth in reversed(points + points):
            if segment_type is not None:
                following = segment_type
            kinds.append(following)
        kinds = list(reversed(kinds))[: len(points)]
        for (x, y, segment_type, smooth), kind in zip(points, kinds):
            coordinates.extend((x, y))
            if segment_type is None:
                point_types.append(
                    OFF_CURVE_QUAD if kind == "qcurve" else OFF_CURVE_CUBIC
                )
            else:
                point_types.append(ON_CURVE | (SMOOTH_FLAG if smooth else 0))
        contour_info.append(
            {"endPoint": len(point_types) - 1, "isClosed": path.closed}
        )
    return {
        "coordinates": coordinates,
        "pointTypes": point_types,
        "contourInfo": contour_info,
    }


# Components


TRANSFORM_FIELDS = (
    "translateX",
    "translateY",
    "rotation",
    "scaleX",
    "scaleY",
    "skewX",
    "skewY",
    "tCenterX",
    "tCenterY",
)


def load_transform(data):
    decomposed = DecomposedTransform(
        **{k: v for k, v in data.items() if k in TRANSFORM_FIELDS}
    )
    return DecomposedAffine.from_transform(decomposed.toTransform())


def save_transform(affine):
    decomposed = affine.to_transform().toDecomposed()
    return {
        "translateX": decomposed.translateX,
        "translateY": decomposed.translateY,
        "rotation": decomposed.rotation,
        "scaleX": decomposed.scaleX,
        "scaleY": decomposed.scaleY,
        "skewX": decomposed.skewX,
        "skewY": decomposed.skewY,
        "tCenterX": 0,
        "tCenterY": 0,
    }


def _load_guide(data):
    return Guide(
        pos=Position(data.get("x", 0), data.get("y", 0), data.get("angle", 0)),
        name=data.get("name"),
    )


def _save_guide(guide):
    return {
        "name": guide.name,
        "x": guide.pos.x,
        "y": guide.pos.y,
        "angle": guide.pos.angle,
        "locked": False,
    }


def load_layer(layer_data, **kwargs):
    """Build a Layer from a Fontra layer: its static glyph and custom data."""
    data = layer_data["glyph"]
    layer = Layer(width=data.get("xAdvance", 0), **kwargs)
    components = [
        Component(
            component["name"],
            load_transform(component.get("transformation", {})),
            location=dict(component.get("location", {})),
        )
        for component in data.get("components", [])
    ]
    order = layer_data.get("customData", {}).get(SHAPE_ORDER_KEY)
    layer.shapes.extend(
        merge_shapes(unpack_path(data.get("path", {})), components, order)
    )
    for anchor in data.get("anchors", []):
        layer.anchors.append(Anchor(anchor.get("name"), anchor["x"], anchor["y"]))
    layer.guides.extend(_load_guide(g) for g in data.get("guidelines", []))
    if data.get("yAdvance") is not None:
        layer.format_specific["fontra"] = {"yAdvance": data["yAdvance"]}
    return layer


def save_layer(layer):
    data = {
        "path": pack_paths(layer.paths),
        "components": [
            {
                "name": component.reference,
                "transformation": save_transform(component.transform),
                "location": dict(component.location),
            }
            for component in layer.components
        ],
        "xAdvance": layer.width,
        "anchors": [{"name": a.name, "x": a.x, "y": a.y} for a in layer.anchors],
        "guidelines": [_save_guide(g) for g in layer.guides],
    }
    y_advance = layer.format_specific.get("fontra", {}).get("yAdvance")
    if y_advance is not None:
        data["yAdvance"] = y_advance
    result = {"glyph": data}
    # Packed paths keep contours and components apart.
    order = shape_order(layer.shapes)
    if "CP" in order:
        result["customData"] = {SHAPE_ORDER_KEY: order}
    return result


class Convertor(BaseConvertor):
    suffixes = (".fontra",)
    can_load = True
    can_save = True

    # Loading

    def _load(self):
        font = Font()
        data = _read_json(os.path.join(self.path, FONT_DATA))
        font.upm = data.get("unitsPerEm", 1000)
        self._load_font_info(font, data.get("fontInfo", {}))
        axes = data.get("axes", {})
        if isinstance(axes, dict):
            axes = axes.get("axes", [])
        for axis in axes:
            font.axes.append(
                Axis(
                    name=axis.get("label") or axis["name"],
                    tag=axis["tag"],
                    min=axis["minValue"],
                    default=axis["defaultValue"],
                    max=axis["maxValue"],
                    map=[tuple(pair) for pair in axis.get("mapping", [])] or None,
                    hidden=axis.get("hidden", False),
                    format_specific={"fontra": {"name": axis["name"]}},
                )
            )
        self._axis_tags = {
            a.format_specific["fontra"]["name"]: a.tag for a in font.axes
        }
        for source_id, source in data.get("sources", {}).items():
            font.masters.append(self._load_source(font, source_id, source))
        if not font.masters:
            font.masters.append(
                Master(name="Regular", id="default", location=font.default_location())
            )

        for name, codepoints in self._glyph_info():
            font.glyphs.append(Glyph(name=name, codepoints=codepoints))
        for glyph in font.glyphs:
            self._load_glyph(font, glyph)

        features = os.path.join(self.path, FEATURES)
        if os.path.exists(features):
            with open(features, encoding="utf-8") as fp:
                font.features = Features.from_fea(fp.read())
        return font

    def _load_font_info(self, font, info):
        for key, field in FONT_INFO_NAMES.items():
            if info.get(key) is not None:
                getattr(font.names, field).set_default(info[key])
        font.version = (info.get("versionMajor", 1), info.get("versionMinor", 0))
        if info.get("vendorID"):
            font.set_ot_value("OS/2", "achVendID", info["vendorID"])
        custom = dict(info.get("customData", {}))
        font.note = custom.pop(NOTE_KEY, None)
        date = custom.pop(DATE_KEY, None)
        if date:
            font.date = datetime.datetime.fromisoformat(date)
        if custom:
            font.format_specific["fontra"] = {"customData": custom}

    def _location(self, font, location):
        result = font.default_location()
        for name, value in location.items():
            if name not in self._axis_tags:
                raise FormatError(f"Location refers to undefined axis '{name}'")
            result[self._axis_tags[name]] = value
        return result

    def _load_source(self, font, source_id, source):
        master = Master(
            name=source.get("name") or source_id,
            id=source_id,
            location=self._location(font, source.get("location", {})),
        )
        if "italicAngle" in source:
            master.metrics[MetricType.ItalicAngle] = source["italicAngle"]
        metrics = source.get("lineMetricsHorizontalLayout", {})
        for key, metric in LINE_METRICS.items():
            if key in metrics:
                master.metrics[metric] = metrics[key]["value"]
        master.guides.extend(_load_guide(g) for g in source.get("guidelines", []))
        if source.get("customData"):
            master.format_specific["fontra"] = {"customData": source["customData"]}
        return master

    def _glyph_info(self):
        path = os.path.join(self.path, GLYPH_INFO)
        try:
            with open(path, encoding="utf-8", newline="") as fp:
                rows = list(csv.reader(fp, delimiter=";"))
        except OSError as e:
            raise FormatError("Reading Fontra glyph info failed", path) from e
        for row in rows[1:]:
            if not row:
                continue
            try:
                yield row[0], parse_codepoints(row[1] if len(row) > 1 else "")
            except ValueError as e:
                raise FormatError(f"Bad code points for glyph '{row[0]}'", path) from e

    def _load_glyph(self, font, glyph):
        path = os.path.join(self.path, GLYPHS_DIR, userNameToFileName(glyph.name))
        path += ".json"
        if not os.path.exists(path):
            logger.warning("No glyph file for '%s'", glyph.name)
            return
        data = _read_json(path)
        custom = dict(data.get("customData", {}))
        category = custom.pop(CATEGORY_KEY, None)
        if category is not None:
            try:
                glyph.category = GlyphCategory(category)
            except ValueError as e:
                raise FormatError(f"Unknown glyph category '{category}'", path) from e
        if custom:
            glyph.format_specific["fontra"] = {"customData": custom}
        for axis in data.get("axes", []):
            glyph.component_axes.append(
                Axis(
                    name=axis["name"],
                    tag=axis["name"],
                    min=axis["minValue"],
                    default=axis["defaultValue"],
                    max=axis["maxValue"],
                )
            )
        glyph_axes = {axis.tag for axis in glyph.component_axes}
        layers = data.get("layers", {})
        used = set()
        default_id = font.default_master().id
        for source in data.get("sources", []):
            layer_name = source["layerName"]
            if layer_name not in layers:
                raise FormatError(
                    f"Glyph source refers to missing layer '{layer_name}'", path
                )
            used.add(layer_name)
            location = dict(source.get("location", {}))
            smart = {k: location.pop(k) for k in list(location) if k in glyph_axes}
            master = self._master_for(font, source.get("locationBase"), location)
            if master is not None and not smart:
                layer = load_layer(
                    layers[layer_name],
                    master=DefaultForMaster(master.id),
                    id=master.id,
                    name=source.get("name"),
                )
            else:
                layer = load_layer(
                    layers[layer_name],
                    master=AssociatedWithMaster(master.id if master else default_id),
                    id=layer_name,
                    name=source.get("name"),
                    smart_component_location=smart,
                )
                if master is None:
                    layer.location = self._location(font, location)
            glyph.layers.append(layer)
        for layer_name, layer_data in layers.items():
            if layer_name in used:
                continue
            layer = load_layer(
                layer_data,
                master=AssociatedWithMaster(default_id),
                id=layer_name,
                name=layer_name,
            )
            layer.is_background = "background" in layer_name
            glyph.layers.append(layer)

    def _master_for(self, font, location_base, location):
        if location_base and not location:
            return font.master(location_base)
        full = self._location(font, location)
        for master in font.masters:
            if master.location == full:
                return master
        return None

    # Saving

    def _save(self):
        font = self.font
        with atomic_output(self.path) as tmp:
            os.makedirs(os.path.join(tmp, GLYPHS_DIR))
            _write_json(os.path.join(tmp, FONT_DATA), self._font_data())
            with open(
                os.path.join(tmp, GLYPH_INFO), "w", encoding="utf-8", newline=""
            ) as fp:
                writer = csv.writer(fp, delimiter=";", lineterminator="\n")
                writer.writerow(["glyph name", "code points"])
                for glyph in font.glyphs:
                    writer.writerow([glyph.name, format_codepoints(glyph.codepoints)])
            for glyph in font.glyphs:
                filename = userNameToFileName(glyph.name) + ".json"
                _write_json(
                    os.path.join(tmp, GLYPHS_DIR, filename), self._glyph_data(glyph)
                )
            if font.features:
                with open(os.path.join(tmp, FEATURES), "w", encoding="utf-8") as fp:
                    fp.write(font.features.to_fea())

    def _axis_name(self, axis):
        return axis.format_specific.get("fontra", {}).get("name") or (
            axis.name.get_default() or axis.tag
        )

    def _named_location(self, location):
        return {
            self._axis_name(axis): location[axis.tag]
            for axis in self.font.axes
            if axis.tag in location
        }

    def _font_data(self):
        font = self.font
        info = {}
        for key, field in FONT_INFO_NAMES.items():
            value = getattr(font.names, field)
            if value:
                info[key] = value.get_default()
            if len(value) > 1:
                self.warn(f"Fontra cannot store localized {field} names")
        stored = set(FONT_INFO_NAMES.values())
        for field, value in font.names.items():
            if field not in stored:
                self.warn(f"Name {field} is not saved")
        info["versionMajor"], info["versionMinor"] = font.version
        for value in font.custom_ot_values:
            if (value.table, value.field) == ("OS/2", "achVendID"):
                info["vendorID"] = value.value
            else:
                self.warn(f"OpenType value {value.table}.{value.field} is not saved")
        if font.first_kern_groups or font.second_kern_groups:
            self.warn("Kerning groups are not saved")
        if font.instances:
            self.warn(
                "Instances %s are not saved"
                % ", ".join(i.display_name for i in font.instances)
            )
        custom = dict(font.format_specific.get("fontra", {}).get("customData", {}))
        if font.note:
            custom[NOTE_KEY] = font.note
        if font.date is not None:
            custom[DATE_KEY] = font.date.isoformat()
        info["customData"] = custom
        return {
            "unitsPerEm": font.upm,
            "fontInfo": info,
            "axes": {
                "axes": [self._axis_data(axis) for axis in font.axes],
                "mappings": [],
            },
            "sources": {m.id: self._source_data(m) for m in font.masters},
        }

    def _axis_data(self, axis):
        return {
            "name": self._axis_name(axis),
            "label": axis.name.get_default() or axis.tag,
            "tag": axis.tag,
            "minValue": axis.min,
            "defaultValue": axis.default,
            "maxValue": axis.max,
            "hidden": axis.hidden,
            "mapping": [list(pair) for pair in axis.map or []],
        }

    def _source_data(self, master):
        metrics = {
            key: {"value": master.metrics[metric], "zone": 0}
            for key, metric in LINE_METRICS.items()
            if metric in master.metrics
        }
        unsaved = set(master.metrics) - set(LINE_METRICS.values())
        unsaved.discard(MetricType.ItalicAngle)
        if unsaved:
            self.warn(
                f"Metrics {sorted(unsaved)} of {master.display_name} are not saved"
            )
        if master.kerning:
            self.warn(f"Kerning of {master.display_name} is not saved")
        data = {
            "name": master.display_name,
            "location": self._named_location(master.location),
            "lineMetricsHorizontalLayout": metrics,
            "guidelines": [_save_guide(g) for g in master.guides],
            "customData": master.format_specific.get("fontra", {}).get(
                "customData", {}
            ),
        }
        # Readers default to an upright source.
        if MetricType.ItalicAngle in master.metrics:
            data["italicAngle"] = master.metrics[MetricType.ItalicAngle]
        return data

    def _glyph_data(self, glyph):
        font = self.font
        sources = []
        layers = {}
        for layer in glyph.layers:
            layer_name = layer.id if layer.is_master_layer else layer.id or layer.name
            if not layer_name or layer_name in layers:
                layer_name = "layer-%d" % len(layers)
            layers[layer_name] = save_layer(layer)
            if layer.is_background:
                continue
            location = layer.effective_location(font)
            if location is None and not layer.smart_component_location:
                continue
            source = {
                "name": layer.name or layer_name,
                "layerName": layer_name,
                "location": {
                    **self._named_location(location or {}),
                    **layer.smart_component_location,
                },
            }
            if layer.is_master_layer:
                source["locationBase"] = layer.master_id
            sources.append(source)
        if glyph.production_name or not glyph.exported:
            self.warn(f"Production name and export flag of {glyph.name} not saved")
        if glyph.direction is not None:
            self.warn(f"Direction of {glyph.name} is not saved")
        custom = dict(glyph.format_specific.get("fontra", {}).get("customData", {}))
        if glyph.category != GlyphCategory.Base:
            custom[CATEGORY_KEY] = glyph.category.value
        return {
            "name": glyph.name,
            "customData": custom,
            "axes": [
                {
                    "name": axis.tag,
                    "minValue": axis.min,
                    "defaultValue": axis.default,
                    "maxValue": axis.max,
                }
                for axis in glyph.component_axes
            ],
            "sources": sources,
            "layers": layers,
        }

