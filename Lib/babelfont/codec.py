"""The canonical babelfont serialization.

A font is turned into plain JSON-compatible data with snake_case keys.
Parent links are never written. Path nodes are packed into one string of
``x y typecode[s]`` triples, where typecode is one of ``m l o c q`` and a
trailing ``s`` marks a smooth node.
"""

import base64
import datetime
import json
import logging

import attr

from babelfont.axis import Axis
from babelfont.common import (
    Anchor,
    Color,
    Direction,
    Guide,
    I18NDictionary,
    OTValue,
    Position,
)
from babelfont.errors import FormatError
from babelfont.features import Features
from babelfont.font import Font
from babelfont.glyph import Glyph, GlyphCategory
from babelfont.instance import Instance
from babelfont.layer import AssociatedWithMaster, DefaultForMaster, FreeFloating, Layer
from babelfont.master import Master
from babelfont.names import NAME_IDS, Names
from babelfont.shape import (
    Component,
    DecomposedAffine,
    Node,
    NodeType,
    Path,
    TransformOrder,
)

logger = logging.getLogger(__name__)

_TYPECODES = {nodetype.value: nodetype for nodetype in NodeType}


def _number(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _parse_number(token):
    try:
        return int(token)
    except ValueError:
        return float(token)


def nodes_to_string(nodes):
    tokens = []
    for node in nodes:
        code = node.nodetype.value + ("s" if node.smooth else "")
        tokens.append(f"{_number(node.x)} {_number(node.y)} {code}")
    return " ".join(tokens)


def nodes_from_string(string):
    tokens = string.split()
    if len(tokens) % 3:
        raise FormatError(f"Node string has {len(tokens)} tokens, not triples")
    nodes = []
    for i in range(0, len(tokens), 3):
        x, y, code = tokens[i : i + 3]
        smooth = code.endswith("s")
        if smooth:
            code = code[:-1]
        if code not in _TYPECODES:
            raise FormatError(f"Unknown node type '{tokens[i + 2]}'")
        try:
            nodes.append(
                Node(_parse_number(x), _parse_number(y), _TYPECODES[code], smooth)
            )
        except ValueError as e:
            raise FormatError(f"Bad node coordinates '{x} {y}'") from e
    return nodes


def _compact(data):
    """Drop empty and None values to keep the document small."""
    return {
        key: value
        for key, value in data.items()
        if value is not None and value != {} and value != []
    }


# Dumping


def _dump_names(names):
    return {field: dict(value) for field, value in names.items()}


def _dump_color(color):
    if color is None:
        return None
    return [color.r, color.g, color.b, color.a]


def _dump_guide(guide):
    pos = {"x": _number(guide.pos.x), "y": _number(guide.pos.y)}
    if guide.pos.angle:
        pos["angle"] = _number(guide.pos.angle)
    return _compact(
        {
            "pos": pos,
            "name": guide.name,
            "color": _dump_color(guide.color),
            "format_specific": guide.format_specific,
        }
    )


def _dump_ot_values(values):
    return [{"table": v.table, "field": v.field, "value": v.value} for v in values]


def _dump_axis(axis):
    data = {
        "name": dict(axis.name),
        "tag": axis.tag,
        "id": axis.id,
        "min": axis.min,
        "default": axis.default,
        "max": axis.max,
        "map": [list(pair) for pair in axis.map] if axis.map is not None else None,
        "format_specific": axis.format_specific,
    }
    if axis.hidden:
        data["hidden"] = True
    return _compact(data)


def _dump_master(master):
    return _compact(
        {
            "name": dict(master.name),
            "id": master.id,
            "location": dict(master.location),
            "guides": [_dump_guide(g) for g in master.guides],
            "metrics": dict(master.metrics),
            "kerning": [[l, r, v] for (l, r), v in master.kerning.items()],
            "custom_ot_values": _dump_ot_values(master.custom_ot_values),
            "format_specific": master.format_specific,
        }
    )


def _dump_instance(instance):
    data = _compact(
        {
            "id": instance.id,
            "name": dict(instance.name),
            "location": dict(instance.location),
            "custom_names": _dump_names(instance.custom_names),
            "linked_style": instance.linked_style,
            "format_specific": instance.format_specific,
        }
    )
    if instance.variable:
        data["variable"] = True
    return data


def _dump_transform(transform):
    return {
        "translation": [_number(v) for v in transform.translation],
        "scale": [_number(v) for v in transform.scale],
        "skew": [_number(v) for v in transform.skew],
        "rotation": _number(transform.rotation),
        "order": transform.order.value,
    }


def _dump_shape(shape):
    if isinstance(shape, Component):
        return _compact(
            {
                "reference": shape.reference,
                "transform": _dump_transform(shape.transform),
                "location": dict(shape.location),
                "format_specific": shape.format_specific,
            }
        )
    data = {
        "nodes": nodes_to_string(shape.nodes),
        "closed": shape.closed,
    }
    if shape.format_specific:
        data["format_specific"] = shape.format_specific
    return data


def _dump_layer_type(master):
    if isinstance(master, DefaultForMaster):
        return {"DefaultForMaster": master.id}
    if isinstance(master, AssociatedWithMaster):
        return {"AssociatedWithMaster": master.id}
    return "FreeFloating"


def _dump_layer(layer):
    data = _compact(
        {
            "width": _number(layer.width),
            "name": layer.name,
            "id": layer.id,
            "master": _dump_layer_type(layer.master),
            "guides": [_dump_guide(g) for g in layer.guides],
            "shapes": [_dump_shape(s) for s in layer.shapes],
            "anchors": [
                _compact(
                    {
                        "name": a.name,
                        "x": _number(a.x),
                        "y": _number(a.y),
                        "format_specific": a.format_specific,
                    }
                )
                for a in layer.anchors
            ],
            "color": _dump_color(layer.color),
            "layer_index": layer.layer_index,
            "background_layer_id": layer.background_layer_id,
            "smart_component_location": dict(layer.smart_component_location),
            "format_specific": layer.format_specific,
        }
    )
    if layer.location is not None:
        data["location"] = dict(layer.location)
    if layer.is_background:
        data["is_background"] = True
    return data


def _dump_glyph(glyph):
    data = _compact(
        {
            "name": glyph.name,
            "production_name": glyph.production_name,
            "category": glyph.category.value,
            "codepoints": list(glyph.codepoints),
            "layers": [_dump_layer(layer) for layer in glyph.layers],
            "direction": glyph.direction.value if glyph.direction else None,
            "component_axes": [_dump_axis(axis) for axis in glyph.component_axes],
            "format_specific": glyph.format_specific,
        }
    )
    if not glyph.exported:
        data["exported"] = False
    return data


def _dump_features(features):
    return _compact(
        {
            "classes": dict(features.classes),
            "prefixes": dict(features.prefixes),
            "features": [[tag, code] for tag, code in features.features],
            "include_paths": list(features.include_paths),
        }
    )


def dump(font):
    """Serialize a Font into JSON-compatible data."""
    return _compact(
        {
            "upm": font.upm,
            "version": list(font.version),
            "axes": [_dump_axis(a) for a in font.axes],
            "instances": [_dump_instance(i) for i in font.instances],
            "masters": [_dump_master(m) for m in font.masters],
            "glyphs": [_dump_glyph(g) for g in font.glyphs],
            "note": font.note,
            "date": font.date.isoformat() if font.date else None,
            "names": _dump_names(font.names),
            "custom_ot_values": _dump_ot_values(font.custom_ot_values),
            "features": _dump_features(font.features),
            "first_kern_groups": dict(font.first_kern_groups),
            "second_kern_groups": dict(font.second_kern_groups),
            "format_specific": font.format_specific,
        }
    )


def _json_default(obj):
    # Values found in format-specific data kept from plist-based sources.
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return base64.b64encode(obj).decode("ascii")
    if isinstance(obj, (tuple, set)):
        return list(obj)
    if attr.has(type(obj)):
        return attr.asdict(obj)
    raise TypeError(f"Cannot serialize {type(obj).__name__} object")


def dumps(font, indent=2):
    return json.dumps(
        dump(font), indent=indent, ensure_ascii=False, default=_json_default
    )


# Loading


def _load_names(data, what):
    unknown = set(data) - set(NAME_IDS)
    if unknown:
        raise FormatError(f"Unknown name fields in {what}: {sorted(unknown)}")
    return Names(**{field: I18NDictionary(value) for field, value in data.items()})


def _load_color(data):
    if data is None:
        return None
    return Color(*data)


def _load_guide(data):
    pos = data.get("pos", {})
    return Guide(
        pos=Position(pos.get("x", 0), pos.get("y", 0), pos.get("angle", 0)),
        name=data.get("name"),
        color=_load_color(data.get("color")),
        format_specific=data.get("format_specific", {}),
    )


def _load_ot_values(data):
    return [OTValue(v["table"], v["field"], v["value"]) for v in data]


def _load_axis(data):
    return Axis(
        name=data.get("name", {}),
        tag=data["tag"],
        id=data.get("id") or data["tag"],
        min=data.get("min"),
        default=data.get("default"),
        max=data.get("max"),
        map=data.get("map"),
        hidden=data.get("hidden", False),
        format_specific=data.get("format_specific", {}),
    )


def _load_kerning(data):
    if isinstance(data, dict):
        kerning = {}
        for pair, value in data.items():
            left, sep, right = pair.partition(":")
            if not sep:
                raise FormatError(f"Bad kerning pair '{pair}'")
            kerning[(left, right)] = value
        return kerning
    return {(left, right): value for left, right, value in data}


def _load_master(data):
    return Master(
        name=data.get("name", {}),
        id=data["id"],
        location=data.get("location", {}),
        guides=[_load_guide(g) for g in data.get("guides", [])],
        metrics=data.get("metrics", {}),
        kerning=_load_kerning(data.get("kerning", [])),
        custom_ot_values=_load_ot_values(data.get("custom_ot_values", [])),
        format_specific=data.get("format_specific", {}),
    )


def _load_instance(data):
    return Instance(
        id=data["id"],
        name=data.get("name", {}),
        location=data.get("location", {}),
        custom_names=_load_names(data.get("custom_names", {}), "instance"),
        variable=data.get("variable", False),
        linked_style=data.get("linked_style"),
        format_specific=data.get("format_specific", {}),
    )


def _load_transform(data):
    return DecomposedAffine(
        translation=tuple(data.get("translation", (0, 0))),
        scale=tuple(data.get("scale", (1, 1))),
        skew=tuple(data.get("skew", (0, 0))),
        rotation=data.get("rotation", 0.0),
        order=TransformOrder(data.get("order", TransformOrder.Default.value)),
    )


def _load_shape(data):
    if "reference" in data:
        return Component(
            reference=data["reference"],
            transform=_load_transform(data.get("transform", {})),
            location=data.get("location", {}),
            format_specific=data.get("format_specific", {}),
        )
    if "nodes" in data:
        return Path(
            nodes=nodes_from_string(data["nodes"]),
            closed=data.get("closed", True),
            format_specific=data.get("format_specific", {}),
        )
    raise FormatError(f"Shape has neither nodes nor a reference: {sorted(data)}")


def _load_layer_type(data):
    if data == "FreeFloating" or data is None:
        return FreeFloating()
    if isinstance(data, dict) and len(data) == 1:
        kind, master_id = next(iter(data.items()))
        if kind == "DefaultForMaster":
            return DefaultForMaster(master_id)
        if kind == "AssociatedWithMaster":
            return AssociatedWithMaster(master_id)
    raise FormatError(f"Bad layer master reference {data!r}")


def _load_layer(data):
    return Layer(
        width=data.get("width", 0),
        name=data.get("name"),
        id=data.get("id"),
        master=_load_layer_type(data.get("master")),
        guides=[_load_guide(g) for g in data.get("guides", [])],
        shapes=[_load_shape(s) for s in data.get("shapes", [])],
        anchors=[
            Anchor(
                a["name"], a.get("x", 0), a.get("y", 0), a.get("format_specific", {})
            )
            for a in data.get("anchors", [])
        ],
        color=_load_color(data.get("color")),
        layer_index=data.get("layer_index"),
        is_background=data.get("is_background", False),
        background_layer_id=data.get("background_layer_id"),
        location=data.get("location"),
        smart_component_location=data.get("smart_component_location", {}),
        format_specific=data.get("format_specific", {}),
    )


def _load_glyph(data):
    direction = data.get("direction")
    return Glyph(
        name=data["name"],
        production_name=data.get("production_name"),
        category=GlyphCategory(data.get("category", GlyphCategory.Base.value)),
        codepoints=data.get("codepoints", []),
        layers=[_load_layer(layer) for layer in data.get("layers", [])],
        exported=data.get("exported", True),
        direction=Direction(direction) if direction else None,
        component_axes=[_load_axis(a) for a in data.get("component_axes", [])],
        format_specific=data.get("format_specific", {}),
    )


def _load_features(data):
    return Features(
        classes=data.get("classes", {}),
        prefixes=data.get("prefixes", {}),
        features=[(tag, code) for tag, code in data.get("features", [])],
        include_paths=data.get("include_paths", []),
    )


def load(data):
    """Build a Font from data produced by :func:`dump`."""
    if not isinstance(data, dict):
        raise FormatError("A babelfont document must be a JSON object")
    try:
        date = data.get("date")
        return Font(
            upm=data.get("upm", 1000),
            version=tuple(data.get("version", (1, 0))),
            axes=[_load_axis(a) for a in data.get("axes", [])],
            instances=[_load_instance(i) for i in data.get("instances", [])],
            masters=[_load_master(m) for m in data.get("masters", [])],
            glyphs=[_load_glyph(g) for g in data.get("glyphs", [])],
            note=data.get("note"),
            date=datetime.datetime.fromisoformat(date) if date else None,
            names=_load_names(data.get("names", {}), "font"),
            custom_ot_values=_load_ot_values(data.get("custom_ot_values", [])),
            features=_load_features(data.get("features", {})),
            first_kern_groups=data.get("first_kern_groups", {}),
            second_kern_groups=data.get("second_kern_groups", {}),
            format_specific=data.get("format_specific", {}),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FormatError("Malformed babelfont document") from e


def loads(string):
    try:
        data = json.loads(string)
    except json.JSONDecodeError as e:
        raise FormatError("Not a JSON document") from e
    return load(data)
