"""FontLab ``.vfj`` JSON sources (basic read support)."""

import json
import logging
import uuid

from babelfont.axis import Axis
from babelfont.common import Anchor
from babelfont.convertors import BaseConvertor
from babelfont.errors import FormatError
from babelfont.font import Font
from babelfont.glyph import Glyph
from babelfont.layer import AssociatedWithMaster, DefaultForMaster, Layer
from babelfont.master import Master, MetricType
from babelfont.shape import Component, DecomposedAffine, Node, NodeType, Path

logger = logging.getLogger(__name__)

# fontMaster key -> metric
MASTER_METRICS = {
    "ascender": MetricType.Ascender,
    "descender": MetricType.Descender,
    "xHeight": MetricType.XHeight,
    "capsHeight": MetricType.CapHeight,
    "italicAngle": MetricType.ItalicAngle,
    "underlinePosition": MetricType.UnderlinePosition,
    "underlineThickness": MetricType.UnderlineThickness,
}

# info key -> Names field
INFO_NAMES = {
    "tfn": "family_name",
    "familyName": "family_name",
    "copyright": "copyright",
    "trademark": "trademark",
    "designer": "designer",
    "designerURL": "designer_url",
    "manufacturer": "manufacturer",
    "manufacturerURL": "manufacturer_url",
    "license": "license",
    "licenseURL": "license_url",
    "description": "description",
    "versionFull": "version",
}

DEFAULT_WEIGHT_AXIS = ("Weight", "wght", 100, 400, 900)


def parse_node(text):
    """Parse one node string into off-curve handles plus an on-curve point.

    A node is written ``"x y"`` optionally preceded by the coordinates of
    its incoming handles and followed by flags (``s`` for smooth).
    """
    numbers = []
    flags = set()
    for token in text.split():
        try:
            numbers.append(float(token))
        except ValueError:
            flags.add(token)
    if not numbers or len(numbers) % 2:
        raise FormatError(f"Bad node '{text}'")
    points = list(zip(numbers[::2], numbers[1::2]))
    handles, (x, y) = points[:-1], points[-1]
    if len(handles) == 0:
        nodetype = NodeType.Line
    elif len(handles) == 1:
        nodetype = NodeType.QCurve
    else:
        nodetype = NodeType.Curve
    nodes = [Node(hx, hy, NodeType.OffCurve) for hx, hy in handles]
    nodes.append(Node(x, y, nodetype, "s" in flags))
    return nodes


def load_contour(data):
    nodes = []
    for text in data.get("nodes", []):
        nodes.extend(parse_node(text))
    closed = not data.get("open", False)
    if closed and nodes:
        # The first node closes the contour: store it last.
        nodes = nodes[1:] + nodes[:1]
    elif nodes:
        nodes[0].nodetype = NodeType.Move
    return Path(nodes, closed=closed)


def _number(value):
    if isinstance(value, str):
        return [float(v) for v in value.split()]
    return value


class Convertor(BaseConvertor):
    suffixes = (".vfj",)
    can_load = True

    def _load(self):
        try:
            with open(self.path, encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError) as e:
            raise FormatError("Reading VFJ source failed", self.path) from e
        if "font" not in data:
            raise FormatError("Not a VFJ document: no 'font' object", self.path)
        return self._load_font(data["font"])

    def _load_font(self, data):
        font = Font(upm=data.get("upm", 1000))
        for key, field in INFO_NAMES.items():
            value = data.get("info", {}).get(key)
            if value is not None:
                getattr(font.names, field).set_default(value)

        for axis in data.get("axes", []):
            font.axes.append(
                Axis(
                    name=axis.get("name"),
                    tag=axis.get("tag") or axis.get("shortName"),
                    min=axis.get("minimum", axis.get("designMinimum")),
                    default=axis.get("default", axis.get("designDefault")),
                    max=axis.get("maximum", axis.get("designMaximum")),
                )
            )
        masters = [m.get("fontMaster", m) for m in data.get("masters", [])]
        if not font.axes and len(masters) > 1:
            name, tag, minimum, default, maximum = DEFAULT_WEIGHT_AXIS
            logger.warning("No axes defined; assuming a %s axis", name)
            font.axes.append(
                Axis(name=name, tag=tag, min=minimum, default=default, max=maximum)
            )

        by_name = {}
        for index, master_data in enumerate(masters):
            master = self._load_master(font, master_data, index)
            font.masters.append(master)
            by_name[master_data.get("name", master.id)] = master
        if not font.masters:
            master = Master(name="Regular", id=str(uuid.uuid4()))
            master.location = font.default_location()
            font.masters.append(master)
            by_name["Regular"] = master
        default_name = data.get("defaultMaster")
        if default_name in by_name and font.masters[0] is not by_name[default_name]:
            font.masters.remove(by_name[default_name])
            font.masters.insert(0, by_name[default_name])

        for glyph_data in data.get("glyphs", []):
            font.glyphs.append(self._load_glyph(font, glyph_data, by_name))
        return font

    def _load_master(self, font, data, index):
        master = Master(name=data.get("name", f"Master {index}"), id=str(uuid.uuid4()))
        for key, metric in MASTER_METRICS.items():
            if data.get(key) is not None:
                master.metrics[metric] = data[key]
        location = data.get("location", {})
        master.location = font.default_location()
        for axis in font.axes:
            for key in (axis.tag, axis.name.get_default()):
                if key in location:
                    master.location[axis.tag] = location[key]
        if "location" not in data and len(font.axes) == 1 and index > 0:
            # Without locations, spread masters over the synthesized axis.
            axis = font.axes[0]
            master.location[axis.tag] = axis.max if index == 1 else axis.min
        for left, pairs in data.get("kerning", {}).items():
            for right, value in pairs.items():
                master.kerning[(left, right)] = value
        return master

    def _load_glyph(self, font, data, masters):
        codepoints = data.get("unicode", "")
        try:
            codepoints = [int(cp, 16) for cp in codepoints.split(",") if cp]
        except ValueError as e:
            raise FormatError(f"Bad unicode value for glyph {data.get('name')}") from e
        glyph = Glyph(name=data["name"], codepoints=codepoints)
        default_id = font.masters[0].id
        for layer_data in data.get("layers", []):
            name = layer_data.get("name")
            master = masters.get(name)
            if master is not None:
                layer = Layer(master=DefaultForMaster(master.id), id=master.id)
            else:
                layer = Layer(
                    master=AssociatedWithMaster(default_id),
                    id=str(uuid.uuid4()),
                    name=name,
                )
            layer.width = layer_data.get("advanceWidth", 0)
            for element in layer_data.get("elements", []):
                self._load_element(layer, element)
            for anchor in layer_data.get("anchors", []):
                x, y = _number(anchor.get("point", "0 0"))
                layer.anchors.append(Anchor(anchor.get("name"), x, y))
            glyph.layers.append(layer)
        return glyph

    def _load_element(self, layer, element):
        if "component" in element:
            offset = _number(element.get("transform", {}).get("offset", "0 0"))
            scale = _number(element.get("transform", {}).get("scale", "1 1"))
            layer.shapes.append(
                Component(
                    element["component"]["glyphName"],
                    DecomposedAffine(translation=tuple(offset), scale=tuple(scale)),
                )
            )
            return
        for contour in element.get("elementData", {}).get("contours", []):
            layer.shapes.append(load_contour(contour))
