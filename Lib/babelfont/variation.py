"""Variable-font resolution: location algebra, layer matching, sparse
masters and interpolation of layers and metrics.

Locations are plain ``{tag: value}`` mappings. Unless stated otherwise they
are design-space coordinates, which is what masters, instances and located
layers store.
"""

import copy
import logging
import math
import typing
from typing import Dict, List, Mapping, Optional, Tuple

import attr
import fontMath
import fontTools.misc.fixedTools
import fontTools.varLib as varLib
import ufoLib2
from fontTools.misc.transform import Transform

from babelfont.common import Anchor
from babelfont.errors import InterpolationError, ModelError
from babelfont.layer import Layer
from babelfont.shape import Component, DecomposedAffine, Path

if typing.TYPE_CHECKING:
    from babelfont.font import Font

logger = logging.getLogger(__name__)

fontMath.mathFunctions.setRoundIntegerFunction(fontTools.misc.fixedTools.otRound)

Location = Mapping[str, float]
# A Location turned into a tuple so it can be used as a dict key.
LocationKey = Tuple[Tuple[str, float], ...]
AxisBounds = Dict[str, Tuple[float, float, float]]


def location_to_key(location: Location) -> LocationKey:
    return tuple(sorted(location.items()))


def axis_bounds(axes) -> AxisBounds:
    """Design-space ``(min, default, max)`` of each axis, keyed by tag."""
    return {axis.tag: axis.design_bounds() for axis in axes}


def normalize_location(font: "Font", location: Location) -> Dict[str, float]:
    return varLib.models.normalizeLocation(location, axis_bounds(font.axes))


def userspace_to_designspace(font: "Font", location: Location) -> Dict[str, float]:
    return {
        tag: _axis(font, tag).userspace_to_designspace(value)
        for tag, value in location.items()
    }


def designspace_to_userspace(font: "Font", location: Location) -> Dict[str, float]:
    return {
        tag: _axis(font, tag).designspace_to_userspace(value)
        for tag, value in location.items()
    }


def _axis(font, tag):
    axis = font.axis(tag)
    if axis is None:
        raise ModelError(f"Location refers to unknown axis '{tag}'")
    return axis


def check_location(font: "Font", location: Location, what="Location") -> List[str]:
    """Validate a design-space location against the font's axes.

    Unknown axis tags are a ModelError. Values outside an axis' range are
    allowed but logged; their tags are returned.
    """
    flagged = []
    for tag, value in location.items():
        axis = _axis(font, tag)
        if axis.min is None or axis.max is None:
            continue
        lower, _, upper = axis.design_bounds()
        if not lower <= value <= upper:
            logger.warning(
                "%s places axis '%s' at %s, outside its range %s-%s",
                what,
                tag,
                value,
                lower,
                upper,
            )
            flagged.append(tag)
    return flagged


def complete_location(font: "Font", location: Location) -> Dict[str, float]:
    """Fill the axes missing from ``location`` from the default master."""
    return {**font.default_location(), **location}


def _distance(a: Location, b: Location) -> float:
    return math.sqrt(sum((a.get(t, 0) - b.get(t, 0)) ** 2 for t in {*a, *b}))


def located_layers(font: "Font", glyph) -> List[Tuple[Dict[str, float], Layer]]:
    """The glyph's layers that draw a point in design space, with their
    (complete) locations. Background layers are not considered."""
    result = []
    for layer in glyph.layers:
        if layer.is_background:
            continue
        location = layer.effective_location(font)
        if location is None:
            continue
        result.append((complete_location(font, location), layer))
    return result


def find_matching_layer(font: "Font", glyph, layer: Layer) -> Optional[Layer]:
    """Find the layer of ``glyph`` that corresponds to ``layer`` (usually a
    layer of another glyph).

    Master layers match the same master; otherwise the layer nearest to
    ``layer``'s location is used, falling back to the default master's layer.
    """
    if layer.is_master_layer:
        match = glyph.master_layer(layer.master_id)
        if match is not None:
            return match
    target = layer.effective_location(font)
    if target is not None and font.axes:
        target = normalize_location(font, complete_location(font, target))
        best, best_distance = None, None
        for location, candidate in located_layers(font, glyph):
            distance = _distance(target, normalize_location(font, location))
            if best_distance is None or distance < best_distance:
                best, best_distance = candidate, distance
        if best is not None:
            return best
    default = font.default_master()
    if default is not None:
        return glyph.master_layer(default.id)
    return None


def sparse_masters(font: "Font"):
    return [master for master in font.masters if master.is_sparse(font)]


def smart_component_location(glyph, component: Component, layer=None):
    """The location at which ``component`` instantiates the smart glyph
    ``glyph``, in the glyph's component-axis space.

    The component's own location wins; axes it does not set come from the
    owning layer's smart component location, then from the axis default.
    """
    location = {}
    for axis in glyph.component_axes:
        location[axis.tag] = axis.default if axis.default is not None else axis.min
    if layer is not None:
        location.update(
            (tag, value)
            for tag, value in layer.smart_component_location.items()
            if tag in location
        )
    for tag, value in component.location.items():
        if tag not in location:
            raise ModelError(
                f"Component of '{glyph.name}' sets unknown smart axis '{tag}'"
            )
        location[tag] = value
    return location


@attr.s(auto_attribs=True)
class Variator:
    """A middle-man class that ingests a mapping of normalized locations to
    masters plus axis definitions and uses varLib to spit out interpolated
    instances at specified normalized locations.

    fontMath objects stand in for the actual layers.
    """

    masters: List[fontMath.MathGlyph]
    location_to_master: Mapping[LocationKey, fontMath.MathGlyph]
    model: varLib.models.VariationModel

    @classmethod
    def from_masters(cls, items, axis_order: List[str]):
        masters = []
        master_locations = []
        location_to_master = {}
        for normalized_location, master in items:
            master_locations.append(normalized_location)
            masters.append(master)
            location_to_master[location_to_key(normalized_location)] = master
        model = varLib.models.VariationModel(master_locations, axis_order)
        return cls(masters, location_to_master, model)

    def instance_at(self, normalized_location: Location):
        """Return the interpolated object at ``normalized_location``.

        A location sitting exactly on a master returns a copy of that
        master without interpolating, so that masters need not be
        compatible when nothing has to be interpolated.
        """
        key = location_to_key(normalized_location)
        if key in self.location_to_master:
            return copy.deepcopy(self.location_to_master[key])
        return self.model.interpolateFromMasters(normalized_location, self.masters)


def layer_to_glyph(layer: Layer) -> ufoLib2.objects.Glyph:
    """Geometry of a layer as a ufoLib2 glyph, ready for fontMath."""
    glyph = ufoLib2.objects.Glyph()
    glyph.width = layer.width
    layer.drawPoints(glyph.getPointPen())
    for anchor in layer.anchors:
        glyph.appendAnchor({"name": anchor.name, "x": anchor.x, "y": anchor.y})
    return glyph


def glyph_to_layer(glyph: ufoLib2.objects.Glyph, **kwargs) -> Layer:
    layer = Layer(width=glyph.width, **kwargs)
    for component in glyph.components:
        layer.shapes.append(
            Component(
                component.baseGlyph,
                DecomposedAffine.from_transform(Transform(*component.transformation)),
            )
        )
    for contour in glyph.contours:
        layer.shapes.append(
            Path.from_points((p.x, p.y, p.type, p.smooth) for p in contour)
        )
    for anchor in glyph.anchors:
        layer.anchors.append(Anchor(anchor.name, anchor.x, anchor.y))
    return layer


def _interpolate(items, axis_order, normalized_location, what):
    try:
        variator = Variator.from_masters(items, axis_order)
        instance = variator.instance_at(normalized_location)
        glyph = ufoLib2.objects.Glyph()
        instance.extractGlyph(glyph, onlyGeometry=True)
    except Exception as e:
        raise InterpolationError(
            f"Failed to interpolate {what}. (Note: the most common cause for an "
            "error here is that the outlines are not point-for-point compatible "
            "across masters.)"
        ) from e
    return glyph


def interpolate_layer(font: "Font", glyph, location: Location) -> Layer:
    """Interpolate ``glyph`` at a design-space location.

    Master layers and located (brace) layers act as the interpolation
    masters. A location on one of them returns a copy of that layer.
    """
    location = complete_location(font, location)
    candidates = located_layers(font, glyph)
    for master_location, layer in candidates:
        if location_to_key(master_location) == location_to_key(location):
            return copy.deepcopy(layer)
    if not candidates:
        raise InterpolationError(f"Glyph '{glyph.name}' has no layers to interpolate")
    items = {}
    for master_location, layer in candidates:
        normalized = normalize_location(font, master_location)
        key = location_to_key(normalized)
        if key not in items:
            items[key] = (normalized, fontMath.MathGlyph(layer_to_glyph(layer)))
    items = list(items.values())
    result = _interpolate(
        items,
        [axis.tag for axis in font.axes],
        normalize_location(font, location),
        f"glyph '{glyph.name}' at {location}",
    )
    return glyph_to_layer(result, location=dict(location))


def interpolate_smart_layer(glyph, location: Location, master_id=None) -> Layer:
    """Interpolate a smart glyph in its own component-axis space.

    The glyph's layers belonging to ``master_id`` act as masters: each sits
    at its ``smart_component_location``, with unset axes at the default.
    """
    if not glyph.component_axes:
        raise InterpolationError(f"Glyph '{glyph.name}' has no smart component axes")
    bounds = {}
    for axis in glyph.component_axes:
        default = axis.default if axis.default is not None else axis.min
        bounds[axis.tag] = (axis.min, default, axis.max)
    defaults = {tag: b[1] for tag, b in bounds.items()}
    layers = [
        layer
        for layer in glyph.layers
        if not layer.is_background
        and (master_id is None or layer.master_id == master_id)
        and (layer.is_master_layer or layer.smart_component_location)
    ]
    if not layers:
        raise InterpolationError(
            f"Glyph '{glyph.name}' has no layers for master '{master_id}'"
        )
    items = []
    for layer in layers:
        layer_location = {**defaults, **layer.smart_component_location}
        items.append(
            (
                varLib.models.normalizeLocation(layer_location, bounds),
                fontMath.MathGlyph(layer_to_glyph(layer)),
            )
        )
    normalized = varLib.models.normalizeLocation({**defaults, **location}, bounds)
    result = _interpolate(
        items, list(bounds), normalized, f"smart glyph '{glyph.name}' at {location}"
    )
    return glyph_to_layer(result)


def master_for_instance(font: "Font", instance):
    """The master sitting exactly at the instance's location, if any."""
    key = location_to_key(complete_location(font, instance.location))
    for master in font.masters:
        if location_to_key(complete_location(font, master.location)) == key:
            return master
    return None


def instance_metrics(font: "Font", instance) -> Dict[str, float]:
    """Vertical metrics of an instance.

    An instance on a master gets that master's metrics. Otherwise each
    metric defined by every master is interpolated; other metrics come
    from the default master.
    """
    master = master_for_instance(font, instance)
    if master is not None:
        return dict(master.metrics)
    default = font.default_master()
    if default is None:
        return {}
    location = normalize_location(font, complete_location(font, instance.location))
    master_locations = [
        normalize_location(font, complete_location(font, m.location))
        for m in font.masters
    ]
    model = varLib.models.VariationModel(
        master_locations, [axis.tag for axis in font.axes]
    )
    metrics = {}
    for name, value in default.metrics.items():
        values = [m.metrics.get(name) for m in font.masters]
        if any(v is None for v in values):
            metrics[name] = value
            continue
        metrics[name] = model.interpolateFromMasters(location, values)
    return metrics
