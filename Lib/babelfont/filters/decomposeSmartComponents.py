import logging

from babelfont.errors import MissingReferenceError
from babelfont.filters import BaseFilter
from babelfont.shape import Component, DecomposedAffine
from babelfont.variation import interpolate_smart_layer, smart_component_location

logger = logging.getLogger(__name__)


class DecomposeSmartComponentsFilter(BaseFilter):
    """Replace smart components by their outline at the component's
    location in the referenced glyph's component-axis space.

    ``glyphs`` limits the glyphs whose layers are processed.
    """

    _kwargs = {"glyphs": None}

    def filter(self, font):
        only = set(self.glyphs) if self.glyphs else None
        for glyph in font.glyphs:
            if only is not None and glyph.name not in only:
                continue
            for layer in glyph.layers:
                if not any(self._is_smart(font, c) for c in layer.components):
                    continue
                shapes = []
                for shape in layer.shapes:
                    if isinstance(shape, Component) and self._is_smart(font, shape):
                        shapes.extend(self._decompose(font, layer, shape))
                    else:
                        shapes.append(shape)
                layer.shapes = shapes

    @staticmethod
    def _is_smart(font, component):
        reference = font.glyphs.get(component.reference)
        if reference is None:
            raise MissingReferenceError(
                f"Component refers to unknown glyph '{component.reference}'"
            )
        return bool(reference.component_axes)

    def _decompose(self, font, layer, component):
        smart_glyph = font.glyphs.get(component.reference)
        location = smart_component_location(smart_glyph, component, layer)
        master_id = layer.master_id
        if master_id is None or not smart_glyph.layers_for_master(master_id):
            default = font.default_master()
            master_id = default.id if default is not None else None
        logger.debug(
            "Decomposing smart component %s at %s", smart_glyph.name, location
        )
        instance = interpolate_smart_layer(smart_glyph, location, master_id)
        transform = component.transform.to_transform()
        shapes = [path.transformed(transform) for path in instance.paths]
        for nested in instance.components:
            shapes.append(
                Component(
                    nested.reference,
                    DecomposedAffine.from_transform(
                        transform.transform(nested.transform.to_transform()),
                        component.transform.order,
                    ),
                )
            )
        return shapes
