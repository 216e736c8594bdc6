import logging
from typing import Any, Dict, List, Optional, Union

import attr

from babelfont.common import Anchor, Color, Guide, Owned, adopt_children, owned
from babelfont.errors import MissingReferenceError, ModelError
from babelfont.shape import Component, Path, Shape

logger = logging.getLogger(__name__)


@attr.s(frozen=True, auto_attribs=True)
class DefaultForMaster:
    """The layer is the main drawing of a master."""

    id: str


@attr.s(frozen=True, auto_attribs=True)
class AssociatedWithMaster:
    """An auxiliary layer (brace, bracket, background...) of a master."""

    id: str


@attr.s(frozen=True)
class FreeFloating:
    """A layer not tied to any master."""


LayerType = Union[DefaultForMaster, AssociatedWithMaster, FreeFloating]


@attr.s(auto_attribs=True)
class Layer(Owned):
    width: float = 0
    name: Optional[str] = None
    id: Optional[str] = None
    master: LayerType = attr.Factory(FreeFloating)
    guides: List[Guide] = owned()
    shapes: List[Shape] = owned()
    anchors: List[Anchor] = owned()
    color: Optional[Color] = None
    layer_index: Optional[int] = None
    is_background: bool = False
    background_layer_id: Optional[str] = None
    location: Optional[Dict[str, float]] = None
    smart_component_location: Dict[str, float] = attr.Factory(dict)
    format_specific: Dict[str, Any] = attr.Factory(dict)

    def __attrs_post_init__(self):
        adopt_children(self)

    @property
    def glyph(self):
        return self.parent

    @property
    def paths(self):
        return [shape for shape in self.shapes if isinstance(shape, Path)]

    @property
    def components(self):
        return [shape for shape in self.shapes if isinstance(shape, Component)]

    @property
    def master_id(self):
        return getattr(self.master, "id", None)

    @property
    def is_master_layer(self):
        return isinstance(self.master, DefaultForMaster)

    def anchor(self, name):
        for anchor in self.anchors:
            if anchor.name == name:
                return anchor
        return None

    def effective_location(self, font):
        """The design-space location this layer draws, or None.

        Master layers sit at their master's location. Located layers use
        their own location, with missing axes taken from their master (or
        from the font default when free floating).
        """
        base = None
        if self.master_id is not None:
            master = font.master(self.master_id)
            if master is not None:
                base = master.location
        if self.location is None:
            if self.is_master_layer and base is not None:
                return dict(base)
            return None
        if base is None:
            base = font.default_location()
        return {**base, **self.location}

    def drawPoints(self, pointPen):
        for shape in self.shapes:
            shape.drawPoints(pointPen)

    def decompose(self, font, only=None):
        """Replace components by transformed copies of their outlines.

        Each component's referenced glyph contributes the layer matching
        this one (see ``Font.matching_layer``); nested components are
        flattened depth first. When ``only`` is given, just the components
        for which ``only(reference)`` is true are decomposed.
        """
        shapes = []
        for shape in self.shapes:
            if isinstance(shape, Component) and (
                only is None or only(shape.reference)
            ):
                shapes.extend(self._flatten(font, shape))
            else:
                shapes.append(shape)
        self.shapes = shapes

    def _flatten(self, font, component):
        paths = []
        stack = [(component, component.transform.to_transform(), ())]
        while stack:
            component, transform, chain = stack.pop()
            if component.reference in chain:
                raise ModelError(
                    "Cyclic component reference: "
                    + " -> ".join(chain + (component.reference,))
                )
            glyph = font.glyphs.get(component.reference)
            if glyph is None:
                raise MissingReferenceError(
                    f"Component references unknown glyph '{component.reference}'"
                )
            layer = font.matching_layer(glyph, self)
            if layer is None:
                logger.warning(
                    "Glyph '%s' has no layer to decompose into '%s'",
                    glyph.name,
                    self.glyph.name if self.glyph is not None else self.name,
                )
                continue
            for path in layer.paths:
                paths.append(path.transformed(transform))
            chain = chain + (component.reference,)
            for nested in reversed(layer.components):
                nested_transform = transform.transform(nested.transform.to_transform())
                stack.append((nested, nested_transform, chain))
        return paths
