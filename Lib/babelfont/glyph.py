import enum
from typing import Any, Dict, List, Optional

import attr

from babelfont.axis import Axis
from babelfont.common import Direction, Owned, adopt_children, owned
from babelfont.layer import Layer


class GlyphCategory(enum.Enum):
    Base = "base"
    Mark = "mark"
    Unknown = "unknown"
    Ligature = "ligature"


@attr.s(auto_attribs=True)
class Glyph(Owned):
    name: str
    production_name: Optional[str] = None
    category: GlyphCategory = GlyphCategory.Base
    codepoints: List[int] = attr.Factory(list)
    layers: List[Layer] = owned()
    exported: bool = True
    direction: Optional[Direction] = None
    # Axes of the glyph's own smart-component variation space.
    component_axes: List[Axis] = attr.Factory(list)
    format_specific: Dict[str, Any] = attr.Factory(dict)

    def __attrs_post_init__(self):
        adopt_children(self)

    def master_layer(self, master_id):
        for layer in self.layers:
            if layer.is_master_layer and layer.master_id == master_id:
                return layer
        return None

    def layers_for_master(self, master_id):
        return [layer for layer in self.layers if layer.master_id == master_id]

    def layer(self, layer_id):
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None
