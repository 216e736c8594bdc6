import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

import attr

from babelfont import variation
from babelfont.axis import Axis
from babelfont.common import (
    AxisList,
    GlyphList,
    HasOTValues,
    IdList,
    OTValue,
    adopt_children,
    owned,
)
from babelfont.errors import MissingReferenceError, ModelError
from babelfont.features import Features
from babelfont.glyph import Glyph
from babelfont.instance import Instance
from babelfont.master import Master
from babelfont.names import Names

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True)
class Font(HasOTValues):
    """The root of the font model.

    Glyphs, masters, instances and axes are owned lists: whatever is put in
    them gets its ``parent`` pointed at the owner. They are also indexed, by
    glyph name, id and axis tag respectively.
    """

    upm: int = 1000
    version: Tuple[int, int] = (1, 0)
    axes: List[Axis] = owned(AxisList)
    instances: List[Instance] = owned(IdList)
    masters: List[Master] = owned(IdList)
    glyphs: List[Glyph] = owned(GlyphList)
    note: Optional[str] = None
    date: datetime.datetime = attr.Factory(datetime.datetime.now)
    names: Names = attr.Factory(Names)
    custom_ot_values: List[OTValue] = attr.Factory(list)
    features: Features = attr.Factory(Features)
    first_kern_groups: Dict[str, List[str]] = attr.Factory(dict)
    second_kern_groups: Dict[str, List[str]] = attr.Factory(dict)
    format_specific: Dict[str, Any] = attr.Factory(dict)
    # Where the font was loaded from; not part of the font data.
    source: Optional[str] = attr.ib(default=None, eq=False, repr=False)

    def __attrs_post_init__(self):
        adopt_children(self)

    def __repr__(self):
        return "<%s.%s %r glyphs=%d masters=%d>" % (
            self.__class__.__module__,
            self.__class__.__name__,
            self.names.family_name.get_default(),
            len(self.glyphs),
            len(self.masters),
        )

    def axis(self, tag):
        return self.axes.get(tag)

    def master(self, id_or_name):
        master = self.masters.get(id_or_name)
        if master is not None:
            return master
        for master in self.masters:
            if master.name.get_default() == id_or_name:
                return master
        return None

    def instance(self, id_or_name):
        instance = self.instances.get(id_or_name)
        if instance is not None:
            return instance
        for instance in self.instances:
            if instance.display_name == id_or_name:
                return instance
        return None

    def default_location(self):
        """Design-space location of the axis defaults."""
        return {
            axis.tag: axis.userspace_to_designspace(axis.default)
            for axis in self.axes
            if axis.default is not None
        }

    def default_master(self):
        default = self.default_location()
        for master in self.masters:
            if {**default, **master.location} == default:
                return master
        return self.masters[0] if self.masters else None

    def master_layer_for(self, glyph, master):
        if isinstance(glyph, str):
            glyph = self.glyphs.get(glyph)
        if isinstance(master, str):
            master = self.master(master)
        if glyph is None or master is None:
            return None
        return glyph.master_layer(master.id)

    def matching_layer(self, glyph, layer):
        return variation.find_matching_layer(self, glyph, layer)

    def default_metric(self, name):
        master = self.default_master()
        if master is None:
            return None
        return master.metrics.get(name)

    def validate(self, check_ranges=True):
        """Check the referential integrity of the font.

        Raises ModelError (or MissingReferenceError for components) on the
        first problem found. Unless ``check_ranges`` is false, locations
        outside an axis' range are logged, and the descriptions of the
        entities placing them there are returned.
        """
        tags = [axis.tag for axis in self.axes]
        if len(set(tags)) != len(tags):
            raise ModelError(f"Duplicate axis tags: {tags}")
        for axis in self.axes:
            axis.check()
        tags = set(tags)
        flagged = []
        ids = [master.id for master in self.masters]
        if len(set(ids)) != len(ids):
            raise ModelError(f"Duplicate master ids: {ids}")
        for kind, items in (("Master", self.masters), ("Instance", self.instances)):
            for item in items:
                if set(item.location) != tags:
                    raise ModelError(
                        f"{kind} '{item.display_name}' has location axes "
                        f"{sorted(item.location)}, font has {sorted(tags)}"
                    )
                what = f"{kind} '{item.display_name}'"
                if check_ranges and variation.check_location(
                    self, item.location, what
                ):
                    flagged.append(what)
        names = set()
        for glyph in self.glyphs:
            if glyph.name in names:
                raise ModelError(f"Duplicate glyph name '{glyph.name}'")
            names.add(glyph.name)
        for glyph in self.glyphs:
            for layer in glyph.layers:
                if layer.master_id is not None and self.master(layer.master_id) is None:
                    raise ModelError(
                        f"Layer '{layer.name}' of glyph '{glyph.name}' refers to "
                        f"unknown master '{layer.master_id}'"
                    )
                if layer.location is not None:
                    unknown = set(layer.location) - tags
                    if unknown:
                        raise ModelError(
                            f"Layer '{layer.name}' of glyph '{glyph.name}' refers to "
                            f"unknown axes {sorted(unknown)}"
                        )
                    what = f"Layer '{layer.name or layer.id}' of glyph '{glyph.name}'"
                    if check_ranges and variation.check_location(
                        self, layer.location, what
                    ):
                        flagged.append(what)
                for component in layer.components:
                    if component.reference not in names:
                        raise MissingReferenceError(
                            f"Glyph '{glyph.name}' has a component referring to "
                            f"unknown glyph '{component.reference}'"
                        )
        return flagged

    def _take(self, other):
        """Replace this font's contents with those of ``other``."""
        for field in attr.fields(type(self)):
            setattr(self, field.name, getattr(other, field.name))
