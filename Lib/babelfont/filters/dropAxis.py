import logging

from babelfont.filters import BaseFilter
from babelfont.variation import location_to_key

logger = logging.getLogger(__name__)


class DropAxisFilter(BaseFilter):
    """Remove an axis and its coordinate from every location.

    Masters whose remaining locations coincide are reported and returned,
    not merged. With ``prune=True``, masters and located layers that are not
    at the axis default are removed first, which leaves the default slice
    of the design space.
    """

    _args = ("axis",)
    _kwargs = {"prune": False}

    def filter(self, font):
        tag = self.axis
        axis = font.axis(tag)
        if axis is None:
            logger.warning("Axis %s not found in font axes", tag)
            return []
        logger.info("Dropping axis %s", tag)
        default = axis.userspace_to_designspace(axis.default)

        if self.prune:
            dropped = {
                master.id
                for master in font.masters
                if master.location.get(tag, default) != default
            }
            for glyph in font.glyphs:
                glyph.layers = [
                    layer
                    for layer in glyph.layers
                    if not (layer.is_master_layer and layer.master_id in dropped)
                    and (layer.location or {}).get(tag, default) == default
                ]
            font.masters = [m for m in font.masters if m.id not in dropped]

        for master in font.masters:
            master.location.pop(tag, None)
        for instance in font.instances:
            instance.location.pop(tag, None)
        for glyph in font.glyphs:
            for layer in glyph.layers:
                if layer.location is not None:
                    layer.location.pop(tag, None)
        font.axes = [a for a in font.axes if a.tag != tag]

        seen = {}
        for master in font.masters:
            seen.setdefault(location_to_key(master.location), []).append(master.id)
        duplicates = [ids for ids in seen.values() if len(ids) > 1]
        for ids in duplicates:
            logger.warning(
                "Masters %s share a location after dropping axis %s",
                ", ".join(ids),
                tag,
            )
        return duplicates
