import logging

from babelfont.filters import BaseFilter
from babelfont.master import UNSCALED_METRICS

logger = logging.getLogger(__name__)

# Vertical advances, which only format-specific data carries.
VERTICAL_ADVANCES = (("ufo", "height"), ("fontra", "yAdvance"))


class ScaleUpemFilter(BaseFilter):
    """Change the units per em, scaling every measurement in font units.

    Node coordinates, component offsets, anchor and guide positions, advance
    widths and heights, metrics and kerning are multiplied by
    ``new_upm / upm``. Angles and axis ranges are left alone.
    """

    _args = ("upm",)

    def start(self):
        self.upm = int(self.upm)
        if self.upm <= 0:
            raise ValueError(f"units per em must be positive, not {self.upm}")

    def filter(self, font):
        factor = self.upm / font.upm
        logger.info("Scaling upem from %d to %d (x%g)", font.upm, self.upm, factor)
        if factor == 1:
            return

        def scale_guides(guides):
            for guide in guides:
                guide.pos.x *= factor
                guide.pos.y *= factor

        for master in font.masters:
            master.metrics = {
                name: value if name in UNSCALED_METRICS else value * factor
                for name, value in master.metrics.items()
            }
            master.kerning = {
                pair: value * factor for pair, value in master.kerning.items()
            }
            scale_guides(master.guides)

        for glyph in font.glyphs:
            for layer in glyph.layers:
                layer.width *= factor
                for key, field in VERTICAL_ADVANCES:
                    stash = layer.format_specific.get(key, {})
                    if stash.get(field) is not None:
                        stash[field] *= factor
                scale_guides(layer.guides)
                for anchor in layer.anchors:
                    anchor.x *= factor
                    anchor.y *= factor
                for shape in layer.shapes:
                    if hasattr(shape, "nodes"):
                        for node in shape.nodes:
                            node.x *= factor
                            node.y *= factor
                    else:
                        x, y = shape.transform.translation
                        shape.transform.translation = (x * factor, y * factor)
        font.upm = self.upm
