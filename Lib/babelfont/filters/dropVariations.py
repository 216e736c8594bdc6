import logging

from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DropVariationsFilter(BaseFilter):
    """Reduce the font to its default master: no axes, no instances."""

    def filter(self, font):
        default = font.default_master()
        if default is None:
            logger.warning("No default master found; cannot drop variations")
            return
        logger.info("Keeping only master '%s'", default.display_name)
        default.location = {}
        font.masters = [default]
        font.axes = []
        font.instances = []
        for glyph in font.glyphs:
            glyph.layers = [
                layer
                for layer in glyph.layers
                if layer.is_master_layer and layer.master_id == default.id
            ]
