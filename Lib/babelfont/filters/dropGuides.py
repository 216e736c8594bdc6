import logging

from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DropGuidesFilter(BaseFilter):
    def filter(self, font):
        logger.info("Dropping all guides")
        for master in font.masters:
            master.guides.clear()
        for glyph in font.glyphs:
            for layer in glyph.layers:
                layer.guides.clear()
