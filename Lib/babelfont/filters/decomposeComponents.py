import copy
import logging

from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DecomposeComponentsFilter(BaseFilter):
    """Decompose components into outlines.

    With no ``glyphs`` every component is decomposed; otherwise only the
    components referring to one of the listed glyphs.
    """

    _kwargs = {"glyphs": None}

    def start(self):
        if isinstance(self.glyphs, str):
            self.glyphs = [g for g in self.glyphs.split(",") if g]

    def filter(self, font):
        only = None
        if self.glyphs:
            references = set(self.glyphs)
            only = references.__contains__
        snapshot = copy.deepcopy(font)
        count = 0
        for glyph in font.glyphs:
            for layer in glyph.layers:
                before = len(layer.components)
                layer.decompose(snapshot, only=only)
                count += before - len(layer.components)
        logger.info("Decomposed %d components", count)
