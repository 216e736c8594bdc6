import copy
import logging

from babelfont.errors import MissingReferenceError
from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class RetainGlyphsFilter(BaseFilter):
    """Keep only the named glyphs.

    Components in retained glyphs which refer to a dropped glyph are
    decomposed. Kerning pairs and kerning group members naming dropped
    glyphs are removed too.
    """

    _args = ("glyphs",)

    def start(self):
        if isinstance(self.glyphs, str):
            self.glyphs = [g for g in self.glyphs.split(",") if g]
        self.glyphs = list(self.glyphs)

    def filter(self, font):
        keep = set(self.glyphs)
        logger.info("Retaining %d glyphs", len(keep))
        missing = keep.difference(font.glyphs.names())
        if missing:
            logger.warning("Glyphs to retain not in font: %s", sorted(missing))

        snapshot = copy.deepcopy(font)
        for glyph in font.glyphs:
            if glyph.name not in keep:
                continue
            for layer in glyph.layers:
                for component in layer.components:
                    if component.reference not in snapshot.glyphs:
                        raise MissingReferenceError(
                            f"Glyph '{glyph.name}' has a component referring to "
                            f"unknown glyph '{component.reference}'"
                        )
                layer.decompose(snapshot, only=lambda name: name not in keep)

        dropped = set(font.glyphs.names()) - keep
        font.glyphs = [g for g in font.glyphs if g.name in keep]
        _prune_kerning(font, keep)
        _prune_classes(font, dropped)
        if dropped and (font.features.features or font.features.prefixes):
            logger.warning(
                "Feature code is kept as is and may refer to %d dropped glyphs",
                len(dropped),
            )


def _prune_kerning(font, keep):
    live_groups = {}
    for side in ("first_kern_groups", "second_kern_groups"):
        groups = {}
        for name, members in getattr(font, side).items():
            members = [m for m in members if m in keep]
            if members:
                groups[name] = members
        setattr(font, side, groups)
        live_groups[side] = set(groups)

    def alive(item, side):
        if item.startswith("@"):
            return item[1:] in live_groups[side]
        return item in keep

    for master in font.masters:
        master.kerning = {
            (left, right): value
            for (left, right), value in master.kerning.items()
            if alive(left, "first_kern_groups") and alive(right, "second_kern_groups")
        }


def _prune_classes(font, dropped):
    for name, code in list(font.features.classes.items()):
        tokens = code.split()
        kept = [token for token in tokens if token not in dropped]
        if len(kept) != len(tokens):
            font.features.classes[name] = " ".join(kept)
