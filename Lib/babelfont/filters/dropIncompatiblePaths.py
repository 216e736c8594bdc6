import logging

from babelfont.filters import BaseFilter
from babelfont.shape import Path

logger = logging.getLogger(__name__)


class DropIncompatiblePathsFilter(BaseFilter):
    """Make glyphs interpolatable by removing the paths that are not.

    Only master layers and located layers are compared. When they disagree
    on the number of paths, all paths of the glyph are dropped; otherwise
    each path whose node count or node types differ between layers is
    dropped from each of them. Background and other layers are left alone.
    """

    def filter(self, font):
        for glyph in font.glyphs:
            layers = [
                layer
                for layer in glyph.layers
                if layer.is_master_layer or layer.location is not None
            ]
            if len(layers) < 2:
                continue
            first, others = layers[0], layers[1:]
            first_paths = first.paths
            if any(len(layer.paths) != len(first_paths) for layer in others):
                logger.info(
                    "Dropping paths for glyph '%s' due to incompatible number "
                    "of paths",
                    glyph.name,
                )
                for layer in layers:
                    layer.shapes = [s for s in layer.shapes if not isinstance(s, Path)]
                continue

            bad = set()
            for index, path in enumerate(first_paths):
                for layer in others:
                    if layer.paths[index].structure() != path.structure():
                        bad.add(index)
                        break
            if not bad:
                continue
            logger.info(
                "Dropping %d incompatible paths from glyph '%s'", len(bad), glyph.name
            )
            for layer in layers:
                shapes, index = [], 0
                for shape in layer.shapes:
                    if isinstance(shape, Path):
                        index += 1
                        if index - 1 in bad:
                            continue
                    shapes.append(shape)
                layer.shapes = shapes
