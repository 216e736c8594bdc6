import logging

from babelfont.errors import FilterError
from babelfont.filters import BaseFilter
from babelfont.layer import AssociatedWithMaster
from babelfont.variation import sparse_masters

logger = logging.getLogger(__name__)


class DropSparseMastersFilter(BaseFilter):
    """Turn sparse masters into located layers of the default master.

    A master is sparse when some glyph has no layer for it. Each of its
    master layers becomes a layer associated with the default master,
    located at the sparse master's location; the master itself is removed.
    """

    def filter(self, font):
        sparse = {master.id: master for master in sparse_masters(font)}
        if not sparse:
            return
        logger.info("Moving %d sparse masters to associated layers", len(sparse))
        target = font.default_master()
        if target is None or target.id in sparse:
            target = next((m for m in font.masters if m.id not in sparse), None)
        if target is None:
            raise FilterError("Cannot drop sparse masters: all masters are sparse")

        for glyph in font.glyphs:
            for layer in glyph.layers:
                master = sparse.get(layer.master_id)
                if master is None:
                    continue
                if layer.is_master_layer:
                    layer.location = dict(master.location)
                    if layer.name is None:
                        layer.name = master.display_name
                elif layer.location is None:
                    # Auxiliary layers of a sparse master lose their anchor
                    # point in the design space along with the master.
                    layer.location = dict(master.location)
                layer.master = AssociatedWithMaster(target.id)

        for master in sparse.values():
            if master.kerning:
                logger.warning(
                    "Dropping %d kerning pairs of sparse master '%s'",
                    len(master.kerning),
                    master.display_name,
                )
        font.masters = [m for m in font.masters if m.id not in sparse]
