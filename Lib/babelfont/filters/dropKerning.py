import logging
import re

from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DropKerningFilter(BaseFilter):
    """Remove all kerning, and the kerning groups nothing else refers to."""

    def filter(self, font):
        logger.info("Dropping all kerning")
        for master in font.masters:
            master.kerning = {}
        code = "\n".join(font.features.all_code())
        for side in ("first_kern_groups", "second_kern_groups"):
            groups = getattr(font, side)
            setattr(
                font,
                side,
                {
                    name: members
                    for name, members in groups.items()
                    if re.search(r"@%s(?![\w.])" % re.escape(name), code)
                },
            )
