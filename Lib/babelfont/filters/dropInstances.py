import logging

from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DropInstancesFilter(BaseFilter):
    """Remove the named instances (by name or id), or all of them."""

    _kwargs = {"instances": None}

    def filter(self, font):
        if self.instances is None:
            logger.info("Dropping all instances")
            font.instances = []
            return
        names = set(self.instances)
        font.instances = [
            instance
            for instance in font.instances
            if instance.id not in names and instance.display_name not in names
        ]
