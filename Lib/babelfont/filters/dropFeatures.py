import logging

from babelfont.features import Features
from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)


class DropFeaturesFilter(BaseFilter):
    def filter(self, font):
        logger.info("Dropping all features")
        font.features = Features()
