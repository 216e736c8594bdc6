# Copyright 2015 Google Inc. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import os

from fontTools.misc.loggingTools import Timer, configLogger

from babelfont import convertors
from babelfont.compatibility import CompatibilityChecker
from babelfont.errors import BabelfontError, FormatError
from babelfont.filters import applyFilters

logger = logging.getLogger(__name__)
timer = Timer(logging.getLogger("babelfont.timer"), level=logging.DEBUG)


class BabelfontProject:
    """Provides methods for converting font sources."""

    def __init__(self, timing=False, verbose="INFO", strict=False):
        logging.basicConfig(level=getattr(logging, verbose.upper()))
        logging.getLogger("fontTools").setLevel(logging.WARNING)
        if timing:
            configLogger(logger=timer.logger, level=logging.DEBUG)
        self.strict = strict

    @timer()
    def load(self, path):
        return convertors.load(path)

    @timer()
    def apply_filters(self, font, filters):
        for filter_ in filters:
            logger.info("Applying %s", filter_)
        return applyFilters(font, filters)

    @timer()
    def save(self, font, path):
        """Write the font and return the writer's warnings."""
        warnings = convertors.save(font, path, strict=self.strict)
        if warnings:
            logger.info(
                "%d construct(s) could not be saved in %s",
                len(warnings),
                os.path.basename(path),
            )
        return warnings

    @timer()
    def check_compatibility(self, font):
        if not CompatibilityChecker(font).check():
            raise BabelfontError("Compatibility check failed", font.source)

    def run(self, input_path, output_path, filters=(), check_compatibility=False):
        """Load ``input_path``, filter it and save it as ``output_path``."""
        if convertors.find_convertor(output_path, "save") is None:
            raise FormatError(
                "Don't know how to write this format; expected one of %s"
                % ", ".join(convertors.supported_suffixes("save")),
                output_path,
            )
        font = self.load(input_path)
        if filters:
            self.apply_filters(font, filters)
        if check_compatibility:
            self.check_compatibility(font)
        return self.save(font, output_path)
