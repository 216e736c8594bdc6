"""Glyphs sources, read and written through glyphsLib.

Glyphs files are converted to and from a DesignSpace document with UFO
masters, which is then handled like any other DesignSpace.
"""

import logging
import os

import glyphsLib
import ufoLib2

from babelfont.convertors import BaseConvertor, atomic_output
from babelfont.convertors.designspace import DesignspaceBuilder, load_designspace
from babelfont.errors import FormatError

logger = logging.getLogger(__name__)

GLYPHS_KEY = "glyphs"
PACKAGE_SUFFIX = ".glyphspackage"
DEFAULT_FORMAT_VERSION = 3


class Convertor(BaseConvertor):
    suffixes = (".glyphs", PACKAGE_SUFFIX)
    can_load = True
    can_save = True

    def _load(self):
        try:
            gsfont = glyphsLib.GSFont(self.path)
        except Exception as e:
            raise FormatError("Reading Glyphs source failed", self.path) from e
        try:
            doc = glyphsLib.to_designspace(gsfont, ufo_module=ufoLib2, minimal=False)
        except Exception as e:
            raise FormatError("Converting Glyphs source failed", self.path) from e
        font = load_designspace(doc)
        font.format_specific[GLYPHS_KEY] = {
            "format_version": gsfont.format_version
        }
        return font

    def _save(self):
        if self.path.rstrip("/\\").endswith(PACKAGE_SUFFIX):
            raise FormatError("Writing Glyphs packages is not supported", self.path)
        doc = DesignspaceBuilder(self.font, self.warn).build()
        try:
            gsfont = glyphsLib.to_glyphs(doc, ufo_module=ufoLib2)
        except Exception as e:
            raise FormatError("Converting to Glyphs failed", self.path) from e
        stash = self.font.format_specific.get(GLYPHS_KEY, {})
        gsfont.format_version = stash.get("format_version", DEFAULT_FORMAT_VERSION)
        logger.debug(
            "Writing %s as Glyphs %d",
            os.path.basename(self.path),
            gsfont.format_version,
        )
        with atomic_output(self.path) as tmp:
            gsfont.save(tmp)
