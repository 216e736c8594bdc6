import json
import logging

from babelfont import codec
from babelfont.convertors import BaseConvertor, atomic_output
from babelfont.errors import FormatError

logger = logging.getLogger(__name__)


class Convertor(BaseConvertor):
    """The canonical ``.babelfont`` JSON serialization."""

    suffixes = (".babelfont",)
    can_load = True
    can_save = True

    @classmethod
    def recognizes(cls, path):
        if super().recognizes(path):
            return True
        # A JSON file is accepted if it looks like a babelfont document.
        if not str(path).endswith(".json"):
            return False
        try:
            with open(path, encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError):
            return False
        return isinstance(data, dict) and "masters" in data and "glyphs" in data

    def _load(self):
        try:
            with open(self.path, encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError) as e:
            raise FormatError("Reading babelfont file failed", self.path) from e
        return codec.load(data)

    def _save(self):
        text = codec.dumps(self.font)
        with atomic_output(self.path) as tmp:
            with open(tmp, "w", encoding="utf-8") as fp:
                fp.write(text)
                fp.write("\n")
