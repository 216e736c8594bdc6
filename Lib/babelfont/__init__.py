try:
    from ._version import version as __version__
except ImportError:
    __version__ = "0.0.0+unknown"

from babelfont.convertors import load, save
from babelfont.font import Font

__all__ = ["Font", "load", "save", "__version__"]
