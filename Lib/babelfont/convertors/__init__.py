"""Readers and writers for font source formats.

Each format lives in a module of this package defining a subclass of
:class:`BaseConvertor`. ``load`` picks a convertor by looking at the path;
``save`` by looking at the output file name.
"""

import importlib
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager

from babelfont.errors import BabelfontError, FormatError, UnsupportedFeatureError
from babelfont.shape import Component

logger = logging.getLogger(__name__)

# Module names, in the order convertors are tried.
CONVERTORS = ("babelfont", "designspace", "ufo", "glyphs", "fontra", "vfj")


class BaseConvertor:
    """Base class for format convertors.

    Subclasses list their file extensions in ``suffixes`` and implement
    ``_load`` and/or ``_save``. While saving, lossy conversions are
    reported with :meth:`warn`.
    """

    suffixes = ()
    can_load = False
    can_save = False

    def __init__(self, path):
        self.path = os.fspath(path)
        self.font = None
        self.warnings = []
        self.strict = False

    @classmethod
    def recognizes(cls, path):
        """Return True if ``path`` looks like a file in this format."""
        suffix = os.path.splitext(os.fspath(path).rstrip("/\\"))[1]
        return suffix.lower() in cls.suffixes

    @classmethod
    def load(cls, path):
        convertor = cls(path)
        logger.info("Loading %s", convertor.path)
        if not os.path.exists(convertor.path):
            raise FormatError("No such file or directory", convertor.path)
        try:
            font = convertor._load()
            font.validate()
        except BabelfontError as e:
            if e.source_trail[-1] is None:
                e.source_trail[-1] = convertor.path
            raise
        font.source = convertor.path
        return font

    @classmethod
    def save(cls, font, path, strict=False):
        """Write ``font`` to ``path`` and return the list of warnings."""
        convertor = cls(path)
        convertor.font = font
        convertor.strict = strict
        logger.info("Saving %s", convertor.path)
        convertor._save()
        return convertor.warnings

    def _load(self):
        raise NotImplementedError

    def _save(self):
        raise NotImplementedError

    def warn(self, message):
        """Record a construct the target format cannot express."""
        error = UnsupportedFeatureError(message, self.path)
        if self.strict:
            raise error
        logger.warning("%s", message)
        self.warnings.append(error)


def shape_order(shapes):
    """Spell the order of a layer's shapes, one ``P`` or ``C`` per shape."""
    return "".join("C" if isinstance(shape, Component) else "P" for shape in shapes)


def merge_shapes(paths, components, order=None):
    """Interleave paths and components as spelled by :func:`shape_order`.

    Paths come first when there is no order or it does not fit the counts.
    """
    paths, components = list(paths), list(components)
    if (
        not order
        or len(order) != len(paths) + len(components)
        or order.count("C") != len(components)
    ):
        return paths + components
    paths, components = iter(paths), iter(components)
    return [next(components) if kind == "C" else next(paths) for kind in order]


def _convertor_classes():
    for name in CONVERTORS:
        module = importlib.import_module("." + name, __name__)
        yield module.Convertor


def find_convertor(path, operation):
    for convertor in _convertor_classes():
        if getattr(convertor, "can_" + operation) and convertor.recognizes(path):
            return convertor
    return None


def load(path):
    convertor = find_convertor(path, "load")
    if convertor is None:
        raise FormatError("Don't know how to read this format", os.fspath(path))
    return convertor.load(path)


def save(font, path, strict=False):
    convertor = find_convertor(path, "save")
    if convertor is None:
        raise FormatError("Don't know how to write this format", os.fspath(path))
    return convertor.save(font, path, strict=strict)


def supported_suffixes(operation):
    return sorted(
        suffix
        for convertor in _convertor_classes()
        if getattr(convertor, "can_" + operation)
        for suffix in convertor.suffixes
    )


@contextmanager
def atomic_output(path):
    """Yield a temporary path to write ``path`` to; it is moved into place
    only if the block succeeds. Works for files and directories."""
    path = os.path.abspath(os.fspath(path))
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    tmpdir = tempfile.mkdtemp(prefix=".babelfont-", dir=directory)
    try:
        tmp = os.path.join(tmpdir, os.path.basename(path))
        yield tmp
        replace(tmp, path)
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def replace(src, dst):
    """Move ``src`` over ``dst``, which may be an existing directory."""
    if os.path.isdir(dst) and not os.path.islink(dst):
        backup = dst + ".babelfont-old"
        os.rename(dst, backup)
        try:
            os.rename(src, dst)
        except OSError:
            os.rename(backup, dst)
            raise
        shutil.rmtree(backup)
    else:
        os.replace(src, dst)
