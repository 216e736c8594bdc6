"""Filters transform a loaded Font.

A filter is a class deriving from :class:`BaseFilter`, living in a module of
this package named after it: the ``dropAxis`` module defines
``DropAxisFilter``. Filters are applied in order, each to the result of the
previous one; a filter either succeeds or leaves the font untouched.
"""

import ast
import copy
import importlib
import logging
import re

from fontTools.misc.loggingTools import Timer

from babelfont.errors import BabelfontError, FilterError, ModelError

logger = logging.getLogger(__name__)


def getFilterClass(filterName, pkg="babelfont.filters"):
    """Given a filter name, import and return the filter class.
    By default, filter modules are searched within the ``babelfont.filters``
    package.
    """
    # if filter name is 'Foo Bar', the module should be called 'fooBar'
    filterName = filterName.replace(" ", "")
    moduleName = filterName[0].lower() + filterName[1:]
    module = importlib.import_module(".".join([pkg, moduleName]))
    # if filter name is 'Foo Bar', the class should be called 'FooBarFilter'
    className = filterName[0].upper() + filterName[1:] + "Filter"
    return getattr(module, className)


_filterSpecRE = re.compile(
    r"(\w+)"  # FILTER_NAME [required]
    r"(?:\((.*)\))?"  # (ARGS)
)


def _argsEval(s):
    """Parse ``1, 'a', key=[2, 3]`` into positional and keyword arguments,
    accepting Python literals only."""
    call = ast.parse("f(%s)" % s, mode="eval").body
    args = [ast.literal_eval(arg) for arg in call.args]
    kwargs = {kw.arg: ast.literal_eval(kw.value) for kw in call.keywords}
    return args, kwargs


def loadFilterFromString(spec):
    """Create a filter from a string like ``name`` or ``name(arg, key=value)``.

    >>> loadFilterFromString("dropAxis('wdth')")
    DropAxisFilter(axis='wdth', prune=False)
    """
    spec = spec.strip()
    m = _filterSpecRE.match(spec)
    if not m or (m.end() - m.start()) != len(spec):
        raise FilterError(f"Malformed filter specification: {spec!r}")
    name, arguments = m.group(1), m.group(2)
    try:
        filterClass = getFilterClass(name)
    except (ImportError, AttributeError) as e:
        raise FilterError(f"Unknown filter '{name}'") from e
    try:
        args, kwargs = _argsEval(arguments) if arguments else ([], {})
    except (SyntaxError, ValueError) as e:
        raise FilterError(f"Filter options have incorrect format: {arguments!r}") from e
    try:
        return filterClass(*args, **kwargs)
    except (TypeError, ValueError) as e:
        raise FilterError(f"Bad arguments for filter '{name}'") from e


def applyFilters(font, filters):
    """Apply filters in order, returning the font."""
    for filter_ in filters:
        filter_(font)
    return font


class BaseFilter:
    # tuple of strings listing the names of required positional arguments
    # which will be set as attributes of the filter instance
    _args = ()

    # dictionary containing the names of optional keyword arguments and
    # their default values, which will be set as instance attributes
    _kwargs = {}

    def __init__(self, *args, **kwargs):
        # process positional arguments
        num_required = len(self._args)
        num_args = len(args)
        if num_args < num_required:
            missing = [repr(a) for a in self._args[num_args:]]
            num_missing = len(missing)
            raise TypeError(
                "missing {} required positional argument{}: {}".format(
                    num_missing, "s" if num_missing > 1 else "", ", ".join(missing)
                )
            )
        elif num_args > num_required:
            extra = [repr(a) for a in args[num_required:]]
            num_extra = len(extra)
            raise TypeError(
                "got {} unsupported positional argument{}: {}".format(
                    num_extra, "s" if num_extra > 1 else "", ", ".join(extra)
                )
            )
        for option, value in zip(self._args, args):
            setattr(self, option, value)

        # process optional keyword arguments
        for option, default in self._kwargs.items():
            setattr(self, option, kwargs.pop(option, default))

        # raise if any unsupported keyword arguments
        if kwargs:
            num_left = len(kwargs)
            raise TypeError(
                "got {}unsupported keyword argument{}: {}".format(
                    "an " if num_left == 1 else "",
                    "s" if num_left > 1 else "",
                    ", ".join(f"'{k}'" for k in kwargs),
                )
            )

        # run the filter's custom initialization code
        self.start()

    def __repr__(self):
        items = (
            f"{k}={v!r}"
            for k, v in sorted(self.__dict__.items())
            if not k.startswith("_")
        )
        return "{}({})".format(type(self).__name__, ", ".join(items))

    def start(self):
        """Subclasses can perform here custom initialization code."""

    def filter(self, font):
        """This is where the filter is applied to the font.

        Subclasses must override this method. The font may be modified in
        place; whatever is returned is passed back to the caller.
        """
        raise NotImplementedError

    @property
    def name(self):
        return self.__class__.__name__

    def __call__(self, font):
        """Run this filter on ``font``.

        The filter works on a copy, which replaces the font's contents only
        once the filter has finished and the result passes validation.
        """
        work = copy.deepcopy(font)
        with Timer() as t:
            try:
                result = self.filter(work)
            except BabelfontError:
                raise
            except Exception as e:
                raise FilterError(f"{self.name} failed") from e
            try:
                work.validate(check_ranges=False)
            except ModelError as e:
                raise FilterError(f"{self.name} left the font inconsistent") from e
        font._take(work)
        logger.debug("Took %.3fs to run %s", t, self.name)
        return result
