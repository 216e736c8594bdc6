import os


def _try_relative_path(path):
    # Try to return 'path' relative to the current working directory, or
    # return input 'path' if we can't make a relative path.
    # E.g. on Windows, os.path.relpath fails when path and "." are on
    # different mount points, C: or D: etc.
    try:
        return os.path.relpath(path)
    except ValueError:
        return path


class BabelfontError(Exception):
    """Base class for all babelfont exceptions.

    This exception is intended to be chained to the original exception. The
    main purpose is to provide a source file trail that points to where the
    explosion came from.
    """

    def __init__(self, msg, source_file=None):
        super().__init__(msg)
        self.msg = msg
        self.source_trail = [source_file]

    def __str__(self):
        trail = " -> ".join(
            f"'{str(_try_relative_path(s))}'"
            for s in reversed(self.source_trail)
            if s is not None
        )
        cause = str(self.__cause__) if self.__cause__ is not None else None

        message = ""
        if trail:
            message = f"In {trail}: "
        message += f"{self.msg}"
        if cause:
            message += f": {cause}"

        return message


class FormatError(BabelfontError):
    """A source file violates its own format's schema."""


class ModelError(BabelfontError):
    """The loaded font graph is inconsistent (dangling reference, axis
    coverage mismatch, invalid ordering)."""


class MissingReferenceError(ModelError):
    pass


class CyclicIncludeError(BabelfontError):
    pass


class IncludeNotFoundError(BabelfontError):
    pass


class UnsupportedFeatureError(BabelfontError):
    """Well-formed data that a writer cannot express in its target format.

    Writers collect these as warnings; they are only raised in strict mode.
    """


class FilterError(BabelfontError):
    pass


class InterpolationError(BabelfontError):
    pass
