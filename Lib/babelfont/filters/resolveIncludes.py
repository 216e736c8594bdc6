import logging
import os
import re

from babelfont.errors import CyclicIncludeError, FilterError, IncludeNotFoundError
from babelfont.filters import BaseFilter

logger = logging.getLogger(__name__)

INCLUDE_RE = re.compile(r"include\s*\(\s*([^)]+?)\s*\)\s*;?")


class ResolveIncludesFilter(BaseFilter):
    """Inline ``include(file);`` statements of the feature code.

    Included files are looked up relative to the including file, then in
    ``base_path`` (by default the directory of the font source) and then in
    the font's feature include paths.
    """

    _kwargs = {"base_path": None}

    def filter(self, font):
        base_path = self.base_path
        if base_path is None:
            if font.source is None:
                raise FilterError(
                    "No base path provided and the font has no source path"
                )
            base_path = os.path.dirname(os.path.abspath(font.source))
        logger.info("Resolving feature includes relative to %s", base_path)
        search = [base_path] + [
            os.path.join(base_path, path) for path in font.features.include_paths
        ]
        features = font.features
        features.classes = {
            name: self.resolve(code, search) for name, code in features.classes.items()
        }
        features.prefixes = {
            name: self.resolve(code, search) for name, code in features.prefixes.items()
        }
        features.features = [
            (tag, self.resolve(code, search)) for tag, code in features.features
        ]

    def resolve(self, code, search, stack=(), current_dir=None):
        def replace(match):
            target = match.group(1).strip("\"'")
            path = self._find(target, search, current_dir)
            if path in stack:
                raise CyclicIncludeError(
                    "Cyclic feature include: "
                    + " -> ".join(os.path.basename(p) for p in stack + (path,)),
                    path,
                )
            with open(path, encoding="utf-8") as fp:
                included = fp.read()
            logger.debug("Including %s", path)
            return self.resolve(
                included, search, stack + (path,), os.path.dirname(path)
            )

        return INCLUDE_RE.sub(replace, code)

    @staticmethod
    def _find(target, search, current_dir):
        if os.path.isabs(target):
            candidates = [target]
        else:
            directories = ([current_dir] if current_dir else []) + list(search)
            candidates = [os.path.join(d, target) for d in directories]
        for candidate in candidates:
            if os.path.isfile(candidate):
                return os.path.normpath(os.path.abspath(candidate))
        raise IncludeNotFoundError(
            f"Included feature file '{target}' not found in "
            + ", ".join(os.path.dirname(c) or "." for c in candidates)
        )
