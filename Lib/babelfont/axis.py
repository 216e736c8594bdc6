import uuid
from typing import Any, Dict, List, Optional, Tuple

import attr
from fontTools.varLib.models import normalizeValue, piecewiseLinearMap

from babelfont.common import I18NDictionary, Owned, i18n
from babelfont.errors import ModelError


def _new_id():
    return str(uuid.uuid4())


def _map_converter(value):
    if value is None:
        return None
    return [(float(user), float(design)) for user, design in value]


@attr.s(auto_attribs=True)
class Axis(Owned):
    """A variation axis.

    ``min``, ``default`` and ``max`` are user-space values. ``map`` is an
    optional list of ``(user, design)`` breakpoints; without one the two
    coordinate spaces are identical.
    """

    name: I18NDictionary = attr.ib(converter=i18n)
    tag: str
    id: str = attr.Factory(_new_id)
    min: Optional[float] = None
    default: Optional[float] = None
    max: Optional[float] = None
    map: Optional[List[Tuple[float, float]]] = attr.ib(
        default=None, converter=_map_converter
    )
    hidden: bool = False
    format_specific: Dict[str, Any] = attr.Factory(dict)

    @property
    def display_name(self):
        return self.name.get_default() or self.tag

    def bounds(self):
        """Return ``(min, default, max)`` in user space."""
        if self.min is None or self.default is None or self.max is None:
            raise ModelError(f"Axis '{self.display_name}' is not fully defined")
        return self.min, self.default, self.max

    def design_bounds(self):
        return tuple(self.userspace_to_designspace(v) for v in self.bounds())

    def userspace_to_designspace(self, value):
        if not self.map:
            return value
        return piecewiseLinearMap(value, dict(self.map))

    def designspace_to_userspace(self, value):
        if not self.map:
            return value
        return piecewiseLinearMap(value, {design: user for user, design in self.map})

    def normalize_userspace_value(self, value):
        return normalizeValue(value, self.bounds())

    def normalize_designspace_value(self, value):
        if not self.map:
            return self.normalize_userspace_value(value)
        return normalizeValue(value, self.design_bounds())

    def check(self):
        if self.min is None and self.default is None and self.max is None:
            return
        minimum, default, maximum = self.bounds()
        if not minimum <= default <= maximum:
            raise ModelError(
                f"Axis '{self.tag}' is out of order: min {minimum}, "
                f"default {default}, max {maximum}"
            )
