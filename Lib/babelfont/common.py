"""Building blocks shared by the font model.

Every entity below the Font is owned by exactly one container. Owned entities
keep a weak back-reference to their owner so they can navigate the tree (a
Node finds its siblings through its Path, a Layer finds its Glyph) without the
tree holding reference cycles.
"""

import enum
import weakref
from typing import Any, Dict, Optional

import attr

OWNED = "babelfont.owned"


class Owned:
    """Mixin for entities that live inside an :class:`OwnedList`."""

    _parent = None

    @property
    def parent(self):
        if self._parent is None:
            return None
        return self._parent()


class OwnedList(list):
    """A list which re-parents its items whenever they are inserted.

    The owner is held through a weak reference, as is the back-reference
    stored on each item.
    """

    def __init__(self, owner=None, items=()):
        super().__init__()
        self._owner = weakref.ref(owner) if owner is not None else None
        self.extend(items)

    @property
    def owner(self):
        if self._owner is None:
            return None
        return self._owner()

    def _adopt(self, item):
        if isinstance(item, Owned):
            owner = self.owner
            item._parent = weakref.ref(owner) if owner is not None else None
        return item

    def _changed(self):
        pass

    def append(self, item):
        super().append(self._adopt(item))
        self._changed()

    def insert(self, index, item):
        super().insert(index, self._adopt(item))
        self._changed()

    def extend(self, items):
        super().extend(self._adopt(item) for item in items)
        self._changed()

    def __iadd__(self, items):
        self.extend(items)
        return self

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            value = [self._adopt(item) for item in value]
        else:
            value = self._adopt(value)
        super().__setitem__(index, value)
        self._changed()

    def __delitem__(self, index):
        super().__delitem__(index)
        self._changed()

    def remove(self, item):
        super().remove(item)
        self._changed()

    def pop(self, index=-1):
        item = super().pop(index)
        self._changed()
        return item

    def clear(self):
        super().clear()
        self._changed()

    def sort(self, *args, **kwargs):
        super().sort(*args, **kwargs)
        self._changed()

    def reverse(self):
        super().reverse()
        self._changed()

    def __deepcopy__(self, memo):
        from copy import deepcopy

        owner = self.owner
        new_owner = memo.get(id(owner)) if owner is not None else None
        result = type(self)(new_owner)
        memo[id(self)] = result
        result.extend(deepcopy(item, memo) for item in self)
        return result


class KeyedList(OwnedList):
    """An owned list which can also be indexed by an attribute of its items.

    The attribute is named by ``key``. When two items share a key, the
    first one wins.
    """

    key = None

    def __init__(self, owner=None, items=()):
        self._index = None
        super().__init__(owner, items)

    def _changed(self):
        self._index = None

    def _build_index(self):
        self._index = {}
        for item in self:
            self._index.setdefault(getattr(item, self.key), item)
        return self._index

    def get(self, key, default=None):
        index = self._index if self._index is not None else self._build_index()
        item = index.get(key)
        if item is not None and getattr(item, self.key) == key:
            return item
        # Items may have been renamed since the index was built.
        item = self._build_index().get(key)
        return item if item is not None else default

    def __contains__(self, item):
        if isinstance(item, str):
            return self.get(item) is not None
        return super().__contains__(item)

    def keys(self):
        return [getattr(item, self.key) for item in self]


class GlyphList(KeyedList):
    """An ordered glyph container that can also be indexed by glyph name."""

    key = "name"

    def names(self):
        return self.keys()


class IdList(KeyedList):
    """Masters or instances, indexed by id."""

    key = "id"


class AxisList(KeyedList):
    """Axes, indexed by tag."""

    key = "tag"


def _adopt_on_setattr(instance, attribute, value):
    return attribute.metadata[OWNED](instance, value)


def owned(factory=OwnedList):
    """An attrs field holding a list of entities owned by the instance."""
    return attr.ib(
        factory=list,
        metadata={OWNED: factory},
        on_setattr=_adopt_on_setattr,
        repr=False,
    )


def adopt_children(instance):
    """Wrap the owned fields of a freshly constructed attrs instance."""
    for field in attr.fields(type(instance)):
        factory = field.metadata.get(OWNED)
        if factory is None:
            continue
        value = getattr(instance, field.name)
        if isinstance(value, factory) and value.owner is instance:
            continue
        object.__setattr__(instance, field.name, factory(instance, value))


class I18NDictionary(dict):
    """Localized string: a mapping of language tag to value.

    The ``dflt`` key holds the value used when no better match exists.
    """

    DEFAULT = "dflt"

    @classmethod
    def from_value(cls, value):
        result = cls()
        if value is not None:
            result[cls.DEFAULT] = value
        return result

    def get_default(self):
        if self.DEFAULT in self:
            return self[self.DEFAULT]
        # Fall back to English, then to whatever came first.
        for key in ("en", "ENG"):
            if key in self:
                return self[key]
        return next(iter(self.values()), None)

    def set_default(self, value):
        self[self.DEFAULT] = value


def i18n(value):
    """Converter accepting a plain string as the default-locale value."""
    if isinstance(value, I18NDictionary):
        return value
    if value is None or isinstance(value, str):
        return I18NDictionary.from_value(value)
    return I18NDictionary(value)


@attr.s(auto_attribs=True)
class Color:
    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 255

    @classmethod
    def from_floats(cls, r, g, b, a=1.0):
        return cls(*(round(v * 255) for v in (r, g, b, a)))

    def to_floats(self):
        return tuple(v / 255 for v in (self.r, self.g, self.b, self.a))

    def to_ufo(self):
        return ",".join("%g" % round(v, 3) for v in self.to_floats())

    @classmethod
    def from_ufo(cls, value):
        if value is None:
            return None
        return cls.from_floats(*(float(v) for v in str(value).split(",")))


@attr.s(auto_attribs=True)
class Position:
    x: float = 0
    y: float = 0
    angle: float = 0


@attr.s(auto_attribs=True)
class Guide(Owned):
    pos: Position = attr.Factory(Position)
    name: Optional[str] = None
    color: Optional[Color] = None
    format_specific: Dict[str, Any] = attr.Factory(dict)


@attr.s(auto_attribs=True)
class Anchor(Owned):
    name: str
    x: float = 0
    y: float = 0
    format_specific: Dict[str, Any] = attr.Factory(dict)


@attr.s(auto_attribs=True)
class OTValue:
    """An explicit override for one field of a compiled OpenType table."""

    table: str
    field: str
    value: Any


class Direction(enum.Enum):
    LeftToRight = "LeftToRight"
    RightToLeft = "RightToLeft"
    TopToBottom = "TopToBottom"


class HasOTValues:
    """Lookup helpers for entities carrying ``custom_ot_values``."""

    def ot_value(self, table, field):
        for value in self.custom_ot_values:
            if value.table == table and value.field == field:
                return value.value
        return None

    def set_ot_value(self, table, field, value):
        for existing in self.custom_ot_values:
            if existing.table == table and existing.field == field:
                existing.value = value
                return
        self.custom_ot_values.append(OTValue(table, field, value))
