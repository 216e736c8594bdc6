from typing import Any, Dict, Optional

import attr

from babelfont.common import I18NDictionary, Owned, i18n
from babelfont.names import Names


@attr.s(auto_attribs=True)
class Instance(Owned):
    """A named static font at a design-space location.

    ``custom_names`` override the font's names for this instance; a
    ``variable`` instance describes a variable font export rather than a
    static one.
    """

    id: str
    name: I18NDictionary = attr.ib(converter=i18n)
    location: Dict[str, float] = attr.Factory(dict)
    custom_names: Names = attr.Factory(Names)
    variable: bool = False
    linked_style: Optional[str] = None
    format_specific: Dict[str, Any] = attr.Factory(dict)

    @property
    def display_name(self):
        return self.name.get_default() or self.id
