from typing import Any, Dict, List, Tuple

import attr

from babelfont.common import (
    Guide,
    HasOTValues,
    I18NDictionary,
    OTValue,
    Owned,
    adopt_children,
    i18n,
    owned,
)


class MetricType:
    """Well-known metric names; any other string is a custom metric."""

    XHeight = "xHeight"
    CapHeight = "capHeight"
    Ascender = "ascender"
    Descender = "descender"
    ItalicAngle = "italicAngle"
    HheaAscender = "hheaAscender"
    HheaDescender = "hheaDescender"
    HheaLineGap = "hheaLineGap"
    WinAscent = "winAscent"
    WinDescent = "winDescent"
    TypoAscender = "typoAscender"
    TypoDescender = "typoDescender"
    TypoLineGap = "typoLineGap"
    SubscriptXSize = "subscriptXSize"
    SubscriptYSize = "subscriptYSize"
    SubscriptXOffset = "subscriptXOffset"
    SubscriptYOffset = "subscriptYOffset"
    SuperscriptXSize = "superscriptXSize"
    SuperscriptYSize = "superscriptYSize"
    SuperscriptXOffset = "superscriptXOffset"
    SuperscriptYOffset = "superscriptYOffset"
    StrikeoutSize = "strikeoutSize"
    StrikeoutPosition = "strikeoutPosition"
    UnderlinePosition = "underlinePosition"
    UnderlineThickness = "underlineThickness"
    HheaCaretSlopeRise = "hheaCaretSlopeRise"
    HheaCaretSlopeRun = "hheaCaretSlopeRun"
    HheaCaretOffset = "hheaCaretOffset"


# Metrics which are angles or ratios rather than distances in font units.
UNSCALED_METRICS = {
    MetricType.ItalicAngle,
    MetricType.HheaCaretSlopeRise,
    MetricType.HheaCaretSlopeRun,
}


@attr.s(auto_attribs=True)
class Master(Owned, HasOTValues):
    """A complete set of outlines and metrics at one design-space location.

    Kerning pairs map ``(left, right)`` to a value; kerning groups are spelled
    ``@groupname`` and whether they are first or second groups follows from
    their position in the pair.
    """

    name: I18NDictionary = attr.ib(converter=i18n)
    id: str
    location: Dict[str, float] = attr.Factory(dict)
    guides: List[Guide] = owned()
    metrics: Dict[str, float] = attr.Factory(dict)
    kerning: Dict[Tuple[str, str], float] = attr.Factory(dict)
    custom_ot_values: List[OTValue] = attr.Factory(list)
    format_specific: Dict[str, Any] = attr.Factory(dict)

    def __attrs_post_init__(self):
        adopt_children(self)

    @property
    def display_name(self):
        return self.name.get_default() or self.id

    def is_sparse(self, font):
        """True if some glyph has no master layer for this master."""
        return any(glyph.master_layer(self.id) is None for glyph in font.glyphs)
