import attr

from babelfont.common import I18NDictionary, i18n

# OpenType name IDs of the localized fields of a Names record.
NAME_IDS = {
    "copyright": 0,
    "family_name": 1,
    "preferred_subfamily_name": 2,
    "unique_id": 3,
    "full_name": 4,
    "version": 5,
    "postscript_name": 6,
    "trademark": 7,
    "manufacturer": 8,
    "designer": 9,
    "description": 10,
    "manufacturer_url": 11,
    "designer_url": 12,
    "license": 13,
    "license_url": 14,
    "typographic_family": 16,
    "typographic_subfamily": 17,
    "compatible_full_name": 18,
    "sample_text": 19,
    "postscript_cid_name": 20,
    "wws_family_name": 21,
    "wws_subfamily_name": 22,
    "variations_postscript_name_prefix": 25,
}


def _name_field():
    return attr.ib(factory=I18NDictionary, converter=i18n)


@attr.s
class Names:
    """The localized strings of the OpenType name table."""

    copyright = _name_field()
    family_name = _name_field()
    preferred_subfamily_name = _name_field()
    unique_id = _name_field()
    full_name = _name_field()
    version = _name_field()
    postscript_name = _name_field()
    trademark = _name_field()
    manufacturer = _name_field()
    designer = _name_field()
    description = _name_field()
    manufacturer_url = _name_field()
    designer_url = _name_field()
    license = _name_field()
    license_url = _name_field()
    typographic_family = _name_field()
    typographic_subfamily = _name_field()
    compatible_full_name = _name_field()
    sample_text = _name_field()
    postscript_cid_name = _name_field()
    wws_family_name = _name_field()
    wws_subfamily_name = _name_field()
    variations_postscript_name_prefix = _name_field()

    def get(self, name_id):
        for field, nid in NAME_IDS.items():
            if nid == name_id:
                return getattr(self, field)
        return None

    def items(self):
        """Yield ``(field, I18NDictionary)`` for every non-empty field."""
        for field in NAME_IDS:
            value = getattr(self, field)
            if value:
                yield field, value
