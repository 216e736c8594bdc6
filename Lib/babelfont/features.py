from typing import Dict, List, Tuple

import attr

ANONYMOUS = "anonymous"


@attr.s(auto_attribs=True)
class Features:
    """OpenType feature source, kept as text.

    ``classes`` maps a class name (without ``@``) to its glyph list as feature
    code, ``prefixes`` maps a prefix name to code that precedes the feature
    blocks and ``features`` is an ordered list of ``(tag, code)`` pairs.
    """

    classes: Dict[str, str] = attr.Factory(dict)
    prefixes: Dict[str, str] = attr.Factory(dict)
    features: List[Tuple[str, str]] = attr.Factory(list)
    include_paths: List[str] = attr.Factory(list)

    def __bool__(self):
        return bool(self.classes or self.prefixes or self.features)

    def to_fea(self):
        fea = ""
        for name, glyphs in self.classes.items():
            fea += f"@{name} = [{glyphs}];\n"
        for prefix, code in self.prefixes.items():
            if prefix != ANONYMOUS:
                fea += f"# Prefix: {prefix}\n"
            fea += code + "\n"
        for tag, code in self.features:
            fea += f"feature {tag} {{\n{code}\n}} {tag};\n"
        return fea

    @classmethod
    def from_fea(cls, fea):
        # No parsing: the whole text is kept as the anonymous prefix.
        features = cls()
        if fea:
            features.prefixes[ANONYMOUS] = fea
        return features

    def all_code(self):
        """Yield every piece of feature code."""
        yield from self.classes.values()
        yield from self.prefixes.values()
        for _, code in self.features:
            yield code
