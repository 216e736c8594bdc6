from __future__ import annotations

import logging

from babelfont.font import Font
from babelfont.layer import Layer

logger = logging.getLogger(__name__)


class Context:
    def __init__(self, checker, newcontext):
        self.checker = checker
        self.newcontext = newcontext

    def __enter__(self):
        self.checker.context.append(self.newcontext)

    def __exit__(self, type, value, traceback):
        self.checker.context.pop()


class CompatibilityChecker:
    """Check that the master layers of every glyph can be interpolated."""

    def __init__(self, font: Font):
        self.font = font
        self.context = []
        self.okay = True
        self.current_layers: list[Layer] = []

    def check(self) -> bool:
        for glyph in self.font.glyphs:
            if not glyph.exported:
                continue
            self.current_layers = [
                layer
                for layer in (
                    glyph.master_layer(master.id) for master in self.font.masters
                )
                if layer is not None
            ]
            if len(self.current_layers) < 2:
                continue
            with Context(self, f"glyph {glyph.name}"):
                self.check_layers(self.current_layers)
        return self.okay

    def check_layers(self, layers):
        paths = [layer.paths for layer in layers]
        if self.ensure_all_same(len, paths, "number of paths"):
            for ix, each_path in enumerate(zip(*paths)):
                with Context(self, f"path {ix}"):
                    self.check_paths(each_path)

        self.ensure_all_same(
            lambda layer: '"' + ", ".join(sorted(a.name for a in layer.anchors)) + '"',
            layers,
            "anchors",
        )

        components = [layer.components for layer in layers]
        if self.ensure_all_same(len, components, "number of components"):
            for ix, component in enumerate(zip(*components)):
                with Context(self, f"component {ix}"):
                    self.ensure_all_same(lambda c: c.reference, component, "base glyph")

    def check_paths(self, paths):
        if not self.ensure_all_same(lambda p: p.closed, paths, "path closedness"):
            return
        if not self.ensure_all_same(lambda p: len(p.nodes), paths, "number of nodes"):
            return
        for ix, node in enumerate(zip(*(p.nodes for p in paths))):
            with Context(self, f"node {ix}"):
                self.ensure_all_same(lambda n: n.nodetype.name, node, "node type")

    def ensure_all_same(self, func, objs, what) -> bool:
        values = {}
        context = ", ".join(self.context)
        for obj, layer in zip(objs, self.current_layers):
            values.setdefault(func(obj), []).append(self._name_for(layer))
        if len(values) < 2:
            logger.debug(f"All masters had same {what} in {context}")
            return True
        report = f"\nMasters had differing {what} in {context}:\n"
        debug_enabled = logger.isEnabledFor(logging.DEBUG)
        for value, master_names in values.items():
            if debug_enabled or len(master_names) <= 6:
                key = ", ".join(master_names)
            else:
                key = f"{len(master_names)} masters"
            if len(str(value)) > 20:
                value = "\n    " + str(value)
            report += f" * {key} had: {value}\n"
        logger.error(report)
        self.okay = False
        return False

    def _name_for(self, layer: Layer) -> str:
        master = self.font.master(layer.master_id)
        return master.display_name if master is not None else str(layer.master_id)
