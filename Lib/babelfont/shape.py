"""Outline shapes: paths made of nodes, and components."""

import enum
import math
from typing import Any, Dict, List, Tuple, Union

import attr
from fontTools.misc.transform import Identity, Transform

from babelfont.common import Owned, adopt_children, owned
from babelfont.errors import ModelError


class NodeType(enum.Enum):
    Move = "m"
    Line = "l"
    OffCurve = "o"
    Curve = "c"
    QCurve = "q"


_POINT_TYPES = {
    NodeType.Move: "move",
    NodeType.Line: "line",
    NodeType.OffCurve: None,
    NodeType.Curve: "curve",
    NodeType.QCurve: "qcurve",
}
_NODE_TYPES = {value: key for key, value in _POINT_TYPES.items()}


@attr.s(auto_attribs=True)
class Node(Owned):
    x: float
    y: float
    nodetype: NodeType = NodeType.Line
    smooth: bool = False

    @property
    def is_on_curve(self):
        return self.nodetype is not NodeType.OffCurve

    def _siblings(self):
        path = self.parent
        if path is None:
            raise ModelError("Node is not part of a path")
        for index, node in enumerate(path.nodes):
            if node is self:
                return path.nodes, index
        raise ModelError("Node is not part of its parent path")

    @property
    def next(self):
        nodes, index = self._siblings()
        return nodes[(index + 1) % len(nodes)]

    @property
    def previous(self):
        nodes, index = self._siblings()
        return nodes[(index - 1) % len(nodes)]

    @property
    def next_on_curve(self):
        nodes, index = self._siblings()
        for step in range(1, len(nodes) + 1):
            node = nodes[(index + step) % len(nodes)]
            if node.is_on_curve:
                return node
        return self

    @property
    def previous_on_curve(self):
        nodes, index = self._siblings()
        for step in range(1, len(nodes) + 1):
            node = nodes[(index - step) % len(nodes)]
            if node.is_on_curve:
                return node
        return self


@attr.s(auto_attribs=True)
class Path(Owned):
    """A contour.

    Closed paths have no explicit closing node and are stored with their
    starting on-curve node last, the way Glyphs stores them. Open paths
    start with a ``Move`` node.
    """

    nodes: List[Node] = owned()
    closed: bool = True
    format_specific: Dict[str, Any] = attr.Factory(dict)

    def __attrs_post_init__(self):
        adopt_children(self)

    @classmethod
    def from_points(cls, points, **kwargs):
        """Build a path from ``(x, y, segmentType, smooth)`` tuples in
        point-pen order."""
        nodes = [
            Node(x, y, _NODE_TYPES[segment_type], bool(smooth))
            for x, y, segment_type, smooth in points
        ]
        closed = not nodes or nodes[0].nodetype is not NodeType.Move
        if closed and nodes:
            nodes = nodes[1:] + nodes[:1]
        return cls(nodes, closed=closed, **kwargs)

    def to_points(self):
        """Return ``(x, y, segmentType, smooth)`` tuples in point-pen order."""
        nodes = list(self.nodes)
        if self.closed and nodes:
            nodes = nodes[-1:] + nodes[:-1]
        return [(n.x, n.y, _POINT_TYPES[n.nodetype], n.smooth) for n in nodes]

    def drawPoints(self, pointPen):
        pointPen.beginPath()
        for x, y, segment_type, smooth in self.to_points():
            pointPen.addPoint((x, y), segmentType=segment_type, smooth=smooth)
        pointPen.endPath()

    def transformed(self, transform):
        nodes = []
        for node in self.nodes:
            x, y = transform.transformPoint((node.x, node.y))
            nodes.append(Node(x, y, node.nodetype, node.smooth))
        return Path(
            nodes, closed=self.closed, format_specific=dict(self.format_specific)
        )

    def structure(self):
        """The sequence of node types, used for compatibility checks."""
        return [node.nodetype for node in self.nodes]


class TransformOrder(enum.Enum):
    # translate . rotate . skew . scale
    Glyphs = "glyphs"
    # translate . scale . skew . rotate
    Default = "default"


@attr.s(auto_attribs=True)
class DecomposedAffine:
    """An affine transformation kept as its parts.

    Angles are in radians. ``order`` states how the parts compose, since
    different editors decompose the same matrix differently.
    """

    translation: Tuple[float, float] = (0, 0)
    scale: Tuple[float, float] = (1, 1)
    skew: Tuple[float, float] = (0, 0)
    rotation: float = 0.0
    order: TransformOrder = TransformOrder.Default

    def to_transform(self):
        t = Transform().translate(*self.translation)
        if self.order is TransformOrder.Glyphs:
            t = t.rotate(self.rotation).skew(*self.skew).scale(*self.scale)
        else:
            t = t.scale(*self.scale).skew(*self.skew).rotate(self.rotation)
        return t

    def is_identity(self):
        return self.to_transform() == Identity

    @classmethod
    def from_transform(cls, transform, order=TransformOrder.Default):
        xx, xy, yx, yy, dx, dy = transform
        if order is TransformOrder.Glyphs:
            sx = math.hypot(xx, xy)
            angle = math.atan2(xy, xx) if sx else 0.0
            c, s = math.cos(angle), math.sin(angle)
            sy = -s * yx + c * yy
            shear = (c * yx + s * yy) / sy if sy else 0.0
        else:
            sy = math.hypot(xy, yy)
            angle = math.atan2(xy, yy) if sy else 0.0
            c, s = math.cos(angle), math.sin(angle)
            sx = xx * c - yx * s
            shear = (xx * s + yx * c) / sx if sx else 0.0
        return cls(
            translation=(dx, dy),
            scale=(sx, sy),
            skew=(math.atan(shear), 0.0),
            rotation=angle,
            order=order,
        )


@attr.s(auto_attribs=True)
class Component(Owned):
    """A reference to another glyph's outline.

    ``location`` places the component in the referenced glyph's own
    smart-component axis space.
    """

    reference: str
    transform: DecomposedAffine = attr.Factory(DecomposedAffine)
    location: Dict[str, float] = attr.Factory(dict)
    format_specific: Dict[str, Any] = attr.Factory(dict)

    def drawPoints(self, pointPen):
        pointPen.addComponent(self.reference, tuple(self.transform.to_transform()))


Shape = Union[Path, Component]
