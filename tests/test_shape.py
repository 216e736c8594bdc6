import math

import pytest
from fontTools.misc.transform import Transform
from fontTools.pens.recordingPen import RecordingPointPen

from babelfont.codec import nodes_from_string
from babelfont.errors import ModelError
from babelfont.shape import (
    Component,
    DecomposedAffine,
    Node,
    NodeType,
    Path,
    TransformOrder,
)


def curvy_path():
    return Path(
        nodes_from_string("0 100 o 50 150 o 100 100 c 100 0 l 0 0 l 0 50 ls")
    )


def test_next_wraps_around():
    path = curvy_path()
    for start in path.nodes:
        node = start
        for _ in range(len(path.nodes)):
            node = node.next
        assert node is start


def test_previous_wraps_around():
    path = curvy_path()
    first = path.nodes[0]
    assert first.previous is path.nodes[-1]
    assert path.nodes[-1].next is first


def test_on_curve_traversal():
    path = curvy_path()
    last = path.nodes[-1]
    # Skips the two off-curve nodes at the start of the list.
    assert last.next_on_curve is path.nodes[2]
    assert path.nodes[2].previous_on_curve is last
    assert path.nodes[0].next_on_curve is path.nodes[2]


def test_on_curve_without_on_curve_nodes():
    path = Path([Node(0, 0, NodeType.OffCurve), Node(1, 1, NodeType.OffCurve)])
    assert path.nodes[0].next_on_curve is path.nodes[0]


def test_orphan_node():
    with pytest.raises(ModelError):
        Node(0, 0).next


def test_nodes_are_reparented():
    source, target = curvy_path(), Path()
    node = source.nodes.pop()
    target.nodes.append(node)
    assert node.parent is target
    assert node.next is node
    target.nodes = [Node(1, 1), node]
    assert target.nodes[0].parent is target
    assert node.previous is target.nodes[0]


def test_points_round_trip():
    points = [
        (0, 0, "line", False),
        (0, 100, None, False),
        (100, 100, None, False),
        (100, 0, "curve", True),
    ]
    path = Path.from_points(points)
    assert path.closed
    # The starting node is stored last.
    assert path.nodes[-1].x == 0 and path.nodes[-1].y == 0
    assert path.to_points() == points


def test_open_path_points():
    points = [(0, 0, "move", False), (100, 0, "line", False)]
    path = Path.from_points(points)
    assert not path.closed
    assert path.nodes[0].nodetype is NodeType.Move
    assert path.to_points() == points


def test_draw_points():
    pen = RecordingPointPen()
    path = Path.from_points([(0, 0, "line", False), (10, 0, "line", False)])
    path.drawPoints(pen)
    Component("A", DecomposedAffine(translation=(5, 6))).drawPoints(pen)
    assert pen.value == [
        ("beginPath", (), {}),
        ("addPoint", ((0, 0), "line", False, None), {}),
        ("addPoint", ((10, 0), "line", False, None), {}),
        ("endPath", (), {}),
        ("addComponent", ("A", (1, 0, 0, 1, 5, 6)), {}),
    ]


def test_transformed_path():
    path = Path(nodes_from_string("0 0 l 10 0 l 10 10 l"))
    moved = path.transformed(Transform().translate(5, 5).scale(2))
    assert [(n.x, n.y) for n in moved.nodes] == [(5, 5), (25, 5), (25, 25)]
    assert [(n.x, n.y) for n in path.nodes] == [(0, 0), (10, 0), (10, 10)]


def test_structure():
    assert curvy_path().structure() == [
        NodeType.OffCurve,
        NodeType.OffCurve,
        NodeType.Curve,
        NodeType.Line,
        NodeType.Line,
        NodeType.Line,
    ]


@pytest.mark.parametrize("order", list(TransformOrder))
def test_decomposed_affine_round_trip(order):
    affine = DecomposedAffine(
        translation=(10, 20), scale=(2, 3), rotation=math.radians(30), order=order
    )
    back = DecomposedAffine.from_transform(affine.to_transform(), order)
    assert back.translation == pytest.approx((10, 20))
    assert back.scale == pytest.approx((2, 3))
    assert back.rotation == pytest.approx(math.radians(30))
    assert back.skew[0] == pytest.approx(0, abs=1e-9)
    assert tuple(back.to_transform()) == pytest.approx(tuple(affine.to_transform()))


def test_composition_order_matters():
    parts = dict(scale=(2, 1), rotation=math.radians(90))
    glyphs = DecomposedAffine(order=TransformOrder.Glyphs, **parts).to_transform()
    default = DecomposedAffine(order=TransformOrder.Default, **parts).to_transform()
    assert glyphs.transformPoint((1, 0)) == pytest.approx((0, 2))
    assert default.transformPoint((1, 0)) == pytest.approx((0, 1))


def test_identity():
    assert DecomposedAffine().is_identity()
    assert not DecomposedAffine(translation=(1, 0)).is_identity()
