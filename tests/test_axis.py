import pytest

from babelfont.axis import Axis
from babelfont.errors import ModelError


@pytest.fixture
def weight():
    return Axis(
        name="Weight",
        tag="wght",
        min=100,
        default=400,
        max=900,
        map=[(100, 20), (400, 80), (900, 200)],
    )


def test_name_converter():
    axis = Axis(name="Width", tag="wdth")
    assert axis.name == {"dflt": "Width"}
    assert axis.display_name == "Width"
    assert Axis(name={"en": "Slant"}, tag="slnt").display_name == "Slant"
    assert Axis(name=None, tag="opsz").display_name == "opsz"


def test_identity_without_map():
    axis = Axis(name="Width", tag="wdth", min=50, default=100, max=200)
    assert axis.userspace_to_designspace(75) == 75
    assert axis.designspace_to_userspace(75) == 75
    assert axis.design_bounds() == (50, 100, 200)


def test_mapping(weight):
    assert weight.userspace_to_designspace(400) == 80
    assert weight.userspace_to_designspace(250) == 50
    assert weight.designspace_to_userspace(140) == 650
    assert weight.design_bounds() == (20, 80, 200)
    assert weight.map == [(100.0, 20.0), (400.0, 80.0), (900.0, 200.0)]


def test_normalization(weight):
    assert weight.normalize_userspace_value(100) == -1
    assert weight.normalize_userspace_value(650) == 0.5
    assert weight.normalize_designspace_value(80) == 0
    assert weight.normalize_designspace_value(200) == 1
    assert weight.normalize_designspace_value(50) == -0.5


def test_incomplete_axis():
    axis = Axis(name="Weight", tag="wght", min=100)
    with pytest.raises(ModelError, match="not fully defined"):
        axis.bounds()
    with pytest.raises(ModelError):
        axis.check()


def test_axis_order():
    Axis(name="Weight", tag="wght", min=100, default=100, max=100).check()
    with pytest.raises(ModelError, match="out of order"):
        Axis(name="Weight", tag="wght", min=400, default=100, max=900).check()
