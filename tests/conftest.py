from pathlib import Path

import pytest

from .testSupport import make_font


@pytest.fixture(scope="session")
def data_dir():
    return Path(__file__).parent / "data"


@pytest.fixture
def font():
    return make_font()
