import pytest

from symcalc import create_default_context


@pytest.fixture
def ctx():
    return create_default_context()
