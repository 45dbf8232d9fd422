import pytest

from helpers import make_match


@pytest.fixture
def match():
    return make_match()


@pytest.fixture
def p1(match):
    return match.get_player('p1')


@pytest.fixture
def p2(match):
    return match.get_player('p2')
