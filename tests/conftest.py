"""
Shared fixtures for the dice game tests.

Randomness is injected through a scripted ``randbits`` source and human input
through a scripted ``ask`` (see ``tests.helpers``), so whole sessions replay
deterministically.
"""

import pytest

from dice_game import Dice, get_settings


@pytest.fixture
def scenario_dice() -> list[Dice]:
    """The classic non-transitive trio A > B > C > A."""
    return [
        Dice((2, 2, 4, 4, 9, 9)),
        Dice((6, 8, 1, 1, 8, 6)),
        Dice((7, 5, 3, 7, 5, 3)),
    ]


@pytest.fixture
def rendered() -> list:
    """Collects every result passed to ``render``."""
    return []


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read environment settings in every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
