from finflow.domain import UserLevel
from finflow.leveling import LEVEL_THRESHOLD, award, get_level


def test_level_zero():
    info = get_level(0)
    assert info.name == UserLevel.POUPADOR
    assert info.progress == 0


def test_level_boundaries():
    assert get_level(500).name == UserLevel.INVESTIDOR
    assert get_level(500).progress == 0
    assert get_level(1000).name == UserLevel.ESTRATEGISTA
    assert get_level(1499).name == UserLevel.ESTRATEGISTA


def test_master_is_pinned_at_full_progress():
    for xp in (1500, 2000, 12345):
        info = get_level(xp)
        assert info.name == UserLevel.MESTRE
        assert info.progress == 100


def test_progress_within_level():
    assert get_level(250).progress == 50
    assert get_level(625).progress == 25


def test_level_is_monotonic():
    order = [UserLevel.POUPADOR, UserLevel.INVESTIDOR, UserLevel.ESTRATEGISTA, UserLevel.MESTRE]
    previous = 0
    for xp in range(0, 4 * LEVEL_THRESHOLD, 25):
        index = order.index(get_level(xp).name)
        assert index >= previous
        previous = index


def test_award_never_decreases():
    assert award(100, 30) == 130
    assert award(100, -50) == 100
