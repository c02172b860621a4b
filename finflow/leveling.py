from dataclasses import dataclass

from finflow.domain import UserLevel

LEVEL_THRESHOLD = 500  # XP needed per level

XP_TRANSACTION = 25
XP_TRANSFER = 30
XP_GOAL_CREATED = 100
XP_GOAL_MOVEMENT = 50

_LEVELS = (UserLevel.POUPADOR, UserLevel.INVESTIDOR, UserLevel.ESTRATEGISTA)


@dataclass(frozen=True)
class LevelInfo:
    name: UserLevel
    progress: float  # percent within the current level, 0-100


def get_level(xp: int) -> LevelInfo:
    level_index = xp // LEVEL_THRESHOLD
    if level_index >= len(_LEVELS):
        return LevelInfo(name=UserLevel.MESTRE, progress=100.0)
    progress = (xp % LEVEL_THRESHOLD) / LEVEL_THRESHOLD * 100
    return LevelInfo(name=_LEVELS[level_index], progress=progress)


def award(xp: int, points: int) -> int:
    """XP never decreases."""
    return xp + max(points, 0)
