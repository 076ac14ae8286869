from frenzy import db  # noqa: F401 - imported for model imports

from .game import Game
from .pick import Pick
from .user import User
from .weekly_award import GameOfTheWeek, PlayerOfTheWeek

__all__ = [
    "User",
    "Game",
    "Pick",
    "GameOfTheWeek",
    "PlayerOfTheWeek",
]
