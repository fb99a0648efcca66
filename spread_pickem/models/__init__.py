from spread_pickem import db  # noqa: F401 - imported for model imports

from .bowl_game import BowlGame
from .bowl_pick import BowlPick
from .game import Game
from .pick import Pick
from .user import User

__all__ = [
    "User",
    "Game",
    "Pick",
    "BowlGame",
    "BowlPick",
]
