"""
Result resolution for games played against the spread

Pure functions: no storage access, no side effects. The line carries its own
sign (negative when the favorite is giving points), so

    adjusted = (favorite_score - underdog_score) + line

decides the spread: above zero the favorite covers, below zero the underdog
covers, exactly zero is a push. The outright winner is decided on raw scores
alone, so a push can come with either team winning the game.
"""

from collections import namedtuple
from decimal import Decimal

WIN = "win"
LOSS = "loss"
PUSH = "push"

GameResult = namedtuple("GameResult", ["spread_winner", "is_push", "outright_winner"])


def _to_decimal(value):
    # str() first so a float line like -7.5 doesn't drag binary noise along
    return value if isinstance(value, Decimal) else Decimal(str(value))


def resolve_spread(favorite, underdog, line, favorite_score, underdog_score):
    """
    Determine which side covered the spread.

    Returns:
        tuple: (spread_winner, is_push) - spread_winner is None on a push
    """
    margin = Decimal(favorite_score) - Decimal(underdog_score)
    adjusted = margin + _to_decimal(line)

    if adjusted > 0:
        return favorite, False
    if adjusted < 0:
        return underdog, False
    return None, True


def resolve_outright(favorite, underdog, favorite_score, underdog_score):
    """Team with the higher raw score, None when tied"""
    if favorite_score > underdog_score:
        return favorite
    if underdog_score > favorite_score:
        return underdog
    return None


def resolve(favorite, underdog, line, favorite_score, underdog_score):
    """Resolve both the spread and the outright outcome of a final score"""
    spread_winner, is_push = resolve_spread(
        favorite, underdog, line, favorite_score, underdog_score
    )
    outright_winner = resolve_outright(favorite, underdog, favorite_score, underdog_score)
    return GameResult(spread_winner, is_push, outright_winner)


def pick_outcome(selected_team, spread_winner, is_push, has_result=True):
    """
    Grade one spread pick.

    Returns:
        "win", "loss", "push", or None while the game has no result
    """
    if not has_result:
        return None
    if is_push is True:
        return PUSH
    if spread_winner == selected_team:
        return WIN
    return LOSS
