"""
Weekly pick ledger

One pick per user per game. Picks can be created, changed or withdrawn until
the game kicks off; after that they are frozen.
"""

import enum
import logging
from datetime import datetime, timezone

from spread_pickem import db
from spread_pickem.errors import (
    INVALID_SELECTION,
    LOCKED,
    NOT_FOUND,
    MalformedSubmission,
    rejection,
)
from spread_pickem.models import Game, Pick
from spread_pickem.services.team_names import default_normalizer
from spread_pickem.utils.db_utils import commit_or_rollback

logger = logging.getLogger(__name__)


class SubmissionMode(enum.Enum):
    """What a resubmission means for stored picks it leaves out.

    REPLACE: the submission is the user's whole card for the slate, so
    unlocked games it omits are unpicked.
    MERGE: only the submitted games change; omitted picks stay as they are.
    """

    REPLACE = "replace"
    MERGE = "merge"


def _parse_selections(selections):
    parsed = []
    for selection in selections:
        try:
            game_id = int(selection["game_id"])
            selected_team = selection["selected_team"]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedSubmission(f"Invalid pick {selection!r}: {e}") from e

        if not isinstance(selected_team, str) or not selected_team.strip():
            raise MalformedSubmission(f"Pick for game {game_id} has no selected team")

        parsed.append((game_id, selected_team))
    return parsed


class PickLedger:
    """Validates and stores weekly spread picks"""

    def __init__(self, normalizer=None):
        self.normalizer = normalizer or default_normalizer

    def submit(self, user_id, year, week, selections, mode=SubmissionMode.REPLACE):
        """
        Submit a user's picks for one week.

        Each selection is checked on its own: an unknown game, a game that
        has kicked off, or a team that isn't in the game rejects just that
        selection. In REPLACE mode any stored pick for an unlocked game of
        the week that is missing from the submission is deleted.

        Returns:
            dict: success, submitted, deleted and the rejected selections
        """
        parsed = _parse_selections(selections)
        if not parsed:
            logger.info(f"No picks to submit for user {user_id} year {year} week {week}")
            return {"success": True, "submitted": 0, "deleted": 0, "rejected": []}

        submitted_ids = {game_id for game_id, _ in parsed}
        games = {
            game.id: game
            for game in Game.query.filter(Game.id.in_(submitted_ids)).all()
        }

        existing_picks = Pick.query.filter_by(user_id=user_id, year=year, week=week).all()
        existing_by_game = {pick.game_id: pick for pick in existing_picks}

        submitted_count = 0
        deleted_count = 0
        rejected = []

        if mode is SubmissionMode.REPLACE:
            for pick in existing_picks:
                if pick.game_id in submitted_ids or pick.game is None or pick.game.is_locked:
                    continue
                db.session.delete(pick)
                del existing_by_game[pick.game_id]
                deleted_count += 1
                logger.debug(
                    f"Deleted pick for user {user_id} game {pick.game_id} (not in new submission)"
                )

        now = datetime.now(timezone.utc)

        for game_id, raw_team in parsed:
            game = games.get(game_id)
            if game is None or game.year != year or game.week != week:
                rejected.append(rejection(game_id, NOT_FOUND, "Game not found"))
                logger.warning(f"Pick rejected: Game {game_id} not found for {year} week {week}")
                continue

            if game.is_locked:
                rejected.append(
                    rejection(
                        game_id, LOCKED, f"Game is locked (kickoff: {game.format_kickoff()})"
                    )
                )
                logger.warning(f"Pick rejected: Game {game_id} is locked")
                continue

            selected_team = self.normalizer.normalize(raw_team)
            if not game.has_team(selected_team):
                rejected.append(
                    rejection(
                        game_id,
                        INVALID_SELECTION,
                        f"Invalid team selection. Must be '{game.favorite}' or '{game.underdog}'",
                    )
                )
                logger.warning(f"Pick rejected: Invalid team {raw_team} for game {game_id}")
                continue

            pick = existing_by_game.get(game_id)
            if pick:
                pick.selected_team = selected_team
                pick.updated_at = now
                logger.debug(f"Updated pick for user {user_id} game {game_id}")
            else:
                pick = Pick(
                    user_id=user_id,
                    game_id=game_id,
                    selected_team=selected_team,
                    submitted_at=now,
                    year=year,
                    week=week,
                )
                db.session.add(pick)
                existing_by_game[game_id] = pick
                logger.debug(f"Created pick for user {user_id} game {game_id}")

            submitted_count += 1

        if submitted_count or deleted_count:
            commit_or_rollback()

        logger.info(
            f"Pick submission for user {user_id}: {submitted_count} submitted, "
            f"{deleted_count} deleted, {len(rejected)} rejected"
        )

        return {
            "success": True,
            "submitted": submitted_count,
            "deleted": deleted_count,
            "rejected": rejected,
        }

    def get_for_period(self, user_id, year, week):
        """A user's picks for one week, ordered by kickoff"""
        return (
            Pick.query.join(Game)
            .filter(Pick.user_id == user_id, Pick.year == year, Pick.week == week)
            .order_by(Game.game_date, Game.id)
            .all()
        )

    def get_for_season(self, user_id, year):
        """A user's picks for the season, ordered by week then kickoff"""
        return (
            Pick.query.join(Game)
            .filter(Pick.user_id == user_id, Pick.year == year)
            .order_by(Pick.week, Game.game_date, Game.id)
            .all()
        )
