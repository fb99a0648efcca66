"""
Bowl pick ledger

Each bowl pick carries a spread pick, an outright-winner pick and a
confidence weight. Across a user's card the weights are drawn from 1..N
(N = number of bowl games that season) with no repeats.
"""

import logging
from datetime import datetime, timezone

from spread_pickem import db
from spread_pickem.errors import (
    INVALID_SELECTION,
    LOCKED,
    NOT_FOUND,
    MalformedSubmission,
    failure,
    rejection,
)
from spread_pickem.models import BowlGame, BowlPick
from spread_pickem.services.game_catalog import GameCatalog
from spread_pickem.services.pick_ledger import SubmissionMode
from spread_pickem.services.team_names import default_normalizer
from spread_pickem.utils.db_utils import commit_or_rollback

logger = logging.getLogger(__name__)


def _parse_selections(selections):
    parsed = []
    for selection in selections:
        try:
            bowl_game_id = int(selection["bowl_game_id"])
            confidence_points = int(selection["confidence_points"])
            spread_pick = selection["spread_pick"]
            outright_winner_pick = selection["outright_winner_pick"]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedSubmission(f"Invalid bowl pick {selection!r}: {e}") from e

        for team in (spread_pick, outright_winner_pick):
            if not isinstance(team, str) or not team.strip():
                raise MalformedSubmission(
                    f"Bowl pick for game {bowl_game_id} is missing a team"
                )

        parsed.append((bowl_game_id, spread_pick, confidence_points, outright_winner_pick))
    return parsed


class BowlPickLedger:
    """Validates and stores confidence-weighted bowl picks"""

    def __init__(self, normalizer=None, catalog=None):
        self.normalizer = normalizer or default_normalizer
        self.catalog = catalog or GameCatalog(self.normalizer)

    def submit(self, user_id, year, selections, mode=SubmissionMode.MERGE):
        """
        Submit bowl picks for a season.

        Confidence points are checked before anything is written and fail the
        whole submission when they repeat within the batch, fall outside
        1..N, or collide with a weight the user keeps on a game not being
        changed. After that each selection is checked on its own like weekly
        picks. MERGE mode leaves omitted games alone; REPLACE mode unpicks
        omitted games that haven't kicked off.

        Returns:
            dict: success, submitted, deleted and rejected selections, or
            success False with an error when a precondition fails
        """
        parsed = _parse_selections(selections)
        if not parsed:
            logger.info(f"No bowl picks to submit for user {user_id} year {year}")
            return {"success": True, "submitted": 0, "deleted": 0, "rejected": []}

        confidence_points = [points for _, _, points, _ in parsed]
        if len(set(confidence_points)) != len(confidence_points):
            logger.warning(f"Bowl picks rejected for user {user_id}: duplicate confidence points")
            return failure("Confidence points must be unique for each pick")

        slate_size = self.catalog.bowl_slate_size(year)
        if slate_size == 0:
            return failure(f"No bowl games found for {year}")

        out_of_range = sorted(p for p in confidence_points if p < 1 or p > slate_size)
        if out_of_range:
            return failure(
                f"Confidence points must be between 1 and {slate_size} "
                f"(got {', '.join(str(p) for p in out_of_range)})"
            )

        submitted_ids = {bowl_game_id for bowl_game_id, _, _, _ in parsed}
        games = {
            game.id: game
            for game in BowlGame.query.filter(BowlGame.id.in_(submitted_ids)).all()
        }
        existing_picks = BowlPick.query.filter_by(user_id=user_id, year=year).all()
        existing_by_game = {pick.bowl_game_id: pick for pick in existing_picks}

        rejected = []
        accepted = []

        for bowl_game_id, raw_spread, points, raw_outright in parsed:
            game = games.get(bowl_game_id)
            if game is None or game.year != year:
                rejected.append(rejection(bowl_game_id, NOT_FOUND, "Bowl game not found"))
                logger.warning(f"Bowl pick rejected: Game {bowl_game_id} not found")
                continue

            if game.is_locked:
                rejected.append(
                    rejection(
                        bowl_game_id,
                        LOCKED,
                        f"Game is locked (kickoff: {game.format_kickoff()})",
                    )
                )
                logger.warning(f"Bowl pick rejected: Game {bowl_game_id} is locked")
                continue

            spread_pick = self.normalizer.normalize(raw_spread)
            if not game.has_team(spread_pick):
                rejected.append(
                    rejection(
                        bowl_game_id,
                        INVALID_SELECTION,
                        f"Invalid spread pick. Must be '{game.favorite}' or '{game.underdog}'",
                    )
                )
                logger.warning(
                    f"Bowl pick rejected: Invalid spread pick {raw_spread} for game {bowl_game_id}"
                )
                continue

            outright_pick = self.normalizer.normalize(raw_outright)
            if not game.has_team(outright_pick):
                rejected.append(
                    rejection(
                        bowl_game_id,
                        INVALID_SELECTION,
                        f"Invalid outright winner pick. Must be '{game.favorite}' or '{game.underdog}'",
                    )
                )
                logger.warning(
                    f"Bowl pick rejected: Invalid outright winner pick {raw_outright} "
                    f"for game {bowl_game_id}"
                )
                continue

            accepted.append((game, spread_pick, points, outright_pick))

        to_delete = []
        if mode is SubmissionMode.REPLACE:
            to_delete = [
                pick
                for pick in existing_picks
                if pick.bowl_game_id not in submitted_ids
                and pick.bowl_game is not None
                and not pick.bowl_game.is_locked
            ]

        collision = self._find_collision(existing_picks, accepted, to_delete)
        if collision:
            logger.warning(f"Bowl picks rejected for user {user_id}: {collision}")
            return failure(collision)

        for pick in to_delete:
            db.session.delete(pick)
            logger.debug(
                f"Deleted bowl pick for user {user_id} game {pick.bowl_game_id} "
                f"(not in new submission)"
            )

        now = datetime.now(timezone.utc)
        for game, spread_pick, points, outright_pick in accepted:
            pick = existing_by_game.get(game.id)
            if pick:
                pick.spread_pick = spread_pick
                pick.confidence_points = points
                pick.outright_winner_pick = outright_pick
                pick.updated_at = now
                logger.debug(f"Updated bowl pick for user {user_id} game {game.id}")
            else:
                pick = BowlPick(
                    user_id=user_id,
                    bowl_game_id=game.id,
                    spread_pick=spread_pick,
                    confidence_points=points,
                    outright_winner_pick=outright_pick,
                    submitted_at=now,
                    year=year,
                )
                db.session.add(pick)
                existing_by_game[game.id] = pick
                logger.debug(f"Created bowl pick for user {user_id} game {game.id}")

        if accepted or to_delete:
            commit_or_rollback()

        logger.info(
            f"Bowl pick submission for user {user_id}: {len(accepted)} submitted, "
            f"{len(to_delete)} deleted, {len(rejected)} rejected"
        )

        return {
            "success": True,
            "submitted": len(accepted),
            "deleted": len(to_delete),
            "rejected": rejected,
        }

    @staticmethod
    def _find_collision(existing_picks, accepted, to_delete):
        """Check the card the submission would leave behind for repeated weights"""
        changing = {game.id for game, _, _, _ in accepted}
        deleting = {pick.id for pick in to_delete}

        owner_by_points = {}
        for pick in existing_picks:
            if pick.bowl_game_id in changing or pick.id in deleting:
                continue
            owner_by_points[pick.confidence_points] = pick.bowl_game

        for game, _, points, _ in accepted:
            kept = owner_by_points.get(points)
            if kept is not None:
                return (
                    f"Confidence points {points} are already assigned to bowl game "
                    f"#{kept.game_number} ({kept.bowl_name or kept.favorite + ' vs ' + kept.underdog})"
                )
        return None

    def get_for_year(self, user_id, year):
        """A user's bowl picks, ordered by game number"""
        return (
            BowlPick.query.join(BowlGame)
            .filter(BowlPick.user_id == user_id, BowlPick.year == year)
            .order_by(BowlGame.game_number)
            .all()
        )

    def get_users_with_picks(self, year):
        rows = (
            db.session.query(BowlPick.user_id)
            .filter(BowlPick.year == year)
            .distinct()
            .all()
        )
        return [row.user_id for row in rows]
