"""
Game catalog: weekly slates, the bowl slate, lock state and result entry
"""

import logging
import math
import re

from spread_pickem import db
from spread_pickem.errors import DUPLICATE, INVALID_SCORE, NOT_FOUND, MalformedSubmission
from spread_pickem.models import BowlGame, Game
from spread_pickem.services.result_resolver import resolve
from spread_pickem.services.team_names import default_normalizer
from spread_pickem.utils.db_utils import commit_or_rollback
from spread_pickem.utils.timezone_utils import parse_kickoff

logger = logging.getLogger(__name__)


def matchup_key(team_a, team_b):
    """Order-independent, case-insensitive key for a pairing"""
    first, second = sorted([team_a.lower(), team_b.lower()])
    return f"{first}|{second}"


_WHOLE_NUMBER = re.compile(r"^-?\d+$")


def parse_whole_number(value, field):
    """
    Read an integer without coercion: ints and digit strings only.

    Bools, fractional floats and anything else raise MalformedSubmission.
    """
    if isinstance(value, bool):
        raise MalformedSubmission(f"{field} must be a whole number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _WHOLE_NUMBER.match(value.strip()):
        return int(value.strip())
    raise MalformedSubmission(f"{field} must be a whole number, got {value!r}")


def _parse_line_entry(entry):
    """Pull favorite/underdog/line/kickoff out of one ingestion entry"""
    try:
        favorite = entry["favorite"]
        underdog = entry["underdog"]
        line = float(entry["line"])
        game_date = parse_kickoff(entry["game_date"])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedSubmission(f"Invalid slate entry {entry!r}: {e}") from e

    if isinstance(entry["line"], bool) or not math.isfinite(line):
        raise MalformedSubmission(f"Slate entry has an invalid line: {entry!r}")

    for team in (favorite, underdog):
        if not isinstance(team, str) or not team.strip():
            raise MalformedSubmission(f"Slate entry is missing a team: {entry!r}")

    return favorite, underdog, line, game_date


def _parse_score_entry(entry, id_key="game_id"):
    try:
        values = (entry[id_key], entry["favorite_score"], entry["underdog_score"])
    except (KeyError, TypeError) as e:
        raise MalformedSubmission(f"Invalid result entry {entry!r}: {e}") from e

    return (
        parse_whole_number(values[0], id_key),
        parse_whole_number(values[1], "favorite_score"),
        parse_whole_number(values[2], "underdog_score"),
    )


def _same_team(favorite, underdog):
    return favorite.lower() == underdog.lower()


def _validate_scores(favorite_score, underdog_score):
    if favorite_score < 0 or underdog_score < 0:
        return "Scores cannot be negative"
    return None


class GameCatalog:
    """Holds the weekly slates and the once-per-season bowl slate"""

    def __init__(self, normalizer=None):
        self.normalizer = normalizer or default_normalizer

    # ------------------------------------------------------------------
    # Weekly slates
    # ------------------------------------------------------------------

    def sync_slate(self, year, week, entries):
        """
        Upsert the lines for one week.

        Entries matching an existing game of that week by team pair (either
        order) update it in place; others are inserted. A pairing seen twice
        in the same batch, or one that lists the same team on both sides
        after normalization, is skipped.

        Returns:
            int: number of games synced
        """
        parsed = [_parse_line_entry(entry) for entry in entries]
        if not parsed:
            logger.info(f"No games to sync for year {year} week {week}")
            return 0

        names = self.normalizer.normalize_batch(
            [name for favorite, underdog, _, _ in parsed for name in (favorite, underdog)]
        )

        existing_games = {
            matchup_key(game.favorite, game.underdog): game
            for game in Game.query.filter_by(year=year, week=week).all()
        }

        synced_count = 0
        processed_matchups = set()

        for raw_favorite, raw_underdog, line, game_date in parsed:
            favorite = names.get(raw_favorite.strip(), raw_favorite.strip())
            underdog = names.get(raw_underdog.strip(), raw_underdog.strip())

            if _same_team(favorite, underdog):
                logger.warning(
                    f"Game lists {favorite} on both sides in sync batch "
                    f"(original: {raw_favorite} vs {raw_underdog}). Skipping."
                )
                continue

            key = matchup_key(favorite, underdog)
            if key in processed_matchups:
                logger.warning(
                    f"Duplicate game detected in sync batch: {favorite} vs {underdog} "
                    f"(original: {raw_favorite} vs {raw_underdog}). Skipping."
                )
                continue
            processed_matchups.add(key)

            game = existing_games.get(key)
            if game:
                game.favorite = favorite
                game.underdog = underdog
                game.line = line
                game.game_date = game_date
                logger.debug(f"Updated game {favorite} vs {underdog} for week {week}")
            else:
                game = Game(
                    year=year,
                    week=week,
                    favorite=favorite,
                    underdog=underdog,
                    line=line,
                    game_date=game_date,
                )
                db.session.add(game)
                existing_games[key] = game
                logger.debug(f"Created game {favorite} vs {underdog} for week {week}")

            synced_count += 1

        commit_or_rollback()
        logger.info(f"Synced {synced_count} games for year {year} week {week}")
        return synced_count

    def get_slate(self, year, week):
        """All games for a week, ordered by kickoff"""
        return (
            Game.query.filter_by(year=year, week=week)
            .order_by(Game.game_date, Game.id)
            .all()
        )

    def get_available_weeks(self, year):
        rows = (
            db.session.query(Game.week)
            .filter(Game.year == year)
            .distinct()
            .order_by(Game.week)
            .all()
        )
        return [row.week for row in rows]

    def get_game(self, game_id):
        return db.session.get(Game, game_id)

    def is_locked(self, game_id):
        """True/False, or None when the game doesn't exist"""
        game = self.get_game(game_id)
        if game is None:
            logger.warning(f"Attempted to check lock status for non-existent game {game_id}")
            return None
        return game.is_locked

    def slate_sizes(self, year):
        """Number of games in each week's slate: {week: count}"""
        rows = (
            db.session.query(Game.week, db.func.count(Game.id))
            .filter(Game.year == year)
            .group_by(Game.week)
            .all()
        )
        return {week: count for week, count in rows}

    # ------------------------------------------------------------------
    # Bowl slate
    # ------------------------------------------------------------------

    def sync_bowl_slate(self, year, entries):
        """
        Upsert the bowl slate for a season, keyed by game number.

        Returns:
            int: number of bowl games synced
        """
        parsed = []
        for entry in entries:
            favorite, underdog, line, game_date = _parse_line_entry(entry)
            try:
                game_number = parse_whole_number(entry["game_number"], "game_number")
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedSubmission(f"Invalid bowl entry {entry!r}: {e}") from e
            if game_number < 1:
                raise MalformedSubmission(f"Bowl game numbers start at 1: {entry!r}")
            parsed.append(
                (game_number, entry.get("bowl_name") or "", favorite, underdog, line, game_date)
            )

        if not parsed:
            logger.info(f"No bowl games to sync for year {year}")
            return 0

        existing_games = {
            game.game_number: game for game in BowlGame.query.filter_by(year=year).all()
        }

        synced_count = 0
        processed_numbers = set()

        for game_number, bowl_name, favorite, underdog, line, game_date in parsed:
            if game_number in processed_numbers:
                logger.warning(
                    f"Duplicate bowl game number {game_number} in sync batch for {year}. Skipping."
                )
                continue
            processed_numbers.add(game_number)

            favorite = self.normalizer.normalize(favorite)
            underdog = self.normalizer.normalize(underdog)

            if _same_team(favorite, underdog):
                logger.warning(
                    f"Bowl game {game_number} lists {favorite} on both sides for {year}. Skipping."
                )
                continue

            game = existing_games.get(game_number)
            if game:
                game.bowl_name = bowl_name
                game.favorite = favorite
                game.underdog = underdog
                game.line = line
                game.game_date = game_date
                logger.debug(f"Updated bowl game {game_number} for year {year}")
            else:
                db.session.add(
                    BowlGame(
                        year=year,
                        game_number=game_number,
                        bowl_name=bowl_name,
                        favorite=favorite,
                        underdog=underdog,
                        line=line,
                        game_date=game_date,
                    )
                )
                logger.debug(f"Created bowl game {game_number} for year {year}")

            synced_count += 1

        commit_or_rollback()
        logger.info(f"Synced {synced_count} bowl games for year {year}")
        return synced_count

    def get_bowl_slate(self, year):
        """Bowl games for a season, ordered by game number"""
        return BowlGame.query.filter_by(year=year).order_by(BowlGame.game_number).all()

    def get_bowl_game(self, bowl_game_id):
        return db.session.get(BowlGame, bowl_game_id)

    def bowl_slate_size(self, year):
        """N: the number of bowl games in a season"""
        return BowlGame.query.filter_by(year=year).count()

    def is_bowl_locked(self, bowl_game_id):
        game = self.get_bowl_game(bowl_game_id)
        if game is None:
            logger.warning(
                f"Attempted to check lock status for non-existent bowl game {bowl_game_id}"
            )
            return None
        return game.is_locked

    # ------------------------------------------------------------------
    # Result entry
    # ------------------------------------------------------------------

    def enter_result(self, game_id, favorite_score, underdog_score, entered_by=None):
        """
        Resolve and stamp a final score. Re-entering overwrites the previous result.

        Returns:
            tuple: (game, None) on success, (None, reason) otherwise
        """
        return self._enter_single(Game, game_id, favorite_score, underdog_score, entered_by)

    def enter_bowl_result(self, bowl_game_id, favorite_score, underdog_score, entered_by=None):
        """Bowl equivalent of enter_result; also stamps the outright winner"""
        return self._enter_single(
            BowlGame, bowl_game_id, favorite_score, underdog_score, entered_by
        )

    def bulk_enter_results(self, entries, entered_by=None, year=None, week=None):
        """
        Enter many weekly results. A bad entry is recorded and skipped; the
        rest are still committed. Only the first entry for a game counts;
        repeats are recorded as duplicates.

        When year/week are given, games outside that week count as not found.
        """
        parsed = [_parse_score_entry(entry) for entry in entries]

        query = Game.query.filter(Game.id.in_([game_id for game_id, _, _ in parsed]))
        if year is not None:
            query = query.filter(Game.year == year)
        if week is not None:
            query = query.filter(Game.week == week)

        scope = f" for year {year} week {week}" if week is not None else ""
        return self._enter_bulk(
            parsed,
            {game.id: game for game in query.all()} if parsed else {},
            entered_by,
            f"Game not found{' or not for this week' if week is not None else ''}",
            scope,
        )

    def bulk_enter_bowl_results(self, entries, entered_by=None, year=None):
        parsed = [_parse_score_entry(entry, id_key="bowl_game_id") for entry in entries]

        query = BowlGame.query.filter(BowlGame.id.in_([game_id for game_id, _, _ in parsed]))
        if year is not None:
            query = query.filter(BowlGame.year == year)

        return self._enter_bulk(
            parsed,
            {game.id: game for game in query.all()} if parsed else {},
            entered_by,
            "Bowl game not found",
            " (bowl)",
        )

    def _enter_single(self, model, game_id, favorite_score, underdog_score, entered_by):
        favorite_score = parse_whole_number(favorite_score, "favorite_score")
        underdog_score = parse_whole_number(underdog_score, "underdog_score")

        game = db.session.get(model, game_id)
        if game is None:
            logger.warning(f"{model.__name__} {game_id} not found for result entry")
            return None, f"{model.__name__} {game_id} not found"

        error = _validate_scores(favorite_score, underdog_score)
        if error:
            return None, error

        result = resolve(game.favorite, game.underdog, game.line, favorite_score, underdog_score)
        game.stamp_result(favorite_score, underdog_score, result, entered_by)
        commit_or_rollback()

        logger.info(
            f"Result entered for {model.__name__} {game_id}: {game.favorite} {favorite_score} - "
            f"{game.underdog} {underdog_score}, Spread Winner: {result.spread_winner or 'N/A'}, "
            f"IsPush: {result.is_push}"
        )
        return game, None

    def _enter_bulk(self, parsed, games, entered_by, missing_reason, scope):
        entered = 0
        failures = []
        seen = set()

        for game_id, favorite_score, underdog_score in parsed:
            if game_id in seen:
                failures.append(
                    {"game_id": game_id, "code": DUPLICATE, "reason": "Duplicate entry in batch"}
                )
                logger.warning(f"Game {game_id} listed more than once in bulk result entry{scope}")
                continue
            seen.add(game_id)

            game = games.get(game_id)
            if game is None:
                failures.append({"game_id": game_id, "code": NOT_FOUND, "reason": missing_reason})
                logger.warning(f"Game {game_id} not found during bulk result entry{scope}")
                continue

            error = _validate_scores(favorite_score, underdog_score)
            if error:
                failures.append({"game_id": game_id, "code": INVALID_SCORE, "reason": error})
                continue

            result = resolve(
                game.favorite, game.underdog, game.line, favorite_score, underdog_score
            )
            game.stamp_result(favorite_score, underdog_score, result, entered_by)
            entered += 1

        if entered:
            commit_or_rollback()

        logger.info(
            f"Bulk result entry{scope}: {entered} entered, {len(failures)} failed"
        )
        return {
            "success": True,
            "entered": entered,
            "failed": len(failures),
            "failures": failures,
        }
