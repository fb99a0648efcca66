"""
Standings for the weekly contest and the bowl contest

Nothing here is stored. Every call reads games and picks and folds them into
standings from scratch, so a corrected result shows up on the next read.

Weekly grading: a push is worth half a win (and counts as a push), a
covering pick is a win, anything else is a loss. Picks on games without a
result are left out entirely.
"""

import logging
from collections import OrderedDict, defaultdict

from spread_pickem import db
from spread_pickem.models import BowlGame, BowlPick, Game, Pick, User
from spread_pickem.services.game_catalog import GameCatalog
from spread_pickem.services.result_resolver import LOSS, PUSH, WIN, pick_outcome

logger = logging.getLogger(__name__)


def win_percentage(wins, losses, pushes):
    """Share of graded picks won, as a percentage rounded to one decimal.

    ``wins`` already includes half a win per push, so the graded pick count
    is wins + losses + half the pushes.
    """
    graded = wins + losses + pushes * 0.5
    if graded <= 0:
        return 0.0
    return round(wins / graded * 100, 1)


def is_perfect_week(wins, losses, slate_size):
    """Every game of the slate won outright against the spread"""
    return bool(slate_size) and wins >= slate_size and losses == 0


class Tally:
    """Running win/loss/push count for one user over some set of picks"""

    def __init__(self):
        self.wins = 0.0
        self.losses = 0.0
        self.pushes = 0

    def add(self, outcome):
        if outcome == PUSH:
            self.pushes += 1
            self.wins += 0.5
        elif outcome == WIN:
            self.wins += 1
        elif outcome == LOSS:
            self.losses += 1

    @property
    def win_percentage(self):
        return win_percentage(self.wins, self.losses, self.pushes)


def _resolved_filter():
    # has_result is a Python property; spell it out for SQL
    return db.or_(Game.spread_winner.isnot(None), Game.is_push.is_(True))


def _bowl_resolved(game):
    return game is not None and game.has_result


class LeaderboardAggregator:
    """Computes standings on demand from games and picks"""

    def __init__(self, catalog=None):
        self.catalog = catalog or GameCatalog()

    # ------------------------------------------------------------------
    # Weekly contest
    # ------------------------------------------------------------------

    def weekly_standings(self, year, week):
        """
        Standings for one week.

        Returns:
            list[dict]: sorted by wins desc, losses asc, display name
        """
        picks = (
            Pick.query.join(Game)
            .filter(Pick.year == year, Pick.week == week, _resolved_filter())
            .all()
        )

        tallies = defaultdict(Tally)
        users = {}
        for pick in picks:
            tallies[pick.user_id].add(pick.outcome)
            users[pick.user_id] = pick.user

        standings = [
            {
                "user_id": user_id,
                "display_name": users[user_id].display_name,
                "week": week,
                "wins": tally.wins,
                "losses": tally.losses,
                "pushes": tally.pushes,
                "win_percentage": tally.win_percentage,
            }
            for user_id, tally in tallies.items()
        ]
        standings.sort(key=lambda e: (-e["wins"], e["losses"], e["display_name"]))

        logger.info(
            f"Generated weekly leaderboard for {year} week {week}: {len(standings)} entries"
        )
        return standings

    def season_standings(self, year, slate_sizes=None):
        """
        Season standings across every week.

        A perfect week means winning at least as many picks as the week's
        slate has games, with no losses. ``slate_sizes`` maps week to the
        number of games that week; it defaults to the catalog's counts.

        Returns:
            list[dict]: sorted by wins desc, win percentage desc, display name
        """
        if slate_sizes is None:
            slate_sizes = self.catalog.slate_sizes(year)

        picks = (
            Pick.query.join(Game)
            .filter(Pick.year == year, _resolved_filter())
            .all()
        )

        season_tallies = defaultdict(Tally)
        week_tallies = defaultdict(lambda: defaultdict(Tally))
        users = {}

        for pick in picks:
            outcome = pick.outcome
            season_tallies[pick.user_id].add(outcome)
            week_tallies[pick.user_id][pick.week].add(outcome)
            users[pick.user_id] = pick.user

        standings = []
        for user_id, tally in season_tallies.items():
            weeks = week_tallies[user_id]
            perfect_weeks = sum(
                1
                for week, week_tally in weeks.items()
                if is_perfect_week(week_tally.wins, week_tally.losses, slate_sizes.get(week, 0))
            )
            standings.append(
                {
                    "user_id": user_id,
                    "display_name": users[user_id].display_name,
                    "total_wins": tally.wins,
                    "total_losses": tally.losses,
                    "total_pushes": tally.pushes,
                    "win_percentage": tally.win_percentage,
                    "weeks_played": len(weeks),
                    "perfect_weeks": perfect_weeks,
                }
            )

        standings.sort(
            key=lambda e: (-e["total_wins"], -e["win_percentage"], e["display_name"])
        )

        logger.info(f"Generated season leaderboard for {year}: {len(standings)} entries")
        return standings

    def user_history(self, user_id, year, slate_sizes=None):
        """
        Week-by-week breakdown of one user's picks, graded where results exist.

        Returns:
            dict or None when the user doesn't exist
        """
        user = db.session.get(User, user_id)
        if user is None:
            logger.warning(f"User {user_id} not found for season history")
            return None

        if slate_sizes is None:
            slate_sizes = self.catalog.slate_sizes(year)

        picks = (
            Pick.query.join(Game)
            .filter(Pick.user_id == user_id, Pick.year == year)
            .order_by(Pick.week, Game.game_date, Game.id)
            .all()
        )

        season = Tally()
        weeks = OrderedDict()

        for pick in picks:
            week = weeks.get(pick.week)
            if week is None:
                week = weeks[pick.week] = {"tally": Tally(), "picks": []}

            game = pick.game
            outcome = pick.outcome
            week["tally"].add(outcome)
            season.add(outcome)
            week["picks"].append(
                {
                    "game_id": game.id,
                    "favorite": game.favorite,
                    "underdog": game.underdog,
                    "line": game.line,
                    "game_date": game.kickoff_utc().isoformat(),
                    "selected_team": pick.selected_team,
                    "spread_winner": game.spread_winner,
                    "is_push": game.is_push,
                    "has_result": game.has_result,
                    "result": outcome,
                    # None for a push or a game still pending
                    "is_win": {WIN: True, LOSS: False}.get(outcome),
                }
            )

        week_history = []
        for week_number, week in weeks.items():
            tally = week["tally"]
            week_history.append(
                {
                    "week": week_number,
                    "wins": tally.wins,
                    "losses": tally.losses,
                    "pushes": tally.pushes,
                    "is_perfect": is_perfect_week(
                        tally.wins, tally.losses, slate_sizes.get(week_number, 0)
                    ),
                    "picks": week["picks"],
                }
            )

        logger.info(
            f"Generated season history for user {user_id} year {year}: "
            f"{len(week_history)} weeks, {season.wins} wins"
        )

        return {
            "user_id": user.id,
            "display_name": user.display_name,
            "year": year,
            "total_wins": season.wins,
            "total_losses": season.losses,
            "total_pushes": season.pushes,
            "win_percentage": season.win_percentage,
            "weeks": week_history,
        }

    # ------------------------------------------------------------------
    # Bowl contest
    # ------------------------------------------------------------------

    def bowl_standings(self, year):
        """
        Confidence-point standings for the bowl slate.

        A correct spread pick earns its confidence points; a push earns
        nothing and is counted on its own. Outright picks are counted
        separately and never earn points. ``max_possible_points`` is the sum
        of every weight the user assigned, right or wrong.

        Returns:
            list[dict]: sorted by points, spread wins, outright wins (all desc)
        """
        games = BowlGame.query.filter_by(year=year).all()
        total_games = len(games)
        games_completed = sum(1 for game in games if game.has_result)

        picks = BowlPick.query.filter_by(year=year).all()

        entries = {}
        for pick in picks:
            entry = entries.get(pick.user_id)
            if entry is None:
                entry = entries[pick.user_id] = {
                    "user_id": pick.user_id,
                    "display_name": pick.user.display_name if pick.user else "Unknown",
                    "spread_points": 0,
                    "spread_wins": 0,
                    "spread_losses": 0,
                    "spread_pushes": 0,
                    "outright_wins": 0,
                    "max_possible_points": 0,
                    "games_completed": games_completed,
                    "total_games": total_games,
                }

            entry["max_possible_points"] += pick.confidence_points

            game = pick.bowl_game
            if not _bowl_resolved(game):
                continue

            outcome = pick_outcome(pick.spread_pick, game.spread_winner, game.is_push)
            if outcome == PUSH:
                entry["spread_pushes"] += 1
            elif outcome == WIN:
                entry["spread_wins"] += 1
                entry["spread_points"] += pick.confidence_points
            else:
                entry["spread_losses"] += 1

            if game.outright_winner is not None and game.outright_winner == pick.outright_winner_pick:
                entry["outright_wins"] += 1

        standings = list(entries.values())
        for entry in standings:
            entry["points_percentage"] = (
                round(entry["spread_points"] / entry["max_possible_points"] * 100, 1)
                if entry["max_possible_points"]
                else 0.0
            )

        standings.sort(
            key=lambda e: (
                -e["spread_points"],
                -e["spread_wins"],
                -e["outright_wins"],
                e["display_name"],
            )
        )

        logger.info(f"Generated bowl leaderboard for {year}: {len(standings)} entries")
        return standings

    def bowl_user_history(self, user_id, year):
        """Per-game detail of one user's bowl card; None without a user or picks"""
        user = db.session.get(User, user_id)
        if user is None:
            return None

        picks = (
            BowlPick.query.join(BowlGame)
            .filter(BowlPick.user_id == user_id, BowlPick.year == year)
            .order_by(BowlGame.game_number)
            .all()
        )
        if not picks:
            return None

        total_points = 0
        details = []

        for pick in picks:
            game = pick.bowl_game
            detail = {
                "game_number": game.game_number,
                "bowl_name": game.bowl_name,
                "favorite": game.favorite,
                "underdog": game.underdog,
                "line": game.line,
                "spread_pick": pick.spread_pick,
                "confidence_points": pick.confidence_points,
                "outright_winner_pick": pick.outright_winner_pick,
                "has_result": game.has_result,
                "favorite_score": None,
                "underdog_score": None,
                "spread_winner": None,
                "is_push": None,
                "actual_outright_winner": None,
                "points_earned": 0,
                "spread_pick_correct": None,
                "outright_pick_correct": None,
            }

            if game.has_result:
                outcome = pick_outcome(pick.spread_pick, game.spread_winner, game.is_push)
                detail.update(
                    {
                        "favorite_score": game.favorite_score,
                        "underdog_score": game.underdog_score,
                        "spread_winner": game.spread_winner,
                        "is_push": game.is_push,
                        "actual_outright_winner": game.outright_winner,
                        # A push is neither right nor wrong
                        "spread_pick_correct": None if outcome == PUSH else outcome == WIN,
                        "points_earned": pick.confidence_points if outcome == WIN else 0,
                        "outright_pick_correct": game.outright_winner == pick.outright_winner_pick,
                    }
                )
                total_points += detail["points_earned"]

            details.append(detail)

        return {
            "user_id": user.id,
            "display_name": user.display_name,
            "year": year,
            "total_points": total_points,
            "max_possible_points": sum(pick.confidence_points for pick in picks),
            "picks": details,
        }
