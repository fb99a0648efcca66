import pytest
from conftest import YEAR

from spread_pickem.services.game_catalog import GameCatalog
from spread_pickem.services.leaderboard import (
    LeaderboardAggregator,
    is_perfect_week,
    win_percentage,
)
from spread_pickem.services.pick_ledger import PickLedger


@pytest.fixture
def catalog(app):
    return GameCatalog()


@pytest.fixture
def aggregator(catalog):
    return LeaderboardAggregator(catalog)


@pytest.fixture
def season(catalog, make_user, make_game):
    """
    Week 1: Chiefs -7.5 Raiders (10-3, Raiders cover), Bills -3 Jets (24-21,
    push), Eagles -6.5 Giants (no result yet).
    Week 2: Chiefs -3 Broncos (27-14, Chiefs cover).
    """
    users = {name: make_user(name) for name in ("Alice", "Bob", "Carol")}

    chiefs = make_game("Chiefs", "Raiders", -7.5, week=1)
    bills = make_game("Bills", "Jets", -3, week=1)
    eagles = make_game("Eagles", "Giants", -6.5, week=1)
    broncos = make_game("Chiefs", "Broncos", -3, week=2)

    ledger = PickLedger()

    def submit(name, week, picks):
        ledger.submit(
            users[name].id,
            YEAR,
            week,
            [{"game_id": game.id, "selected_team": team} for game, team in picks],
        )

    submit("Alice", 1, [(chiefs, "Raiders"), (bills, "Bills")])
    submit("Bob", 1, [(chiefs, "Chiefs"), (bills, "Jets")])
    submit("Carol", 1, [(chiefs, "Raiders"), (bills, "Jets"), (eagles, "Eagles")])
    submit("Alice", 2, [(broncos, "Chiefs")])

    catalog.enter_result(chiefs.id, 10, 3)
    catalog.enter_result(bills.id, 24, 21)
    catalog.enter_result(broncos.id, 27, 14)

    return users


def test_win_percentage_counts_pushes_as_half():
    assert win_percentage(1.5, 0, 1) == 75.0
    assert win_percentage(0.5, 1, 1) == 25.0
    assert win_percentage(0, 0, 0) == 0.0
    assert win_percentage(2, 1, 0) == 66.7


def test_perfect_week_needs_full_slate_and_no_losses():
    assert is_perfect_week(6, 0, 6) is True
    assert is_perfect_week(5.5, 0, 6) is False
    assert is_perfect_week(7, 0, 6) is True
    assert is_perfect_week(6, 1, 6) is False
    assert is_perfect_week(0, 0, 0) is False


class TestWeeklyStandings:
    def test_grades_resolved_picks_only(self, aggregator, season):
        standings = aggregator.weekly_standings(YEAR, 1)
        by_name = {e["display_name"]: e for e in standings}

        assert (by_name["Alice"]["wins"], by_name["Alice"]["losses"], by_name["Alice"]["pushes"]) == (1.5, 0, 1)
        assert (by_name["Bob"]["wins"], by_name["Bob"]["losses"], by_name["Bob"]["pushes"]) == (0.5, 1, 1)
        # Carol's pick on the unresolved Eagles game is ignored
        assert (by_name["Carol"]["wins"], by_name["Carol"]["losses"], by_name["Carol"]["pushes"]) == (1.5, 0, 1)
        assert by_name["Alice"]["win_percentage"] == 75.0
        assert by_name["Bob"]["win_percentage"] == 25.0

    def test_sorted_by_wins_then_losses_then_name(self, aggregator, season):
        standings = aggregator.weekly_standings(YEAR, 1)

        assert [e["display_name"] for e in standings] == ["Alice", "Carol", "Bob"]

    def test_week_without_results_is_empty(self, aggregator, season):
        assert aggregator.weekly_standings(YEAR, 3) == []

    def test_corrected_result_is_reflected_on_next_read(self, aggregator, catalog, season):
        chiefs = catalog.get_slate(YEAR, 1)[0]
        catalog.enter_result(chiefs.id, 30, 3)

        by_name = {e["display_name"]: e for e in aggregator.weekly_standings(YEAR, 1)}
        assert by_name["Bob"]["wins"] == 1.5
        assert by_name["Alice"]["losses"] == 1


class TestSeasonStandings:
    def test_season_totals_equal_sum_of_weeks(self, aggregator, catalog, season):
        standings = aggregator.season_standings(YEAR)

        for entry in standings:
            weekly_wins = 0
            weekly_losses = 0
            for week in catalog.get_available_weeks(YEAR):
                for weekly in aggregator.weekly_standings(YEAR, week):
                    if weekly["user_id"] == entry["user_id"]:
                        weekly_wins += weekly["wins"]
                        weekly_losses += weekly["losses"]
            assert entry["total_wins"] == weekly_wins
            assert entry["total_losses"] == weekly_losses

    def test_sorted_and_counted(self, aggregator, season):
        standings = aggregator.season_standings(YEAR)

        assert [e["display_name"] for e in standings] == ["Alice", "Carol", "Bob"]
        alice = standings[0]
        assert alice["total_wins"] == 2.5
        assert alice["weeks_played"] == 2
        assert alice["win_percentage"] == 83.3

    def test_perfect_weeks_use_each_weeks_slate_size(self, aggregator, season):
        by_name = {e["display_name"]: e for e in aggregator.season_standings(YEAR)}

        # Week 2 has a single game which Alice won; week 1 has three games
        assert by_name["Alice"]["perfect_weeks"] == 1
        assert by_name["Carol"]["perfect_weeks"] == 0

    def test_explicit_slate_sizes(self, aggregator, season):
        by_name = {
            e["display_name"]: e
            for e in aggregator.season_standings(YEAR, slate_sizes={1: 1, 2: 1})
        }

        assert by_name["Alice"]["perfect_weeks"] == 2
        assert by_name["Carol"]["perfect_weeks"] == 1
        # A loss rules out a perfect week regardless of wins
        assert by_name["Bob"]["perfect_weeks"] == 0


class TestUserHistory:
    def test_unknown_user(self, aggregator, season):
        assert aggregator.user_history(9999, YEAR) is None

    def test_breakdown_includes_pending_picks(self, aggregator, season):
        history = aggregator.user_history(season["Carol"].id, YEAR)

        assert history["display_name"] == "Carol"
        assert history["total_wins"] == 1.5
        assert len(history["weeks"]) == 1

        week = history["weeks"][0]
        assert week["week"] == 1
        assert week["is_perfect"] is False
        assert [p["result"] for p in week["picks"]] == ["win", "push", None]
        assert [p["is_win"] for p in week["picks"]] == [True, None, None]

    def test_weeks_in_order(self, aggregator, season):
        history = aggregator.user_history(season["Alice"].id, YEAR)

        assert [w["week"] for w in history["weeks"]] == [1, 2]
        assert history["weeks"][1]["is_perfect"] is True
