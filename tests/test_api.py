import pytest
from conftest import YEAR, past

from spread_pickem.models import User

PLAYER = {"X-User-Id": "auth0|player", "X-User-Email": "player@example.com", "X-User-Name": "Player"}
ADMIN = {"X-User-Id": "auth0|admin", "X-User-Email": "Admin@Example.com", "X-User-Name": "Admin"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_identity_headers_required(client):
    response = client.post(f"/api/picks/{YEAR}/1", json={"picks": []})

    assert response.status_code == 401
    assert response.get_json() == {"error": "Authentication required"}


def test_first_request_creates_the_user(client):
    client.get(f"/api/picks/{YEAR}", headers=PLAYER)
    client.get(f"/api/picks/{YEAR}", headers=PLAYER)

    users = User.query.filter_by(external_id="auth0|player").all()
    assert len(users) == 1
    assert users[0].display_name == "Player"


def test_week_games_and_weeks(client, make_game):
    game = make_game(week=2)

    response = client.get(f"/api/games/{YEAR}/2")
    assert response.status_code == 200
    games = response.get_json()["games"]
    assert [g["id"] for g in games] == [game.id]
    assert games[0]["is_locked"] is False
    assert games[0]["has_result"] is False

    assert client.get(f"/api/weeks/{YEAR}").get_json()["weeks"] == [2]


def test_submit_and_read_back_picks(client, make_game):
    game = make_game()
    locked = make_game(favorite="Bills", underdog="Jets", game_date=past())

    response = client.post(
        f"/api/picks/{YEAR}/1",
        json={
            "picks": [
                {"game_id": game.id, "selected_team": "Raiders"},
                {"game_id": locked.id, "selected_team": "Bills"},
            ]
        },
        headers=PLAYER,
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["submitted"] == 1
    assert body["rejected"][0]["code"] == "locked"

    picks = client.get(f"/api/picks/{YEAR}/1", headers=PLAYER).get_json()
    assert [(p["game_id"], p["selected_team"]) for p in picks] == [(game.id, "Raiders")]


def test_malformed_picks_are_bad_requests(client, make_game):
    make_game()

    response = client.post(f"/api/picks/{YEAR}/1", json={"picks": [{"selected_team": "Raiders"}]}, headers=PLAYER)
    assert response.status_code == 400
    assert response.get_json()["success"] is False

    response = client.post(f"/api/picks/{YEAR}/1", json={"picks": "Raiders"}, headers=PLAYER)
    assert response.status_code == 400

    response = client.post(f"/api/picks/{YEAR}/1", json={"picks": [], "mode": "sometimes"}, headers=PLAYER)
    assert response.status_code == 400


def test_result_entry_requires_admin(client, make_game):
    game = make_game()

    response = client.post(
        f"/api/results/game/{game.id}",
        json={"favorite_score": 10, "underdog_score": 3},
        headers=PLAYER,
    )

    assert response.status_code == 403


def test_admin_enters_result(client, make_game):
    game = make_game(line=-7.5)

    response = client.post(
        f"/api/results/game/{game.id}",
        json={"favorite_score": 10, "underdog_score": 3},
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.get_json()["game"]["spread_winner"] == "Raiders"

    missing = client.post(
        "/api/results/game/9999", json={"favorite_score": 1, "underdog_score": 0}, headers=ADMIN
    )
    assert missing.status_code == 404

    negative = client.post(
        f"/api/results/game/{game.id}", json={"favorite_score": -1, "underdog_score": 0}, headers=ADMIN
    )
    assert negative.status_code == 400


def test_bulk_results(client, make_game):
    game = make_game()

    response = client.post(
        f"/api/results/{YEAR}/1",
        json={
            "results": [
                {"game_id": game.id, "favorite_score": 28, "underdog_score": 14},
                {"game_id": 9999, "favorite_score": 1, "underdog_score": 0},
            ]
        },
        headers=ADMIN,
    )

    body = response.get_json()
    assert (body["entered"], body["failed"]) == (1, 1)


def test_admin_syncs_slate(client):
    response = client.post(
        f"/api/games/{YEAR}/1/sync",
        json={
            "games": [
                {"favorite": "Chiefs", "underdog": "Raiders", "line": -7.5, "game_date": "2025-09-07T17:00:00Z"}
            ]
        },
        headers=ADMIN,
    )

    assert response.get_json() == {"success": True, "synced": 1}


def test_bowl_card_round_trip(client, make_bowl_game):
    games = [make_bowl_game(n) for n in (1, 2)]
    card = [
        {
            "bowl_game_id": game.id,
            "spread_pick": game.favorite,
            "confidence_points": points,
            "outright_winner_pick": game.favorite,
        }
        for game, points in zip(games, (2, 1))
    ]

    response = client.post(f"/api/bowl-picks/{YEAR}", json={"picks": card}, headers=PLAYER)
    assert response.status_code == 200
    assert response.get_json()["submitted"] == 2

    stored = client.get(f"/api/bowl-picks/{YEAR}", headers=PLAYER).get_json()
    assert [p["confidence_points"] for p in stored] == [2, 1]


def test_duplicate_bowl_weights_are_refused(client, make_bowl_game):
    games = [make_bowl_game(n) for n in (1, 2)]
    card = [
        {
            "bowl_game_id": game.id,
            "spread_pick": game.favorite,
            "confidence_points": 1,
            "outright_winner_pick": game.favorite,
        }
        for game in games
    ]

    response = client.post(f"/api/bowl-picks/{YEAR}", json={"picks": card}, headers=PLAYER)

    assert response.status_code == 400
    assert response.get_json()["success"] is False


@pytest.mark.parametrize(
    "path",
    [
        f"/api/leaderboard/{YEAR}/week/1",
        f"/api/leaderboard/{YEAR}/season",
        f"/api/bowl-leaderboard/{YEAR}",
        f"/api/bowl-games/{YEAR}",
    ],
)
def test_public_reads(client, path):
    assert client.get(path).status_code == 200


def test_user_history_not_found(client):
    assert client.get(f"/api/leaderboard/{YEAR}/user/9999").status_code == 404
    assert client.get(f"/api/bowl-leaderboard/{YEAR}/user/9999").status_code == 404


def test_weekly_leaderboard_after_results(client, make_game):
    game = make_game(line=-7.5)
    client.post(
        f"/api/picks/{YEAR}/1",
        json={"picks": [{"game_id": game.id, "selected_team": "Raiders"}]},
        headers=PLAYER,
    )
    client.post(
        f"/api/results/game/{game.id}",
        json={"favorite_score": 10, "underdog_score": 3},
        headers=ADMIN,
    )

    standings = client.get(f"/api/leaderboard/{YEAR}/week/1").get_json()["standings"]

    assert standings[0]["display_name"] == "Player"
    assert standings[0]["wins"] == 1


def test_fractional_scores_are_bad_requests(client, make_game):
    game = make_game()

    response = client.post(
        f"/api/results/game/{game.id}",
        json={"favorite_score": 24.9, "underdog_score": 3},
        headers=ADMIN,
    )

    assert response.status_code == 400
    assert response.get_json()["success"] is False
    assert client.get(f"/api/games/{YEAR}/1").get_json()["games"][0]["has_result"] is False


def test_same_team_slate_entry_is_skipped(client):
    response = client.post(
        f"/api/games/{YEAR}/1/sync",
        json={
            "games": [
                {"favorite": "Chiefs", "underdog": "Raiders", "line": -7.5, "game_date": "2025-09-07T17:00:00Z"},
                {"favorite": "Bills", "underdog": "Bills", "line": -3, "game_date": "2025-09-07T17:00:00Z"},
            ]
        },
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "synced": 1}


def test_non_finite_line_is_a_bad_request(client):
    response = client.post(
        f"/api/games/{YEAR}/1/sync",
        json={"games": [{"favorite": "Chiefs", "underdog": "Raiders", "line": "NaN", "game_date": "2025-09-07T17:00:00Z"}]},
        headers=ADMIN,
    )

    assert response.status_code == 400


def test_me(client):
    player = client.get("/api/me", headers=PLAYER).get_json()
    admin = client.get("/api/me", headers=ADMIN).get_json()

    assert player["display_name"] == "Player"
    assert player["is_admin"] is False
    assert admin["is_admin"] is True
    assert client.get("/api/me").status_code == 401
