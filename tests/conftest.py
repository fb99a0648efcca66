from datetime import datetime, timedelta, timezone

import pytest

from spread_pickem import create_app, db
from spread_pickem.models import BowlGame, Game, User

YEAR = 2025


def future(hours=48):
    return datetime.now(timezone.utc) + timedelta(hours=hours)


def past(hours=3):
    return datetime.now(timezone.utc) - timedelta(hours=hours)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(display_name=None, email=None, external_id=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            external_id=external_id or f"ext-{n}",
            email=email or f"user{n}@example.com",
            display_name=display_name or f"User {n}",
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_game(app):
    def _make_game(
        favorite="Chiefs",
        underdog="Raiders",
        line=-7.5,
        week=1,
        year=YEAR,
        game_date=None,
    ):
        game = Game(
            year=year,
            week=week,
            favorite=favorite,
            underdog=underdog,
            line=line,
            game_date=game_date or future(),
        )
        db.session.add(game)
        db.session.commit()
        return game

    return _make_game


@pytest.fixture
def make_bowl_game(app):
    def _make_bowl_game(
        game_number,
        favorite=None,
        underdog=None,
        line=-3.5,
        year=YEAR,
        game_date=None,
        bowl_name=None,
    ):
        game = BowlGame(
            year=year,
            game_number=game_number,
            bowl_name=bowl_name or f"Bowl {game_number}",
            favorite=favorite or f"Favorite {game_number}",
            underdog=underdog or f"Underdog {game_number}",
            line=line,
            game_date=game_date or future(),
        )
        db.session.add(game)
        db.session.commit()
        return game

    return _make_bowl_game
