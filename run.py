from spread_pickem import create_app, db
from spread_pickem.models import BowlGame, BowlPick, Game, Pick, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Game": Game,
        "Pick": Pick,
        "BowlGame": BowlGame,
        "BowlPick": BowlPick,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
