from frenzy import create_app, db
from frenzy.models import Game, GameOfTheWeek, Pick, PlayerOfTheWeek, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Game": Game,
        "Pick": Pick,
        "GameOfTheWeek": GameOfTheWeek,
        "PlayerOfTheWeek": PlayerOfTheWeek,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
