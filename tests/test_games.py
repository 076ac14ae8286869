from datetime import timedelta

from frenzy import db
from frenzy.models import GameOfTheWeek

KC = "Kansas City Chiefs"
BUF = "Buffalo Bills"
DET = "Detroit Lions"
GB = "Green Bay Packers"


def test_games_for_week_in_kickoff_order(client, make_game, upcoming):
    late = make_game(1, DET, GB, upcoming + timedelta(hours=3))
    early = make_game(1, KC, BUF, upcoming, favorite=KC, spread=2.5)

    games = client.get("/games/week/1").get_json()

    assert [g["id"] for g in games] == [early.id, late.id]
    assert games[0]["status"] == "scheduled"
    assert games[0]["kickoff"].endswith("Z")
    assert client.get("/games/week/2").status_code == 404


def test_game_detail(client, make_game, kicked_off):
    game = make_game(1, KC, BUF, kicked_off, home_score=27, away_score=20)

    data = client.get(f"/games/{game.id}").get_json()
    assert (data["status"], data["winner"]) == ("final", KC)
    assert client.get("/games/999").status_code == 404


def test_highlights(client, make_game, upcoming):
    game = make_game(3, KC, BUF, upcoming)
    db.session.add(GameOfTheWeek(week=3, home_team=KC, away_team=BUF))
    db.session.commit()

    data = client.get("/games/highlights/3").get_json()
    assert data["gotw"]["game_id"] == game.id
    assert data["potw"] is None


def test_public_games_default_to_the_schedule_week(client, make_game, kicked_off, upcoming):
    make_game(1, KC, BUF, kicked_off)
    make_game(2, DET, GB, upcoming)

    assert client.get("/public/games").get_json()["week"] == 1
    assert client.get("/public/games?week=2").get_json()["games"][0]["home_team"] == DET


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
