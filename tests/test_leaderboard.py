import pytest

from frenzy import db
from frenzy.models import GameOfTheWeek, PlayerOfTheWeek

KC = "Kansas City Chiefs"
BUF = "Buffalo Bills"
DET = "Detroit Lions"
GB = "Green Bay Packers"


@pytest.fixture
def scored_week(make_user, make_game, make_pick, kicked_off):
    """Week 1: KC (favorite) beats BUF 24-21, GB (underdog) beats DET 20-17"""
    make_game(1, KC, BUF, kicked_off, home_score=24, away_score=21, favorite=KC, spread=3.0)
    make_game(1, DET, GB, kicked_off, home_score=17, away_score=20, favorite=DET, spread=1.5)
    db.session.add(GameOfTheWeek(week=1, home_team=KC, away_team=BUF))
    db.session.add(PlayerOfTheWeek(week=1, player_name="Patrick Mahomes", player_total_yards=120))
    db.session.commit()

    users = {}
    for name, team, gotw, potw in [
        ("Alice", KC, 45, 120),
        ("Bob", GB, 50, 100),
        ("Carol", DET, 40, None),
        ("Dave", BUF, 30, 90),
    ]:
        users[name] = make_user(email=f"{name.lower()}@frenzy.io", first_name=name)
        make_pick(users[name], 1, team, gotw_prediction=gotw, potw_prediction=potw)
    return users


def test_week_table(client, scored_week):
    data = client.get("/leaderboard/week/1").get_json()

    assert data["state"] == "scored"
    assert data["gotw_actual"] == 45
    assert data["potw_actual"] == 120
    totals = [(r["name"], r["total_points"]) for r in data["rows"]]
    # Alice 1 + 3 + 3, Bob 2 + 2, Carol 0 + 1, Dave 0
    assert totals == [("Alice", 7), ("Bob", 4), ("Carol", 1), ("Dave", 0)]
    assert [p["name"] for p in data["podium"]] == ["Alice", "Bob", "Carol"]
    assert data["potw_exact"] == [{"user_id": scored_week["Alice"].id, "name": "Alice"}]
    assert data["winners"] == [scored_week["Alice"].id]
    assert all("email" not in r for r in data["rows"])


def test_overall_standings(client, scored_week, make_game, make_pick, kicked_off):
    make_game(13, KC, BUF, kicked_off, home_score=10, away_score=13, favorite=KC)
    make_pick(scored_week["Dave"], 13, BUF)

    data = client.get("/leaderboard/overall").get_json()

    assert data["weeks"] == [1, 13]
    standings = {s["name"]: s for s in data["standings"]}
    # Week 13 doubles Dave's underdog win
    assert standings["Dave"]["total_points"] == 4
    assert standings["Dave"]["correct_underdogs"] == 1
    assert standings["Alice"]["rank"] == 1
    assert standings["Alice"]["gotw_firsts"] == 1
    assert standings["Alice"]["potw_exact"] == 1
    assert (standings["Bob"]["rank"], standings["Dave"]["rank"]) == (2, 2)
    assert all("email" not in s for s in data["standings"])


def test_results_follow_store_changes(client, scored_week):
    potw = PlayerOfTheWeek.for_week(1)
    potw.player_total_yards = 100
    db.session.commit()

    data = client.get("/leaderboard/week/1").get_json()
    bob = next(r for r in data["rows"] if r["name"] == "Bob")
    assert bob["potw_exact"] is True


def test_open_week(client, make_game, upcoming):
    make_game(2, KC, BUF, upcoming)
    data = client.get("/leaderboard/week/2").get_json()
    assert data["state"] == "open"
    assert data["rows"] == []


def test_invalid_week(client, app):
    assert client.get("/leaderboard/week/0").status_code == 400
