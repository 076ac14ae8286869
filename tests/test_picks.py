from datetime import timedelta

from frenzy import db
from frenzy.models import Pick
from frenzy.utils.timezone_utils import EASTERN, get_utc_time

KC = "Kansas City Chiefs"
BUF = "Buffalo Bills"
DET = "Detroit Lions"
GB = "Green Bay Packers"


def submit(client, headers, **payload):
    return client.post("/picks/submit", json=payload, headers=headers)


class TestSubmit:
    def test_resubmission_replaces_the_pick(self, client, player, auth_headers, make_game, upcoming):
        make_game(1, KC, BUF, upcoming)
        headers = auth_headers(player)

        first = submit(client, headers, week=1, team="KC", gotw_prediction=45)
        assert first.status_code == 200
        assert first.get_json()["pick"]["team"] == KC

        second = client.post(
            "/picks/", json={"week": 1, "team": "Bills", "potw_prediction": 120}, headers=headers
        )
        assert second.status_code == 200

        db.session.expire_all()
        picks = Pick.query.filter_by(user_id=player.id, week=1).all()
        assert len(picks) == 1
        assert picks[0].team == BUF
        assert picks[0].gotw_prediction is None
        assert picks[0].potw_prediction == 120

    def test_locked_week(self, client, player, auth_headers, make_game, kicked_off):
        make_game(1, KC, BUF, kicked_off)
        response = submit(client, auth_headers(player), week=1, team=KC)
        assert response.status_code == 403
        assert "locked" in response.get_json()["error"]

    def test_team_not_playing(self, client, player, auth_headers, make_game, upcoming):
        make_game(1, KC, BUF, upcoming)
        response = submit(client, auth_headers(player), week=1, team=DET)
        assert response.status_code == 400
        assert Pick.query.count() == 0

    def test_invalid_payload(self, client, player, auth_headers):
        headers = auth_headers(player)
        assert submit(client, headers, week=0, team=KC).status_code == 400
        assert submit(client, headers, week=1).status_code == 400
        assert submit(client, headers, week=1, team=KC, gotw_prediction=-3).status_code == 400

    def test_requires_login(self, client):
        assert client.post("/picks/submit", json={"week": 1, "team": KC}).status_code == 401


class TestPrivatePicks:
    def test_own_picks_only(self, client, player, make_user, auth_headers, make_pick):
        other = make_user(email="other@frenzy.io", first_name="Otto")
        make_pick(player, 1, KC)
        make_pick(player, 2, DET)
        make_pick(other, 1, BUF)
        headers = auth_headers(player)

        season = client.get("/picks/season/private", headers=headers).get_json()
        assert [p["week"] for p in season] == [1, 2]

        week = client.get("/picks/week/1/private", headers=headers).get_json()
        assert [p["team"] for p in week] == [KC]
        assert client.get("/picks/week/3/private", headers=headers).get_json() == []

    def test_other_user_id_is_forbidden(self, client, player, auth_headers):
        headers = auth_headers(player)
        assert client.get("/picks/season/private?user_id=999", headers=headers).status_code == 403
        ok = client.get(f"/picks/week/1/private?user_id={player.id}", headers=headers)
        assert ok.status_code == 200


class TestPublicPicks:
    def test_hidden_until_lock(self, client, player, make_game, make_pick, upcoming):
        make_game(1, KC, BUF, upcoming)
        make_pick(player, 1, KC)

        data = client.get("/picks/week/1/public").get_json()
        assert data["locked"] is True
        assert data["picks"] == []
        assert data["unlock_at"]

    def test_visible_after_lock(self, client, make_user, make_game, make_pick, kicked_off):
        make_game(1, KC, BUF, kicked_off, home_score=24, away_score=21, favorite=KC)
        make_game(1, DET, GB, kicked_off, home_score=17, away_score=20, favorite=DET)
        alice = make_user(email="alice@frenzy.io", first_name="Alice")
        bob = make_user(email="bob@frenzy.io", first_name="Bob")
        make_pick(alice, 1, KC)
        make_pick(bob, 1, DET)

        data = client.get("/picks/week/1/public").get_json()
        assert data["locked"] is False
        by_name = {p["name"]: p for p in data["picks"]}
        assert by_name["Alice"]["is_correct_pick"] is True
        assert by_name["Alice"]["is_favorite"] is True
        assert by_name["Alice"]["is_weekly_winner"] is True
        assert by_name["Bob"]["is_correct_pick"] is False
        assert "email" not in by_name["Alice"]
        assert data["winners"] == [alice.id]


def test_team_whose_game_already_started(client, player, auth_headers, make_game):
    now = get_utc_time()
    thursday = now - timedelta(hours=1)
    if thursday.astimezone(EASTERN).weekday() == 6:
        thursday -= timedelta(days=1)
    sunday = (now + timedelta(days=7 + (6 - now.weekday()) % 7)).replace(
        hour=17, minute=0, second=0, microsecond=0
    )
    make_game(1, DET, GB, thursday)
    make_game(1, KC, BUF, sunday)
    headers = auth_headers(player)

    response = submit(client, headers, week=1, team=GB)
    assert response.status_code == 403
    assert "already kicked off" in response.get_json()["error"]

    assert submit(client, headers, week=1, team=KC).status_code == 200
