import os
from datetime import timedelta

import pytest
from flask import g

os.environ.setdefault("SECRET_KEY", "testing-secret-key")
os.environ.setdefault("FLASK_CONFIG", "testing")

from frenzy import create_app, db  # noqa: E402
from frenzy.models import Game, Pick, User  # noqa: E402
from frenzy.utils.auth import generate_auth_token  # noqa: E402
from frenzy.utils.timezone_utils import get_utc_time  # noqa: E402


@pytest.fixture
def app():
    app = create_app("testing")

    @app.teardown_request
    def forget_login(exc):
        # Requests reuse the fixture's app context, so g outlives each request
        g.pop("_login_user", None)

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
    def _make(
        email="player@frenzy.io",
        password="password123",
        first_name="Pat",
        last_name=None,
        is_admin=False,
        pending_approval=False,
        is_active=True,
    ):
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            name=" ".join(p for p in (first_name, last_name) if p),
            is_admin=is_admin,
            pending_approval=pending_approval,
            is_active=is_active,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def player(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@frenzy.io", first_name="Ada", is_admin=True)


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {generate_auth_token(user)}"}

    return _headers


@pytest.fixture
def make_game(app):
    def _make(week, home_team, away_team, kickoff=None, **fields):
        game = Game(
            week=week, home_team=home_team, away_team=away_team, kickoff=kickoff, **fields
        )
        db.session.add(game)
        db.session.commit()
        return game

    return _make


@pytest.fixture
def make_pick(app):
    def _make(user, week, team, gotw_prediction=None, potw_prediction=None):
        pick = Pick(
            user_id=user.id,
            week=week,
            team=team,
            gotw_prediction=gotw_prediction,
            potw_prediction=potw_prediction,
        )
        db.session.add(pick)
        db.session.commit()
        return pick

    return _make


@pytest.fixture
def upcoming():
    """A kickoff a few days ahead, so the week is still open"""
    return get_utc_time() + timedelta(days=3)


@pytest.fixture
def kicked_off():
    """A kickoff a few days back, so the week is locked"""
    return get_utc_time() - timedelta(days=3)
