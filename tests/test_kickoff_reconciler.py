from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from frenzy import db
from frenzy.models import Game
from frenzy.services.kickoff_reconciler import (
    ReconcileError,
    ReconcilerSettings,
    reconcile_kickoffs,
)
from frenzy.services.providers import (
    STRATEGY_ODDS,
    STRATEGY_SPORTSDATA_LOCAL,
    STRATEGY_SPORTSDATA_UTC,
    Fixture,
    KickoffReading,
    ProviderError,
)
from frenzy.utils.timezone_utils import TzConvention, ensure_utc

KC = "Kansas City Chiefs"
BUF = "Buffalo Bills"

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)
KICKOFF = datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc)
THRESHOLD = timedelta(seconds=60)


class FakeSource:
    def __init__(self, source, fixtures=(), error=None):
        self.source = source
        self.fixtures = list(fixtures)
        self.error = error
        self.requested = []

    def fetch_fixtures(self, weeks=None):
        self.requested.append(weeks)
        if self.error:
            raise ProviderError(self.source, self.error)
        return list(self.fixtures)


def odds_fixture(raw, home=KC, away=BUF):
    return Fixture(
        source="odds",
        home_team=home,
        away_team=away,
        readings=[KickoffReading(STRATEGY_ODDS, raw)],
    )


def reconcile(sources, **overrides):
    overrides.setdefault("threshold", THRESHOLD)
    overrides.setdefault("apply", True)
    return reconcile_kickoffs(sources=sources, now=NOW, **overrides)


def stored_kickoff(game_id):
    db.session.expire_all()
    return ensure_utc(db.session.get(Game, game_id).kickoff)


@pytest.fixture
def game(app, make_game):
    return make_game(1, KC, BUF, KICKOFF)


def test_drift_past_threshold_is_corrected(game):
    report = reconcile([FakeSource("odds", [odds_fixture("2025-09-07T17:01:01Z")])])

    assert report.applied
    (correction,) = report.corrections
    assert correction.delta == timedelta(seconds=61)
    assert correction.source == STRATEGY_ODDS
    assert stored_kickoff(game.id) == KICKOFF + timedelta(seconds=61)


def test_drift_below_threshold_is_left_alone(game):
    report = reconcile([FakeSource("odds", [odds_fixture("2025-09-07T17:00:59Z")])])

    assert report.corrections == []
    assert report.unchanged == 1
    assert stored_kickoff(game.id) == KICKOFF


def test_second_run_changes_nothing(game):
    sources = [FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z")])]
    first = reconcile(sources)
    second = reconcile(sources)

    assert len(first.corrections) == 1
    assert second.corrections == []
    assert second.unchanged == 1
    assert stored_kickoff(game.id) == datetime(2025, 9, 7, 20, 25, tzinfo=timezone.utc)


def test_dry_run_writes_nothing(game):
    report = reconcile(
        [FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z")])], apply=False
    )

    assert not report.applied
    assert len(report.corrections) == 1
    assert stored_kickoff(game.id) == KICKOFF


def test_weeks_below_floor_are_skipped(game, make_game):
    later = make_game(3, "Detroit Lions", "Green Bay Packers", KICKOFF + timedelta(days=14))
    source = FakeSource(
        "odds",
        [
            odds_fixture("2025-09-07T20:25:00Z"),
            odds_fixture("2025-09-21T20:25:00Z", "Detroit Lions", "Green Bay Packers"),
        ],
    )
    report = reconcile([source], min_week=2)

    assert source.requested == [[3]]
    assert [c.game_id for c in report.corrections] == [later.id]
    assert stored_kickoff(game.id) == KICKOFF


def test_games_already_kicked_off_are_never_touched(make_game, app):
    past = make_game(1, KC, BUF, NOW - timedelta(hours=2))
    report = reconcile([FakeSource("odds", [odds_fixture("2025-09-01T12:30:00Z")])])

    assert report.corrections == []
    assert [s.reason for s in report.skipped] == ["already kicked off"]
    assert stored_kickoff(past.id) == NOW - timedelta(hours=2)


def test_failing_source_does_not_stop_the_others(game):
    report = reconcile(
        [
            FakeSource("sportsdata", error="503 Service Unavailable"),
            FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z")]),
        ]
    )

    assert "sportsdata" in report.source_errors
    assert len(report.corrections) == 1


def test_strategy_order_decides_between_sources(game):
    fixture = Fixture(
        source="sportsdata",
        home_team=KC,
        away_team=BUF,
        week=1,
        readings=[KickoffReading(STRATEGY_SPORTSDATA_UTC, "2025-09-07T18:00:00")],
    )
    sources = [FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z")]), FakeSource("sd", [fixture])]

    default = reconcile(sources, apply=False)
    assert default.corrections[0].source == STRATEGY_ODDS

    reordered = reconcile(sources, apply=False, source_order=(STRATEGY_SPORTSDATA_UTC, STRATEGY_ODDS))
    assert reordered.corrections[0].source == STRATEGY_SPORTSDATA_UTC
    assert reordered.corrections[0].new == datetime(2025, 9, 7, 18, tzinfo=timezone.utc)


def test_eastern_wall_clock_reading(game):
    fixture = Fixture(
        source="sportsdata",
        home_team=KC,
        away_team=BUF,
        week=1,
        readings=[
            KickoffReading(
                STRATEGY_SPORTSDATA_LOCAL, "2025-09-07T13:00:00", TzConvention.EASTERN_LOCAL
            )
        ],
    )
    report = reconcile(
        [FakeSource("sportsdata", [fixture])], source_order=(STRATEGY_SPORTSDATA_LOCAL,)
    )
    assert report.corrections == []
    assert report.unchanged == 1


def test_malformed_reading_falls_through_to_next_strategy(game):
    fixture = Fixture(
        source="sportsdata",
        home_team=KC,
        away_team=BUF,
        week=1,
        readings=[
            KickoffReading(STRATEGY_SPORTSDATA_UTC, "garbage"),
            KickoffReading(
                STRATEGY_SPORTSDATA_LOCAL, "2025-09-07T16:25:00", TzConvention.EASTERN_LOCAL
            ),
        ],
    )
    report = reconcile([FakeSource("sportsdata", [fixture])])
    assert report.corrections[0].source == STRATEGY_SPORTSDATA_LOCAL
    assert stored_kickoff(game.id) == datetime(2025, 9, 7, 20, 25, tzinfo=timezone.utc)


def test_reversed_orientation_keeps_stored_sides(game):
    report = reconcile([FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z", BUF, KC)])])

    assert len(report.corrections) == 1
    db.session.expire_all()
    stored = db.session.get(Game, game.id)
    assert (stored.home_team, stored.away_team) == (KC, BUF)


def test_missing_kickoff_is_filled(make_game, app):
    tbd = make_game(2, KC, BUF)
    report = reconcile([FakeSource("odds", [odds_fixture("2025-09-14T17:00:00Z")])])

    assert report.corrections[0].delta is None
    assert stored_kickoff(tbd.id) == datetime(2025, 9, 14, 17, tzinfo=timezone.utc)


def test_unmatched_game_is_reported(game):
    report = reconcile(
        [FakeSource("odds", [odds_fixture("2025-09-07T20:25:00Z", "Detroit Lions", BUF)])]
    )
    assert [s.reason for s in report.skipped] == ["no matching fixture"]


def test_write_failure_rolls_back_everything(game, make_game, monkeypatch):
    other = make_game(1, "Detroit Lions", "Green Bay Packers", KICKOFF)
    sources = [
        FakeSource(
            "odds",
            [
                odds_fixture("2025-09-07T20:25:00Z"),
                odds_fixture("2025-09-07T20:25:00Z", "Detroit Lions", "Green Bay Packers"),
            ],
        )
    ]

    def failing_commit():
        raise OperationalError("UPDATE games", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "commit", failing_commit)
    with pytest.raises(ReconcileError):
        reconcile(sources)
    monkeypatch.undo()

    assert stored_kickoff(game.id) == KICKOFF
    assert stored_kickoff(other.id) == KICKOFF


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        ReconcilerSettings(threshold=timedelta(0))


def test_settings_from_config_with_overrides(app):
    settings = ReconcilerSettings.from_config(app.config, min_week=4, apply=None)
    assert settings.min_week == 4
    assert settings.apply is False
    assert settings.threshold == timedelta(minutes=1)
    assert settings.source_order[0] == STRATEGY_ODDS
