from datetime import datetime, timedelta, timezone

import pytest

from frenzy.utils.scoring import (
    OUTCOME_LOSS,
    OUTCOME_NO_GAME,
    OUTCOME_NO_PICK,
    OUTCOME_PENDING,
    OUTCOME_TIE,
    OUTCOME_WIN,
    WEEK_LOCKED,
    WEEK_OPEN,
    WEEK_SCORED,
    GameResult,
    GotwMatchup,
    PickEntry,
    WeekRow,
    WeekTable,
    compute_season_standings,
    compute_week_table,
    rank_gotw,
    score_pick,
    week_factor,
    week_state,
)

KC = "Kansas City Chiefs"
BUF = "Buffalo Bills"
DET = "Detroit Lions"
GB = "Green Bay Packers"

SUNDAY = datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc)


def final(home, away, home_score, away_score, favorite=None, kickoff=SUNDAY):
    return GameResult(home, away, home_score, away_score, favorite, kickoff)


class TestScorePick:
    def test_favorite_win_pays_one(self):
        games = [final(KC, BUF, 27, 20, favorite=KC)]
        assert score_pick(KC, games) == (1, OUTCOME_WIN, "favorite")

    def test_underdog_win_pays_two(self):
        games = [final(KC, BUF, 27, 20, favorite=BUF)]
        assert score_pick(KC, games) == (2, OUTCOME_WIN, "underdog")

    def test_unlined_win_pays_underdog_rate(self):
        games = [final(KC, BUF, 27, 20)]
        assert score_pick(KC, games) == (2, OUTCOME_WIN, "unlined")

    def test_aliases_match_stored_names(self):
        games = [final(KC, BUF, 27, 20, favorite="Kansas City Chiefs")]
        assert score_pick("KC", games) == (1, OUTCOME_WIN, "favorite")

    def test_loss_tie_and_pending(self):
        assert score_pick(BUF, [final(KC, BUF, 27, 20, favorite=KC)])[:2] == (0, OUTCOME_LOSS)
        assert score_pick(KC, [final(KC, BUF, 20, 20, favorite=KC)])[:2] == (0, OUTCOME_TIE)
        assert score_pick(KC, [GameResult(KC, BUF, favorite=KC)])[:2] == (0, OUTCOME_PENDING)

    def test_no_game_and_no_pick(self):
        games = [final(KC, BUF, 27, 20)]
        assert score_pick(DET, games)[:2] == (0, OUTCOME_NO_GAME)
        assert score_pick(None, games)[:2] == (0, OUTCOME_NO_PICK)


class TestGotwRanking:
    def test_competition_ranking(self):
        ranks = rank_gotw([(1, 45, None), (2, 50, None), (3, 40, None), (4, 30, None)], 45)
        assert {uid: r[0] for uid, r in ranks.items()} == {1: 1, 2: 2, 3: 2, 4: 4}
        assert ranks[4][1] == 15

    def test_potw_distance_breaks_ties(self):
        ranks = rank_gotw([(1, 50, 130), (2, 40, 110)], 45, potw_actual=100)
        assert ranks[2][0] == 1
        assert ranks[1][0] == 2

    def test_unknown_potw_distance_sorts_last(self):
        ranks = rank_gotw([(1, 50, None), (2, 40, 120)], 45, potw_actual=100)
        assert ranks[2][0] == 1
        assert ranks[1] == (2, 5, None)

    def test_nothing_ranked_without_actual_total(self):
        assert rank_gotw([(1, 45, None)], None) == {}

    def test_missing_predictions_are_not_ranked(self):
        ranks = rank_gotw([(1, None, None), (2, 44, None)], 45)
        assert list(ranks) == [2]


class TestWeekTable:
    def gotw_table(self):
        games = [final(KC, BUF, 24, 21, favorite=KC)]
        picks = [
            PickEntry(1, "Alice", gotw_prediction=45),
            PickEntry(2, "Bob", gotw_prediction=50),
            PickEntry(3, "Carol", gotw_prediction=40),
            PickEntry(4, "Dave", gotw_prediction=30),
        ]
        return compute_week_table(1, games, picks, gotw=GotwMatchup(KC, BUF))

    def test_gotw_awards(self):
        table = self.gotw_table()
        assert table.gotw_actual == 45
        points = {r.user_id: (r.gotw_rank, r.gotw_points) for r in table.rows}
        assert points == {1: (1, 3), 2: (2, 2), 3: (2, 2), 4: (4, 0)}

    def test_rows_sorted_and_winner(self):
        table = self.gotw_table()
        assert [r.display_name for r in table.rows] == ["Alice", "Bob", "Carol", "Dave"]
        assert table.winners == [1]
        assert [p["name"] for p in table.podium] == ["Alice", "Bob", "Carol"]

    def test_gotw_total_override(self):
        games = [final(KC, BUF, 24, 21)]
        picks = [PickEntry(1, "Alice", gotw_prediction=50)]
        table = compute_week_table(1, games, picks, gotw=GotwMatchup(BUF, KC, total_override=50))
        assert table.gotw_actual == 50
        assert table.rows[0].gotw_rank == 1

    def test_potw_exact(self):
        games = [final(KC, BUF, 24, 21, favorite=KC)]
        picks = [
            PickEntry(1, "Alice", potw_prediction=120),
            PickEntry(2, "Bob", potw_prediction=119),
        ]
        table = compute_week_table(1, games, picks, potw_actual=120)
        alice, bob = table.row_for(1), table.row_for(2)
        assert alice.potw_exact and alice.potw_points == 3
        assert not bob.potw_exact and bob.potw_points == 0
        assert table.potw_exact == [{"user_id": 1, "name": "Alice"}]

    def test_double_week(self):
        games = [final(KC, BUF, 24, 27, favorite=KC)]
        picks = [PickEntry(1, "Alice", team=BUF, potw_prediction=88)]
        table = compute_week_table(13, games, picks, potw_actual=88)
        row = table.rows[0]
        assert row.factor == 2
        assert row.subtotal == 5
        assert row.total_points == 10
        assert row.correct_underdogs == 1

    def test_week_factor(self):
        assert week_factor(13) == 2
        assert week_factor(17) == 2
        assert week_factor(12) == 1
        assert week_factor(5, double_weeks=(5,)) == 2

    def test_weekly_winner_tiebreak_on_potw(self):
        games = [final(KC, BUF, 24, 21, favorite=KC)]
        picks = [
            PickEntry(1, "Alice", team=KC, potw_prediction=90),
            PickEntry(2, "Bob", team=KC, potw_prediction=115),
        ]
        table = compute_week_table(1, games, picks, potw_actual=100)
        assert table.winners == [1]

    def test_tied_winners_share(self):
        games = [final(KC, BUF, 24, 21, favorite=KC)]
        picks = [PickEntry(1, "Alice", team=KC), PickEntry(2, "Bob", team="KC")]
        table = compute_week_table(1, games, picks)
        assert sorted(table.winners) == [1, 2]

    def test_no_winner_without_points(self):
        games = [GameResult(KC, BUF)]
        table = compute_week_table(1, games, [PickEntry(1, "Alice", team=KC)])
        assert table.winners == []
        assert table.rows[0].outcome == OUTCOME_PENDING


class TestWeekState:
    def test_open_locked_scored(self):
        pending = [GameResult(KC, BUF, kickoff=SUNDAY)]
        assert week_state(pending, SUNDAY - timedelta(seconds=1)) == WEEK_OPEN
        assert week_state(pending, SUNDAY) == WEEK_LOCKED
        assert week_state([final(KC, BUF, 24, 21)], SUNDAY) == WEEK_SCORED

    def test_week_without_kickoffs_stays_open(self):
        assert week_state([GameResult(KC, BUF)], SUNDAY) == WEEK_OPEN
        assert week_state([], SUNDAY) == WEEK_OPEN


def row(user_id, name, base=0, gotw_rank=None, gotw_points=0, potw_exact=False):
    return WeekRow(
        user_id=user_id,
        display_name=name,
        base_points=base,
        gotw_rank=gotw_rank,
        gotw_points=gotw_points,
        potw_exact=potw_exact,
        potw_points=3 if potw_exact else 0,
    )


class TestSeasonStandings:
    def test_tiebreak_order_and_shared_ranks(self):
        week1 = WeekTable(
            week=1,
            factor=1,
            gotw_actual=45,
            potw_actual=100,
            rows=[
                row(5, "Erin", base=2, gotw_rank=2, gotw_points=2),
                row(4, "Dave"),
                row(3, "Carol", base=2, gotw_rank=2, gotw_points=2),
                row(2, "Bob", base=1, potw_exact=True),
                row(1, "Alice", base=1, gotw_rank=1, gotw_points=3),
            ],
            winners=[1],
        )
        standings = compute_season_standings([week1])
        assert [(s.display_name, s.rank) for s in standings] == [
            ("Alice", 1),
            ("Bob", 2),
            ("Carol", 3),
            ("Erin", 3),
            ("Dave", 5),
        ]
        alice = standings[0]
        assert alice.total_points == 4
        assert alice.gotw_firsts == 1
        assert alice.weekly_wins == 1

    def test_totals_sum_across_weeks(self):
        week1 = WeekTable(1, 1, None, None, rows=[row(1, "Alice", base=2)], winners=[1])
        week2 = WeekTable(2, 1, None, None, rows=[row(1, "Alice", base=1)], winners=[1])
        (alice,) = compute_season_standings([week2, week1])
        assert alice.total_points == 3
        assert alice.weeks_played == 2
        assert alice.weekly_wins == 2


@pytest.mark.parametrize("week", [1, 13])
def test_incomplete_data_never_raises(week):
    games = [GameResult(KC, BUF), final(DET, GB, 10, 13)]
    picks = [
        PickEntry(1, "Alice"),
        PickEntry(2, "Bob", team=GB, gotw_prediction=30, potw_prediction=80),
    ]
    table = compute_week_table(week, games, picks, gotw=GotwMatchup(KC, BUF))
    assert table.gotw_actual is None
    assert table.row_for(2).base_points == 2
