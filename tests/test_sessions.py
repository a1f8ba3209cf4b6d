"""Tests for listening sessions and coin rewards."""

import datetime
from unittest.mock import patch

import pytest

from hypestream.exceptions import NotFoundError, UnauthorizedError, ValidationError
from hypestream.models.db import ListeningSession, Track, User
from hypestream.services.storage import StorageService


def _balance(database, user_id: str) -> int:
    with database.session() as session:
        return session.get(User, user_id).coin_balance


def _plays(database, track_id: int) -> int:
    with database.session() as session:
        return session.get(Track, track_id).plays


def _session_row(database, session_id: int) -> dict:
    with database.session() as session:
        row = session.get(ListeningSession, session_id)
        return {
            "duration": row.duration,
            "coins_earned": row.coins_earned,
            "completed": row.completed,
            "reward_applied": row.reward_applied,
        }


@pytest.fixture
def listener(make_user):
    make_user("listener")
    return "listener"


@pytest.fixture
def track_id(make_track):
    return make_track("Song", plays=10)


class TestStartSession:
    def test_creates_empty_session(self, app, database, listener, track_id) -> None:
        session_id = app.start_playback(listener, track_id)
        assert _session_row(database, session_id) == {
            "duration": 0,
            "coins_earned": 0,
            "completed": False,
            "reward_applied": False,
        }

    def test_play_counted_at_start(self, app, database, listener, track_id) -> None:
        app.start_playback(listener, track_id)
        assert _plays(database, track_id) == 11

    def test_every_start_counts_exactly_one_play(self, app, database, listener, track_id) -> None:
        for _ in range(3):
            app.start_playback(listener, track_id)
        assert _plays(database, track_id) == 13

    def test_unknown_track(self, app, listener) -> None:
        with pytest.raises(NotFoundError):
            app.start_playback(listener, 999)

    def test_unknown_user(self, app, track_id) -> None:
        with pytest.raises(NotFoundError):
            app.start_playback("nobody", track_id)


class TestReportProgress:
    @pytest.mark.parametrize(
        ("duration", "coins", "completed"),
        [(29, 0, False), (30, 5, True), (225, 5, True)],
    )
    def test_threshold(self, app, database, listener, track_id, duration, coins, completed) -> None:
        session_id = app.start_playback(listener, track_id)
        progress = app.report_progress(listener, session_id, {"duration": duration})

        assert progress.coins_earned == coins
        assert progress.completed is completed
        assert _balance(database, listener) == coins
        row = _session_row(database, session_id)
        assert row["duration"] == duration
        assert row["coins_earned"] == coins
        assert row["completed"] is completed

    def test_duration_overwritten_not_accumulated(self, app, database, listener, track_id) -> None:
        session_id = app.start_playback(listener, track_id)
        app.report_progress(listener, session_id, {"duration": 15})
        app.report_progress(listener, session_id, {"duration": 20})
        assert _session_row(database, session_id)["duration"] == 20
        assert _balance(database, listener) == 0

    def test_repeated_final_report_does_not_double_award(self, app, database, listener, track_id) -> None:
        session_id = app.start_playback(listener, track_id)

        first = app.report_progress(listener, session_id, {"duration": 35})
        second = app.report_progress(listener, session_id, {"duration": 35})

        assert first.coins_earned == 5
        assert second.coins_earned == 0
        assert second.completed is True
        assert _balance(database, listener) == 5
        assert _session_row(database, session_id)["coins_earned"] == 5

    def test_lower_report_after_completion_keeps_reward(self, app, database, listener, track_id) -> None:
        session_id = app.start_playback(listener, track_id)
        app.report_progress(listener, session_id, {"duration": 40})
        progress = app.report_progress(listener, session_id, {"duration": 10})

        assert progress.coins_earned == 0
        assert progress.completed is True
        row = _session_row(database, session_id)
        assert row["duration"] == 10
        assert row["coins_earned"] == 5
        assert row["completed"] is True
        assert _balance(database, listener) == 5

    def test_each_session_rewarded_separately(self, app, database, listener, track_id) -> None:
        for _ in range(3):
            session_id = app.start_playback(listener, track_id)
            app.report_progress(listener, session_id, {"duration": 31})
        assert _balance(database, listener) == 15

    def test_unknown_session(self, app, listener) -> None:
        with pytest.raises(NotFoundError):
            app.report_progress(listener, 12345, {"duration": 40})

    def test_other_user_cannot_report(self, app, database, make_user, listener, track_id) -> None:
        make_user("intruder")
        session_id = app.start_playback(listener, track_id)
        with pytest.raises(UnauthorizedError):
            app.report_progress("intruder", session_id, {"duration": 40})
        assert _balance(database, listener) == 0
        assert _balance(database, "intruder") == 0

    @pytest.mark.parametrize("payload", [{"duration": -1}, {"duration": "soon"}, {}])
    def test_malformed_payload(self, app, listener, track_id, payload) -> None:
        session_id = app.start_playback(listener, track_id)
        with pytest.raises(ValidationError):
            app.report_progress(listener, session_id, payload)

    def test_failed_credit_rolls_back_session_update(self, app, database, listener, track_id) -> None:
        """Session update and coin credit commit together or not at all."""
        session_id = app.start_playback(listener, track_id)
        with patch.object(StorageService, "credit_coins", side_effect=RuntimeError("db gone")):
            with pytest.raises(RuntimeError):
                app.report_progress(listener, session_id, {"duration": 40})

        assert _session_row(database, session_id)["reward_applied"] is False
        progress = app.report_progress(listener, session_id, {"duration": 40})
        assert progress.coins_earned == 5
        assert _balance(database, listener) == 5


class TestUserStats:
    def test_counts_todays_sessions_and_coins(self, app, listener, track_id) -> None:
        for duration in (10, 45, 60):
            session_id = app.start_playback(listener, track_id)
            app.report_progress(listener, session_id, {"duration": duration})
        app.start_playback(listener, track_id)

        stats = app.user_stats(listener)
        assert stats.today_streams == 4
        assert stats.today_coins == 10

    def test_sessions_before_midnight_excluded(self, app, database, listener, track_id) -> None:
        session_id = app.start_playback(listener, track_id)
        app.report_progress(listener, session_id, {"duration": 45})
        with database.session() as session:
            row = session.get(ListeningSession, session_id)
            row.created_at = row.created_at - datetime.timedelta(days=2)

        stats = app.user_stats(listener)
        assert stats.today_streams == 0
        assert stats.today_coins == 0

    def test_no_sessions(self, app, listener) -> None:
        stats = app.user_stats(listener)
        assert (stats.today_streams, stats.today_coins) == (0, 0)

    def test_unknown_user(self, app) -> None:
        with pytest.raises(NotFoundError):
            app.user_stats("nobody")
