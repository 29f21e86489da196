"""Tests for session and checkpoint data models."""

import pytest
from pydantic import ValidationError

from lastpost.models.checkpoint import Checkpoint, CheckpointProgress, CheckpointRecord
from lastpost.models.config import AppSettings, LookupConfig, LoggingConfig, RunConfig
from lastpost.models.session import Classification, ItemResult, Session


def _results(n):
    return [ItemResult(identifier=f"user{i}", value="2024-01-05") for i in range(n)]


class TestSession:
    def test_record_advances_cursor(self):
        session = Session(total=2)

        session.record(ItemResult(identifier="alice", value="2024-01-05"))

        assert session.cursor == 1
        assert session.remaining == 1
        assert not session.is_complete

    def test_record_past_total_rejected(self):
        session = Session(cursor=1, total=1, results=_results(1))

        with pytest.raises(ValueError):
            session.record(ItemResult(identifier="extra", value="x"))

    def test_cursor_beyond_total_invalid(self):
        with pytest.raises(ValidationError):
            Session(cursor=3, total=2, results=_results(3))

    def test_results_length_must_match_cursor(self):
        with pytest.raises(ValidationError):
            Session(cursor=2, total=5, results=_results(1))

    @pytest.mark.parametrize(
        "cursor,total,expected",
        [(1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (3, 3, 100), (0, 5, 0)],
    )
    def test_percentage_rounds_half_up(self, cursor, total, expected):
        session = Session(cursor=cursor, total=total, results=_results(cursor))
        assert session.percentage == expected

    def test_empty_session_is_complete(self):
        session = Session(total=0)
        assert session.is_complete
        assert session.progress_fraction == 1.0
        assert session.percentage == 100

    def test_failed_count(self):
        session = Session(
            cursor=2,
            total=2,
            results=[
                ItemResult(identifier="a", value="2024-01-05"),
                ItemResult(identifier="b", value="Error: User not found", failed=True),
            ],
        )
        assert session.failed_count == 1


def test_classification_retryable():
    assert Classification.RATE_LIMITED.retryable
    assert Classification.TRANSIENT_FAILURE.retryable
    assert not Classification.PERMANENT_FAILURE.retryable
    assert not Classification.SUCCESS.retryable


class TestCheckpoint:
    def test_serialized_layout(self):
        session = Session(
            cursor=1,
            total=3,
            results=[ItemResult(identifier="alice", value="2024-01-05")],
        )

        data = Checkpoint.from_session(session, estimated_time="2m 10s").to_json_dict()

        assert data["progress"] == {
            "current": 1,
            "total": 3,
            "percentage": 33,
            "estimatedTime": "2m 10s",
        }
        assert data["results"] == [
            {"username": "alice", "post_date": "2024-01-05", "error": False}
        ]
        assert data["last_updated"] is not None

    def test_roundtrip_to_session(self):
        session = Session(
            cursor=2,
            total=4,
            results=[
                ItemResult(identifier="a", value="2024-01-05"),
                ItemResult(identifier="b", value="Error: Invalid response format", failed=True),
            ],
        )

        restored = Checkpoint.model_validate(
            Checkpoint.from_session(session).to_json_dict()
        ).to_session()

        assert restored == session

    def test_progress_accepts_cursor_alias(self):
        progress = CheckpointProgress.model_validate({"cursor": 4, "total": 9})
        assert progress.current == 4

    def test_inconsistent_document_rejected(self):
        checkpoint = Checkpoint(
            progress=CheckpointProgress(current=3, total=5),
            results=[CheckpointRecord(username="a", post_date="x")],
        )

        with pytest.raises(ValueError):
            checkpoint.to_session()


class TestConfigModels:
    def test_run_defaults(self):
        config = RunConfig()
        assert config.min_delay_seconds == 5
        assert config.max_delay_seconds == 7
        assert config.resume is True
        assert config.session_key == "instagram_scraper"
        assert config.abort_in_flight is False

    @pytest.mark.parametrize("value", [0, 0.5, 121])
    def test_delay_bounds_enforced(self, value):
        with pytest.raises(ValidationError):
            RunConfig(min_delay_seconds=value)

    def test_session_key_pattern(self):
        with pytest.raises(ValidationError):
            RunConfig(session_key="../escape")

    def test_user_agents_required(self):
        with pytest.raises(ValidationError):
            LookupConfig(user_agents=["  "])

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_app_settings_defaults(self):
        settings = AppSettings()
        assert settings.retry.max_attempts == 3
        assert settings.checkpoint.checkpoint_interval == 10
