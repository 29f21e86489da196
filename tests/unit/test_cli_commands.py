"""Tests for CLI commands."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from lastpost.cli import app
from lastpost.models.config import CheckpointConfig
from lastpost.models.session import ItemResult, Session
from lastpost.orchestration import EngineContext
from lastpost.services.checkpoint_service import FileCheckpointStore
from lastpost.utils.exceptions import NotFoundError

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    ckpt_dir = tmp_path / "ckpt"
    path = tmp_path / "lastpost.yaml"
    path.write_text(
        f"""
run:
  min_delay_seconds: 1
  max_delay_seconds: 1
checkpoint:
  checkpoint_dir: {ckpt_dir}
"""
    )
    return path


@pytest.fixture
def store(tmp_path, config_file):
    return FileCheckpointStore(CheckpointConfig(checkpoint_dir=str(tmp_path / "ckpt")))


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text("alice\nbob\n")
    return path


@pytest.fixture
def fake_engine(scripted_provider, instant_limiter):
    """Patch the run command's EngineContext to use a scripted provider"""
    provider = scripted_provider({"bob": [NotFoundError("User not found")]})

    def _build(settings):
        return EngineContext(settings, provider=provider, rate_limiter=instant_limiter)

    with patch("lastpost.cli.run.EngineContext", side_effect=_build):
        yield provider


def _seed(store, key="instagram_scraper"):
    store.save(
        key,
        Session(
            cursor=1,
            total=2,
            results=[ItemResult(identifier="alice", value="2024-01-05")],
        ),
        estimated_time="6s",
    )


class TestRunCommand:
    def test_run_to_completion(self, fake_engine, config_file, users_file, store, tmp_path):
        out = tmp_path / "results.csv"

        result = runner.invoke(
            app, ["run", str(users_file), "--config", str(config_file), "--output", str(out)]
        )

        assert result.exit_code == 0, result.stdout
        assert "Loaded 2 usernames." in result.stdout
        assert "Processing: alice (1/2)" in result.stdout
        assert "alice: 2024-01-05" in result.stdout
        assert "bob: Error: User not found" in result.stdout
        assert "Completed: 2 profiles checked." in result.stdout
        assert "1 lookups failed." in result.stdout
        assert out.read_text() == (
            "Username,Post Date\nalice,2024-01-05\nbob,Error: User not found\n"
        )
        # A completed run leaves nothing to resume
        assert store.load("instagram_scraper") is None

    def test_resume_notice_and_skip(self, fake_engine, config_file, users_file, store):
        _seed(store)

        result = runner.invoke(app, ["run", str(users_file), "--config", str(config_file)])

        assert result.exit_code == 0, result.stdout
        assert "Previous session found: 1/2 processed." in result.stdout
        assert "Processing: alice" not in result.stdout
        assert fake_engine.calls == ["bob"]

    def test_fresh_ignores_checkpoint(self, fake_engine, config_file, users_file, store):
        _seed(store)

        result = runner.invoke(
            app, ["run", str(users_file), "--config", str(config_file), "--fresh"]
        )

        assert result.exit_code == 0, result.stdout
        assert "Previous session found" not in result.stdout
        assert fake_engine.calls == ["alice", "bob"]

    def test_min_greater_than_max(self, fake_engine, config_file, users_file):
        result = runner.invoke(
            app,
            [
                "run",
                str(users_file),
                "--config",
                str(config_file),
                "--min-delay",
                "9",
                "--max-delay",
                "3",
            ],
        )

        assert result.exit_code == 1
        assert "Error:" in result.stdout
        assert fake_engine.calls == []

    def test_delay_out_of_range(self, fake_engine, config_file, users_file):
        result = runner.invoke(
            app,
            ["run", str(users_file), "--config", str(config_file), "--max-delay", "500"],
        )

        assert result.exit_code == 1
        assert "Invalid run options" in result.stdout

    def test_unsupported_input_file(self, fake_engine, config_file, tmp_path):
        path = tmp_path / "users.json"
        path.write_text("[]")

        result = runner.invoke(app, ["run", str(path), "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Please provide a CSV or TXT file" in result.stdout

    def test_missing_config(self, users_file, tmp_path):
        result = runner.invoke(
            app, ["run", str(users_file), "--config", str(tmp_path / "missing.yaml")]
        )

        assert result.exit_code == 1
        assert "Configuration Error" in result.stdout

    def test_metrics_file(self, fake_engine, config_file, users_file, tmp_path):
        metrics = tmp_path / "lastpost.prom"

        result = runner.invoke(
            app,
            [
                "run",
                str(users_file),
                "--config",
                str(config_file),
                "--metrics-file",
                str(metrics),
            ],
        )

        assert result.exit_code == 0, result.stdout
        assert "lastpost_items_processed_total" in metrics.read_text()


class TestSessionCommands:
    def test_status(self, config_file, store):
        _seed(store)

        result = runner.invoke(app, ["session", "status", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Session 'instagram_scraper':" in result.stdout
        assert "Processed: 1/2 (50%)" in result.stdout
        assert "Estimated time remaining: 6s" in result.stdout

    def test_status_without_session(self, config_file):
        result = runner.invoke(
            app, ["session", "status", "--config", str(config_file), "--session-key", "none"]
        )

        assert result.exit_code == 0
        assert "No saved session 'none'." in result.stdout

    def test_export(self, config_file, store, tmp_path):
        _seed(store)
        out = tmp_path / "partial.csv"

        result = runner.invoke(
            app, ["session", "export", str(out), "--config", str(config_file)]
        )

        assert result.exit_code == 0
        assert "Exported 1 results" in result.stdout
        assert out.read_text() == "Username,Post Date\nalice,2024-01-05\n"

    def test_export_nothing(self, config_file, tmp_path):
        result = runner.invoke(
            app,
            ["session", "export", str(tmp_path / "x.csv"), "--config", str(config_file)],
        )

        assert result.exit_code == 1
        assert "No results to export." in result.stdout

    def test_clear(self, config_file, store):
        _seed(store)

        result = runner.invoke(app, ["session", "clear", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Session 'instagram_scraper' cleared." in result.stdout
        assert store.load("instagram_scraper") is None


class TestValidateCommand:
    def test_valid(self, config_file):
        result = runner.invoke(app, ["validate", str(config_file)])

        assert result.exit_code == 0
        assert "Configuration is valid!" in result.stdout

    def test_inverted_delays(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("run:\n  min_delay_seconds: 9\n  max_delay_seconds: 3\n")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "min delay cannot be greater than max delay" in result.stdout

    def test_schema_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("retry:\n  max_attempts: 99\n")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Validation failed" in result.stdout
