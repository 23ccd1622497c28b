import configparser
import json
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from keen.cli import app
from keen.transport import Response


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file_factory(tmp_path: Path):
    """
    Factory fixture for a config.ini with all keys unless told otherwise.
    """

    def _create(
        keen_section: Optional[Dict[str, str]] = None,
        queue_section: Optional[Dict[str, str]] = None,
    ) -> Path:
        config = configparser.ConfigParser()
        config["keen"] = {
            "project_id": "pid",
            "read_key": "read-key",
            "write_key": "write-key",
            "master_key": "master-key",
            **(keen_section or {}),
        }
        config["queue"] = queue_section or {}

        config_path = tmp_path / "config.ini"
        with open(config_path, "w") as f:
            config.write(f)
        return config_path

    return _create


@pytest.fixture
def patched_transport(fake_transport):
    with patch("keen.client.HttpxTransport", return_value=fake_transport):
        yield fake_transport


@pytest.mark.unit
class TestCommands:
    def test_count(self, runner, config_file_factory, patched_transport) -> None:
        patched_transport.script = [Response(200, '{"result": 42}')]
        config = config_file_factory()

        result = runner.invoke(
            app, ["--config", str(config), "count", "logs", "--timeframe", "today"]
        )

        assert result.exit_code == 0, result.output
        assert "HTTP 200" in result.output
        assert '"result": 42' in result.output

        request = patched_transport.requests[0]
        assert request.path == "3.0/projects/pid/queries/count"
        assert request.params["timeframe"] == "today"
        assert patched_transport.closed

    def test_missing_key_exit_code(
        self, runner, config_file_factory, patched_transport
    ) -> None:
        config = config_file_factory(keen_section={"read_key": ""})

        result = runner.invoke(app, ["--config", str(config), "count", "logs"])

        assert result.exit_code == 66
        assert "Read key required" in result.output
        assert patched_transport.requests == []

    def test_error_response_fails(
        self, runner, config_file_factory, patched_transport
    ) -> None:
        patched_transport.script = [Response(401, '{"message": "bad key"}')]
        config = config_file_factory()

        result = runner.invoke(app, ["--config", str(config), "projects"])

        assert result.exit_code == 1
        assert "HTTP 401" in result.output
        assert patched_transport.requests[0].auth_key == "master-key"

    def test_add_event(self, runner, config_file_factory, patched_transport) -> None:
        config = config_file_factory()

        result = runner.invoke(
            app, ["--config", str(config), "add-event", "logs", '{"level": "info"}']
        )

        assert result.exit_code == 0, result.output
        request = patched_transport.requests[0]
        assert request.path == "3.0/projects/pid/events/logs"
        assert json.loads(request.body) == {"level": "info"}

    def test_add_event_rejects_invalid_json(
        self, runner, config_file_factory, patched_transport
    ) -> None:
        config = config_file_factory()

        result = runner.invoke(
            app, ["--config", str(config), "add-event", "logs", "not json"]
        )

        assert result.exit_code == 1
        assert patched_transport.requests == []


@pytest.mark.unit
class TestQueueCommand:
    @pytest.fixture
    def events_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "events.jsonl"
        path.write_text('{"n": 1}\n{"n": 2}\n\n{"n": 3}\n', encoding="utf-8")
        return path

    def test_ships_in_batches(
        self, runner, config_file_factory, patched_transport, events_file
    ) -> None:
        config = config_file_factory(queue_section={"batch_size": "2"})

        result = runner.invoke(
            app,
            ["--config", str(config), "queue", str(events_file), "--collection", "logs"],
        )

        assert result.exit_code == 0, result.output
        assert "Queued 3 events, sent 3 in 2 batches" in result.output
        assert [json.loads(r.body) for r in patched_transport.requests] == [
            {"logs": [{"n": 1}, {"n": 2}]},
            {"logs": [{"n": 3}]},
        ]

    def test_undelivered_events_fail(
        self, runner, config_file_factory, patched_transport, events_file
    ) -> None:
        patched_transport.default = Response(503, "unavailable")
        config = config_file_factory()

        result = runner.invoke(
            app,
            ["--config", str(config), "queue", str(events_file), "-c", "logs"],
        )

        assert result.exit_code == 1
        assert "3 events could not be delivered" in result.output

    def test_out_of_bounds_threshold(
        self, runner, config_file_factory, patched_transport, events_file
    ) -> None:
        config = config_file_factory(queue_section={"send_interval_events": "5"})

        result = runner.invoke(
            app,
            ["--config", str(config), "queue", str(events_file), "-c", "logs"],
        )

        assert result.exit_code == 65
        assert "send_interval_events" in result.output

    def test_test_environment_lifts_bounds(
        self, runner, config_file_factory, patched_transport, events_file
    ) -> None:
        config = config_file_factory(queue_section={"send_interval_events": "2"})

        result = runner.invoke(
            app,
            [
                "--config",
                str(config),
                "--environment",
                "test",
                "queue",
                str(events_file),
                "-c",
                "logs",
            ],
        )

        assert result.exit_code == 0, result.output
        # Threshold flush after two events, the explicit flush ships the third
        assert len(patched_transport.requests) == 2
