"""Tests for CLI commands"""

import json
from unittest.mock import Mock, patch

import httpx
import pytest
from typer.testing import CliRunner

from cli.client.base import KeeperJobsError
from cli.client.endpoints import KeeperJobsClient
from cli.main import app
from cli.utils.config_manager import ConfigManager


@pytest.fixture
def runner():
    """CLI test runner"""
    return CliRunner()


@pytest.fixture
def mock_client():
    """Mock API client usable as a context manager"""
    client = Mock()
    client.__enter__ = Mock(return_value=client)
    client.__exit__ = Mock(return_value=None)
    return client


@pytest.fixture
def temp_config(tmp_path):
    """Config manager writing to a temporary directory"""
    manager = ConfigManager(config_dir=tmp_path)
    with patch("cli.commands.config.config", manager), patch(
        "cli.main.config_manager", manager
    ), patch("cli.commands.jobs.config", manager):
        yield manager


class TestMainCommands:
    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "Keeper Jobs CLI v1.0.0" in result.stdout

    def test_status_success(self, runner, mock_client, temp_config):
        mock_client.health_check.return_value = {
            "ok": True,
            "version": "1.0.0",
            "environment": "test",
            "queue": {"queue_depth": 3, "stale_jobs_count": 0, "dead_letter_count": 1},
        }

        with patch("cli.main.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Connected Successfully" in result.stdout

    def test_status_connection_error(self, runner, mock_client, temp_config):
        mock_client.health_check.side_effect = KeeperJobsError("Connection failed")

        with patch("cli.main.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "Connection Error" in result.stdout


class TestRunCommand:
    def test_run_with_results(self, runner, mock_client):
        mock_client.run_jobs.return_value = {
            "success": True,
            "results": [
                {"id": "6f1c2a9e-0000-4000-8000-000000000001", "success": True},
                {
                    "id": "6f1c2a9e-0000-4000-8000-000000000002",
                    "success": False,
                    "data": {"failure_count": 2, "error": "users_not_found"},
                },
            ],
        }

        with patch("cli.main.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 0
        assert "2 processed, 1 failed" in result.stdout

    def test_run_nothing_due(self, runner, mock_client):
        mock_client.run_jobs.return_value = {"success": True, "results": []}

        with patch("cli.main.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 0
        assert "No jobs were due" in result.stdout

    def test_run_unauthorized_hints_token(self, runner, mock_client):
        mock_client.run_jobs.side_effect = KeeperJobsError(
            "API Error 401: Unauthorized", status_code=401
        )

        with patch("cli.main.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 1
        assert "api.token" in result.stdout


class TestJobsCommands:
    def test_list_jobs(self, runner, mock_client, temp_config):
        mock_client.list_jobs.return_value = {
            "jobs": [
                {
                    "id": "6f1c2a9e-0000-4000-8000-000000000001",
                    "queue_name": "send_keeper_test",
                    "state": "available",
                    "scheduled": "2026-10-19T09:00:00+00:00",
                    "failure_count": 0,
                }
            ],
            "total": 1,
        }

        with patch("cli.commands.jobs.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["jobs", "list", "--state", "available"])

        assert result.exit_code == 0
        assert "Showing 1 of 1" in result.stdout
        mock_client.list_jobs.assert_called_once_with(
            state="available", queue_name=None, limit=20, offset=0
        )

    def test_list_jobs_empty(self, runner, mock_client, temp_config):
        mock_client.list_jobs.return_value = {"jobs": [], "total": 0}

        with patch("cli.commands.jobs.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["jobs", "list"])

        assert result.exit_code == 0
        assert "No jobs found" in result.stdout

    def test_enqueue_from_file(self, runner, mock_client, tmp_path):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text(json.dumps({"title": "Keeper Test"}))
        mock_client.enqueue_job.return_value = {
            "job_id": "6f1c2a9e-0000-4000-8000-000000000001",
            "scheduled": "2026-10-19T09:00:00+00:00",
        }

        with patch("cli.commands.jobs.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(
                app, ["jobs", "enqueue", "send_keeper_test", str(payload_file)]
            )

        assert result.exit_code == 0
        assert "Enqueued job" in result.stdout
        mock_client.enqueue_job.assert_called_once_with(
            "send_keeper_test", {"title": "Keeper Test"}, scheduled=None
        )

    def test_enqueue_invalid_json(self, runner, tmp_path):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text("{nope")

        result = runner.invoke(
            app, ["jobs", "enqueue", "send_keeper_test", str(payload_file)]
        )

        assert result.exit_code == 1
        assert "Invalid JSON" in result.stdout

    def test_stats_api_error(self, runner, mock_client):
        mock_client.job_stats.side_effect = KeeperJobsError("API Error 500: boom")

        with patch("cli.commands.jobs.KeeperJobsClient", return_value=mock_client):
            result = runner.invoke(app, ["jobs", "stats"])

        assert result.exit_code == 1


class TestConfigCommands:
    def test_set_and_get(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.base_url", "http://jobs.test"])

        assert result.exit_code == 0
        assert temp_config.get("api.base_url") == "http://jobs.test"

        result = runner.invoke(app, ["config", "get", "api.base_url"])
        assert "http://jobs.test" in result.stdout

    def test_set_rejects_bad_url(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.base_url", "jobs.test"])

        assert result.exit_code == 1

    def test_token_is_masked(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.token", "s3cret"])

        assert result.exit_code == 0
        assert "s3cret" not in result.stdout
        assert temp_config.get("api.token") == "s3cret"


class TestClient:
    def test_trigger_sends_bearer_token(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"success": True, "results": []})

        with KeeperJobsClient(
            base_url="http://jobs.test", token="s3cret", transport=httpx.MockTransport(handler)
        ) as client:
            response = client.run_jobs()

        assert response == {"success": True, "results": []}
        assert requests[0].url.path == "/v1/jobs/run"
        assert requests[0].headers["Authorization"] == "Bearer s3cret"

    def test_envelope_is_unwrapped(self):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "data": {"total_jobs": 4}})

        with KeeperJobsClient(
            base_url="http://jobs.test", token="s3cret", transport=httpx.MockTransport(handler)
        ) as client:
            assert client.job_stats() == {"total_jobs": 4}

    def test_error_response_raises(self):
        def handler(request):
            return httpx.Response(
                401, json={"ok": False, "error": {"message": "Unauthorized", "code": 401}}
            )

        with KeeperJobsClient(
            base_url="http://jobs.test", token="wrong", transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(KeeperJobsError) as exc_info:
                client.run_jobs()

        assert exc_info.value.status_code == 401
