"""Tests for the command line entry point."""

import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from cardhook import main
from cardhook.main import cli
from cardhook.models import DeliveryResult, DeliveryStatus


class FakeDispatcher:
    calls: list[dict] = []

    def __init__(self, config):
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        pass

    async def deliver(self, url, payload, timeout=None, *, target="", sink=None):
        FakeDispatcher.calls.append({"url": url, "card": json.loads(payload), "target": target})
        return DeliveryResult(target=target or url, status=DeliveryStatus.DELIVERED, status_code=200)


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.setenv("CARDHOOK_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("CARDHOOK_CONFIG", raising=False)
    monkeypatch.setattr(main, "Dispatcher", FakeDispatcher)
    FakeDispatcher.calls = []

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def targets_file(tmp_path):
    path = tmp_path / "webhooks.yaml"
    path.write_text(
        """
webhooks:
  - name: starts
    url: https://hooks.example.com/starts
    start_notification: true
    rules:
      - kind: started
  - name: failures
    url: https://hooks.example.com/failures
    rules:
      - kind: completed
        status: failure
"""
    )
    return path


def invoke(*args: str):
    return CliRunner().invoke(cli, list(args), catch_exceptions=False)


class TestCli:
    def test_started_notifies_once(self, targets_file):
        result = invoke("--targets", str(targets_file), "started", "--job", "api-server", "--build", "7")
        assert result.exit_code == 0
        assert "Notified 1/1 webhook(s)" in result.stdout
        (call,) = FakeDispatcher.calls
        assert call["target"] == "starts"
        assert call["card"]["summary"] == "api-server: Build #7 Started"

    def test_completed_success_filtered_by_rule(self, targets_file):
        result = invoke("--targets", str(targets_file), "completed", "--result", "success")
        assert result.exit_code == 0
        assert "Notified 0/0 webhook(s)" in result.stdout
        assert FakeDispatcher.calls == []

    def test_completed_failure(self, targets_file):
        result = invoke(
            "--targets", str(targets_file),
            "completed", "--job", "api-server", "--build", "8",
            "--result", "failure", "--previous-result", "failure", "--duration", "90",
        )
        assert result.exit_code == 0
        (call,) = FakeDispatcher.calls
        card = call["card"]
        assert card["summary"] == "api-server: Build #8 Repeated Failure"
        facts = {f["name"]: f["value"] for f in card["sections"][0]["facts"]}
        assert facts["Duration"] == "1 min 30 sec"

    def test_message_with_explicit_url(self, tmp_path):
        result = invoke(
            "--targets", str(tmp_path / "none.yaml"),
            "message", "Deployed to staging",
            "--webhook-url", "https://hooks.example.com/adhoc",
            "--color", "00FF00",
            "--build-url", "https://ci.example.com/job/api/3/",
        )
        assert result.exit_code == 0
        (call,) = FakeDispatcher.calls
        assert call["url"] == "https://hooks.example.com/adhoc"
        assert call["card"]["themeColor"] == "00FF00"
        assert call["card"]["sections"][0]["text"] == "Deployed to staging"
        assert call["card"]["potentialAction"][0]["target"] == ["https://ci.example.com/job/api/3/"]

    def test_invalid_targets_file_does_not_fail(self, tmp_path):
        path = tmp_path / "webhooks.yaml"
        path.write_text("webhooks:\n  - name: missing-url\n")
        result = invoke("--targets", str(path), "completed", "--result", "failure")
        assert result.exit_code == 0
        assert "Notified 0/0 webhook(s)" in result.stdout

    def test_unknown_result_rejected(self, targets_file):
        result = CliRunner().invoke(cli, ["--targets", str(targets_file), "completed", "--result", "exploded"])
        assert result.exit_code == 2

    def test_malformed_config_falls_back_to_defaults(self, tmp_path, targets_file):
        config = tmp_path / "config.yaml"
        config.write_text("dispatch: [unclosed\n")
        result = invoke(
            "--config", str(config), "--targets", str(targets_file),
            "completed", "--result", "failure",
        )
        assert result.exit_code == 0
        assert "Notified 1/1 webhook(s)" in result.stdout
        (call,) = FakeDispatcher.calls
        assert call["target"] == "failures"

    def test_invalid_env_setting_falls_back_to_defaults(self, monkeypatch, targets_file):
        monkeypatch.setenv("CARDHOOK_DISPATCH__MAX_WORKERS", "0")
        result = invoke("--targets", str(targets_file), "completed", "--result", "failure")
        assert result.exit_code == 0
        assert "Notified 1/1 webhook(s)" in result.stdout
