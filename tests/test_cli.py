"""Tests for the helpscout-inbox CLI."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from helpscout_inbox.cli import app
from helpscout_inbox.client import HelpScoutError

runner = CliRunner()


@pytest.fixture
def source(make_conversation, fake_source_cls):
    return fake_source_cls(
        [
            make_conversation(1, created_at=10, sender="old@x.com", subject="Older"),
            make_conversation(2, created_at=20, sender="new@x.com", subject="Newer"),
        ]
    )


@pytest.fixture
def configured(config, source):
    with patch("helpscout_inbox.cli.get_config", return_value=config), patch(
        "helpscout_inbox.cli.get_client", return_value=source
    ):
        yield source


class TestVersion:
    def test_version_command(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "helpscout-inbox" in result.stdout


class TestInbox:
    def test_table(self, configured):
        result = runner.invoke(app, ["inbox"])
        assert result.exit_code == 0
        assert "new@x.com" in result.stdout
        assert result.stdout.index("Newer") < result.stdout.index("Older")

    def test_json(self, configured):
        result = runner.invoke(app, ["inbox", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [c["id"] for c in data] == [2, 1]
        assert "threads" not in data[0]

    def test_mailbox_option(self, configured):
        runner.invoke(app, ["inbox", "--mailbox", "555"])
        filters, _ = configured.list_calls[0]
        assert filters.mailbox == "555"

    def test_empty(self, config, fake_source_cls):
        with patch("helpscout_inbox.cli.get_config", return_value=config), patch(
            "helpscout_inbox.cli.get_client", return_value=fake_source_cls()
        ):
            result = runner.invoke(app, ["inbox"])
        assert result.exit_code == 0
        assert "No unassigned conversations" in result.stdout

    def test_api_error(self, config, fake_source_cls):
        with patch("helpscout_inbox.cli.get_config", return_value=config), patch(
            "helpscout_inbox.cli.get_client", return_value=fake_source_cls(error="HTTP 500: boom")
        ):
            result = runner.invoke(app, ["inbox"])
        assert result.exit_code == 3

    def test_not_configured(self):
        from helpscout_inbox.config import HelpScoutConfig

        with patch("helpscout_inbox.cli.get_config", return_value=HelpScoutConfig()):
            result = runner.invoke(app, ["inbox"])
        assert result.exit_code == 2


class TestWait:
    def test_arrived(self, configured):
        result = runner.invoke(app, ["wait", "new@x.com"])
        assert result.exit_code == 0
        assert "arrived" in result.stdout

    def test_timeout(self, configured):
        result = runner.invoke(app, ["wait", "missing@x.com", "--timeout", "0.05"])
        assert result.exit_code == 1

    def test_api_error(self, configured):
        configured.error = "HTTP 500: Exception: upstream"
        result = runner.invoke(app, ["wait", "new@x.com"])
        assert result.exit_code == 3


class TestDelete:
    def test_delete(self, configured):
        result = runner.invoke(app, ["delete", "2"])
        assert result.exit_code == 0
        assert configured.deleted == [2]

    def test_delete_not_found(self, configured):
        with patch.object(
            configured,
            "delete_conversation",
            side_effect=HelpScoutError("HTTP 404: Not found", status_code=404),
        ):
            result = runner.invoke(app, ["delete", "99"])
        assert result.exit_code == 1


class TestSetSecret:
    @patch("helpscout_inbox.cli.save_app_secret")
    def test_set_secret(self, mock_save):
        result = runner.invoke(app, ["set-secret", "my-app"], input="s3cret\n")
        assert result.exit_code == 0
        mock_save.assert_called_once_with("my-app", "s3cret")
