"""Integration tests for the altai CLI."""

import json

import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock, patch

from altai.cli import cli
from altai.models.chat import ChatCompletion


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    """Keep logs out of the home directory and supply an API key."""
    monkeypatch.setattr("altai.cli.configure_logging", lambda: None)
    for name in ("OPENAI_API_KEY", "ALTAI_MODEL", "OPENAI_MODEL", "ALTAI_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ALTAI_API_KEY", "sk-test")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def missing_config(tmp_path):
    return str(tmp_path / "config.yaml")


@pytest.fixture
def entry_file(tmp_path):
    path = tmp_path / "entry.json"
    path.write_text(json.dumps({
        "path": "/cp/collections/auctions/entries/42",
        "values": {"title": "Old title", "body": "Text"},
        "blueprint": "auction",
    }))
    return path


def proposal_reply(field="title", value="New title"):
    return "```json\n" + json.dumps({
        "action": "update_fields",
        "message": "Sharper title",
        "changes": [{"field": field, "proposed_value": value, "reason": "Clearer"}],
    }) + "\n```"


class TestConfigShow:
    """Test `altai config show`."""

    def test_shows_redacted_config(self, runner, missing_config):
        result = runner.invoke(cli, ["--config", missing_config, "config", "show"])

        assert result.exit_code == 0
        assert "api_key: '***'" in result.output
        assert "sk-test" not in result.output
        assert "name: gpt-4" in result.output


class TestActionCommand:
    """Test `altai action`."""

    def test_runs_action(self, runner, missing_config):
        with patch("altai.services.llm_client.LLMClient.run_action", AsyncMock(return_value="Better text")) as run_action:
            result = runner.invoke(cli, ["--config", missing_config, "action", "enhance", "bad text"])

        assert result.exit_code == 0
        assert "Better text" in result.output
        run_action.assert_awaited_once_with("enhance", {"text": "bad text"})

    def test_translate_options(self, runner, missing_config):
        with patch("altai.services.llm_client.LLMClient.run_action", AsyncMock(return_value="Hallo")) as run_action:
            result = runner.invoke(
                cli, ["--config", missing_config, "action", "translate", "Hello", "--language", "German"]
            )

        assert result.exit_code == 0
        run_action.assert_awaited_once_with("translate", {"text": "Hello", "target_language": "German"})

    def test_missing_key_is_reported(self, runner, missing_config, monkeypatch):
        monkeypatch.delenv("ALTAI_API_KEY")

        result = runner.invoke(cli, ["--config", missing_config, "action", "enhance", "text"])

        assert result.exit_code != 0
        assert "API key not configured" in result.output


class TestChatCommand:
    """Test `altai chat`."""

    def test_chat_reply(self, runner, missing_config, entry_file, tmp_path):
        completion = ChatCompletion(content="It's an auction entry.")
        with patch("altai.services.llm_client.LLMClient.chat", AsyncMock(return_value=completion)) as chat:
            result = runner.invoke(cli, [
                "--config", missing_config,
                "chat", str(entry_file), "What is this?",
                "--session-dir", str(tmp_path / "sessions"),
            ])

        assert result.exit_code == 0
        assert "It's an auction entry." in result.output
        system_prompt = chat.call_args.args[0][0]["content"]
        assert "[body]: Text" in system_prompt
        assert (tmp_path / "sessions" / "ai-chat-messages.json").exists()

    def test_proposal_without_apply_leaves_file(self, runner, missing_config, entry_file, tmp_path):
        completion = ChatCompletion(content=proposal_reply())
        with patch("altai.services.llm_client.LLMClient.chat", AsyncMock(return_value=completion)):
            result = runner.invoke(cli, [
                "--config", missing_config,
                "chat", str(entry_file), "Improve the title", "--mode", "update_fields",
                "--session-dir", str(tmp_path / "sessions"),
            ])

        assert result.exit_code == 0
        assert "Sharper title" in result.output
        assert json.loads(entry_file.read_text())["values"]["title"] == "Old title"

    def test_apply_writes_entry(self, runner, missing_config, entry_file, tmp_path):
        completion = ChatCompletion(content=proposal_reply())
        with patch("altai.services.llm_client.LLMClient.chat", AsyncMock(return_value=completion)):
            result = runner.invoke(cli, [
                "--config", missing_config,
                "chat", str(entry_file), "Improve the title", "--mode", "update_fields", "--apply",
                "--session-dir", str(tmp_path / "sessions"),
            ])

        assert result.exit_code == 0
        assert "Successfully updated 1 field" in result.output
        saved = json.loads(entry_file.read_text())
        assert saved["values"]["title"] == "New title"
        assert saved["blueprint"] == "auction"

    def test_invalid_entry_file(self, runner, missing_config, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]")

        result = runner.invoke(cli, ["--config", missing_config, "chat", str(bad), "Hi"])

        assert result.exit_code != 0
        assert "must contain a JSON object" in result.output
