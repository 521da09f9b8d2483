"""Unit tests for the conversation session."""

import asyncio
import json

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from altai.llm.prompts import PromptComposer
from altai.models.chat import ChatCompletion, ChatMessage, ReconcileResult
from altai.services.conversation import (
    ERROR_REPLY,
    ConversationSession,
    TranscriptStore,
    format_feedback,
)
from altai.services.exceptions import ConversationBusyError, InvalidRequestError, UpstreamError
from altai.services.llm_client import LLMClient


PROPOSAL_REPLY = (
    "```json\n"
    + json.dumps({
        "action": "update_fields",
        "message": "Better contact line",
        "changes": [
            {"field": "contact_information", "current_value": "hi", "proposed_value": "Call us", "reason": "Clearer"},
            {"field": "ghost", "proposed_value": "boo"},
        ],
    })
    + "\n```"
)


@pytest.fixture
def transcript(tmp_path):
    return TranscriptStore(tmp_path / "sessions")


@pytest.fixture
def llm_client():
    client = Mock()
    client.chat = AsyncMock(return_value=ChatCompletion(content="Sure thing", usage=None))
    return client


@pytest.fixture
def session(llm_client, config, transcript):
    return ConversationSession(
        llm_client,
        PromptComposer(config),
        transcript=transcript,
        settle_delay=0,
        final_delay=0,
    )


class TestFormatFeedback:
    """Test feedback messages after applying changes."""

    def test_applied_with_skips(self):
        result = ReconcileResult(2, 1, ["✓ title", "✓ body", "⚠ ghost (field not found)"])

        message = format_feedback(result)

        assert message.startswith("✓ Successfully updated 2 fields (1 skipped):\n\n✓ title\n✓ body")
        assert message.endswith("Make sure to save the form to persist these changes.")

    def test_single_field(self):
        assert format_feedback(ReconcileResult(1, 0, ["✓ title"])).startswith("✓ Successfully updated 1 field:")

    def test_all_skipped(self):
        message = format_feedback(ReconcileResult(0, 1, ["⊘ title (no change needed)"]))

        assert message.startswith("ℹ No changes applied - all 1 proposed change was skipped:")
        assert "Legend:\n⊘ = No change needed (value already correct)\n⚠ = Field not found in form" in message

    def test_plural_skipped(self):
        message = format_feedback(ReconcileResult(0, 2, ["a", "b"]))
        assert "all 2 proposed changes were skipped" in message

    def test_failure(self):
        assert format_feedback(ReconcileResult()) == \
            "✗ Failed to apply any changes. Check console for error details."


class TestTranscriptStore:
    """Test transcript persistence."""

    def test_round_trip(self, transcript):
        transcript.save([ChatMessage(role="user", content="Hi", mode="chat")])

        loaded = transcript.load()

        assert loaded == [ChatMessage(role="user", content="Hi", mode="chat")]
        assert transcript.path.name == "ai-chat-messages.json"

    def test_missing_file(self, transcript):
        assert transcript.load() == []

    def test_corrupt_file(self, transcript):
        transcript.path.parent.mkdir(parents=True)
        transcript.path.write_text("{broken")
        assert transcript.load() == []

    def test_clear(self, transcript):
        transcript.save([])
        transcript.clear()
        assert not transcript.path.exists()
        transcript.clear()


class TestConversationSession:
    """Test ConversationSession."""

    @pytest.mark.asyncio
    async def test_send_chat_turn(self, session, llm_client, page_state):
        reply = await session.send("  What is this?  ", page_state)

        assert reply.content == "Sure thing"
        assert reply.field_updates is None
        assert [m.role for m in session.history] == ["user", "assistant"]
        assert session.history[0].content == "What is this?"
        assert session.snapshot.title == "Vintage Clock"

        messages = llm_client.chat.call_args.args[0]
        assert messages[-1] == {"role": "user", "content": "What is this?"}
        assert '[contact_information] "Contact Info": hi' in messages[0]["content"]

    @pytest.mark.asyncio
    async def test_history_sent_without_current_message(self, session, llm_client):
        await session.send("first")
        await session.send("second")

        messages = llm_client.chat.call_args.args[0]
        assert [m["content"] for m in messages[1:]] == ["first", "Sure thing", "second"]

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, session, llm_client):
        with pytest.raises(InvalidRequestError):
            await session.send("   ")
        llm_client.chat.assert_not_called()
        assert session.history == []

    @pytest.mark.asyncio
    async def test_transport_failure_appends_apology(self, session, llm_client):
        llm_client.chat.side_effect = UpstreamError(500, "down")

        reply = await session.send("Hello")

        assert reply.content == ERROR_REPLY
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_non_json_reply_appends_apology(self, config, transcript):
        """Test a gateway page in place of JSON still ends the turn with a reply."""
        http_client = AsyncMock()
        http_client.post = AsyncMock(return_value=httpx.Response(200, text="<html>gateway</html>"))
        http_client.__aenter__ = AsyncMock(return_value=http_client)
        http_client.__aexit__ = AsyncMock(return_value=None)
        session = ConversationSession(LLMClient(config), PromptComposer(config), transcript=transcript)

        with patch("httpx.AsyncClient", return_value=http_client):
            reply = await session.send("hello")

        assert reply.content == ERROR_REPLY
        assert [m.role for m in session.history] == ["user", "assistant"]
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_single_in_flight(self, session, llm_client):
        """Test a second send while one is pending is rejected."""
        release = asyncio.Event()

        async def slow_chat(messages):
            await release.wait()
            return ChatCompletion(content="done")

        llm_client.chat.side_effect = slow_chat

        first = asyncio.create_task(session.send("one"))
        await asyncio.sleep(0)
        assert session.busy is True

        with pytest.raises(ConversationBusyError):
            await session.send("two")

        release.set()
        reply = await first
        assert reply.content == "done"
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_history_persisted_and_reloaded(self, session, llm_client, config, transcript):
        await session.send("Remember me")

        reloaded = ConversationSession(llm_client, PromptComposer(config), transcript=transcript)

        assert [m.content for m in reloaded.history] == ["Remember me", "Sure thing"]

    @pytest.mark.asyncio
    async def test_update_fields_turn_and_apply(self, session, llm_client, page_state):
        """Test a proposal is parsed, applied once, and reported."""
        llm_client.chat.return_value = ChatCompletion(content=PROPOSAL_REPLY)

        reply = await session.send("Improve contact info", page_state, mode="update_fields")

        assert reply.field_updates is not None
        assert len(reply.field_updates.changes) == 2

        index = len(session.history) - 1
        result = await session.apply_proposal(index, page_state)

        assert result.applied_count == 1
        assert result.skipped_count == 1
        assert page_state.publish["base"].values["contact_information"] == "Call us"
        assert session.history[index].field_updates.applied is True
        assert session.history[-1].content.startswith("✓ Successfully updated 1 field (1 skipped)")
        assert session.snapshot.fields["contact_information"] == "Call us"

        assert await session.apply_proposal(index, page_state) is None
        assert session.transcript.load()[index].field_updates.applied is True

    @pytest.mark.asyncio
    async def test_apply_without_store_reports_failure(self, session, llm_client):
        llm_client.chat.return_value = ChatCompletion(content=PROPOSAL_REPLY)
        await session.send("Improve", mode="update_fields")

        result = await session.apply_proposal(len(session.history) - 1, None)

        assert result.applied_count == 0
        assert session.history[-1].content.startswith("✗ Failed to apply any changes")

    @pytest.mark.asyncio
    async def test_dismiss(self, session, llm_client):
        llm_client.chat.return_value = ChatCompletion(content=PROPOSAL_REPLY)
        await session.send("Improve", mode="update_fields")
        index = len(session.history) - 1

        assert session.dismiss_proposal(index) is True
        assert session.dismiss_proposal(index) is False
        assert await session.apply_proposal(index) is None

    def test_invalid_index(self, session):
        assert session.dismiss_proposal(5) is False
        assert session.dismiss_proposal(-1) is False

    @pytest.mark.asyncio
    async def test_clear(self, session, transcript):
        await session.send("Hi")
        session.clear()

        assert session.history == []
        assert not transcript.path.exists()
