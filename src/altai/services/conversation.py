"""Conversation session: transcript, chat turns, and applying proposals."""

from pathlib import Path
from typing import Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from altai.llm.prompts import PromptComposer
from altai.models.chat import ChatMessage, ChatMode, FieldUpdateProposal, ReconcileResult
from altai.models.page_state import PageState
from altai.services.content_store import ContentStore, PublishModuleStore
from altai.services.context_builder import SnapshotBuilder
from altai.services.exceptions import (
    AltAIError,
    ConversationBusyError,
    InvalidRequestError,
    StoreUnavailableError,
)
from altai.services.field_reconciler import FieldReconciler
from altai.services.field_update_parser import parse_field_updates
from altai.services.llm_client import LLMClient
from altai.utils.logging import get_logger


logger = get_logger(__name__)

TRANSCRIPT_KEY = "ai-chat-messages"
DEFAULT_SESSION_DIR = Path.home() / ".cache" / "altai" / "sessions"

ERROR_REPLY = "Sorry, I encountered an error. Please try again."
FAILED_APPLY_REPLY = "✗ Failed to apply any changes. Check console for error details."

_transcript_adapter = TypeAdapter(list[ChatMessage])


def format_feedback(result: ReconcileResult) -> str:
    """
    Summarize a reconcile result as an assistant message.

    Example:
        >>> format_feedback(ReconcileResult(1, 0, ["✓ title"])).splitlines()[0]
        '✓ Successfully updated 1 field:'
    """
    applied, skipped = result.applied_count, result.skipped_count
    details = "\n".join(result.change_details)

    if applied > 0:
        message = f"✓ Successfully updated {applied} field{'s' if applied > 1 else ''}"
        if skipped > 0:
            message += f" ({skipped} skipped)"
        message += ":\n\n" + details
        message += (
            "\n\nThe fields should now be updated in the form. "
            "Make sure to save the form to persist these changes."
        )
        return message

    if skipped > 0:
        plural = "s were" if skipped > 1 else " was"
        message = f"ℹ No changes applied - all {skipped} proposed change{plural} skipped:\n\n"
        message += details
        message += "\n\nLegend:\n⊘ = No change needed (value already correct)\n⚠ = Field not found in form"
        return message

    return FAILED_APPLY_REPLY


class TranscriptStore:
    """Persists the conversation transcript as a JSON file."""

    def __init__(self, directory: Optional[Path] = None, key: str = TRANSCRIPT_KEY):
        self.path = (directory or DEFAULT_SESSION_DIR) / f"{key}.json"

    def load(self) -> list[ChatMessage]:
        """Load the transcript; a missing or corrupt file gives an empty list."""
        if not self.path.exists():
            return []
        try:
            return _transcript_adapter.validate_json(self.path.read_bytes())
        except (ValidationError, ValueError, OSError) as e:
            logger.error(
                "transcript_load_failed",
                path=str(self.path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    def save(self, messages: list[ChatMessage]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(_transcript_adapter.dump_json(messages, indent=2, exclude_none=True))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class ConversationSession:
    """
    One chat conversation against the page being edited.

    Only one turn may be in flight at a time; `send` raises
    ConversationBusyError if called again before the previous turn finished.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        composer: PromptComposer,
        snapshot_builder: Optional[SnapshotBuilder] = None,
        store: Optional[ContentStore] = None,
        transcript: Optional[TranscriptStore] = None,
        settle_delay: float = 0.2,
        final_delay: float = 0.1,
        fuzzy_match: bool = False,
    ):
        self.llm_client = llm_client
        self.composer = composer
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        self.store = store
        self.transcript = transcript or TranscriptStore()
        self.settle_delay = settle_delay
        self.final_delay = final_delay
        self.fuzzy_match = fuzzy_match

        self.history: list[ChatMessage] = self.transcript.load()
        self.snapshot = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _append(self, message: ChatMessage) -> ChatMessage:
        self.history.append(message)
        self.transcript.save(self.history)
        return message

    def _refresh_snapshot(self, page_state: Optional[PageState]) -> None:
        self.snapshot = self.snapshot_builder.build(page_state) if page_state is not None else None

    async def send(
        self,
        message: str,
        page_state: Optional[PageState] = None,
        mode: ChatMode = "chat",
    ) -> ChatMessage:
        """
        Run one chat turn.

        Args:
            message: User input (surrounding whitespace is stripped)
            page_state: Current page, re-read for every turn
            mode: "chat" or "update_fields"

        Returns:
            The assistant message appended to the transcript

        Raises:
            InvalidRequestError: If the message is blank
            ConversationBusyError: If a turn is already in flight
        """
        text = message.strip()
        if not text:
            raise InvalidRequestError("Message cannot be empty")
        if self._busy:
            raise ConversationBusyError("A message is already being processed")

        self._busy = True
        try:
            self._refresh_snapshot(page_state)
            prior_history = list(self.history)
            self._append(ChatMessage(role="user", content=text, mode=mode))

            messages = self.composer.build_chat_messages(text, prior_history, self.snapshot, mode)

            try:
                completion = await self.llm_client.chat(messages)
            except (AltAIError, httpx.HTTPError) as e:
                logger.error(
                    "conversation_turn_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return self._append(ChatMessage(role="assistant", content=ERROR_REPLY))

            proposal = parse_field_updates(completion.content, mode)
            logger.info(
                "conversation_turn_completed",
                mode=mode,
                has_field_updates=proposal is not None,
            )
            return self._append(ChatMessage(
                role="assistant",
                content=completion.content,
                field_updates=proposal,
            ))
        finally:
            self._busy = False

    def _proposal_at(self, index: int) -> Optional[FieldUpdateProposal]:
        if not 0 <= index < len(self.history):
            return None
        return self.history[index].field_updates

    async def apply_proposal(
        self,
        index: int,
        page_state: Optional[PageState] = None,
    ) -> Optional[ReconcileResult]:
        """
        Apply the proposal attached to the message at `index`.

        The proposal is marked applied and persisted before any field is
        written, so it can't be applied twice.

        Returns:
            ReconcileResult, or None if there was nothing (left) to apply
        """
        proposal = self._proposal_at(index)
        if proposal is None or not proposal.mark_applied():
            logger.debug("proposal_apply_ignored", index=index)
            return None
        self.transcript.save(self.history)

        try:
            store = self.store
            if store is None:
                store = PublishModuleStore.from_publish(page_state.publish if page_state else None)
            reconciler = FieldReconciler(
                store,
                settle_delay=self.settle_delay,
                final_delay=self.final_delay,
                fuzzy_match=self.fuzzy_match,
            )
            result = await reconciler.apply_changes(proposal.changes)
        except StoreUnavailableError as e:
            logger.error("proposal_apply_failed", index=index, error=str(e))
            result = ReconcileResult()

        self._append(ChatMessage(role="assistant", content=format_feedback(result)))
        self._refresh_snapshot(page_state)
        return result

    def dismiss_proposal(self, index: int) -> bool:
        """Mark a proposal as handled without applying it."""
        proposal = self._proposal_at(index)
        if proposal is None or not proposal.mark_applied():
            return False
        self.transcript.save(self.history)
        logger.info("proposal_dismissed", index=index)
        return True

    def clear(self) -> None:
        self.history = []
        self.transcript.clear()
        logger.info("conversation_cleared")
