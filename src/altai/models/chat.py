"""Chat transcript and field-update proposal models."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


ChatMode = Literal["chat", "update_fields"]

UPDATE_FIELDS_ACTION = "update_fields"


class FieldChange(BaseModel):
    """One proposed field edit, as returned by the model."""

    field: str = Field(..., description="Field handle claimed by the model")
    current_value: Any = Field(default="", description="Value the model believes is current")
    proposed_value: Any = Field(
        ...,
        description="Proposed plain-text value (kept as-is if the model returned another shape)"
    )
    reason: str = Field(default="", description="Model's explanation for the change")


class FieldUpdateProposal(BaseModel):
    """
    A set of field edits proposed by the model in edit-suggestion mode.

    `applied` starts False and flips to True exactly once, when the user
    either applies or dismisses the proposal.
    """

    action: Literal["update_fields"] = Field(default=UPDATE_FIELDS_ACTION)
    message: str = Field(default="", description="Brief explanation from the model")
    changes: list[FieldChange] = Field(default_factory=list)
    applied: bool = Field(default=False, description="Set once applied or dismissed")

    model_config = {"frozen": False}

    def mark_applied(self) -> bool:
        """Flip `applied` to True. Returns False if it was already set."""
        if self.applied:
            return False
        self.applied = True
        return True


class ChatMessage(BaseModel):
    """One entry of the conversation transcript."""

    role: Literal["user", "assistant"]
    content: str
    mode: Optional[ChatMode] = None
    field_updates: Optional[FieldUpdateProposal] = None

    model_config = {"frozen": False}

    def to_history_entry(self) -> dict[str, str]:
        """The `{role, content}` pair sent upstream."""
        return {"role": self.role, "content": self.content}


@dataclass
class ChatCompletion:
    """Result of one chat-completion call.

    Attributes:
        content: `choices[0].message.content`, or "" when absent
        usage: Token usage block from the response, if any
    """
    content: str
    usage: Optional[dict[str, Any]] = None


@dataclass
class ReconcileResult:
    """Outcome of applying a list of field changes.

    Attributes:
        applied_count: Changes committed to the store
        skipped_count: Changes skipped (unknown field or no difference)
        change_details: One line per change, prefixed with a status marker
    """
    applied_count: int = 0
    skipped_count: int = 0
    change_details: list[str] = field(default_factory=list)
