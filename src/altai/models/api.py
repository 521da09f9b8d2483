"""Request and response bodies of the HTTP API."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from altai.models.chat import ChatMode, FieldUpdateProposal


class ChatRequest(BaseModel):
    """Body of POST /chat."""

    message: str = Field(..., min_length=1, max_length=10000)
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict, description="Wire form of a ContextSnapshot")
    mode: ChatMode = "chat"


class AgentRequest(BaseModel):
    """Body of POST /agent (in-editor writing assistant)."""

    message: str = Field(..., min_length=1, max_length=10000)
    document_content: str = ""
    selected_text: str = ""
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)


class ActionRequest(BaseModel):
    """Body of POST /action (single-shot text action)."""

    action: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    target_language: Optional[str] = None
    tone: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"action"}, exclude_none=True)


class ChatResponse(BaseModel):
    message: str
    usage: Optional[dict[str, Any]] = None
    field_updates: Optional[FieldUpdateProposal] = None
    mode: ChatMode = "chat"


class AgentResponse(BaseModel):
    message: str
    usage: Optional[dict[str, Any]] = None


class ActionResponse(BaseModel):
    message: str
