"""HTTP API for the chat widget, the editor agent and single-shot actions."""

from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from altai import __version__
from altai.llm.prompts import PromptComposer
from altai.models.api import (
    ActionRequest,
    ActionResponse,
    AgentRequest,
    AgentResponse,
    ChatRequest,
    ChatResponse,
)
from altai.models.config import Config
from altai.models.context import ContextSnapshot
from altai.services.exceptions import AltAIError, CapabilityDisabledError, ConfigurationError
from altai.services.field_update_parser import parse_field_updates
from altai.services.llm_client import LLMClient
from altai.utils.logging import get_logger


logger = get_logger(__name__)


def _error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(config: Config, llm_client: Optional[LLMClient] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Root configuration
        llm_client: Transport to use (defaults to one built from config)
    """
    app = FastAPI(title="altai", version=__version__)
    client = llm_client or LLMClient(config)
    composer = PromptComposer(config)

    @app.post("/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest):
        if not config.has_api_key:
            return _error("OpenAI API key not configured")

        try:
            snapshot = ContextSnapshot.from_context(request.context)
            messages = composer.build_chat_messages(
                request.message,
                request.conversation_history,
                snapshot,
                request.mode,
            )
            completion = await client.chat(messages)
        except (AltAIError, httpx.HTTPError, ValueError) as e:
            logger.error("chat_request_failed", error=str(e), error_type=type(e).__name__)
            return _error(f"Failed to process chat request: {e}")

        return ChatResponse(
            message=completion.content,
            usage=completion.usage,
            field_updates=parse_field_updates(completion.content, request.mode),
            mode=request.mode,
        )

    @app.post("/agent", response_model=AgentResponse)
    async def agent(request: AgentRequest):
        if not config.has_api_key:
            return _error("OpenAI API key not configured")

        try:
            messages = composer.build_agent_messages(
                request.message,
                request.document_content,
                request.selected_text,
                request.conversation_history,
            )
            completion = await client.chat(messages)
        except (AltAIError, httpx.HTTPError) as e:
            logger.error("agent_request_failed", error=str(e), error_type=type(e).__name__)
            return _error(f"Failed to process agent request: {e}")

        return AgentResponse(message=completion.content, usage=completion.usage)

    @app.post("/action", response_model=ActionResponse)
    async def action(request: ActionRequest):
        try:
            content = await client.run_action(request.action, request.to_payload())
        except CapabilityDisabledError as e:
            return _error(str(e), status_code=403)
        except ConfigurationError as e:
            return _error(str(e))
        except (AltAIError, httpx.HTTPError) as e:
            logger.error("action_request_failed", action=request.action, error=str(e))
            return _error(f"Failed to process {request.action} request: {e}")

        return ActionResponse(message=content)

    logger.info("web_app_created", model=config.model.name)
    return app
