"""LLM client for OpenAI-compatible chat-completion endpoints."""

from typing import Any, Dict, List, Optional

import httpx

from altai.llm.prompts import ACTION_CAPABILITIES, build_action_prompt
from altai.models.chat import ChatCompletion
from altai.models.config import Config
from altai.services.exceptions import CapabilityDisabledError, ConfigurationError, UpstreamError
from altai.utils.logging import get_logger


logger = get_logger(__name__)


def _extract_content(data: Dict[str, Any]) -> str:
    """
    Extract the assistant text from a chat-completion response.

    Returns "" when the response has no `choices[0].message.content`.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def _extract_error_detail(response: httpx.Response) -> str:
    """Best-effort `error.message` from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return ""


class LLMClient:
    """
    HTTP client for an OpenAI-compatible chat-completion API.

    One request per call: no streaming and no retries.
    """

    def __init__(self, config: Config):
        """
        Initialize LLM client.

        Args:
            config: Root configuration (endpoint, API key, model settings)
        """
        self.config = config
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,
            write=10.0,
            pool=10.0
        )

    @property
    def completions_url(self) -> str:
        return str(self.config.endpoint).rstrip("/") + "/chat/completions"

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatCompletion:
        """
        Send one chat-completion request.

        Args:
            messages: Ordered role/content messages (system first)
            temperature: Overrides model.temperature when given
            max_tokens: Overrides model.max_tokens when given

        Returns:
            ChatCompletion with the reply text and usage block

        Raises:
            ConfigurationError: If no API key is configured (nothing is sent)
            UpstreamError: If the endpoint answers with a non-2xx status
            httpx.HTTPError: On network errors
        """
        if not self.config.has_api_key:
            logger.error("llm_api_key_missing")
            raise ConfigurationError("OpenAI API key not configured")

        payload = {
            "model": self.config.model.name,
            "messages": messages,
            "temperature": self.config.model.temperature if temperature is None else temperature,
            "max_tokens": self.config.model.max_tokens if max_tokens is None else max_tokens,
        }

        logger.info(
            "llm_request_started",
            model=payload["model"],
            endpoint=str(self.config.endpoint),
            message_count=len(messages),
            temperature=payload["temperature"],
            max_tokens=payload["max_tokens"],
        )

        logger.debug(
            "llm_request_payload",
            payload=payload,
        )

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.completions_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                "llm_request_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        if not 200 <= response.status_code < 300:
            detail = _extract_error_detail(response)
            logger.error(
                "llm_upstream_error",
                status_code=response.status_code,
                detail=detail,
            )
            raise UpstreamError(response.status_code, detail)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "llm_invalid_response_body",
                status_code=response.status_code,
                error=str(e),
            )
            raise UpstreamError(response.status_code, "invalid JSON body") from e

        content = _extract_content(data)
        usage = data.get("usage") if isinstance(data, dict) else None

        logger.info(
            "llm_request_completed",
            status_code=response.status_code,
            content_length=len(content),
            usage=usage,
        )

        return ChatCompletion(content=content, usage=usage)

    async def run_action(self, action: str, payload: Dict[str, Any]) -> str:
        """
        Run a single-shot editor action (completion, enhance, ...).

        Args:
            action: Action name; unknown names use a generic prompt
            payload: `text`, plus `target_language` or `tone` where relevant

        Returns:
            The reply text

        Raises:
            CapabilityDisabledError: If the action's capability is switched off
            ConfigurationError: If no API key is configured
            UpstreamError: If the endpoint answers with a non-2xx status
        """
        capability = ACTION_CAPABILITIES.get(action)
        if capability is not None and not getattr(self.config.capabilities, capability):
            logger.warning("llm_action_disabled", action=action, capability=capability)
            raise CapabilityDisabledError(action, capability)

        prompt = build_action_prompt(action, payload)
        logger.debug("llm_action_prompt_built", action=action, text_length=len(payload.get("text", "")))
        completion = await self.chat(prompt.to_messages())
        return completion.content
