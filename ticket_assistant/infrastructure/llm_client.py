"""
Infrastructure layer - OpenRouter chat-completion client.

OpenRouter speaks the OpenAI wire protocol, so the official `openai` SDK is
pointed at its base URL. Transport retries are disabled: the only retry
policy is the model-to-model fallback done by the sequencer.
"""
from typing import List, Dict, Any, Optional

import openai
from openai import AsyncOpenAI

from ticket_assistant.core.logging import get_logger
from ticket_assistant.domain.exceptions import (
    ConfigurationMissing, MalformedResponse, TransportError
)
from ticket_assistant.domain.interfaces import ILLMClient

logger = get_logger(__name__)


class OpenRouterClient(ILLMClient):
    """OpenRouter chat-completions client."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 30.0,
        referer: str = "http://localhost:3000",
        title: str = "ClickUp Ticket Assistant",
        client: Optional[AsyncOpenAI] = None
    ):
        if not api_key and client is None:
            raise ConfigurationMissing("No OpenRouter API key configured")
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            default_headers={
                # Required by some free models
                "HTTP-Referer": referer,
                "X-Title": title,
            },
        )

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 1000
    ) -> str:
        """Return the trimmed text of the first choice."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            raise TransportError(f"Model {model} timed out", details={"model": model}) from e
        except openai.APIStatusError as e:
            raise TransportError(
                f"Model {model} returned HTTP {e.status_code}: {e.message}",
                details={"model": model, "status_code": e.status_code}
            ) from e
        except openai.APIError as e:
            raise TransportError(f"Model {model} request failed: {e}", details={"model": model}) from e

        choices = getattr(response, "choices", None)
        if not choices or getattr(choices[0], "message", None) is None:
            raise MalformedResponse(
                "Invalid response structure from LLM API", details={"model": model}
            )

        content = (choices[0].message.content or "").strip()
        if not content:
            raise MalformedResponse("Empty response from LLM API", details={"model": model})

        logger.debug(f"Model {model} response: {content[:500]}")
        return content

    async def list_models(self, limit: int = 5) -> List[Dict[str, Any]]:
        """List the first few models exposed by the backend."""
        try:
            page = await self.client.models.list()
        except openai.APIError as e:
            raise TransportError(f"Model listing failed: {e}") from e
        return [model.model_dump() for model in page.data[:limit]]
