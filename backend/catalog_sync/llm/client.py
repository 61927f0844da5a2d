"""Chat completion client for OpenAI-compatible endpoints.

The outline extractor and the HTML-to-text converter both talk to an
OpenAI-compatible chat completions API (the default is the BigModel
``glm-4-flash`` endpoint). Connection settings are read from the parameter
store by the caller and handed to ``CompletionClient``.

Usage:
    client = CompletionClient(api_key="...", base_url="...", model="glm-4-flash")
    data = await client.complete_json([
        {"role": "system", "content": "Return JSON only."},
        {"role": "user", "content": "..."},
    ])
"""

import json
import re
from typing import Any, Dict, List, Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from catalog_sync.config import settings
from catalog_sync.core.exceptions import AIResponseParseError, UpstreamFetchError


logger = structlog.get_logger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fences a model wraps around JSON replies."""
    return CODE_FENCE_PATTERN.sub("", text or "").strip()


def parse_json_response(text: str) -> Any:
    """Parse a completion as JSON after stripping code fences.

    Raises:
        AIResponseParseError: If the text is not valid JSON; the raw
            completion is kept on the exception
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("ai_response_not_json", error=str(e), preview=cleaned[:200])
        raise AIResponseParseError(f"AI response is not valid JSON: {e.msg}", raw=text) from e


class CompletionClient:
    """Thin async wrapper around ``AsyncOpenAI`` chat completions."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.base_url = base_url or settings.AI_DEFAULT_BASE_URL
        self.model = model or settings.AI_DEFAULT_MODEL
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=self.base_url, timeout=self.timeout)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        *,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run one chat completion and return the reply text.

        Raises:
            UpstreamFetchError: If the completion request fails
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": float(temperature),
        }
        if max_tokens:
            payload["max_tokens"] = int(max_tokens)

        try:
            resp = await self._client.chat.completions.create(**payload)
        except OpenAIError as e:
            logger.error("ai_completion_failed", model=self.model, error=str(e))
            raise UpstreamFetchError("ai-completion", str(e)) from e

        text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        logger.debug("ai_completion_received", model=self.model, length=len(text))
        return text

    async def complete_json(self, messages: List[Dict[str, Any]], **kwargs) -> Any:
        """Run a completion and parse the reply as JSON."""
        text = await self.complete(messages, **kwargs)
        return parse_json_response(text)

    async def close(self) -> None:
        await self._client.close()
