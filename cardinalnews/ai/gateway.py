"""Client for the OpenAI-compatible AI gateway.

All article text, fact checks, translations and generated images go through
this one class so retries and error mapping live in a single place.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cardinalnews.ai.json_repair import parse_json_text
from cardinalnews.errors import UpstreamError, require_key

logger = logging.getLogger(__name__)

_RETRYABLE = (openai.RateLimitError, openai.APIConnectionError, openai.APITimeoutError)


def _describe_api_error(e: openai.APIError) -> str:
    status = getattr(e, "status_code", None)
    if status == 429:
        return "AI gateway rate limit exceeded, try again later"
    if status == 402:
        return "AI gateway credits exhausted"
    return f"AI gateway error: {e}"


def _message_images(message: Any) -> List[Any]:
    images = getattr(message, "images", None)
    if images is None:
        extra = getattr(message, "model_extra", None) or {}
        images = extra.get("images")
    return list(images or [])


def _image_url(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        inner = item.get("image_url") or {}
        return inner.get("url") if isinstance(inner, dict) else None
    inner = getattr(item, "image_url", None)
    if isinstance(inner, dict):
        return inner.get("url")
    return getattr(inner, "url", None)


@dataclass
class AIGateway:
    api_key: str
    base_url: str = "https://ai.gateway.lovable.dev/v1"
    model: str = "google/gemini-2.5-flash"
    image_model: str = "google/gemini-2.5-flash-image-preview"
    timeout: float = 120.0
    _client: Any = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> openai.OpenAI:
        require_key(self.api_key, "LOVABLE_API_KEY")
        if self._client is None:
            # retries are handled by tenacity below
            self._client = openai.OpenAI(
                api_key=self.api_key, base_url=self.base_url, timeout=self.timeout, max_retries=0
            )
        return self._client

    @retry(
        retry=retry_if_exception_type(_RETRYABLE),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=8),
        reraise=True,
    )
    def _create(self, **kwargs: Any) -> Any:
        return self._get_client().chat.completions.create(**kwargs)

    def _complete(self, **kwargs: Any) -> Any:
        try:
            resp = self._create(**kwargs)
        except openai.APIError as e:
            logger.error(f"AI gateway call failed: {e}")
            raise UpstreamError(_describe_api_error(e)) from e
        if not getattr(resp, "choices", None):
            raise UpstreamError("AI gateway returned no choices")
        return resp.choices[0].message

    def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        message = self._complete(**kwargs)
        content = message.content or ""
        if not content.strip():
            raise UpstreamError("AI gateway returned an empty response")
        return content

    def chat_json(self, messages: List[Dict[str, str]], **kwargs: Any) -> Any:
        """Chat and parse the answer as JSON (fences and trailing junk tolerated)."""
        content = self.chat(messages, **kwargs)
        parsed = parse_json_text(content)
        if parsed is None:
            logger.error(f"Unparseable AI response: {content[:300]}")
            raise UpstreamError("AI did not return valid JSON")
        return parsed

    def tool_call(
        self,
        messages: List[Dict[str, str]],
        tool: Dict[str, Any],
        *,
        temperature: float = 0.3,
    ) -> Optional[Dict[str, Any]]:
        """Force a single function call and return its decoded arguments (None if absent)."""
        name = tool["function"]["name"]
        message = self._complete(
            model=self.model,
            messages=messages,
            temperature=temperature,
            tools=[tool],
            tool_choice={"type": "function", "function": {"name": name}},
        )
        calls = getattr(message, "tool_calls", None) or []
        if not calls or calls[0].function.name != name:
            return None
        try:
            args = json.loads(calls[0].function.arguments or "{}")
        except ValueError:
            return None
        return args if isinstance(args, dict) else None

    def chat_with_tools(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        *,
        temperature: float = 0.3,
    ) -> Dict[str, Any]:
        """Let the model answer or pick tools; returns {"content", "tool_calls"}.

        Each tool call is {"id", "name", "arguments"} with arguments decoded
        to a dict (empty when the model sent something unparseable).
        """
        message = self._complete(
            model=self.model,
            messages=messages,
            temperature=temperature,
            tools=tools,
            tool_choice="auto",
        )
        calls = []
        for call in getattr(message, "tool_calls", None) or []:
            try:
                args = json.loads(call.function.arguments or "{}")
            except ValueError:
                args = {}
            calls.append({
                "id": call.id,
                "name": call.function.name,
                "arguments": args if isinstance(args, dict) else {},
            })
        return {"content": message.content or "", "tool_calls": calls}

    def generate_image(self, prompt: str) -> str:
        """Return the generated image as a data URL."""
        message = self._complete(
            model=self.image_model,
            messages=[{"role": "user", "content": prompt}],
            extra_body={"modalities": ["image", "text"]},
        )
        for item in _message_images(message):
            url = _image_url(item)
            if url:
                return url
        raise UpstreamError("No image generated by AI")
