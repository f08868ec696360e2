from __future__ import annotations

import asyncio
import logging
from typing import Any

import aisuite as ai  # type: ignore
import google.generativeai as genai  # type: ignore

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


class LLMProvider:
    def __init__(self, model: str, api_key: str = "") -> None:
        self.model = model
        self._client = None
        self._genai_model: Any | None = None

        # Route to google-generativeai if model starts with google-genai:
        if self.model.startswith("google-genai:"):
            if not api_key:
                raise RuntimeError("GEMINI_API_KEY is not set")
            genai.configure(api_key=api_key)
            model_id = self.model.split(":", 1)[1]
            self._genai_model = genai.GenerativeModel(model_id)
        else:
            try:
                self._client = ai.Client()
            except Exception as exc:  # fail fast if aisuite cannot initialize
                raise RuntimeError("Failed to initialize aisuite client") from exc

    def chat(self, messages: list[dict[str, Any]], temperature: float = 1.0) -> str:
        """Send a chat completion request. messages: list of dicts with keys: role (system|user|assistant), content (str)"""
        if self._genai_model is not None:
            # Gemini takes a single prompt; flatten roles into it
            prompt = "\n".join(
                f"{m.get('role','user')}: {m.get('content','')}" for m in messages
            )
            response = self._genai_model.generate_content(prompt)
            return response.text or ""
        else:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
            )
            return resp.choices[0].message.content or ""

    async def chat_async(
        self, messages: list[dict[str, Any]], temperature: float = 1.0
    ) -> str:
        """Async version of chat; the sync SDK call runs in a worker thread."""

        def _sync_chat():
            return self.chat(messages, temperature)

        return await asyncio.to_thread(_sync_chat)


def is_rate_limited(exc: BaseException) -> bool:
    """True when a provider exception reports HTTP 429 / RESOURCE_EXHAUSTED."""
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        try:
            if value is not None and int(value) == RATE_LIMIT_STATUS:
                return True
        except (TypeError, ValueError):
            continue
    return "RESOURCE_EXHAUSTED" in str(exc)


async def generate_with_retry(
    provider: Any,
    prompt: str,
    retries: int = 2,
    delay_seconds: float = 8.0,
    temperature: float = 1.0,
) -> str:
    """
    Run a single-prompt generation, retrying only on rate limiting.

    Waits a fixed ``delay_seconds`` between attempts and makes at most
    ``retries`` extra attempts. Any other error propagates immediately.
    """
    messages = [{"role": "user", "content": prompt}]
    attempt = 0
    while True:
        try:
            return await provider.chat_async(messages, temperature=temperature)
        except Exception as exc:
            if not is_rate_limited(exc) or attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                f"[llm] Rate limited, retrying in {delay_seconds}s "
                f"(attempt {attempt}/{retries})"
            )
            await asyncio.sleep(delay_seconds)
