from __future__ import annotations

import logging
import time
from typing import Any

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """The chat completion could not be produced."""


class LLMNotConfigured(LLMError):
    """No API key is configured, or the assistant is disabled."""


def _usage_dict(usage: Any) -> dict[str, Any] | None:
    if usage is None:
        return None
    if isinstance(usage, dict):
        return usage
    dump = getattr(usage, "model_dump", None)
    if callable(dump):
        result = dump()
        return result if isinstance(result, dict) else None
    return None


def complete_chat(
    messages: list[dict[str, str]],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> tuple[str, dict[str, Any] | None]:
    """
    Send *messages* to Groq and return ``(answer, usage)``.

    Raises LLMNotConfigured when no key is set, and LLMError when the API
    call fails or the completion is empty.
    """
    if not config.available:
        raise LLMNotConfigured("GROQ_API_KEY is not configured on the server")

    started = time.perf_counter()
    logger.info("Sending request to Groq: model=%s messages=%d", config.model, len(messages))
    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=messages,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    except Exception as exc:
        logger.error("Groq chat request failed", exc_info=True)
        raise LLMError(f"Failed to fetch response from Groq: {exc}") from exc

    usage = _usage_dict(getattr(response, "usage", None))
    latency_ms = (time.perf_counter() - started) * 1000
    logger.info("Groq response received in %.0f ms (usage=%s)", latency_ms, usage)

    choices = getattr(response, "choices", None) or []
    content = choices[0].message.content if choices else None
    answer = content.strip() if isinstance(content, str) else ""
    if not answer:
        logger.warning("Groq returned no completion")
        raise LLMError("Groq did not return a completion")

    return answer, usage
