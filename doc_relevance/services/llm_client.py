"""Async Anthropic API wrapper with retry, logging, and prompt loading."""

import asyncio
import logging
import time
from pathlib import Path

import anthropic
import httpx

from doc_relevance.config import Settings
from doc_relevance.errors import ConfigurationError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503)


def load_prompt(name: str) -> str:
    """Load a prompt template from doc_relevance/prompts/{name}.txt."""
    prompt_path = Path(__file__).parent.parent / "prompts" / f"{name}.txt"
    return prompt_path.read_text(encoding="utf-8")


class LLMClient:
    """Claude client built from settings and handed to whoever needs it.

    The underlying ``AsyncAnthropic`` is created on first use, so a client
    without an API key can still be constructed; calling it raises
    ``ConfigurationError``.
    """

    def __init__(self, settings: Settings, client: anthropic.AsyncAnthropic | None = None):
        self.settings = settings
        self.model = settings.claude_model
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self.settings.has_anthropic_key

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.settings.has_anthropic_key:
                raise ConfigurationError("LLM client not initialized. Check ANTHROPIC_API_KEY.")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=httpx.Timeout(self.settings.llm_timeout_seconds, connect=10.0),
            )
        return self._client

    async def complete(self, system: str, user_message: str, max_tokens: int | None = None) -> str:
        """Call the configured model and return the first text block of the reply."""
        client = self._get_client()
        max_tokens = max_tokens or self.settings.llm_max_tokens
        max_attempts = self.settings.llm_max_retries + 1
        hard_timeout = self.settings.llm_timeout_seconds
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            start = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    client.messages.create(
                        model=self.model,
                        max_tokens=max_tokens,
                        temperature=0.1,
                        system=system,
                        messages=[{"role": "user", "content": user_message}],
                    ),
                    timeout=hard_timeout,
                )
                elapsed_ms = int((time.monotonic() - start) * 1000)
                usage = response.usage
                logger.info(
                    "LLM OK | model=%s | tokens_in=%d tokens_out=%d | %dms",
                    self.model, usage.input_tokens, usage.output_tokens, elapsed_ms,
                )
                return _first_text(response)

            except asyncio.TimeoutError:
                elapsed_ms = int((time.monotonic() - start) * 1000)
                logger.warning(
                    "LLM timeout | model=%s | %dms (hard limit %ds) — no retry",
                    self.model, elapsed_ms, hard_timeout,
                )
                raise TimeoutError(f"LLM timeout after {elapsed_ms}ms")

            except anthropic.APIStatusError as e:
                elapsed_ms = int((time.monotonic() - start) * 1000)
                logger.warning(
                    "LLM error | model=%s | status=%d | attempt=%d/%d | %dms | %s",
                    self.model, e.status_code, attempt, max_attempts,
                    elapsed_ms, str(e)[:200],
                )
                last_error = e
                if e.status_code in RETRYABLE_STATUS and attempt < max_attempts:
                    continue
                raise

            except (anthropic.APITimeoutError, anthropic.APIConnectionError) as e:
                elapsed_ms = int((time.monotonic() - start) * 1000)
                logger.warning(
                    "LLM connection error | model=%s | attempt=%d/%d | %dms",
                    self.model, attempt, max_attempts, elapsed_ms,
                )
                last_error = e
                if attempt < max_attempts:
                    continue
                raise

        raise last_error or RuntimeError("LLM call failed after all retries")


def _first_text(response) -> str:
    """Text of the first content block; ValueError if the reply has no text block."""
    for block in response.content or []:
        if getattr(block, "type", None) == "text":
            return block.text
    raise ValueError("LLM response contained no text block")
