"""
Text generation client for the transcript pipeline.
Dispatches to Google (Gemini) or OpenAI based on .env TEXT_PROVIDER.

.env variables:
  TEXT_PROVIDER           - "google" or "openai" (default: google)
  TEXT_MODEL_GOOGLE       - Gemini model (default: gemini-2.0-flash)
  TEXT_MODEL_OPENAI       - OpenAI chat model (default: gpt-4o-mini)
  TEXT_TEMPERATURE        - Sampling temperature (default: 0.7)
  TEXT_MAX_OUTPUT_TOKENS  - Max tokens per completion (default: 4096)
  GEMINI_API_KEY          - Required for Google (GOOGLE_API_KEY also supported)
  OPENAI_API_KEY          - Required for OpenAI

Calls here are single attempts. Callers that want retries wrap them with
generate_with_retry() and a RetryPolicy.
"""

import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from config import (
    TEXT_MAX_OUTPUT_TOKENS,
    TEXT_MODEL_GOOGLE,
    TEXT_MODEL_OPENAI,
    TEXT_PROVIDER,
    TEXT_TEMPERATURE,
    config,
    debug_enabled,
)
from errors import (
    ERROR_KIND_EMPTY_OUTPUT,
    RETRYABLE_ERROR_KINDS,
    UpstreamError,
    classify_exception,
)


def get_text_model_display() -> str:
    """Return a short string for logging: provider / model (e.g. 'google / gemini-2.0-flash')."""
    prov = TEXT_PROVIDER.lower()
    model = TEXT_MODEL_OPENAI if prov == "openai" else TEXT_MODEL_GOOGLE
    return f"{prov} / {model}"


def _google_api_key() -> str | None:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def _generate_openai(messages: list[dict[str, str]], model_name: str, temperature: float, **kwargs: Any) -> str:
    if not os.getenv("OPENAI_API_KEY"):
        raise ValueError("OPENAI_API_KEY is not set. Set it in .env for OpenAI text.")
    from openai import OpenAI
    client = OpenAI()
    try:
        response = client.chat.completions.create(
            model=model_name,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
    except Exception as e:
        raise UpstreamError(f"OpenAI request failed: {e}", error_kind=classify_exception(e)) from e
    text = ""
    if getattr(response, "choices", None):
        text = response.choices[0].message.content or ""
    return text


def _generate_google(
    messages: list[dict[str, str]],
    model_name: str,
    temperature: float,
    max_output_tokens: int,
    **kwargs: Any,
) -> str:
    api_key = _google_api_key()
    if not api_key:
        raise ValueError(
            "GEMINI_API_KEY or GOOGLE_API_KEY is not set. Set one in .env for Google (Gemini) text. "
            "You can create an API key in Google AI Studio."
        )
    from google import genai
    from google.genai import types

    system_parts: list[str] = []
    chat_parts: list[tuple[str, str]] = []  # (role, content)
    for m in messages:
        role = (m.get("role") or "user").lower()
        content = (m.get("content") or "").strip()
        if not content:
            continue
        if role == "system":
            system_parts.append(content)
        else:
            chat_parts.append((role, content))
    system_instruction = "\n\n".join(system_parts) if system_parts else None

    # Single user turn: one contents string; multi-turn: fold history into one prompt
    if len(chat_parts) == 1 and chat_parts[0][0] == "user":
        contents = chat_parts[0][1]
    else:
        contents = "\n\n".join(
            f"{'User' if role == 'user' else 'Assistant'}: {content}" for role, content in chat_parts
        )

    client = genai.Client(api_key=api_key)
    gen_config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        **kwargs,
    )
    try:
        response = client.models.generate_content(
            model=model_name,
            contents=contents,
            config=gen_config,
        )
    except Exception as e:
        raise UpstreamError(f"Gemini request failed: {e}", error_kind=classify_exception(e)) from e
    if not response:
        return ""
    text = getattr(response, "text", None) or ""
    if not text and getattr(response, "candidates", None):
        c0 = response.candidates[0]
        if getattr(c0, "content", None) and getattr(c0.content, "parts", None):
            text = getattr(c0.content.parts[0], "text", None) or ""
    return text


def generate_text(
    messages: list[dict[str, str]],
    model: str | None = None,
    provider: str | None = None,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    **kwargs: Any,
) -> str:
    """
    Generate text from messages using Google Gemini or OpenAI.

    Args:
        messages: List of {"role": "user"|"system"|"assistant", "content": str}.
        model: Model name; if None, use TEXT_MODEL_GOOGLE or TEXT_MODEL_OPENAI.
        provider: "google" or "openai"; if None, use TEXT_PROVIDER.
        temperature: Sampling temperature; if None, use TEXT_TEMPERATURE.
        max_output_tokens: Completion cap (Gemini only); if None, use TEXT_MAX_OUTPUT_TOKENS.
        **kwargs: Passed through to the underlying API.

    Returns:
        The assistant reply as a single non-empty string.

    Raises:
        ValueError: unknown provider or missing API key.
        UpstreamError: the service failed or returned no text.
    """
    prov = (provider or TEXT_PROVIDER).lower()
    if prov not in ("google", "openai"):
        raise ValueError(
            f"TEXT_PROVIDER must be 'google' or 'openai'. Got: {prov}. "
            "Set TEXT_PROVIDER in .env or pass provider=."
        )
    temp = TEXT_TEMPERATURE if temperature is None else temperature

    if prov == "openai":
        text = _generate_openai(messages, model or TEXT_MODEL_OPENAI, temp, **kwargs)
    else:
        text = _generate_google(
            messages,
            model or TEXT_MODEL_GOOGLE,
            temp,
            max_output_tokens or TEXT_MAX_OUTPUT_TOKENS,
            **kwargs,
        )

    if not text or not text.strip():
        raise UpstreamError(
            f"{prov} returned empty text. The model may have blocked the response.",
            error_kind=ERROR_KIND_EMPTY_OUTPUT,
        )
    return text


def generate(prompt: str, **kwargs: Any) -> str:
    """Send one prompt as a single user turn and return the completion text."""
    return generate_text(messages=[{"role": "user", "content": prompt}], **kwargs)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff, keyed on UpstreamError.error_kind."""

    max_attempts: int = 4
    base_delay_seconds: float = 2.0
    backoff_factor: float = 2.0
    max_delay_seconds: float = 30.0
    retryable_kinds: frozenset = field(default_factory=lambda: RETRYABLE_ERROR_KINDS)

    @classmethod
    def from_config(cls, cfg=None) -> "RetryPolicy":
        cfg = cfg or config
        return cls(**cfg.retry_policy_kwargs)

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) failed attempt."""
        delay = self.base_delay_seconds * (self.backoff_factor ** max(0, attempt - 1))
        return min(delay, self.max_delay_seconds)

    def should_retry(self, error: UpstreamError, attempt: int) -> bool:
        return attempt < self.max_attempts and error.error_kind in self.retryable_kinds


def generate_with_retry(
    prompt: str,
    policy: RetryPolicy | None = None,
    generate_fn: Callable[[str], str] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Call generate_fn(prompt), retrying retryable UpstreamErrors per policy.
    The last UpstreamError propagates once attempts are exhausted.
    """
    policy = policy or RetryPolicy.from_config()
    generate_fn = generate_fn or generate
    attempt = 0
    while True:
        attempt += 1
        try:
            if debug_enabled():
                print(f"[LLM] Attempt {attempt}/{policy.max_attempts} ({len(prompt)} chars)")
            return generate_fn(prompt)
        except UpstreamError as e:
            if not policy.should_retry(e, attempt):
                print(f"[LLM] Giving up after {attempt} attempt(s): {e}")
                raise
            delay = policy.delay_for(attempt)
            print(f"[RETRY] {e.error_kind} on attempt {attempt}/{policy.max_attempts}; retrying in {delay:.1f}s")
            sleep(delay)
