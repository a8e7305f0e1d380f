"""
Configuration settings for transcript script generation.
Can be overridden via .env, environment variables, or command line arguments.
"""

import math
import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    """Read integer env var, falling back to default on blank or bad values."""
    raw = os.environ.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    """Read finite float env var, falling back to default on blank or bad values."""
    raw = os.environ.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


# LLM provider and model selection (from .env); used by llm_utils
# TEXT_PROVIDER: "google" or "openai"
TEXT_PROVIDER = os.getenv("TEXT_PROVIDER", "google").lower()
TEXT_MODEL_GOOGLE = os.getenv("TEXT_MODEL_GOOGLE", "gemini-2.0-flash")
TEXT_MODEL_OPENAI = os.getenv("TEXT_MODEL_OPENAI", "gpt-4o-mini")
TEXT_TEMPERATURE = _env_float("TEXT_TEMPERATURE", 0.7)
TEXT_MAX_OUTPUT_TOKENS = _env_int("TEXT_MAX_OUTPUT_TOKENS", 4096)


def debug_enabled() -> bool:
    """Verbose logging switch; read on every call so --debug flags set after import still apply."""
    return _env_bool("DEBUG", False)


class Config:
    # Pipeline settings
    profile = os.getenv("SCRIPT_PROFILE", "actor").lower()  # "actor" or "national"
    part_delay_seconds = _env_float("PART_DELAY_SECONDS", 1.2)  # Pause between part requests
    persist_part_turns = _env_bool("PERSIST_PART_TURNS", False)  # Keep parts 2..N in conversation history
    strict_part_count = _env_bool("STRICT_PART_COUNT", True)  # Fail when the part count parses to 0

    # Batch settings
    batch_delay_seconds = _env_float("BATCH_DELAY_SECONDS", 1.0)  # Pause between batch items

    # Retry settings (applied around every upstream call)
    retry_max_attempts = _env_int("RETRY_MAX_ATTEMPTS", 4)
    retry_base_delay_seconds = _env_float("RETRY_BASE_DELAY_SECONDS", 2.0)
    retry_backoff_factor = _env_float("RETRY_BACKOFF_FACTOR", 2.0)
    retry_max_delay_seconds = _env_float("RETRY_MAX_DELAY_SECONDS", 30.0)

    # Conversation history store
    history_max_conversations = _env_int("HISTORY_MAX_CONVERSATIONS", 64)
    history_ttl_seconds = _env_float("HISTORY_TTL_SECONDS", 6 * 60 * 60)  # 0 disables expiry

    # HTTP server
    port = _env_int("PORT", 5000)

    @property
    def retry_policy_kwargs(self) -> dict:
        """Keyword arguments for llm_utils.RetryPolicy built from the retry settings."""
        return {
            "max_attempts": max(1, self.retry_max_attempts),
            "base_delay_seconds": max(0.0, self.retry_base_delay_seconds),
            "backoff_factor": max(1.0, self.retry_backoff_factor),
            "max_delay_seconds": max(0.0, self.retry_max_delay_seconds),
        }


config = Config()
