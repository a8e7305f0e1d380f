"""
Conversation history for a stateless completion API.

Each pipeline run gets its own conversation id. Prior (role, content) turns are
folded into the prompt text so the model sees the earlier outline, brief, etc.
Histories live in memory only and are bounded by an LRU limit and an idle TTL.
"""

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

import llm_utils
from config import config, debug_enabled

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_LABELS = {ROLE_USER: "User", ROLE_ASSISTANT: "Assistant"}


@dataclass(frozen=True)
class ConversationMessage:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLE_LABELS:
            raise ValueError(f"role must be 'user' or 'assistant', got {self.role!r}")


@dataclass
class ConversationHistory:
    messages: list[ConversationMessage] = field(default_factory=list)
    last_updated: float = field(default_factory=time.time)

    def render(self) -> str:
        return "\n\n".join(f"{ROLE_LABELS[m.role]}: {m.content}" for m in self.messages)


def new_conversation_id(tag: str = "transcript") -> str:
    """Timestamp-based id with a random suffix so ids created in the same millisecond differ."""
    return f"{tag}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class ConversationStore:
    """In-memory conversation histories with LRU and idle-time eviction."""

    def __init__(
        self,
        max_conversations: int = 64,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.time,
    ):
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        self.max_conversations = max_conversations
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._histories: "OrderedDict[str, ConversationHistory]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._histories)

    def __contains__(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._histories

    def _is_expired(self, history: ConversationHistory, now: float) -> bool:
        return self.ttl_seconds > 0 and now - history.last_updated > self.ttl_seconds

    def evict_expired(self) -> list[str]:
        """Drop histories idle longer than ttl_seconds. Returns the evicted ids."""
        now = self._clock()
        with self._lock:
            expired = [cid for cid, h in self._histories.items() if self._is_expired(h, now)]
            for cid in expired:
                del self._histories[cid]
        if expired:
            print(f"[HISTORY] Expired {len(expired)} idle conversation(s)")
        return expired

    def _evict_overflow(self) -> None:
        while len(self._histories) > self.max_conversations:
            cid, _ = self._histories.popitem(last=False)
            print(f"[HISTORY] Evicted least recently used conversation {cid}")

    def get(self, conversation_id: str) -> ConversationHistory | None:
        with self._lock:
            history = self._histories.get(conversation_id)
            if history is not None and self._is_expired(history, self._clock()):
                del self._histories[conversation_id]
                return None
            return history

    def get_or_create(self, conversation_id: str) -> ConversationHistory:
        self.evict_expired()
        with self._lock:
            history = self._histories.get(conversation_id)
            if history is None:
                history = ConversationHistory(last_updated=self._clock())
                self._histories[conversation_id] = history
                self._evict_overflow()
            else:
                self._histories.move_to_end(conversation_id)
            return history

    def append_turn(self, conversation_id: str, user_content: str, assistant_content: str) -> None:
        with self._lock:
            history = self.get_or_create(conversation_id)
            history.messages.append(ConversationMessage(ROLE_USER, user_content))
            history.messages.append(ConversationMessage(ROLE_ASSISTANT, assistant_content))
            history.last_updated = self._clock()

    def build_prompt(self, conversation_id: str, new_prompt: str) -> str:
        """Prefix new_prompt with every prior turn of the conversation."""
        history = self.get_or_create(conversation_id)
        with self._lock:
            if not history.messages:
                return new_prompt
            return f"Conversation history:\n{history.render()}\n\nCurrent prompt: {new_prompt}"

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._histories.pop(conversation_id, None)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._histories.keys())


default_store = ConversationStore(
    max_conversations=max(1, config.history_max_conversations),
    ttl_seconds=config.history_ttl_seconds,
)


def send_prompt_with_history(
    prompt: str,
    conversation_id: str | None = None,
    *,
    store: ConversationStore | None = None,
    save_to_history: bool = True,
    generate_fn: Callable[[str], str] | None = None,
    retry_policy: llm_utils.RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Send prompt with the conversation's prior turns prepended.

    With save_to_history=False the exchange still sees the earlier context but
    is not stored, which keeps long part-by-part runs from growing the prompt.
    """
    store = default_store if store is None else store
    conversation_id = conversation_id or new_conversation_id("conv")
    full_prompt = store.build_prompt(conversation_id, prompt)
    if debug_enabled():
        print(f"[HISTORY] {conversation_id}: sending {len(full_prompt)} chars")

    response = llm_utils.generate_with_retry(
        full_prompt,
        policy=retry_policy,
        generate_fn=generate_fn,
        sleep=sleep,
    )

    if save_to_history:
        store.append_turn(conversation_id, prompt, response)
    return response
