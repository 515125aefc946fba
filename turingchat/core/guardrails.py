"""
Guardrails — input/output validation for chat messages.

Layers:
  1. Input validation (empty, length)
  2. Injection logging (messages aimed at unmasking or steering the bot)
  3. Output validation (bot reply length, persona leakage)
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)

MAX_REPLY_LENGTH = 1000

_INJECTION_PATTERNS = [
    r"ignore\s+(all\s+)?previous\s+instructions",
    r"ignore\s+(all\s+)?above",
    r"disregard\s+(all\s+)?previous",
    r"you\s+are\s+now\s+(?:a|an)\s+",
    r"system\s*:\s*",
    r"<\s*system\s*>",
]

_LEAK_INDICATORS = [
    "as an ai",
    "language model",
    "system prompt",
]


@dataclass
class GuardrailResult:
    """Result of a guardrail check."""
    allowed: bool
    reason: Optional[str] = None
    modified_input: Optional[str] = None


# ── Input Guardrails ──────────────────────────────────────────────────

def check_input(message: str, user_id: str = "") -> GuardrailResult:
    """
    Validate a chat message before it is stored.
    Returns GuardrailResult with allowed=False if blocked.
    """
    max_length = get_settings().max_message_length

    if not message.strip():
        return GuardrailResult(allowed=False, reason="Message is empty.")

    if len(message) > max_length:
        return GuardrailResult(
            allowed=False,
            reason=f"Message too long ({len(message)} chars). Maximum is {max_length}.",
        )

    msg_lower = message.lower()
    for pattern in _INJECTION_PATTERNS:
        if re.search(pattern, msg_lower):
            # Logged only. Probing the bot is part of the game.
            logger.info("Injection-style message from user=%s: %s", user_id, message[:100])
            break

    return GuardrailResult(allowed=True)


# ── Output Guardrails ─────────────────────────────────────────────────

def check_output(response: str) -> GuardrailResult:
    """
    Validate a generated bot reply before it is shown to the human.
    """
    text = (response or "").strip()
    if not text:
        return GuardrailResult(allowed=False, reason="Empty reply.")

    if len(text) > MAX_REPLY_LENGTH:
        text = text[:MAX_REPLY_LENGTH].rstrip()

    resp_lower = text.lower()
    for indicator in _LEAK_INDICATORS:
        if indicator in resp_lower:
            logger.warning("Bot reply may reveal it is automated: %s", text[:100])
            break

    return GuardrailResult(allowed=True, modified_input=text)
