"""Prompt validation, sanitizing and caller screening."""
import re
from typing import Optional

from pydantic import BaseModel

from artgen.core.config import Settings

SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"https?://", re.IGNORECASE),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"onclick", re.IGNORECASE),
    re.compile(r"onerror", re.IGNORECASE),
    re.compile(r"eval\(", re.IGNORECASE),
)

BOT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(word, re.IGNORECASE)
    for word in ("bot", "crawl", "spider", "slurp", "scrape", "curl", "wget")
)


class ValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None


class PromptPolicy(BaseModel):
    """Heuristic thresholds applied to incoming prompts."""

    min_length: int = 3
    max_length: int = 500
    max_repeated_chars: int = 10
    min_alpha_ratio: float = 0.3
    min_words: int = 2

    @classmethod
    def from_settings(cls, settings: Settings) -> "PromptPolicy":
        return cls(
            min_length=settings.min_prompt_length,
            max_length=settings.max_prompt_length,
            max_repeated_chars=settings.max_repeated_chars,
            min_alpha_ratio=settings.min_alpha_ratio,
            min_words=settings.min_words,
        )


def validate_prompt(prompt: str, policy: Optional[PromptPolicy] = None) -> ValidationResult:
    """Run the prompt checks in order and report the first failure.

    Order: empty, length, suspicious content, alphabetic ratio, word count.
    """
    policy = policy or PromptPolicy()
    text = (prompt or "").strip()

    if not text:
        return ValidationResult(valid=False, reason="Prompt cannot be empty")
    if len(text) < policy.min_length:
        return ValidationResult(
            valid=False,
            reason=f"Prompt too short (minimum {policy.min_length} characters)",
        )
    if len(text) > policy.max_length:
        return ValidationResult(
            valid=False,
            reason=f"Prompt too long (maximum {policy.max_length} characters)",
        )

    repeated = re.compile(rf"(.)\1{{{policy.max_repeated_chars},}}")
    if repeated.search(text) or any(p.search(text) for p in SUSPICIOUS_PATTERNS):
        return ValidationResult(valid=False, reason="Prompt contains suspicious content")

    alpha_count = sum(1 for ch in text if ch.isalpha())
    if alpha_count / len(text) < policy.min_alpha_ratio:
        return ValidationResult(valid=False, reason="Prompt must contain meaningful text")

    if len(text.split()) < policy.min_words:
        return ValidationResult(
            valid=False,
            reason='Prompt should describe the artwork (e.g., "serene portrait in blue tones")',
        )

    return ValidationResult(valid=True)


def sanitize_prompt(prompt: str, max_length: int = 500) -> str:
    """Trim, drop angle brackets, collapse whitespace and cap the length."""
    text = prompt.strip().replace("<", "").replace(">", "")
    return re.sub(r"\s+", " ", text)[:max_length]


def detect_bot(user_agent: Optional[str]) -> bool:
    """True for a missing user agent or one matching a known crawler pattern."""
    if not user_agent:
        return True
    return any(pattern.search(user_agent) for pattern in BOT_PATTERNS)
