"""Request gatekeeper: prompt validation and per-caller sliding-window quota."""
import logging
import math
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import NamedTuple, Optional

from artgen.core.config import Settings
from artgen.services.errors import PromptRejectedError, RateLimitExceededError
from artgen.services.randomness import hash_hex
from artgen.services.security import PromptPolicy, detect_bot, validate_prompt

logger = logging.getLogger(__name__)

UNKNOWN_CALLER = "unknown"


class RateLimiter:
    """Sliding-window limiter: at most ``limit`` admissions per caller per window.

    Callers with no admission left inside the window are dropped from the
    map. A full sweep runs at most once per window, so the map holds only
    callers seen during roughly the last two windows.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._admissions: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    @property
    def tracked_callers(self) -> int:
        with self._lock:
            return len(self._admissions)

    def _prune(self, caller: str, now: float) -> deque[float]:
        """Drop expired stamps for ``caller``; forget the caller once empty."""
        stamps = self._admissions.get(caller)
        if stamps is None:
            return deque()
        cutoff = now - self.window_seconds
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()
        if not stamps:
            del self._admissions[caller]
        return stamps

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        for caller in list(self._admissions):
            self._prune(caller, now)
        self._last_sweep = now

    def acquire(self, caller: str) -> float:
        """Record an admission for ``caller`` and return its timestamp.

        Raises:
            RateLimitExceededError: The caller already has ``limit`` admissions
                inside the trailing window.
        """
        with self._lock:
            now = self._clock()
            self._sweep(now)
            stamps = self._prune(caller, now)
            if len(stamps) >= self.limit:
                retry_after = max(1, math.ceil(stamps[0] + self.window_seconds - now))
                raise RateLimitExceededError(
                    retry_after=retry_after,
                    limit=self.limit,
                    window_seconds=int(self.window_seconds),
                )
            stamps.append(now)
            self._admissions[caller] = stamps
            return now

    def release(self, caller: str, stamp: float) -> None:
        """Give back an admission whose request did not complete."""
        with self._lock:
            stamps = self._admissions.get(caller)
            if stamps and stamp in stamps:
                stamps.remove(stamp)
                if not stamps:
                    del self._admissions[caller]

    def remaining(self, caller: str) -> int:
        with self._lock:
            stamps = self._prune(caller, self._clock())
            return max(0, self.limit - len(stamps))


class Admission(NamedTuple):
    """Proof that a request passed the gatekeeper."""

    caller_hash: str
    stamp: float


class Gatekeeper:
    """Validates prompts and enforces the per-caller generation quota."""

    def __init__(
        self,
        policy: Optional[PromptPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        reject_bots: bool = False,
        hash_algorithm: str = "rolling",
    ) -> None:
        self.policy = policy or PromptPolicy()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.reject_bots = reject_bots
        self.hash_algorithm = hash_algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "Gatekeeper":
        return cls(
            policy=PromptPolicy.from_settings(settings),
            rate_limiter=RateLimiter(
                limit=settings.rate_limit_per_window,
                window_seconds=settings.rate_limit_window_seconds,
            ),
            reject_bots=settings.reject_bot_user_agents,
            hash_algorithm=settings.fingerprint_algorithm,
        )

    def hash_caller(self, caller_id: Optional[str]) -> str:
        """Hash a network address so it is never stored in clear."""
        return hash_hex(caller_id or UNKNOWN_CALLER, self.hash_algorithm)

    def check_prompt(self, prompt: str) -> None:
        """Raise ``PromptRejectedError`` with the first failing reason."""
        result = validate_prompt(prompt, self.policy)
        if not result.valid:
            logger.info(
                "Prompt rejected: %s",
                result.reason,
                extra={"service": "Gatekeeper", "reason": result.reason},
            )
            raise PromptRejectedError(result.reason or "Invalid prompt")

    def admit(
        self,
        prompt: str,
        caller_id: Optional[str],
        user_agent: Optional[str] = None,
    ) -> Admission:
        """Validate the prompt, screen the caller, then take one quota slot.

        Raises:
            PromptRejectedError: Invalid prompt or rejected user agent.
            RateLimitExceededError: Quota exhausted for this caller.
        """
        self.check_prompt(prompt)
        if self.reject_bots and detect_bot(user_agent):
            logger.info("Bot user agent rejected: %r", user_agent, extra={"service": "Gatekeeper"})
            raise PromptRejectedError("Automated clients are not allowed")

        caller_hash = self.hash_caller(caller_id)
        try:
            stamp = self.rate_limiter.acquire(caller_hash)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for caller %s (retry after %ds)",
                caller_hash,
                exc.retry_after,
                extra={"service": "Gatekeeper", "caller_hash": caller_hash},
            )
            raise
        return Admission(caller_hash=caller_hash, stamp=stamp)

    def release(self, admission: Admission) -> None:
        self.rate_limiter.release(admission.caller_hash, admission.stamp)
