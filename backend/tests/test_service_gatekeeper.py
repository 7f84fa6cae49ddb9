"""Tests for the sliding-window rate limiter and the request gatekeeper."""
import pytest

from artgen.core.config import Settings
from artgen.services.errors import PromptRejectedError, RateLimitExceededError
from artgen.services.gatekeeper import Gatekeeper, RateLimiter
from artgen.services.randomness import hash_hex
from conftest import FakeClock

PROMPT = "serene portrait in blue tones"


@pytest.fixture
def limiter(fake_clock: FakeClock) -> RateLimiter:
    return RateLimiter(limit=10, window_seconds=3600, clock=fake_clock)


@pytest.fixture
def gatekeeper(limiter: RateLimiter) -> Gatekeeper:
    return Gatekeeper(rate_limiter=limiter)


class TestRateLimiter:
    def test_eleventh_request_rejected(self, limiter: RateLimiter, fake_clock: FakeClock) -> None:
        for _ in range(10):
            limiter.acquire("caller")
            fake_clock.advance(1)
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire("caller")
        assert exc_info.value.limit == 10
        assert exc_info.value.window_seconds == 3600

    def test_retry_after_points_at_oldest_expiry(
        self, limiter: RateLimiter, fake_clock: FakeClock
    ) -> None:
        for _ in range(10):
            limiter.acquire("caller")
        fake_clock.advance(600)
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire("caller")
        assert exc_info.value.retry_after == 3000

    def test_window_slides(self, limiter: RateLimiter, fake_clock: FakeClock) -> None:
        """Once the oldest admission leaves the window a slot opens up."""
        for _ in range(10):
            limiter.acquire("caller")
            fake_clock.advance(60)
        fake_clock.now = 3600
        limiter.acquire("caller")
        with pytest.raises(RateLimitExceededError):
            limiter.acquire("caller")

    def test_callers_are_independent(self, limiter: RateLimiter) -> None:
        for _ in range(10):
            limiter.acquire("a")
        limiter.acquire("b")
        assert limiter.remaining("b") == 9

    def test_remaining(self, limiter: RateLimiter, fake_clock: FakeClock) -> None:
        assert limiter.remaining("new") == 10
        limiter.acquire("new")
        assert limiter.remaining("new") == 9
        fake_clock.advance(3600)
        assert limiter.remaining("new") == 10

    def test_release_returns_slot(self, limiter: RateLimiter) -> None:
        stamps = [limiter.acquire("caller") for _ in range(10)]
        limiter.release("caller", stamps[-1])
        limiter.acquire("caller")

    def test_release_unknown_is_noop(self, limiter: RateLimiter) -> None:
        limiter.release("nobody", 0.0)
        assert limiter.remaining("nobody") == 10

    def test_expired_callers_are_forgotten(self, fake_clock: FakeClock) -> None:
        """Callers whose admissions all left the window are dropped from the map."""
        limiter = RateLimiter(limit=10, window_seconds=60, clock=fake_clock)
        for i in range(5000):
            limiter.acquire(f"caller-{i}")
        assert limiter.tracked_callers == 5000
        fake_clock.advance(10000)
        limiter.acquire("latecomer")
        assert limiter.tracked_callers == 1

    def test_remaining_forgets_expired_caller(
        self, limiter: RateLimiter, fake_clock: FakeClock
    ) -> None:
        limiter.acquire("caller")
        fake_clock.advance(3600)
        assert limiter.remaining("caller") == 10
        assert limiter.tracked_callers == 0

    def test_release_of_last_admission_forgets_caller(self, limiter: RateLimiter) -> None:
        stamp = limiter.acquire("caller")
        limiter.release("caller", stamp)
        assert limiter.tracked_callers == 0

    def test_unknown_caller_lookup_does_not_track(self, limiter: RateLimiter) -> None:
        limiter.remaining("nobody")
        assert limiter.tracked_callers == 0


class TestGatekeeper:
    def test_admit_returns_hashed_caller(self, gatekeeper: Gatekeeper) -> None:
        admission = gatekeeper.admit(PROMPT, "203.0.113.7")
        assert admission.caller_hash == hash_hex("203.0.113.7")
        assert "203.0.113.7" not in admission.caller_hash

    def test_missing_caller_shares_unknown_bucket(self, gatekeeper: Gatekeeper) -> None:
        assert gatekeeper.admit(PROMPT, None).caller_hash == hash_hex("unknown")

    def test_invalid_prompt_rejected(self, gatekeeper: Gatekeeper) -> None:
        with pytest.raises(PromptRejectedError) as exc_info:
            gatekeeper.admit("ab", "203.0.113.7")
        assert "too short" in exc_info.value.reason

    def test_invalid_prompt_does_not_consume_quota(
        self, gatekeeper: Gatekeeper, limiter: RateLimiter
    ) -> None:
        for _ in range(20):
            with pytest.raises(PromptRejectedError):
                gatekeeper.admit("", "203.0.113.7")
        assert limiter.remaining(hash_hex("203.0.113.7")) == 10

    def test_quota_enforced(self, gatekeeper: Gatekeeper) -> None:
        for _ in range(10):
            gatekeeper.admit(PROMPT, "203.0.113.7")
        with pytest.raises(RateLimitExceededError):
            gatekeeper.admit(PROMPT, "203.0.113.7")

    def test_validation_runs_before_quota(self, gatekeeper: Gatekeeper) -> None:
        """An exhausted caller with a bad prompt still gets the validation error."""
        for _ in range(10):
            gatekeeper.admit(PROMPT, "203.0.113.7")
        with pytest.raises(PromptRejectedError):
            gatekeeper.admit("x", "203.0.113.7")

    def test_release(self, gatekeeper: Gatekeeper) -> None:
        admissions = [gatekeeper.admit(PROMPT, "203.0.113.7") for _ in range(10)]
        gatekeeper.release(admissions[0])
        gatekeeper.admit(PROMPT, "203.0.113.7")

    def test_bots_allowed_by_default(self, gatekeeper: Gatekeeper) -> None:
        gatekeeper.admit(PROMPT, "203.0.113.7", user_agent="curl/8.0")

    def test_bots_rejected_when_enabled(self, limiter: RateLimiter) -> None:
        gatekeeper = Gatekeeper(rate_limiter=limiter, reject_bots=True)
        with pytest.raises(PromptRejectedError):
            gatekeeper.admit(PROMPT, "203.0.113.7", user_agent="curl/8.0")
        assert limiter.remaining(hash_hex("203.0.113.7")) == 10

    def test_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,
            rate_limit_per_window=2,
            rate_limit_window_seconds=60,
            fingerprint_algorithm="sha256",
        )
        gatekeeper = Gatekeeper.from_settings(settings)
        assert gatekeeper.rate_limiter.limit == 2
        assert gatekeeper.rate_limiter.window_seconds == 60
        assert len(gatekeeper.hash_caller("203.0.113.7")) == 64
