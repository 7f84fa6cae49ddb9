"""Shared test fixtures and configuration."""
from collections.abc import Iterator
from pathlib import Path

import pytest

from artgen.core.config import get_settings


@pytest.fixture(autouse=True)
def set_required_env_vars(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point storage settings at a temporary directory for every test."""
    monkeypatch.setenv("COUNTER_BACKEND", "memory")
    monkeypatch.setenv("ARTWORKS_DIR", str(tmp_path / "artworks"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
