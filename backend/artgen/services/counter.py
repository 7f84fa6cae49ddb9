"""Generation counter: a single-owner, lock-guarded tally of accepted generations.

Two durability tiers share one interface:

- ``GenerationCounter`` keeps everything in process memory.
- ``FileGenerationCounter`` loads its state at start-up and rewrites a JSON
  file after every increment. The read-modify-write runs under the counter's
  lock and the file is replaced atomically, so concurrent requests never lose
  an update. One process owns the file.
"""
import json
import logging
import os
import tempfile
import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from artgen.core.config import Settings
from artgen.models.generation import (
    CounterSnapshot,
    CounterStats,
    GenerationRecord,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_generation_number(number: int) -> str:
    """Display form of a generation number, e.g. ``#000042``."""
    return f"#{number:06d}"


class GenerationCounter:
    """In-memory generation counter with a bounded recent-requests log."""

    def __init__(self, recent_log_size: int = 1000, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        now = self._clock().isoformat()
        self._total = 0
        self._started_at = now
        self._last_generation = now
        self._recent: deque[GenerationRecord] = deque(maxlen=recent_log_size)

    def increment(
        self,
        fingerprint: str,
        prompt_hash: str,
        caller_hash: Optional[str] = None,
    ) -> int:
        """Register one accepted generation and return its number."""
        with self._lock:
            number = self._total + 1
            timestamp = self._clock().isoformat()
            record = GenerationRecord(
                generation_number=number,
                fingerprint=fingerprint,
                prompt_hash=prompt_hash,
                timestamp=timestamp,
                caller_hash=caller_hash,
            )
            previous_last = self._last_generation
            evicted = None
            if self._recent and len(self._recent) == self._recent.maxlen:
                evicted = self._recent[0]
            self._total = number
            self._last_generation = timestamp
            self._recent.append(record)
            try:
                self._persist()
            except Exception:
                # Roll back so memory never runs ahead of durable storage.
                self._total = number - 1
                self._last_generation = previous_last
                if self._recent and self._recent[-1] is record:
                    self._recent.pop()
                if evicted is not None:
                    self._recent.appendleft(evicted)
                raise
        logger.info(
            "Generation %s registered",
            format_generation_number(number),
            extra={"service": "GenerationCounter", "fingerprint": fingerprint},
        )
        return number

    def read(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                total_generated=self._total,
                last_generation=self._last_generation,
                started_at=self._started_at,
            )

    def recent(self) -> list[GenerationRecord]:
        """Copy of the recent-requests log, oldest first."""
        with self._lock:
            return list(self._recent)

    def verify(self, generation_number: int, fingerprint: str) -> bool:
        """Whether the recent log holds this generation with this fingerprint."""
        return any(
            record.generation_number == generation_number and record.fingerprint == fingerprint
            for record in self.recent()
        )

    def stats(self) -> CounterStats:
        """Totals plus per-day average and trailing 24-hour count."""
        snapshot = self.read()
        now = self._clock()
        started = datetime.fromisoformat(snapshot.started_at)
        days_running = max(1, (now - started).days)
        day_ago = now - timedelta(days=1)
        last_24h = sum(
            1 for record in self.recent() if datetime.fromisoformat(record.timestamp) > day_ago
        )
        return CounterStats(
            total_generated=snapshot.total_generated,
            average_per_day=round(snapshot.total_generated / days_running),
            last_24_hours=last_24h,
            started_at=snapshot.started_at,
            last_generation=snapshot.last_generation,
        )

    def _persist(self) -> None:
        """Durability hook, called with the lock held."""


class FileGenerationCounter(GenerationCounter):
    """Generation counter backed by a JSON file."""

    def __init__(
        self,
        path: Path,
        recent_log_size: int = 1000,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(recent_log_size=recent_log_size, clock=clock)
        self.path = Path(path)
        if self.path.exists():
            self._load()
            logger.info("Loaded generation counter from %s (total=%d)", self.path, self._total)
        else:
            with self._lock:
                self._persist()

    def _load(self) -> None:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        with self._lock:
            self._total = int(data["total_generated"])
            self._started_at = data["started_at"]
            self._last_generation = data["last_generation"]
            self._recent.clear()
            self._recent.extend(GenerationRecord(**item) for item in data.get("recent", []))

    def _persist(self) -> None:
        payload = {
            "total_generated": self._total,
            "last_generation": self._last_generation,
            "started_at": self._started_at,
            "recent": [record.model_dump() for record in self._recent],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def create_counter(settings: Settings, clock: Optional[Clock] = None) -> GenerationCounter:
    """Build the counter tier selected by ``settings.counter_backend``."""
    if settings.counter_backend == "file":
        return FileGenerationCounter(
            Path(settings.counter_path),
            recent_log_size=settings.recent_log_size,
            clock=clock,
        )
    return GenerationCounter(recent_log_size=settings.recent_log_size, clock=clock)
