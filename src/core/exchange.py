"""In-memory exchange store correlating published albums with their forwards.

A record is written once, right after an album is published in a channel,
and read once when Telegram auto-forwards that album's first message to the
linked discussion group. Records live in process memory only.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from core.models import MediaItem

LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "key/"


@dataclass(frozen=True)
class ExchangeKey:
    """Address of one in-flight correlation: (channel id, album message id)."""

    thread_id: int
    message_id: int

    def encode(self) -> str:
        return f"{KEY_PREFIX}{self.thread_id}/{self.message_id}"

    @classmethod
    def decode(cls, raw: str) -> "ExchangeKey":
        if not raw.startswith(KEY_PREFIX):
            raise ValueError(f"Not an exchange key: {raw!r}")
        thread_part, sep, message_part = raw[len(KEY_PREFIX):].partition("/")
        if not sep:
            raise ValueError(f"Not an exchange key: {raw!r}")
        return cls(thread_id=int(thread_part), message_id=int(message_part))

    def __str__(self) -> str:
        return self.encode()


class RecordState(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"


@dataclass
class ExchangeRecord:
    """Everything the discussion-group republish needs from the first publish."""

    platform: str
    content_id: str
    author_name: str
    media: List[MediaItem]
    source_urls: List[str]
    state: RecordState = RecordState.PENDING
    created_at: float = field(default_factory=time.monotonic)

    @property
    def processing(self) -> bool:
        return self.state is RecordState.PROCESSING

    def release_media(self) -> None:
        for item in self.media:
            item.release()


class ExchangeStore:
    """Typed, lock-guarded mapping from ExchangeKey to ExchangeRecord."""

    def __init__(self, ttl_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._records: Dict[ExchangeKey, ExchangeRecord] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def assign(self, key: ExchangeKey, record: ExchangeRecord) -> None:
        """Insert the whole record in one step, replacing any previous one."""

        record.created_at = self._clock()
        with self._lock:
            self._records[key] = record

    def load(self, key: ExchangeKey) -> Optional[ExchangeRecord]:
        with self._lock:
            return self._records.get(key)

    def cleanup(self, key: ExchangeKey) -> None:
        """Remove the record for ``key``; missing keys are ignored."""

        with self._lock:
            self._records.pop(key, None)

    def claim(self, key: ExchangeKey) -> Optional[ExchangeRecord]:
        """Atomically move a record from PENDING to PROCESSING.

        Returns the record to exactly one caller; every other caller (and any
        caller for a missing key) gets ``None``.
        """

        with self._lock:
            record = self._records.get(key)
            if record is None or record.state is not RecordState.PENDING:
                return None
            record.state = RecordState.PROCESSING
            return record

    async def wait_for(
        self,
        key: ExchangeKey,
        timeout: float,
        poll_interval: float,
    ) -> Optional[ExchangeRecord]:
        """Poll for ``key`` until it appears or ``timeout`` seconds pass."""

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            record = self.load(key)
            if record is not None:
                return record
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(poll_interval, remaining))

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop pending records older than the TTL and return how many were removed.

        Records already claimed are left to the handler working on them.
        """

        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                key
                for key, record in self._records.items()
                if record.state is RecordState.PENDING and now - record.created_at >= self._ttl
            ]
            for key in expired:
                self._records.pop(key).release_media()
        return len(expired)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep forever; meant to run as a background task."""

        while True:
            await asyncio.sleep(interval)
            removed = self.sweep()
            if removed:
                LOGGER.info("Exchange sweep removed %s expired records", removed)
