"""
Metrics Collection Module
Tracks fetch/parse health and task classification statistics
"""

import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict


@dataclass
class Metrics:
    """
    Collects operational metrics for one pipeline process.

    PATTERN RECOGNITION: This is the same shape web servers use for request
    counters: monotonically increasing counts plus a bounded window of timing
    samples, exported as a plain dict for logging.

    Messages are parsed on worker threads, so every mutation goes through
    the lock.
    """

    # Raw messages successfully downloaded from the provider
    messages_fetched: int = 0

    # Raw messages turned into ParsedEmail records
    messages_parsed: int = 0

    # Parsed emails per task type ("interview", "test", ...)
    task_types: Counter = field(default_factory=Counter)

    # Emails whose body could not be decoded and fell back to the snippet
    body_fallbacks: int = 0

    # Emails where no event date could be extracted
    event_date_misses: int = 0

    # Emails dropped by exclusion rules
    emails_excluded: int = 0

    # Errors by kind ("fetch", "parse", "auth")
    errors_count: Counter = field(default_factory=Counter)

    # SECURITY STORY: bounded deque so a long-running --watch loop cannot grow
    # memory without limit.
    cycle_time_ms: Deque[float] = field(default_factory=lambda: deque(maxlen=500))

    start_time: datetime = field(default_factory=datetime.now)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_fetched(self):
        """Record that one raw message was downloaded."""
        with self._lock:
            self.messages_fetched += 1

    def record_parsed(self, task_type: str, body_fallback: bool = False, has_event_date: bool = True):
        """
        Record the outcome of parsing one message.

        Args:
            task_type: Classified type value (e.g. "interview")
            body_fallback: True if the snippet had to stand in for the body
            has_event_date: False if no event date was extracted
        """
        with self._lock:
            self.messages_parsed += 1
            self.task_types[task_type] += 1
            if body_fallback:
                self.body_fallbacks += 1
            if not has_event_date:
                self.event_date_misses += 1

    def record_excluded(self, count: int = 1):
        with self._lock:
            self.emails_excluded += count

    def record_error(self, error_type: str):
        """
        Record that an error occurred.

        Args:
            error_type: Kind of error (e.g. "fetch", "auth")
        """
        with self._lock:
            self.errors_count[error_type] += 1

    def record_cycle_time(self, time_ms: float):
        with self._lock:
            self.cycle_time_ms.append(time_ms)

    def get_summary(self) -> Dict:
        """
        Get a summary of all metrics.

        Returns:
            Dictionary suitable for logging or export
        """
        with self._lock:
            stats = {}
            if self.cycle_time_ms:
                sorted_times = sorted(self.cycle_time_ms)
                n = len(sorted_times)
                stats = {
                    "avg_ms": sum(sorted_times) / n,
                    "min_ms": sorted_times[0],
                    "max_ms": sorted_times[-1],
                    "p50_ms": sorted_times[n // 2],
                }

            return {
                "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
                "messages_fetched": self.messages_fetched,
                "messages_parsed": self.messages_parsed,
                "task_types": dict(self.task_types),
                "body_fallbacks": self.body_fallbacks,
                "event_date_misses": self.event_date_misses,
                "emails_excluded": self.emails_excluded,
                "errors": dict(self.errors_count),
                "cycle_time_stats": stats,
            }
