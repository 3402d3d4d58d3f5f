"""
=============================================================================
SLIDING-WINDOW RATE LIMITER
=============================================================================

Gates every request by client address before it is parsed or routed.

=============================================================================
ALGORITHM
=============================================================================

Each client owns a window of request timestamps (milliseconds, oldest
first) and an optional ban deadline.

    admit("10.0.0.7", now)
        │
        ├── append now
        ├── drop timestamps < now - 1000      (prefix trim, list is sorted)
        ├── len(window) > threshold?  ──yes──► banned_until = now + ban
        │
        └── banned_until > now?  ──yes──► DENY (429)
                                 ──no───► ALLOW

    threshold = 20, ban = 5 min

    t=0ms ... t=900ms   21 requests  → 21st request sets the ban
    t=901ms             1 request    → denied (window may be short,
                                       the ban still dominates)
    t=5min+900ms        1 request    → allowed again

The ban is decoupled from the window. Dropping below the threshold does
not lift it; only time does.

=============================================================================
CONCURRENCY
=============================================================================

    _lock            guards the client map (get-or-create, sweep)
    window.lock      guards one client's append + prune + ban check

Two requests from one address are serialized on that window's lock.
Requests from different addresses never share a lock past the map
lookup.

=============================================================================
MEMORY
=============================================================================

With idle_ttl set, a sweep runs at most every sweep_interval seconds
and drops windows whose newest timestamp is older than the TTL. Windows
still serving a ban are kept. idle_ttl=None keeps every window for the
life of the process.

=============================================================================
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional


logger = logging.getLogger(__name__)

WINDOW_MS = 1000


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class RequestWindow:
    """Request timestamps and ban deadline for one client."""

    timestamps: Deque[float] = field(default_factory=deque)
    banned_until: Optional[float] = None
    last_seen: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def is_banned(self, now: float) -> bool:
        return self.banned_until is not None and self.banned_until > now


class RateLimiter:
    """
    Per-client sliding-window admission control.

    Usage:
        limiter = RateLimiter(max_requests_per_second=20, ban_minutes=5)

        if not limiter.admit(request_ip):
            send 429 with Retry-After: limiter.retry_after_seconds
    """

    def __init__(
        self,
        max_requests_per_second: int = 20,
        ban_minutes: float = 5,
        idle_ttl_seconds: Optional[float] = 600.0,
        sweep_interval_seconds: float = 60.0,
    ):
        self.max_requests_per_second = max_requests_per_second
        self.ban_minutes = ban_minutes
        self.idle_ttl_seconds = idle_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds

        self._windows: Dict[str, RequestWindow] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    @property
    def ban_ms(self) -> float:
        return self.ban_minutes * 60 * 1000

    @property
    def retry_after_seconds(self) -> int:
        """Value for the Retry-After header of a denied request."""
        return int(self.ban_minutes * 60)

    def admit(self, client_id: str, now_ms: Optional[float] = None) -> bool:
        """
        Record a request from ``client_id`` and decide whether to serve it.

        Args:
            client_id: Client identity, normally the remote IP address.
            now_ms: Current time in milliseconds. Defaults to a monotonic
                clock; tests pass explicit values.

        Returns:
            True if the request is allowed, False if the client is banned.
        """
        now = _now_ms() if now_ms is None else now_ms
        window = self._get_window(client_id, now)

        with window.lock:
            window.timestamps.append(now)

            cutoff = now - WINDOW_MS
            while window.timestamps and window.timestamps[0] < cutoff:
                window.timestamps.popleft()

            if len(window.timestamps) > self.max_requests_per_second:
                if not window.is_banned(now):
                    logger.warning(
                        f"access denied to {client_id} for spamming: "
                        f"{len(window.timestamps)} requests in {WINDOW_MS}ms, "
                        f"banned for {self.ban_minutes} minutes"
                    )
                window.banned_until = now + self.ban_ms

            if window.is_banned(now):
                logger.debug(f"Rejecting {client_id}: banned")
                return False

        return True

    def is_banned(self, client_id: str, now_ms: Optional[float] = None) -> bool:
        """Check a client's ban without recording a request."""
        now = _now_ms() if now_ms is None else now_ms
        window = self._windows.get(client_id)
        return window is not None and window.is_banned(now)

    def _get_window(self, client_id: str, now: float) -> RequestWindow:
        with self._lock:
            if self.idle_ttl_seconds is not None:
                if self._last_sweep is None:
                    self._last_sweep = now
                elif now - self._last_sweep >= self.sweep_interval_seconds * 1000:
                    self._sweep(now)

            window = self._windows.get(client_id)
            if window is None:
                window = RequestWindow()
                self._windows[client_id] = window
            # Marked while _lock is held so a concurrent sweep keeps it.
            window.last_seen = now
            return window

    def _sweep(self, now: float) -> None:
        """Drop idle, unbanned windows. Caller holds _lock."""
        idle_before = now - self.idle_ttl_seconds * 1000
        expired = [
            key for key, window in self._windows.items()
            if window.last_seen < idle_before and not window.is_banned(now)
        ]
        for key in expired:
            del self._windows[key]

        self._last_sweep = now
        if expired:
            logger.debug(f"Evicted {len(expired)} idle rate limit windows")

    def reset(self, client_id: Optional[str] = None) -> None:
        """
        Forget one client's window (lifting its ban), or every window.
        """
        with self._lock:
            if client_id is None:
                self._windows.clear()
            else:
                self._windows.pop(client_id, None)

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._windows


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# RateLimiter.admit() appends, prunes and checks under a per-client lock.
# A window over the threshold starts a ban that outlives the window.
# Idle windows are swept when idle_ttl_seconds is set.
# =============================================================================
