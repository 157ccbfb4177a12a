# src/hotkeys/spam_guard.py
"""Cooldown guard against re-firing the same hotkey too quickly."""
import threading
import time


def monotonic_ms() -> int:
    """Milliseconds from the monotonic clock."""
    return time.monotonic_ns() // 1_000_000


class SpamGuard:
    """Tracks the last fire time per (preset id, side).

    A key that has never fired is always allowed. Check-and-record is one
    atomic step, so two rapid triggers cannot both pass.

    Attributes:
        cooldown_ms: Default cooldown window in milliseconds.
    """

    def __init__(self, cooldown_ms: int = 2000):
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must be >= 0")
        self.cooldown_ms = cooldown_ms
        self._last_fire: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def try_acquire(
        self,
        preset_id: str,
        side: str,
        now_ms: int | None = None,
        cooldown_ms: int | None = None,
    ) -> bool:
        """Record a fire and return True, or return False inside the cooldown.

        A rejected attempt leaves the recorded fire time untouched.

        Args:
            preset_id: Preset being fired.
            side: "buy" or "sell".
            now_ms: Current monotonic time in ms. Defaults to the clock.
            cooldown_ms: Override for the default cooldown.
        """
        now = monotonic_ms() if now_ms is None else now_ms
        cooldown = self.cooldown_ms if cooldown_ms is None else cooldown_ms
        key = (preset_id, side)

        with self._lock:
            last = self._last_fire.get(key)
            if last is not None and now - last < cooldown:
                return False
            self._last_fire[key] = now
            return True

    def remaining_ms(
        self,
        preset_id: str,
        side: str,
        now_ms: int | None = None,
        cooldown_ms: int | None = None,
    ) -> int:
        """Milliseconds until the key can fire again (0 if it can now)."""
        now = monotonic_ms() if now_ms is None else now_ms
        cooldown = self.cooldown_ms if cooldown_ms is None else cooldown_ms
        with self._lock:
            last = self._last_fire.get((preset_id, side))
        if last is None:
            return 0
        return max(0, cooldown - (now - last))
