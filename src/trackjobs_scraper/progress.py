import asyncio
import logging
import threading

from trackjobs_scraper.models import PROGRESS_FAILED, ProgressState

logger = logging.getLogger(__name__)


class ProgressRegistry:
    """
    Run-token -> ProgressState map shared by running scrapes (writers) and
    poll handlers (readers), possibly on different threads.

    States are immutable snapshots swapped in under a lock, so a reader always
    sees one complete state. Finished entries are purged by a cancellable
    timer on the event loop; call close() to cancel pending timers and drop
    everything.
    """

    def __init__(self) -> None:
        self._states: dict[str, ProgressState] = {}
        self._cleanups: dict[str, asyncio.TimerHandle] = {}
        self._lock = threading.Lock()

    def start(self, token: str, status: str = "Starting scrape...") -> ProgressState:
        state = ProgressState(percent_complete=0, status=status)
        self.update_full(token, state)
        return state

    def update(self, token: str, percent: int, status: str) -> ProgressState:
        """Change percent and status, keeping the other fields of the current state."""
        with self._lock:
            current = self._states.get(token) or ProgressState()
            state = current.model_copy(update={"percent_complete": percent, "status": status})
            self._states[token] = state
        return state

    def update_full(self, token: str, state: ProgressState) -> None:
        with self._lock:
            self._states[token] = state

    def fail(self, token: str, message: str) -> ProgressState:
        return self.update(token, PROGRESS_FAILED, message)

    def get(self, token: str) -> ProgressState:
        """Current state, or the synthetic not-found state for unknown/purged tokens."""
        with self._lock:
            return self._states.get(token) or ProgressState.not_found()

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def remove(self, token: str) -> None:
        with self._lock:
            self._states.pop(token, None)
            handle = self._cleanups.pop(token, None)
        if handle is not None:
            handle.cancel()

    def schedule_cleanup(self, token: str, delay: float) -> asyncio.TimerHandle:
        """
        Purge `token` after `delay` seconds. Must be called from the event loop
        thread; rescheduling replaces any pending cleanup for the same token.
        """
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay, self._expire, token)
        with self._lock:
            previous = self._cleanups.pop(token, None)
            self._cleanups[token] = handle
        if previous is not None:
            previous.cancel()
        logger.debug(f"Progress for {token} will be purged in {delay}s")
        return handle

    def cancel_cleanup(self, token: str) -> bool:
        with self._lock:
            handle = self._cleanups.pop(token, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def _expire(self, token: str) -> None:
        with self._lock:
            self._cleanups.pop(token, None)
            self._states.pop(token, None)
        logger.debug(f"Purged progress for {token}")

    def close(self) -> None:
        """Cancel every pending cleanup and forget all states."""
        with self._lock:
            handles = list(self._cleanups.values())
            self._cleanups.clear()
            self._states.clear()
        for handle in handles:
            handle.cancel()
