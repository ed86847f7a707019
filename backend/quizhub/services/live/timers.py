import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation handle for one scheduled single-shot job."""

    def __init__(self, key: str, delay: float):
        self.key = key
        self.delay = delay
        self.deadline = time.time() + delay
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        return f"<TimerHandle {self.key} delay={self.delay} cancelled={self.cancelled} fired={self.fired}>"


class BackgroundTimerService:
    """Runs single-shot timers as Socket.IO background tasks.

    - No-ops (but still hands out a handle) when disabled, e.g. in TESTING
    - Cancelled handles never invoke their callback
    - Optional heartbeat logs while a timer is pending
    """

    def __init__(self, socketio, enabled: bool = True, heartbeat_sec: int = 0):
        self.socketio = socketio
        self.enabled = enabled
        self.heartbeat_sec = heartbeat_sec

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any, key: str = '') -> TimerHandle:
        handle = TimerHandle(key, delay)
        if not self.enabled:
            logger.info(f"[timer-skip] {key} scheduler disabled")
            return handle
        logger.info(f"[timer-set] {key} duration={delay}s deadline={handle.deadline:.3f}")
        self.socketio.start_background_task(self._worker, handle, callback, args)
        return handle

    def sleep(self, seconds: float) -> None:
        if seconds and seconds > 0:
            self.socketio.sleep(seconds)

    def _worker(self, handle: TimerHandle, callback: Callable[..., Any], args: tuple) -> None:
        step: Optional[float] = self.heartbeat_sec if self.heartbeat_sec and self.heartbeat_sec > 0 else None
        slept = 0.0
        while slept < handle.delay and not handle.cancelled:
            chunk = min(step, handle.delay - slept) if step else handle.delay - slept
            self.socketio.sleep(chunk)
            slept += chunk
            if step and not handle.cancelled:
                logger.info(f"[timer-heartbeat] {handle.key} remaining={max(0.0, handle.delay - slept)}s")
        if handle.cancelled:
            logger.info(f"[timer-cancelled] {handle.key}")
            return
        handle.fired = True
        logger.info(f"[timer-fire] {handle.key}")
        callback(*args)
