import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[Exception], None]

class IntervalTimer:
    """Calls `callback` every `interval` seconds on the running event loop.

    The next call is scheduled only after the callback returns, so ticks never
    overlap. The callback may cancel its own timer. If the callback raises,
    the timer stops, logs the traceback and passes the error to `on_error`.
    """

    def __init__(self, interval: float, callback: Callable[[], None],
                 on_error: Optional[ErrorHandler] = None):
        self.interval = interval
        self.callback = callback
        self.on_error = on_error
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._running = False

    def start(self):
        self._loop = asyncio.get_running_loop()
        self._running = True
        self._schedule()

    def _schedule(self):
        self._handle = self._loop.call_later(self.interval, self._fire)

    def _fire(self):
        self._handle = None
        if not self._running:
            return
        try:
            self.callback()
        except Exception as e:
            self._running = False
            logger.exception("Timer callback failed, timer stopped")
            if self.on_error is not None:
                self.on_error(e)
            return
        if self._running:
            self._schedule()

    def cancel(self):
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def active(self) -> bool:
        return self._running

class ManualTimer:
    """Timer that only fires when told to; used for headless runs.

    A failing callback cancels the timer and reaches `on_error` like
    IntervalTimer, then propagates to the caller of `fire`.
    """

    def __init__(self, interval: float, callback: Callable[[], None],
                 on_error: Optional[ErrorHandler] = None):
        self.interval = interval
        self.callback = callback
        self.on_error = on_error
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def fire(self, times: int = 1):
        for _ in range(times):
            if not self.active:
                return
            try:
                self.callback()
            except Exception as e:
                self.cancel()
                if self.on_error is not None:
                    self.on_error(e)
                raise

    def cancel(self):
        self.cancelled = True

    @property
    def active(self) -> bool:
        return self.started and not self.cancelled
