"""
Copyright 2024 Job Application Helper Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Trailing-edge debouncing for search and filter input.

Each call restarts the quiet window and replaces the pending arguments, so
a burst of keystrokes produces one backend call with the final value.
"""

import threading
from typing import Any, Callable, Optional, Tuple

from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _thread_timer(interval: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class Debouncer:
    """Delay ``fn`` until ``wait_seconds`` pass without another call."""

    def __init__(
        self,
        fn: Callable[..., Any],
        wait_seconds: float,
        timer_factory: Optional[TimerFactory] = None,
        name: str = "debounce",
    ):
        self.fn = fn
        self.wait_seconds = wait_seconds
        self.name = name
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._timer = None
        self._pending: Optional[Tuple[tuple, dict]] = None
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._closed:
                logger.debug(f"{self.name}: call after teardown ignored")
                return
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = self._timer_factory(self.wait_seconds, self._fire)
            self._timer.start()

    def _take_pending(self) -> Optional[Tuple[tuple, dict]]:
        with self._lock:
            pending, self._pending = self._pending, None
            self._timer = None
            return pending

    def _fire(self) -> None:
        pending = self._take_pending()
        if pending is None:
            return
        args, kwargs = pending
        try:
            self.fn(*args, **kwargs)
        except Exception as e:
            # timer threads have no caller to report to
            logger.error(f"❌ {self.name}: debounced call failed: {e}")

    def flush(self) -> Any:
        """Run the pending call now, in the caller's thread."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        pending = self._take_pending()
        if pending is None:
            return None
        args, kwargs = pending
        return self.fn(*args, **kwargs)

    def cancel(self) -> None:
        """Drop any pending call."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def close(self) -> None:
        """Cancel and refuse further calls (component teardown)."""
        self.cancel()
        with self._lock:
            self._closed = True
