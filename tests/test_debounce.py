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
Tests for debounced calls.
"""

import threading
from unittest.mock import Mock

from hiring_console.core.debounce import Debouncer


class TestDebouncer:
    """Test trailing-edge debouncing."""

    def test_burst_runs_once_with_last_arguments(self, timers):
        fn = Mock()
        debounced = Debouncer(fn, 0.3, timer_factory=timers)

        debounced("a")
        debounced("ab")
        debounced("abc")
        timers.fire_all()

        fn.assert_called_once_with("abc")
        assert not debounced.pending

    def test_each_call_restarts_the_window(self, timers):
        debounced = Debouncer(Mock(), 0.5, timer_factory=timers)

        debounced(1)
        debounced(2)

        assert len(timers.timers) == 2
        assert timers.timers[0].cancelled
        assert len(timers.live) == 1
        assert timers.live[0].interval == 0.5

    def test_cancelled_timer_does_not_run(self, timers):
        fn = Mock()
        debounced = Debouncer(fn, 0.3, timer_factory=timers)

        debounced("x")
        debounced.cancel()
        for timer in timers.timers:
            timer.callback()

        fn.assert_not_called()

    def test_flush_runs_pending_call_now(self, timers):
        fn = Mock(return_value="done")
        debounced = Debouncer(fn, 0.3, timer_factory=timers)

        debounced("term")
        result = debounced.flush()

        assert result == "done"
        fn.assert_called_once_with("term")
        assert timers.live == []

    def test_flush_without_pending_call(self, timers):
        fn = Mock()

        assert Debouncer(fn, 0.3, timer_factory=timers).flush() is None
        fn.assert_not_called()

    def test_close_refuses_later_calls(self, timers):
        fn = Mock()
        debounced = Debouncer(fn, 0.3, timer_factory=timers)

        debounced("before")
        debounced.close()
        debounced("after")
        timers.fire_all()

        fn.assert_not_called()
        assert not debounced.pending

    def test_failure_in_timer_is_logged(self, timers):
        fn = Mock(side_effect=RuntimeError("backend down"))
        debounced = Debouncer(fn, 0.3, timer_factory=timers)

        debounced("x")
        timers.fire_all()

        fn.assert_called_once()

    def test_real_timer_fires(self):
        fired = threading.Event()
        debounced = Debouncer(lambda: fired.set(), 0.01)

        debounced()

        assert fired.wait(2.0)
