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
Shared fixtures: settings pointing at a temp directory, a manual timer
factory for debounced calls, and a mocked backend client.
"""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.models import UserContext
from hiring_console.utils.config import Settings


class ManualTimer:
    """Stands in for threading.Timer; fires only when told to."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.callback()


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in list(self.live):
            timer.fire()


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def settings(temp_dir):
    return Settings(
        environment="development",
        data_dir=temp_dir,
        backend_url="http://backend.test/",
        backend_anon_key="anon-key",
        encryption_key=None,
        enable_encryption=False,
        search_debounce_ms=300,
        filter_debounce_ms=500,
        candidates_page_size=50,
        jobs_page_size=30,
        _env_file=None,
    )


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def backend():
    return Mock(spec=BackendClient)


@pytest.fixture
def admin_context():
    return UserContext(user_id="user-1", organization_id="org-1", roles=["admin"])


@pytest.fixture
def ta_context():
    return UserContext(user_id="user-2", organization_id="org-1", roles=["ta"])
