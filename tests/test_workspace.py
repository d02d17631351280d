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
Tests for per-session workspaces and the workspace registry.
"""

from unittest.mock import Mock

import pytest

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.workspace import Workspace, WorkspaceRegistry


@pytest.fixture
def registry(settings, timers):
    backend = Mock(spec=BackendClient)
    backend.for_token.side_effect = lambda token: Mock(spec=BackendClient, access_token=token)
    return WorkspaceRegistry(backend=backend, settings=settings, timer_factory=timers)


class TestWorkspace:
    """Test a single session's stores."""

    def test_stores_share_the_auth_context(self, backend, settings, timers):
        workspace = Workspace(backend, settings=settings, timer_factory=timers)
        workspace.auth.user = {"id": "user-1"}
        workspace.auth.organization = {"id": "org-1"}
        workspace.auth.is_authenticated = True

        context = workspace.candidates.context_provider()

        assert context.user_id == "user-1"
        assert workspace.jobs.context_provider().organization_id == "org-1"
        assert workspace.dashboard.context_provider() == context

    def test_reset_rebuilds_stores(self, backend, settings, timers):
        workspace = Workspace(backend, settings=settings, timer_factory=timers)
        old_candidates = workspace.candidates
        workspace.column_editors["jobs"] = object()
        workspace.auth.is_authenticated = True

        workspace.reset()

        assert workspace.candidates is not old_candidates
        assert workspace.auth.is_authenticated is False
        assert workspace.column_editors == {}

    def test_teardown_cancels_pending_search(self, backend, settings, timers):
        workspace = Workspace(backend, settings=settings, timer_factory=timers)
        workspace.auth.user = {"id": "user-1"}
        workspace.auth.is_authenticated = True

        workspace.candidates.search("ana")
        workspace.teardown()
        timers.fire_all()

        assert timers.live == []
        backend.rpc.assert_not_called()


class TestWorkspaceRegistry:
    """Test the session-keyed registry."""

    def test_create_binds_token(self, registry):
        workspace = registry.create("session-1", "tok-1")

        assert registry.get("session-1") is workspace
        assert workspace.backend.access_token == "tok-1"
        assert len(registry) == 1

    def test_build_does_not_register(self, registry):
        registry.build()

        assert len(registry) == 0

    def test_register_replaces_and_tears_down_previous(self, registry, timers):
        first = registry.create("session-1", "tok-1")
        first.jobs.set_filter("status", "active")
        assert first.jobs.input_pending

        second = registry.create("session-1", "tok-2")

        assert registry.get("session-1") is second
        assert not first.jobs.input_pending

    def test_remove_unknown_session(self, registry):
        registry.remove("missing")

        assert registry.get("missing") is None

    def test_close_all(self, registry):
        registry.create("session-1", "tok-1")
        registry.create("session-2", "tok-2")

        registry.close_all()

        assert len(registry) == 0
