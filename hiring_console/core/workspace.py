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
Per-session workspaces.

A workspace bundles every screen's state for one signed-in browser session,
all sharing a backend client bound to that session's access token.
"""

import threading
from typing import Dict, Optional

from hiring_console.core.auth import AuthService
from hiring_console.core.backend_client import BackendClient, get_backend_client
from hiring_console.core.candidates import CandidatesService
from hiring_console.core.dashboard import DashboardService
from hiring_console.core.debounce import TimerFactory
from hiring_console.core.jobs import JobsService
from hiring_console.core.organisation import OrganisationService, RoleChangeSet
from hiring_console.core.preferences import ColumnEditor
from hiring_console.utils.config import Settings, get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)


class Workspace:
    """All screen stores for one session."""

    def __init__(
        self,
        backend: BackendClient,
        settings: Optional[Settings] = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.backend = backend
        self.settings = settings or get_settings()
        self.timer_factory = timer_factory
        self.auth = AuthService(backend)
        self._build_stores()

    def _build_stores(self) -> None:
        context = self.auth.context
        self.candidates = CandidatesService(
            self.backend, context, settings=self.settings, timer_factory=self.timer_factory
        )
        self.jobs = JobsService(
            self.backend, context, settings=self.settings, timer_factory=self.timer_factory
        )
        self.organisation = OrganisationService(self.backend)
        self.role_changes = RoleChangeSet(self.organisation)
        self.dashboard = DashboardService(self.backend, context)
        # open column customization panels, keyed by table
        self.column_editors: Dict[str, ColumnEditor] = {}

    def reset(self) -> None:
        """Drop every store's state, as after a sign-out."""
        self.teardown()
        self.auth.reset()
        self._build_stores()
        logger.info("🔄 Workspace state reset")

    def teardown(self) -> None:
        """Cancel pending debounced calls so nothing fires after close."""
        self.candidates.teardown()
        self.jobs.teardown()


class WorkspaceRegistry:
    """In-memory workspaces keyed by session id."""

    def __init__(
        self,
        backend: Optional[BackendClient] = None,
        settings: Optional[Settings] = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self._backend = backend
        self.settings = settings or get_settings()
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._workspaces: Dict[str, Workspace] = {}

    @property
    def backend(self) -> BackendClient:
        if self._backend is None:
            self._backend = get_backend_client()
        return self._backend

    def get(self, session_id: str) -> Optional[Workspace]:
        with self._lock:
            return self._workspaces.get(session_id)

    def build(self, access_token: Optional[str] = None) -> Workspace:
        """A workspace not yet tied to a session, e.g. for signing in."""
        return Workspace(
            self.backend.for_token(access_token),
            settings=self.settings,
            timer_factory=self.timer_factory,
        )

    def create(self, session_id: str, access_token: str) -> Workspace:
        return self.register(session_id, self.build(access_token))

    def register(self, session_id: str, workspace: Workspace) -> Workspace:
        with self._lock:
            previous = self._workspaces.get(session_id)
            self._workspaces[session_id] = workspace
        if previous is not None:
            previous.teardown()
        return workspace

    def remove(self, session_id: str) -> None:
        with self._lock:
            workspace = self._workspaces.pop(session_id, None)
        if workspace is not None:
            workspace.teardown()

    def close_all(self) -> None:
        with self._lock:
            workspaces = list(self._workspaces.values())
            self._workspaces.clear()
        for workspace in workspaces:
            workspace.teardown()
        if workspaces:
            logger.info(f"Closed {len(workspaces)} workspaces")

    def __len__(self) -> int:
        with self._lock:
            return len(self._workspaces)


# Global registry instance
_workspace_registry = None


def get_workspace_registry() -> WorkspaceRegistry:
    global _workspace_registry
    if _workspace_registry is None:
        _workspace_registry = WorkspaceRegistry()
    return _workspace_registry
