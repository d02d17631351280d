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
Request dependencies: the signed-in session and its workspace.
"""

from fastapi import Depends, Request

from hiring_console.core.errors import AuthenticationError, ConsoleError
from hiring_console.core.preferences import PreferencesManager, get_preferences_manager
from hiring_console.core.sessions import ConsoleSession, SessionDatabase, get_session_database
from hiring_console.core.workspace import Workspace, WorkspaceRegistry, get_workspace_registry
from hiring_console.utils.config import get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)


def get_sessions() -> SessionDatabase:
    """Dependency to get the session store."""
    return get_session_database()


def get_registry() -> WorkspaceRegistry:
    """Dependency to get the workspace registry."""
    return get_workspace_registry()


def get_preferences() -> PreferencesManager:
    return get_preferences_manager()


def get_current_session(
    request: Request, sessions: SessionDatabase = Depends(get_sessions)
) -> ConsoleSession:
    cookie = request.cookies.get(get_settings().session_cookie_name)
    session = sessions.get_session(cookie) if cookie else None
    if session is None:
        raise AuthenticationError("Please sign in to continue", status_code=401)
    sessions.touch(session.session_id)
    return session


def get_workspace(
    session: ConsoleSession = Depends(get_current_session),
    registry: WorkspaceRegistry = Depends(get_registry),
    sessions: SessionDatabase = Depends(get_sessions),
) -> Workspace:
    """
    The session's workspace, rebuilt from the stored token after a restart.

    A token the backend no longer accepts ends the session.
    """
    workspace = registry.get(session.session_id)
    if workspace is not None:
        return workspace

    workspace = registry.create(session.session_id, session.access_token)
    try:
        workspace.auth.initialize()
    except AuthenticationError:
        logger.info(f"Stored token rejected, ending session {session.session_id[:8]}...")
        registry.remove(session.session_id)
        sessions.delete_session(session.session_id)
        raise
    except ConsoleError:
        registry.remove(session.session_id)
        raise
    return workspace


def get_user_id(workspace: Workspace = Depends(get_workspace)) -> str:
    context = workspace.auth.context()
    if context is None or not context.user_id:
        raise AuthenticationError("Please sign in to continue", status_code=401)
    return context.user_id
