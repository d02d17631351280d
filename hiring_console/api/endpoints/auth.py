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
Sign-in, sign-out and current user endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from hiring_console.api.dependencies import (
    get_current_session,
    get_registry,
    get_sessions,
    get_workspace,
)
from hiring_console.api.models import LoginRequest, UserStateResponse
from hiring_console.core.errors import AuthenticationError, BackendError
from hiring_console.core.sessions import ConsoleSession, SessionDatabase
from hiring_console.core.workspace import Workspace, WorkspaceRegistry
from hiring_console.utils.config import get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, session_id: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )


@router.post("/login", response_model=UserStateResponse)
def login(
    request: LoginRequest,
    response: Response,
    registry: WorkspaceRegistry = Depends(get_registry),
    sessions: SessionDatabase = Depends(get_sessions),
):
    """Sign in and open a console session."""
    workspace = registry.build()
    backend_session = workspace.auth.login(request.email, request.password)

    user_id = (workspace.auth.user or {}).get("id")
    if not user_id:
        raise AuthenticationError("No user data returned", status_code=401)

    session = sessions.create_session(
        user_id,
        backend_session["access_token"],
        backend_session.get("refresh_token"),
    )
    registry.register(session.session_id, workspace)
    _set_session_cookie(response, session.session_id)
    return UserStateResponse(success=True, **workspace.auth.view())


@router.post("/logout")
def logout(
    response: Response,
    session: ConsoleSession = Depends(get_current_session),
    workspace: Workspace = Depends(get_workspace),
    registry: WorkspaceRegistry = Depends(get_registry),
    sessions: SessionDatabase = Depends(get_sessions),
):
    """Sign out; local state is dropped even when the backend call fails."""
    error: Optional[str] = None
    try:
        workspace.auth.logout()
    except BackendError as e:
        error = str(e)
    finally:
        workspace.reset()
        registry.remove(session.session_id)
        sessions.delete_session(session.session_id)
        response.delete_cookie(get_settings().session_cookie_name)

    return {"success": error is None, "error": error, "login_url": get_settings().login_url}


@router.get("/me", response_model=UserStateResponse)
def current_user(workspace: Workspace = Depends(get_workspace)):
    """Get the signed-in user's profile, organization, roles and permissions."""
    return UserStateResponse(success=True, **workspace.auth.view())


@router.post("/refresh", response_model=UserStateResponse)
def refresh(
    session: ConsoleSession = Depends(get_current_session),
    workspace: Workspace = Depends(get_workspace),
    sessions: SessionDatabase = Depends(get_sessions),
):
    """Renew the backend token when possible, then reload user data."""
    if session.refresh_token:
        tokens = workspace.backend.refresh_session(session.refresh_token)
        access_token = (tokens or {}).get("access_token")
        if not access_token:
            raise AuthenticationError("Session could not be refreshed", status_code=401)
        sessions.update_tokens(
            session.session_id, access_token, tokens.get("refresh_token") or session.refresh_token
        )
        workspace.backend.access_token = access_token
        logger.info(f"🔑 Refreshed backend token for session {session.session_id[:8]}...")

    workspace.auth.refresh()
    return UserStateResponse(success=True, **workspace.auth.view())


@router.get("/permissions/{permission}")
def check_permission(permission: str, workspace: Workspace = Depends(get_workspace)):
    return {"permission": permission, "granted": workspace.auth.has_permission(permission)}
