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
Signed-in user state: profile, organization, roles and permissions.

The backend authenticates; this module only keeps the resulting user data
for the session and answers permission questions from the role maps.
"""

import threading
from typing import Any, Dict, List, Optional

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.errors import AuthenticationError, BackendError, ConsoleError
from hiring_console.core.models import UserContext
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

USER_DATA_RPC = "get_complete_user_data"


class AuthService:
    """Per-session user store."""

    def __init__(self, backend: BackendClient):
        self.backend = backend
        self._lock = threading.Lock()
        self._clear()
        self.loading = False
        self.error: Optional[str] = None

    def _clear(self) -> None:
        self.user: Optional[Dict[str, Any]] = None
        self.profile: Optional[Dict[str, Any]] = None
        self.organization: Optional[Dict[str, Any]] = None
        self.roles: List[Dict[str, Any]] = []
        self.complete_user_data: Optional[Dict[str, Any]] = None
        self.is_authenticated = False

    def _load_complete_user_data(self) -> Dict[str, Any]:
        data = self.backend.rpc(USER_DATA_RPC)
        if not isinstance(data, dict) or not data.get("id"):
            raise BackendError("No user data returned")
        return data

    def _apply_user_data(self, data: Dict[str, Any], user: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self.user = user or {
                "id": data.get("id"),
                "email": data.get("email"),
                "email_confirmed_at": data.get("email_confirmed_at"),
                "created_at": data.get("created_at"),
                "updated_at": data.get("updated_at"),
            }
            self.profile = data.get("profile")
            self.organization = data.get("organization")
            self.roles = list(data.get("roles") or [])
            self.complete_user_data = data
            self.is_authenticated = True
            self.loading = False
            self.error = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Sign in and load the user's profile, organization and roles.

        Returns the backend session (access and refresh tokens). When the
        profile lookup fails the user is still signed in with bare auth data.
        """
        with self._lock:
            self.loading = True
            self.error = None
        try:
            session = self.backend.sign_in_with_password(email, password)
            if not isinstance(session, dict) or not session.get("access_token"):
                raise AuthenticationError("No user data returned")
        except ConsoleError as e:
            with self._lock:
                self._clear()
                self.loading = False
                self.error = str(e)
            logger.warning(f"🔒 Login failed: {e}")
            raise

        self.backend.access_token = session["access_token"]
        auth_user = session.get("user") or {}
        try:
            self._apply_user_data(self._load_complete_user_data(), user=auth_user or None)
        except BackendError as e:
            logger.warning(f"Profile lookup failed after login, using auth user only: {e}")
            with self._lock:
                self._clear()
                self.user = auth_user
                self.is_authenticated = True
                self.loading = False

        logger.info(f"🔓 User {auth_user.get('id', 'unknown')} signed in")
        return session

    def initialize(self) -> Dict[str, Any]:
        """Rebuild user state from the session's stored token."""
        with self._lock:
            self.loading = True
            self.error = None
        try:
            data = self._load_complete_user_data()
        except ConsoleError as e:
            with self._lock:
                self._clear()
                self.loading = False
                self.error = str(e)
            raise
        self._apply_user_data(data)
        return self.view()

    def refresh(self) -> Dict[str, Any]:
        """Reload user data; the current state is kept if this fails."""
        with self._lock:
            self.loading = True
            self.error = None
        try:
            data = self._load_complete_user_data()
        except ConsoleError as e:
            with self._lock:
                self.loading = False
                self.error = str(e) or "Failed to refresh user data"
            raise
        self._apply_user_data(data)
        return self.view()

    def logout(self) -> None:
        """Sign out; local state is cleared even when the backend call fails."""
        try:
            self.backend.sign_out()
        except BackendError as e:
            with self._lock:
                self.error = str(e)
            logger.warning(f"Backend sign-out failed, clearing local session anyway: {e}")
            raise
        finally:
            with self._lock:
                self._clear()
                self.loading = False
            self.backend.access_token = None

    def reset(self) -> None:
        with self._lock:
            self._clear()
            self.loading = False
            self.error = None

    # ------------------------------------------------------------------
    # Roles and permissions
    # ------------------------------------------------------------------

    def _active_roles(self) -> List[Dict[str, Any]]:
        return [r for r in self.roles if r.get("is_active") and isinstance(r.get("role"), dict)]

    def role_names(self) -> List[str]:
        return [r["role"].get("name") for r in self._active_roles() if r["role"].get("name")]

    def permissions(self) -> Dict[str, Any]:
        """All active roles' permission maps merged (later roles win)."""
        merged: Dict[str, Any] = {}
        for role in self._active_roles():
            permissions = role["role"].get("permissions")
            if isinstance(permissions, dict):
                merged.update(permissions)
        return merged

    def has_permission(self, permission: str) -> bool:
        """
        Check a dotted permission path such as ``"candidates.delete"``.

        Any active role with ``all: true`` grants every permission.
        """
        roles = self._active_roles()
        if not roles:
            return False
        if any((r["role"].get("permissions") or {}).get("all") is True for r in roles):
            return True

        path = permission.split(".")
        for role in roles:
            current: Any = role["role"].get("permissions")
            for part in path:
                if not isinstance(current, dict):
                    current = None
                    break
                current = current.get(part)
            if current is True:
                return True
        return False

    def context(self) -> Optional[UserContext]:
        if not self.is_authenticated or not self.user:
            return None
        return UserContext(
            user_id=self.user.get("id"),
            organization_id=(self.organization or {}).get("id"),
            roles=self.role_names(),
        )

    def view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "user": self.user,
                "profile": self.profile,
                "organization": self.organization,
                "roles": list(self.roles),
                "role_names": self.role_names(),
                "permissions": self.permissions(),
                "is_authenticated": self.is_authenticated,
                "loading": self.loading,
                "error": self.error,
            }
