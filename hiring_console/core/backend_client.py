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
HTTP client for the hosted hiring backend.

The backend exposes stored functions over ``/rest/v1/rpc/<name>``, table
access over ``/rest/v1/<table>`` (PostgREST filter syntax) and password
authentication under ``/auth/v1``. Every call is a single attempt: failures
raise ``BackendError`` and are never retried.
"""

from typing import Any, Dict, Optional

import httpx

from hiring_console.core.errors import AuthenticationError, BackendError
from hiring_console.utils.config import Settings, get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class BackendClient:
    """Thin wrapper around httpx for RPC, row and auth calls."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        access_token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.backend_url
        self.anon_key = self.settings.backend_anon_key or ""
        self.timeout = self.settings.backend_timeout
        self.access_token = access_token
        self._transport = transport
        self._client = http_client

    @property
    def client(self) -> httpx.Client:
        """Get HTTP client for the backend API."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    def for_token(self, access_token: Optional[str]) -> "BackendClient":
        """Return a client bound to a user's token sharing this connection pool."""
        return BackendClient(
            settings=self.settings,
            access_token=access_token,
            http_client=self.client,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        auth_call: bool = False,
    ) -> Any:
        try:
            response = self.client.request(
                method, path, params=params, json=json, headers=self._headers(headers)
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Backend request failed: {method} {path}: {e}")
            raise BackendError(f"Unable to reach backend: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response, auth_call)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                "Invalid JSON returned by backend", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_from_response(response: httpx.Response, auth_call: bool) -> BackendError:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        message = (
            payload.get("message")
            or payload.get("error_description")
            or payload.get("msg")
            or payload.get("error")
            or f"Backend returned HTTP {response.status_code}"
        )
        code = payload.get("code")
        if code is not None:
            code = str(code)

        if response.status_code == 401 or (auth_call and response.status_code in (400, 403)):
            return AuthenticationError(message, code=code, status_code=response.status_code)
        return BackendError(message, code=code, status_code=response.status_code)

    # ------------------------------------------------------------------
    # Stored functions and rows
    # ------------------------------------------------------------------

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call a stored function.

        ``None`` values are dropped so the function falls back to its own
        parameter defaults.
        """
        body = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug(f"RPC {function} with params {sorted(body)}")
        return self._request("POST", f"/rest/v1/rpc/{function}", json=body)

    @staticmethod
    def _match_params(match: Optional[Dict[str, Any]]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in (match or {}).items()}

    def select(
        self,
        table: str,
        columns: str = "*",
        match: Optional[Dict[str, Any]] = None,
        single: bool = False,
    ) -> Any:
        """Select rows with equality filters; ``single`` expects exactly one row."""
        params = {"select": columns, **self._match_params(match)}
        headers = {"Accept": SINGLE_OBJECT} if single else None
        return self._request("GET", f"/rest/v1/{table}", params=params, headers=headers)

    def update(
        self, table: str, values: Dict[str, Any], match: Dict[str, Any]
    ) -> Any:
        if not match:
            raise ValueError("Refusing to update without a row filter")
        return self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._match_params(match),
            json=values,
            headers={"Prefer": "return=representation"},
        )

    def delete(self, table: str, match: Dict[str, Any]) -> Any:
        if not match:
            raise ValueError("Refusing to delete without a row filter")
        return self._request(
            "DELETE", f"/rest/v1/{table}", params=self._match_params(match)
        )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Exchange credentials for a session (access token, refresh token, user)."""
        return self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            auth_call=True,
        )

    def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            auth_call=True,
        )

    def get_user(self) -> Dict[str, Any]:
        if not self.access_token:
            raise AuthenticationError("Not signed in", status_code=401)
        return self._request("GET", "/auth/v1/user", auth_call=True)

    def sign_out(self) -> None:
        if not self.access_token:
            return
        self._request("POST", "/auth/v1/logout", auth_call=True)


_backend_client: Optional[BackendClient] = None


def get_backend_client() -> BackendClient:
    """Get the shared anonymous backend client."""
    global _backend_client
    if _backend_client is None:
        _backend_client = BackendClient()
    return _backend_client


def close_backend_client() -> None:
    global _backend_client
    if _backend_client is not None:
        _backend_client.close()
        _backend_client = None
