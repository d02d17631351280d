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
Tests for the backend client.

This module tests:
- Stored function calls and parameter handling
- Row selects, updates and deletes with equality filters
- Auth endpoints and token headers
- Error mapping from HTTP responses
"""

import json

import httpx
import pytest

from hiring_console.core.backend_client import SINGLE_OBJECT, BackendClient
from hiring_console.core.errors import AuthenticationError, BackendError


class RecordingHandler:
    """Capture requests and answer with a canned response."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.payload is None:
            return httpx.Response(self.status_code)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_client(settings, handler, token=None):
    return BackendClient(
        settings=settings, access_token=token, transport=httpx.MockTransport(handler)
    )


class TestRpc:
    """Test stored function calls."""

    def test_rpc_posts_to_function_path(self, settings):
        handler = RecordingHandler(payload={"success": True})
        client = make_client(settings, handler, token="user-token")

        result = client.rpc("fetch_filter_options", {"p_user_id": "u1"})

        assert result == {"success": True}
        assert handler.last.method == "POST"
        assert handler.last.url.path == "/rest/v1/rpc/fetch_filter_options"
        assert handler.last.headers["Authorization"] == "Bearer user-token"
        assert handler.last.headers["apikey"] == "anon-key"

    def test_rpc_drops_none_params(self, settings):
        handler = RecordingHandler(payload=[])
        client = make_client(settings, handler)

        client.rpc("fetch_candidates_with_access", {"p_page": 1, "p_job_id": None})

        assert json.loads(handler.last.content) == {"p_page": 1}

    def test_anonymous_calls_use_anon_key(self, settings):
        handler = RecordingHandler(payload={})
        client = make_client(settings, handler)

        client.rpc("anything")

        assert handler.last.headers["Authorization"] == "Bearer anon-key"

    def test_empty_body_returns_none(self, settings):
        handler = RecordingHandler(status_code=204)
        client = make_client(settings, handler)

        assert client.rpc("assign_user_role", {"target_email_id": "a@b.co"}) is None


class TestRows:
    """Test row operations."""

    def test_select_single_sets_object_accept_header(self, settings):
        handler = RecordingHandler(payload={"job_id": "job-1"})
        client = make_client(settings, handler)

        row = client.select(
            "job_applications", columns="job_id", match={"id": "app-1"}, single=True
        )

        assert row == {"job_id": "job-1"}
        assert handler.last.headers["Accept"] == SINGLE_OBJECT
        assert handler.last.url.params["id"] == "eq.app-1"
        assert handler.last.url.params["select"] == "job_id"

    def test_update_requests_representation(self, settings):
        handler = RecordingHandler(payload=[{"id": "app-1"}])
        client = make_client(settings, handler)

        client.update("job_applications", {"application_status": "accepted"}, {"id": "app-1"})

        assert handler.last.method == "PATCH"
        assert handler.last.headers["Prefer"] == "return=representation"

    def test_delete_requires_filter(self, settings):
        client = make_client(settings, RecordingHandler())

        with pytest.raises(ValueError):
            client.delete("job_applications", {})

    def test_update_requires_filter(self, settings):
        client = make_client(settings, RecordingHandler())

        with pytest.raises(ValueError):
            client.update("jobs", {"status": "closed"}, {})


class TestErrors:
    """Test error mapping."""

    def test_not_found_code_is_preserved(self, settings):
        handler = RecordingHandler(
            status_code=406, payload={"code": "PGRST116", "message": "0 rows"}
        )
        client = make_client(settings, handler)

        with pytest.raises(BackendError) as exc_info:
            client.select("job_access_control", match={"job_id": "j"}, single=True)

        assert exc_info.value.is_not_found
        assert str(exc_info.value) == "0 rows"

    def test_unauthorized_maps_to_authentication_error(self, settings):
        handler = RecordingHandler(status_code=401, payload={"message": "JWT expired"})
        client = make_client(settings, handler, token="old")

        with pytest.raises(AuthenticationError, match="JWT expired"):
            client.rpc("get_dashboard_data")

    def test_bad_credentials_map_to_authentication_error(self, settings):
        handler = RecordingHandler(
            status_code=400, payload={"error_description": "Invalid login credentials"}
        )
        client = make_client(settings, handler)

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            client.sign_in_with_password("a@b.co", "wrong")

    def test_server_error_maps_to_backend_error(self, settings):
        handler = RecordingHandler(status_code=500, payload={"message": "boom"})
        client = make_client(settings, handler)

        with pytest.raises(BackendError) as exc_info:
            client.rpc("fetch_jobs_with_access")

        assert not isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.status_code == 500

    def test_transport_failure_raises_backend_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(settings, handler)

        with pytest.raises(BackendError, match="Unable to reach backend"):
            client.rpc("fetch_jobs_with_access")


class TestAuth:
    """Test auth endpoints."""

    def test_sign_in_uses_password_grant(self, settings):
        handler = RecordingHandler(payload={"access_token": "tok", "user": {"id": "u1"}})
        client = make_client(settings, handler)

        session = client.sign_in_with_password("a@b.co", "secret")

        assert session["access_token"] == "tok"
        assert handler.last.url.path == "/auth/v1/token"
        assert handler.last.url.params["grant_type"] == "password"

    def test_sign_out_without_token_is_noop(self, settings):
        handler = RecordingHandler()
        client = make_client(settings, handler)

        client.sign_out()

        assert handler.requests == []

    def test_get_user_requires_token(self, settings):
        client = make_client(settings, RecordingHandler())

        with pytest.raises(AuthenticationError):
            client.get_user()

    def test_for_token_shares_connection_pool(self, settings):
        handler = RecordingHandler(payload={})
        client = make_client(settings, handler)

        bound = client.for_token("user-token")
        bound.rpc("get_complete_user_data")

        assert bound.client is client.client
        assert handler.last.headers["Authorization"] == "Bearer user-token"
