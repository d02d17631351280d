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
Tests for the jobs store.

This module tests:
- Access-scoped job fetching and filter parameters
- Debounced filter changes and search
- Client-side board view (filters, search, sort)
- Single job details, edits, status changes and deletes
"""

from unittest.mock import Mock

import pytest

from hiring_console.core.candidates import CandidatesService
from hiring_console.core.errors import BackendError, ValidationError
from hiring_console.core.filters import CandidateFilters, JobFilters
from hiring_console.core.jobs import JOB_FILTER_OPTIONS_RPC, JOBS_RPC, JOBS_TABLE, JobsService
from hiring_console.core.models import UserContext


def job_row(job_id="job-1", title="Backend Engineer", **extra):
    row = {
        "id": job_id,
        "title": title,
        "company_name": "Acme",
        "location": "Berlin",
        "min_salary": 50000,
        "max_salary": 70000,
        "status": "active",
        "created_at": "2024-01-01T00:00:00Z",
        "application_count": 3,
    }
    row.update(extra)
    return row


def jobs_page(rows, total=None, current=1, pages=1):
    return {
        "success": True,
        "jobs": rows,
        "total_count": len(rows) if total is None else total,
        "current_page": current,
        "total_pages": pages,
    }


@pytest.fixture
def context():
    return {"value": UserContext(user_id="user-1", organization_id="org-1", roles=["hr"])}


@pytest.fixture
def service(backend, settings, timers, context):
    return JobsService(backend, lambda: context["value"], settings=settings, timer_factory=timers)


class TestFetchJobs:
    """Test job page loading."""

    def test_sends_scope_search_and_filters(self, service, backend):
        backend.rpc.return_value = jobs_page([job_row()])

        result = service.fetch_jobs(
            page=2, filters=JobFilters(status=["active"], salary_min=60000), search_term="eng"
        )

        function, params = backend.rpc.call_args[0]
        assert function == JOBS_RPC
        assert params["p_user_role"] == "hr"
        assert params["p_page"] == 2
        assert params["p_limit"] == 30
        assert params["p_search_term"] == "eng"
        assert params["p_status_filter"] == ["active"]
        assert params["p_salary_min"] == 60000
        assert params["p_location_filter"] is None
        job = result["jobs"][0]
        assert job["salary_min"] == 50000
        assert job["formatted_salary"] == "50,000 - 70,000"
        assert job["status"] == "active"

    def test_total_pages_derived_when_missing(self, service, backend):
        data = jobs_page([job_row()], total=61)
        data["total_pages"] = None
        backend.rpc.return_value = data

        service.fetch_jobs()

        assert service.pagination.total_pages == 3

    def test_no_role_returns_empty_page(self, service, backend, context):
        context["value"] = UserContext("user-1", "org-1", roles=[])

        result = service.fetch_jobs()

        backend.rpc.assert_not_called()
        assert result["jobs"] == []

    def test_error_is_recorded(self, service, backend):
        backend.rpc.return_value = {"success": False, "jobs": [], "error": "boom"}

        with pytest.raises(BackendError, match="boom"):
            service.fetch_jobs()

        assert service.error == "boom"
        assert service.loading is False


class TestDebouncedInput:
    """Test filter changes and search."""

    def test_filter_burst_fetches_once_with_all_changes(self, service, backend, timers):
        backend.rpc.return_value = jobs_page([])

        service.set_filter("status", ["active"])
        service.set_filter("jobType", "full_time")
        service.set_filter("location", ["Berlin", "All"])
        backend.rpc.assert_not_called()
        assert service.input_pending

        timers.fire_all()

        assert backend.rpc.call_count == 1
        params = backend.rpc.call_args[0][1]
        assert params["p_status_filter"] == ["active"]
        assert params["p_job_type_filter"] == ["full_time"]
        assert params["p_location_filter"] == ["Berlin"]
        assert params["p_page"] == 1

    def test_filter_window_is_half_a_second(self, service, timers):
        service.set_filter("company", "Acme")

        assert timers.live[0].interval == pytest.approx(0.5)

    def test_unknown_filter_kind(self, service):
        with pytest.raises(ValidationError):
            service.set_filter("remote", True)

    def test_search_is_debounced(self, service, backend, timers):
        backend.rpc.return_value = jobs_page([])

        service.search("eng")
        service.search("engineer")
        timers.fire_all()

        assert backend.rpc.call_count == 1
        assert backend.rpc.call_args[0][1]["p_search_term"] == "engineer"

    def test_flush_pending_runs_now(self, service, backend):
        backend.rpc.return_value = jobs_page([])

        service.search("ops")
        service.flush_pending()

        assert backend.rpc.call_args[0][1]["p_search_term"] == "ops"
        assert not service.input_pending

    def test_clear_filters_cancels_pending_input(self, service, backend, timers):
        backend.rpc.return_value = jobs_page([])
        service.set_filter("status", ["closed"])
        service.search("x")

        service.clear_filters()
        timers.fire_all()

        assert backend.rpc.call_count == 1
        params = backend.rpc.call_args[0][1]
        assert params["p_status_filter"] is None
        assert params["p_search_term"] is None

    def test_teardown_cancels_timers(self, service, backend, timers):
        service.set_filter("status", ["active"])
        service.search("x")

        service.teardown()
        timers.fire_all()

        backend.rpc.assert_not_called()


class TestBoardView:
    """Test client-side view state."""

    def test_visible_jobs_apply_search_and_sort(self, service, backend):
        backend.rpc.return_value = jobs_page(
            [
                job_row("a", "Zoologist", created_at="2024-01-01"),
                job_row("b", "Accountant", created_at="2024-02-01"),
                job_row("c", "Designer", company_name="Globex"),
            ]
        )
        service.fetch_jobs()

        service.set_sort("az")
        assert [j["id"] for j in service.visible_jobs()] == ["b", "c", "a"]

        service.search_term = "acme"
        assert [j["id"] for j in service.visible_jobs()] == ["b", "a"]

    def test_view_mode_and_sort_validation(self, service):
        assert service.set_view_mode("list") == "list"
        with pytest.raises(ValidationError):
            service.set_view_mode("grid")
        with pytest.raises(ValidationError):
            service.set_sort("salary")

    def test_filter_options_cached(self, service, backend):
        backend.rpc.return_value = {
            "success": True,
            "companies": ["Acme"],
            "locations": ["Berlin", "Austin"],
        }

        service.fetch_filter_options()
        options = service.fetch_filter_options()

        backend.rpc.assert_called_once()
        assert backend.rpc.call_args[0][0] == JOB_FILTER_OPTIONS_RPC
        assert [o.value for o in options.locations] == ["Austin", "Berlin"]
        assert options.statuses == ["active", "paused", "closed"]


class TestSingleJob:
    """Test job details and edits."""

    def test_fetch_job_not_found(self, service, backend):
        backend.select.side_effect = BackendError("0 rows", code="PGRST116", status_code=406)

        with pytest.raises(BackendError) as exc_info:
            service.fetch_job("missing")

        assert str(exc_info.value) == "Job not found"
        assert exc_info.value.status_code == 404

    def test_job_details_include_applicants(self, service, backend):
        backend.select.return_value = job_row("job-9")
        candidates = Mock()
        candidates.fetch_with_access.return_value = {"candidates": [], "total_count": 0}

        details = service.job_details("job-9", candidates)

        assert details["id"] == "job-9"
        assert details["candidates"]["total_count"] == 0
        filters = candidates.fetch_with_access.call_args[0][0]
        assert filters.job_id == "job-9"
        assert service.selected_job.id == "job-9"
        candidates.apply_filters.assert_not_called()

    def test_job_details_keep_candidate_filters(self, service, backend, settings, timers, context):
        candidates = CandidatesService(
            backend, lambda: context["value"], settings=settings, timer_factory=timers
        )
        backend.select.return_value = job_row("job-9")
        backend.rpc.return_value = {
            "success": True,
            "candidates": [],
            "total_count": 0,
            "current_page": 1,
            "total_pages": 0,
        }
        candidates.apply_filters(CandidateFilters(status=["pending"], company_name=["Acme"]))

        service.job_details("job-9", candidates)

        assert backend.rpc.call_args[0][1]["p_job_id"] == "job-9"
        assert candidates.filters.status == ["pending"]
        assert candidates.filters.company_name == ["Acme"]
        assert candidates.filters.job_id is None

        candidates.go_to_page(1)

        params = backend.rpc.call_args[0][1]
        assert params["p_job_id"] is None
        assert params["p_application_status"] == ["pending"]
        assert params["p_company_filter"] == ["Acme"]

    def test_update_job_rejects_unknown_fields(self, service, backend):
        with pytest.raises(ValidationError, match="cannot be edited"):
            service.update_job("job-1", {"created_by": "someone"})

        backend.update.assert_not_called()

    def test_update_status_replaces_loaded_job(self, service, backend):
        backend.rpc.return_value = jobs_page([job_row("job-1")])
        service.fetch_jobs()
        backend.update.return_value = [job_row("job-1", status="paused")]

        job = service.update_status("job-1", "Paused")

        table, values = backend.update.call_args[0][:2]
        assert table == JOBS_TABLE
        assert values["status"] == "paused"
        assert "updated_at" in values
        assert job.status.value == "paused"
        assert service.jobs[0].status.value == "paused"

    def test_invalid_job_status(self, service):
        with pytest.raises(ValidationError, match="Invalid status"):
            service.update_status("job-1", "archived")

    def test_delete_job(self, service, backend):
        backend.rpc.return_value = jobs_page([job_row("job-1"), job_row("job-2")])
        service.fetch_jobs()

        service.delete_job("job-1")

        backend.delete.assert_called_once_with(JOBS_TABLE, match={"id": "job-1"})
        assert [j.id for j in service.jobs] == ["job-2"]
        assert service.pagination.total_items == 1
