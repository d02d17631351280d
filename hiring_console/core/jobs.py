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
Jobs list and job details state for one signed-in session.

Server pagination and multi-select filters go through the backend; search,
range filters and sorting are also applied client-side over the loaded page
so the board reacts while the debounced refetch is still pending.
"""

from datetime import datetime, timezone
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.cache import FilterOptions, FilterOptionsCache
from hiring_console.core.debounce import Debouncer, TimerFactory
from hiring_console.core.errors import BackendError, ConsoleError, ValidationError
from hiring_console.core.filters import (
    JOB_SORTS,
    CandidateFilters,
    JobFilters,
    filter_jobs,
    format_salary,
    prepare_array_filter,
    sort_jobs,
)
from hiring_console.core.models import FilterOption, Job, JobStatus, Pagination, UserContext
from hiring_console.utils.config import Settings, get_settings
from hiring_console.utils.logging import get_logger
from hiring_console.utils.security import get_search_sanitizer

logger = get_logger(__name__)

JOBS_RPC = "fetch_jobs_with_access"
JOB_FILTER_OPTIONS_RPC = "fetch_job_filter_options"
JOBS_TABLE = "jobs"

VIEW_MODES = {"board", "list"}

# toolbar names for multi-select filters
FILTER_KINDS = {
    "status": "status",
    "location": "location",
    "company": "company",
    "jobType": "job_type",
    "job_type": "job_type",
}

EDITABLE_FIELDS = {
    "title",
    "company_name",
    "location",
    "job_location_type",
    "job_type",
    "working_type",
    "min_experience_needed",
    "max_experience_needed",
    "min_salary",
    "max_salary",
    "description",
    "application_deadline",
    "company_logo_url",
    "status",
}


class JobsService:
    """Per-session jobs store."""

    def __init__(
        self,
        backend: BackendClient,
        context_provider: Callable[[], Optional[UserContext]],
        settings: Optional[Settings] = None,
        timer_factory: Optional[TimerFactory] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.context_provider = context_provider
        self.settings = settings or get_settings()
        self._lock = threading.RLock()
        self._request_seq = 0

        self.jobs: List[Job] = []
        self.selected_job: Optional[Job] = None
        self.loading = False
        self.error: Optional[str] = None
        self.filters = JobFilters()
        self.search_term = ""
        self.sort_by = "recent"
        self.view_mode = "board"
        self.pagination = Pagination(page_size=self.settings.jobs_page_size)
        self.filter_cache = FilterOptionsCache(
            ttl_seconds=self.settings.filter_options_ttl_seconds, clock=clock
        )

        wait = self.settings.filter_debounce_seconds
        self._filter_debouncer = Debouncer(
            self._run_filter_change, wait, timer_factory=timer_factory, name="jobs-filter"
        )
        self._search_debouncer = Debouncer(
            self._run_search, wait, timer_factory=timer_factory, name="jobs-search"
        )

    def _require_context(self) -> UserContext:
        context = self.context_provider()
        if context is None or not context.user_id:
            raise ValidationError("User context not available. Please log in again.")
        return context

    def _fail(self, error: ConsoleError) -> None:
        with self._lock:
            self.loading = False
            self.error = str(error)
        logger.error(f"❌ Jobs: {error}")

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_jobs(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        filters: Optional[JobFilters] = None,
        search_term: Optional[str] = None,
    ) -> Dict[str, Any]:
        context = self._require_context()
        filters = filters if filters is not None else self.filters
        search_term = self.search_term if search_term is None else search_term
        limit = limit or self.pagination.page_size

        with self._lock:
            self._request_seq += 1
            seq = self._request_seq
            self.loading = True
            self.error = None

        role = context.effective_role
        if role is None:
            result = {"jobs": [], "total_count": 0, "current_page": page, "total_pages": 0}
        else:
            params = {
                "p_user_id": context.user_id,
                "p_user_role": role.value,
                "p_organization_id": context.organization_id,
                "p_page": page,
                "p_limit": limit,
                "p_search_term": search_term or None,
                **filters.to_rpc_params(),
            }
            try:
                data = self.backend.rpc(JOBS_RPC, params)
                if not isinstance(data, dict) or "jobs" not in data or "success" not in data:
                    raise BackendError("Invalid response format from database function")
                if not data["success"]:
                    raise BackendError(data.get("error") or "Failed to fetch jobs")
                result = {
                    "jobs": [Job.from_raw(row) for row in data.get("jobs") or []],
                    "total_count": data.get("total_count") or 0,
                    "current_page": data.get("current_page") or page,
                    "total_pages": data.get("total_pages"),
                }
            except ConsoleError as e:
                if seq == self._request_seq:
                    self._fail(e)
                raise

        with self._lock:
            if seq != self._request_seq:
                logger.debug(f"Jobs: dropping stale page {page} response")
                return self.page_view()
            self.loading = False
            self.jobs = result["jobs"]
            self.pagination.page_size = limit
            self.pagination.update(
                result["total_count"], result["current_page"], result["total_pages"]
            )

        logger.info(f"💼 Loaded {len(result['jobs'])} jobs (page {self.pagination.current_page})")
        return self.page_view()

    def fetch_filter_options(self, force_refresh: bool = False) -> FilterOptions:
        if not force_refresh and self.filter_cache.is_fresh():
            return self.filter_cache.options

        context = self.context_provider()
        if context is None or not context.user_id or context.effective_role is None:
            error = ValidationError("Missing required user context parameters")
            self.filter_cache.fail(str(error))
            raise error

        try:
            data = self.backend.rpc(
                JOB_FILTER_OPTIONS_RPC,
                {
                    "p_user_id": context.user_id,
                    "p_user_role": context.effective_role.value,
                    "p_organization_id": context.organization_id,
                },
            )
            if not isinstance(data, dict) or not isinstance(data.get("companies"), list):
                raise BackendError("Invalid response format from server")
            if not data.get("success", False):
                raise BackendError(data.get("error") or "Failed to fetch filter options")
        except ConsoleError as e:
            with self._lock:
                self.filter_cache.fail(str(e))
            logger.error(f"❌ Jobs: filter options failed: {e}")
            raise

        with self._lock:
            return self.filter_cache.store(
                companies=[FilterOption.from_raw(c) for c in data["companies"]],
                job_titles=[FilterOption.from_raw(t) for t in data.get("job_titles") or []],
                locations=[FilterOption.from_raw(loc) for loc in data.get("locations") or []],
                statuses=data.get("statuses") or [s.value for s in JobStatus],
            )

    def clear_filter_options_cache(self) -> None:
        with self._lock:
            self.filter_cache.invalidate()

    # ------------------------------------------------------------------
    # Filters, search and pagination
    # ------------------------------------------------------------------

    def apply_filters(self, filters: JobFilters, page: int = 1) -> Dict[str, Any]:
        with self._lock:
            self.filters = filters
            self.pagination.current_page = page
        return self.fetch_jobs(page=page, filters=filters)

    def set_filter(self, kind: str, value: Any) -> JobFilters:
        """Change a multi-select now; the refetch runs once input settles."""
        if kind not in FILTER_KINDS:
            raise ValidationError(f"Unknown job filter: {kind}")
        with self._lock:
            data = self.filters.to_dict()
            data[FILTER_KINDS[kind]] = prepare_array_filter(value) or []
            self.filters = JobFilters(**data)
            self.pagination.current_page = 1
            filters = self.filters
        self._filter_debouncer()
        return filters

    def _run_filter_change(self) -> None:
        with self._lock:
            filters = self.filters
        try:
            self.fetch_jobs(page=1, filters=filters)
        except ConsoleError as e:
            logger.warning(f"Jobs filter change failed: {e}")

    def search(self, term: str) -> None:
        term = get_search_sanitizer().sanitize_search(term)
        with self._lock:
            self.search_term = term
        self._search_debouncer(term)

    def _run_search(self, term: str) -> None:
        try:
            with self._lock:
                filters = self.filters
                self.pagination.current_page = 1
            self.fetch_jobs(page=1, filters=filters, search_term=term)
        except ConsoleError as e:
            logger.warning(f"Jobs search failed: {e}")

    def flush_pending(self) -> Dict[str, Any]:
        self._filter_debouncer.flush()
        self._search_debouncer.flush()
        return self.page_view()

    @property
    def input_pending(self) -> bool:
        return self._filter_debouncer.pending or self._search_debouncer.pending

    def clear_filters(self) -> Dict[str, Any]:
        self._filter_debouncer.cancel()
        self._search_debouncer.cancel()
        with self._lock:
            self.filters = JobFilters()
            self.search_term = ""
            self.pagination.current_page = 1
        return self.fetch_jobs(page=1, filters=self.filters, search_term="")

    def go_to_page(self, page: int) -> Dict[str, Any]:
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        with self._lock:
            self.pagination.current_page = page
        return self.fetch_jobs(page=page)

    def set_page_size(self, page_size: int) -> Dict[str, Any]:
        if page_size < 1:
            raise ValidationError("Page size must be 1 or greater")
        with self._lock:
            self.pagination.page_size = page_size
            self.pagination.current_page = 1
        return self.fetch_jobs(page=1, limit=page_size)

    def set_view_mode(self, mode: str) -> str:
        if mode not in VIEW_MODES:
            raise ValidationError(f"View mode must be one of: {', '.join(sorted(VIEW_MODES))}")
        with self._lock:
            self.view_mode = mode
        return mode

    def set_sort(self, sort_by: str) -> str:
        if sort_by not in JOB_SORTS:
            raise ValidationError(f"Sort must be one of: {', '.join(sorted(JOB_SORTS))}")
        with self._lock:
            self.sort_by = sort_by
        return sort_by

    def visible_jobs(self) -> List[Dict[str, Any]]:
        """The loaded page after client-side search, filters and sort."""
        with self._lock:
            jobs = filter_jobs(self.jobs, self.filters, self.search_term)
            jobs = sort_jobs(jobs, self.sort_by)
        return [self._card(job) for job in jobs]

    @staticmethod
    def _card(job: Job) -> Dict[str, Any]:
        data = job.to_dict()
        data["formatted_salary"] = format_salary(job.salary_min, job.salary_max)
        return data

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    def fetch_job(self, job_id: str) -> Job:
        self._require_context()
        try:
            row = self.backend.select(JOBS_TABLE, match={"id": job_id}, single=True)
        except BackendError as e:
            error = e
            if e.is_not_found:
                error = BackendError("Job not found", code=e.code, status_code=404)
            self._fail(error)
            raise error from e
        job = Job.from_raw(row)
        with self._lock:
            self.selected_job = job
        return job

    def update_job(self, job_id: str, updates: Dict[str, Any]) -> Job:
        self._require_context()
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not updates:
            raise ValidationError("No changes to save.")
        values = dict(updates)
        values["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            rows = self.backend.update(JOBS_TABLE, values, match={"id": job_id})
            if not rows:
                raise BackendError("No data returned from update operation")
        except ConsoleError as e:
            self._fail(e)
            raise

        job = Job.from_raw(rows[0] if isinstance(rows, list) else rows)
        with self._lock:
            self.jobs = [job if j.id == job_id else j for j in self.jobs]
            if self.selected_job and self.selected_job.id == job_id:
                self.selected_job = job
        logger.info(f"✅ Job {job_id} updated ({', '.join(sorted(updates))})")
        return job

    def update_status(self, job_id: str, status: str) -> Job:
        try:
            normalized = JobStatus((status or "").lower()).value
        except ValueError:
            raise ValidationError(
                f"Invalid status: {status}. Must be one of: "
                f"{', '.join(s.value for s in JobStatus)}"
            )
        return self.update_job(job_id, {"status": normalized})

    def delete_job(self, job_id: str) -> str:
        self._require_context()
        try:
            self.backend.delete(JOBS_TABLE, match={"id": job_id})
        except ConsoleError as e:
            self._fail(e)
            raise
        with self._lock:
            self.jobs = [j for j in self.jobs if j.id != job_id]
            if self.selected_job and self.selected_job.id == job_id:
                self.selected_job = None
            self.pagination.total_items = max(0, self.pagination.total_items - 1)
        logger.info(f"🗑️ Deleted job {job_id}")
        return job_id

    def job_details(self, job_id: str, candidates=None) -> Dict[str, Any]:
        """
        Job metadata plus the applicants for that job.

        Args:
            job_id: Job to show
            candidates: Optional CandidatesService used to load the applicants

        The candidates screen keeps its own applied filters.
        """
        job = self.fetch_job(job_id)
        details = self._card(job)
        if candidates is not None:
            details["candidates"] = candidates.fetch_with_access(
                CandidateFilters(job_id=job_id), page=1
            )
        return details

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def clear_jobs(self) -> None:
        with self._lock:
            self.jobs = []
            self.selected_job = None

    def page_view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "jobs": [self._card(j) for j in self.jobs],
                "total_count": self.pagination.total_items,
                "current_page": self.pagination.current_page,
                "total_pages": self.pagination.total_pages,
                "success": self.error is None,
                "error": self.error,
            }

    def state_view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self.page_view(),
                "visible_jobs": self.visible_jobs(),
                "loading": self.loading,
                "filters": self.filters.to_dict(),
                "search_term": self.search_term,
                "sort_by": self.sort_by,
                "view_mode": self.view_mode,
                "pagination": self.pagination.to_dict(),
                "filter_options": self.filter_cache.options.to_dict(),
                "selected_job": self._card(self.selected_job) if self.selected_job else None,
                "input_pending": self.input_pending,
            }

    def teardown(self) -> None:
        self._filter_debouncer.close()
        self._search_debouncer.close()
