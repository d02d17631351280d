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
Candidates list state for one signed-in session.

This module provides:
- Access-scoped, server-paginated candidate fetching
- Filter staging, presets and debounced search
- Cached filter options
- Application status updates and deletes with client-side role checks
"""

from datetime import datetime, timezone
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.cache import FilterOptions, FilterOptionsCache
from hiring_console.core.debounce import Debouncer, TimerFactory
from hiring_console.core.errors import (
    BackendError,
    ConsoleError,
    PermissionDeniedError,
    ValidationError,
)
from hiring_console.core.filters import (
    CandidateFilters,
    ExperienceRangeSelector,
    FilterStaging,
    apply_candidate_filter_change,
)
from hiring_console.core.models import (
    ApplicationStatus,
    CandidateWithApplication,
    FilterOption,
    Pagination,
    Role,
    UserContext,
)
from hiring_console.utils.config import Settings, get_settings
from hiring_console.utils.logging import get_logger
from hiring_console.utils.security import get_search_sanitizer

logger = get_logger(__name__)

CANDIDATES_RPC = "fetch_candidates_with_access"
FILTER_OPTIONS_RPC = "fetch_filter_options"
APPLICATIONS_TABLE = "job_applications"
JOB_ACCESS_TABLE = "job_access_control"
GRANTED = "granted"

REQUIRED_PAGE_KEYS = ("success", "candidates", "total_count", "current_page", "total_pages")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CandidatesService:
    """Per-session candidates store and the operations that mutate it."""

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

        self.candidates: List[CandidateWithApplication] = []
        self.current_candidate: Optional[CandidateWithApplication] = None
        self.loading = False
        self.error: Optional[str] = None
        self.filters = CandidateFilters()
        self.pagination = Pagination(page_size=self.settings.candidates_page_size)
        self.filter_cache = FilterOptionsCache(
            ttl_seconds=self.settings.filter_options_ttl_seconds, clock=clock
        )
        self.last_fetched: Optional[str] = None
        self.accessible_jobs: List[str] = []
        self.staging = FilterStaging()
        self.experience_range = ExperienceRangeSelector()

        self._search_debouncer = Debouncer(
            self._run_debounced_search,
            self.settings.search_debounce_seconds,
            timer_factory=timer_factory,
            name="candidates-search",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_context(self) -> UserContext:
        context = self.context_provider()
        if context is None or not context.user_id:
            raise ValidationError("User context not available. Please log in again.")
        return context

    def _fail(self, error: ConsoleError, clear_list: bool = False) -> None:
        with self._lock:
            self.loading = False
            self.error = str(error)
            if clear_list:
                self.candidates = []
        logger.error(f"❌ Candidates: {error}")

    @staticmethod
    def _parse_page(data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict) or any(k not in data for k in REQUIRED_PAGE_KEYS):
            raise BackendError("Invalid response format from database function")
        if not data.get("success"):
            raise BackendError(data.get("error") or "Database function returned an error")
        rows = data.get("candidates") or []
        return {
            "candidates": [CandidateWithApplication.from_raw(row) for row in rows],
            "total_count": data.get("total_count") or 0,
            "current_page": data.get("current_page") or 1,
            "total_pages": data.get("total_pages") or 0,
        }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_with_access(
        self,
        filters: Optional[CandidateFilters] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one page of candidates visible to the current user.

        A user with no recognised role gets an empty page without a backend
        call. Only the most recently started fetch may write the list, so a
        slow earlier response cannot overwrite a newer one.
        """
        context = self._require_context()
        filters = filters if filters is not None else self.filters
        limit = limit or self.pagination.page_size

        with self._lock:
            self._request_seq += 1
            seq = self._request_seq
            self.loading = True
            self.error = None

        role = context.effective_role
        if role is None:
            logger.info("Candidates: user has no recognised role, returning empty page")
            result = {"candidates": [], "total_count": 0, "current_page": page, "total_pages": 0}
        else:
            params = {
                "p_user_id": context.user_id,
                "p_user_role": role.value,
                "p_organization_id": context.organization_id,
                "p_page": page,
                "p_limit": limit,
                **filters.to_rpc_params(),
            }
            try:
                result = self._parse_page(self.backend.rpc(CANDIDATES_RPC, params))
            except ConsoleError as e:
                if seq == self._request_seq:
                    self._fail(e, clear_list=True)
                raise

        with self._lock:
            if seq != self._request_seq:
                logger.debug(f"Candidates: dropping stale page {page} response")
                return self.page_view()
            self.loading = False
            self.candidates = result["candidates"]
            self.last_fetched = _now_iso()
            self.pagination.page_size = limit
            self.pagination.update(
                result["total_count"], result["current_page"], result["total_pages"]
            )

        logger.info(
            f"📋 Loaded {len(result['candidates'])} candidates "
            f"(page {result['current_page']}/{result['total_pages']})"
        )
        return self.page_view()

    def fetch_filter_options(self, force_refresh: bool = False) -> FilterOptions:
        """Load dropdown options, served from cache inside the freshness window."""
        if not force_refresh and self.filter_cache.is_fresh():
            logger.debug("Candidates: filter options served from cache")
            return self.filter_cache.options

        context = self.context_provider()
        if context is None or not context.user_id or context.effective_role is None:
            error = ValidationError("Missing required user context parameters")
            self.filter_cache.fail(str(error))
            raise error

        self.filter_cache.options.loading = True
        try:
            data = self.backend.rpc(
                FILTER_OPTIONS_RPC,
                {
                    "p_user_id": context.user_id,
                    "p_user_role": context.effective_role.value,
                    "p_organization_id": context.organization_id,
                },
            )
            if (
                not isinstance(data, dict)
                or "success" not in data
                or not isinstance(data.get("companies"), list)
                or not isinstance(data.get("job_titles"), list)
            ):
                raise BackendError("Invalid response format from server")
            if not data["success"]:
                raise BackendError(data.get("error") or "Failed to fetch filter options")
        except ConsoleError as e:
            with self._lock:
                self.filter_cache.fail(str(e))
            logger.error(f"❌ Candidates: filter options failed: {e}")
            raise

        with self._lock:
            options = self.filter_cache.store(
                companies=[FilterOption.from_raw(c) for c in data["companies"]],
                job_titles=[FilterOption.from_raw(t) for t in data["job_titles"]],
            )
        logger.info(
            f"Loaded filter options: {len(options.companies)} companies, "
            f"{len(options.job_titles)} job titles"
        )
        return options

    def clear_filter_options_cache(self) -> None:
        with self._lock:
            self.filter_cache.invalidate()

    # ------------------------------------------------------------------
    # Filters and pagination
    # ------------------------------------------------------------------

    def set_filters(self, filters: CandidateFilters) -> bool:
        """Replace the filters; the page resets to 1 only when they changed."""
        with self._lock:
            changed = filters.to_dict() != self.filters.to_dict()
            self.filters = filters
            if changed:
                self.pagination.current_page = 1
            return changed

    def apply_filters(
        self, filters: CandidateFilters, page: Optional[int] = None
    ) -> Dict[str, Any]:
        self.set_filters(filters)
        target = page or 1
        if not page:
            with self._lock:
                self.pagination.current_page = 1
        return self.fetch_with_access(filters, page=target)

    def set_filter(self, kind: str, value: Any) -> Dict[str, Any]:
        """Apply one toolbar change (sort preset, experience preset or field) and refetch."""
        with self._lock:
            updated = apply_candidate_filter_change(self.filters, kind, value)
        return self.apply_filters(updated)

    def clear_filters(self) -> Dict[str, Any]:
        """Back to the unfiltered first page."""
        self._search_debouncer.cancel()
        with self._lock:
            self.filters = CandidateFilters()
            self.pagination.current_page = 1
            self.experience_range = ExperienceRangeSelector()
        return self.fetch_with_access(self.filters, page=1)

    def search(self, term: str) -> None:
        """Record the term now and fetch once typing pauses."""
        term = get_search_sanitizer().sanitize_search(term)
        with self._lock:
            self.filters = self.filters.with_changes(search_term=term or None)
        self._search_debouncer(term)

    def _run_debounced_search(self, term: str) -> None:
        try:
            self.apply_filters(self.filters.with_changes(search_term=term or None))
        except ConsoleError as e:
            # already recorded in self.error by fetch_with_access
            logger.warning(f"Candidates search failed: {e}")

    def flush_search(self) -> Optional[Dict[str, Any]]:
        self._search_debouncer.flush()
        return self.page_view()

    @property
    def search_pending(self) -> bool:
        return self._search_debouncer.pending

    def go_to_page(self, page: int) -> Dict[str, Any]:
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        with self._lock:
            self.pagination.current_page = page
            filters = self.filters
        return self.fetch_with_access(filters, page=page)

    def set_page_size(self, page_size: int) -> Dict[str, Any]:
        if page_size < 1:
            raise ValidationError("Page size must be 1 or greater")
        with self._lock:
            self.pagination.page_size = page_size
            self.pagination.current_page = 1
            filters = self.filters
        return self.fetch_with_access(filters, page=1, limit=page_size)

    # filters modal: edit a temp copy, commit on apply

    def open_filter_editor(self) -> CandidateFilters:
        with self._lock:
            return self.staging.begin(self.filters)

    def stage_filters(self, **changes) -> CandidateFilters:
        with self._lock:
            return self.staging.stage(**changes)

    def apply_staged_filters(self) -> Dict[str, Any]:
        with self._lock:
            staged = self.staging.apply()
        return self.apply_filters(staged)

    def cancel_filter_editor(self) -> None:
        with self._lock:
            self.staging.cancel()

    def stage_experience_range(
        self, min_years: Optional[int] = None, max_years: Optional[int] = None
    ) -> ExperienceRangeSelector:
        """Move the slider handles; nothing is fetched until applied."""
        with self._lock:
            if min_years is not None:
                self.experience_range.set_min(min_years)
            if max_years is not None:
                self.experience_range.set_max(max_years)
            return self.experience_range

    def apply_experience_range(self) -> Dict[str, Any]:
        with self._lock:
            value = self.experience_range.apply()
        return self.set_filter("experience", value)

    def cancel_experience_range(self) -> ExperienceRangeSelector:
        with self._lock:
            self.experience_range.cancel()
            return self.experience_range

    # ------------------------------------------------------------------
    # Access and mutations
    # ------------------------------------------------------------------

    def _granted_access(self, job_id: str, user_id: str) -> bool:
        try:
            row = self.backend.select(
                JOB_ACCESS_TABLE,
                columns="access_type",
                match={"job_id": job_id, "user_id": user_id},
                single=True,
            )
        except BackendError as e:
            if e.is_not_found:
                return False
            raise BackendError(f"Failed to check job access: {e}", code=e.code) from e
        return bool(row) and row.get("access_type") == GRANTED

    def check_job_access(self, job_id: str) -> bool:
        """Admins and HR see every job; TAs need a granted access row."""
        context = self._require_context()
        if context.has_role(Role.ADMIN, Role.HR):
            has_access = True
        elif context.has_role(Role.TA):
            has_access = self._granted_access(job_id, context.user_id)
        else:
            has_access = False

        if has_access:
            with self._lock:
                if job_id not in self.accessible_jobs:
                    self.accessible_jobs.append(job_id)
        return has_access

    def update_application_status(self, application_id: str, status: str) -> Dict[str, Any]:
        context = self._require_context()
        with self._lock:
            self.error = None
        try:
            if not context.has_role(Role.ADMIN, Role.HR, Role.TA):
                raise PermissionDeniedError(
                    "Insufficient permissions to update application status"
                )

            if not context.has_role(Role.ADMIN, Role.HR):
                try:
                    application = self.backend.select(
                        APPLICATIONS_TABLE,
                        columns="job_id",
                        match={"id": application_id},
                        single=True,
                    )
                except BackendError as e:
                    raise BackendError(f"Failed to fetch application: {e}", code=e.code) from e
                job_id = application.get("job_id") if isinstance(application, dict) else None
                if not job_id:
                    raise BackendError("Failed to fetch application")
                if not self._granted_access(job_id, context.user_id):
                    raise PermissionDeniedError(
                        "You do not have access to update this application"
                    )

            valid = [s.value for s in ApplicationStatus]
            normalized = (status or "").lower()
            if normalized not in valid:
                raise ValidationError(
                    f"Invalid status: {status}. Must be one of: {', '.join(valid)}"
                )

            try:
                rows = self.backend.update(
                    APPLICATIONS_TABLE,
                    {"application_status": normalized, "updated_at": _now_iso()},
                    match={"id": application_id},
                )
            except BackendError as e:
                raise BackendError(
                    f"Failed to update application status: {e}", code=e.code
                ) from e
            if not rows:
                raise BackendError("No data returned from update operation")
        except ConsoleError as e:
            self._fail(e)
            raise

        row = rows[0] if isinstance(rows, list) else rows
        result = {
            "application_id": row.get("id", application_id),
            "status": row.get("application_status", normalized),
            "updated_at": row.get("updated_at"),
        }
        with self._lock:
            for candidate in self.candidates:
                if candidate.application_id == application_id:
                    candidate.application_status = result["status"]
                    candidate.updated_at = result["updated_at"]
            current = self.current_candidate
            if current is not None and current.application_id == application_id:
                current.application_status = result["status"]
                current.updated_at = result["updated_at"]

        logger.info(f"✅ Application {application_id} moved to {result['status']}")
        return result

    def delete_application(self, application_id: str) -> str:
        context = self._require_context()
        with self._lock:
            self.loading = True
            self.error = None
        try:
            if not context.has_role(Role.ADMIN, Role.HR):
                raise PermissionDeniedError(
                    "You do not have permission to delete applications"
                )
            try:
                self.backend.delete(APPLICATIONS_TABLE, match={"id": application_id})
            except BackendError as e:
                raise BackendError(f"Failed to delete application: {e}", code=e.code) from e
        except ConsoleError as e:
            self._fail(e)
            raise

        with self._lock:
            self.loading = False
            self.candidates = [
                c for c in self.candidates if c.application_id != application_id
            ]
            if self.current_candidate and self.current_candidate.application_id == application_id:
                self.current_candidate = None
        logger.info(f"🗑️ Deleted application {application_id}")
        return application_id

    # ------------------------------------------------------------------
    # Selection and views
    # ------------------------------------------------------------------

    def set_current_candidate(self, application_id: str) -> Optional[CandidateWithApplication]:
        with self._lock:
            self.current_candidate = next(
                (c for c in self.candidates if c.application_id == application_id), None
            )
            return self.current_candidate

    def clear_current_candidate(self) -> None:
        with self._lock:
            self.current_candidate = None

    def clear_error(self) -> None:
        with self._lock:
            self.error = None

    def page_view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "candidates": [c.to_dict() for c in self.candidates],
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
                "loading": self.loading,
                "filters": self.filters.to_dict(),
                "sort_preset": self.filters.sort_preset,
                "experience_preset": self.filters.experience_preset,
                "experience_range": {
                    "label": self.experience_range.label,
                    "temp_label": self.experience_range.temp_label,
                    "applied": list(self.experience_range.applied),
                    "temp": list(self.experience_range.temp),
                },
                "pagination": self.pagination.to_dict(),
                "filter_options": self.filter_cache.options.to_dict(),
                "current_candidate": (
                    self.current_candidate.to_dict() if self.current_candidate else None
                ),
                "last_fetched": self.last_fetched,
                "accessible_jobs": list(self.accessible_jobs),
                "search_pending": self.search_pending,
            }

    def teardown(self) -> None:
        self._search_debouncer.close()
