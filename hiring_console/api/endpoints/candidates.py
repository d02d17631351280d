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
Candidates screen endpoints.
"""

from fastapi import APIRouter, Depends

from hiring_console.api.dependencies import get_workspace
from hiring_console.api.models import (
    CandidateFiltersRequest,
    CandidatePageResponse,
    ExperienceRangeRequest,
    FilterChangeRequest,
    PageRequest,
    PageSizeRequest,
    SearchRequest,
    StatusUpdateRequest,
)
from hiring_console.core.errors import BackendError
from hiring_console.core.filters import CandidateFilters, ExperienceRangeSelector
from hiring_console.core.workspace import Workspace
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("/", response_model=CandidatePageResponse)
def list_candidates(page: int = 1, workspace: Workspace = Depends(get_workspace)):
    """Load one page with the currently applied filters."""
    return workspace.candidates.go_to_page(page)


@router.get("/state")
def candidates_state(workspace: Workspace = Depends(get_workspace)):
    """Everything the candidates screen renders, without a backend call."""
    return workspace.candidates.state_view()


@router.get("/filter-options")
def filter_options(force_refresh: bool = False, workspace: Workspace = Depends(get_workspace)):
    options = workspace.candidates.fetch_filter_options(force_refresh=force_refresh)
    return {"success": True, **options.to_dict()}


@router.delete("/filter-options")
def clear_filter_options(workspace: Workspace = Depends(get_workspace)):
    workspace.candidates.clear_filter_options_cache()
    return {"success": True}


@router.post("/filters", response_model=CandidatePageResponse)
def apply_filters(request: CandidateFiltersRequest, workspace: Workspace = Depends(get_workspace)):
    filters = CandidateFilters.from_dict(request.filters)
    return workspace.candidates.apply_filters(filters, page=request.page)


@router.patch("/filters", response_model=CandidatePageResponse)
def change_filter(request: FilterChangeRequest, workspace: Workspace = Depends(get_workspace)):
    """Apply a single toolbar change such as a sort or experience preset."""
    return workspace.candidates.set_filter(request.kind, request.value)


@router.delete("/filters", response_model=CandidatePageResponse)
def clear_filters(workspace: Workspace = Depends(get_workspace)):
    return workspace.candidates.clear_filters()


@router.post("/filters/editor")
def open_filter_editor(workspace: Workspace = Depends(get_workspace)):
    return {"success": True, "filters": workspace.candidates.open_filter_editor().to_dict()}


@router.patch("/filters/editor")
def stage_filters(request: CandidateFiltersRequest, workspace: Workspace = Depends(get_workspace)):
    CandidateFilters.from_dict(request.filters)  # rejects unknown fields
    staged = workspace.candidates.stage_filters(**request.filters)
    return {"success": True, "filters": staged.to_dict()}


@router.post("/filters/editor/apply", response_model=CandidatePageResponse)
def apply_staged_filters(workspace: Workspace = Depends(get_workspace)):
    return workspace.candidates.apply_staged_filters()


@router.delete("/filters/editor")
def cancel_filter_editor(workspace: Workspace = Depends(get_workspace)):
    workspace.candidates.cancel_filter_editor()
    return {"success": True}


def _experience_range_payload(selector: ExperienceRangeSelector) -> dict:
    return {
        "success": True,
        "label": selector.label,
        "temp_label": selector.temp_label,
        "applied": list(selector.applied),
        "temp": list(selector.temp),
    }


@router.patch("/experience-range")
def stage_experience_range(request: ExperienceRangeRequest, workspace: Workspace = Depends(get_workspace)):
    """Move the experience slider handles without fetching."""
    selector = workspace.candidates.stage_experience_range(request.min_years, request.max_years)
    return _experience_range_payload(selector)


@router.post("/experience-range/apply", response_model=CandidatePageResponse)
def apply_experience_range(workspace: Workspace = Depends(get_workspace)):
    return workspace.candidates.apply_experience_range()


@router.delete("/experience-range")
def cancel_experience_range(workspace: Workspace = Depends(get_workspace)):
    return _experience_range_payload(workspace.candidates.cancel_experience_range())


@router.post("/search")
def search(request: SearchRequest, workspace: Workspace = Depends(get_workspace)):
    """
    Record a search term. The fetch runs once typing pauses unless
    ``immediate`` is set.
    """
    workspace.candidates.search(request.term)
    if request.immediate:
        return workspace.candidates.flush_search()
    return {"success": True, "pending": workspace.candidates.search_pending}


@router.post("/page", response_model=CandidatePageResponse)
def go_to_page(request: PageRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.candidates.go_to_page(request.page)


@router.post("/page-size", response_model=CandidatePageResponse)
def set_page_size(request: PageSizeRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.candidates.set_page_size(request.page_size)


@router.get("/jobs/{job_id}/access")
def check_job_access(job_id: str, workspace: Workspace = Depends(get_workspace)):
    return {"job_id": job_id, "has_access": workspace.candidates.check_job_access(job_id)}


@router.get("/{application_id}")
def get_candidate(application_id: str, workspace: Workspace = Depends(get_workspace)):
    """Select a candidate from the loaded page."""
    candidate = workspace.candidates.set_current_candidate(application_id)
    if candidate is None:
        raise BackendError("Candidate not found", status_code=404)
    return {"success": True, "candidate": candidate.to_dict()}


@router.put("/{application_id}/status")
def update_status(
    application_id: str,
    request: StatusUpdateRequest,
    workspace: Workspace = Depends(get_workspace),
):
    result = workspace.candidates.update_application_status(application_id, request.status)
    return {"success": True, **result}


@router.delete("/{application_id}")
def delete_application(application_id: str, workspace: Workspace = Depends(get_workspace)):
    deleted = workspace.candidates.delete_application(application_id)
    return {"success": True, "application_id": deleted}
