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
Jobs screen endpoints.
"""

from fastapi import APIRouter, Depends

from hiring_console.api.dependencies import get_workspace
from hiring_console.api.models import (
    FilterChangeRequest,
    JobFiltersRequest,
    JobUpdateRequest,
    PageRequest,
    PageSizeRequest,
    SearchRequest,
    SortRequest,
    StatusUpdateRequest,
    ViewModeRequest,
)
from hiring_console.core.filters import JobFilters
from hiring_console.core.workspace import Workspace

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/")
def list_jobs(page: int = 1, workspace: Workspace = Depends(get_workspace)):
    return workspace.jobs.go_to_page(page)


@router.get("/state")
def jobs_state(workspace: Workspace = Depends(get_workspace)):
    """Board/list state including the client-side filtered and sorted cards."""
    return workspace.jobs.state_view()


@router.get("/filter-options")
def filter_options(force_refresh: bool = False, workspace: Workspace = Depends(get_workspace)):
    options = workspace.jobs.fetch_filter_options(force_refresh=force_refresh)
    return {"success": True, **options.to_dict()}


@router.delete("/filter-options")
def clear_filter_options(workspace: Workspace = Depends(get_workspace)):
    workspace.jobs.clear_filter_options_cache()
    return {"success": True}


@router.post("/filters")
def apply_filters(request: JobFiltersRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.jobs.apply_filters(JobFilters.from_dict(request.filters), page=request.page)


@router.patch("/filters")
def change_filter(request: FilterChangeRequest, workspace: Workspace = Depends(get_workspace)):
    """Queue a multi-select change; it is applied once input settles."""
    workspace.jobs.set_filter(request.kind, request.value)
    return {"success": True, "pending": workspace.jobs.input_pending}


@router.delete("/filters")
def clear_filters(workspace: Workspace = Depends(get_workspace)):
    return workspace.jobs.clear_filters()


@router.post("/search")
def search(request: SearchRequest, workspace: Workspace = Depends(get_workspace)):
    workspace.jobs.search(request.term)
    if request.immediate:
        return workspace.jobs.flush_pending()
    return {"success": True, "pending": workspace.jobs.input_pending}


@router.post("/flush")
def flush_pending(workspace: Workspace = Depends(get_workspace)):
    """Run queued filter and search changes now."""
    return workspace.jobs.flush_pending()


@router.post("/page")
def go_to_page(request: PageRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.jobs.go_to_page(request.page)


@router.post("/page-size")
def set_page_size(request: PageSizeRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.jobs.set_page_size(request.page_size)


@router.put("/view-mode")
def set_view_mode(request: ViewModeRequest, workspace: Workspace = Depends(get_workspace)):
    return {"success": True, "view_mode": workspace.jobs.set_view_mode(request.view_mode)}


@router.put("/sort")
def set_sort(request: SortRequest, workspace: Workspace = Depends(get_workspace)):
    workspace.jobs.set_sort(request.sort_by)
    return {"success": True, "sort_by": request.sort_by, "jobs": workspace.jobs.visible_jobs()}


@router.get("/{job_id}")
def job_details(job_id: str, workspace: Workspace = Depends(get_workspace)):
    """Job metadata plus the first page of its applicants."""
    return {"success": True, "job": workspace.jobs.job_details(job_id, workspace.candidates)}


@router.patch("/{job_id}")
def update_job(job_id: str, request: JobUpdateRequest, workspace: Workspace = Depends(get_workspace)):
    job = workspace.jobs.update_job(job_id, request.updates)
    return {"success": True, "job": job.to_dict()}


@router.put("/{job_id}/status")
def update_status(
    job_id: str, request: StatusUpdateRequest, workspace: Workspace = Depends(get_workspace)
):
    job = workspace.jobs.update_status(job_id, request.status)
    return {"success": True, "job": job.to_dict()}


@router.delete("/{job_id}")
def delete_job(job_id: str, workspace: Workspace = Depends(get_workspace)):
    return {"success": True, "job_id": workspace.jobs.delete_job(job_id)}
