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

from fastapi import APIRouter, Depends

from hiring_console.api.dependencies import get_workspace
from hiring_console.api.models import ChartFilterRequest
from hiring_console.core.workspace import Workspace

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/")
def dashboard(workspace: Workspace = Depends(get_workspace)):
    """Stat cards, applications chart and top jobs/companies."""
    return {"success": True, **workspace.dashboard.fetch_dashboard()}


@router.post("/applications-over-time")
def applications_over_time(
    request: ChartFilterRequest, workspace: Workspace = Depends(get_workspace)
):
    """Redraw the chart for one company or one job title; neither resets it."""
    chart_data = workspace.dashboard.fetch_applications_over_time(
        company_name=request.company_name, job_title=request.job_title
    )
    return {
        "success": True,
        "chart_data": chart_data,
        "selected_company": workspace.dashboard.selected_company,
        "selected_job": workspace.dashboard.selected_job,
    }
