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
Organisation endpoints: members, roles and job access.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hiring_console.api.dependencies import get_workspace
from hiring_console.api.models import JobAccessRequest, MemberRoleRequest, RoleChangeRequest
from hiring_console.core.errors import ValidationError
from hiring_console.core.models import UserContext
from hiring_console.core.organisation import validate_member_form
from hiring_console.core.workspace import Workspace

router = APIRouter(prefix="/organisation", tags=["organisation"])


def _context(workspace: Workspace) -> UserContext:
    context = workspace.auth.context()
    if context is None or not context.organization_id:
        raise ValidationError("Organization ID is required")
    return context


def _members_payload(workspace: Workspace) -> dict:
    return {
        "success": True,
        **workspace.organisation.state_view(),
        "rows": workspace.role_changes.view(),
        "pending_changes": workspace.role_changes.pending_view(),
    }


def _form_errors(request: MemberRoleRequest) -> Optional[JSONResponse]:
    errors = validate_member_form(request.name or "", request.email, request.role)
    if request.name is None:
        errors.pop("name", None)
    if not errors:
        return None
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Please correct the form", "field_errors": errors},
    )


@router.get("/members")
def list_members(role: Optional[str] = None, workspace: Workspace = Depends(get_workspace)):
    """Fetch members with their job access; ``role`` narrows the result."""
    context = _context(workspace)
    workspace.organisation.fetch_members(context.organization_id)
    payload = _members_payload(workspace)
    if role:
        payload["members"] = [m.to_dict() for m in workspace.organisation.members_by_role(role)]
    return payload


@router.get("/members/active")
def active_members(workspace: Workspace = Depends(get_workspace)):
    return {"members": [m.to_dict() for m in workspace.organisation.active_members()]}


@router.post("/members/roles")
def add_member_role(request: MemberRoleRequest, workspace: Workspace = Depends(get_workspace)):
    invalid = _form_errors(request)
    if invalid is not None:
        return invalid
    context = _context(workspace)
    workspace.organisation.add_member_role(
        request.email, request.role, context.organization_id, context.user_id
    )
    return _members_payload(workspace)


@router.put("/members/roles")
def update_member_role(request: MemberRoleRequest, workspace: Workspace = Depends(get_workspace)):
    invalid = _form_errors(request)
    if invalid is not None:
        return invalid
    context = _context(workspace)
    workspace.organisation.update_member_role(
        request.email, request.role, context.user_id, context.organization_id
    )
    return _members_payload(workspace)


@router.get("/role-changes")
def pending_role_changes(workspace: Workspace = Depends(get_workspace)):
    return {
        "has_changes": workspace.role_changes.has_changes,
        "pending_changes": workspace.role_changes.pending_view(),
        "rows": workspace.role_changes.view(),
    }


@router.post("/role-changes")
def stage_role_change(request: RoleChangeRequest, workspace: Workspace = Depends(get_workspace)):
    """Change a member's role locally; nothing is saved until ``/save``."""
    workspace.role_changes.stage(request.member_id, request.role)
    return pending_role_changes(workspace)


@router.post("/role-changes/save")
def save_role_changes(workspace: Workspace = Depends(get_workspace)):
    context = _context(workspace)
    result = workspace.role_changes.save(context.user_id, context.organization_id)
    return {**result, "rows": workspace.role_changes.view()}


@router.delete("/role-changes")
def discard_role_changes(workspace: Workspace = Depends(get_workspace)):
    workspace.role_changes.discard()
    return pending_role_changes(workspace)


@router.post("/access/job-titles")
def grant_by_job_titles(request: JobAccessRequest, workspace: Workspace = Depends(get_workspace)):
    context = _context(workspace)
    workspace.organisation.grant_access_by_job_titles(
        request.member_id, request.values, context.user_id, context.organization_id
    )
    return _members_payload(workspace)


@router.post("/access/companies")
def grant_by_companies(request: JobAccessRequest, workspace: Workspace = Depends(get_workspace)):
    context = _context(workspace)
    workspace.organisation.grant_access_by_companies(
        request.member_id, request.values, context.user_id, context.organization_id
    )
    return _members_payload(workspace)
