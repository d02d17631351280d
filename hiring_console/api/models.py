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

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Error message")
    login_url: Optional[str] = Field(
        None, description="Where to sign in again, set on authentication errors"
    )


class HealthResponse(BaseModel):
    status: str = Field("ok", description="Service status")
    timestamp: datetime = Field(default_factory=datetime.now)
    services: Dict[str, bool] = Field(
        default_factory=dict, description="Service availability"
    )


# Auth


class LoginRequest(BaseModel):
    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")


class UserStateResponse(BaseModel):
    success: bool = Field(True, description="Whether the request was successful")
    user: Optional[Dict[str, Any]] = Field(None, description="Authenticated user")
    profile: Optional[Dict[str, Any]] = Field(None, description="User profile")
    organization: Optional[Dict[str, Any]] = Field(None, description="User's organization")
    roles: List[Dict[str, Any]] = Field(default_factory=list, description="Role assignments")
    role_names: List[str] = Field(default_factory=list, description="Active role names")
    permissions: Dict[str, Any] = Field(
        default_factory=dict, description="Merged permission map of active roles"
    )
    is_authenticated: bool = Field(False, description="Whether the user is signed in")
    error: Optional[str] = Field(None, description="Error message if any")


# Candidates


class CandidateFiltersRequest(BaseModel):
    filters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Filter fields (candidate_name, status, company_name, job_title, "
        "min_experience, max_experience, date_from, date_to, job_id, sort_by, "
        "sort_order, search_term)",
    )
    page: Optional[int] = Field(None, ge=1, description="Page to load, 1 when omitted")


class ExperienceRangeRequest(BaseModel):
    min_years: Optional[int] = Field(None, ge=0, description="Lower slider handle")
    max_years: Optional[int] = Field(None, ge=0, description="Upper slider handle")


class FilterChangeRequest(BaseModel):
    kind: str = Field(..., description="Filter being changed, e.g. 'sortBy', 'experience', 'status'")
    value: Any = Field(None, description="New value; empty clears the filter")


class SearchRequest(BaseModel):
    term: str = Field("", description="Search text")
    immediate: bool = Field(
        False, description="Run the search now instead of waiting for typing to pause"
    )


class PageRequest(BaseModel):
    page: int = Field(..., ge=1, description="Page number")


class PageSizeRequest(BaseModel):
    page_size: int = Field(..., ge=1, le=200, description="Rows per page")


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="New status")


class CandidatePageResponse(BaseModel):
    success: bool = Field(True, description="Whether the request was successful")
    candidates: List[Dict[str, Any]] = Field(default_factory=list, description="Candidate rows")
    total_count: int = Field(0, description="Total rows across all pages")
    current_page: int = Field(1, description="Current page")
    total_pages: int = Field(0, description="Number of pages")
    error: Optional[str] = Field(None, description="Error message if any")


# Jobs


class JobFiltersRequest(BaseModel):
    filters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Filter fields (status, location, company, job_type, salary_min, "
        "salary_max, experience_min, experience_max)",
    )
    page: int = Field(1, ge=1, description="Page to load")


class ViewModeRequest(BaseModel):
    view_mode: str = Field(..., description="'board' or 'list'")


class SortRequest(BaseModel):
    sort_by: str = Field(..., description="'recent', 'az' or 'za'")


class JobUpdateRequest(BaseModel):
    updates: Dict[str, Any] = Field(..., description="Editable job fields to change")


# Organisation


class MemberRoleRequest(BaseModel):
    name: Optional[str] = Field(None, description="Member name, validated when present")
    email: str = Field(..., description="Member email")
    role: str = Field(..., description="Role name: admin, hr or ta")


class RoleChangeRequest(BaseModel):
    member_id: str = Field(..., description="Member user id")
    role: str = Field(..., description="New role name")


class JobAccessRequest(BaseModel):
    member_id: str = Field(..., description="Member user id")
    values: List[str] = Field(..., description="Job titles or companies to grant")


class NotificationPreferencesModel(BaseModel):
    applications: bool = Field(True, description="New applications")
    weekly_summary: bool = Field(True, description="Weekly hiring summary")
    product_updates: bool = Field(False, description="Product updates")
    industry_updates: bool = Field(True, description="Industry updates")
    community_events: bool = Field(False, description="Community events")
    other_notifications: bool = Field(True, description="Everything else")


# Dashboard


class ChartFilterRequest(BaseModel):
    company_name: Optional[str] = Field(None, description="Company to chart")
    job_title: Optional[str] = Field(None, description="Job title to chart")


# Preferences


class ColumnModel(BaseModel):
    key: str = Field(..., description="Column key")
    label: Optional[str] = Field(None, description="Column header")
    visible: bool = Field(True, description="Whether the column is shown")


class ColumnsUpdateRequest(BaseModel):
    columns: List[ColumnModel] = Field(..., description="Full column list in display order")


class ColumnsResponse(BaseModel):
    success: bool = Field(True, description="Whether the request was successful")
    table: str = Field(..., description="Table name")
    columns: List[ColumnModel] = Field(default_factory=list, description="Columns")


class ColumnEditorResponse(ColumnsResponse):
    options: List[ColumnModel] = Field(
        default_factory=list, description="Columns matching the panel search"
    )
    search_term: str = Field("", description="Current panel search")
    changed: List[str] = Field(default_factory=list, description="Keys toggled since opening")
