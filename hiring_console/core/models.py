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
Client-side mirrors of backend rows.

These types carry no business rules: the backend owns access control and
persistence. They only normalise raw RPC payloads into predictable shapes.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
import math
from typing import Any, Dict, List, Optional


class Role(Enum):
    """Organization roles, highest privilege first."""

    ADMIN = "admin"
    HR = "hr"
    TA = "ta"


ROLE_PRECEDENCE = [Role.ADMIN, Role.HR, Role.TA]


class ApplicationStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class JobStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class AccessType(Enum):
    ALL_JOBS = "all_jobs"
    ASSIGNED = "assigned"


DEFAULT_STATUSES = ["accepted", "pending", "rejected"]


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class UserContext:
    """Who is asking: drives every access-scoped RPC."""

    user_id: str
    organization_id: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    @property
    def effective_role(self) -> Optional[Role]:
        """Resolve the single role sent to the backend (admin > hr > ta)."""
        names = {r.lower() for r in self.roles if isinstance(r, str)}
        for role in ROLE_PRECEDENCE:
            if role.value in names:
                return role
        return None

    def has_role(self, *roles: Role) -> bool:
        names = {r.lower() for r in self.roles if isinstance(r, str)}
        return any(role.value in names for role in roles)


@dataclass
class CandidateWithApplication:
    """A candidate profile joined with one of their job applications."""

    application_id: str
    id: str
    name: str = ""
    applied_date: Optional[str] = None
    application_status: str = ApplicationStatus.PENDING.value
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    auth_id: Optional[str] = None
    candidate_email: Optional[str] = None
    mobile_number: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None
    disability: Optional[bool] = None
    resume_link: Optional[str] = None
    portfolio_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    additional_doc_link: Optional[str] = None
    current_ctc: Optional[float] = None
    expected_ctc: Optional[float] = None
    notice_period: Optional[str] = None
    dob: Optional[str] = None

    job_id: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    job_location: Optional[str] = None
    job_location_type: Optional[str] = None
    job_type: Optional[str] = None
    working_type: Optional[str] = None
    min_experience_needed: Optional[float] = None
    max_experience_needed: Optional[float] = None
    min_salary: Optional[float] = None
    max_salary: Optional[float] = None
    company_logo_url: Optional[str] = None
    job_description: Optional[str] = None
    application_deadline: Optional[str] = None
    job_status: Optional[str] = None

    experience_years: Optional[float] = None
    education: List[Dict[str, Any]] = field(default_factory=list)
    experience: List[Dict[str, Any]] = field(default_factory=list)
    has_access: bool = False

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "CandidateWithApplication":
        """Build from a ``fetch_candidates_with_access`` row."""
        data = dict(raw)
        data["id"] = data.pop("candidate_id", data.get("id"))
        data["name"] = data.pop("candidate_name", data.get("name")) or ""
        data["has_access"] = bool(data.pop("hasAccess", data.get("has_access", False)))
        data["education"] = data.get("education") or []
        data["experience"] = data.get("experience") or []
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Job:
    id: str
    title: str = ""
    company_name: Optional[str] = None
    location: Optional[str] = None
    job_location_type: Optional[str] = None
    job_type: Optional[str] = None
    working_type: Optional[str] = None
    min_experience_needed: Optional[float] = None
    max_experience_needed: Optional[float] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    status: JobStatus = JobStatus.ACTIVE
    description: Optional[str] = None
    company_logo_url: Optional[str] = None
    application_deadline: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    application_count: int = 0

    def __post_init__(self):
        """Convert string statuses to the enum."""
        if isinstance(self.status, str):
            try:
                self.status = JobStatus(self.status.lower())
            except ValueError:
                self.status = JobStatus.ACTIVE

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "Job":
        data = dict(raw)
        # rows from the jobs table use min_salary/max_salary
        data.setdefault("salary_min", data.get("min_salary"))
        data.setdefault("salary_max", data.get("max_salary"))
        data["status"] = data.get("status") or JobStatus.ACTIVE.value
        data["application_count"] = data.get("application_count") or 0
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class FilterOption:
    value: str
    label: str
    logo_url: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "FilterOption":
        if isinstance(raw, str):
            return cls(value=raw, label=raw)
        return cls(
            value=str(raw.get("value", "")),
            label=str(raw.get("label", raw.get("value", ""))),
            logo_url=raw.get("logo_url"),
        )


@dataclass
class JobAccess:
    job_id: str
    title: str
    company_name: str
    status: str
    access_type: AccessType = AccessType.ASSIGNED
    granted_by: Optional[str] = None
    granted_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.access_type, str):
            self.access_type = AccessType(self.access_type)

    @classmethod
    def parse(cls, raw: Any) -> Optional["JobAccess"]:
        """Return a JobAccess for a well-formed entry, None otherwise."""
        if not isinstance(raw, dict):
            return None
        for key in ("job_id", "title", "company_name", "status"):
            if not isinstance(raw.get(key), str):
                return None
        if raw.get("access_type") not in {a.value for a in AccessType}:
            return None
        return cls(**_known_fields(cls, raw))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["access_type"] = self.access_type.value
        return data


@dataclass
class OrgMember:
    user_id: str
    email: str
    full_name: Optional[str] = None
    is_active: bool = True
    role_id: Optional[str] = None
    role_name: str = Role.TA.value
    role_display_name: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[str] = None
    job_access: List[JobAccess] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "OrgMember":
        data = dict(raw)
        entries = data.get("job_access")
        if not isinstance(entries, list):
            entries = []
        data["job_access"] = [
            access for access in (JobAccess.parse(e) for e in entries) if access
        ]
        data["is_active"] = bool(data.get("is_active", True))
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["job_access"] = [a.to_dict() for a in self.job_access]
        return data


@dataclass
class Pagination:
    """Page bookkeeping for a server-paginated list."""

    current_page: int = 1
    page_size: int = 50
    total_items: int = 0
    total_pages: int = 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    def update(self, total_items: int, current_page: int, total_pages: Optional[int] = None):
        self.total_items = total_items or 0
        self.current_page = current_page or 1
        if total_pages is None:
            total_pages = math.ceil(self.total_items / self.page_size) if self.page_size else 0
        self.total_pages = total_pages or 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_page": self.current_page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_previous_page": self.has_previous_page,
        }
