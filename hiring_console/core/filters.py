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
Filter composition for the candidates and jobs lists.

This module provides:
- Filter state types and their mapping onto RPC parameters
- Sort and experience presets used by the list toolbars
- Temp-vs-applied staging for the filters modal and experience slider
- Client-side search, filtering and sorting of a loaded jobs page
"""

from dataclasses import asdict, dataclass, field, fields, replace
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from hiring_console.core.errors import ValidationError
from hiring_console.core.models import Job

ALL = "All"

CANDIDATE_SORT_FIELDS = {
    "name",
    "application_status",
    "experience_years",
    "company_name",
    "applied_date",
    "created_at",
    "updated_at",
    "current_ctc",
    "expected_ctc",
}
SORT_ORDERS = {"asc", "desc"}
DEFAULT_SORT_BY = "applied_date"
DEFAULT_SORT_ORDER = "desc"

SORT_PRESETS = {
    "date_desc": ("applied_date", "desc"),
    "date_asc": ("applied_date", "asc"),
    "name_asc": ("name", "asc"),
    "name_desc": ("name", "desc"),
}
DEFAULT_SORT_PRESET = "date_desc"

EXPERIENCE_PRESETS = {
    "0-2": (0, 2),
    "3-5": (3, 5),
    "6-8": (6, 8),
    "9+": (9, None),
}
EXPERIENCE_RANGE = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+)|(\+))\s*$")


def prepare_array_filter(value: Union[str, Sequence[str], None]) -> Optional[List[str]]:
    """
    Normalise a multi-select value for the backend.

    Empty strings and the "All" sentinel are dropped; a lone string becomes a
    one-element list; nothing left means no filter at all.
    """
    if not value:
        return None
    if isinstance(value, str):
        if value != ALL and value.strip():
            return [value]
        return None
    cleaned = [
        item for item in value if isinstance(item, str) and item.strip() and item != ALL
    ]
    return cleaned or None


def clean_filters(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset entries (None and empty strings)."""
    return {k: v for k, v in values.items() if v is not None and v != ""}


@dataclass
class CandidateFilters:
    """Applied filter state for the candidates list."""

    candidate_name: Optional[str] = None
    status: List[str] = field(default_factory=list)
    company_name: List[str] = field(default_factory=list)
    job_title: List[str] = field(default_factory=list)
    min_experience: Optional[float] = None
    max_experience: Optional[float] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    job_id: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    search_term: Optional[str] = None

    def __post_init__(self):
        for name in ("status", "company_name", "job_title"):
            value = getattr(self, name)
            if value is None:
                setattr(self, name, [])
            elif isinstance(value, str):
                setattr(self, name, [value])
            else:
                setattr(self, name, list(value))
        if self.sort_by is not None and self.sort_by not in CANDIDATE_SORT_FIELDS:
            raise ValidationError(f"Unsupported sort field: {self.sort_by}")
        if self.sort_order is not None and self.sort_order not in SORT_ORDERS:
            raise ValidationError(f"Unsupported sort order: {self.sort_order}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CandidateFilters":
        names = {f.name for f in fields(cls)}
        unknown = set(data or {}) - names
        if unknown:
            raise ValidationError(f"Unknown candidate filters: {', '.join(sorted(unknown))}")
        return cls(**clean_filters(data or {}))

    def to_dict(self) -> Dict[str, Any]:
        """Set filters only, for display and change detection."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v not in (None, "", [])}

    def is_empty(self) -> bool:
        return not self.to_dict()

    def with_changes(self, **changes) -> "CandidateFilters":
        return replace(self, **changes)

    def name_filter(self) -> Optional[str]:
        # the toolbar search box and the modal's name field feed the same RPC argument
        return self.search_term or self.candidate_name or None

    def to_rpc_params(self) -> Dict[str, Any]:
        """Map onto ``fetch_candidates_with_access`` arguments."""
        return {
            "p_application_status": prepare_array_filter(self.status),
            "p_company_filter": prepare_array_filter(self.company_name),
            "p_job_title_filter": prepare_array_filter(self.job_title),
            "p_sort_by": self.sort_by or DEFAULT_SORT_BY,
            "p_sort_order": self.sort_order or DEFAULT_SORT_ORDER,
            "p_name_filter": self.name_filter(),
            # zero means "no bound" on the backend
            "p_min_experience": self.min_experience or None,
            "p_max_experience": self.max_experience or None,
            "p_date_from": self.date_from or None,
            "p_date_to": self.date_to or None,
            "p_job_id": self.job_id or None,
        }

    @property
    def sort_preset(self) -> str:
        """Toolbar sort value for the current sort state."""
        if not self.sort_by or not self.sort_order:
            return DEFAULT_SORT_PRESET
        for preset, pair in SORT_PRESETS.items():
            if pair == (self.sort_by, self.sort_order):
                return preset
        return DEFAULT_SORT_PRESET

    @property
    def experience_preset(self) -> str:
        """Toolbar experience value, empty when no preset matches."""
        for preset, (low, high) in EXPERIENCE_PRESETS.items():
            if self.min_experience == low and self.max_experience == high:
                return preset
        return ""


def parse_experience_value(value: Any) -> Tuple[Optional[int], Optional[int]]:
    """
    Bounds for an experience toolbar value: a preset, a slider range such
    as ``"4-7"``, or ``"N+"`` for an open maximum. Anything else clears both.
    """
    if not isinstance(value, str):
        return None, None
    if value in EXPERIENCE_PRESETS:
        return EXPERIENCE_PRESETS[value]
    match = EXPERIENCE_RANGE.match(value)
    if not match:
        return None, None
    low = int(match.group(1))
    if match.group(3):
        return low, None
    high = int(match.group(2))
    if high < low:
        return None, None
    return low, high


def apply_candidate_filter_change(
    filters: CandidateFilters, kind: str, value: Any
) -> CandidateFilters:
    """
    Apply a single toolbar change and return the new filter state.

    ``sortBy`` and ``experience`` take preset values; any other kind names a
    filter field directly and an empty value clears it.
    """
    if kind in ("sortBy", "sort"):
        if value not in SORT_PRESETS:
            return filters
        sort_by, sort_order = SORT_PRESETS[value]
        return filters.with_changes(sort_by=sort_by, sort_order=sort_order)

    if kind == "experience":
        low, high = parse_experience_value(value)
        return filters.with_changes(min_experience=low, max_experience=high)

    names = {f.name for f in fields(CandidateFilters)}
    if kind not in names:
        raise ValidationError(f"Unknown candidate filter: {kind}")
    if kind in ("status", "company_name", "job_title"):
        return filters.with_changes(**{kind: prepare_array_filter(value) or []})
    return filters.with_changes(**{kind: value if value not in ("", None) else None})


class FilterStaging:
    """
    Temp buffer behind the filters modal.

    Edits go to the temp copy; the applied filters only change when the
    caller takes the result of ``apply``.
    """

    def __init__(self):
        self.temp: Optional[CandidateFilters] = None

    @property
    def is_open(self) -> bool:
        return self.temp is not None

    def begin(self, applied: CandidateFilters) -> CandidateFilters:
        self.temp = replace(applied)
        return self.temp

    def stage(self, **changes) -> CandidateFilters:
        if self.temp is None:
            raise ValidationError("Filter editor is not open")
        self.temp = self.temp.with_changes(**changes)
        return self.temp

    def apply(self) -> CandidateFilters:
        if self.temp is None:
            raise ValidationError("Filter editor is not open")
        staged, self.temp = self.temp, None
        return staged

    def cancel(self) -> None:
        self.temp = None


class ExperienceRangeSelector:
    """Two-handle experience slider with staged (temp) and applied ranges."""

    MIN_YEARS = 0
    MAX_YEARS = 15

    def __init__(self, applied_min: int = MIN_YEARS, applied_max: int = MAX_YEARS):
        self.applied = (applied_min, applied_max)
        self.temp = self.applied

    def set_min(self, value: int) -> None:
        _, high = self.temp
        self.temp = (min(max(self.MIN_YEARS, value), high), high)

    def set_max(self, value: int) -> None:
        low, _ = self.temp
        self.temp = (low, max(min(self.MAX_YEARS, value), low))

    @staticmethod
    def _label(low: int, high: int) -> str:
        if low == ExperienceRangeSelector.MIN_YEARS and high == ExperienceRangeSelector.MAX_YEARS:
            return "Years of Exp."
        if high >= ExperienceRangeSelector.MAX_YEARS:
            return f"{low}+ years"
        if low == high:
            return f"{low} year{'' if low == 1 else 's'}"
        return f"{low}-{high} years"

    @property
    def label(self) -> str:
        return self._label(*self.applied)

    @property
    def temp_label(self) -> str:
        return self._label(*self.temp)

    def apply(self) -> str:
        """Commit the temp range and return its filter value ("", "N+" or "a-b")."""
        self.applied = self.temp
        low, high = self.applied
        if low == self.MIN_YEARS and high == self.MAX_YEARS:
            return ""
        if high >= self.MAX_YEARS:
            return f"{low}+"
        return f"{low}-{high}"

    def cancel(self) -> None:
        self.temp = self.applied


# ----------------------------------------------------------------------
# Jobs
# ----------------------------------------------------------------------

JOB_SORTS = {"recent", "az", "za"}
JOB_SEARCH_FIELDS = (
    "title",
    "company_name",
    "location",
    "id",
    "job_type",
    "working_type",
    "description",
)

SALARY_FLOOR = 0
SALARY_CEILING = 5_000_000
JOB_SALARY_MAX_DEFAULT = 999_999
EXPERIENCE_FLOOR = 0
EXPERIENCE_CEILING = 20


@dataclass
class JobFilters:
    """Applied filter state for the jobs list."""

    status: List[str] = field(default_factory=list)
    location: List[str] = field(default_factory=list)
    company: List[str] = field(default_factory=list)
    job_type: List[str] = field(default_factory=list)
    salary_min: float = SALARY_FLOOR
    salary_max: float = SALARY_CEILING
    experience_min: float = EXPERIENCE_FLOOR
    experience_max: float = EXPERIENCE_CEILING

    def __post_init__(self):
        for name in ("status", "location", "company", "job_type"):
            value = getattr(self, name)
            setattr(self, name, prepare_array_filter(value) or [])

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "JobFilters":
        names = {f.name for f in fields(cls)}
        unknown = set(data or {}) - names
        if unknown:
            raise ValidationError(f"Unknown job filters: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in (data or {}).items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def salary_active(self) -> bool:
        return self.salary_min > SALARY_FLOOR or self.salary_max < SALARY_CEILING

    @property
    def experience_active(self) -> bool:
        return (
            self.experience_min > EXPERIENCE_FLOOR
            or self.experience_max < EXPERIENCE_CEILING
        )

    def to_rpc_params(self) -> Dict[str, Any]:
        return {
            "p_status_filter": prepare_array_filter(self.status),
            "p_location_filter": prepare_array_filter(self.location),
            "p_company_filter": prepare_array_filter(self.company),
            "p_job_type_filter": prepare_array_filter(self.job_type),
            "p_salary_min": self.salary_min if self.salary_active else None,
            "p_salary_max": self.salary_max if self.salary_active else None,
            "p_experience_min": self.experience_min if self.experience_active else None,
            "p_experience_max": self.experience_max if self.experience_active else None,
        }


def _overlaps(job_low: float, job_high: float, low: float, high: float) -> bool:
    return job_low <= high and job_high >= low


def _matches_search(job: Job, term: str) -> bool:
    needle = term.lower()
    for name in JOB_SEARCH_FIELDS:
        value = getattr(job, name, None)
        if value and needle in str(value).lower():
            return True
    return False


def filter_jobs(jobs: Iterable[Job], filters: JobFilters, search_term: str = "") -> List[Job]:
    """Client-side search and filters over a loaded page of jobs."""
    term = (search_term or "").strip()
    result = []
    for job in jobs:
        if term and not _matches_search(job, term):
            continue
        if filters.status and job.status.value not in filters.status:
            continue
        if filters.location and job.location not in filters.location:
            continue
        if filters.company and job.company_name not in filters.company:
            continue
        if filters.job_type and not (
            job.job_type in filters.job_type or job.working_type in filters.job_type
        ):
            continue
        if filters.salary_active and not _overlaps(
            job.salary_min or 0,
            job.salary_max or JOB_SALARY_MAX_DEFAULT,
            filters.salary_min,
            filters.salary_max,
        ):
            continue
        if filters.experience_active and not _overlaps(
            job.min_experience_needed or 0,
            job.max_experience_needed or EXPERIENCE_CEILING,
            filters.experience_min,
            filters.experience_max,
        ):
            continue
        result.append(job)
    return result


def sort_jobs(jobs: Iterable[Job], sort_by: str) -> List[Job]:
    if sort_by not in JOB_SORTS:
        raise ValidationError(f"Unsupported job sort: {sort_by}")
    jobs = list(jobs)
    if sort_by == "az":
        return sorted(jobs, key=lambda j: (j.title or "").lower())
    if sort_by == "za":
        return sorted(jobs, key=lambda j: (j.title or "").lower(), reverse=True)
    return sorted(jobs, key=lambda j: j.created_at or "", reverse=True)


def format_salary(salary_min: Optional[float], salary_max: Optional[float]) -> str:
    """Human salary range: "Not specified", a single figure, or "min - max"."""
    low = salary_min or 0
    high = salary_max or 0
    if not low and not high:
        return "Not specified"
    if low == high:
        return f"{low:,.0f}"
    return f"{low:,.0f} - {high:,.0f}"
