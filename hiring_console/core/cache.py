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

"""Time-boxed cache for list filter options."""

from dataclasses import dataclass, field
import time
from typing import Any, Callable, Dict, List, Optional

from hiring_console.core.models import DEFAULT_STATUSES, FilterOption


@dataclass
class FilterOptions:
    """Dropdown values for a list screen."""

    companies: List[FilterOption] = field(default_factory=list)
    job_titles: List[FilterOption] = field(default_factory=list)
    locations: List[FilterOption] = field(default_factory=list)
    statuses: List[str] = field(default_factory=lambda: list(DEFAULT_STATUSES))
    last_fetched: Optional[float] = None
    loading: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companies": [vars(o) for o in self.companies],
            "job_titles": [vars(o) for o in self.job_titles],
            "locations": [vars(o) for o in self.locations],
            "statuses": list(self.statuses),
            "last_fetched": self.last_fetched,
            "loading": self.loading,
            "error": self.error,
        }


class FilterOptionsCache:
    """
    Holds one screen's filter options with a freshness window.

    Cached options are only served while they are inside the TTL and the
    company list is non-empty; an empty list always triggers a refetch.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.options = FilterOptions()

    def is_fresh(self) -> bool:
        fetched = self.options.last_fetched
        if fetched is None:
            return False
        return (self.clock() - fetched) < self.ttl_seconds and bool(self.options.companies)

    def store(
        self,
        companies: List[FilterOption],
        job_titles: List[FilterOption],
        statuses: Optional[List[str]] = None,
        locations: Optional[List[FilterOption]] = None,
    ) -> FilterOptions:
        self.options.companies = sorted(companies, key=lambda o: o.label.lower())
        self.options.job_titles = sorted(job_titles, key=lambda o: o.label.lower())
        self.options.locations = sorted(locations or [], key=lambda o: o.label.lower())
        self.options.statuses = list(statuses) if statuses else list(DEFAULT_STATUSES)
        self.options.last_fetched = self.clock()
        self.options.loading = False
        self.options.error = None
        return self.options

    def fail(self, error: str) -> FilterOptions:
        self.options = FilterOptions(error=error)
        return self.options

    def invalidate(self) -> None:
        self.options.last_fetched = None
