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

"""Hiring metrics for the dashboard screen."""

import threading
from typing import Any, Callable, Dict, List, Optional

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.errors import BackendError, ConsoleError, ValidationError
from hiring_console.core.models import UserContext
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

DASHBOARD_RPC = "get_dashboard_data"
APPLICATIONS_OVER_TIME_RPC = "get_applications_over_time"

STAT_CARDS = [
    ("active_jobs", "Active Jobs", "Up from yesterday"),
    ("applications_received", "Application Received", "Up from past week"),
    ("client_companies", "Client Companies", "Up from last month"),
    ("total_candidates", "Total Candidates", "Up from past week"),
]


def format_change(change: Any) -> str:
    """Percent change with an explicit plus sign for growth."""
    try:
        value = float(change or 0)
    except (TypeError, ValueError):
        value = 0.0
    text = f"{value:g}"
    return f"+{text}%" if value > 0 else f"{text}%"


def _trend(value: Any) -> str:
    return value if value in ("up", "down") else "neutral"


class DashboardService:
    """Per-session dashboard store."""

    def __init__(
        self,
        backend: BackendClient,
        context_provider: Callable[[], Optional[UserContext]],
    ):
        self.backend = backend
        self.context_provider = context_provider
        self._lock = threading.Lock()

        self.data: Optional[Dict[str, Any]] = None
        self.chart_data: List[Dict[str, Any]] = []
        self.selected_company: Optional[str] = None
        self.selected_job: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None

    def _require_context(self) -> UserContext:
        context = self.context_provider()
        if context is None or not context.user_id or not context.organization_id:
            raise ValidationError("User and organization are required")
        return context

    def _call(self, function: str, params: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self.loading = True
            self.error = None
        try:
            data = self.backend.rpc(function, params)
            if not isinstance(data, dict):
                raise BackendError("Invalid response format from database function")
            if data.get("success") is False:
                raise BackendError(data.get("error") or "Failed to fetch dashboard data")
            return data
        except ConsoleError as e:
            with self._lock:
                self.error = str(e)
            logger.error(f"❌ Dashboard: {e}")
            raise
        finally:
            with self._lock:
                self.loading = False

    def fetch_dashboard(self) -> Dict[str, Any]:
        context = self._require_context()
        data = self._call(
            DASHBOARD_RPC,
            {"p_user_id": context.user_id, "p_org_id": context.organization_id},
        )
        with self._lock:
            self.data = data
            self.chart_data = list(data.get("chart_data") or [])
        logger.info("📊 Dashboard data loaded")
        return self.view()

    def fetch_applications_over_time(
        self, company_name: Optional[str] = None, job_title: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Reload the applications chart for one company or one job title.

        The two selections are exclusive; passing neither resets the chart.
        """
        if company_name and job_title:
            raise ValidationError("Filter the chart by a company or a job title, not both")
        context = self._require_context()
        data = self._call(
            APPLICATIONS_OVER_TIME_RPC,
            {
                "p_user_id": context.user_id,
                "p_org_id": context.organization_id,
                "p_company_name": company_name or None,
                "p_job_title": job_title or None,
            },
        )
        with self._lock:
            self.selected_company = company_name or None
            self.selected_job = job_title or None
            self.chart_data = list(data.get("chart_data") or data.get("data") or [])
            return list(self.chart_data)

    def select_company(self, company_name: str) -> List[Dict[str, Any]]:
        return self.fetch_applications_over_time(company_name=company_name)

    def select_job(self, job_title: str) -> List[Dict[str, Any]]:
        return self.fetch_applications_over_time(job_title=job_title)

    def reset_chart(self) -> List[Dict[str, Any]]:
        return self.fetch_applications_over_time()

    def clear_error(self) -> None:
        with self._lock:
            self.error = None

    def stat_cards(self) -> List[Dict[str, Any]]:
        stats = (self.data or {}).get("stats") or {}
        cards = []
        for key, label, description in STAT_CARDS:
            stat = stats.get(key)
            if not isinstance(stat, dict):
                continue
            cards.append(
                {
                    "key": key,
                    "label": label,
                    "value": stat.get("value", 0),
                    "change": format_change(stat.get("change")),
                    "change_description": description,
                    "trend": _trend(stat.get("trend")),
                }
            )
        return cards

    def view(self) -> Dict[str, Any]:
        with self._lock:
            data = self.data or {}
            return {
                "stats": self.stat_cards(),
                "chart_data": list(self.chart_data),
                "top_jobs": [
                    {"name": j.get("name") or "Unknown Job", "count": j.get("value", 0)}
                    for j in data.get("top_jobs") or []
                ],
                "top_companies": [
                    {"name": c.get("name") or "Unknown Company", "count": c.get("value", 0)}
                    for c in data.get("top_companies") or []
                ],
                "selected_company": self.selected_company,
                "selected_job": self.selected_job,
                "user_role": data.get("user_role"),
                "generated_at": data.get("generated_at"),
                "loading": self.loading,
                "error": self.error,
            }
