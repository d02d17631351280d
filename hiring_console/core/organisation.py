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
Organization members, roles and job access.

This module provides:
- Member listing with job access for the settings and user management screens
- Role assignment and job access grants, each followed by a full refetch
- Staged role changes that are only committed on an explicit save
- Member form validation
"""

from dataclasses import dataclass, replace
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from hiring_console.core.backend_client import BackendClient
from hiring_console.core.errors import BackendError, ConsoleError, ValidationError
from hiring_console.core.models import OrgMember, Role
from hiring_console.utils.logging import get_logger
from hiring_console.utils.security import get_input_validator

logger = get_logger(__name__)

MEMBERS_RPC = "fetch_org_members_with_jobs"
ASSIGN_ROLE_RPC = "assign_user_role"
UPDATE_ROLE_RPC = "update_user_role"
GRANT_BY_TITLES_RPC = "grant_access_by_job_titles"
GRANT_BY_COMPANIES_RPC = "grant_access_by_companies"

ERROR_DISPLAY_SECONDS = 5.0
ROLE_NAMES = [r.value for r in Role]


def validate_member_form(name: str, email: str, role: str) -> Dict[str, str]:
    """Return field -> message for every invalid field (empty when valid)."""
    validator = get_input_validator()
    errors = {}

    ok, message = validator.validate_name(name)
    if not ok:
        errors["name"] = message

    ok, message = validator.validate_email(email)
    if not ok:
        errors["email"] = message

    if not role:
        errors["role"] = "Role is required"
    elif role not in ROLE_NAMES:
        errors["role"] = f"Role must be one of: {', '.join(ROLE_NAMES)}"

    return errors


def _require_all(*values: Any) -> None:
    for value in values:
        if not value:
            raise ValidationError("All parameters are required")


class OrganisationService:
    """Per-session organisation store."""

    def __init__(
        self,
        backend: BackendClient,
        clock: Callable[[], float] = time.monotonic,
        error_display_seconds: float = ERROR_DISPLAY_SECONDS,
    ):
        self.backend = backend
        self.clock = clock
        self.error_display_seconds = error_display_seconds
        self._lock = threading.RLock()

        self.members: List[OrgMember] = []
        self.loading = False
        self.last_fetched_org_id: Optional[str] = None
        self._error: Optional[str] = None
        self._error_at: Optional[float] = None
        self._listeners: List[Callable[[List[OrgMember]], None]] = []

    @property
    def error(self) -> Optional[str]:
        """Latest error; it clears itself after the display window."""
        with self._lock:
            if self._error is not None and self._error_at is not None:
                if self.clock() - self._error_at >= self.error_display_seconds:
                    self._error = None
                    self._error_at = None
            return self._error

    def _set_error(self, message: Optional[str]) -> None:
        with self._lock:
            self._error = message
            self._error_at = self.clock() if message else None

    def clear_error(self) -> None:
        self._set_error(None)

    def on_members_loaded(self, listener: Callable[[List[OrgMember]], None]) -> None:
        self._listeners.append(listener)

    def _run(self, description: str, call: Callable[[], Any]) -> Any:
        with self._lock:
            self.loading = True
        self._set_error(None)
        try:
            return call()
        except BackendError as e:
            error = type(e)(f"{description}: {e}", code=e.code, status_code=e.status_code)
            self._set_error(str(error))
            logger.error(f"❌ Organisation: {error}")
            raise error from e
        finally:
            with self._lock:
                self.loading = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_members(self, org_id: str) -> List[OrgMember]:
        if not org_id:
            error = ValidationError("Organization ID is required")
            self._set_error(str(error))
            raise error

        data = self._run(
            "Failed to fetch members",
            lambda: self.backend.rpc(MEMBERS_RPC, {"org_id": org_id}),
        )
        members = [OrgMember.from_raw(row) for row in (data or [])]
        with self._lock:
            self.members = members
            self.last_fetched_org_id = org_id
        for listener in list(self._listeners):
            listener(members)
        logger.info(f"👥 Loaded {len(members)} members for organization {org_id}")
        return members

    def active_members(self) -> List[OrgMember]:
        with self._lock:
            return [m for m in self.members if m.is_active]

    def members_by_role(self, role: str) -> List[OrgMember]:
        if role not in ROLE_NAMES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLE_NAMES)}")
        with self._lock:
            return [m for m in self.members if m.role_name == role]

    # ------------------------------------------------------------------
    # Mutations (each is followed by a full refetch)
    # ------------------------------------------------------------------

    def _refetch_members(self, org_id: str) -> List[OrgMember]:
        """
        Reload members after a mutation the backend has already applied.

        A failed reload stays in ``error`` and the current rows are returned.
        """
        try:
            return self.fetch_members(org_id)
        except ConsoleError as e:
            logger.warning(f"Members not reloaded after change: {e}")
            with self._lock:
                return list(self.members)

    def add_member_role(self, email: str, role: str, org_id: str, assigned_by: str) -> List[OrgMember]:
        try:
            _require_all(email, role, org_id, assigned_by)
        except ValidationError as e:
            self._set_error(str(e))
            raise
        self._run(
            "Failed to assign role",
            lambda: self.backend.rpc(
                ASSIGN_ROLE_RPC,
                {
                    "target_email_id": email,
                    "target_organization_id": org_id,
                    "target_role_name": role,
                    "assigner_user_id": assigned_by,
                },
            ),
        )
        logger.info(f"✅ Assigned role {role} to {email}")
        return self._refetch_members(org_id)

    def update_member_role(self, email: str, new_role: str, updated_by: str, org_id: str) -> List[OrgMember]:
        try:
            _require_all(email, new_role, updated_by)
        except ValidationError as e:
            self._set_error(str(e))
            raise
        self._run(
            "Failed to update role",
            lambda: self.backend.rpc(
                UPDATE_ROLE_RPC,
                {
                    "target_email_id": email,
                    "new_role_name": new_role,
                    "updater_user_id": updated_by,
                },
            ),
        )
        logger.info(f"✅ Updated role for {email} to {new_role}")
        return self._refetch_members(org_id)

    def grant_access_by_job_titles(
        self, member_id: str, job_titles: List[str], granted_by: str, org_id: str
    ) -> List[OrgMember]:
        try:
            _require_all(member_id, job_titles, granted_by, org_id)
        except ValidationError as e:
            self._set_error(str(e))
            raise
        self._run(
            "Failed to assign job access",
            lambda: self.backend.rpc(
                GRANT_BY_TITLES_RPC,
                {"p_user_id": member_id, "p_job_titles": list(job_titles), "p_granted_by": granted_by},
            ),
        )
        return self._refetch_members(org_id)

    def grant_access_by_companies(
        self, member_id: str, companies: List[str], granted_by: str, org_id: str
    ) -> List[OrgMember]:
        try:
            _require_all(member_id, companies, granted_by, org_id)
        except ValidationError as e:
            self._set_error(str(e))
            raise
        self._run(
            "Failed to assign job access",
            lambda: self.backend.rpc(
                GRANT_BY_COMPANIES_RPC,
                {"p_user_id": member_id, "p_companies": list(companies), "p_granted_by": granted_by},
            ),
        )
        return self._refetch_members(org_id)

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    def update_member_optimistic(self, member_id: str, **updates) -> Optional[OrgMember]:
        with self._lock:
            for index, member in enumerate(self.members):
                if member.user_id == member_id:
                    self.members[index] = replace(member, **updates)
                    return self.members[index]
        return None

    def clear_members(self) -> None:
        with self._lock:
            self.members = []
            self.last_fetched_org_id = None

    def state_view(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "members": [m.to_dict() for m in self.members],
                "loading": self.loading,
                "error": self.error,
                "last_fetched_org_id": self.last_fetched_org_id,
            }


@dataclass
class RoleChange:
    member_id: str
    member_email: str
    old_role: str
    new_role: str


class RoleChangeSet:
    """
    Role edits made in the settings table before "Save changes".

    Local member rows reflect staged roles immediately; nothing reaches the
    backend until ``save``. Loading fresh members discards the staged edits.
    """

    def __init__(self, organisation: OrganisationService):
        self.organisation = organisation
        self._lock = threading.Lock()
        self.pending: Dict[str, RoleChange] = {}
        self.local_roles: Dict[str, str] = {}
        organisation.on_members_loaded(self._reset)

    def _reset(self, members: List[OrgMember]) -> None:
        with self._lock:
            self.pending = {}
            self.local_roles = {m.user_id: m.role_name for m in members}

    def _member(self, member_id: str) -> OrgMember:
        for member in self.organisation.members:
            if member.user_id == member_id:
                return member
        raise ValidationError(f"Unknown member: {member_id}")

    def stage(self, member_id: str, new_role: str) -> Optional[RoleChange]:
        if new_role not in ROLE_NAMES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLE_NAMES)}")
        member = self._member(member_id)
        with self._lock:
            current = self.local_roles.get(member_id, member.role_name)
            if current == new_role:
                return self.pending.get(member_id)
            self.local_roles[member_id] = new_role
            if new_role == member.role_name:
                # back to the saved role: nothing left to commit
                self.pending.pop(member_id, None)
                return None
            change = RoleChange(member_id, member.email, member.role_name, new_role)
            self.pending[member_id] = change
            return change

    @property
    def has_changes(self) -> bool:
        with self._lock:
            return bool(self.pending)

    def discard(self) -> None:
        self._reset(self.organisation.members)

    def save(self, updated_by: str, org_id: str) -> Dict[str, Any]:
        """
        Commit staged changes in order, stopping at the first failure.

        The failing member's local role reverts; changes not yet attempted
        stay staged.
        """
        with self._lock:
            changes = list(self.pending.values())
        if not changes:
            return {"success": True, "applied": 0, "message": "No changes to save."}

        applied = 0
        for index, change in enumerate(changes):
            try:
                self.organisation.update_member_role(
                    change.member_email, change.new_role, updated_by, org_id
                )
            except ConsoleError as e:
                with self._lock:
                    self.local_roles[change.member_id] = change.old_role
                    self.pending.pop(change.member_id, None)
                    # earlier successes refetched members and reset the staging
                    for untried in changes[index + 1 :]:
                        self.pending[untried.member_id] = untried
                        self.local_roles[untried.member_id] = untried.new_role
                logger.error(f"❌ Role change for {change.member_email} failed: {e}")
                return {
                    "success": False,
                    "applied": applied,
                    "message": "Error saving settings. Please try again.",
                    "error": str(e),
                    "failed_member": change.member_email,
                }
            with self._lock:
                self.pending.pop(change.member_id, None)
                self.local_roles[change.member_id] = change.new_role
            # keeps the saved role right when the follow-up reload failed
            self.organisation.update_member_optimistic(change.member_id, role_name=change.new_role)
            applied += 1
            logger.info(
                f"Role updated for member {change.member_email}: "
                f"{change.old_role} -> {change.new_role}"
            )

        with self._lock:
            self.pending = {}
        return {
            "success": True,
            "applied": applied,
            "message": "Team member roles updated successfully!",
        }

    def view(self) -> List[Dict[str, Any]]:
        """Member rows as shown in the settings table (staged roles applied)."""
        with self._lock:
            rows = []
            for member in self.organisation.members:
                rows.append(
                    {
                        "id": member.user_id,
                        "name": member.full_name,
                        "email": member.email,
                        "role": self.local_roles.get(member.user_id, member.role_name),
                        "assigned_jobs": [a.to_dict() for a in member.job_access],
                        "has_pending_change": member.user_id in self.pending,
                    }
                )
            return rows

    def pending_view(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [vars(c).copy() for c in self.pending.values()]
