"""
Hiring Console - Core Module

This module contains the screen stores behind the console:
- Backend client for stored functions, rows and auth
- Candidates and jobs lists with filters, search and pagination
- Organisation members, roles and job access
- Dashboard metrics
- Sessions, workspaces and user preferences
"""

__version__ = "1.0.0"
__author__ = "Hiring Console Team"

# Export key classes and functions
from hiring_console.core.auth import AuthService
from hiring_console.core.backend_client import BackendClient, get_backend_client
from hiring_console.core.candidates import CandidatesService
from hiring_console.core.dashboard import DashboardService
from hiring_console.core.errors import (
    AuthenticationError,
    BackendError,
    ConsoleError,
    PermissionDeniedError,
    ValidationError,
)
from hiring_console.core.filters import CandidateFilters, JobFilters
from hiring_console.core.jobs import JobsService
from hiring_console.core.models import (
    ApplicationStatus,
    CandidateWithApplication,
    Job,
    JobStatus,
    OrgMember,
    Role,
    UserContext,
)
from hiring_console.core.organisation import OrganisationService, RoleChangeSet
from hiring_console.core.preferences import PreferencesManager, get_preferences_manager
from hiring_console.core.sessions import SessionDatabase, get_session_database
from hiring_console.core.workspace import Workspace, WorkspaceRegistry, get_workspace_registry
