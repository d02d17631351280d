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

"""Exception types shared by the console services."""

from typing import Optional

NOT_FOUND_CODE = "PGRST116"


class ConsoleError(Exception):
    """Base class for errors surfaced to the UI as a message string."""


class BackendError(ConsoleError):
    """A call to the hosted backend failed or returned an error payload."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND_CODE


class AuthenticationError(BackendError):
    """The session is missing, expired, or the credentials were rejected."""


class PermissionDeniedError(ConsoleError):
    """The current user's role does not allow the operation."""


class ValidationError(ConsoleError):
    """Local input validation failed before any backend call."""
