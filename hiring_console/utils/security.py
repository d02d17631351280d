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
Security utilities for Hiring Console.

Provides input sanitization and validation for the values users type into
search boxes and member forms before they are sent to the backend.
"""

import re
from typing import Optional

from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SearchSanitizer:
    """Normalizes free-text search terms."""

    MAX_SEARCH_LENGTH = 200

    # Control characters never belong in a search box
    CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

    def sanitize_search(self, term: Optional[str]) -> str:
        """
        Sanitize a search term.

        Args:
            term: Raw user input

        Returns:
            Trimmed term with collapsed whitespace, at most MAX_SEARCH_LENGTH chars
        """
        if not isinstance(term, str):
            if term is not None:
                logger.warning("Non-string search term provided to sanitizer")
            return ""

        original_length = len(term)
        term = self.CONTROL_CHARS.sub("", term)
        term = re.sub(r"\s+", " ", term).strip()

        if len(term) > self.MAX_SEARCH_LENGTH:
            term = term[: self.MAX_SEARCH_LENGTH]
            logger.info(
                f"Truncated search term from {original_length} to {len(term)} characters"
            )

        return term


class InputValidator:
    """Validates various types of user input."""

    MAX_NAME_LENGTH = 50
    MAX_EMAIL_LENGTH = 100

    @staticmethod
    def validate_email(email: str) -> tuple[bool, Optional[str]]:
        """
        Validate an email address.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(email, str) or not email.strip():
            return False, "Email is required"
        if len(email.strip()) > InputValidator.MAX_EMAIL_LENGTH:
            return False, "Email must be less than 100 characters"
        if not EMAIL_PATTERN.match(email.strip()):
            return False, "Please enter a valid email address"
        return True, None

    @staticmethod
    def validate_name(name: str) -> tuple[bool, Optional[str]]:
        """Validate a member's display name."""
        if not isinstance(name, str) or not name.strip():
            return False, "Name is required"
        if len(name.strip()) > InputValidator.MAX_NAME_LENGTH:
            return False, "Name must be less than 50 characters"
        return True, None

    @staticmethod
    def sanitize_error_message(error_msg: str, user_facing: bool = True) -> str:
        """
        Sanitize error messages to prevent information disclosure.

        Backend error strings are shown to users as-is except for tokens and
        local file paths, which are redacted.
        """
        if not user_facing:
            return error_msg

        sensitive_patterns = [
            r"/[^/\s]+/[^/\s]+/[^/\s]+/",  # File paths
            r"[A-Za-z]:\\[^\\]+\\[^\\]+\\",  # Windows paths
            r"eyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+",  # JWTs
        ]

        sanitized = error_msg
        for pattern in sensitive_patterns:
            sanitized = re.sub(pattern, "[REDACTED]", sanitized)

        return sanitized


# Global instances
_search_sanitizer = None
_input_validator = None


def get_search_sanitizer() -> SearchSanitizer:
    """Get the global search sanitizer instance."""
    global _search_sanitizer
    if _search_sanitizer is None:
        _search_sanitizer = SearchSanitizer()
    return _search_sanitizer


def get_input_validator() -> InputValidator:
    """Get the global input validator instance."""
    global _input_validator
    if _input_validator is None:
        _input_validator = InputValidator()
    return _input_validator
