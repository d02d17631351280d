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
Logging configuration for Hiring Console.

This module provides centralized logging configuration with:
- JSON structured logging for production
- Readable console logging for development
- Security-aware logging (tokens and keys are masked)
"""

import logging
from pathlib import Path
import re
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from hiring_console.utils.config import Settings


class SecurityFilter(logging.Filter):
    """Filter out sensitive information from logs."""

    SENSITIVE_KEYS = {
        "password",
        "access_token",
        "refresh_token",
        "apikey",
        "anon_key",
        "encryption_key",
        "authorization",
    }

    def __init__(self):
        super().__init__()
        keys = "|".join(sorted(self.SENSITIVE_KEYS))
        self._pattern = re.compile(
            rf"({keys})(['\"]?\s*[:=]\s*['\"]?)([^\s'\",}}]+)", re.IGNORECASE
        )

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter sensitive information from log records."""
        if hasattr(record, "msg") and isinstance(record.msg, str):
            record.msg = self._pattern.sub(r"\1\2***MASKED***", record.msg)
        return True


def setup_logging(settings: Settings, log_file: Optional[Path] = None) -> None:
    """
    Setup logging configuration.

    Args:
        settings: Application settings
        log_file: Optional log file path, defaults to ``settings.log_file``
    """
    log_file = log_file or settings.log_file
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, settings.log_level))

    if settings.environment == "development":
        console_format = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        console_format = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s"
        )

    console_handler.setFormatter(console_format)
    console_handler.addFilter(SecurityFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)

        file_format = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(funcName)s %(lineno)d %(message)s"
        )
        file_handler.setFormatter(file_format)
        file_handler.addFilter(SecurityFilter())
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if settings.environment == "development":
        logging.getLogger("hiring_console.core").setLevel(logging.DEBUG)
        logging.getLogger("hiring_console.api").setLevel(logging.DEBUG)
        console_handler.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)
