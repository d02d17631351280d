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
Configuration management for Hiring Console.

This module handles all configuration settings including:
- Environment variables
- Backend connection details
- Session and list behaviour (page sizes, debounce windows, caches)
- Security settings
"""

from pathlib import Path
from typing import List, Optional

from cryptography.fernet import Fernet
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # Environment
    environment: str = Field(default="production")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)

    # Hosted backend (PostgREST + auth endpoints)
    backend_url: str = Field(default="http://localhost:54321")
    backend_anon_key: Optional[str] = Field(default=None)
    backend_timeout: float = Field(default=15.0)

    # Data Storage
    data_dir: Path = Field(default=Path("./data"))

    # Security
    enable_encryption: bool = Field(default=True)
    encryption_key: Optional[str] = Field(default=None)
    max_request_size_mb: int = Field(default=2)
    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    enable_api_csp_headers: bool = Field(default=False)

    # Sessions
    session_cookie_name: str = Field(default="hiring_console_session")
    session_ttl_hours: int = Field(default=24)
    login_url: str = Field(default="/login")

    # List behaviour
    search_debounce_ms: int = Field(default=300)
    filter_debounce_ms: int = Field(default=500)
    filter_options_ttl_seconds: int = Field(default=300)
    candidates_page_size: int = Field(default=50)
    jobs_page_size: int = Field(default=30)

    # API Rate Limiting
    api_rate_limit: int = Field(default=120)

    @field_validator("data_dir", mode="before")
    @classmethod
    def convert_to_path(cls, v):
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0

    @property
    def filter_debounce_seconds(self) -> float:
        return self.filter_debounce_ms / 1000.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


def ensure_directories(settings: Settings) -> None:
    """Ensure all required directories exist."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)


def ensure_encryption_setup(settings: Settings) -> Optional[str]:
    """
    Ensure encryption is properly set up if enabled.

    Session tokens are encrypted at rest with this key.

    Returns:
        Encryption key if encryption is enabled and set up, None otherwise
    """
    if not settings.enable_encryption:
        return None

    # Priority 1: key from the environment
    if (
        settings.encryption_key
        and settings.encryption_key != "your_encryption_key_here"
    ):
        return settings.encryption_key

    # Priority 2: existing key file in the data directory
    key_file = settings.data_dir / ".encryption_key"
    try:
        if key_file.exists():
            key = key_file.read_text().strip()
            if key:
                print("🔐 Hiring Console - Security Setup")
                print("   ✅ Using existing encryption key from data directory")
                return key
    except OSError as e:
        print(f"⚠️  Warning: Cannot read encryption key file: {e}")
        print("   Continuing with key generation...")

    # Priority 3: generate a new key
    print("🔐 Hiring Console - Security Setup")
    print("   ⚠️  No existing encryption key found - generating new key")

    key = Fernet.generate_key().decode()

    if update_env_file("ENCRYPTION_KEY", key):
        print("   ✅ Session tokens will be encrypted at rest")
        print("   📁 Key saved to .env file")
    else:
        print("   ✅ Session tokens will be encrypted at rest")
        print("   ⚠️  Key not persisted - sessions will not survive a restart")
        print("   💡 Set the ENCRYPTION_KEY environment variable to persist the key")

    return key


def update_env_file(key: str, value: str, env_path: Optional[Path] = None) -> bool:
    """
    Update or add a key-value pair in the .env file.

    Args:
        key: Environment variable name
        value: Environment variable value
        env_path: File to update, defaults to ./.env

    Returns:
        True if successful, False otherwise
    """
    env_path = env_path or Path(".env")
    try:
        if env_path.exists():
            with open(env_path, encoding="utf-8") as f:
                lines = f.readlines()
        else:
            lines = []

        key_pattern = f"{key}="
        updated = False

        for i, line in enumerate(lines):
            if line.strip().startswith(key_pattern):
                lines[i] = f"{key}={value}\n"
                updated = True
                break

        if not updated:
            if lines and not lines[-1].endswith("\n"):
                lines.append("\n")
            lines.append(f"{key}={value}\n")

        with open(env_path, "w", encoding="utf-8") as f:
            f.writelines(lines)

        return True

    except OSError as e:
        print(f"Error updating .env file: {e}")
        return False


# Note: Settings are instantiated on-demand via get_settings()
# to avoid import-time configuration errors
