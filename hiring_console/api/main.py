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

import time
from typing import Dict
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hiring_console.api.endpoints import (
    auth,
    candidates,
    dashboard,
    health,
    jobs,
    organisation,
    preferences,
)
from hiring_console.core.backend_client import close_backend_client
from hiring_console.core.errors import (
    AuthenticationError,
    BackendError,
    ConsoleError,
    PermissionDeniedError,
    ValidationError,
)
from hiring_console.core.sessions import get_session_database
from hiring_console.core.workspace import get_workspace_registry
from hiring_console.utils.config import ensure_directories, get_settings
from hiring_console.utils.logging import get_logger, setup_logging
from hiring_console.utils.security import get_input_validator

logger = get_logger(__name__)

app = FastAPI(
    title="Hiring Console API",
    description="Recruiter console for candidates, jobs, team roles and hiring metrics",
    version="1.0.0",
)

# Configuration
settings = get_settings()

# CORS middleware (env-driven)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


# Security headers middleware (CSP disabled by default when served behind Nginx)
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    if settings.enable_api_csp_headers:
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self' data: https:; connect-src 'self'; font-src 'self'"
        )

    return response


# Request context: ID, body-size check, basic rate limiting, access log
_rate_limit_bucket: Dict[str, Dict[str, float]] = {}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    max_bytes = settings.max_request_size_mb * 1024 * 1024
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        if int(content_length) > max_bytes:
            return JSONResponse(
                status_code=413, content={"success": False, "error": "Request entity too large"}
            )

    # fixed one-minute window per client IP
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    window = 60.0
    limit = max(1, settings.api_rate_limit)
    bucket = _rate_limit_bucket.get(client_ip, {"window_start": now, "count": 0.0})
    if now - bucket["window_start"] > window:
        bucket = {"window_start": now, "count": 0.0}
    bucket["count"] += 1.0
    _rate_limit_bucket[client_ip] = bucket
    if bucket["count"] > limit:
        return JSONResponse(
            status_code=429, content={"success": False, "error": "Rate limit exceeded"}
        )

    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"request_id={request_id} {request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s"
    )
    return response


def _status_for(exc: ConsoleError) -> int:
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, PermissionDeniedError):
        return 403
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, BackendError) and exc.status_code == 404:
        return 404
    return 502


@app.exception_handler(ConsoleError)
async def console_error_handler(request: Request, exc: ConsoleError):
    """Domain errors become ``{"success": false, "error": ...}`` responses."""
    status_code = _status_for(exc)
    content = {
        "success": False,
        "error": get_input_validator().sanitize_error_message(str(exc)),
    }
    if isinstance(exc, AuthenticationError):
        content["login_url"] = settings.login_url
    if status_code >= 500:
        logger.error(f"Backend error on {request.url.path}: {exc}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content=content)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(candidates.router)
app.include_router(jobs.router)
app.include_router(organisation.router)
app.include_router(dashboard.router)
app.include_router(preferences.router)
app.include_router(preferences.settings_router)


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    setup_logging(settings)
    ensure_directories(settings)
    print("🚀 Hiring Console starting...")
    logger.info("🚀 Hiring Console starting...")

    get_session_database().cleanup_expired()

    print("✅ Console ready!")
    logger.info("✅ Console ready!")
    print(f"🌐 API available at: http://{settings.host}:{settings.port}")
    print(f"📚 API docs at: http://{settings.host}:{settings.port}/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Cancel pending debounced work and close backend connections."""
    get_workspace_registry().close_all()
    close_backend_client()
    logger.info("👋 Hiring Console stopped")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
