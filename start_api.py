#!/usr/bin/env python3
"""
FastAPI Backend Startup Script
Starts the Hiring Console API server
"""

from pathlib import Path

from hiring_console.utils.config import get_settings

backend_dir = Path(__file__).parent

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    # Start the server using import string for proper reload support
    uvicorn.run(
        "hiring_console.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        reload_dirs=[str(backend_dir / "hiring_console")],
        log_level=settings.log_level.lower(),
    )
