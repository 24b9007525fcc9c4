#!/usr/bin/env python3
"""
Server Entry Point

Runs the FastAPI application under uvicorn:

    python -m src.app

Author: Senior Solution Architect
Date: 2025-12-05
"""

import uvicorn

from src.application.app import create_app
from src.core.config.settings import get_settings

app = create_app()


def main() -> None:
    settings = get_settings()

    uvicorn.run(
        "src.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
