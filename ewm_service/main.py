"""
Main entry point for EWM Service.
"""

import uvicorn
import os
import logging

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    reload = os.getenv("RELOAD", "false").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "info")

    logger.info(f"Starting EWM Service on {host}:{port}")

    uvicorn.run(
        "ewm.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        access_log=True
    )
