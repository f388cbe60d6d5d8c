#!/usr/bin/env python3
"""
Production run script for the EduKeeper API.
"""
import os
import sys
import signal
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn
from core.logging import setup_logging, get_logger
from core.config import settings

# Setup logging first
setup_logging()
logger = get_logger("production")

REQUIRED_VARS = ["JWT_SECRET_KEY"]
DATABASE_VARS = ["DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"]


def handle_signal(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Received shutdown signal", signal=signum)
    sys.exit(0)


def missing_environment() -> list:
    required = list(REQUIRED_VARS)
    if not os.getenv("DATABASE_URL_OVERRIDE"):
        required += DATABASE_VARS
    return [var for var in required if not os.getenv(var)]


def main():
    """Main entry point for production deployment."""
    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info("Starting EduKeeper API", version=settings.app_version, debug=settings.debug)

    missing_vars = missing_environment()
    if missing_vars:
        logger.error("Missing required environment variables", missing=missing_vars)
        sys.exit(1)

    # Log configuration (without sensitive data)
    logger.info(
        "Configuration loaded",
        database_host=settings.db_host,
        database_name=settings.db_name,
        log_level=settings.log_level,
        ai_providers=[
            name for name, key in (
                ("openai", settings.openai_api_key),
                ("groq", settings.groq_api_key),
                ("gemini", settings.gemini_api_key),
            ) if key
        ],
        stripe_enabled=bool(settings.stripe_secret_key),
        smtp_enabled=bool(settings.smtp_host),
    )

    uvicorn_config = {
        "app": "main:app",
        "host": "0.0.0.0",
        "port": int(os.getenv("PORT", "8000")),
        "workers": int(os.getenv("WORKERS", "1")),
        "log_level": settings.log_level.lower(),
        "access_log": settings.enable_request_logging,
        "reload": False,
    }

    ssl_keyfile = os.getenv("SSL_KEYFILE")
    ssl_certfile = os.getenv("SSL_CERTFILE")
    if ssl_keyfile and ssl_certfile:
        uvicorn_config.update({"ssl_keyfile": ssl_keyfile, "ssl_certfile": ssl_certfile})
        logger.info("SSL enabled", keyfile=ssl_keyfile, certfile=ssl_certfile)

    logger.info("Starting uvicorn server", port=uvicorn_config["port"], workers=uvicorn_config["workers"])
    uvicorn.run(**uvicorn_config)


if __name__ == "__main__":
    main()
