"""
Main entry point for the Exclusive Drop Portal
"""
import logging
from pathlib import Path

import uvicorn

from portal.app import create_app
from portal.core.config import settings

# Configure logging
Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

# Store migration runs in the lifespan, before the first request is accepted
app = create_app(settings)


def main():
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
