import logging

from app.core.config import settings

NOISY_LOGGERS = ("pymongo", "httpx", "httpcore", "botocore", "boto3", "urllib3", "s3transfer")


def configure_logging() -> None:
    """Configure root logging once per process"""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress DEBUG logs from external libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
