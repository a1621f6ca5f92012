import os
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

# Application Paths
# When running via the console script, CWD is the workspace root
WORKSPACE_ROOT = Path.cwd()
DATA_DIR = Path(os.getenv("STEPWISE_DATA_DIR", WORKSPACE_ROOT / "data"))
DRAFTS_DIR = DATA_DIR / "drafts"
LOGS_DIR = DATA_DIR / "logs"

# Redis Configuration
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_DB = int(os.getenv("REDIS_DB", 0))

# PubSub Channels
CHANNEL_STATUS = "stepwise:status"

# Submission
# Seconds the simulated create operation waits before returning an id
SIMULATED_CREATE_DELAY = float(os.getenv("SIMULATED_CREATE_DELAY", "1.5"))

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# Default to INFO, allow override
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def setup_logging(name=None):
    """
    Configure logging for the application.
    Writes to both console and a rotating log file in LOGS_DIR.
    """
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)

    # Avoid adding handlers multiple times
    if logger.hasHandlers():
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    # 1. Console Handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 2. File Handler (Rotating)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOGS_DIR / "stepwise.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10*1024*1024, # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # 3. Third-party loggers
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return logger
