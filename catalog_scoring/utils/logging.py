# =============================================
# File: catalog_scoring/utils/logging.py
# Purpose: Logging configuration (loguru file sink for services and jobs)
# =============================================

import os
from loguru import logger

logger.add(os.getenv("LOG_FILE", "logs/app.log"), rotation="10 MB", level=os.getenv("LOG_LEVEL", "INFO").upper())
