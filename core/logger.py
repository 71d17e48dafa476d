# core/logger.py
import logging
import os
from logging.handlers import RotatingFileHandler
import json


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


# Create logs directory if it does not exist
logs_dir = os.getenv("LOG_DIR", "logs")
if not os.path.exists(logs_dir):
    os.makedirs(logs_dir)

log_file_path = os.path.join(logs_dir, 'channel_digest.log')

# Configure logging
logger = logging.getLogger("channel_digest")
logger.setLevel(logging.INFO)
handler = RotatingFileHandler(log_file_path, maxBytes=10000000, backupCount=5)
formatter = JSONFormatter()
handler.setFormatter(formatter)
logger.addHandler(handler)
