import logging.config
import sys
from typing import Optional

from settings import settings


def configure_logging(level: Optional[str] = None):
    level = level or settings.LOG_LEVEL
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
        },

        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": sys.stdout,
            },
            "file": {
                "level": "ERROR",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": settings.ERROR_LOG_FILE,
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5,
                "delay": True,
            },
        },

        "loggers": {
            "": {
                "handlers": ["console", "file"],
                "level": level,
                "propagate": True
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False
            },
        }
    }

    logging.config.dictConfig(logging_config)
