"""Logging configuration

Console output is either a plain line format or one JSON object per
record (``HOTEL_LOG_FORMAT=json``), configured through ``dictConfig``.
"""
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from infrastructure.config import get_settings


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, level, logger and service fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = get_settings().app_name

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
            }


def build_logging_config(level: str, log_format: str = "text") -> Dict[str, Any]:
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': ServiceJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'json' if log_format == 'json' else 'standard',
                'level': level,
            },
        },
        'loggers': {
            'application': {'level': level},
            'api': {'level': level},
            'main': {'level': level},
            'uvicorn.access': {'level': 'WARNING'},
        },
        'root': {
            'level': level,
            'handlers': ['console'],
        },
    }


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure logging once at application startup"""
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()
    logging.config.dictConfig(build_logging_config(level, log_format))
