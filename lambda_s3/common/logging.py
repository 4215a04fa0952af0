import json
import logging
from logging.config import dictConfig

from lambda_s3.common.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Install JSON console logging; call once from the Lambda entrypoint."""
    root_level = (level or get_settings().LOG_LEVEL or "INFO").upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                },
                "plain": {
                    "format": "%(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
                "botocore_console": {
                    "class": "logging.StreamHandler",
                    "formatter": "plain",
                },
            },
            "root": {
                "level": root_level,
                "handlers": ["console"],
            },
            "loggers": {
                "botocore": {
                    "handlers": ["botocore_console"],
                    "level": "WARNING",
                    "propagate": False,
                },
                "python_multipart": {
                    "level": "WARNING",
                },
            },
        }
    )


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
