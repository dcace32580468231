import logging
import logging.config
from pathlib import Path

from app.core.constants import PAYMENT_LOGGER_NAME


def build_logging_config(log_dir: str = "logs", level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "payment": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                          " [event=%(event)s transaction_id=%(transaction_id)s]"
            }
        },
        "filters": {
            "payment_defaults": {
                "()": "app.core.logging.PaymentContextFilter"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": level,
                "formatter": "default",
                "filename": f"{log_dir}/app.log",
                "maxBytes": 10485760,
                "backupCount": 5
            },
            "error_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "ERROR",
                "formatter": "default",
                "filename": f"{log_dir}/error.log",
                "maxBytes": 10485760,
                "backupCount": 5
            },
            "payment_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "INFO",
                "formatter": "payment",
                "filters": ["payment_defaults"],
                "filename": f"{log_dir}/payments.log",
                "maxBytes": 10485760,
                "backupCount": 10
            }
        },
        "root": {
            "level": level,
            "handlers": ["console", "file", "error_file"]
        },
        "loggers": {
            "app": {
                "level": level,
                "handlers": ["console", "file", "error_file"],
                "propagate": False
            },
            PAYMENT_LOGGER_NAME: {
                "level": "INFO",
                "handlers": ["console", "payment_file"],
                "propagate": False
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        }
    }


class PaymentContextFilter(logging.Filter):
    """Fills the payment formatter's fields for records logged without them."""

    FIELDS = ("event", "transaction_id", "payment_id", "refund_ref_id")

    def filter(self, record: logging.LogRecord) -> bool:
        for field in self.FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


def configure_logging(log_dir: str = "logs", level: str = "INFO"):
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level))
