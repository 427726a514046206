"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from lot_financing.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Route every record through one JSON handler on stdout, for the task runners"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)

    # SQL echo stays off unless explicitly raised
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_transition(entity: str, entity_id: Any, event: str, from_state: str, to_state: str) -> None:
    """Log a state machine transition for auditing"""
    logging.info(
        "State transition",
        extra={
            "entity": entity,
            "entity_id": str(entity_id),
            "step": event,
            "from_state": from_state,
            "to_state": to_state,
        },
    )


def log_batch_summary(job: str, processed: int, failed: int, duration_ms: float) -> None:
    """Log the outcome of a periodic batch"""
    logging.info(
        "Batch completed",
        extra={
            "job": job,
            "processed": processed,
            "failed": failed,
            "duration_ms": duration_ms,
        },
    )
