"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from investor_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_mutation(
    request_id: str,
    account_id: str,
    operation: str,
    outcome: str,
    interest_repriced: int,
    duration_ms: float,
) -> None:
    """Log structured ledger mutation outcome"""
    logging.info(
        "Ledger mutation completed",
        extra={
            "request_id": request_id,
            "account_id": account_id,
            "step": "mutation_complete",
            "operation": operation,
            "outcome": outcome,
            "interest_repriced": interest_repriced,
            "duration_ms": duration_ms,
        },
    )


def log_rejection(request_id: str, account_id: str, operation: str, error_code: str, message: str) -> None:
    """Log a mutation rejected by ledger validation"""
    logging.warning(
        "Ledger mutation rejected",
        extra={
            "request_id": request_id,
            "account_id": account_id,
            "step": "mutation_rejected",
            "operation": operation,
            "error": error_code,
            "reason": message,
        },
    )
