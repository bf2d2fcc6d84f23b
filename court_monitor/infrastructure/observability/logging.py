"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from court_monitor.config import settings


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


def log_renewal(
    request_id: str,
    client_id: int,
    previous_expiration: date,
    new_expiration: date,
    months_added: int,
    days_remaining: int,
) -> None:
    """Log structured renewal outcome for analysis"""
    logging.info(
        "Contract renewed",
        extra={
            "request_id": request_id,
            "client_id": client_id,
            "step": "renewal_complete",
            "previous_expiration_date": previous_expiration.isoformat(),
            "new_expiration_date": new_expiration.isoformat(),
            "months_added": months_added,
            "days_remaining": days_remaining,
        },
    )


def log_plan_totals(
    plan_id: int,
    operation: str,
    scheduled: Decimal,
    paid: Decimal,
    pending: Decimal,
) -> None:
    """Log recomputed plan totals after an installment mutation"""
    logging.info(
        "Payment plan totals recomputed",
        extra={
            "plan_id": plan_id,
            "step": "plan_recompute",
            "operation": operation,
            "total_scheduled_amount": str(scheduled),
            "total_paid_amount": str(paid),
            "total_pending_amount": str(pending),
        },
    )
