# hm_cashier/common/logging.py
"""Structured JSON logging, wired in through settings.LOGGING."""
from __future__ import annotations

import logging

from django.conf import settings
from pythonjsonlogger.json import JsonFormatter


class CashierJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = getattr(settings, "DJANGO_ENV", "local")
        log_record["app_name"] = getattr(settings, "APP_NAME", "hm-cashier")

        request_id = getattr(record, "request_id", None)
        if request_id:
            log_record["request_id"] = request_id
