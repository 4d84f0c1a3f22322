"""
Logging setup for the VShield gateway.

Every line is tagged with the id of the HTTP request that produced it.
Records written by vshield.audit.LoggingAuditSink carry the audit fields on
their `audit` attribute; the JSON formatter emits them as a nested object so
the audit trail can be filtered out of the general log stream.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional

request_id_var: ContextVar[str] = ContextVar('vshield_request_id', default='')

AUDIT_LOGGER = "vshield.audit"

# Inbound X-Request-ID values longer than this are replaced with a fresh id
MAX_REQUEST_ID_LENGTH = 128

TEXT_FORMAT = '%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s'


class RequestIdFilter(logging.Filter):
    """Stamps the current request id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line.

    Audit records become {"event_type": "AUDIT", "audit": {...}}; everything
    else carries its source location instead.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        audit = getattr(record, "audit", None)
        if audit is not None:
            log_data["event_type"] = "AUDIT"
            log_data["audit"] = audit
        else:
            log_data["location"] = f"{record.module}:{record.funcName}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Install the gateway's handlers on the root logger.

    The audit logger stays at INFO whatever `level` is, so raising the level
    to quiet the service never drops audit records.
    """
    formatter = StructuredFormatter() if json_format else logging.Formatter(TEXT_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger(AUDIT_LOGGER).setLevel(logging.INFO)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Bind the request id for the current request and return it.

    A missing, oversized or non-printable inbound id is replaced with a new one.
    """
    if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH or not request_id.isprintable():
        request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()
