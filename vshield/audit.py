"""
VShield audit trail.

Every check and every mutation produces exactly one AuditRecord. The record
ties the actor resolved by the gateway (or the anonymous marker) to the
source address of the connection and the address that was checked or
changed.

Records go to one or more sinks. A sink failure is logged and never changes
the outcome of the operation that produced the record.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    VERIFY_ALLOW = "verify_allow"
    VERIFY_DENY = "verify_deny"
    REGISTER_SELF = "register_self"
    CANCEL_SELF = "cancel_self"
    ADMIN_REGISTER = "admin_register"
    ADMIN_CANCEL = "admin_cancel"
    ADMIN_LIST = "admin_list"


class AuditOutcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    OK = "ok"
    ERROR = "error"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AuditRecord:
    """Immutable record of one gate operation."""
    action: str
    actor: str
    outcome: str
    source_ip: str = ""
    target_ip: str = ""
    reason: str = ""
    detail: str = ""
    request_id: str = ""
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def render(self) -> str:
        """Single key=value line, e.g. for an access log."""
        parts = [
            ("action", self.action),
            ("actor", self.actor),
            ("source_ip", self.source_ip),
            ("target_ip", self.target_ip),
            ("outcome", self.outcome),
            ("reason", self.reason),
            ("detail", self.detail),
        ]
        return " ".join(f"{k}={v if v else '-'}" for k, v in parts)


class AuditSink(ABC):
    """Destination for audit records."""

    @abstractmethod
    def write(self, record: AuditRecord) -> None:
        pass


class LoggingAuditSink(AuditSink):
    """
    Writes records to a stdlib logger.

    The record's fields are attached as the log record's `audit` attribute,
    which the gateway's JSON formatter emits as a nested object. Denies and
    errors are logged at WARNING, everything else at INFO.
    """

    def __init__(self, name: str = "vshield.audit"):
        self._logger = logging.getLogger(name)

    def write(self, record: AuditRecord) -> None:
        level = logging.INFO
        if record.outcome in (AuditOutcome.DENY.value, AuditOutcome.ERROR.value):
            level = logging.WARNING
        log_record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            record.render(),
            (),
            None
        )
        log_record.audit = record.to_dict()
        self._logger.handle(log_record)


class InMemoryAuditSink(AuditSink):
    """
    Bounded in-memory sink, for tests and for inspection endpoints.

    Keeps the newest `max_records` records.
    """

    def __init__(self, max_records: int = 10000):
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()
        self._max_records = max_records

    def write(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)
            if len(self._records) > self._max_records:
                self._records = self._records[-self._max_records:]

    def query(
        self,
        action: Optional[str] = None,
        actor: Optional[str] = None,
        outcome: Optional[str] = None
    ) -> List[AuditRecord]:
        with self._lock:
            records = self._records[:]

        if action:
            records = [r for r in records if r.action == _value(action)]
        if actor:
            records = [r for r in records if r.actor == actor]
        if outcome:
            records = [r for r in records if r.outcome == _value(outcome)]
        return records

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


class AuditLogger:
    """
    Builds audit records and fans them out to sinks.

    Usage:
        audit = AuditLogger(sinks=[LoggingAuditSink(), InMemoryAuditSink()])
        record = audit.emit(AuditAction.REGISTER_SELF, actor="alice",
                            outcome=AuditOutcome.OK, source_ip="203.0.113.10",
                            target_ip="203.0.113.10")
    """

    def __init__(self, sinks: Optional[Sequence[AuditSink]] = None):
        self.sinks: List[AuditSink] = list(sinks) if sinks is not None else [LoggingAuditSink()]

    def emit(
        self,
        action: AuditAction,
        actor: str,
        outcome: AuditOutcome,
        source_ip: str = "",
        target_ip: str = "",
        reason: Optional[Any] = None,
        detail: str = "",
        request_id: str = ""
    ) -> AuditRecord:
        record = AuditRecord(
            action=_value(action),
            actor=actor,
            outcome=_value(outcome),
            source_ip=source_ip or "",
            target_ip=target_ip or "",
            reason=_value(reason) if reason is not None else "",
            detail=detail,
            request_id=request_id or "",
        )
        for sink in self.sinks:
            try:
                sink.write(record)
            except Exception:
                logger.exception("Audit sink %s failed for action %s", type(sink).__name__, record.action)
        return record
