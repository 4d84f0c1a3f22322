"""
VShield Admin Operator

Enrollment, removal and listing of explicitly named addresses. The target
address is caller-controlled, so these operations belong behind the
gateway's authorization boundary.
"""

import logging
from typing import Any, List, Optional

from .audit import AuditAction, AuditOutcome
from .context import CallerContext, actor_of
from .errors import ErrorCode
from .models import ListResult, MutationResult, WhitelistEntry
from .registrar import StoreOperator
from .util import iso_from_ms, normalize_address, parse_instant_ms, parse_ttl_ms

logger = logging.getLogger(__name__)


class AdminOperator(StoreOperator):
    """
    Administrative whitelist management.

    Usage:
        admin = AdminOperator(store, audit)
        admin.register("192.0.2.8", "600000", caller)   # 10 minutes
        admin.register("192.0.2.9", None, caller)       # default TTL
        admin.cancel("192.0.2.8", caller)
        rows = admin.list(caller).to_list()
    """

    def register(
        self,
        target_ip: Optional[str],
        raw_timeout: Any = None,
        caller: Optional[CallerContext] = None
    ) -> MutationResult:
        """
        Whitelist target_ip.

        raw_timeout is a TTL in milliseconds; anything that is not a positive
        integer falls back to the default TTL without error.
        """
        ttl_ms = parse_ttl_ms(raw_timeout, self.settings.default_ttl_ms)
        return self._register(
            AuditAction.ADMIN_REGISTER,
            normalize_address(target_ip),
            ttl_ms,
            caller,
            ErrorCode.MISSING_TARGET_ADDRESS,
        )

    def cancel(self, target_ip: Optional[str], caller: Optional[CallerContext] = None) -> MutationResult:
        """Remove target_ip. Absent entries are not an error."""
        return self._cancel(
            AuditAction.ADMIN_CANCEL,
            normalize_address(target_ip),
            caller,
            ErrorCode.MISSING_TARGET_ADDRESS,
        )

    def list(self, caller: Optional[CallerContext] = None) -> ListResult:
        """
        Snapshot of every entry with a numeric expiry.

        Entries whose value is not a numeric instant, or is an instant that
        cannot be rendered as a date, are skipped; entries removed between
        the key scan and the read are skipped too.
        """
        entries: List[WhitelistEntry] = []
        error = None
        skipped = 0
        if self.store is None:
            error = ErrorCode.STORE_UNAVAILABLE
        else:
            try:
                for key in self.store.keys():
                    raw = self.store.get(key)
                    if raw is None:
                        continue
                    expires_at = parse_instant_ms(raw)
                    if expires_at is None or not _renderable(expires_at):
                        skipped += 1
                        continue
                    entries.append(WhitelistEntry(address=key, expires_at=expires_at))
            except Exception:
                logger.exception("Failed to list whitelist entries")
                error = ErrorCode.STORE_UNAVAILABLE
                entries = []

        if skipped:
            logger.warning("Skipped %d corrupted whitelist entries while listing", skipped)
        entries.sort(key=lambda e: e.address)

        record = self.audit.emit(
            AuditAction.ADMIN_LIST,
            actor=actor_of(caller, self.settings.anonymous_actor),
            outcome=AuditOutcome.OK if error is None else AuditOutcome.ERROR,
            source_ip=normalize_address(caller.remote_address) if caller is not None else "",
            reason=error,
            detail=f"entries={len(entries)}" if error is None else "",
            request_id=caller.request_id if caller is not None else "",
        )
        return ListResult(record=record, entries=entries, error=error)


def _renderable(expires_at: int) -> bool:
    try:
        iso_from_ms(expires_at)
    except (ValueError, OverflowError, OSError):
        return False
    return True
