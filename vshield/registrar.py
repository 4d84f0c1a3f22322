"""
VShield Registrar

Self-service enrollment. The address is always the caller's own
connection-level source address, never a value the caller supplies, so a
caller cannot whitelist an address it does not own.
"""

import logging
from typing import Optional

from .audit import AuditAction, AuditLogger, AuditOutcome
from .context import CallerContext, actor_of
from .errors import ErrorCode
from .models import MutationResult
from .settings import GateSettings
from .store import WhitelistStore, put_entry
from .util import Clock, normalize_address, now_ms

logger = logging.getLogger(__name__)


class StoreOperator:
    """Shared plumbing for components that mutate the whitelist."""

    def __init__(
        self,
        store: Optional[WhitelistStore],
        audit: Optional[AuditLogger] = None,
        settings: Optional[GateSettings] = None,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.audit = audit or AuditLogger()
        self.settings = settings or GateSettings()
        self._clock = clock or now_ms

    def _register(
        self,
        action: AuditAction,
        key: str,
        ttl_ms: int,
        caller: Optional[CallerContext],
        missing: ErrorCode
    ) -> MutationResult:
        error = self._precheck(key, missing)
        expires_at = None
        if error is None:
            try:
                expires_at = put_entry(self.store, key, ttl_ms, self._clock())
            except Exception:
                logger.exception("Failed to register %s", key)
                error = ErrorCode.STORE_UNAVAILABLE
        return self._finish(
            action, key, caller, error,
            expires_at=expires_at,
            ttl_ms=ttl_ms,
            detail=f"ttl_ms={ttl_ms}" if error is None else "",
        )

    def _cancel(
        self,
        action: AuditAction,
        key: str,
        caller: Optional[CallerContext],
        missing: ErrorCode
    ) -> MutationResult:
        error = self._precheck(key, missing)
        if error is None:
            try:
                self.store.delete(key)
            except Exception:
                logger.exception("Failed to cancel %s", key)
                error = ErrorCode.STORE_UNAVAILABLE
        return self._finish(action, key, caller, error)

    def _precheck(self, key: str, missing: ErrorCode) -> Optional[ErrorCode]:
        if self.store is None:
            return ErrorCode.STORE_UNAVAILABLE
        if not key:
            return missing
        return None

    def _finish(
        self,
        action: AuditAction,
        key: str,
        caller: Optional[CallerContext],
        error: Optional[ErrorCode],
        expires_at: Optional[int] = None,
        ttl_ms: Optional[int] = None,
        detail: str = ""
    ) -> MutationResult:
        source_ip = normalize_address(caller.remote_address) if caller is not None else ""
        record = self.audit.emit(
            action,
            actor=actor_of(caller, self.settings.anonymous_actor),
            outcome=AuditOutcome.OK if error is None else AuditOutcome.ERROR,
            source_ip=source_ip,
            target_ip=key,
            reason=error,
            detail=detail,
            request_id=caller.request_id if caller is not None else "",
        )
        return MutationResult(
            action=record.action,
            address=key,
            record=record,
            error=error,
            expires_at=expires_at if error is None else None,
            ttl_ms=ttl_ms if error is None else None,
        )


class Registrar(StoreOperator):
    """
    Enrollment and removal of the caller's own address.

    Usage:
        registrar = Registrar(store, audit)
        result = registrar.register_self(caller)
        if not result.ok:
            ...  # result.error is an ErrorCode
    """

    def register_self(self, caller: CallerContext) -> MutationResult:
        """Whitelist the caller's source address for the default TTL."""
        key = normalize_address(caller.remote_address)
        return self._register(
            AuditAction.REGISTER_SELF,
            key,
            self.settings.default_ttl_ms,
            caller,
            ErrorCode.MISSING_SOURCE_ADDRESS,
        )

    def cancel_self(self, caller: CallerContext) -> MutationResult:
        """Remove the caller's source address. Absent entries are not an error."""
        key = normalize_address(caller.remote_address)
        return self._cancel(AuditAction.CANCEL_SELF, key, caller, ErrorCode.MISSING_SOURCE_ADDRESS)
