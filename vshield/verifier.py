"""
VShield Verifier

Decides whether a source address may proceed. The same decision backs the
request gate and the connection gate.

The check:
1. Fails closed when the address is missing or the store is unavailable
2. Denies addresses with no entry
3. Deletes and denies entries whose expiry has passed (lazy deletion)
4. Renews entries that are inside the renewal window
5. Otherwise allows

Expired and never-registered addresses are both reported as
IP_NOT_REGISTERED; expiry is not a distinct externally visible state.

Renewal is a plain overwrite with now + default TTL. Two callers renewing the
same entry at nearly the same instant write nearly the same value, and either
result is a valid entry.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .audit import AuditAction, AuditLogger, AuditOutcome, AuditRecord
from .context import CallerContext, actor_of
from .errors import ErrorCode
from .settings import GateSettings
from .store import WhitelistStore, put_entry
from .util import Clock, iso_from_ms, normalize_address, now_ms, parse_instant_ms

logger = logging.getLogger(__name__)


@dataclass
class Decision:
    """Outcome of one check."""
    allowed: bool
    address: str
    record: AuditRecord
    reason: Optional[ErrorCode] = None
    expires_at: Optional[int] = None
    renewed: bool = False


class Verifier:
    """
    Allow/deny decisions against the shared whitelist.

    Usage:
        verifier = Verifier(store, audit)
        decision = verifier.check("203.0.113.10")
        if decision.allowed:
            ...
    """

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

    def check(self, address: Optional[str], caller: Optional[CallerContext] = None) -> Decision:
        """
        Decide whether `address` may proceed.

        Never raises: any internal fault becomes a STORE_UNAVAILABLE deny.
        """
        key = normalize_address(address)
        actor = actor_of(caller, self.settings.anonymous_actor)
        source_ip = normalize_address(caller.remote_address) if caller is not None else key
        request_id = caller.request_id if caller is not None else ""

        expires_at = None
        renewed = False
        try:
            allowed, reason, expires_at, renewed = self._decide(key)
        except Exception:
            logger.exception("Whitelist check failed for %s", key or "<missing>")
            allowed, reason = False, ErrorCode.STORE_UNAVAILABLE

        detail = ""
        if renewed:
            detail = f"renewed_until={iso_from_ms(expires_at)}"
        record = self.audit.emit(
            AuditAction.VERIFY_ALLOW if allowed else AuditAction.VERIFY_DENY,
            actor=actor,
            outcome=AuditOutcome.ALLOW if allowed else AuditOutcome.DENY,
            source_ip=source_ip or key,
            target_ip=key,
            reason=reason,
            detail=detail,
            request_id=request_id,
        )
        return Decision(
            allowed=allowed,
            address=key,
            record=record,
            reason=reason,
            expires_at=expires_at if allowed else None,
            renewed=renewed,
        )

    def _decide(self, key: str):
        if not key or self.store is None:
            return False, ErrorCode.STORE_UNAVAILABLE, None, False

        raw = self.store.get(key)
        if raw is None:
            return False, ErrorCode.IP_NOT_REGISTERED, None, False

        expires_at = parse_instant_ms(raw)
        if expires_at is None:
            logger.warning("Dropping corrupted whitelist entry for %s: %r", key, raw)
            self.store.delete(key)
            return False, ErrorCode.IP_NOT_REGISTERED, None, False

        now = self._clock()
        if expires_at <= now:
            self.store.delete(key)
            return False, ErrorCode.IP_NOT_REGISTERED, None, False

        if expires_at - now <= self.settings.renewal_threshold_ms:
            expires_at = put_entry(self.store, key, self.settings.default_ttl_ms, now)
            return True, None, expires_at, True

        return True, None, expires_at, False
