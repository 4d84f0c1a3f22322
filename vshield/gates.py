"""
VShield front ends.

Thin adapters between the host capability interfaces and the core
components. The decision and mutation logic lives in Verifier, Registrar and
AdminOperator; the functions here only turn typed results into host actions
(status + body + headers, or allow/deny) and write the audit line to the
host log.

Status mapping:
    allow / success            -> 200
    deny (any reason)          -> 403, reason in the reason header
    MISSING_* address          -> 400
    STORE_UNAVAILABLE mutation -> 500
"""

import json
from typing import Any, Optional

from .admin import AdminOperator
from .audit import AuditLogger, AuditRecord
from .context import RequestContext, SessionContext
from .errors import ErrorCode
from .models import MutationResult
from .registrar import Registrar
from .settings import GateSettings
from .store import WhitelistStore
from .util import Clock
from .verifier import Verifier

REASON_HEADER = "X-VShield-Reason"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

STORE_NOT_CONFIGURED = "VShield storage is not configured"
MISSING_CLIENT_IP = "Missing client IP"
MISSING_IP_PARAM = "Missing query parameter: ip"


def status_for(error: Optional[ErrorCode]) -> int:
    """HTTP-equivalent status for a mutation outcome."""
    if error is None:
        return 200
    if error in (ErrorCode.MISSING_SOURCE_ADDRESS, ErrorCode.MISSING_TARGET_ADDRESS):
        return 400
    return 500


def _log(ctx: Any, record: AuditRecord, failed: bool) -> None:
    if failed:
        ctx.error(record.render())
    else:
        ctx.log(record.render())


class VShieldGate:
    """
    All gate entry points over one shared store.

    Usage:
        gate = VShieldGate(store, audit)
        gate.http_verify(request_ctx)      # auth_request style check
        gate.stream_verify(session_ctx)    # connection-level check
        gate.register(request_ctx)
        gate.admin_register(request_ctx, ip="192.0.2.8", timeout="600000")
    """

    def __init__(
        self,
        store: Optional[WhitelistStore],
        audit: Optional[AuditLogger] = None,
        settings: Optional[GateSettings] = None,
        clock: Optional[Clock] = None,
        reason_header: str = REASON_HEADER
    ):
        self.store = store
        self.audit = audit or AuditLogger()
        self.settings = settings or GateSettings()
        self.reason_header = reason_header
        self.verifier = Verifier(store, self.audit, self.settings, clock)
        self.registrar = Registrar(store, self.audit, self.settings, clock)
        self.admin = AdminOperator(store, self.audit, self.settings, clock)

    # -- checks -------------------------------------------------------------

    def http_verify(self, ctx: RequestContext) -> bool:
        """Request gate: 200 when allowed, 403 plus reason header otherwise."""
        decision = self.verifier.check(ctx.remote_address, ctx)
        _log(ctx, decision.record, not decision.allowed)
        if decision.allowed:
            ctx.respond(200, "OK")
            return True

        ctx.set_header(self.reason_header, decision.reason.value)
        if decision.reason == ErrorCode.IP_NOT_REGISTERED:
            ctx.respond(403, f"{decision.address} is not registered")
        else:
            ctx.respond(403, "Forbidden")
        return False

    def stream_verify(self, session: SessionContext) -> bool:
        """Connection gate: allow() or deny(), nothing else."""
        decision = self.verifier.check(session.remote_address, session)
        _log(session, decision.record, not decision.allowed)
        if decision.allowed:
            session.allow()
        else:
            session.deny()
        return decision.allowed

    # -- self service -------------------------------------------------------

    def register(self, ctx: RequestContext) -> MutationResult:
        result = self.registrar.register_self(ctx)
        self._respond(ctx, result, f"{result.address} is registered", MISSING_CLIENT_IP)
        return result

    def cancel(self, ctx: RequestContext) -> MutationResult:
        result = self.registrar.cancel_self(ctx)
        self._respond(ctx, result, f"{result.address} is unregistered", MISSING_CLIENT_IP)
        return result

    # -- admin --------------------------------------------------------------

    def admin_register(self, ctx: RequestContext, ip: Optional[str], timeout: Any = None) -> MutationResult:
        result = self.admin.register(ip, timeout, ctx)
        self._respond(ctx, result, f"{result.address} is registered", MISSING_IP_PARAM)
        return result

    def admin_cancel(self, ctx: RequestContext, ip: Optional[str]) -> MutationResult:
        result = self.admin.cancel(ip, ctx)
        self._respond(ctx, result, f"{result.address} is unregistered", MISSING_IP_PARAM)
        return result

    def admin_whitelist(self, ctx: RequestContext) -> None:
        result = self.admin.list(ctx)
        _log(ctx, result.record, not result.ok)
        if not result.ok:
            ctx.respond(500, STORE_NOT_CONFIGURED)
            return
        ctx.set_header("Content-Type", JSON_CONTENT_TYPE)
        ctx.respond(200, json.dumps(result.to_list()))

    def _respond(self, ctx: RequestContext, result: MutationResult, ok_body: str, missing_body: str) -> None:
        _log(ctx, result.record, not result.ok)
        status = status_for(result.error)
        if status == 200:
            ctx.respond(200, ok_body)
        elif status == 400:
            ctx.respond(400, missing_body)
        else:
            ctx.respond(status, STORE_NOT_CONFIGURED)
