"""
VShield gateway service.

Exposes the gate entry points over HTTP. Meant to sit behind a reverse
proxy that terminates TLS, authenticates admins and forwards:
- the caller's real source address (VSHIELD_CLIENT_IP_HEADER, or the socket peer)
- the authenticated actor, if any (VSHIELD_ACTOR_HEADER)

Routes:
    GET       /verify            request gate (auth_request style)
    GET|POST  /register          whitelist the caller's own address
    GET|POST  /cancel            remove the caller's own address
    GET       /admin/whitelist   list entries as JSON
    GET|POST  /admin/register    ?ip=...&timeout=<ms>
    GET|POST  /admin/cancel      ?ip=...
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response

from vshield import AuditLogger, BufferedRequestContext, LoggingAuditSink, VShieldGate, WhitelistStore
from vshield.util import Clock

from . import config
from .logging_config import configure_logging, get_request_id, set_request_id

logger = logging.getLogger(__name__)

app = FastAPI(title="VShield Gateway")

_gate: Optional[VShieldGate] = None


def init_gate(
    store: Optional[WhitelistStore],
    audit: Optional[AuditLogger] = None,
    clock: Optional[Clock] = None
) -> VShieldGate:
    """Build the process-wide gate around `store`."""
    global _gate
    _gate = VShieldGate(
        store,
        audit or AuditLogger(sinks=[LoggingAuditSink()]),
        settings=config.gate_settings(),
        clock=clock,
        reason_header=config.REASON_HEADER,
    )
    return _gate


def get_gate() -> VShieldGate:
    if _gate is None:
        return init_gate(config.build_store())
    return _gate


@app.on_event("startup")
def _startup():
    configure_logging(config.LOG_LEVEL, json_format=config.LOG_JSON, log_file=config.LOG_FILE)
    gate = get_gate()
    logger.info(
        "VShield gateway started (env=%s, store=%s, default_ttl_ms=%d, renewal_threshold_ms=%d)",
        config.ENV,
        type(gate.store).__name__ if gate.store is not None else "none",
        gate.settings.default_ttl_ms,
        gate.settings.renewal_threshold_ms,
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


class HTTPRequestContext(BufferedRequestContext):
    """RequestContext built from a FastAPI request."""

    @classmethod
    def from_request(cls, request: Request) -> "HTTPRequestContext":
        address = None
        if config.CLIENT_IP_HEADER:
            address = request.headers.get(config.CLIENT_IP_HEADER)
        elif request.client is not None:
            address = request.client.host
        return cls(
            address=address,
            identity=request.headers.get(config.ACTOR_HEADER) if config.ACTOR_HEADER else None,
            rid=get_request_id(),
        )

    def to_response(self) -> Response:
        has_type = any(k.lower() == "content-type" for k in self.headers)
        return Response(
            content=self.body,
            status_code=self.status or 500,
            headers=self.headers,
            media_type=None if has_type else "text/plain",
        )


@app.get("/verify")
def verify(request: Request, gate: VShieldGate = Depends(get_gate)):
    ctx = HTTPRequestContext.from_request(request)
    gate.http_verify(ctx)
    return ctx.to_response()


@app.api_route("/register", methods=["GET", "POST"])
def register(request: Request, gate: VShieldGate = Depends(get_gate)):
    ctx = HTTPRequestContext.from_request(request)
    gate.register(ctx)
    return ctx.to_response()


@app.api_route("/cancel", methods=["GET", "POST"])
def cancel(request: Request, gate: VShieldGate = Depends(get_gate)):
    ctx = HTTPRequestContext.from_request(request)
    gate.cancel(ctx)
    return ctx.to_response()


@app.get("/admin/whitelist")
def admin_whitelist(request: Request, gate: VShieldGate = Depends(get_gate)):
    ctx = HTTPRequestContext.from_request(request)
    gate.admin_whitelist(ctx)
    return ctx.to_response()


@app.api_route("/admin/register", methods=["GET", "POST"])
def admin_register(
    request: Request,
    ip: Optional[str] = Query(None),
    timeout: Optional[str] = Query(None),
    gate: VShieldGate = Depends(get_gate)
):
    ctx = HTTPRequestContext.from_request(request)
    gate.admin_register(ctx, ip, timeout)
    return ctx.to_response()


@app.api_route("/admin/cancel", methods=["GET", "POST"])
def admin_cancel(
    request: Request,
    ip: Optional[str] = Query(None),
    gate: VShieldGate = Depends(get_gate)
):
    ctx = HTTPRequestContext.from_request(request)
    gate.admin_cancel(ctx, ip)
    return ctx.to_response()
