"""
VShield IP Whitelist Gate

Version: 1.0.0

A shared, time-limited whitelist that decides whether a network source
address may proceed.

    ALLOWED(address) ∈ { TRUE, FALSE }

Any internal fault resolves to FALSE.

Entries expire lazily: the check that reads an expired entry deletes it.
The store also evicts every entry once its backing TTL elapses, and the
backing TTL always equals the logical lifetime of the entry. Entries with
less than the renewal threshold left are extended on the next allowed check.

Usage:
    from vshield import (
        InMemoryWhitelistStore,
        AuditLogger,
        VShieldGate,
        Caller,
    )

    gate = VShieldGate(InMemoryWhitelistStore(), AuditLogger())

    # Self service: whitelist the caller's own address
    gate.registrar.register_self(Caller(address="203.0.113.10", identity="alice"))

    # Check
    decision = gate.verifier.check("203.0.113.10")
    if decision.allowed:
        ...
    else:
        reason = decision.reason  # ErrorCode.IP_NOT_REGISTERED / STORE_UNAVAILABLE
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    ErrorCode,
    VShieldError,
    StoreUnavailableError,
)

# Settings
from .settings import (
    GateSettings,
    DEFAULT_TTL_MS,
    RENEWAL_THRESHOLD_MS,
    ANONYMOUS_ACTOR,
)

# Store
from .store import (
    WhitelistStore,
    InMemoryWhitelistStore,
    RedisWhitelistStore,
    put_entry,
)

# Audit
from .audit import (
    AuditAction,
    AuditOutcome,
    AuditRecord,
    AuditSink,
    LoggingAuditSink,
    InMemoryAuditSink,
    AuditLogger,
)

# Host capability interfaces
from .context import (
    CallerContext,
    RequestContext,
    SessionContext,
    Caller,
    BufferedRequestContext,
    actor_of,
)

# Core components
from .models import WhitelistEntry, MutationResult, ListResult
from .verifier import Verifier, Decision
from .registrar import Registrar
from .admin import AdminOperator

# Front ends
from .gates import VShieldGate, REASON_HEADER, status_for


__all__ = [
    # Version
    "__version__",

    # Errors
    "ErrorCode",
    "VShieldError",
    "StoreUnavailableError",

    # Settings
    "GateSettings",
    "DEFAULT_TTL_MS",
    "RENEWAL_THRESHOLD_MS",
    "ANONYMOUS_ACTOR",

    # Store
    "WhitelistStore",
    "InMemoryWhitelistStore",
    "RedisWhitelistStore",
    "put_entry",

    # Audit
    "AuditAction",
    "AuditOutcome",
    "AuditRecord",
    "AuditSink",
    "LoggingAuditSink",
    "InMemoryAuditSink",
    "AuditLogger",

    # Contexts
    "CallerContext",
    "RequestContext",
    "SessionContext",
    "Caller",
    "BufferedRequestContext",
    "actor_of",

    # Components
    "WhitelistEntry",
    "MutationResult",
    "ListResult",
    "Verifier",
    "Decision",
    "Registrar",
    "AdminOperator",

    # Front ends
    "VShieldGate",
    "REASON_HEADER",
    "status_for",
]
