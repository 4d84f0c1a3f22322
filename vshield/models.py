"""Result types returned by the registrar and the admin operator."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .audit import AuditRecord
from .errors import CLIENT_ERRORS, ErrorCode
from .util import iso_from_ms


@dataclass(frozen=True)
class WhitelistEntry:
    """One whitelisted address and the instant it stops being valid."""
    address: str
    expires_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"ip": self.address, "expireAt": iso_from_ms(self.expires_at)}


@dataclass
class MutationResult:
    """Outcome of a register or cancel call."""
    action: str
    address: str
    record: AuditRecord
    error: Optional[ErrorCode] = None
    expires_at: Optional[int] = None
    ttl_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def client_error(self) -> bool:
        return self.error in CLIENT_ERRORS


@dataclass
class ListResult:
    """Outcome of an admin listing."""
    record: AuditRecord
    entries: List[WhitelistEntry] = field(default_factory=list)
    error: Optional[ErrorCode] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]
