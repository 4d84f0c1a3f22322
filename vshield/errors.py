"""
VShield error taxonomy.

Every failure the core can report carries one of these codes. Checks never
raise: they fail closed and return a deny decision carrying the code.
Mutations return a typed result carrying the code so the gateway can turn it
into a protocol-level response.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable reason codes."""
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    MISSING_SOURCE_ADDRESS = "MISSING_SOURCE_ADDRESS"
    MISSING_TARGET_ADDRESS = "MISSING_TARGET_ADDRESS"
    IP_NOT_REGISTERED = "IP_NOT_REGISTERED"


# Codes caused by the caller rather than by the gate itself
CLIENT_ERRORS = frozenset({
    ErrorCode.MISSING_SOURCE_ADDRESS,
    ErrorCode.MISSING_TARGET_ADDRESS,
})


class VShieldError(Exception):
    """Base error carrying an ErrorCode."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or code.value
        super().__init__(f"{code.value}: {self.message}")


class StoreUnavailableError(VShieldError):
    """Raised by a store whose backend is not configured or not reachable."""

    def __init__(self, message: str = "whitelist store is not available"):
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message)
