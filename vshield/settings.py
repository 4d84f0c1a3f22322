"""Gate settings shared by the verifier, registrar and admin operator."""

from dataclasses import dataclass

from .util import is_positive_integer

DEFAULT_TTL_MS = 120 * 60 * 1000  # 2 hours
RENEWAL_THRESHOLD_MS = 60 * 60 * 1000  # renew when under 1 hour remains
ANONYMOUS_ACTOR = "anonymous"


@dataclass(frozen=True)
class GateSettings:
    """TTL policy and audit attribution defaults."""
    default_ttl_ms: int = DEFAULT_TTL_MS
    renewal_threshold_ms: int = RENEWAL_THRESHOLD_MS
    anonymous_actor: str = ANONYMOUS_ACTOR

    def __post_init__(self):
        if not is_positive_integer(self.default_ttl_ms):
            raise ValueError(f"default_ttl_ms must be a positive integer, got {self.default_ttl_ms!r}")
        if not is_positive_integer(self.renewal_threshold_ms):
            raise ValueError(
                f"renewal_threshold_ms must be a positive integer, got {self.renewal_threshold_ms!r}"
            )
        if not self.anonymous_actor:
            raise ValueError("anonymous_actor cannot be empty")
