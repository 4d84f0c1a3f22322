"""
Configuration module for the VShield gateway.

Centralizes all configuration with environment variable support and
builds the shared store the gate runs against.
"""

import logging
import os
from typing import Optional

from vshield import (
    GateSettings,
    InMemoryWhitelistStore,
    RedisWhitelistStore,
    WhitelistStore,
)
from vshield.settings import ANONYMOUS_ACTOR, DEFAULT_TTL_MS, RENEWAL_THRESHOLD_MS
from vshield.util import parse_ttl_ms

logger = logging.getLogger(__name__)

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("VSHIELD_ENV", "dev")  # dev|stage|prod

# TTL policy (milliseconds); invalid values fall back to the built-in defaults
DEFAULT_TTL = parse_ttl_ms(os.getenv("VSHIELD_DEFAULT_TTL_MS"), DEFAULT_TTL_MS)
RENEWAL_THRESHOLD = parse_ttl_ms(os.getenv("VSHIELD_RENEWAL_THRESHOLD_MS"), RENEWAL_THRESHOLD_MS)

# Store backend
STORE_BACKEND = os.getenv("VSHIELD_STORE", "memory")  # memory|redis
REDIS_URL = os.getenv("VSHIELD_REDIS_URL", "redis://localhost:6379/0")
REDIS_PREFIX = os.getenv("VSHIELD_REDIS_PREFIX", "vshield:ip:")

# Headers set by the reverse proxy in front of the gateway
CLIENT_IP_HEADER = os.getenv("VSHIELD_CLIENT_IP_HEADER", "")
ACTOR_HEADER = os.getenv("VSHIELD_ACTOR_HEADER", "X-VShield-User")
REASON_HEADER = os.getenv("VSHIELD_REASON_HEADER", "X-VShield-Reason")
ANONYMOUS = os.getenv("VSHIELD_ANONYMOUS_ACTOR", ANONYMOUS_ACTOR) or ANONYMOUS_ACTOR

# Logging
LOG_LEVEL = os.getenv("VSHIELD_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("VSHIELD_LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("VSHIELD_LOG_FILE", "") or None


# ============================================================
# Builders
# ============================================================

def gate_settings() -> GateSettings:
    """TTL policy and actor default for the core components."""
    return GateSettings(
        default_ttl_ms=DEFAULT_TTL,
        renewal_threshold_ms=RENEWAL_THRESHOLD,
        anonymous_actor=ANONYMOUS,
    )


def build_store(backend: Optional[str] = None) -> Optional[WhitelistStore]:
    """
    Build the shared store for the configured backend.

    Returns None for an unknown backend; every entry point then fails closed
    with STORE_UNAVAILABLE.
    """
    backend = (backend or STORE_BACKEND).lower()
    if backend == "memory":
        return InMemoryWhitelistStore()
    if backend == "redis":
        return RedisWhitelistStore.from_url(REDIS_URL, key_prefix=REDIS_PREFIX)
    logger.error("Unknown VSHIELD_STORE backend %r; whitelist storage is not configured", backend)
    return None
