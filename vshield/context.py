"""
Host capability interfaces.

The gate never touches a host's request or connection objects directly. A
gateway adapts them into one of two small interfaces:

    RequestContext  - HTTP-like hosts: respond with status+body, set a header, log
    SessionContext  - connection-level hosts: allow, deny, log

Both carry the transport-level source address and, when the gateway
resolved one, the authenticated actor.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class CallerContext(ABC):
    """Who is calling and from where."""

    @property
    @abstractmethod
    def remote_address(self) -> Optional[str]:
        """Source address of the connection, as seen by the transport."""
        pass

    @property
    def actor(self) -> Optional[str]:
        """Authenticated identity forwarded by the gateway, if any."""
        return None

    @property
    def request_id(self) -> str:
        return ""


class RequestContext(CallerContext):
    """Request/response host."""

    @abstractmethod
    def respond(self, status: int, body: str) -> None:
        pass

    @abstractmethod
    def set_header(self, name: str, value: str) -> None:
        pass

    def log(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)


class SessionContext(CallerContext):
    """Connection-level host that can only let a session through or drop it."""

    @abstractmethod
    def allow(self) -> None:
        pass

    @abstractmethod
    def deny(self) -> None:
        pass

    def log(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)


@dataclass
class Caller(CallerContext):
    """Plain caller for direct use of the core operations."""
    address: Optional[str] = None
    identity: Optional[str] = None
    rid: str = ""

    @property
    def remote_address(self) -> Optional[str]:
        return self.address

    @property
    def actor(self) -> Optional[str]:
        return self.identity

    @property
    def request_id(self) -> str:
        return self.rid


@dataclass
class BufferedRequestContext(RequestContext):
    """
    RequestContext that records the response instead of writing it.

    Gateways build one per request, run a gate entry point against it and
    then turn `status`, `body` and `headers` into their native response.
    """
    address: Optional[str] = None
    identity: Optional[str] = None
    rid: str = ""
    status: Optional[int] = None
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    logs: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def remote_address(self) -> Optional[str]:
        return self.address

    @property
    def actor(self) -> Optional[str]:
        return self.identity

    @property
    def request_id(self) -> str:
        return self.rid

    def respond(self, status: int, body: str) -> None:
        self.status = status
        self.body = body

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def log(self, message: str) -> None:
        self.logs.append(("info", message))
        super().log(message)

    def error(self, message: str) -> None:
        self.logs.append(("error", message))
        super().error(message)


def actor_of(caller: Optional[CallerContext], anonymous: str) -> str:
    """Actor for audit attribution; never blocks an operation."""
    if caller is None:
        return anonymous
    try:
        actor = caller.actor
    except Exception:
        logger.exception("Could not resolve actor from %s", type(caller).__name__)
        return anonymous
    actor = (actor or "").strip()
    return actor or anonymous
