from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class CallKind(str, Enum):
    GET = "get"
    POST = "post"


@dataclass(frozen=True)
class RequestDescriptor:
    """Fully specified outbound request, built once per call."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    proxy_url: Optional[str] = None
    proxy_auth: Optional[Tuple[str, str]] = None
    basic_auth: Optional[Tuple[str, str]] = None
    timeout_ms: int = 1000


@dataclass(frozen=True)
class HttpResult:
    """A completed HTTP exchange."""
    url: str
    status_code: int
    headers: Dict[str, str]
    body: bytes = b""
    wire_length: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.body


@dataclass(frozen=True)
class TransportFailure:
    """The request did not complete: timeout, connection error, protocol error."""
    url: str
    reason: str
    timed_out: bool = False
