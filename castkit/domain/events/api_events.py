"""Domain Events related to API calls and the request-management layer.

Examples include events for when calls are deferred by the rate limiter,
succeed or fail, when the cache short-circuits a call, and when the bearer
token is refreshed.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- API Call Events ---

@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when an API call waits for rate limit capacity."""
    operation_key: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an API call is admitted and about to be sent."""
    operation_key: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds."""
    operation_key: str
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails. No retry follows."""
    operation_key: str
    error_type: str
    error_message: str
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class CacheHit(DomainEvent):
    """Event triggered when a cached response short-circuits an API call."""
    cache_key: str
    timestamp: float = field(default_factory=time.time)

# --- Token Events ---

@dataclass
class TokenRefreshStarted(DomainEvent):
    reason: str # 'no_token' or 'token_expired'
    timestamp: float = field(default_factory=time.time)

@dataclass
class TokenRefreshSucceeded(DomainEvent):
    expires_at_ms: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class TokenRefreshFailed(DomainEvent):
    error_message: str
    timestamp: float = field(default_factory=time.time)


EventSink = Callable[[DomainEvent], None]


def dispatch_event(sink: Optional[EventSink], event: DomainEvent) -> None:
    """Logs an event and forwards it to the sink, if any.

    Sink failures are logged and do not propagate to the API call.
    """
    logger.debug(f"EVENT: {event}")
    if sink is None:
        return
    try:
        sink(event)
    except Exception as e:
        logger.error(f"Event sink failed for {type(event).__name__}: {e}", exc_info=True)
