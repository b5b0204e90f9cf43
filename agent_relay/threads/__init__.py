"""Thread lifecycle: creation quota, deletion, and idle teardown."""

from agent_relay.threads.rate_limiter import FixedWindowRateLimiter
from agent_relay.threads.service import ThreadService, client_origin
from agent_relay.threads.session import HttpThreadClient, ThreadBackend, ThreadSession

__all__ = [
    "FixedWindowRateLimiter",
    "HttpThreadClient",
    "ThreadBackend",
    "ThreadService",
    "ThreadSession",
    "client_origin",
]
