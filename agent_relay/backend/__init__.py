"""Upstream agent API access.

Responsibilities:
    - Bearer token acquisition and caching (client-credential flow)
    - Retrying HTTP calls for threads, messages, and runs
    - Mapping transport and HTTP failures onto the relay error taxonomy
"""

from agent_relay.backend.auth import (
    CachedCredential,
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    build_token_provider,
)
from agent_relay.backend.gateway import BackendGateway

__all__ = [
    "BackendGateway",
    "CachedCredential",
    "ClientCredentialsTokenProvider",
    "StaticTokenProvider",
    "TokenProvider",
    "build_token_provider",
]
