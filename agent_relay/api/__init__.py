"""FastAPI endpoints for the agent thread relay.

HTTP and streaming routes with async request handling. Supports
Server-Sent Events for relaying the agent's reply.

Endpoints:
    - GET /health: Service health status
    - POST /threads: Create a thread (rate-limited per origin)
    - DELETE /threads: Delete a thread
    - POST /runs/stream: Submit a message and stream the reply
"""

from agent_relay.api.app import app, create_app
from agent_relay.api.deps import RelayServices, get_relay_services

__all__ = ["RelayServices", "app", "create_app", "get_relay_services"]
