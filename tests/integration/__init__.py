"""Integration tests for the API working as a system.

Coverage:
    - POST /runs/stream: SSE protocol, headers, and error frames
    - POST /threads and DELETE /threads: status codes and rate limiting
    - StreamConsumer against the real app

Requests go through the real FastAPI app; only the upstream agent API is
replaced by a scripted MockTransport handler.
"""
