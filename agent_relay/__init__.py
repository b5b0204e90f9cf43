"""Agent Thread Relay - streams replies from a thread/run/message agent backend.

Combines FastAPI for HTTP streaming, httpx and tenacity for upstream calls,
NiceGUI for visualization, and Pydantic for data validation.

Components:
    - backend: Token provider and retrying upstream gateway
    - workflow: Submit, run, poll, retrieve, and extract orchestration
    - streaming: SSE emitter and client-side stream consumer
    - threads: Thread creation quota, deletion, and idle teardown
    - api: HTTP endpoints and streaming responses
    - ui: Web interface for chat interactions
    - models: Request/response and upstream schemas
"""

__version__ = "0.1.0"
