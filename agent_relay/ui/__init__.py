"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with streaming updates
    - Thread initialization, "new chat", and idle teardown

Contains minimal business logic. Delegates all operations to the API
through the stream consumer and thread session. Per-browser state lives in
``session.ChatSession``, which does not import NiceGUI.
"""
