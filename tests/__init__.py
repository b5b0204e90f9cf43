"""Test package for the agent thread relay.

Structure:
    - unit/: Individual components against scripted fakes
    - integration/: The FastAPI app end to end over ASGITransport

The upstream agent API is always an in-memory httpx MockTransport; no test
needs network access or credentials. Leverages pytest with pytest-check for
soft assertions.
"""
