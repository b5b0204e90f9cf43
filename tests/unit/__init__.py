"""Unit tests for individual components in isolation.

Coverage:
    - config: Settings validation and environment loading
    - backend/: Gateway retry policy and token caching
    - workflow/: Orchestration steps, polling, and reply extraction
    - streaming/: Tokenizing, emitting, decoding, and consuming frames
    - threads/: Rate limiting and idle thread teardown

Injected sleeps and clocks keep retry and timeout tests fast.
"""
