"""Response streaming: producer-side emitter and client-side consumer.

Responsibilities:
    - Tokenizing resolved text at word or character granularity
    - Emitting paced SSE frames with a single terminal frame
    - Decoding partial byte reads back into frames
    - Reassembling the assistant reply with abort and timeout handling
"""

from agent_relay.streaming.consumer import ChatMessage, ChatTranscript, StreamConsumer
from agent_relay.streaming.decoder import SSEDecoder
from agent_relay.streaming.emitter import ResponseEmitter
from agent_relay.streaming.tokens import Granularity, tokenize

__all__ = [
    "ChatMessage",
    "ChatTranscript",
    "Granularity",
    "ResponseEmitter",
    "SSEDecoder",
    "StreamConsumer",
    "tokenize",
]
