"""Event-stream framing, normalized events and the stream normalizer."""

from leasebot.streaming.events import DONE_FRAME, NormalizedEvent, encode_event
from leasebot.streaming.framing import SSELineDecoder
from leasebot.streaming.normalizer import StreamNormalizer, translate

__all__ = [
    "DONE_FRAME",
    "NormalizedEvent",
    "SSELineDecoder",
    "StreamNormalizer",
    "encode_event",
    "translate",
]
