"""Protocol module - Entry wire codecs."""

from bookcache_core.protocol.serializer import (
    Serializer,
    SerializationError,
    JSONSerializer,
    MsgPackSerializer,
    get_serializer,
)

__all__ = [
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
