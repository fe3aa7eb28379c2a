import json

from rabbilite.errors import MessageMiddlewareSerializationError


def encode_message(message):
    """
    Serialize a message to compact JSON bytes.

    NaN and Infinity are rejected since they are not valid JSON.
    """
    try:
        return json.dumps(message, separators=(",", ":"), allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise MessageMiddlewareSerializationError(str(e)) from e


def decode_message(payload):
    """Inverse of encode_message"""
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8")
    return json.loads(payload)
