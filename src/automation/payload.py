"""Payload codec — непрозрачная для планировщика кодировка пользователя.

Планировщик получает payload из poll() и возвращает его в act() без
изменений; внутри — версионированный JSON с идентичностью пользователя.
"""

import json
from typing import Final

from src.core.errors import InvalidPayload

PAYLOAD_VERSION: Final[int] = 1


def encode_user_payload(user: str) -> bytes:
    if not user:
        raise ValueError("user must be non-empty")
    return json.dumps({"v": PAYLOAD_VERSION, "user": user}, separators=(",", ":")).encode("utf-8")


def decode_user_payload(payload: bytes) -> str:
    """
    Raises:
        InvalidPayload: payload не bytes, не JSON, неизвестная версия или нет user
    """
    if not isinstance(payload, (bytes, bytearray)):
        raise InvalidPayload(f"Payload must be bytes, got {type(payload).__name__}")
    try:
        data = json.loads(bytes(payload).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidPayload(f"Undecodable payload: {e}") from e

    if not isinstance(data, dict) or data.get("v") != PAYLOAD_VERSION:
        raise InvalidPayload(f"Unsupported payload: {data!r}")
    user = data.get("user")
    if not isinstance(user, str) or not user:
        raise InvalidPayload("Payload has no user identity")
    return user
