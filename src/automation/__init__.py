"""Automation — poll/act для внешнего планировщика (upkeep)."""

from .payload import PAYLOAD_VERSION, decode_user_payload, encode_user_payload
from .trigger import AutomationTrigger, UpkeepOutcome, UpkeepResult

__all__ = [
    "AutomationTrigger",
    "UpkeepOutcome",
    "UpkeepResult",
    "encode_user_payload",
    "decode_user_payload",
    "PAYLOAD_VERSION",
]
