"""
Inspection identifiers.

Format: <channel prefix><epoch millis>-<8 base36 chars>, e.g.
INSP-RP-1719835200000-K3J9X0QZ. Salesforce imports keep their SF- prefix.
"""
from datetime import datetime
from typing import Optional
from uuid import uuid4

from ...models.domain import CreationChannel


ID_PREFIXES = {
    CreationChannel.INDIVIDUAL: "INSP-PI-",
    CreationChannel.MASSIVE: "INSP-IM-",
    CreationChannel.SPECIAL: "INSP-ES-",
    CreationChannel.REPROGRAMMED: "INSP-RP-",
    CreationChannel.SALESFORCE: "SF-",
}

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _random_suffix(length: int = 8) -> str:
    value = uuid4().int
    chars = []
    for _ in range(length):
        value, index = divmod(value, 36)
        chars.append(_BASE36[index])
    return "".join(chars)


def generate_inspection_id(channel: CreationChannel, now: datetime) -> str:
    """New globally unique id whose prefix encodes the creation channel."""
    millis = int(now.timestamp() * 1000)
    return f"{ID_PREFIXES[CreationChannel(channel)]}{millis}-{_random_suffix()}"


def channel_for_id(record_id: Optional[str]) -> Optional[CreationChannel]:
    """Creation channel encoded in an id, None for legacy/unknown ids."""
    if not record_id:
        return None
    for channel, prefix in ID_PREFIXES.items():
        if record_id.startswith(prefix):
            return channel
    return None


def is_salesforce_id(record_id: Optional[str]) -> bool:
    return channel_for_id(record_id) == CreationChannel.SALESFORCE
