"""
Control messages exchanged between pages and a cache router.
"""

from enum import Enum
from typing import Any, Callable, Optional


class MessageType(Enum):
    """Recognized control message types."""

    SKIP_WAITING = "SKIP_WAITING"
    GET_VERSION = "GET_VERSION"
    VERSION_RESPONSE = "VERSION_RESPONSE"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def of(cls, data: Any) -> Optional["MessageType"]:
        """Return the type of a message payload, or None if unrecognized."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(data.get("type"))
        except ValueError:
            return None


class MessagePort:
    """One end of a reply channel.

    Messages posted to the port are kept in :attr:`messages` and forwarded
    to ``on_message`` when one is given.
    """

    def __init__(self, on_message: Optional[Callable[[dict[str, Any]], None]] = None):
        self.messages: list[dict[str, Any]] = []
        self.on_message = on_message

    def post_message(self, message: dict[str, Any]) -> None:
        self.messages.append(message)
        if self.on_message is not None:
            self.on_message(message)

    @property
    def last(self) -> Optional[dict[str, Any]]:
        return self.messages[-1] if self.messages else None


def version_response(version: str) -> dict[str, Any]:
    """Build the reply to a GET_VERSION message."""
    return {"type": MessageType.VERSION_RESPONSE.value, "version": version}
