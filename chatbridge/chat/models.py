from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Message:
    text: str = ""
    name: Optional[str] = None
    space: Optional[str] = None
    sender: Optional[str] = None
    create_time: Optional[str] = None

    @classmethod
    def from_api(cls, resource: dict[str, Any]) -> "Message":
        """Build a Message from a Google Chat `spaces.messages` resource."""
        return cls(
            text=resource.get("text") or "",
            name=resource.get("name"),
            space=(resource.get("space") or {}).get("name"),
            sender=(resource.get("sender") or {}).get("name"),
            create_time=resource.get("createTime"),
        )


@dataclass(frozen=True)
class ChatEvent:
    type: str = "MESSAGE"
    space: Optional[str] = None
    message: Optional[Message] = None

    @classmethod
    def from_message(cls, resource: dict[str, Any], space: str | None = None) -> "ChatEvent":
        message = Message.from_api(resource)
        return cls(type="MESSAGE", space=message.space or space, message=message)
