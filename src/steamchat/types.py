"""Operation kinds, message and persona enums, and result records."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ApiType(enum.Enum):
    """Operation kinds understood by the API client."""

    AUTH = ("Authentication", False)
    FRIENDS = ("Friends", True)
    LOGON = ("Logon", False)
    RELOGON = ("Relogon", False)
    LOGOFF = ("Logoff", False)
    MESSAGE = ("Message", False)
    POLL = ("Polling", True)
    SUMMARIES = ("Summaries", True)

    def __init__(self, label: str, returns_list: bool) -> None:
        self.label = label
        self.returns_list = returns_list


class MessageType(enum.Enum):
    SAYTEXT = "saytext"
    EMOTE = "emote"
    LEFT_CONV = "leftconversation"
    RELATIONSHIP = "personarelationship"
    STATE = "personastate"
    TYPING = "typing"

    @classmethod
    def from_str(cls, value: str | None) -> MessageType | None:
        """Look up a message type by its wire name, ignoring case."""

        if value is None:
            return None
        lowered = value.lower()
        for member in cls:
            if member.value == lowered:
                return member
        return None


class PersonaState(enum.IntEnum):
    OFFLINE = 0
    ONLINE = 1
    BUSY = 2
    AWAY = 3
    SNOOZE = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_str(cls, value: str | None) -> PersonaState:
        if value is None:
            return cls.OFFLINE
        for member in cls:
            if member.label.lower() == value.lower():
                return member
        return cls.OFFLINE

    @classmethod
    def coerce(cls, value: int) -> PersonaState | int:
        try:
            return cls(value)
        except ValueError:
            return value


@dataclass
class Message:
    """A chat event received from polling, or a message to be sent.

    ``steamid`` is the sender for polled events and the destination for
    outgoing messages.
    """

    steamid: str
    type: MessageType
    text: str | None = None
    nick: str | None = None
    state: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "steamid": self.steamid,
            "type": self.type.value,
            "text": self.text,
            "nick": self.nick,
            "state": self.state,
        }


@dataclass
class Summary:
    steamid: str
    game: str | None = None
    server_address: str | None = None
    nick: str | None = None
    profile_url: str | None = None
    full_name: str | None = None
    state: int = 0

    @property
    def state_label(self) -> str:
        state = PersonaState.coerce(self.state)
        return state.label if isinstance(state, PersonaState) else ""

    def to_dict(self) -> dict[str, object]:
        return {
            "steamid": self.steamid,
            "game": self.game,
            "server_address": self.server_address,
            "nick": self.nick,
            "profile_url": self.profile_url,
            "full_name": self.full_name,
            "state": self.state,
        }
