"""Per-client session identity and poll cursor."""

from __future__ import annotations

import secrets
from dataclasses import dataclass


def _random_umqid() -> str:
    return str(secrets.randbits(32))


@dataclass
class Session:
    """Authenticated identity shared by every request of one client."""

    umqid: str
    token: str | None = None
    steamid: str | None = None
    last_message_id: int = 0

    @classmethod
    def new(cls, umqid: str | None = None) -> Session:
        return cls(umqid=umqid if umqid is not None else _random_umqid())

    def advance_cursor(self, message_id: int) -> int:
        """Move the poll cursor forward, never backwards."""

        self.last_message_id = max(self.last_message_id, message_id)
        return self.last_message_id

    def update_identity(self, steamid: str | None, umqid: str | None) -> None:
        """Adopt the identity the server reports; empty values are ignored."""

        if steamid:
            self.steamid = steamid
        if umqid:
            self.umqid = umqid
