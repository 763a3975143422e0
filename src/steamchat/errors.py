"""Error taxonomy for the Steam API client.

Errors are delivered to operation callbacks as values. Only argument
validation raises (``ValueError``) from the public operations.
"""

from __future__ import annotations


class SteamApiError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def with_prefix(self, label: str) -> "SteamApiError":
        """Prefix the message with ``label`` in place and return self."""

        self.message = f"{label}: {self.message}"
        self.args = (self.message,)
        return self

    def __str__(self) -> str:
        return self.message


class TransportError(SteamApiError):
    """Network, TLS or HTTP status failure."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(SteamApiError):
    """The response body was not a JSON object."""


class AuthError(SteamApiError):
    pass


class AuthRequiresCodeError(AuthError):
    """Steam Guard wants the code mailed to the account owner."""


class FriendsError(SteamApiError):
    pass


class LogonError(SteamApiError):
    pass


class RelogonError(SteamApiError):
    pass


class LogoffError(SteamApiError):
    pass


class MessageError(SteamApiError):
    pass


class PollError(SteamApiError):
    pass


class SummariesError(SteamApiError):
    pass
