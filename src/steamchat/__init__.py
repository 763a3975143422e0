"""Session client for the Steam web chat API."""

__version__ = "0.1.0"

from .api import RelogonState, RequestContext, SteamApi, chunked
from .config import SteamApiConfig
from .errors import (
    AuthError,
    AuthRequiresCodeError,
    FriendsError,
    LogoffError,
    LogonError,
    MessageError,
    ParseError,
    PollError,
    RelogonError,
    SteamApiError,
    SummariesError,
    TransportError,
)
from .http import HttpFlags, HttpRequest, SteamHttp
from .session import Session
from .types import ApiType, Message, MessageType, PersonaState, Summary

__all__ = [
    "__version__",
    "ApiType",
    "AuthError",
    "AuthRequiresCodeError",
    "FriendsError",
    "HttpFlags",
    "HttpRequest",
    "LogoffError",
    "LogonError",
    "Message",
    "MessageError",
    "MessageType",
    "ParseError",
    "PersonaState",
    "PollError",
    "RelogonError",
    "RelogonState",
    "RequestContext",
    "Session",
    "SteamApi",
    "SteamApiConfig",
    "SteamApiError",
    "SteamHttp",
    "Summary",
    "SummariesError",
    "TransportError",
    "chunked",
]
