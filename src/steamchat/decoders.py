"""Per-operation decoders for Steam API JSON responses.

Every decoder receives the client, the request context and the parsed JSON
object. It stores a result or an error on the context and returns whether
the caller's callback should run now. ``False`` means the request has been
handed to relogon recovery and will complete again later.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List

from .errors import (
    AuthError,
    AuthRequiresCodeError,
    FriendsError,
    LogoffError,
    LogonError,
    MessageError,
    PollError,
    RelogonError,
    SummariesError,
)
from .types import ApiType, Message, MessageType, Summary

if TYPE_CHECKING:  # pragma: no cover
    from .api import RequestContext, SteamApi

Payload = Dict[str, Any]
Decoder = Callable[["SteamApi", "RequestContext", Payload], bool]

NOT_LOGGED_ON = "not logged on"


def json_str(obj: Payload, key: str) -> str | None:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def json_int(obj: Payload, key: str) -> int | None:
    """Read an integer field; 64-bit values sometimes arrive as strings."""

    value = obj.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def json_array(obj: Payload, key: str) -> List[Any] | None:
    value = obj.get(key)
    return value if isinstance(value, list) else None


def _status(payload: Payload) -> str:
    return json_str(payload, "error") or "Unknown error"


def _is_ok(payload: Payload) -> bool:
    return json_str(payload, "error") == "OK"


def decode_auth(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    token = json_str(payload, "access_token")
    if token is not None:
        api.session.token = token
        return True

    description = json_str(payload, "error_description") or "Unknown error"
    if json_str(payload, "x_errorcode") == "steamguard_code_required":
        ctx.error = AuthRequiresCodeError(description)
    else:
        ctx.error = AuthError(description)
    return True


def decode_friends(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    friends: List[str] = []
    for entry in json_array(payload, "friends") or []:
        if not isinstance(entry, dict):
            continue
        if json_str(entry, "relationship") != "friend":
            continue
        steamid = json_str(entry, "steamid")
        if steamid is None:
            continue
        friends.append(steamid)

    if not friends:
        ctx.error = FriendsError("Empty friends list")
        return True
    ctx.result = friends
    return True


def _apply_logon(api: SteamApi, payload: Payload) -> None:
    message_id = json_int(payload, "message")
    if message_id is not None:
        api.session.advance_cursor(message_id)
    api.session.update_identity(json_str(payload, "steamid"), json_str(payload, "umqid"))


def decode_logon(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    if not _is_ok(payload):
        ctx.error = LogonError(_status(payload))
        return True
    _apply_logon(api, payload)
    return True


def decode_relogon(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    # The queued lane has already been resumed by the client at this point.
    if not _is_ok(payload):
        ctx.error = RelogonError(_status(payload))
        return True
    _apply_logon(api, payload)
    return True


def decode_logoff(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    if not _is_ok(payload):
        ctx.error = LogoffError(_status(payload))
    return True


def decode_message(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    if _is_ok(payload):
        return True

    status = _status(payload)
    if status.lower() == NOT_LOGGED_ON:
        api.recover_session(ctx)
        return False

    ctx.error = MessageError(status)
    return True


def _decode_poll_entry(entry: Payload, own_steamid: str | None) -> Message | None:
    sender = json_str(entry, "steamid_from")
    if sender is None or sender == own_steamid:
        return None

    kind = MessageType.from_str(json_str(entry, "type"))
    if kind is None:
        return None

    message = Message(steamid=sender, type=kind)
    if kind in (MessageType.SAYTEXT, MessageType.EMOTE):
        message.text = json_str(entry, "text")
        if message.text is None:
            return None
    elif kind in (MessageType.STATE, MessageType.RELATIONSHIP):
        if kind is MessageType.STATE:
            message.nick = json_str(entry, "persona_name")
            if message.nick is None:
                return None
        message.state = json_int(entry, "persona_state")
        if message.state is None:
            return None
    return message


def decode_poll(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    last = json_int(payload, "messagelast")
    if last is not None:
        api.session.advance_cursor(last)

    status = json_str(payload, "error")
    if status is not None and status.lower() not in ("timeout", "ok"):
        if status.lower() == NOT_LOGGED_ON:
            api.recover_session(ctx)
            return False
        ctx.error = PollError(status)
        return True

    messages: List[Message] = []
    for entry in json_array(payload, "messages") or []:
        if not isinstance(entry, dict):
            continue
        message = _decode_poll_entry(entry, api.session.steamid)
        if message is not None:
            messages.append(message)

    ctx.result = messages
    return True


def decode_summaries(api: SteamApi, ctx: RequestContext, payload: Payload) -> bool:
    summaries: List[Summary] = []
    for entry in json_array(payload, "players") or []:
        if not isinstance(entry, dict):
            continue
        steamid = json_str(entry, "steamid")
        if steamid is None:
            continue
        summaries.append(
            Summary(
                steamid=steamid,
                game=json_str(entry, "gameextrainfo"),
                server_address=json_str(entry, "gameserverip"),
                nick=json_str(entry, "personaname"),
                profile_url=json_str(entry, "profileurl"),
                full_name=json_str(entry, "realname"),
                state=json_int(entry, "personastate") or 0,
            )
        )

    if not summaries:
        ctx.error = SummariesError("No friends returned")
        return True
    ctx.result = summaries
    return True


DECODERS: Dict[ApiType, Decoder] = {
    ApiType.AUTH: decode_auth,
    ApiType.FRIENDS: decode_friends,
    ApiType.LOGON: decode_logon,
    ApiType.RELOGON: decode_relogon,
    ApiType.LOGOFF: decode_logoff,
    ApiType.MESSAGE: decode_message,
    ApiType.POLL: decode_poll,
    ApiType.SUMMARIES: decode_summaries,
}


def decoder_for(kind: ApiType) -> Decoder:
    return DECODERS[kind]
