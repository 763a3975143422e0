"""Steam web chat API client.

Public operations submit a request and return at once. Completions arrive
on the event loop and are routed through :mod:`steamchat.decoders` before
the caller's callback runs. Single-item operations call
``callback(api, error)`` and list operations call
``callback(api, items, error)``.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence

from .config import SteamApiConfig
from .decoders import decoder_for
from .errors import ParseError, SteamApiError
from .http import HttpFlags, HttpRequest, SteamHttp
from .session import Session
from .types import ApiType, Message, MessageType

logger = logging.getLogger(__name__)

STEAM_API_FORMAT = "json"
STEAM_API_SCOPE = "read_profile write_profile read_client write_client"

PATH_AUTH = "/ISteamOAuth2/GetTokenWithCredentials/v0001"
PATH_FRIENDS = "/ISteamUserOAuth/GetFriendList/v0001"
PATH_LOGON = "/ISteamWebUserPresenceOAuth/Logon/v0001"
PATH_LOGOFF = "/ISteamWebUserPresenceOAuth/Logoff/v0001"
PATH_MESSAGE = "/ISteamWebUserPresenceOAuth/Message/v0001"
PATH_POLL = "/ISteamWebUserPresenceOAuth/Poll/v0001"
PATH_SUMMARIES = "/ISteamUserOAuth/GetUserSummaries/v0001"

ApiCallback = Callable[["SteamApi", Optional[SteamApiError]], None]
ListCallback = Callable[["SteamApi", List[Any], Optional[SteamApiError]], None]


class RelogonState(enum.Enum):
    NORMAL = "normal"
    IN_FLIGHT = "in_flight"
    RESUMING = "resuming"


@dataclass(eq=False)
class RequestContext:
    kind: ApiType
    callback: Optional[Callable[..., None]] = None
    result: Any = None
    error: Optional[SteamApiError] = None
    request: Optional[HttpRequest] = None


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Yield contiguous slices of ``items`` holding at most ``size`` entries."""

    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class SteamApi:
    def __init__(
        self,
        umqid: str | None = None,
        *,
        config: SteamApiConfig | None = None,
        http: SteamHttp | None = None,
        on_relogon: ApiCallback | None = None,
    ) -> None:
        self.config = config or SteamApiConfig()
        self.session = Session.new(umqid)
        self._owns_http = http is None
        self.http = http or SteamHttp(self.config.agent, timeout=self.config.request_timeout_s)
        self.on_relogon = on_relogon
        self.relogon_state = RelogonState.NORMAL

    async def close(self) -> None:
        if self._owns_http:
            await self.http.close()

    # Operations

    def authenticate(
        self,
        code: str | None,
        user: str,
        password: str,
        callback: ApiCallback | None = None,
    ) -> HttpRequest:
        def build(req: HttpRequest) -> None:
            req.params = {
                "format": STEAM_API_FORMAT,
                "client_id": self.config.client_id,
                "grant_type": "password",
                "username": user,
                "password": password,
                "x_emailauthcode": code or None,
                "scope": STEAM_API_SCOPE,
            }

        return self._submit(
            ApiType.AUTH,
            PATH_AUTH,
            callback,
            build,
            flags=HttpFlags.POST,
            headers={"User-Agent": self.config.auth_agent},
        )

    def friends(self, callback: ListCallback | None = None) -> HttpRequest:
        def build(req: HttpRequest) -> None:
            req.params = {
                "format": STEAM_API_FORMAT,
                "access_token": self.session.token,
                "steamid": self.session.steamid,
                "relationship": "friend",
            }

        return self._submit(ApiType.FRIENDS, PATH_FRIENDS, callback, build)

    def logon(self, callback: ApiCallback | None = None) -> HttpRequest:
        return self._submit(ApiType.LOGON, PATH_LOGON, callback, self._build_session_params, flags=HttpFlags.POST)

    def logoff(self, callback: ApiCallback | None = None) -> HttpRequest:
        return self._submit(ApiType.LOGOFF, PATH_LOGOFF, callback, self._build_session_params, flags=HttpFlags.POST)

    def send_message(self, message: Message | None, callback: ApiCallback | None = None) -> HttpRequest:
        if message is None:
            raise ValueError("message is required")
        if message.type in (MessageType.SAYTEXT, MessageType.EMOTE):
            text = message.text
        elif message.type is MessageType.TYPING:
            text = None
        else:
            raise ValueError(f"cannot send message of type {message.type.value!r}")

        def build(req: HttpRequest) -> None:
            self._build_session_params(req)
            req.params["steamid_dst"] = message.steamid
            req.params["type"] = message.type.value
            if text is not None:
                req.params["text"] = text

        return self._submit(
            ApiType.MESSAGE,
            PATH_MESSAGE,
            callback,
            build,
            flags=HttpFlags.POST | HttpFlags.QUEUED,
        )

    def poll(self, callback: ListCallback | None = None) -> HttpRequest:
        def build(req: HttpRequest) -> None:
            self._build_session_params(req)
            req.params["message"] = str(self.session.last_message_id)
            req.params["sectimeout"] = str(self.config.poll_timeout_s)

        return self._submit(
            ApiType.POLL,
            PATH_POLL,
            callback,
            build,
            flags=HttpFlags.POST,
            headers={"Connection": "Keep-Alive"},
        )

    def summaries(self, steamids: Iterable[str] | None, callback: ListCallback | None = None) -> List[HttpRequest]:
        """Fetch profile summaries, one request per batch of ids.

        ``callback`` runs once for every batch. An empty or missing id list
        calls back immediately with an empty result and sends nothing.
        """

        ids = list(steamids or [])
        if not ids:
            if callback is not None:
                callback(self, [], None)
            return []
        return [
            self._summaries_request(",".join(batch), callback)
            for batch in chunked(ids, self.config.summaries_batch_size)
        ]

    def summary(self, steamid: str, callback: ListCallback | None = None) -> HttpRequest:
        if not steamid:
            raise ValueError("steamid is required")
        return self._summaries_request(steamid, callback)

    # Relogon recovery

    def recover_session(self, ctx: RequestContext) -> None:
        """Relogon and resend ``ctx``'s request once the queue resumes."""

        logger.warning("%s: session is not logged on, relogging on", ctx.kind.label)
        self.http.set_queue_paused(True)
        if self.relogon_state is RelogonState.NORMAL:
            self.relogon_state = RelogonState.IN_FLIGHT
            self._submit(
                ApiType.RELOGON,
                PATH_LOGON,
                self._relogon_done,
                self._build_session_params,
                flags=HttpFlags.POST,
            )
        ctx.result = None
        ctx.error = None
        if ctx.request is not None:
            self.http.resend(ctx.request)

    def _relogon_done(self, api: SteamApi, error: SteamApiError | None) -> None:
        if error is not None:
            logger.warning("%s", error)
        else:
            logger.info("relogon succeeded for %s", self.session.steamid)
        if self.on_relogon is not None:
            self.on_relogon(api, error)

    # Internals

    def _build_session_params(self, req: HttpRequest) -> None:
        req.params = {
            "format": STEAM_API_FORMAT,
            "access_token": self.session.token,
            "umqid": self.session.umqid,
        }

    def _summaries_request(self, steamids: str, callback: ListCallback | None) -> HttpRequest:
        def build(req: HttpRequest) -> None:
            req.params = {
                "format": STEAM_API_FORMAT,
                "access_token": self.session.token,
                "steamids": steamids,
            }

        return self._submit(ApiType.SUMMARIES, PATH_SUMMARIES, callback, build)

    def _submit(
        self,
        kind: ApiType,
        path: str,
        callback: Callable[..., None] | None,
        builder: Callable[[HttpRequest], None],
        *,
        flags: HttpFlags = HttpFlags.NONE,
        headers: dict[str, str] | None = None,
    ) -> HttpRequest:
        ctx = RequestContext(kind=kind, callback=callback)
        if self.config.ssl:
            flags |= HttpFlags.SSL
        req = HttpRequest(
            host=self.config.host,
            port=self.config.port,
            path=path,
            callback=self._on_complete,
            data=ctx,
            flags=flags,
            headers=dict(headers or {}),
            builder=builder,
        )
        ctx.request = req
        logger.debug("submitting %s request", kind.label)
        self.http.send(req)
        return req

    def _on_complete(self, req: HttpRequest) -> None:
        ctx: RequestContext = req.data
        if ctx.kind is ApiType.RELOGON:
            self.relogon_state = RelogonState.RESUMING
            self.http.set_queue_paused(False)

        deliver = True
        if req.error is not None:
            ctx.error = req.error
        else:
            payload = self._parse(ctx, req.body)
            if payload is not None:
                deliver = decoder_for(ctx.kind)(self, ctx, payload)

        if ctx.kind is ApiType.RELOGON:
            self.relogon_state = RelogonState.NORMAL

        if ctx.error is not None:
            ctx.error.with_prefix(ctx.kind.label)
            ctx.result = None

        if deliver:
            self._deliver(ctx)

    @staticmethod
    def _parse(ctx: RequestContext, body: str | None) -> dict[str, Any] | None:
        try:
            payload = json.loads(body or "")
        except json.JSONDecodeError as exc:
            ctx.error = ParseError(f"Parser: {exc}")
            return None
        if not isinstance(payload, dict):
            ctx.error = ParseError("Parser: expected a JSON object")
            return None
        return payload

    def _deliver(self, ctx: RequestContext) -> None:
        if ctx.callback is None:
            return
        if ctx.kind.returns_list:
            items = ctx.result if ctx.result is not None else []
            ctx.callback(self, items, ctx.error)
        else:
            ctx.callback(self, ctx.error)
