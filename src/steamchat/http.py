"""aiohttp transport used by the API client.

Requests marked ``QUEUED`` share a single FIFO lane that can be paused while
the session is being re-established; everything else is sent immediately.
Resends issued while the lane is paused are held until it resumes and then
go out on their own lane.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Optional, Set

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)


class HttpFlags(enum.Flag):
    NONE = 0
    POST = enum.auto()
    SSL = enum.auto()
    QUEUED = enum.auto()


RequestCallback = Callable[["HttpRequest"], None]
RequestBuilder = Callable[["HttpRequest"], None]


@dataclass(eq=False)
class HttpRequest:
    host: str
    port: int
    path: str
    callback: RequestCallback
    data: Any = None
    flags: HttpFlags = HttpFlags.NONE
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Optional[str]] = field(default_factory=dict)
    builder: Optional[RequestBuilder] = None
    body: Optional[str] = None
    status: Optional[int] = None
    error: Optional[TransportError] = None
    sends: int = 0

    @property
    def method(self) -> str:
        return "POST" if HttpFlags.POST in self.flags else "GET"

    @property
    def url(self) -> str:
        scheme = "https" if HttpFlags.SSL in self.flags else "http"
        return f"{scheme}://{self.host}:{self.port}{self.path}"

    def prepare(self) -> None:
        """Clear completion state and rebuild parameters for a new send."""

        self.body = None
        self.status = None
        self.error = None
        if self.builder is not None:
            self.builder(self)

    def encoded_params(self) -> Dict[str, str]:
        return {key: value for key, value in self.params.items() if value is not None}


class SteamHttp:
    """Submits :class:`HttpRequest` objects and reports completions."""

    def __init__(
        self,
        agent: str,
        *,
        timeout: float = 60.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.agent = agent
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._queue: Deque[HttpRequest] = deque()
        self._held: Deque[HttpRequest] = deque()
        self._queue_paused = False
        self._queue_task: asyncio.Task | None = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def queue_paused(self) -> bool:
        return self._queue_paused

    @property
    def pending(self) -> int:
        return len(self._tasks) + len(self._queue) + len(self._held)

    def send(self, req: HttpRequest) -> None:
        if HttpFlags.QUEUED in req.flags:
            self._queue.append(req)
            self._kick_queue()
            return
        task = asyncio.get_running_loop().create_task(self._perform(req))
        self._track(task)

    def resend(self, req: HttpRequest) -> None:
        """Submit ``req`` again once the queued lane is running.

        While the lane is paused the request is held. On resume, queued
        requests rejoin the FIFO ahead of anything submitted during the pause
        and the rest are sent right away. Parameters are rebuilt at send time,
        so a resend after relogon carries the refreshed session.
        """

        logger.debug("resending %s %s", req.method, req.path)
        if self._queue_paused:
            self._held.append(req)
            return
        self.send(req)

    def set_queue_paused(self, paused: bool) -> None:
        if paused == self._queue_paused:
            return
        self._queue_paused = paused
        logger.debug("request queue %s", "paused" if paused else "resumed")
        if not paused:
            self._release_held()
            self._kick_queue()

    async def close(self) -> None:
        logger.debug("closing transport with %d requests pending", self.pending)
        self._held.clear()
        self._queue.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        self._queue_task = None
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _release_held(self) -> None:
        held, self._held = self._held, deque()
        queued = [req for req in held if HttpFlags.QUEUED in req.flags]
        self._queue.extendleft(reversed(queued))
        for req in held:
            if HttpFlags.QUEUED not in req.flags:
                self.send(req)

    def _kick_queue(self) -> None:
        if self._queue_paused or not self._queue:
            return
        if self._queue_task is not None and not self._queue_task.done():
            return
        self._queue_task = asyncio.get_running_loop().create_task(self._drain_queue())
        self._track(self._queue_task)

    async def _drain_queue(self) -> None:
        while self._queue and not self._queue_paused:
            req = self._queue.popleft()
            await self._perform(req)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _perform(self, req: HttpRequest) -> None:
        req.prepare()
        req.sends += 1
        headers = {"User-Agent": self.agent}
        headers.update(req.headers)
        params = req.encoded_params()
        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self._timeout}
        if req.method == "POST":
            kwargs["data"] = params
        else:
            kwargs["params"] = params

        logger.debug("%s %s", req.method, req.url)
        session = self._ensure_session()
        try:
            async with session.request(req.method, req.url, **kwargs) as resp:
                req.status = resp.status
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    req.error = TransportError(f"HTTP {resp.status}: {resp.reason}", status=resp.status)
                else:
                    req.body = text
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            detail = str(exc) or exc.__class__.__name__
            req.error = TransportError(detail)
            req.error.__cause__ = exc

        if req.error is not None:
            logger.debug("%s %s failed: %s", req.method, req.path, req.error)
        try:
            req.callback(req)
        except Exception:
            logger.exception("completion callback for %s %s failed", req.method, req.path)
