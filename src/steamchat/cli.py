"""Command line front-end for poking at the Steam chat API."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Callable, List, Optional, TextIO, Tuple

from .api import SteamApi
from .config import SteamApiConfig
from .errors import AuthRequiresCodeError, SteamApiError
from .types import Message, MessageType, Summary

POLL_ERROR_DELAY_S = 1.0

class CommandError(Exception):
    pass


def _single(operation: Callable[..., Any], *args: Any) -> asyncio.Future:
    future: asyncio.Future = asyncio.get_running_loop().create_future()

    def _done(_api: SteamApi, error: Optional[SteamApiError]) -> None:
        if not future.done():
            future.set_result(error)

    operation(*args, _done)
    return future


def _listing(operation: Callable[..., Any], *args: Any) -> asyncio.Future:
    future: asyncio.Future = asyncio.get_running_loop().create_future()

    def _done(_api: SteamApi, items: List[Any], error: Optional[SteamApiError]) -> None:
        if not future.done():
            future.set_result((items, error))

    operation(*args, _done)
    return future


async def _summaries(api: SteamApi, steamids: List[str]) -> Tuple[List[Summary], List[SteamApiError]]:
    """Collect every batch of a summaries request."""

    loop = asyncio.get_running_loop()
    finished = loop.create_future()
    summaries: List[Summary] = []
    errors: List[SteamApiError] = []
    remaining = 0

    def _done(_api: SteamApi, items: List[Summary], error: Optional[SteamApiError]) -> None:
        nonlocal remaining
        summaries.extend(items)
        if error is not None:
            errors.append(error)
        remaining -= 1
        if remaining <= 0 and not finished.done():
            finished.set_result(None)

    requests = api.summaries(steamids, _done)
    if not requests:
        return summaries, errors
    remaining += len(requests)
    await finished
    return summaries, errors


async def _login(api: SteamApi, args: argparse.Namespace) -> None:
    error = await _single(api.authenticate, args.code, args.user, args.password)
    if isinstance(error, AuthRequiresCodeError):
        raise CommandError(f"{error} (rerun with --code)")
    if error is not None:
        raise CommandError(str(error))
    error = await _single(api.logon)
    if error is not None:
        raise CommandError(str(error))


async def _logoff(api: SteamApi) -> None:
    error = await _single(api.logoff)
    if error is not None:
        logging.getLogger(__name__).warning("%s", error)


def _emit(output: TextIO, record: dict) -> None:
    output.write(json.dumps(record) + "\n")
    output.flush()


async def _run_login(api: SteamApi, args: argparse.Namespace, output: TextIO) -> int:
    await _login(api, args)
    _emit(output, {"t": "logon", "steamid": api.session.steamid, "umqid": api.session.umqid})
    await _logoff(api)
    return 0


async def _run_poll(api: SteamApi, args: argparse.Namespace, output: TextIO) -> int:
    await _login(api, args)
    try:
        friends, error = await _listing(api.friends)
        if error is not None:
            raise CommandError(str(error))
        summaries, errors = await _summaries(api, friends)
        for summary in summaries:
            _emit(output, {"t": "summary", **summary.to_dict(), "state_label": summary.state_label})
        for error in errors:
            _emit(output, {"t": "error", "message": str(error)})

        polls = 0
        while args.max_polls <= 0 or polls < args.max_polls:
            messages, error = await _listing(api.poll)
            polls += 1
            if error is not None:
                _emit(output, {"t": "error", "message": str(error)})
                await asyncio.sleep(POLL_ERROR_DELAY_S)
                continue
            for message in messages:
                _emit(output, {"t": "message", **message.to_dict()})
    finally:
        await _logoff(api)
    return 0


async def _run_send(api: SteamApi, args: argparse.Namespace, output: TextIO) -> int:
    await _login(api, args)
    try:
        kind = MessageType.EMOTE if args.emote else MessageType.SAYTEXT
        error = await _single(api.send_message, Message(steamid=args.to, type=kind, text=args.text))
        if error is not None:
            raise CommandError(str(error))
        _emit(output, {"t": "sent", "steamid": args.to})
    finally:
        await _logoff(api)
    return 0


_COMMANDS = {
    "login": _run_login,
    "poll": _run_poll,
    "send": _run_send,
}


async def run_command(
    args: argparse.Namespace,
    config: SteamApiConfig,
    output: TextIO,
    errors: TextIO | None = None,
) -> int:
    """Run a parsed command against a fresh client and return an exit code."""

    api = SteamApi(args.umqid, config=config)
    try:
        return await _COMMANDS[args.command](api, args, output)
    except CommandError as exc:
        (errors or sys.stderr).write(f"error: {exc}\n")
        return 1
    finally:
        await api.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="steamchat", description="Steam web chat API client")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _account_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--user", required=True, help="Steam account name")
        sub.add_argument("--password", default=None, help="Account password; defaults to $STEAMCHAT_PASSWORD")
        sub.add_argument("--code", default=None, help="Steam Guard code mailed to the account")
        sub.add_argument("--umqid", default=None, help="Reuse an existing session queue id")

    login_parser = subparsers.add_parser("login", help="Authenticate, log on and log off again")
    _account_args(login_parser)

    poll_parser = subparsers.add_parser("poll", help="Print friend summaries and stream chat events")
    _account_args(poll_parser)
    poll_parser.add_argument(
        "--max-polls",
        type=int,
        default=0,
        help="Stop after this many poll requests; 0 polls until interrupted",
    )

    send_parser = subparsers.add_parser("send", help="Send a chat message")
    _account_args(send_parser)
    send_parser.add_argument("--to", required=True, help="Destination steamid")
    send_parser.add_argument("--text", required=True, help="Message text")
    send_parser.add_argument("--emote", action="store_true", help="Send as an emote")
    return parser


def main(argv: list[str] | None = None, output: TextIO | None = None) -> int:
    """Entry point for CLI commands."""

    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.password is None:
        args.password = os.environ.get("STEAMCHAT_PASSWORD")
    if not args.password:
        parser.error("--password or STEAMCHAT_PASSWORD is required")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = SteamApiConfig.from_env()
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return asyncio.run(run_command(args, config, output or sys.stdout))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":  # pragma: no cover - convenience execution
    raise SystemExit(main())
