"""Agent console command-line utility."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from agent_console.config import AgentConsoleSettings
from agent_console.session import AgentSession, SessionSnapshot
from agent_console.tasks import TaskLoadError, TaskLoader
from agent_console.tools import snapshot_payload
from agent_console.transport import RequestClient, RequestError


def build_requests(settings: AgentConsoleSettings) -> RequestClient:
    return RequestClient(settings.api_url, timeout=settings.request_timeout)


def build_session(settings: AgentConsoleSettings) -> AgentSession:
    return AgentSession(settings)


def cmd_presets(args: argparse.Namespace) -> None:
    settings = AgentConsoleSettings()
    try:
        presets = TaskLoader(settings.task_paths).load_all()
    except TaskLoadError as exc:
        print(f"Task presets unavailable: {exc}")
        raise SystemExit(1)

    ordered = sorted(presets.values(), key=lambda preset: preset.id)
    if args.json:
        print(
            json.dumps(
                [{**preset.summary(), "payload": preset.payload.to_wire()} for preset in ordered],
                indent=2,
            )
        )
    else:
        for preset in ordered:
            print(f"{preset.id} - {preset.title}")


def cmd_chat(args: argparse.Namespace) -> None:
    settings = AgentConsoleSettings()
    client = build_requests(settings)
    try:
        reply = asyncio.run(client.chat(args.session_id, args.message))
    except RequestError as exc:
        print(f"Request failed: {exc}")
        raise SystemExit(1)
    print(json.dumps(reply.model_dump(mode="json", by_alias=True), indent=2))


async def _watch(session: AgentSession, seconds: float) -> None:
    def _print(snapshot: SessionSnapshot) -> None:
        print(json.dumps(snapshot_payload(snapshot)), flush=True)

    unsubscribe = session.subscribe(_print)
    try:
        async with session:
            await asyncio.sleep(seconds)
    finally:
        unsubscribe()


def cmd_watch(args: argparse.Namespace) -> None:
    settings = AgentConsoleSettings()
    session = build_session(settings)
    try:
        asyncio.run(_watch(session, args.seconds))
    except KeyboardInterrupt:
        print("Stopped", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Agent console utilities")
    sub = parser.add_subparsers(dest="command", required=True)

    presets = sub.add_parser("presets", help="List saved task presets")
    presets.add_argument("--json", action="store_true", help="Emit JSON output")
    presets.set_defaults(func=cmd_presets)

    chat = sub.add_parser("chat", help="Send one chat message and print the reply")
    chat.add_argument("message", help="Message text")
    chat.add_argument("--session-id", default=None, help="Session id to attach to the message")
    chat.set_defaults(func=cmd_chat)

    watch = sub.add_parser("watch", help="Stream session snapshots as JSON lines")
    watch.add_argument(
        "--seconds",
        type=float,
        default=60.0,
        help="How long to stay connected (default: 60)",
    )
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
