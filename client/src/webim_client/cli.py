"""Line-oriented console front-end for the chat client."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TextIO

from .client import ChatClient
from .composer import NotSendableError
from .config import load_client_config_from_env
from .connection import NotConnected
from .frames import Role
from .http_api import UploadFailure
from .renderer import ConsoleRenderer

HELP_TEXT = "commands: /image <path>, /history, /help, /quit"
IMAGE_USAGE = "usage: /image <path>"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WebIM support chat client")
    parser.add_argument("--id", required=True, help="local identity to log in as")
    parser.add_argument("--role", choices=["user", "agent"], default="user", help="log in as a user or an agent")
    parser.add_argument("--ws-url", default=None, help="gateway websocket URL")
    parser.add_argument("--http-url", default=None, help="gateway HTTP base URL")
    parser.add_argument("--heartbeat", type=float, default=None, help="heartbeat period in seconds")
    parser.add_argument("--reconnect-delay", type=float, default=None, help="reconnect delay in seconds")
    parser.add_argument("--log-level", default="WARNING", help="logging level")
    return parser


async def handle_line(client: ChatClient, renderer: ConsoleRenderer, line: str) -> bool:
    """Act on one input line. Returns ``False`` when the user asked to quit."""

    text = line.strip()
    if not text:
        return True
    try:
        if text == "/quit":
            return False
        if text == "/help":
            renderer.render_notice(HELP_TEXT)
        elif text == "/history":
            if not await client.reload_history():
                renderer.render_notice("no history to show")
        elif text == "/image" or text.startswith("/image "):
            path = text[len("/image") :].strip()
            if path:
                await client.send_image(path)
            else:
                renderer.render_notice(IMAGE_USAGE)
        else:
            await client.send_text(text)
    except NotSendableError as exc:
        renderer.render_notice(f"not sent: {exc}")
    except NotConnected as exc:
        renderer.render_notice(f"not sent: {exc}")
    except UploadFailure as exc:
        renderer.render_notice(f"upload failed: {exc}")
    return True


async def run(args: argparse.Namespace, input_stream: TextIO, output: TextIO) -> int:
    config = load_client_config_from_env().with_overrides(
        ws_url=args.ws_url,
        http_base_url=args.http_url,
        heartbeat_interval_s=args.heartbeat,
        reconnect_delay_s=args.reconnect_delay,
    )
    renderer = ConsoleRenderer(args.id, output)
    role = Role.AGENT if args.role == "agent" else Role.USER
    loop = asyncio.get_running_loop()
    async with ChatClient(renderer, config=config) as client:
        await client.login(args.id, role)
        renderer.render_notice(HELP_TEXT)
        while True:
            line = await loop.run_in_executor(None, input_stream.readline)
            if line == "":
                break
            if not await handle_line(client, renderer, line):
                break
    return 0


def main(argv: list[str] | None = None, input_stream: TextIO | None = None, output: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return asyncio.run(run(args, input_stream or sys.stdin, output or sys.stdout))
    except KeyboardInterrupt:
        return 130
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover - convenience execution
    raise SystemExit(main())
