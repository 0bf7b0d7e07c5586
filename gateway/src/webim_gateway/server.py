"""Command-line entry point for the reference chat gateway."""

from __future__ import annotations

import argparse
import logging

from aiohttp import web

from .ws_transport import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WebIM reference chat gateway")
    parser.add_argument("--host", default="0.0.0.0", help="interface to bind")
    parser.add_argument("--port", type=int, default=8080, help="port serving /ws and /api/chat")
    parser.add_argument("--upload-dir", default="uploads", help="directory for uploaded images")
    parser.add_argument("--history-limit", type=int, default=100, help="messages returned by the history endpoint")
    parser.add_argument("--idle-timeout", type=float, default=180.0, help="seconds before an idle socket is closed")
    parser.add_argument("--log-level", default="INFO", help="logging level")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app(
        history_limit=args.history_limit,
        upload_dir=args.upload_dir,
        idle_timeout_s=args.idle_timeout,
    )
    web.run_app(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":  # pragma: no cover - convenience execution
    raise SystemExit(main())
