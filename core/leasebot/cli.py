"""Leasebot CLI.

Command-line interface for operating the chat bridge:

  - `leasebot tools list [--json] [--remote]`
  - `leasebot chat "What's the average credit score?"`
  - `leasebot serve [--host HOST] [--port PORT]`
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from leasebot.chat import create_chat_service
from leasebot.config import Config
from leasebot.llm.exceptions import LLMError
from leasebot.llm.types import Turn
from leasebot.streaming.events import FileAttachment, StreamError, TextDelta, ToolsUsed
from leasebot.tools.catalog import get_definitions
from leasebot.toolserver.exceptions import ToolConnectionError
from leasebot.toolserver.session import ToolServerConfig, ToolSessionManager


def setup_logging(level: str) -> None:
    """Configure root logging for CLI and server runs."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


async def _remote_tools(config: Config) -> list[str]:
    """Connect to the tool server and return its advertised tool names."""
    manager = ToolSessionManager(ToolServerConfig.from_config(config))
    try:
        await manager.acquire()
        return manager.tools
    finally:
        await manager.close()


def cmd_tools_list(args: argparse.Namespace) -> int:
    """List the static tool catalog, or the tools advertised by the server.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Process exit code.
    """
    if args.remote:
        try:
            names = asyncio.run(_remote_tools(Config()))
        except ToolConnectionError as exc:
            print(f"Could not connect to tool server: {exc}", file=sys.stderr)
            return 1
        items = [{"name": n, "description": ""} for n in names]
    else:
        items = [{"name": t["name"], "description": t["description"]} for t in get_definitions()]

    if args.json:
        print(json.dumps(items, indent=2, sort_keys=True))
    else:
        if not items:
            print("No tools found.")
            return 0
        # Simple aligned output
        w_name = max(len(i["name"]) for i in items)
        for i in items:
            print(f"{i['name']:<{w_name}}  {i['description']}".rstrip())
    return 0


async def _chat(question: str, config: Config) -> int:
    """Run one chat turn and print the streamed reply."""
    service = create_chat_service(config)
    events = service.stream([Turn.user(question)])
    try:
        async for event in events:
            if isinstance(event, TextDelta):
                sys.stdout.write(event.content)
                sys.stdout.flush()
            elif isinstance(event, ToolsUsed):
                print(f"[tools used: {', '.join(event.tools)}]", file=sys.stderr)
            elif isinstance(event, FileAttachment):
                print(f"[file: {event.file.filename} ({event.file.mime_type})]", file=sys.stderr)
            elif isinstance(event, StreamError):
                print(f"\n[error: {event.error}]", file=sys.stderr)
                return 1
    except LLMError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await events.aclose()
        await service.close()
    sys.stdout.write("\n")
    return 0


def cmd_chat(args: argparse.Namespace) -> int:
    """Ask one question through the full tool + streaming pipeline."""
    return asyncio.run(_chat(args.question, Config()))


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP entrypoint with uvicorn."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    uvicorn.run("leasebot.entrypoints.http:app", host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the Leasebot CLI entry point.

    Args:
        argv: Optional list of CLI arguments excluding the program name.

    Returns:
        Process exit code.
    """
    argv = argv if argv is not None else sys.argv[1:]
    config = Config()
    p = argparse.ArgumentParser(prog="leasebot")
    p.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    sub = p.add_subparsers(dest="cmd", required=True)

    tools = sub.add_parser("tools", help="Tool catalog commands")
    tools_sub = tools.add_subparsers(dest="tools_cmd", required=True)

    tools_list = tools_sub.add_parser("list", help="List declared tools")
    tools_list.add_argument("--json", action="store_true", help="Output JSON")
    tools_list.add_argument("--remote", action="store_true", help="List tools advertised by the tool server")
    tools_list.set_defaults(func=cmd_tools_list)

    chat = sub.add_parser("chat", help="Ask a single question")
    chat.add_argument("question", help="Question text")
    chat.set_defaults(func=cmd_chat)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    ns = p.parse_args(argv)
    setup_logging(ns.log_level)
    return ns.func(ns)


if __name__ == "__main__":
    raise SystemExit(main())
