#!/usr/bin/env python3
"""
HavenMind sync command line.

Usage:
    python -m havensync [--config CONFIG] [--log-level LEVEL] COMMAND

Examples:
    python -m havensync dashboard
    python -m havensync send "When should I flush the water heater?"
    python -m havensync upload ~/Downloads/roof-inspection.pdf
    HAVENMIND_API_BASE_URL=http://127.0.0.1:8820 python -m havensync history
"""

import argparse
import asyncio
import sys
from pathlib import Path

from .core.client import StaticAuth, SyncClient
from .core.config import load_settings
from .core.exceptions import SyncError
from .core.logging import configure_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="HavenMind sync client",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration YAML file"
    )

    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default="warning",
        help="Log level (default: warning)"
    )

    parser.add_argument(
        "--user",
        help="Display name used in the dashboard greeting"
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("dashboard", help="Show usage metrics, projects and activity")
    sub.add_parser("history", help="Show the chat history")
    send = sub.add_parser("send", help="Send a chat message")
    send.add_argument("text")
    sub.add_parser("documents", help="List Home Journal documents")
    upload = sub.add_parser("upload", help="Upload a document")
    upload.add_argument("path", type=Path)
    view = sub.add_parser("view", help="Get a view link for a document")
    view.add_argument("document_id")

    return parser.parse_args(argv)


async def run(args) -> int:
    settings = load_settings(args.config)
    async with SyncClient(settings, StaticAuth(user_name=args.user)) as client:
        mode = "mock" if client.is_mock else settings.api_base_url
        print(f"[{mode}]")

        if args.command == "dashboard":
            snapshot = await client.dashboard()
            print(client.greeting())
            for metric in snapshot.usage:
                print(f"  {metric.label}: {metric.value} ({metric.delta:+g}%)")
            for project in snapshot.projects:
                print(f"  [{project.status}] {project.name} - {project.updated_at} ({project.owner})")
            for item in snapshot.activity:
                print(f"  {item.timestamp} {item.category}: {item.title}")

        elif args.command == "history":
            for message in await client.chat_history():
                print(f"{message.role:>9}: {message.content}")

        elif args.command == "send":
            reply = await client.send_chat_message(args.text)
            print(f"{reply.role:>9}: {reply.content}")

        elif args.command == "documents":
            for doc in await client.documents():
                print(f"  {doc.id}  {doc.original_name}  {doc.display_size}  {doc.status.lower()}")

        elif args.command == "upload":
            doc = await client.upload_document(args.path)
            print(f"Uploaded {doc.original_name} as {doc.id} ({doc.status.lower()})")

        elif args.command == "view":
            url = await client.open_document(args.document_id)
            state = client.views.state(args.document_id)
            if url:
                print(url)
            elif state.advisory:
                print(state.advisory)
            else:
                print(state.error, file=sys.stderr)
                return 1
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        sys.exit(asyncio.run(run(args)))
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
