from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import uvicorn

from rethink.client import RethinkClient
from rethink.config import ClientSettings, ServerSettings
from rethink.errors import RethinkError
from rethink.pipeline import AnalysisPipeline, PipelineStatus, StatusKind
from rethink.schemas import Subject
from rethink.sources import FileDocumentSource


def _print_status(status: PipelineStatus) -> None:
    if status.kind is StatusKind.issue:
        print(f"[issue] Where to look: {status.location}")
    elif status.kind is StatusKind.still_present:
        print("[issue] Still present, re-checking as you edit...")
    elif status.kind is StatusKind.clean:
        print("[ok] No issues detected. Keep writing.")
    elif status.kind is StatusKind.failed:
        print(f"[error] {status.message}")
    elif status.kind is StatusKind.keep_writing:
        print(f"[wait] {status.message}")


async def _watch(path: str, subject: Subject | None, poll: float) -> None:
    settings = ClientSettings.from_env()
    # The poll loop sees every change itself, so the source never serves cached text.
    source = FileDocumentSource(path, ttl=0)
    async with RethinkClient(settings.base_url, timeout=settings.http_timeout_seconds) as client:
        pipeline = AnalysisPipeline(source, client, settings=settings, subject=subject, on_status=_print_status)
        last = None
        try:
            while True:
                snap = await source.snapshot()
                if snap.text != last:
                    last = snap.text
                    pipeline.on_edit()
                await asyncio.sleep(poll)
        finally:
            pipeline.close()
            await pipeline.scheduler.drain()
            if pipeline.session_id:
                print(f"session: {pipeline.session_id}")


async def _chat(session_id: str, message: str) -> str:
    settings = ClientSettings.from_env()
    async with RethinkClient(settings.base_url, timeout=settings.http_timeout_seconds) as client:
        out = await client.chat(session_id=session_id, message=message)
    return out.reply


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="rethink", description="Error-gated Socratic tutoring for documents.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="run the API server")

    watch = sub.add_parser("watch", help="analyze a file as it is edited")
    watch.add_argument("path")
    watch.add_argument("--subject", choices=[s.value for s in Subject])
    watch.add_argument("--poll", type=float, default=0.25, help="seconds between file checks")

    chat = sub.add_parser("chat", help="send one tutoring message for an active error")
    chat.add_argument("--session-id", required=True)
    chat.add_argument("message")

    args = parser.parse_args(argv)
    server = ServerSettings.from_env()
    logging.basicConfig(level=server.log_level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if args.command in (None, "serve"):
        uvicorn.run("rethink.main:app", host="0.0.0.0", port=server.port, log_level=server.log_level)
        return 0

    try:
        if args.command == "watch":
            subject = Subject(args.subject) if args.subject else None
            asyncio.run(_watch(args.path, subject, args.poll))
        elif args.command == "chat":
            print(asyncio.run(_chat(args.session_id, args.message)))
    except KeyboardInterrupt:
        pass
    except RethinkError as e:
        print(f"{e.code}: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
