"""CLI entrypoint: one-shot briefing reports and the HTTP server."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from config import get_settings
from core import MODE_72H_MARKER
from utils.logger import configure_logging
from webapp.runtime import get_orchestrator, get_runtime


async def _run_report(topic: str, *, strict: bool) -> int:
    orchestrator = get_orchestrator()
    runtime = get_runtime()

    raw_topic = f"{MODE_72H_MARKER}{topic}" if strict and not topic.startswith(MODE_72H_MARKER) else topic
    record = await orchestrator.submit(raw_topic)
    await runtime.run_next()
    final = await orchestrator.get_job(record.job_id)
    if final is None:
        print(json.dumps({"jobId": record.job_id, "status": "NOT_FOUND"}, ensure_ascii=False))
        return 1

    if final.result:
        print(final.result)
    else:
        print(json.dumps(final.to_public(), ensure_ascii=False, indent=2))
    return 0 if final.status.value == "COMPLETED" else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="OSINT intelligence briefing CLI")
    parser.add_argument("--log-level", default=None, help="Overrides PIPELINE_LOG_LEVEL")
    parser.add_argument("--log-file", default=None, help="Overrides PIPELINE_LOG_FILE")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Run one briefing job in-process and print the report")
    report.add_argument("--topic", required=True)
    report.add_argument("--strict-72h", action="store_true", help="Only keep evidence from the last 72 hours")

    serve = sub.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    args = parser.parse_args()
    pipeline_settings = get_settings().pipeline
    configure_logging(args.log_level or pipeline_settings.log_level, args.log_file or pipeline_settings.log_file)

    if args.command == "report":
        sys.exit(asyncio.run(_run_report(args.topic, strict=bool(args.strict_72h))))

    if args.command == "serve":
        import uvicorn

        uvicorn.run("webapp.app:app", host=args.host, port=args.port, reload=bool(args.reload))
        return


if __name__ == "__main__":
    main()
