"""Polling worker CLI.

Usage:
    pagegen-worker --job-id <uuid> [--worker-id <id>] [--provider claude|ollama]
    python -m pagegen.worker --job-id <uuid>
"""

import argparse
import asyncio
import os
import signal
import socket
import sys

from dotenv import load_dotenv

from pagegen.core.logging import get_logger, setup_logging
from pagegen.services.content_generation import ContentGenerator, create_llm_client
from pagegen.worker.api_client import WorkerApiClient
from pagegen.worker.poller import PageWorker

logger = get_logger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate pages for a job by polling the API")
    parser.add_argument("--job-id", required=True, help="Generation job UUID")
    parser.add_argument(
        "--worker-id", default=default_worker_id(), help="Worker identifier (default: host-pid)"
    )
    parser.add_argument(
        "--provider",
        choices=("claude", "ollama"),
        default=None,
        help="LLM provider (default: LLM_PROVIDER)",
    )
    return parser.parse_args(argv)


async def run_worker(args: argparse.Namespace) -> int:
    api_client = WorkerApiClient()
    generator = ContentGenerator(create_llm_client(args.provider))
    worker = PageWorker(api_client, generator, worker_id=args.worker_id)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable outside the main thread / on Windows
            pass

    try:
        if not await api_client.health_check():
            logger.error("API is not reachable, exiting")
            return 1
        stats = await worker.run(args.job_id)
    finally:
        await generator.close()
        await api_client.close()

    logger.info(
        "Worker finished",
        extra={
            "job_id": args.job_id,
            "worker_id": args.worker_id,
            "claimed": stats.claimed,
            "completed": stats.completed,
            "failed": stats.failed,
            "errors": stats.errors,
        },
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    setup_logging()
    args = parse_args(argv)
    return asyncio.run(run_worker(args))


if __name__ == "__main__":
    sys.exit(main())
