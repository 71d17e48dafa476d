# service.py
import argparse
import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from config.settings import settings
from core.logger import logger
from infrastructure.circuit_breaker import NotionHealthChecker, RedisHealthChecker, SlackHealthChecker
from infrastructure.llm_client import LLMClient
from infrastructure.notion_client import NotionClient
from infrastructure.redis_client import close_redis_client, get_redis_client
from infrastructure.slack_client import SlackClient
from services.checkpoint_store import FileCheckpointStore, RedisCheckpointStore
from services.digest_service import ChannelDigestService
from services.document_store import NotionDocumentStore
from services.merge_engine import MergeEngine
from services.message_source import SlackMessageSource

load_dotenv()
active_services = []  # Track all active services for graceful shutdown


async def graceful_shutdown(signum=None, frame=None):
    """Coordinate graceful shutdown of all running services."""
    logger.info(f"Shutdown signal received ({signum if signum else 'manual'}). Arranging a graceful exit...")

    services = list(active_services)
    active_services.clear()
    if services:
        logger.info(f"Stopping {len(services)} active services...")
        await asyncio.gather(*(service.stop() for service in services))
        logger.info("All services stopped gracefully")
    await close_redis_client()


async def build_checkpoint_store(backend: str):
    """Returns (store, health checkers) for the configured checkpoint backend."""
    if backend == "redis":
        redis = await get_redis_client()
        if redis is None:
            logger.critical("Redis checkpoint backend selected but no Redis client could be created")
            sys.exit(1)
        return RedisCheckpointStore(redis), [RedisHealthChecker(redis)]
    if backend == "file":
        return FileCheckpointStore(settings.CHECKPOINT_PATH), []
    logger.critical(f"Unknown checkpoint backend: {backend}")
    sys.exit(1)


async def build_service(run_once=False, backend=None) -> ChannelDigestService:
    """Constructs every collaborator from settings and injects them into the digest service."""
    slack = SlackClient(settings.SLACK_API_TOKEN)
    notion = NotionClient(settings.NOTION_API_KEY)
    llm = LLMClient(settings.OPENAI_API_KEY)
    checkpoints, checkpoint_checks = await build_checkpoint_store(backend or settings.CHECKPOINT_BACKEND)

    return await ChannelDigestService.create(
        checkpoints=checkpoints,
        source=SlackMessageSource(slack, settings.SLACK_CHANNEL_ID),
        documents=NotionDocumentStore(notion),
        merger=MergeEngine(llm),
        topics_id=settings.NOTION_TOPICS_PAGE_ID,
        changelog_id=settings.NOTION_CHANGELOG_PAGE_ID,
        run_once=run_once,
        health_checks=[SlackHealthChecker(slack), NotionHealthChecker(notion), *checkpoint_checks],
        closeables=[slack, notion, llm],
    )


async def run_service(run_once=False, interval_seconds=None, backend=None) -> ChannelDigestService:
    """Standard pattern for creating, initializing and running the digest."""
    service = await build_service(run_once=run_once, backend=backend)

    # Entering validates health via initialise(); leaving stops the service and closes its clients
    async with service:
        active_services.append(service)
        try:
            if run_once:
                logger.info("Running ChannelDigestService once")
                result = await service.run()
                logger.info(f"Run complete: {result}")
            else:
                interval = interval_seconds or settings.RUN_INTERVAL
                logger.info(f"Starting ChannelDigestService in continuous mode every {interval}s")
                task = await service.start(interval_seconds=interval)
                await task
        finally:
            if service in active_services:
                active_services.remove(service)

    return service


async def main():
    parser = argparse.ArgumentParser(description="Merge new Slack messages into the Notion topics and changelog")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument("--interval", type=int, help="Seconds between runs in continuous mode")
    parser.add_argument("--checkpoint-backend", choices=["file", "redis"], help="Where the checkpoint is stored")
    args = parser.parse_args()

    if args.once:
        logger.setLevel(logging.DEBUG)
        logger.debug("Run-once mode detected, log level set to DEBUG.")

    missing = settings.missing()
    if missing:
        logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        print("Missing required environment variables. Please check your .env file.", file=sys.stderr)
        sys.exit(1)

    logger.info(f"Digesting Slack channel {settings.SLACK_CHANNEL_ID} into Notion pages "
                f"{settings.NOTION_TOPICS_PAGE_ID} and {settings.NOTION_CHANGELOG_PAGE_ID}")

    try:
        await run_service(run_once=args.once, interval_seconds=args.interval, backend=args.checkpoint_backend)
    except Exception as e:
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await graceful_shutdown()


if __name__ == "__main__":
    def _request_shutdown(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        for service in active_services:
            service.request_stop()

    # Set up signal handlers for graceful shutdown
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _request_shutdown)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Service interrupted by user.")
    logger.info("Service shut down")
