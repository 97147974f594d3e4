"""
Entrypoint: `python -m chatbridge.main` or the `chatbridge` console script.
"""

import asyncio
import logging
import os
import sys

from chatbridge.chat.client import GoogleChatClient
from chatbridge.chat.errors import AuthError, SubscriptionError
from chatbridge.chat.models import ChatEvent
from chatbridge.config.loader import Settings, get_config
from chatbridge.dispatcher import Dispatcher
from chatbridge.llm.processor import QuestionProcessor, build_backend

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    if os.environ.get("DEBUG"):
        level = "DEBUG"
    level = (level or "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    if level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


async def run_bot(settings: Settings) -> None:
    chat = GoogleChatClient.from_service_account(
        settings.google_credentials, poll_interval=settings.poll_interval
    )
    processor = QuestionProcessor(build_backend(settings), settings.model_name)
    dispatcher = Dispatcher(processor, chat, settings.space_name)

    events: asyncio.Queue[ChatEvent] = asyncio.Queue()

    def enqueue(batch: list[ChatEvent]) -> None:
        for event in batch:
            events.put_nowait(event)

    await chat.watch(settings.space_name, enqueue, event_filter=settings.event_filter)
    consumer = asyncio.create_task(dispatcher.run(events))
    try:
        # Both loops run forever; whichever finishes first has failed.
        done, _ = await asyncio.wait({consumer, chat.poller}, return_when=asyncio.FIRST_COMPLETED)
        if chat.poller in done:
            error = chat.poller.exception()
            raise SubscriptionError(f"stopped watching {settings.space_name}: {error!r}") from error
        consumer.result()
    finally:
        consumer.cancel()
        await asyncio.gather(consumer, return_exceptions=True)
        await chat.close()


def main() -> None:
    setup_logging()
    settings = get_config()
    setup_logging(settings.log_level)
    logging.info(f"🚀 Bot starting | provider: {settings.provider} | model: {settings.model_name} | space: {settings.space_name}")

    try:
        asyncio.run(run_bot(settings))
    except AuthError as e:
        logging.critical("Failed to create Google Chat service: %s", e)
        sys.exit(1)
    except SubscriptionError as e:
        logging.critical("Failed to watch Google Chat space: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
