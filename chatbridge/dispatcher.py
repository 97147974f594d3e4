from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Protocol

from chatbridge.chat.errors import DeliveryError
from chatbridge.chat.models import ChatEvent
from chatbridge.llm.errors import CompletionError, parse_error_message
from chatbridge.llm.processor import QuestionProcessor

# A leading "?" plus any whitespace or zero-width non-joiners after it.
QUESTION_PATTERN = re.compile(r"^\?[\s\u200c]*")


class ReplyDelivery(Protocol):
    async def deliver_reply(self, space_name: str, text: str) -> None: ...


def extract_question(text: Optional[str]) -> Optional[str]:
    """Return the question body, or None when `text` is not a question."""
    if text is None:
        return None
    match = QUESTION_PATTERN.match(text)
    if match is None:
        return None
    return text[match.end():]


class Dispatcher:
    def __init__(self, processor: QuestionProcessor, delivery: ReplyDelivery, space_name: str):
        self.processor = processor
        self.delivery = delivery
        self.space_name = space_name

    async def handle_event(self, event: ChatEvent) -> Optional[str]:
        """
        Answer one event if it is a question. Returns the response, or None
        when the event was skipped or the completion failed.
        """
        message = event.message
        if message is None:
            return None
        question = extract_question(message.text)
        if question is None:
            return None
        if not question:
            logging.debug("Ignoring empty question in %s", message.name)
            return None

        try:
            response = await self.processor.process(question)
        except CompletionError as e:
            logging.error("Error processing question %r: %s", question, parse_error_message(e))
            return None

        try:
            await self.delivery.deliver_reply(event.space or self.space_name, response)
        except DeliveryError as e:
            logging.error("Error delivering reply to %s: %s", event.space or self.space_name, e)

        logging.info("Question: %s", question)
        logging.info("Response: %s", response)
        logging.info("-----")
        return response

    async def run(self, queue: asyncio.Queue[ChatEvent]) -> None:
        """Drain the queue forever, one event at a time."""
        while True:
            event = await queue.get()
            try:
                await self.handle_event(event)
            finally:
                queue.task_done()
