"""
Google Chat client.

Authenticates with a service account, watches a single space and turns new
messages into ChatEvent values. Google Chat has no streaming endpoint for
bots, so the watch polls `spaces.messages.list` on a fixed interval from a
background task and hands each batch to a callback.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
from typing import Any, Callable, Iterable, Optional, Union

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError, UnknownApiNameOrVersion
import httplib2

from .errors import AuthError, SubscriptionError
from .models import ChatEvent

CHAT_BOT_SCOPE = "https://www.googleapis.com/auth/chat.bot"
TEXT_FILTER = "text"
PAGE_SIZE = 100

BatchHandler = Callable[[list[ChatEvent]], None]

_REQUEST_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)
# Truncated or malformed responses; the next poll starts from the same cursor.
_POLL_ERRORS = (*_REQUEST_ERRORS, http.client.HTTPException, ValueError)


def load_credentials_info(credentials: Union[str, bytes]) -> dict[str, Any]:
    """
    Parse service-account credentials given either as raw JSON or as a path
    to a JSON key file.
    """
    if isinstance(credentials, bytes):
        credentials = credentials.decode("utf-8")
    raw = credentials.strip()
    if not raw:
        raise ValueError("service-account credentials are empty")
    if not raw.startswith("{"):
        with open(raw, encoding="utf-8") as f:
            raw = f.read()
    info = json.loads(raw)
    if not isinstance(info, dict):
        raise ValueError(f"service-account credentials must be a JSON object, got {type(info).__name__}")
    return info


class GoogleChatClient:
    def __init__(self, service: Any, poll_interval: float = 5.0):
        self.service = service
        self.poll_interval = poll_interval
        self._since: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_service_account(
        cls,
        credentials: Union[str, bytes],
        scopes: Iterable[str] = (CHAT_BOT_SCOPE,),
        poll_interval: float = 5.0,
    ) -> "GoogleChatClient":
        """
        Build an authenticated `chat v1` client.

        Raises AuthError if the credentials are malformed or the API client
        cannot be constructed.
        """
        try:
            info = load_credentials_info(credentials)
            creds = service_account.Credentials.from_service_account_info(info, scopes=list(scopes))
            http = AuthorizedHttp(creds, http=httplib2.Http())
            service = build("chat", "v1", http=http, cache_discovery=False)
        except (ValueError, OSError, GoogleAuthError, UnknownApiNameOrVersion, httplib2.HttpLib2Error) as e:
            raise AuthError(f"failed to create Google Chat service: {e}") from e
        return cls(service, poll_interval=poll_interval)

    # ── Watch ───────────────────────────────────────────────────────────────

    async def watch(
        self,
        space_name: str,
        on_batch: BatchHandler,
        event_filter: str = TEXT_FILTER,
    ) -> dict[str, Any]:
        """
        Start watching a space. `on_batch` is called from a background task
        with every non-empty batch of new events.

        Raises SubscriptionError if the space cannot be reached.
        """
        try:
            request = self.service.spaces().get(name=space_name)
            space = await asyncio.to_thread(request.execute)
            # Server time, so clock skew between us and Google cannot drop or replay messages.
            self._since = await asyncio.to_thread(self._latest_create_time, space_name)
        except (TypeError, *_POLL_ERRORS) as e:
            raise SubscriptionError(f"failed to watch Google Chat space {space_name!r}: {e}") from e

        logging.info("Connected to Google Chat: %s", space.get("name", space_name))
        self._task = asyncio.create_task(self._poll(space_name, on_batch, event_filter))
        return space

    @property
    def poller(self) -> Optional[asyncio.Task]:
        """The background polling task, once `watch` has started it."""
        return self._task

    async def _poll(self, space_name: str, on_batch: BatchHandler, event_filter: str) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                batch = await self.fetch_batch(space_name, event_filter)
            except _POLL_ERRORS as e:
                logging.warning("Polling %s failed: %r", space_name, e)
                continue
            if batch:
                on_batch(batch)

    def _latest_create_time(self, space_name: str) -> Optional[str]:
        response = (
            self.service.spaces()
            .messages()
            .list(parent=space_name, pageSize=1, orderBy="createTime desc")
            .execute()
        )
        latest = response.get("messages") or []
        return latest[0].get("createTime") if latest else None

    async def fetch_batch(self, space_name: str, event_filter: str = TEXT_FILTER) -> list[ChatEvent]:
        """Fetch messages created since the last poll, oldest first."""
        resources = await asyncio.to_thread(self._list_messages, space_name, self._since)
        if resources and resources[-1].get("createTime"):
            self._since = resources[-1]["createTime"]

        events = []
        for resource in resources:
            if event_filter == TEXT_FILTER and not resource.get("text"):
                continue
            events.append(ChatEvent.from_message(resource, space=space_name))
        return events

    def _list_messages(self, space_name: str, since: Optional[str]) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {"parent": space_name, "pageSize": PAGE_SIZE, "orderBy": "createTime asc"}
        if since:
            kwargs["filter"] = f'createTime > "{since}"'

        messages = self.service.spaces().messages()
        resources: list[dict[str, Any]] = []
        request = messages.list(**kwargs)
        while request is not None:
            response = request.execute()
            resources.extend(response.get("messages", []))
            request = messages.list_next(request, response)
        return resources

    # ── Reply delivery ──────────────────────────────────────────────────────

    async def deliver_reply(self, space_name: str, text: str) -> None:
        # TODO: post replies with spaces.messages.create once the bot is granted write access.
        logging.debug("Reply delivery not implemented; dropping %d chars for %s", len(text), space_name)

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            # The task may already have failed; run_bot reports that, not close().
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
