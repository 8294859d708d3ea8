"""Google Calendar API client for birthday events."""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

import httpx

from birthdays.models import SyncEvent
from birthdays.sync.ports import CalendarApiError, CalendarErrorCode

logger = logging.getLogger(__name__)

BASE_URL = "https://www.googleapis.com/calendar/v3"

# Backoff for rate-limited requests: retries, first delay and max jitter (seconds).
MAX_RETRIES = 4
BASE_DELAY_SECONDS = 1.0
MAX_JITTER_SECONDS = 0.5

_RATE_LIMIT_STATUSES = (403, 429)
_ERROR_CODES: dict[int, CalendarErrorCode] = {409: "conflict", 404: "not_found", 410: "gone"}


def _describe_error(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
    except Exception:
        return response.text[:500]
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error)


class GoogleCalendarClient:
    """Thin async client for the Google Calendar events API.

    Bound to a single user's access token; token refresh is the credential
    store's job. Failed calls raise ``CalendarApiError``.
    """

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.access_token = access_token
        self.base_url = BASE_URL
        self.transport = transport
        self.timeout = timeout
        self.sleep = sleep

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _events_url(self, calendar_id: str, event_id: str | None = None) -> str:
        url = f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"
        if event_id:
            url += f"/{quote(event_id, safe='')}"
        return url

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, backing off and retrying while Google rate-limits us."""
        kwargs.setdefault("headers", {}).update(self._get_headers())

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            attempt = 0
            while True:
                try:
                    response = await client.request(method, url, **kwargs)
                except httpx.HTTPError as e:
                    logger.warning(
                        f"Calendar request failed: method={method}, url={url}, "
                        f"exception_type={type(e).__name__}, error={e}"
                    )
                    raise CalendarApiError("other", f"{type(e).__name__}: {e}") from e

                if response.status_code in _RATE_LIMIT_STATUSES and attempt < MAX_RETRIES:
                    delay = BASE_DELAY_SECONDS * 2**attempt + random.uniform(0, MAX_JITTER_SECONDS)
                    attempt += 1
                    logger.warning(
                        f"Rate limited by Google Calendar: status_code={response.status_code}, "
                        f"retry_in={delay:.2f}s, attempt={attempt}/{MAX_RETRIES}"
                    )
                    await self.sleep(delay)
                    continue

                if response.status_code >= 400:
                    code = _ERROR_CODES.get(response.status_code, "other")
                    message = _describe_error(response)
                    log = logger.info if code != "other" else logger.error
                    log(
                        f"Calendar API error: method={method}, url={url}, "
                        f"status_code={response.status_code}, code={code}, error={message}"
                    )
                    raise CalendarApiError(code, message, status_code=response.status_code)

                return response

    async def create_event(
        self, calendar_id: str, event: SyncEvent, event_id: str | None = None
    ) -> str:
        """Insert an event, optionally under a caller-chosen ID.

        Returns:
            The Google event ID.
        """
        body = event.to_resource()
        if event_id:
            body["id"] = event_id
        response = await self._request("POST", self._events_url(calendar_id), json=body)
        created_id = response.json()["id"]
        logger.debug(f"Created calendar event: event_id={created_id}, key={event.key}")
        return created_id

    async def update_event(self, calendar_id: str, event_id: str, event: SyncEvent) -> None:
        """Patch an event; also restores it if it was cancelled."""
        body = {**event.to_resource(), "status": "confirmed"}
        await self._request("PATCH", self._events_url(calendar_id, event_id), json=body)
        logger.debug(f"Updated calendar event: event_id={event_id}, key={event.key}")

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        await self._request("DELETE", self._events_url(calendar_id, event_id))
        logger.debug(f"Deleted calendar event: event_id={event_id}")

    async def list_events(
        self,
        calendar_id: str,
        private_extended_property: str | None = None,
        page_token: str | None = None,
        max_results: int = 250,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """List one page of events.

        Returns:
            The page's events and the token of the next page, if any.
        """
        params: dict[str, Any] = {"maxResults": max_results, "singleEvents": "true"}
        if private_extended_property:
            params["privateExtendedProperty"] = private_extended_property
        if page_token:
            params["pageToken"] = page_token

        response = await self._request("GET", self._events_url(calendar_id), params=params)
        data = response.json()
        return data.get("items", []), data.get("nextPageToken")
