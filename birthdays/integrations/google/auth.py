"""Google OAuth token handling for calendar sync."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from types import ModuleType
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel

from birthdays.models.sync import OwnerSyncStatus
from birthdays.sync.constants import PRIMARY_CALENDAR_ID
from birthdays.sync.ports import (
    CalendarNotConnectedError,
    TemporaryAuthError,
    TokenRevokedError,
)

TOKEN_URL = "https://oauth2.googleapis.com/token"

# A stored token must stay valid at least this long to be handed out.
MIN_TOKEN_VALIDITY = timedelta(seconds=60)

logger = logging.getLogger(__name__)


class GoogleToken(BaseModel):
    """An OAuth token for the Google API."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None

    def expires_at_datetime(self) -> datetime | None:
        """Convert expires_in to a datetime."""
        if self.expires_in is None:
            return None
        return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)


class GoogleCredentialStore:
    """Hands out usable Google access tokens for users, refreshing as needed.

    ``tokens`` is the ``birthdays.db.calendar_tokens`` module or anything with
    the same functions. ``on_revoked`` is called with the user ID after Google
    rejects their refresh token, once their stored tokens have been cleared.
    """

    def __init__(
        self,
        tokens: ModuleType | Any,
        client_id: str,
        client_secret: str,
        on_revoked: Optional[Callable[[str], Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.tokens = tokens
        self.client_id = client_id
        self.client_secret = client_secret
        self.on_revoked = on_revoked
        self.transport = transport
        self._refresh_locks: dict[str, asyncio.Lock] = {}

    async def get_valid_token(self, user_id: str) -> str:
        """Get an access token valid for at least another minute.

        Concurrent callers for the same user share a single refresh.

        Raises:
            CalendarNotConnectedError: No connection or no refresh token.
            TokenRevokedError: Google revoked the refresh token.
            TemporaryAuthError: The refresh failed for some other reason.
        """
        token = self.tokens.get_token(user_id)
        if token is None:
            raise CalendarNotConnectedError(f"No calendar connection for user_id={user_id}")
        if token.is_access_token_valid(MIN_TOKEN_VALIDITY):
            return token.access_token

        lock = self._refresh_locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            # Another caller may have refreshed while we waited.
            token = self.tokens.get_token(user_id)
            if token is None:
                raise CalendarNotConnectedError(f"No calendar connection for user_id={user_id}")
            if token.is_access_token_valid(MIN_TOKEN_VALIDITY):
                return token.access_token
            if not token.refresh_token:
                logger.warning(f"No refresh token for user_id={user_id}")
                raise CalendarNotConnectedError(f"No refresh token for user_id={user_id}")

            logger.info(f"Access token for user_id={user_id} expired, refreshing")
            new_token = await self._refresh(user_id, token.refresh_token)
            self.tokens.update_access_token(
                user_id,
                new_token.access_token,
                expires_at=new_token.expires_at_datetime()
                or datetime.now(timezone.utc) + timedelta(hours=1),
                refresh_token=new_token.refresh_token,
            )
            return new_token.access_token

    async def _refresh(self, user_id: str, refresh_token: str) -> GoogleToken:
        try:
            async with httpx.AsyncClient(timeout=10, transport=self.transport) as client:
                response = await client.post(
                    TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.warning(
                f"Token refresh request failed: user_id={user_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            raise TemporaryAuthError(f"Token refresh failed: {e}") from e

        if response.status_code == 200:
            return GoogleToken.model_validate(response.json())

        error_data: dict = {}
        try:
            error_data = response.json()
        except Exception as json_error:
            logger.warning(
                f"Failed to parse token refresh error response as JSON: "
                f"exception_type={type(json_error).__name__}, error={json_error}, "
                f"raw_response={response.text[:500]}"
            )

        if response.status_code == 400 and error_data.get("error") == "invalid_grant":
            logger.error(
                f"Refresh token has been expired or revoked. Re-authorization required. "
                f"user_id={user_id}, "
                f"error_description={error_data.get('error_description', 'N/A')}"
            )
            self._handle_revoked(user_id)
            raise TokenRevokedError(f"Refresh token revoked for user_id={user_id}")

        logger.error(
            f"Failed to refresh token: user_id={user_id}, status_code={response.status_code}, "
            f"error_data={error_data}"
        )
        raise TemporaryAuthError(f"Token refresh failed with status {response.status_code}")

    def _handle_revoked(self, user_id: str) -> None:
        self.tokens.clear_tokens(user_id)
        if self.on_revoked is None:
            return
        try:
            self.on_revoked(user_id)
        except Exception as e:
            logger.exception(
                f"Revocation callback failed: user_id={user_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )

    def get_target_calendar_id(self, user_id: str) -> str:
        token = self.tokens.get_token(user_id)
        return (token.calendar_id if token else None) or PRIMARY_CALENDAR_ID

    def set_sync_status(self, user_id: str, status: OwnerSyncStatus) -> None:
        self.tokens.set_sync_status(user_id, status)
