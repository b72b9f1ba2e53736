"""
Google Calendar v3 client authenticated as a service account.

The client is constructed explicitly and passed to whoever needs it; call
aclose() (or use it as an async context manager) when done.
"""

import json
import logging
import time
from urllib.parse import quote

import httpx
from jose import jwt

from core.config import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CALENDAR_SCOPES,
    GOOGLE_EXPECTED_CLIENT_EMAIL,
    GOOGLE_SERVICE_ACCOUNT_KEY,
)

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 300


class CalendarError(Exception):
    """Google Calendar call failed."""

    def __init__(self, message: str, status_code: int | None = None, calendar_id: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.calendar_id = calendar_id


class CalendarNotFoundError(CalendarError):
    """Event (or calendar) id is unknown to Google Calendar."""


class CalendarPermissionError(CalendarError):
    """Credentials were refused or lack write access to the calendar."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        calendar_id: str | None = None,
        expected_identity: str | None = None,
        actual_identity: str | None = None,
    ):
        super().__init__(message, status_code, calendar_id)
        self.expected_identity = expected_identity
        self.actual_identity = actual_identity

    def __str__(self) -> str:
        base = super().__str__()
        return (
            f"{base} (calendar: {self.calendar_id}, "
            f"expected identity: {self.expected_identity or 'not configured'}, "
            f"actual identity: {self.actual_identity or 'unknown'})"
        )


def load_service_account_key(raw: str) -> dict:
    """
    Parse a service account JSON key from an environment value.

    Escaped newlines in the private key (common in .env files) are restored.
    """
    if not raw or not raw.strip().startswith("{"):
        raise ValueError("GOOGLE_SERVICE_ACCOUNT_KEY is not a JSON service account key")

    key = json.loads(raw)
    if not key.get("client_email"):
        raise ValueError("Service account key missing client_email")
    if not key.get("private_key"):
        raise ValueError("Service account key missing private_key")

    key["private_key"] = str(key["private_key"]).replace("\\n", "\n")
    return key


class GoogleCalendarClient:
    """Minimal async wrapper over the Calendar v3 events API."""

    def __init__(
        self,
        service_account: dict,
        calendar_id: str = GOOGLE_CALENDAR_ID,
        expected_identity: str | None = GOOGLE_EXPECTED_CLIENT_EMAIL or None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.service_account = service_account
        self.calendar_id = calendar_id
        self.expected_identity = expected_identity
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_env(cls) -> "GoogleCalendarClient":
        return cls(load_service_account_key(GOOGLE_SERVICE_ACCOUNT_KEY))

    @property
    def identity(self) -> str | None:
        return self.service_account.get("client_email")

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def _signed_assertion(self, now: int) -> str:
        token_uri = self.service_account.get("token_uri", GOOGLE_TOKEN_URL)
        claims = {
            "iss": self.identity,
            "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
            "aud": token_uri,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        headers = {}
        if self.service_account.get("private_key_id"):
            headers["kid"] = self.service_account["private_key_id"]
        return jwt.encode(claims, self.service_account["private_key"], algorithm="RS256", headers=headers)

    async def _access_token(self) -> str:
        """Return a cached access token, exchanging a new JWT assertion when close to expiry."""
        if self._token and time.time() < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token

        now = int(time.time())
        token_uri = self.service_account.get("token_uri", GOOGLE_TOKEN_URL)
        try:
            response = await self._http.post(
                token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": self._signed_assertion(now)},
            )
        except httpx.HTTPError as e:
            raise CalendarError(f"Token request failed: {e}", calendar_id=self.calendar_id) from e

        if response.status_code != 200:
            raise CalendarPermissionError(
                f"Service account token refused: {response.text}",
                status_code=response.status_code,
                calendar_id=self.calendar_id,
                expected_identity=self.expected_identity,
                actual_identity=self.identity,
            )

        payload = response.json()
        self._token = payload["access_token"]
        self._token_expires_at = now + int(payload.get("expires_in", TOKEN_LIFETIME_SECONDS))
        return self._token

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{GOOGLE_CALENDAR_API}/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id:
            url += f"/{quote(event_id, safe='')}"
        return url

    def _raise_for_status(self, response: httpx.Response, action: str):
        if response.status_code < 400:
            return

        try:
            message = response.json().get("error", {}).get("message") or response.text
        except ValueError:
            message = response.text

        if response.status_code in (401, 403):
            raise CalendarPermissionError(
                f"{action}: permission denied: {message}",
                status_code=response.status_code,
                calendar_id=self.calendar_id,
                expected_identity=self.expected_identity,
                actual_identity=self.identity,
            )
        if response.status_code in (404, 410):
            raise CalendarNotFoundError(
                f"{action}: not found: {message}",
                status_code=response.status_code,
                calendar_id=self.calendar_id,
            )
        raise CalendarError(
            f"{action}: HTTP {response.status_code}: {message}",
            status_code=response.status_code,
            calendar_id=self.calendar_id,
        )

    async def _request(self, method: str, url: str, action: str, **kwargs) -> dict | None:
        token = await self._access_token()
        try:
            response = await self._http.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.HTTPError as e:
            raise CalendarError(f"{action}: {e}", calendar_id=self.calendar_id) from e

        self._raise_for_status(response, action)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def create_event(self, body: dict) -> dict:
        event = await self._request(
            "POST", self._events_url(), "Create event", params={"sendUpdates": "none"}, json=body
        )
        logger.info("Created calendar event %s", event.get("id"))
        return event

    async def patch_event(self, event_id: str, body: dict) -> dict:
        event = await self._request(
            "PATCH", self._events_url(event_id), "Update event",
            params={"sendUpdates": "none"}, json=body,
        )
        logger.info("Updated calendar event %s", event_id)
        return event

    async def delete_event(self, event_id: str):
        await self._request(
            "DELETE", self._events_url(event_id), "Delete event", params={"sendUpdates": "none"}
        )
        logger.info("Deleted calendar event %s", event_id)

    async def get_event(self, event_id: str) -> dict:
        return await self._request("GET", self._events_url(event_id), "Get event")

    async def event_exists(self, event_id: str) -> bool:
        """
        Existence probe for a linked event.

        Cancelled events are still returned by the API and count as missing.
        Errors other than not-found propagate.
        """
        try:
            event = await self.get_event(event_id)
        except CalendarNotFoundError:
            return False
        return bool(event) and event.get("status") != "cancelled"

    async def find_event_by_ical_uid(self, ical_uid: str, show_deleted: bool = True) -> dict | None:
        payload = await self._request(
            "GET",
            self._events_url(),
            "Find event",
            params={
                "iCalUID": ical_uid,
                "showDeleted": str(show_deleted).lower(),
                "maxResults": 1,
            },
        )
        items = (payload or {}).get("items") or []
        return items[0] if items else None

    async def list_events(
        self, time_min: str, time_max: str, private_property: str | None = None
    ) -> list[dict]:
        """All single events between time_min and time_max (RFC 3339), following pagination."""
        params = {
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 250,
        }
        if private_property:
            params["privateExtendedProperty"] = private_property

        events = []
        while True:
            payload = await self._request("GET", self._events_url(), "List events", params=params) or {}
            events.extend(payload.get("items") or [])
            page_token = payload.get("nextPageToken")
            if not page_token:
                return events
            params = {**params, "pageToken": page_token}
