# backend/sentinel/services/scaleway/client.py
import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

import httpx

from sentinel.core.config import settings
from sentinel.core.exceptions import ScalewayAPIError, ScalewayAuthError
from sentinel.core.time_utils import as_utc, format_rfc3339, parse_rfc3339, utcnow
from sentinel.schemas.events import AuditEvent, EventSource
from sentinel.services.scaleway.mock_events import mock_events

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 100
MAX_PAGES = 500

AUDIT_EVENTS_PATH = "/audit/v1alpha1/events"
LOGIN_LOGS_PATH = "/iam/v1alpha1/login-logs"

# Provider field-name variants, first match wins
ID_FIELDS = ("id", "event_id", "uuid", "log_id")
TYPE_FIELDS = ("event_type", "type", "category", "action")
ACTOR_FIELDS = ("actor", "user", "user_email", "principal", "identity")
RESOURCE_FIELDS = ("resource", "resource_name", "target", "service_name")
IP_FIELDS = ("ip", "ip_address", "source_ip", "client_ip")
REGION_FIELDS = ("region", "zone", "location")
TIMESTAMP_FIELDS = ("timestamp", "occurred_at", "created_at", "time", "last_login_at")


def first_string(raw: Dict[str, Any], *keys: str) -> str:
    """Return the first non-empty string (or number rendered as string) among `keys`."""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, str):
            if value:
                return value
            continue
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            if value.is_integer():
                return str(int(value))
            # Shortest round-trip digits, never exponent notation
            return format(Decimal(repr(value)), "f")
    return ""


def extract_item_list(body: Any, list_key: str) -> List[Dict[str, Any]]:
    """
    Pull the event list out of a response envelope.
    Raises ValueError when no known list key is present.
    """
    if not isinstance(body, dict):
        raise ValueError("response body is not a JSON object")

    for key in (list_key, "events", "items", "data", "logs"):
        if key in body:
            items = body[key]
            if items is None:
                return []
            if not isinstance(items, list):
                raise ValueError(f"'{key}' is not a list")
            return [item for item in items if isinstance(item, dict)]

    raise ValueError("no events found in response")


def map_to_audit_event(
    raw: Dict[str, Any],
    clock: Callable[[], datetime] = utcnow,
) -> Optional[AuditEvent]:
    """Normalise one provider record. Returns None when it has no usable id."""
    event_id = first_string(raw, *ID_FIELDS)
    if not event_id:
        return None

    timestamp = parse_rfc3339(first_string(raw, *TIMESTAMP_FIELDS))
    if timestamp is None:
        timestamp = clock()

    return AuditEvent(
        id=event_id,
        type=first_string(raw, *TYPE_FIELDS) or "unknown",
        actor=first_string(raw, *ACTOR_FIELDS),
        resource=first_string(raw, *RESOURCE_FIELDS),
        ip=first_string(raw, *IP_FIELDS),
        region=first_string(raw, *REGION_FIELDS),
        timestamp=timestamp,
        raw=dict(raw),
    )


class ScalewayClient:
    """
    Scaleway audit trail / IAM client.

    Read side: paginated audit events and login logs, normalised to AuditEvent.
    Control plane: lock / unlock IAM users and revoke API keys.

    Without an API key the read side serves the synthetic set from
    mock_events; the control plane always talks to the API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        project_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        api_url: str = "https://api.scaleway.com",
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.project_id = (project_id or "").strip()
        self.organization_id = (organization_id or "").strip()
        self.api_url = (api_url or "").strip().rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    @property
    def uses_mock_data(self) -> bool:
        return not self.api_key

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _auth_headers(self) -> Dict[str, str]:
        headers = {
            "X-Auth-Token": self.api_key,
            "Accept": "application/json",
        }
        if self.project_id:
            headers["X-Project-Id"] = self.project_id
        if self.organization_id:
            headers["X-Organization-Id"] = self.organization_id
        return headers

    # --------------------------------------------------------
    # Read side
    # --------------------------------------------------------
    async def fetch_audit_events(self, since: Optional[datetime] = None) -> List[AuditEvent]:
        if self.uses_mock_data:
            return mock_events(self._clock(), EventSource.AUDIT, as_utc(since))
        return await self._fetch_events(since, AUDIT_EVENTS_PATH, "events", EventSource.AUDIT)

    async def fetch_authentication_events(
        self, since: Optional[datetime] = None
    ) -> List[AuditEvent]:
        if self.uses_mock_data:
            return mock_events(self._clock(), EventSource.AUTHENTICATION, as_utc(since))
        return await self._fetch_events(
            since, LOGIN_LOGS_PATH, "login_logs", EventSource.AUTHENTICATION
        )

    async def _fetch_events(
        self,
        since: Optional[datetime],
        relative_path: str,
        list_key: str,
        source: EventSource,
    ) -> List[AuditEvent]:
        since = as_utc(since)
        url = f"{self.api_url}{relative_path}"
        events: List[AuditEvent] = []
        dropped = 0

        async with self._http() as client:
            for page in range(1, MAX_PAGES + 1):
                params: Dict[str, Any] = {
                    "page": page,
                    "page_size": DEFAULT_PAGE_SIZE,
                    "order": "asc",
                    "direction": "asc",
                }
                if since is not None:
                    params["since"] = format_rfc3339(since)
                if self.project_id:
                    params["project_id"] = self.project_id
                if self.organization_id:
                    params["organization_id"] = self.organization_id

                try:
                    resp = await client.get(url, headers=self._auth_headers(), params=params)
                except httpx.HTTPError as exc:
                    raise ScalewayAPIError(
                        f"failed to query Scaleway {source.value} API: {exc}"
                    ) from exc

                if resp.status_code in (401, 403):
                    raise ScalewayAuthError(
                        f"scaleway API authentication failed: {resp.status_code}",
                        status_code=resp.status_code,
                        body=resp.text,
                    )
                if resp.status_code >= 300:
                    raise ScalewayAPIError(
                        f"scaleway API error ({source.value}): "
                        f"{resp.status_code} - {resp.text}",
                        status_code=resp.status_code,
                        body=resp.text,
                    )

                try:
                    items = extract_item_list(resp.json(), list_key)
                except ValueError as exc:
                    raise ScalewayAPIError(
                        f"failed to parse {source.value} response: {exc}",
                        status_code=resp.status_code,
                        body=resp.text,
                    ) from exc

                for raw in items:
                    event = map_to_audit_event(raw, self._clock)
                    if event is None:
                        dropped += 1
                        continue
                    # The API may ignore `since`; enforce it here as well
                    if since is not None and event.timestamp <= since:
                        continue
                    event.source = source
                    events.append(event)

                if len(items) < DEFAULT_PAGE_SIZE:
                    break

        if dropped:
            logger.warning(
                "Dropped %d malformed %s records without an id", dropped, source.value
            )
        return events

    # --------------------------------------------------------
    # Control plane
    # --------------------------------------------------------
    async def lock_user(self, user_id: str) -> None:
        await self._update_user_status(user_id, "locked")

    async def unlock_user(self, user_id: str) -> None:
        await self._update_user_status(user_id, "active")

    async def revoke_api_key(self, key_id: str) -> None:
        url = f"{self.api_url}/iam/v1alpha1/api-keys/{key_id}"
        try:
            async with self._http() as client:
                resp = await client.delete(url, headers=self._auth_headers())
        except httpx.HTTPError as exc:
            raise ScalewayAPIError(f"failed to revoke API key: {exc}") from exc

        if resp.status_code not in (200, 204):
            raise ScalewayAPIError(
                f"failed to revoke API key: status {resp.status_code}, body: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

    async def _update_user_status(self, user_id: str, status: str) -> None:
        url = f"{self.api_url}/iam/v1alpha1/users/{user_id}"
        headers = self._auth_headers()
        headers["Content-Type"] = "application/json"
        try:
            async with self._http() as client:
                resp = await client.put(url, headers=headers, json={"status": status})
        except httpx.HTTPError as exc:
            raise ScalewayAPIError(f"failed to update user: {exc}") from exc

        if resp.status_code != 200:
            raise ScalewayAPIError(
                f"failed to update user: status {resp.status_code}, body: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )


scaleway_client = ScalewayClient(
    api_key=settings.SCALEWAY_API_KEY,
    project_id=settings.SCALEWAY_PROJECT_ID,
    organization_id=settings.SCALEWAY_ORG_ID,
    api_url=settings.SCALEWAY_API_URL,
)
