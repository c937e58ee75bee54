"""
Async client for the content Management API.

Wraps httpx.AsyncClient with:
- Token authentication (raw token in the Authorization header)
- Retry with exponential backoff on rate limits and transient failures
- Envelope handling: request bodies are wrapped as {"story": {...}},
  responses are unwrapped
- Error translation: every non-2xx response or network failure becomes
  a TransportError

Example:
    >>> async with ManagementClient(token="...") as client:
    ...     result = await client.fetch_all_stories(12345)
    ...     print(len(result))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from spacemig.core.api.exceptions import ConfigurationError, TransportError
from spacemig.core.api.retry import RetryPolicy, parse_retry_after
from spacemig.core.content.models import ContentRecord

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://mapi.storyblok.com/v1"
DEFAULT_PER_PAGE = 100
MAX_PAGES = 1000

SpaceId = int | str


class ManagementClient:
    """
    Management API client scoped to one credential.

    Space ids are passed per call so the same client can read from one
    space and write to another.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        per_page: int = DEFAULT_PER_PAGE,
        max_pages: int = MAX_PAGES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: OAuth / personal access token for the Management API
            base_url: API root (default: the public Management API)
            timeout: Per-request timeout in seconds
            retry: Retry policy (default: 3 retries, 1s base delay)
            per_page: Page size used when listing stories
            max_pages: Safety cap on pagination
            transport: Optional httpx transport (used by tests)

        Raises:
            ConfigurationError: If no token is given
        """
        if not token:
            raise ConfigurationError("A Management API token is required")

        self.base_url = base_url.rstrip("/")
        self.retry = retry or RetryPolicy()
        self.per_page = per_page
        self.max_pages = max_pages
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": token,
                "Content-Type": "application/json",
            },
        )

    async def __aenter__(self) -> ManagementClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying per the retry policy.

        Returns:
            The successful (2xx) response

        Raises:
            TransportError: On a non-2xx response or network failure once
                retries are exhausted
        """
        method = method.upper()
        attempt = 0

        while True:
            try:
                response = await self._http.request(method, path, params=params, json=json)
            except httpx.HTTPError as e:
                if attempt < self.retry.max_retries and self.retry.should_retry_exception(
                    method, e
                ):
                    delay = self.retry.calculate_delay(attempt)
                    logger.warning(
                        "%s %s failed (%s); retry %d/%d in %.2fs",
                        method, path, e, attempt + 1, self.retry.max_retries, delay,
                    )
                    attempt += 1
                    await asyncio.sleep(delay)
                    continue
                raise TransportError(
                    f"Network error: {e}", method=method, url=f"{self.base_url}{path}"
                ) from e

            if response.is_success:
                return response

            if attempt < self.retry.max_retries and self.retry.should_retry_status(
                method, response.status_code
            ):
                delay = self.retry.calculate_delay(attempt, parse_retry_after(response))
                logger.warning(
                    "%s %s returned %d; retry %d/%d in %.2fs",
                    method, path, response.status_code, attempt + 1,
                    self.retry.max_retries, delay,
                )
                attempt += 1
                await asyncio.sleep(delay)
                continue

            raise TransportError(
                response.text or response.reason_phrase,
                status_code=response.status_code,
                method=method,
                url=str(response.request.url),
            )

    async def _get(self, path: str, **params: Any) -> Any:
        response = await self.request("GET", path, params=params or None)
        return response.json()

    async def _send(self, method: str, path: str, envelope: str, body: dict[str, Any]) -> Any:
        response = await self.request(method, path, json={envelope: body})
        if not response.content:
            return {}
        return response.json().get(envelope, {})

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    async def list_stories_page(
        self, space_id: SpaceId, page: int, per_page: int | None = None
    ) -> tuple[list[ContentRecord], int]:
        """
        Fetch one page of stories.

        Returns:
            The page's records and the total count from the ``total`` header
        """
        response = await self.request(
            "GET",
            f"/spaces/{space_id}/stories/",
            params={"page": page, "per_page": per_page or self.per_page},
        )
        data = response.json()
        records = [ContentRecord.model_validate(s) for s in data.get("stories") or []]
        try:
            total = int(response.headers.get("total", "0"))
        except ValueError:
            total = 0
        return records, total

    async def fetch_all_stories(self, space_id: SpaceId) -> list[ContentRecord]:
        """
        Fetch every story in a space, following pagination.

        Stops once the accumulated count reaches the reported total, on an
        empty page, or after ``max_pages`` pages.
        """
        records: list[ContentRecord] = []
        page = 1

        while page <= self.max_pages:
            batch, total = await self.list_stories_page(space_id, page)
            records.extend(batch)
            logger.debug(
                "Fetched page %d of stories for space %s (%d/%d)",
                page, space_id, len(records), total,
            )
            if not batch or len(records) >= total:
                break
            page += 1
        else:
            logger.warning("Stopped paginating space %s after %d pages", space_id, self.max_pages)

        return records

    async def get_story(self, space_id: SpaceId, story_id: int) -> ContentRecord:
        """Fetch a single story with its full content payload."""
        data = await self._get(f"/spaces/{space_id}/stories/{story_id}")
        return ContentRecord.model_validate(data["story"])

    async def get_story_by_slug(self, space_id: SpaceId, slug: str) -> ContentRecord | None:
        """
        Look up a story by its full slug.

        Returns:
            The story, or None when nothing matches or the lookup is rejected
        """
        try:
            data = await self._get(f"/spaces/{space_id}/stories/", with_slug=slug)
        except TransportError as e:
            if e.status_code is None:
                raise
            logger.debug("Slug lookup for %r returned %s", slug, e.status_code)
            return None

        stories = data.get("stories") or []
        if not stories:
            return None
        return ContentRecord.model_validate(stories[0])

    async def create_story(self, space_id: SpaceId, payload: dict[str, Any]) -> ContentRecord:
        """Create a story. The payload must not carry ``id`` or ``uuid``."""
        data = await self._send("POST", f"/spaces/{space_id}/stories/", "story", payload)
        return ContentRecord.model_validate(data)

    # ------------------------------------------------------------------
    # Components and presets
    # ------------------------------------------------------------------

    async def list_components(self, space_id: SpaceId) -> list[dict[str, Any]]:
        data = await self._get(f"/spaces/{space_id}/components/")
        return list(data.get("components") or [])

    async def create_component(self, space_id: SpaceId, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", f"/spaces/{space_id}/components/", "component", body)

    async def update_component(
        self, space_id: SpaceId, component_id: int, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send(
            "PUT", f"/spaces/{space_id}/components/{component_id}", "component", body
        )

    async def list_presets(
        self, space_id: SpaceId, component_id: int | None = None
    ) -> list[dict[str, Any]]:
        params = {"component_id": component_id} if component_id is not None else {}
        data = await self._get(f"/spaces/{space_id}/presets/", **params)
        return list(data.get("presets") or [])

    async def create_preset(self, space_id: SpaceId, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", f"/spaces/{space_id}/presets/", "preset", body)

    async def update_preset(
        self, space_id: SpaceId, preset_id: int, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send("PUT", f"/spaces/{space_id}/presets/{preset_id}", "preset", body)

    # ------------------------------------------------------------------
    # Datasources and entries
    # ------------------------------------------------------------------

    async def list_datasources(self, space_id: SpaceId) -> list[dict[str, Any]]:
        data = await self._get(f"/spaces/{space_id}/datasources/")
        return list(data.get("datasources") or [])

    async def create_datasource(self, space_id: SpaceId, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", f"/spaces/{space_id}/datasources/", "datasource", body)

    async def update_datasource(
        self, space_id: SpaceId, datasource_id: int, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send(
            "PUT", f"/spaces/{space_id}/datasources/{datasource_id}", "datasource", body
        )

    async def list_datasource_entries(
        self, space_id: SpaceId, datasource_id: int
    ) -> list[dict[str, Any]]:
        data = await self._get(
            f"/spaces/{space_id}/datasource_entries/", datasource_id=datasource_id
        )
        return list(data.get("datasource_entries") or [])

    async def create_datasource_entry(
        self, space_id: SpaceId, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send(
            "POST", f"/spaces/{space_id}/datasource_entries/", "datasource_entry", body
        )

    async def update_datasource_entry(
        self, space_id: SpaceId, entry_id: int, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send(
            "PUT", f"/spaces/{space_id}/datasource_entries/{entry_id}", "datasource_entry", body
        )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def list_space_roles(self, space_id: SpaceId) -> list[dict[str, Any]]:
        data = await self._get(f"/spaces/{space_id}/space_roles/")
        return list(data.get("space_roles") or [])

    async def create_space_role(self, space_id: SpaceId, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", f"/spaces/{space_id}/space_roles/", "space_role", body)

    async def update_space_role(
        self, space_id: SpaceId, role_id: int, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._send(
            "PUT", f"/spaces/{space_id}/space_roles/{role_id}", "space_role", body
        )

    # ------------------------------------------------------------------
    # Plugins (field types are owned by the account, not by a space)
    # ------------------------------------------------------------------

    async def list_field_types(self) -> list[dict[str, Any]]:
        data = await self._get("/field_types/")
        return list(data.get("field_types") or [])

    async def create_field_type(self, name: str) -> dict[str, Any]:
        return await self._send("POST", "/field_types/", "field_type", {"name": name})

    async def update_field_type(self, field_type_id: int, body: str) -> dict[str, Any]:
        response = await self.request(
            "PUT",
            f"/field_types/{field_type_id}",
            json={
                "publish": True,
                "field_type": {"body": body, "compiled_body": body},
            },
        )
        if not response.content:
            return {}
        return response.json().get("field_type", {})


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_PER_PAGE",
    "MAX_PAGES",
    "ManagementClient",
    "SpaceId",
]
