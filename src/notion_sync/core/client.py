import logging
import time
from typing import Any, Iterator

import requests

from ..config import Config
from ..errors import (
    AuthenticationError,
    ConnectivityError,
    NoIndirectionTarget,
    NotionAPIError,
    RateLimitExceeded,
)
from .blocks import Block
from .retry import with_retry

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2025-09-03"

# Notion caps both page size and children per request at 100.
PAGE_SIZE = 100
MAX_CHILDREN_PER_REQUEST = 100


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class NotionClient:
    """Thin synchronous client for the Notion REST API.

    Every call goes through the same throttle (a minimum interval between
    two requests) and retries HTTP 429 responses with exponential backoff.
    Databases are queried through their first data source, whose id is
    cached per instance.
    """

    def __init__(
        self, config: Config, session: requests.Session | None = None
    ):
        self.config = config
        self.min_request_interval = config.min_request_interval
        self.max_retries = config.max_retries
        self._session = session or self._create_session()
        self._last_request_at: float | None = None
        self._data_source_cache: dict[str, str] = {}

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.notion_token}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            }
        )
        return session

    @property
    def session(self) -> requests.Session:
        return self._session

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _throttle(self) -> None:
        """Sleep until ``min_request_interval`` has passed since the last call."""
        if self._last_request_at is not None:
            elapsed = time.monotonic() - self._last_request_at
            wait = self.min_request_interval - elapsed
            if wait > 0:
                time.sleep(wait)
        self._last_request_at = time.monotonic()

    def _send(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> dict:
        self._throttle()
        url = f"{NOTION_API_URL}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=json,
                params=params,
                timeout=(10, 60),
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ConnectivityError(
                f"Cannot reach Notion API: {exc}"
            ) from exc

        if response.ok:
            return response.json() if response.content else {}

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code")
        message = body.get("message") or response.reason or ""
        status = response.status_code

        if status == 429 or code == "rate_limited":
            raise RateLimitExceeded(
                f"Rate limited by Notion API: {message}",
                retry_after=_parse_retry_after(
                    response.headers.get("Retry-After")
                ),
            )
        if status in (401, 403):
            raise AuthenticationError(
                f"Notion rejected the integration token ({status}): {message}"
            )
        raise NotionAPIError(status, code, message)

    def _request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> dict:
        """Send a request, retrying while Notion answers 429."""
        try:
            return with_retry(
                lambda: self._send(method, path, json=json, params=params),
                max_retries=self.max_retries,
                is_retryable=lambda exc: isinstance(exc, RateLimitExceeded),
                delay_hint=lambda exc: getattr(exc, "retry_after", None),
            )
        except RateLimitExceeded as exc:
            raise RateLimitExceeded(
                f"Rate limit exceeded after {self.max_retries} retries",
                retry_after=exc.retry_after,
            ) from exc

    def _paginate(
        self,
        method: str,
        path: str,
        body: dict | None = None,
    ) -> Iterator[dict]:
        """Yield every result of a cursor-paginated endpoint."""
        cursor: str | None = None
        while True:
            if method == "GET":
                params: dict[str, Any] = {"page_size": PAGE_SIZE}
                if cursor:
                    params["start_cursor"] = cursor
                data = self._request(method, path, params=params)
            else:
                payload = dict(body or {})
                payload["page_size"] = PAGE_SIZE
                if cursor:
                    payload["start_cursor"] = cursor
                data = self._request(method, path, json=payload)

            yield from data.get("results", [])
            if not data.get("has_more"):
                return
            cursor = data.get("next_cursor")
            if not cursor:
                return

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def retrieve_database(self, database_id: str) -> dict:
        try:
            return self._request("GET", f"databases/{database_id}")
        except NotionAPIError as exc:
            if exc.status == 404:
                raise ConnectivityError(
                    f"Database {database_id} not found or not shared "
                    f"with the integration: {exc.api_message}"
                ) from exc
            raise

    def resolve_data_source_id(self, database_id: str) -> str:
        """Return the id of the first data source of *database_id*.

        Raises:
            NoIndirectionTarget: If the database lists no data source.
        """
        cached = self._data_source_cache.get(database_id)
        if cached:
            return cached

        database = self.retrieve_database(database_id)
        sources = database.get("data_sources") or []
        if not sources or not sources[0].get("id"):
            raise NoIndirectionTarget(database_id)

        data_source_id = sources[0]["id"]
        self._data_source_cache[database_id] = data_source_id
        logger.debug(
            "Database %s resolves to data source %s",
            database_id,
            data_source_id,
        )
        return data_source_id

    def clear_cache(self) -> None:
        self._data_source_cache.clear()

    def retrieve_data_source(self, data_source_id: str) -> dict:
        """Return a data source object, including its property schema."""
        return self._request("GET", f"data_sources/{data_source_id}")

    def query_pages(
        self, data_source_id: str, filter: dict | None = None
    ) -> list[dict]:
        """Return every full page of a data source, in query order."""
        body = {"filter": filter} if filter else {}
        pages = [
            result
            for result in self._paginate(
                "POST", f"data_sources/{data_source_id}/query", body
            )
            if result.get("object") == "page" and "properties" in result
        ]
        logger.debug(
            "Data source %s returned %d pages", data_source_id, len(pages)
        )
        return pages

    def retrieve_page(self, page_id: str) -> dict:
        return self._request("GET", f"pages/{page_id}")

    def list_block_children(self, block_id: str) -> list[dict]:
        """Return the direct children of a block or page (one level)."""
        return list(self._paginate("GET", f"blocks/{block_id}/children"))

    def fetch_block_tree(self, block_id: str) -> tuple[Block, ...]:
        """Return the full content tree below *block_id*.

        Children of every block that reports ``has_children`` are fetched
        recursively and attached to a new ``Block`` value.
        """
        blocks: list[Block] = []
        for result in self.list_block_children(block_id):
            if result.get("object") != "block" or "type" not in result:
                continue
            children: tuple[Block, ...] = ()
            if result.get("has_children"):
                children = self.fetch_block_tree(result["id"])
            blocks.append(Block.from_api(result, children))
        return tuple(blocks)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def create_page(
        self,
        parent_database_id: str,
        properties: dict,
        children: list[dict] | None = None,
    ) -> dict:
        """Create a page in a database; at most 100 children are sent."""
        body: dict[str, Any] = {
            "parent": {"database_id": parent_database_id},
            "properties": properties,
        }
        if children:
            if len(children) > MAX_CHILDREN_PER_REQUEST:
                raise ValueError(
                    f"At most {MAX_CHILDREN_PER_REQUEST} children per request"
                )
            body["children"] = children
        return self._request("POST", "pages", json=body)

    def append_children(self, block_id: str, children: list[dict]) -> dict:
        if len(children) > MAX_CHILDREN_PER_REQUEST:
            raise ValueError(
                f"At most {MAX_CHILDREN_PER_REQUEST} children per request"
            )
        return self._request(
            "PATCH",
            f"blocks/{block_id}/children",
            json={"children": children},
        )

    def delete_block(self, block_id: str) -> dict:
        return self._request("DELETE", f"blocks/{block_id}")

    def update_page_properties(self, page_id: str, properties: dict) -> dict:
        return self._request(
            "PATCH", f"pages/{page_id}", json={"properties": properties}
        )

    def archive_page(self, page_id: str) -> dict:
        return self._request(
            "PATCH", f"pages/{page_id}", json={"archived": True}
        )
