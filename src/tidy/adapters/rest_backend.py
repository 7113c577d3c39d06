"""Hosted backend adapter - PostgREST-style HTTP client for lists and notes."""

import logging

import requests

from tidy.config import Config, load_config
from tidy.core.errors import ItemNotFoundError, StoreError
from tidy.core.plan import Grouping, Item, Workspace

logger = logging.getLogger(__name__)

GROUPING_COLUMNS = "id,name,description,is_manual,couple_id"
ITEM_COLUMNS = "id,summary,original_text,category,priority,list_id,completed"


class RestBackendAdapter:
    """
    Hosted backend adapter.

    Implements GroupingStore and ItemStore protocols. Converts every failed
    call into StoreError. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        if not self.config.backend_url:
            raise ValueError("BACKEND_URL not configured. Add it to tidy.conf")
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        token = self.config.access_token or self.config.backend_api_key
        return {
            "apikey": self.config.backend_api_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _api_request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        json: dict | list | None = None,
    ) -> list[dict]:
        """Make authenticated API request, raising StoreError on failure."""
        url = f"{self.config.backend_url}/rest/v1/{table}"
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {table} failed: {e}")
            raise StoreError("network-error", str(e)) from e

        if not resp.ok:
            raise self._error_from_response(resp)
        if not resp.content:
            return []
        try:
            rows = resp.json()
        except ValueError as e:
            logger.error(f"{method} {table} returned a non-JSON body: {resp.text[:200]}")
            raise StoreError("invalid-response", f"Backend returned non-JSON body for {table}") from e
        if not isinstance(rows, list):
            raise StoreError("invalid-response", f"Expected a list of rows from {table}, got {type(rows).__name__}")
        return rows

    @staticmethod
    def _parse_rows(rows: list, parse):
        """Map backend rows through a from_api constructor, rejecting malformed rows."""
        try:
            return [parse(row) for row in rows]
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed backend row: {e!r}")
            raise StoreError("invalid-response", f"Malformed backend row: {e!r}") from e

    @staticmethod
    def _error_from_response(resp: requests.Response) -> StoreError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code in (401, 403):
            reason = "permission-denied"
        else:
            reason = body.get("code") or f"http-{resp.status_code}"
        message = body.get("message") or resp.text
        logger.error(f"Backend error {resp.status_code}: {message}")
        return StoreError(reason, message)

    # ============== GroupingStore ==============

    def list_groupings(self, workspace: Workspace) -> list[Grouping]:
        """List the author's lists, plus the couple's shared lists if any."""
        params = {"select": GROUPING_COLUMNS}
        if workspace.couple_id:
            params["or"] = f"(author_id.eq.{workspace.author_id},couple_id.eq.{workspace.couple_id})"
        else:
            params["author_id"] = f"eq.{workspace.author_id}"
        rows = self._api_request("GET", self.config.groupings_table, params=params)
        return self._parse_rows(rows, Grouping.from_api)

    def create_grouping(self, name: str, metadata: dict) -> Grouping:
        """Insert a list row and return it."""
        rows = self._api_request(
            "POST",
            self.config.groupings_table,
            params={"select": GROUPING_COLUMNS},
            json=[{"name": name, **metadata}],
        )
        if not rows:
            raise StoreError("empty-response", f"Backend returned no row for list {name!r}")
        return self._parse_rows(rows[:1], Grouping.from_api)[0]

    # ============== ItemStore ==============

    def update_item_grouping(self, item_id: str, grouping_id: str) -> None:
        """Set list_id on one note. Unknown ids raise ItemNotFoundError."""
        rows = self._api_request(
            "PATCH",
            self.config.items_table,
            params={"id": f"eq.{item_id}", "select": "id"},
            json={"list_id": grouping_id},
        )
        if not rows:
            raise ItemNotFoundError(item_id)

    def list_open_items(self, workspace: Workspace, grouping_id: str | None = None) -> list[Item]:
        """Fetch the author's uncompleted notes."""
        params = {
            "select": ITEM_COLUMNS,
            "author_id": f"eq.{workspace.author_id}",
            "completed": "eq.false",
        }
        if grouping_id:
            params["list_id"] = f"eq.{grouping_id}"
        rows = self._api_request("GET", self.config.items_table, params=params)
        return self._parse_rows(rows, Item.from_api)
