# conftest.py
# Description: Shared fixtures - an in-memory row store served through httpx.MockTransport
#
# Imports
import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs
#
# 3rd-party Libraries
import httpx
import pytest
#
# Local Imports
from visittrack_API.app.core.config import SyncConfig
from visittrack_API.app.core.Sync.models import ID_COLUMN, ROW_LAYOUT, PHOTO_SLOTS, object_to_row
from visittrack_API.app.core.Sync.repository import VisitRepository
from visittrack_API.app.core.Sync.transport import AppsScriptTransport
#
#######################################################################################################################
#
# Fixtures:

STORE_URL = "https://script.google.com/macros/s/test-deployment/exec"


class FakeRowStore:
    """
    Behaves like the deployed spreadsheet script: rows are positional lists, writes
    scan the id column and update in place or append, deletes remove the first match.
    """

    def __init__(self, row_format: str = "objects"):
        self.rows: List[List[Any]] = []
        self.row_format = row_format
        self.requests: List[httpx.Request] = []
        # Queue of canned responses served before normal handling
        self.next_responses: List[httpx.Response] = []
        self.fail_with: Optional[Exception] = None

    # --- helpers for tests ---
    def ids(self) -> List[str]:
        return [str(row[ID_COLUMN]) for row in self.rows]

    def queue_json(self, payload: Dict[str, Any], status_code: int = 200):
        self.next_responses.append(httpx.Response(status_code, json=payload))

    def queue_text(self, text: str, status_code: int = 200):
        self.next_responses.append(
            httpx.Response(status_code, text=text, headers={"Content-Type": "text/html; charset=utf-8"})
        )

    # --- request handling ---
    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if self.next_responses:
            return self.next_responses.pop(0)

        if request.method == "GET":
            action = parse_qs(request.url.query.decode()).get("action", [None])[0]
            if action != "read":
                return httpx.Response(200, json={"status": "error", "message": "Unknown action"})
            return httpx.Response(200, json={"status": "success", "data": self._rendered_rows()})

        payload = json.loads(request.content.decode("utf-8"))
        if payload.get("action") == "delete":
            for index, row in enumerate(self.rows):
                if str(row[ID_COLUMN]) == str(payload.get("id")):
                    del self.rows[index]
                    return httpx.Response(200, json={"status": "success"})
            return httpx.Response(200, json={"status": "error", "message": "Record not found"})

        item = payload.get("data")
        if not item:
            return httpx.Response(200, json={"status": "error", "message": "Missing data"})
        row = object_to_row(item)
        for index, existing in enumerate(self.rows):
            if str(existing[ID_COLUMN]) == str(row[ID_COLUMN]):
                self.rows[index] = row
                break
        else:
            self.rows.append(row)
        return httpx.Response(200, json={"status": "success"})

    def _rendered_rows(self) -> List[Any]:
        if self.row_format == "positional":
            return [list(row) for row in self.rows]
        rendered = []
        for row in self.rows:
            obj = {name: row[position] for position, (name, attr) in enumerate(ROW_LAYOUT) if attr != "photos"}
            obj["photos"] = [row[position] for position in PHOTO_SLOTS if row[position]]
            rendered.append(obj)
        return rendered


@pytest.fixture
def fake_store():
    return FakeRowStore()


@pytest.fixture
def sync_config():
    return SyncConfig(store_url=STORE_URL, timeout_seconds=5, lock_busy_retries=2, retry_backoff_seconds=0)


@pytest.fixture
def transport(fake_store):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_store), follow_redirects=True)
    return AppsScriptTransport(client=client)


@pytest.fixture
def repository(transport):
    return VisitRepository(transport=transport)
