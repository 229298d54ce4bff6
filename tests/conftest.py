"""Shared pytest fixtures for notion-sync tests."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest

from notion_sync.config import Config
from notion_sync.core.blocks import Block
from notion_sync.core.client import MAX_CHILDREN_PER_REQUEST


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Notion workspace",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live Notion workspace"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Page / block payload helpers
# ---------------------------------------------------------------------------


def rich(text: str) -> list[dict]:
    return [
        {
            "type": "text",
            "text": {"content": text, "link": None},
            "plain_text": text,
            "annotations": {},
            "href": None,
        }
    ]


def make_page(
    page_id: str,
    title: str,
    status: str | None = "Published",
    slug: str | None = None,
    edited: str = "2026-01-01T10:00:00.000Z",
    **extra_properties: dict,
) -> dict:
    properties: dict = {"Name": {"type": "title", "title": rich(title)}}
    if status is not None:
        properties["Status"] = {"type": "select", "select": {"name": status}}
    if slug is not None:
        properties["Slug"] = {"type": "rich_text", "rich_text": rich(slug)}
    properties.update(extra_properties)
    return {
        "object": "page",
        "id": page_id,
        "last_edited_time": edited,
        "archived": False,
        "properties": properties,
    }


def paragraph(block_id: str, text: str) -> dict:
    return {
        "object": "block",
        "id": block_id,
        "type": "paragraph",
        "has_children": False,
        "paragraph": {"rich_text": rich(text)},
    }


# ---------------------------------------------------------------------------
# In-memory Notion
# ---------------------------------------------------------------------------


def _as_returned(properties: dict) -> dict:
    """Shape property payloads the way Notion echoes them back."""
    stored = {}
    for name, payload in properties.items():
        kind = payload.get("type") or next(k for k in payload if k != "type")
        value = copy.deepcopy(payload[kind])
        if kind in ("title", "rich_text"):
            for item in value:
                item.setdefault("plain_text", item["text"]["content"])
        stored[name] = {"type": kind, kind: value}
    return stored


class FakeNotionClient:
    """In-memory stand-in for ``NotionClient``.

    Pages live in ``pages``; block children per parent id in ``blocks``.
    Every call is recorded in ``calls`` as ``(method_name, first_arg)``.
    """

    def __init__(self, data_source_id: str = "ds-1") -> None:
        self.data_source_id = data_source_id
        self.pages: dict[str, dict] = {}
        self.blocks: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, object]] = []
        self.failures: dict[str, Exception] = {}
        self.schema: dict[str, dict] = {
            "Name": {"type": "title", "title": {}},
            "Status": {"type": "select", "select": {"options": []}},
        }
        self._clock = datetime(2026, 2, 1, tzinfo=timezone.utc)
        self._ids = 0

    # helpers -----------------------------------------------------------

    def add_page(self, page: dict, *texts: str) -> dict:
        self.pages[page["id"]] = page
        self.blocks[page["id"]] = [
            paragraph(f"{page['id']}-b{n}", text)
            for n, text in enumerate(texts)
        ]
        return page

    def edit_page(self, page_id: str, edited: str, *texts: str) -> None:
        self.pages[page_id]["last_edited_time"] = edited
        if texts:
            self.blocks[page_id] = [
                paragraph(f"{page_id}-e{n}", text)
                for n, text in enumerate(texts)
            ]

    def _tick(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}-{self._ids}"

    def calls_named(self, name: str) -> list[tuple[str, object]]:
        return [c for c in self.calls if c[0] == name]

    # NotionClient surface ---------------------------------------------

    def resolve_data_source_id(self, database_id: str) -> str:
        self.calls.append(("resolve_data_source_id", database_id))
        if "resolve" in self.failures:
            raise self.failures["resolve"]
        return self.data_source_id

    def retrieve_data_source(self, data_source_id: str) -> dict:
        self.calls.append(("retrieve_data_source", data_source_id))
        return {
            "object": "data_source",
            "id": data_source_id,
            "properties": copy.deepcopy(self.schema),
        }

    def query_pages(self, data_source_id: str, filter=None) -> list[dict]:
        self.calls.append(("query_pages", data_source_id))
        return [
            copy.deepcopy(p)
            for p in self.pages.values()
            if not p.get("archived")
        ]

    def retrieve_page(self, page_id: str) -> dict:
        self.calls.append(("retrieve_page", page_id))
        return copy.deepcopy(self.pages[page_id])

    def list_block_children(self, block_id: str) -> list[dict]:
        self.calls.append(("list_block_children", block_id))
        return list(self.blocks.get(block_id, []))

    def fetch_block_tree(self, block_id: str) -> tuple[Block, ...]:
        self.calls.append(("fetch_block_tree", block_id))
        if block_id in self.failures:
            raise self.failures[block_id]
        return tuple(
            Block.from_api(b, self._subtree(b))
            for b in self.blocks.get(block_id, [])
        )

    def _subtree(self, block: dict) -> tuple[Block, ...]:
        if not block.get("has_children"):
            return ()
        return tuple(
            Block.from_api(b, self._subtree(b))
            for b in self.blocks.get(block["id"], [])
        )

    def create_page(
        self,
        parent_database_id: str,
        properties: dict,
        children: list[dict] | None = None,
    ) -> dict:
        self.calls.append(("create_page", parent_database_id))
        if children and len(children) > MAX_CHILDREN_PER_REQUEST:
            raise ValueError("too many children")
        page_id = self._next_id("page")
        page = {
            "object": "page",
            "id": page_id,
            "last_edited_time": self._tick(),
            "archived": False,
            "properties": _as_returned(properties),
        }
        self.pages[page_id] = page
        self.blocks[page_id] = [
            {**c, "id": self._next_id("block")} for c in children or []
        ]
        return copy.deepcopy(page)

    def append_children(self, block_id: str, children: list[dict]) -> dict:
        self.calls.append(("append_children", block_id))
        if len(children) > MAX_CHILDREN_PER_REQUEST:
            raise ValueError("too many children")
        self.blocks.setdefault(block_id, []).extend(
            {**c, "id": self._next_id("block")} for c in children
        )
        if block_id in self.pages:
            self.pages[block_id]["last_edited_time"] = self._tick()
        return {"results": children}

    def delete_block(self, block_id: str) -> dict:
        self.calls.append(("delete_block", block_id))
        for children in self.blocks.values():
            children[:] = [c for c in children if c["id"] != block_id]
        return {"id": block_id, "archived": True}

    def update_page_properties(self, page_id: str, properties: dict) -> dict:
        self.calls.append(("update_page_properties", page_id))
        if page_id in self.failures:
            raise self.failures[page_id]
        page = self.pages[page_id]
        page["properties"].update(_as_returned(properties))
        page["last_edited_time"] = self._tick()
        return copy.deepcopy(page)

    def archive_page(self, page_id: str) -> dict:
        self.calls.append(("archive_page", page_id))
        self.pages[page_id]["archived"] = True
        return copy.deepcopy(self.pages[page_id])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sync_config(tmp_path) -> Config:
    """Config pointing at a temporary output dir and ledger, no throttle."""
    return Config(
        notion_token="secret_test",
        database_id="db123",
        output_dir=str(tmp_path / "docs"),
        state_file=str(tmp_path / "state" / "ledger.json"),
        min_request_interval=0,
    )


@pytest.fixture
def fake_client() -> FakeNotionClient:
    return FakeNotionClient()
