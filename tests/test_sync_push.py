"""Tests for the Markdown to Notion pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeNotionClient, make_page

from notion_sync.errors import NotionAPIError
from notion_sync.sync.models import ItemAction, SyncDirection
from notion_sync.sync.push import PushPipeline
from notion_sync.sync.state import SyncState, empty_state

INTRO = "---\ntitle: Intro\ndescription: First steps\n---\nHello world"


def _write(config, slug: str, content: str) -> Path:
    path = Path(config.output_dir) / f"{slug}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _track(state: dict, page_id: str, slug: str, content: str) -> None:
    SyncState.update_entry(
        state,
        page_id,
        {
            "remoteLastEdited": "2026-01-01T10:00:00.000Z",
            "localContentHash": SyncState.content_hash(content),
            "slug": slug,
            "filePath": f"{slug}.md",
        },
    )


def _push(client, config, state, **kwargs):
    pipeline = PushPipeline(client, config)
    return pipeline.run(state, pipeline.snapshot(), **kwargs)


class TestUnchanged:
    def test_matching_hash_is_skipped_without_calls(self, fake_client, sync_config):
        _write(sync_config, "intro", INTRO)
        state = empty_state()
        _track(state, "p1", "intro", INTRO)

        result = _push(fake_client, sync_config, state)

        assert [(r.id, r.action) for r in result.pushed] == [("p1", ItemAction.SKIPPED)]
        assert fake_client.calls == []

    def test_empty_output_dir(self, fake_client, sync_config):
        result = _push(fake_client, sync_config, empty_state())
        assert result.pushed == []
        assert result.errors == []


class TestCreate:
    def test_new_file_creates_page(self, fake_client, sync_config):
        _write(sync_config, "intro", INTRO)
        state = empty_state()

        result = _push(fake_client, sync_config, state)

        assert len(result.pushed) == 1
        item = result.pushed[0]
        assert item.action is ItemAction.CREATED
        assert item.direction is SyncDirection.PUSH
        assert item.title == "Intro"
        page = fake_client.pages[item.id]
        assert page["properties"]["Name"]["title"][0]["text"]["content"] == "Intro"
        assert (
            page["properties"]["Description"]["rich_text"][0]["text"]["content"]
            == "First steps"
        )
        assert page["properties"]["Slug"]["rich_text"][0]["text"]["content"] == "intro"
        assert page["properties"]["Status"] == {
            "type": "select",
            "select": {"name": "Published"},
        }

    def test_ledger_entry_written(self, fake_client, sync_config):
        _write(sync_config, "intro", INTRO)
        state = empty_state()

        result = _push(fake_client, sync_config, state)

        page_id = result.pushed[0].id
        entry = state["records"][page_id]
        assert entry["slug"] == "intro"
        assert entry["filePath"] == "intro.md"
        assert entry["remoteId"] == page_id
        assert entry["localContentHash"] == SyncState.content_hash(INTRO)
        assert entry["remoteLastEdited"] == fake_client.pages[page_id]["last_edited_time"]
        assert entry["localLastModified"]

    def test_title_defaults_to_slug(self, fake_client, sync_config):
        _write(sync_config, "no-front-matter", "Just text")
        result = _push(fake_client, sync_config, empty_state())
        page = fake_client.pages[result.pushed[0].id]
        assert page["properties"]["Name"]["title"][0]["text"]["content"] == "no-front-matter"

    def test_explicit_status_is_kept(self, fake_client, sync_config):
        _write(sync_config, "draft", "---\ntitle: Draft\nstatus: Draft\n---\nx")
        result = _push(fake_client, sync_config, empty_state())
        page = fake_client.pages[result.pushed[0].id]
        assert page["properties"]["Status"] == {
            "type": "select",
            "select": {"name": "Draft"},
        }

    def test_large_body_is_sent_in_batches(self, fake_client, sync_config):
        body = "\n\n".join(f"Paragraph {i}" for i in range(250))
        _write(sync_config, "big", f"---\ntitle: Big\n---\n{body}")

        result = _push(fake_client, sync_config, empty_state())

        page_id = result.pushed[0].id
        assert len(fake_client.calls_named("create_page")) == 1
        assert len(fake_client.calls_named("append_children")) == 2
        assert len(fake_client.blocks[page_id]) == 250
        first = fake_client.blocks[page_id][0]
        assert first["paragraph"]["rich_text"][0]["text"]["content"] == "Paragraph 0"


class TestUpdate:
    @pytest.fixture
    def tracked(self, fake_client: FakeNotionClient, sync_config):
        fake_client.add_page(make_page("p1", "Intro", slug="intro"), "old a", "old b")
        state = empty_state()
        _track(state, "p1", "intro", "old content")
        _write(sync_config, "intro", INTRO)
        return state

    def test_replaces_content_and_properties(self, fake_client, sync_config, tracked):
        result = _push(fake_client, sync_config, tracked)

        assert [(r.id, r.action) for r in result.pushed] == [("p1", ItemAction.UPDATED)]
        assert [c[1] for c in fake_client.calls_named("delete_block")] == ["p1-b0", "p1-b1"]
        assert fake_client.calls_named("append_children") == [("append_children", "p1")]
        assert fake_client.calls_named("update_page_properties") == [
            ("update_page_properties", "p1")
        ]
        contents = [
            b["paragraph"]["rich_text"][0]["text"]["content"]
            for b in fake_client.blocks["p1"]
        ]
        assert contents == ["Hello world"]

    def test_content_replaced_before_properties(self, fake_client, sync_config, tracked):
        _push(fake_client, sync_config, tracked)
        names = [c[0] for c in fake_client.calls]
        assert names.index("append_children") < names.index("update_page_properties")

    def test_ledger_takes_edit_time_from_update(self, fake_client, sync_config, tracked):
        _push(fake_client, sync_config, tracked)
        entry = tracked["records"]["p1"]
        assert entry["remoteLastEdited"] == fake_client.pages["p1"]["last_edited_time"]
        assert entry["localContentHash"] == SyncState.content_hash(INTRO)

    def test_existing_status_not_overwritten(self, fake_client, sync_config, tracked):
        _push(fake_client, sync_config, tracked)
        assert fake_client.pages["p1"]["properties"]["Status"] == {
            "type": "select",
            "select": {"name": "Published"},
        }

    def test_full_pushes_unchanged_files(self, fake_client, sync_config):
        fake_client.add_page(make_page("p1", "Intro"), "Hello world")
        _write(sync_config, "intro", INTRO)
        state = empty_state()
        _track(state, "p1", "intro", INTRO)

        result = _push(fake_client, sync_config, state, full=True)

        assert result.pushed[0].action is ItemAction.UPDATED


class TestArchive:
    def test_deleted_file_archives_page(self, fake_client, sync_config):
        fake_client.add_page(make_page("p1", "Intro"))
        state = empty_state()
        _track(state, "p1", "intro", INTRO)

        result = _push(fake_client, sync_config, state)

        assert [(r.id, r.slug, r.action) for r in result.pushed] == [
            ("p1", "intro", ItemAction.DELETED)
        ]
        assert fake_client.pages["p1"]["archived"] is True
        assert state["records"] == {}


class TestFaultIsolation:
    def test_failing_page_does_not_stop_the_rest(self, fake_client, sync_config):
        fake_client.add_page(make_page("p1", "Intro"))
        fake_client.failures["p1"] = NotionAPIError(400, "validation_error", "bad")
        state = empty_state()
        _track(state, "p1", "intro", "old")
        _write(sync_config, "intro", INTRO)
        _write(sync_config, "other", "---\ntitle: Other\n---\nbody")

        result = _push(fake_client, sync_config, state)

        assert [r.action for r in result.pushed] == [ItemAction.CREATED]
        assert result.pushed[0].slug == "other"
        assert len(result.errors) == 1
        error = result.errors[0]
        assert (error.id, error.slug, error.kind) == ("p1", "intro", "NotionAPIError")
        assert "intro.md" in error.message
        # Failed entry keeps its old hash so the next pass retries it.
        assert state["records"]["p1"]["localContentHash"] == SyncState.content_hash("old")


class TestDryRunAndExclusion:
    def test_dry_run_makes_no_calls(self, fake_client, sync_config):
        fake_client.add_page(make_page("p1", "Gone"))
        _write(sync_config, "intro", INTRO)
        state = empty_state()
        _track(state, "p1", "gone", "x")

        result = _push(fake_client, sync_config, state, dry_run=True)

        actions = sorted(r.action.value for r in result.pushed)
        assert actions == ["created", "deleted"]
        assert result.dry_run is True
        assert fake_client.calls == []
        assert list(state["records"]) == ["p1"]

    def test_excluded_slug_is_skipped(self, fake_client, sync_config):
        fake_client.add_page(make_page("p1", "Intro"))
        state = empty_state()
        _track(state, "p1", "intro", "old")
        _write(sync_config, "intro", INTRO)

        result = _push(fake_client, sync_config, state, exclude=frozenset({"intro"}))

        assert [(r.id, r.action) for r in result.pushed] == [("p1", ItemAction.SKIPPED)]
        assert fake_client.calls == []
        assert state["records"]["p1"]["localContentHash"] == SyncState.content_hash("old")


class TestStatusSchema:
    def test_status_typed_column_gets_status_payload(self, fake_client, sync_config):
        fake_client.schema["Status"] = {"type": "status", "status": {"options": []}}
        _write(sync_config, "intro", INTRO)
        pipeline = PushPipeline(fake_client, sync_config)

        pipeline.load_schema("ds-1")
        result = pipeline.run(empty_state(), pipeline.snapshot())

        assert result.errors == []
        page = fake_client.pages[result.pushed[0].id]
        assert page["properties"]["Status"] == {
            "type": "status",
            "status": {"name": "Published"},
        }
        assert fake_client.calls_named("retrieve_data_source") == [
            ("retrieve_data_source", "ds-1")
        ]

    def test_front_matter_status_follows_schema(self, fake_client, sync_config):
        fake_client.schema["Status"] = {"type": "status", "status": {"options": []}}
        _write(sync_config, "draft", "---\ntitle: Draft\nstatus: Draft\n---\nx")
        pipeline = PushPipeline(fake_client, sync_config)

        pipeline.load_schema("ds-1")
        result = pipeline.run(empty_state(), pipeline.snapshot())

        page = fake_client.pages[result.pushed[0].id]
        assert page["properties"]["Status"]["status"] == {"name": "Draft"}

    def test_missing_status_column_defaults_to_select(self, fake_client, sync_config):
        del fake_client.schema["Status"]
        pipeline = PushPipeline(fake_client, sync_config)
        pipeline.load_schema("ds-1")
        assert pipeline.status_type == "select"
