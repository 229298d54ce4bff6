"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``format_status`` -- ledger summary for the ``status`` command.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict

from .models import ItemAction, ItemResult, SyncResult

_DIRECTION_ARROWS = {"pull": "Notion -> local", "push": "local -> Notion"}

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _label(item: ItemResult) -> str:
    name = item.slug or item.id
    if item.title and item.title != item.slug:
        return f"{name} ({item.title})"
    return name


def format_sync_report(result: SyncResult) -> str:
    """Format a sync result as human-readable text.

    Sections are only included when they contain at least one item.
    Skipped records are summarised by count only.
    """
    if result.dry_run:
        return format_dry_run_preview(result)

    lines: list[str] = []
    lines.append(
        f"Synced {len(result.items)} records: "
        f"{len(result.created)} created, {len(result.updated)} updated, "
        f"{len(result.deleted)} deleted, {len(result.skipped)} skipped, "
        f"{len(result.conflicts)} conflicts, {len(result.errors)} errors"
    )
    lines.append("")

    for action in (ItemAction.CREATED, ItemAction.UPDATED, ItemAction.DELETED):
        for direction, items in (("pull", result.pulled), ("push", result.pushed)):
            selected = [r for r in items if r.action == action]
            if not selected:
                continue
            lines.append(
                f"{action.value.capitalize()} ({_DIRECTION_ARROWS[direction]}):"
            )
            for r in selected:
                lines.append(f"  {_label(r)}")
            lines.append("")

    if result.conflicts:
        lines.append("Conflicts:")
        for c in result.conflicts:
            lines.append(
                f"  {c.slug}: {c.winner.value} wins ({c.strategy}; "
                f"remote {c.remote_edited_at}, local {c.local_edited_at})"
            )
        lines.append("")

    if result.errors:
        lines.append("Errors:")
        for e in result.errors:
            target = e.slug or e.id
            lines.append(f"  {target}: {e.message}" if target else f"  {e.message}")
        lines.append("")

    if result.skipped:
        lines.append(f"Skipped: {len(result.skipped)} records (unchanged)")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(result: SyncResult) -> str:
    """Format a dry-run result grouped by direction and action.

    Each proposed change is shown as ``[PULL CREATED] slug``.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append("")

    groups: dict[tuple[str, ItemAction], list[ItemResult]] = defaultdict(list)
    for r in result.items:
        groups[(r.direction.value, r.action)].append(r)

    display_order = [
        (direction, action)
        for direction in ("pull", "push")
        for action in (ItemAction.CREATED, ItemAction.UPDATED, ItemAction.DELETED)
    ]
    for key in display_order:
        if key not in groups:
            continue
        direction, action = key
        lines.append(f"[{direction.upper()} {action.value.upper()}]")
        for r in groups[key]:
            lines.append(f"  {_label(r)}")
        lines.append("")

    if result.conflicts:
        lines.append("[CONFLICTS]")
        for c in result.conflicts:
            lines.append(f"  {c.slug}: {c.winner.value} wins ({c.strategy})")
        lines.append("")

    if result.errors:
        lines.append("[ERRORS]")
        for e in result.errors:
            lines.append(f"  {e.message}")
        lines.append("")

    if result.skipped:
        lines.append(f"Skipped: {len(result.skipped)} records (unchanged)")
        lines.append("")

    if not any(key in groups for key in display_order) and not result.conflicts:
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Ledger status
# ------------------------------------------------------------------


def format_status(state: dict, state_file: str) -> str:
    """Summarise a ledger: container, tracked records, last sync time."""
    records = state.get("records", {})
    lines = [
        f"State file: {state_file}",
        f"Database: {state.get('containerId') or '(not synced yet)'}",
        f"Data source: {state.get('queryIndirectionId') or '(unknown)'}",
        f"Last sync: {state.get('lastSyncTime') or 'never'}",
        f"Tracked records: {len(records)}",
    ]
    for record_id, entry in sorted(
        records.items(), key=lambda item: item[1].get("slug", "")
    ):
        lines.append(
            f"  {entry.get('slug', '?')} -> {record_id} "
            f"(edited {entry.get('remoteLastEdited') or '?'})"
        )
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(result: SyncResult) -> dict:
    """Convert a sync result to a structured dict for JSON serialisation."""
    return {
        "dry_run": result.dry_run,
        "ok": result.ok,
        "counts": {
            "total": len(result.items),
            "created": len(result.created),
            "updated": len(result.updated),
            "deleted": len(result.deleted),
            "skipped": len(result.skipped),
            "conflicts": len(result.conflicts),
            "errors": len(result.errors),
        },
        "pulled": [r.model_dump(mode="json") for r in result.pulled],
        "pushed": [r.model_dump(mode="json") for r in result.pushed],
        "conflicts": [c.model_dump(mode="json") for c in result.conflicts],
        "errors": [e.model_dump(mode="json") for e in result.errors],
    }
