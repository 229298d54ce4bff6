"""Mapping between Notion page properties and Docusaurus front matter.

Notion -> front matter:

==================  ==================  ==============
Notion property     Front matter key    Notion type
==================  ==================  ==============
Name                title               title
Slug                slug                rich_text
Description         description         rich_text
Tags                tags                multi_select
Sidebar Position    sidebar_position    number
Published Date      date                date
Category            sidebar_label       select
==================  ==================  ==============

The status property (``Status`` by default) is not copied to front matter;
it decides whether a page is eligible for sync at all.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

import yaml

from ..file_handler import slug_from_title
from .rich_text import rich_text_to_plain_text, text_item

logger = logging.getLogger(__name__)

DEFAULT_PROPERTY_MAPPINGS: dict[str, str] = {
    "Name": "title",
    "Slug": "slug",
    "Description": "description",
    "Tags": "tags",
    "Sidebar Position": "sidebar_position",
    "Published Date": "date",
    "Category": "sidebar_label",
}

DEFAULT_FRONTMATTER_MAPPINGS: dict[str, str] = {
    "title": "Name",
    "slug": "Slug",
    "description": "Description",
    "tags": "Tags",
    "sidebar_position": "Sidebar Position",
    "date": "Published Date",
    "sidebar_label": "Category",
    "category": "Category",
    "status": "Status",
}

DEFAULT_PROPERTY_TYPES: dict[str, str] = {
    "Name": "title",
    "Slug": "rich_text",
    "Description": "rich_text",
    "Tags": "multi_select",
    "Sidebar Position": "number",
    "Published Date": "date",
    "Category": "select",
    "Status": "select",
}


@dataclass(frozen=True)
class FrontmatterResult:
    frontmatter: dict[str, Any] = field(default_factory=dict)
    should_publish: bool = False


# =============================================================================
# Page accessors
# =============================================================================


def status_value(prop: dict | None) -> str | None:
    """Return the option name of a ``select`` or ``status`` property."""
    if not prop:
        return None
    kind = prop.get("type")
    if kind in ("select", "status") and prop.get(kind):
        return prop[kind].get("name")
    return None


def page_title(page: dict) -> str:
    for prop in (page.get("properties") or {}).values():
        if prop.get("type") == "title":
            return rich_text_to_plain_text(prop.get("title"))
    return "Untitled"


def page_slug(page: dict) -> str | None:
    """Return the ``Slug`` rich text property, or ``None`` when unset."""
    prop = (page.get("properties") or {}).get("Slug")
    if prop and prop.get("type") == "rich_text":
        return rich_text_to_plain_text(prop.get("rich_text")).strip() or None
    return None


def page_file_slug(page: dict) -> str:
    """Slug a page is stored under: its ``Slug`` property, else its title's."""
    return page_slug(page) or slug_from_title(page_title(page))


def is_published(
    page: dict,
    status_property: str = "Status",
    published_status: str = "Published",
) -> bool:
    prop = (page.get("properties") or {}).get(status_property)
    return status_value(prop) == published_status


# =============================================================================
# Notion -> front matter
# =============================================================================


def _date_value(prop: dict) -> str | None:
    start = (prop.get("date") or {}).get("start")
    if not start:
        return None
    return start.split("T")[0]


def _formula_value(prop: dict) -> Any:
    formula = prop.get("formula") or {}
    kind = formula.get("type")
    if kind == "date":
        return (formula.get("date") or {}).get("start")
    return formula.get(kind) if kind else None


def property_value(prop: dict) -> Any:
    """Extract a plain Python value from a page property."""
    match prop.get("type"):
        case "title" | "rich_text" as kind:
            return rich_text_to_plain_text(prop.get(kind))
        case "select" | "status":
            return status_value(prop)
        case "multi_select":
            return [o.get("name") for o in prop.get("multi_select") or []]
        case "date":
            return _date_value(prop)
        case "formula":
            return _formula_value(prop)
        case (
            "number"
            | "checkbox"
            | "url"
            | "email"
            | "phone_number"
            | "created_time"
            | "last_edited_time"
        ) as kind:
            return prop.get(kind)
        case _:
            return None


def properties_to_frontmatter(
    properties: dict[str, dict],
    status_property: str = "Status",
    published_status: str = "Published",
    property_mappings: dict[str, str] | None = None,
) -> FrontmatterResult:
    """Map page properties to front matter and decide eligibility.

    Unmapped properties and empty values are left out.
    """
    mappings = {**DEFAULT_PROPERTY_MAPPINGS, **(property_mappings or {})}
    frontmatter: dict[str, Any] = {}
    should_publish = False

    for name, prop in properties.items():
        if name == status_property:
            should_publish = status_value(prop) == published_status
            continue
        key = mappings.get(name)
        if key is None:
            continue
        value = property_value(prop)
        if value is None or value == "" or value == []:
            continue
        frontmatter[key] = value

    return FrontmatterResult(frontmatter=frontmatter, should_publish=should_publish)


def frontmatter_to_yaml(frontmatter: dict[str, Any]) -> str:
    """Serialise front matter between ``---`` delimiter lines."""
    if not frontmatter:
        return "---\n---"
    body = yaml.safe_dump(
        frontmatter,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{body}---"


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split a Markdown document into ``(front_matter, body)``.

    Documents without a leading ``---`` block, with an unterminated block,
    or with YAML that does not parse to a mapping yield ``{}`` and the
    whole (newline-normalised) text as body.
    """
    text = content.replace("\r\n", "\n").lstrip("﻿")
    if not (text.startswith("---\n") or text == "---"):
        return {}, text

    close = text.find("\n---", 3)
    if close == -1:
        return {}, text

    raw = text[4:close] if close >= 4 else ""
    body = text[close + 4 :]
    # The closing delimiter must be a whole line.
    if body and not body.startswith("\n"):
        return {}, text
    body = body[1:] if body.startswith("\n") else body

    if not raw.strip():
        return {}, body
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        logger.warning("Invalid front matter YAML, treating as body: %s", exc)
        return {}, text
    if not isinstance(data, dict):
        return {}, body
    return data, body


# =============================================================================
# Front matter -> Notion
# =============================================================================


def _as_string(value: Any, key: str) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.warning(
        "Expected string for '%s', got %s. Skipping.", key, type(value).__name__
    )
    return None


def _as_number(value: Any, key: str) -> float | int | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            pass
        else:
            return int(number) if number.is_integer() else number
    logger.warning(
        "Expected number for '%s', got %r. Skipping.", key, value
    )
    return None


def _as_string_list(value: Any, key: str) -> list[str] | None:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        logger.warning(
            "Expected list for '%s', got %s. Skipping.", key, type(value).__name__
        )
        return None
    names = [
        str(item)
        for item in value
        if isinstance(item, (str, int, float)) and str(item).strip()
    ]
    return names or None


def _as_date(value: Any, key: str) -> str | None:
    if isinstance(value, datetime.datetime):
        return value.date().isoformat()
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, str) and len(value) >= 10:
        try:
            return datetime.date.fromisoformat(value[:10]).isoformat()
        except ValueError:
            pass
    logger.warning(
        "Invalid date for '%s': %r. Expected YYYY-MM-DD. Skipping.", key, value
    )
    return None


def _property_payload(kind: str, value: Any, key: str) -> dict | None:
    match kind:
        case "title" | "rich_text":
            text = _as_string(value, key)
            return {kind: text_item(text)} if text is not None else None
        case "select" | "status":
            text = _as_string(value, key)
            return {kind: {"name": text}} if text is not None else None
        case "multi_select":
            names = _as_string_list(value, key)
            if names is None:
                return None
            return {"multi_select": [{"name": n} for n in names]}
        case "number":
            number = _as_number(value, key)
            return {"number": number} if number is not None else None
        case "date":
            date = _as_date(value, key)
            return {"date": {"start": date}} if date is not None else None
    return None


def frontmatter_to_properties(
    frontmatter: dict[str, Any],
    property_mappings: dict[str, str] | None = None,
    status_property: str = "Status",
    status_type: str = "select",
) -> dict[str, dict]:
    """Build Notion property payloads from front matter.

    Unknown keys, empty values, and values of the wrong shape are skipped
    with a warning.  The ``status`` key maps to *status_property*, written
    as a *status_type* (``select`` or ``status``) property.
    """
    mappings = {
        **DEFAULT_FRONTMATTER_MAPPINGS,
        "status": status_property,
        **(property_mappings or {}),
    }
    types = {**DEFAULT_PROPERTY_TYPES, status_property: status_type}
    properties: dict[str, dict] = {}

    for key, value in frontmatter.items():
        if value is None or value == [] or (isinstance(value, str) and not value.strip()):
            continue
        name = mappings.get(key)
        if name is None:
            logger.warning("Unknown front matter key '%s'. Skipping.", key)
            continue
        kind = types.get(name)
        if kind is None:
            logger.warning("No property type defined for '%s'. Skipping.", name)
            continue
        payload = _property_payload(kind, value, key)
        if payload is not None:
            properties[name] = payload
    return properties
