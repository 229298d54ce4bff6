"""Markdown to Notion block payloads using the mistune AST.

Docusaurus admonitions (``:::tip`` ... ``:::``) and ``<details>`` toggles
are cut out of the text before parsing, because CommonMark has no notion
of either; their bodies are converted recursively.
"""

import logging
import re
from typing import Any

import mistune

from .rich_text import inline_tokens_to_rich_text, text_item

logger = logging.getLogger(__name__)

ADMONITION_TO_ICON: dict[str, str] = {
    "note": "📝",
    "tip": "💡",
    "info": "ℹ️",
    "warning": "⚠️",
    "caution": "⚠️",
    "danger": "🔥",
}

# Fence names Notion does not accept, mapped to ones it does.
_LANGUAGE_ALIASES: dict[str, str] = {
    "": "plain text",
    "text": "plain text",
    "txt": "plain text",
    "plaintext": "plain text",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "sh": "shell",
    "zsh": "shell",
    "yml": "yaml",
    "md": "markdown",
    "rb": "ruby",
}

_parse = mistune.create_markdown(
    renderer="ast", plugins=["table", "strikethrough", "task_lists"]
)

_FENCE = re.compile(r"^(`{3,}|~{3,})")
_ADMONITION_OPEN = re.compile(r"^:::\s*([A-Za-z][\w-]*)\s*(.*)$")
_ADMONITION_CLOSE = re.compile(r"^:::\s*$")
_DETAILS_OPEN = re.compile(r"^<details>(.*)$", re.IGNORECASE)
_DETAILS_CLOSE = re.compile(r"^</details>\s*$", re.IGNORECASE)
_SUMMARY = re.compile(r"<summary>(.*?)</summary>", re.IGNORECASE | re.DOTALL)


def markdown_to_blocks(text: str) -> list[dict]:
    """Convert a Markdown body (without front matter) to block payloads.

    The result is suitable for ``pages`` creation and
    ``blocks/{id}/children`` appends.
    """
    blocks: list[dict] = []
    for segment in _split_containers(text.replace("\r\n", "\n")):
        match segment:
            case ("markdown", chunk):
                blocks.extend(_convert_tokens(_parse(chunk)))
            case ("admonition", kind, title, inner):
                blocks.append(_callout(kind, title, inner))
            case ("details", summary, inner):
                blocks.append(_toggle(summary, inner))
    return blocks


# =============================================================================
# Container pre-pass
# =============================================================================


def _opener(line: str) -> tuple[str, re.Match] | None:
    if m := _ADMONITION_OPEN.match(line):
        return "admonition", m
    if m := _DETAILS_OPEN.match(line):
        return "details", m
    return None


def _find_close(lines: list[str], start: int, kind: str) -> int | None:
    """Return the index of the line closing the container opened at *start*."""
    depth = 1
    fence: str | None = None
    for j in range(start + 1, len(lines)):
        stripped = lines[j].strip()
        if fence:
            if stripped.startswith(fence):
                fence = None
            continue
        if m := _FENCE.match(stripped):
            fence = m.group(1)
            continue
        if kind == "admonition":
            if _ADMONITION_CLOSE.match(stripped):
                depth -= 1
            elif _ADMONITION_OPEN.match(stripped):
                depth += 1
        else:
            if _DETAILS_CLOSE.match(stripped):
                depth -= 1
            elif _DETAILS_OPEN.match(stripped):
                depth += 1
        if depth == 0:
            return j
    return None


def _split_containers(text: str) -> list[tuple]:
    segments: list[tuple] = []
    buffer: list[str] = []
    lines = text.split("\n")
    fence: str | None = None
    i = 0

    def flush() -> None:
        chunk = "\n".join(buffer)
        if chunk.strip():
            segments.append(("markdown", chunk))
        buffer.clear()

    while i < len(lines):
        line = lines[i]
        stripped = line.strip()
        if fence:
            buffer.append(line)
            if stripped.startswith(fence):
                fence = None
            i += 1
            continue
        if m := _FENCE.match(stripped):
            fence = m.group(1)
            buffer.append(line)
            i += 1
            continue

        opened = _opener(stripped)
        end = _find_close(lines, i, opened[0]) if opened else None
        if opened is None or end is None:
            buffer.append(line)
            i += 1
            continue

        flush()
        kind, m = opened
        inner = lines[i + 1 : end]
        if kind == "admonition":
            segments.append(
                ("admonition", m.group(1).lower(), m.group(2).strip(), "\n".join(inner))
            )
        else:
            summary, inner_text = _take_summary(m.group(1), inner)
            segments.append(("details", summary, inner_text))
        i = end + 1

    flush()
    return segments


def _take_summary(rest: str, inner: list[str]) -> tuple[str, str]:
    if m := _SUMMARY.search(rest):
        return m.group(1).strip(), "\n".join(inner)
    body = "\n".join(inner)
    if m := _SUMMARY.search(body):
        return m.group(1).strip(), (body[: m.start()] + body[m.end() :]).strip("\n")
    return "Toggle", body


# =============================================================================
# Block conversion
# =============================================================================


def _block(block_type: str, content: dict[str, Any]) -> dict:
    return {"object": "block", "type": block_type, block_type: content}


def _attach_children(block: dict, children: list[dict]) -> dict:
    if children:
        block[block["type"]]["children"] = children
    return block


def _inline(text: str) -> list[dict]:
    """Parse a one-line Markdown snippet to rich text."""
    tokens = _parse(text)
    if tokens and tokens[0].get("type") == "paragraph":
        return inline_tokens_to_rich_text(tokens[0]["children"])
    return text_item(text)


def _convert_tokens(tokens: list[dict]) -> list[dict]:
    blocks: list[dict] = []
    for token in tokens:
        converted = _convert_token(token)
        if converted is None:
            continue
        if isinstance(converted, list):
            blocks.extend(converted)
        else:
            blocks.append(converted)
    return blocks


def _convert_token(token: dict) -> dict | list[dict] | None:
    token_type = token.get("type")
    match token_type:
        case "paragraph" | "block_text":
            return _paragraph(token)
        case "heading":
            level = min(token.get("attrs", {}).get("level", 1), 3)
            return _block(
                f"heading_{level}",
                {"rich_text": inline_tokens_to_rich_text(token["children"])},
            )
        case "block_code":
            return _code(token)
        case "list":
            ordered = token.get("attrs", {}).get("ordered", False)
            return [_list_item(item, ordered) for item in token["children"]]
        case "block_quote":
            return _quote(token)
        case "table":
            return _table(token)
        case "thematic_break":
            return _block("divider", {})
        case "block_html":
            raw = token.get("raw", "").strip()
            if not raw.startswith(("<!--", "</")):
                logger.warning("Skipping unsupported HTML: %.50s", raw)
            return None
        case "blank_line":
            return None
        case _:
            logger.warning("Skipping unsupported Markdown node: %s", token_type)
            return None


def _paragraph(token: dict) -> dict:
    children = [
        c for c in token.get("children", []) if c.get("type") != "softbreak"
    ]
    if len(children) == 1 and children[0].get("type") == "image":
        return _image(children[0])
    return _block(
        "paragraph",
        {"rich_text": inline_tokens_to_rich_text(token.get("children", []))},
    )


def _image(token: dict) -> dict:
    alt = "".join(
        c.get("raw", "") for c in token.get("children", []) if "raw" in c
    )
    return _block(
        "image",
        {
            "type": "external",
            "external": {"url": token["attrs"]["url"]},
            "caption": text_item(alt) if alt else [],
        },
    )


def _code(token: dict) -> dict:
    info = (token.get("attrs") or {}).get("info") or ""
    language = info.split()[0].lower() if info.strip() else ""
    language = _LANGUAGE_ALIASES.get(language, language)
    content = token.get("raw", "")
    if content.endswith("\n"):
        content = content[:-1]
    return _block(
        "code", {"language": language, "rich_text": text_item(content)}
    )


def _split_item(token: dict) -> tuple[list[dict], list[dict]]:
    """First paragraph of a container becomes its text; the rest, children."""
    rich_text: list[dict] = []
    rest: list[dict] = []
    found = False
    for child in token.get("children", []):
        if not found and child.get("type") in ("paragraph", "block_text"):
            rich_text = inline_tokens_to_rich_text(child.get("children", []))
            found = True
            continue
        rest.append(child)
    return rich_text, _convert_tokens(rest)


def _list_item(token: dict, ordered: bool) -> dict:
    rich_text, children = _split_item(token)
    if token.get("type") == "task_list_item":
        checked = bool(token.get("attrs", {}).get("checked"))
        block = _block("to_do", {"rich_text": rich_text, "checked": checked})
    else:
        block_type = "numbered_list_item" if ordered else "bulleted_list_item"
        block = _block(block_type, {"rich_text": rich_text})
    return _attach_children(block, children)


def _quote(token: dict) -> dict:
    rich_text: list[dict] = []
    others: list[dict] = []
    for child in token.get("children", []):
        if child.get("type") == "paragraph":
            if rich_text:
                rich_text.extend(text_item("\n"))
            rich_text.extend(inline_tokens_to_rich_text(child["children"]))
        else:
            others.append(child)
    block = _block("quote", {"rich_text": rich_text})
    return _attach_children(block, _convert_tokens(others))


def _table(token: dict) -> dict:
    rows: list[list[dict]] = []
    for section in token.get("children", []):
        if section.get("type") == "table_head":
            rows.append(section.get("children", []))
        elif section.get("type") == "table_body":
            rows.extend(row.get("children", []) for row in section["children"])

    width = max((len(r) for r in rows), default=1) or 1
    row_blocks = []
    for cells in rows:
        rendered = [
            inline_tokens_to_rich_text(cell.get("children", []))
            for cell in cells
        ]
        rendered.extend([] for _ in range(width - len(rendered)))
        row_blocks.append(_block("table_row", {"cells": rendered}))

    return _block(
        "table",
        {
            "table_width": width,
            "has_column_header": bool(rows),
            "has_row_header": False,
            "children": row_blocks,
        },
    )


def _callout(kind: str, title: str, inner: str) -> dict:
    icon = ADMONITION_TO_ICON.get(kind)
    if icon is None:
        logger.warning("Unknown admonition type %r, using note", kind)
        icon = ADMONITION_TO_ICON["note"]

    children = markdown_to_blocks(inner)
    rich_text: list[dict] = []
    if children and children[0]["type"] == "paragraph":
        rich_text = children.pop(0)["paragraph"]["rich_text"]
    if title:
        heading = text_item(title, {"bold": True})
        rich_text = heading + (text_item("\n") + rich_text if rich_text else [])

    block = _block(
        "callout",
        {"rich_text": rich_text, "icon": {"type": "emoji", "emoji": icon}},
    )
    return _attach_children(block, children)


def _toggle(summary: str, inner: str) -> dict:
    block = _block("toggle", {"rich_text": _inline(summary)})
    return _attach_children(block, markdown_to_blocks(inner))
