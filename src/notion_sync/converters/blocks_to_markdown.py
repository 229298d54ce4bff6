"""Notion block tree to Docusaurus-flavoured Markdown."""

import logging

from ..core.blocks import Block
from .rich_text import rich_text_to_markdown, rich_text_to_plain_text

logger = logging.getLogger(__name__)

# Callout icon -> Docusaurus admonition type; anything else is a note.
CALLOUT_ICON_TO_ADMONITION: dict[str, str] = {
    "💡": "tip",
    "ℹ️": "info",
    "⚠️": "warning",
    "🔥": "danger",
    "❗": "danger",
    "✅": "tip",
    "📝": "note",
    "🚨": "danger",
    "⛔": "danger",
    "❌": "danger",
    "🚫": "danger",
}

_LIST_TYPES = ("bulleted_list_item", "numbered_list_item")


def blocks_to_markdown(blocks: tuple[Block, ...] | list[Block]) -> str:
    """Render a block tree as Markdown.

    Consecutive list items of the same kind are grouped into one list;
    top-level elements are separated by a blank line.
    """
    parts: list[str] = []
    i = 0
    while i < len(blocks):
        block = blocks[i]
        if block.type in _LIST_TYPES:
            group = []
            while i < len(blocks) and blocks[i].type == block.type:
                group.append(blocks[i])
                i += 1
            parts.append(
                "\n".join(
                    _list_item(item, 0, n) for n, item in enumerate(group)
                )
            )
            continue

        rendered = convert_block(block)
        if rendered is not None:
            parts.append(rendered)
        i += 1
    return "\n\n".join(parts)


def convert_block(block: Block) -> str | None:
    """Render a single block; ``None`` means the block is dropped."""
    match block.type:
        case "paragraph":
            return _with_children(rich_text_to_markdown(block.rich_text), block)
        case "heading_1" | "heading_2" | "heading_3":
            prefix = "#" * int(block.type[-1])
            text = f"{prefix} {rich_text_to_markdown(block.rich_text)}"
            return _with_children(text, block)
        case "bulleted_list_item" | "numbered_list_item":
            return _list_item(block, 0, 0)
        case "to_do":
            return _to_do(block)
        case "toggle":
            return _toggle(block)
        case "code":
            return _code(block)
        case "quote":
            return _quote(block)
        case "callout":
            return _callout(block)
        case "divider":
            return "---"
        case "table":
            return _table(block)
        case "image":
            caption = rich_text_to_markdown(block.payload.get("caption"))
            return f"![{caption or 'image'}]({_file_url(block.payload)})"
        case "bookmark" | "embed":
            url = block.payload.get("url") or ""
            caption = rich_text_to_markdown(block.payload.get("caption"))
            return f"[{caption or url}]({url})"
        case "link_preview":
            url = block.payload.get("url") or ""
            return f"[{url}]({url})"
        case "equation":
            return f"$$\n{block.payload.get('expression', '')}\n$$"
        case "video" | "file" | "pdf" | "audio":
            return _media_link(block)
        case "column_list":
            return _column_list(block)
        case "column" | "table_row" | "breadcrumb" | "table_of_contents":
            return None
        case "child_page":
            return f"> 📄 **Child page:** {block.payload.get('title') or 'Untitled'}"
        case "child_database":
            title = block.payload.get("title") or "Untitled Database"
            return f"> 📊 **Child database:** {title}"
        case "link_to_page":
            return _link_to_page(block)
        case "synced_block":
            return _synced_block(block)
        case _:
            logger.warning(
                "Unsupported block type %r (id: %s)", block.type, block.id
            )
            return f"<!-- Unsupported block: {block.type} -->"


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.split("\n"))


def _with_children(text: str, block: Block) -> str:
    if not block.children:
        return text
    return f"{text}\n\n{blocks_to_markdown(block.children)}"


def _list_item(block: Block, depth: int, index: int) -> str:
    marker = "-" if block.type == "bulleted_list_item" else f"{index + 1}."
    pad = "  " * depth
    lines = [f"{pad}{marker} {rich_text_to_markdown(block.rich_text)}"]

    for n, child in enumerate(block.children):
        if child.type in _LIST_TYPES:
            lines.append(_list_item(child, depth + 1, n))
            continue
        rendered = convert_block(child)
        if rendered:
            lines.append(_indent(rendered, "  " * (depth + 1)))
    return "\n".join(lines)


def _to_do(block: Block) -> str:
    box = "[x]" if block.payload.get("checked") else "[ ]"
    lines = [f"- {box} {rich_text_to_markdown(block.rich_text)}"]
    for child in block.children:
        rendered = convert_block(child)
        if rendered:
            lines.append(_indent(rendered, "  "))
    return "\n".join(lines)


def _toggle(block: Block) -> str:
    summary = rich_text_to_markdown(block.rich_text)
    body = blocks_to_markdown(block.children)
    return f"<details>\n<summary>{summary}</summary>\n\n{body}\n\n</details>"


def _code(block: Block) -> str:
    content = rich_text_to_plain_text(block.rich_text)
    language = block.payload.get("language") or ""
    if language == "plain text":
        language = ""
    rendered = f"```{language}\n{content}\n```"
    caption = rich_text_to_markdown(block.payload.get("caption"))
    if caption:
        rendered += f"\n\n*{caption}*"
    return rendered


def _quote(block: Block) -> str:
    rendered = _indent(rich_text_to_markdown(block.rich_text), "> ")
    if block.children:
        rendered += "\n" + _indent(blocks_to_markdown(block.children), "> ")
    return rendered


def _callout(block: Block) -> str:
    icon = block.payload.get("icon") or {}
    admonition = "note"
    if icon.get("type") == "emoji":
        admonition = CALLOUT_ICON_TO_ADMONITION.get(icon.get("emoji"), "note")
    content = _with_children(rich_text_to_markdown(block.rich_text), block)
    return f":::{admonition}\n\n{content}\n\n:::"


def _table(block: Block) -> str:
    rows = [child for child in block.children if child.type == "table_row"]
    if not rows:
        return "<!-- Empty table -->"

    width = block.payload.get("table_width") or 1
    lines = []
    for n, row in enumerate(rows):
        cells = row.payload.get("cells") or []
        rendered = [
            rich_text_to_markdown(cells[col]) if col < len(cells) else ""
            for col in range(width)
        ]
        lines.append("| " + " | ".join(rendered) + " |")
        if n == 0:
            lines.append("| " + " | ".join("---" for _ in rendered) + " |")
    return "\n".join(lines)


def _file_url(payload: dict) -> str:
    kind = payload.get("type")
    if kind in ("file", "external"):
        return (payload.get(kind) or {}).get("url") or ""
    return ""


_MEDIA_FALLBACK = {"video": "Video", "pdf": "PDF Document", "audio": "Audio"}


def _media_link(block: Block) -> str:
    caption = rich_text_to_markdown(block.payload.get("caption"))
    if block.type == "file":
        fallback = block.payload.get("name") or "Download file"
    else:
        fallback = _MEDIA_FALLBACK[block.type]
    return f"[{caption or fallback}]({_file_url(block.payload)})"


def _column_list(block: Block) -> str:
    columns = [
        blocks_to_markdown(column.children)
        for column in block.children
        if column.type == "column" and column.children
    ]
    return "\n\n---\n\n".join(c for c in columns if c)


def _link_to_page(block: Block) -> str:
    kind = block.payload.get("type")
    if kind == "database_id":
        target, label = block.payload.get("database_id") or "", "database"
    else:
        target, label = block.payload.get("page_id") or "", "page"
    return f"> 🔗 **Link to {label}:** `{target}`"


def _synced_block(block: Block) -> str:
    if block.children:
        return blocks_to_markdown(block.children)
    source = (block.payload.get("synced_from") or {}).get("block_id")
    if source:
        return f"<!-- Synced from block: {source} -->"
    return ""
