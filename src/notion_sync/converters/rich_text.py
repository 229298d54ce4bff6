"""Conversion between Notion rich text arrays and Markdown inline spans."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Notion rejects text objects longer than this.
MAX_TEXT_LENGTH = 2000


# =============================================================================
# Notion -> Markdown
# =============================================================================


def rich_text_to_plain_text(items: list[dict] | None) -> str:
    """Concatenate the ``plain_text`` of every item, dropping formatting."""
    if not items:
        return ""
    return "".join(item.get("plain_text") or "" for item in items)


def _link_of(item: dict) -> str | None:
    if item.get("href"):
        return item["href"]
    if item.get("type") == "text":
        link = (item.get("text") or {}).get("link")
        if link:
            return link.get("url")
    return None


def format_rich_text_item(item: dict) -> str:
    """Render one rich text item as Markdown.

    Wrapping order, innermost first: code, strikethrough, bold/italic,
    link.  Underline and colour have no Markdown form and are dropped.
    """
    text = item.get("plain_text") or ""
    if not text:
        return ""

    annotations = item.get("annotations") or {}
    if annotations.get("code"):
        text = f"`{text}`"
    if annotations.get("strikethrough"):
        text = f"~~{text}~~"

    bold = annotations.get("bold")
    italic = annotations.get("italic")
    if bold and italic:
        text = f"***{text}***"
    elif bold:
        text = f"**{text}**"
    elif italic:
        text = f"*{text}*"

    url = _link_of(item)
    if url:
        text = f"[{text}]({url})"
    return text


def rich_text_to_markdown(items: list[dict] | None) -> str:
    """Render a Notion rich text array as a Markdown string.

    >>> rich_text_to_markdown([
    ...     {"plain_text": "Hello ", "annotations": {}},
    ...     {"plain_text": "world", "annotations": {"bold": True}},
    ... ])
    'Hello **world**'
    """
    if not items:
        return ""
    return "".join(format_rich_text_item(item) for item in items)


# =============================================================================
# Markdown -> Notion
# =============================================================================


def text_item(
    content: str,
    annotations: dict[str, bool] | None = None,
    link: str | None = None,
) -> list[dict]:
    """Build rich text payload items for *content*.

    Content longer than ``MAX_TEXT_LENGTH`` is split into several items
    carrying the same annotations and link.
    """
    items = []
    for start in range(0, max(len(content), 1), MAX_TEXT_LENGTH):
        text: dict[str, Any] = {
            "content": content[start : start + MAX_TEXT_LENGTH]
        }
        if link:
            text["link"] = {"url": link}
        item: dict[str, Any] = {"type": "text", "text": text}
        active = {k: True for k, v in (annotations or {}).items() if v}
        if active:
            item["annotations"] = active
        items.append(item)
    return items


def inline_tokens_to_rich_text(
    tokens: list[dict],
    annotations: dict[str, bool] | None = None,
    link: str | None = None,
) -> list[dict]:
    """Convert mistune inline AST tokens to rich text payload items.

    Nested emphasis accumulates annotations (``***x***`` becomes bold and
    italic); links apply their URL to every text run inside them.
    """
    annotations = annotations or {}
    result: list[dict] = []
    for token in tokens:
        token_type = token.get("type")
        match token_type:
            case "text":
                result.extend(text_item(token["raw"], annotations, link))
            case "strong":
                result.extend(
                    inline_tokens_to_rich_text(
                        token["children"], {**annotations, "bold": True}, link
                    )
                )
            case "emphasis":
                result.extend(
                    inline_tokens_to_rich_text(
                        token["children"],
                        {**annotations, "italic": True},
                        link,
                    )
                )
            case "strikethrough":
                result.extend(
                    inline_tokens_to_rich_text(
                        token["children"],
                        {**annotations, "strikethrough": True},
                        link,
                    )
                )
            case "codespan":
                result.extend(
                    text_item(token["raw"], {**annotations, "code": True}, link)
                )
            case "link":
                url = (token.get("attrs") or {}).get("url")
                result.extend(
                    inline_tokens_to_rich_text(
                        token.get("children", []), annotations, url or link
                    )
                )
            case "image":
                attrs = token.get("attrs") or {}
                alt = _plain(token.get("children", [])) or "image"
                result.extend(
                    text_item(f"[{alt}]", annotations, attrs.get("url"))
                )
            case "linebreak" | "softbreak":
                result.extend(text_item("\n", annotations, link))
            case "inline_html":
                result.extend(text_item(token["raw"], annotations, link))
            case _:
                logger.warning("Skipping unsupported inline token: %s", token_type)
    return _merge_adjacent(result)


def _plain(tokens: list[dict]) -> str:
    parts = []
    for token in tokens:
        if "raw" in token:
            parts.append(token["raw"])
        elif "children" in token:
            parts.append(_plain(token["children"]))
    return "".join(parts)


def _merge_adjacent(items: list[dict]) -> list[dict]:
    """Join neighbouring items that share annotations and link."""
    merged: list[dict] = []
    for item in items:
        if merged:
            last = merged[-1]
            same_format = last.get("annotations") == item.get(
                "annotations"
            ) and last["text"].get("link") == item["text"].get("link")
            combined = len(last["text"]["content"]) + len(
                item["text"]["content"]
            )
            if same_format and combined <= MAX_TEXT_LENGTH:
                last["text"]["content"] += item["text"]["content"]
                continue
        merged.append(item)
    return merged
