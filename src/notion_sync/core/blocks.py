"""Immutable content-tree value built from Notion block objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class Block:
    """One Notion block with its nested children.

    Attributes:
        id: Block id.
        type: Block type (``paragraph``, ``heading_1``, ...).
        payload: The type-specific object (``block[block["type"]]``).
        has_children: Whether Notion reported nested content.
        children: Child blocks, in document order.
    """

    id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict, hash=False)
    has_children: bool = False
    children: tuple[Block, ...] = ()

    @classmethod
    def from_api(
        cls, data: dict, children: Iterable[Block] = ()
    ) -> Block:
        """Build a block from an API block object without mutating it."""
        block_type = data.get("type") or "unsupported"
        payload = data.get(block_type)
        return cls(
            id=data.get("id", ""),
            type=block_type,
            payload=dict(payload) if isinstance(payload, dict) else {},
            has_children=bool(data.get("has_children", False)),
            children=tuple(children),
        )

    @property
    def rich_text(self) -> list[dict]:
        """The block's ``rich_text`` array, or an empty list."""
        return self.payload.get("rich_text") or []
