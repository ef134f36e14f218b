"""Block references carried by layout component configuration."""

from __future__ import annotations

import enum
from typing import Any


class BlockProvider(enum.Enum):
    BLOCK_CONTENT = "block_content"
    LAYOUT_BUILDER = "layout_builder"
    OTHER = "other"

    @classmethod
    def from_configuration(cls, configuration: Any) -> "BlockProvider":
        provider = configuration.get("provider") if isinstance(configuration, dict) else None
        if provider == cls.BLOCK_CONTENT.value:
            return cls.BLOCK_CONTENT
        if provider == cls.LAYOUT_BUILDER.value:
            return cls.LAYOUT_BUILDER
        return cls.OTHER


def block_reference(configuration: Any) -> str | None:
    """Return the uuid of the block_content entity a component points at.

    Reusable blocks carry ``id`` as ``block_content:<uuid>``; inline blocks
    carry the uuid directly.
    """
    provider = BlockProvider.from_configuration(configuration)
    if provider is BlockProvider.BLOCK_CONTENT:
        plugin_id = configuration.get("id")
        if not isinstance(plugin_id, str):
            return None
        parts = plugin_id.split(":")
        if len(parts) < 2 or not parts[1]:
            return None
        return parts[1]
    if provider is BlockProvider.LAYOUT_BUILDER:
        block_uuid = configuration.get("uuid")
        if isinstance(block_uuid, str) and block_uuid:
            return block_uuid
        return None
    return None
