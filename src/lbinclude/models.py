"""Value types exchanged with the layout and JSON:API collaborators."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .cacheability import PERMANENT, CacheMetadata


@dataclass
class LayoutNotFound(Exception):
    layout_id: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"Layout definition not found: {self.layout_id!r}"


@dataclass
class Entity:
    entity_type: str
    bundle: str
    uuid: str
    id: int | str | None = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    # field name -> resource identifiers ({"type": ..., "id": ...})
    relationships: Dict[str, List[dict]] = field(default_factory=dict)

    @property
    def resource_type_name(self) -> str:
        return f"{self.entity_type}--{self.bundle}"

    @property
    def cache_tags(self) -> list[str]:
        key = self.id if self.id is not None else self.uuid
        return [f"{self.entity_type}:{key}"]

    @property
    def cache_contexts(self) -> list[str]:
        return []

    @property
    def cache_max_age(self) -> int:
        return PERMANENT


@dataclass
class EntityViewDisplay:
    """The default view display of one entity type/bundle."""

    entity_type: str
    bundle: str
    mode: str = "default"
    layout_builder_enabled: bool = False
    third_party_settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.entity_type}.{self.bundle}.{self.mode}"

    def is_layout_managed(self) -> bool:
        return self.layout_builder_enabled

    def layout_builder_settings(self) -> dict:
        return self.third_party_settings.get("layout_builder") or {}

    def declared_sections(self) -> list[dict]:
        """Design-time sections as Section dicts, empty unless enabled."""
        settings = self.layout_builder_settings()
        if not settings.get("enabled"):
            return []
        return [copy.deepcopy(section) for section in settings.get("sections") or []]

    @property
    def cache_tags(self) -> list[str]:
        return [f"config:core.entity_view_display.{self.id}"]

    @property
    def cache_contexts(self) -> list[str]:
        return []

    @property
    def cache_max_age(self) -> int:
        return PERMANENT


@dataclass
class LayoutDefinition:
    id: str
    label: str | None = None
    regions: List[str] = field(default_factory=list)


@dataclass
class ResourceType:
    entity_type: str
    bundle: str
    default_includes: List[str] = field(default_factory=list)

    @property
    def type_name(self) -> str:
        return f"{self.entity_type}--{self.bundle}"


@dataclass
class ResourceResponse:
    """Raw result of a resource fetch, before normalization."""

    data: Any
    included: List[dict] = field(default_factory=list)
    links: Dict[str, Any] = field(default_factory=dict)
    cacheability: CacheMetadata = field(default_factory=CacheMetadata)


@dataclass
class JsonApiResponse:
    """A serialized JSON:API response and its cacheability sidecar."""

    content: str
    status_code: int = 200
    cacheability: CacheMetadata = field(default_factory=CacheMetadata)
