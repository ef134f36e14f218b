"""In-memory collaborators for entity storage, displays, layouts and resources."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from lbinclude.cacheability import CacheMetadata
from lbinclude.models import (
    Entity,
    EntityViewDisplay,
    LayoutDefinition,
    LayoutNotFound,
    ResourceResponse,
    ResourceType,
)
from sub_request import requested_includes


CORE_LAYOUTS = [
    LayoutDefinition("layout_onecol", "One column", ["content"]),
    LayoutDefinition("layout_twocol_section", "Two column", ["first", "second"]),
    LayoutDefinition("layout_threecol_section", "Three column", ["first", "second", "third"]),
    LayoutDefinition("layout_fourcol_section", "Four column", ["first", "second", "third", "fourth"]),
    LayoutDefinition("layout_twocol", "Two column (legacy)", ["top", "first", "second", "bottom"]),
]


def _split_type(type_name: str) -> tuple[str, str]:
    if not isinstance(type_name, str) or "--" not in type_name:
        raise ValueError(f"Invalid resource type name: {type_name!r}")
    entity_type, bundle = type_name.split("--", 1)
    return entity_type, bundle


class MemoryEntityStorage:
    def __init__(self) -> None:
        self._entities: Dict[str, Dict[str, Entity]] = {}

    def save(self, entity: Entity) -> Entity:
        self._entities.setdefault(entity.entity_type, {})[entity.uuid] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    def find_by_uuid(self, entity_type: str, uuid: str) -> Entity | None:
        entity = self._entities.get(entity_type, {}).get(uuid)
        return copy.deepcopy(entity) if entity else None

    def load_multiple_by_uuid(self, entity_type: str, uuids: Iterable[str]) -> Dict[str, Entity]:
        bucket = self._entities.get(entity_type, {})
        return {uuid: copy.deepcopy(bucket[uuid]) for uuid in uuids if uuid in bucket}

    def list_bundle(self, entity_type: str, bundle: str) -> list[Entity]:
        return [
            copy.deepcopy(e)
            for e in self._entities.get(entity_type, {}).values()
            if e.bundle == bundle
        ]


class MemoryDisplayRepository:
    def __init__(self) -> None:
        self._displays: Dict[str, EntityViewDisplay] = {}

    def save(self, display: EntityViewDisplay) -> None:
        self._displays[display.id] = copy.deepcopy(display)

    def load_display(self, entity_type: str, bundle: str, mode: str = "default") -> EntityViewDisplay | None:
        display = self._displays.get(f"{entity_type}.{bundle}.{mode}")
        return copy.deepcopy(display) if display else None


class MemoryLayoutRegistry:
    def __init__(self, definitions: Iterable[LayoutDefinition] | None = None) -> None:
        self._definitions: Dict[str, LayoutDefinition] = {}
        for definition in CORE_LAYOUTS if definitions is None else definitions:
            self.register(definition)

    def register(self, definition: LayoutDefinition) -> None:
        self._definitions[definition.id] = copy.deepcopy(definition)

    def get_definition(self, layout_id: str) -> LayoutDefinition:
        definition = self._definitions.get(layout_id)
        if definition is None:
            raise LayoutNotFound(layout_id)
        return copy.deepcopy(definition)


class MemoryResourceTypeRepository:
    def __init__(self) -> None:
        self._default_includes: Dict[str, List[str]] = {}

    def configure(self, entity_type: str, bundle: str, default_includes: List[str]) -> None:
        self._default_includes[f"{entity_type}--{bundle}"] = list(default_includes)

    def get(self, entity_type: str, bundle: str) -> ResourceType:
        includes = self._default_includes.get(f"{entity_type}--{bundle}", [])
        return ResourceType(entity_type, bundle, list(includes))


class MemoryEntityResource:
    """Builds raw JSON:API resource responses from the entity storage."""

    def __init__(self, storage: MemoryEntityStorage, base_path: str = "jsonapi") -> None:
        self._storage = storage
        self._base_path = base_path.strip("/")

    def _self_link(self, entity: Entity) -> str:
        return f"/{self._base_path}/{entity.entity_type}/{entity.bundle}/{entity.uuid}"

    def _resource_object(self, entity: Entity) -> dict:
        attributes = copy.deepcopy(entity.attributes)
        if entity.id is not None:
            attributes.setdefault("drupal_internal__id", entity.id)
        resource = {
            "type": entity.resource_type_name,
            "id": entity.uuid,
            "attributes": attributes,
            "links": {"self": {"href": self._self_link(entity)}},
        }
        if entity.relationships:
            resource["relationships"] = {
                name: {"data": [{"type": ref.get("type"), "id": ref.get("id")} for ref in refs]}
                for name, refs in entity.relationships.items()
            }
        return resource

    def _lookup_ref(self, ref: dict) -> Entity | None:
        try:
            entity_type, _ = _split_type(ref.get("type"))
        except ValueError:
            return None
        return self._storage.find_by_uuid(entity_type, ref.get("id"))

    def _collect_included(self, entities: List[Entity], paths: List[str]) -> List[Entity]:
        found: Dict[tuple, Entity] = {}
        for path in paths:
            frontier = entities
            for field_name in path.split("."):
                following = []
                for entity in frontier:
                    for ref in entity.relationships.get(field_name, []):
                        target = self._lookup_ref(ref)
                        if target is None:
                            continue
                        found.setdefault((target.resource_type_name, target.uuid), target)
                        following.append(target)
                frontier = following
        return list(found.values())

    def _respond(self, data: Any, entities: List[Entity], request) -> ResourceResponse:
        included = self._collect_included(entities, requested_includes(request))
        cacheability = CacheMetadata(contexts=["url.query_args:include"])
        for entity in entities + included:
            cacheability.add_dependency(entity)
        return ResourceResponse(
            data=data,
            included=[self._resource_object(e) for e in included],
            links={"self": {"href": str(request.url.path)}},
            cacheability=cacheability,
        )

    def get_individual(self, entity: Entity, request) -> ResourceResponse:
        return self._respond(self._resource_object(entity), [entity], request)

    def get_collection(self, entity_type: str, bundle: str, request) -> ResourceResponse:
        entities = self._storage.list_bundle(entity_type, bundle)
        response = self._respond([self._resource_object(e) for e in entities], entities, request)
        response.cacheability.add_tags([f"{entity_type}_list"])
        return response

    def normalize(self, response: ResourceResponse) -> dict:
        document = {
            "jsonapi": {"version": "1.0"},
            "data": copy.deepcopy(response.data),
            "links": copy.deepcopy(response.links),
        }
        if response.included:
            document["included"] = copy.deepcopy(response.included)
        return document


@dataclass
class Stores:
    storage: MemoryEntityStorage = field(default_factory=MemoryEntityStorage)
    displays: MemoryDisplayRepository = field(default_factory=MemoryDisplayRepository)
    layouts: MemoryLayoutRegistry = field(default_factory=MemoryLayoutRegistry)
    resource_types: MemoryResourceTypeRepository = field(default_factory=MemoryResourceTypeRepository)
    entity_resource: MemoryEntityResource | None = None

    def __post_init__(self) -> None:
        if self.entity_resource is None:
            self.entity_resource = MemoryEntityResource(self.storage)


def entity_from_fixture(raw: dict) -> Entity:
    entity_type, bundle = _split_type(raw.get("type"))
    relationships = {}
    for name, refs in (raw.get("relationships") or {}).items():
        if isinstance(refs, dict):
            refs = [refs]
        relationships[name] = [dict(ref) for ref in refs if isinstance(ref, dict)]
    return Entity(
        entity_type=entity_type,
        bundle=bundle,
        uuid=raw["id"],
        id=raw.get("drupal_internal__id"),
        attributes=copy.deepcopy(raw.get("attributes") or {}),
        relationships=relationships,
    )


def load_fixtures(data: dict, stores: Stores | None = None) -> Stores:
    """Seed in-memory stores from a fixture mapping.

    Keys: ``entities``, ``displays``, ``layouts`` and ``resource_types``.
    """
    stores = stores or Stores()
    for raw in data.get("layouts") or []:
        stores.layouts.register(
            LayoutDefinition(raw["id"], raw.get("label"), list(raw.get("regions") or []))
        )
    for raw in data.get("displays") or []:
        stores.displays.save(
            EntityViewDisplay(
                entity_type=raw["entity_type"],
                bundle=raw["bundle"],
                mode=raw.get("mode") or "default",
                layout_builder_enabled=bool(raw.get("layout_builder_enabled")),
                third_party_settings=copy.deepcopy(raw.get("third_party_settings") or {}),
            )
        )
    for raw in data.get("resource_types") or []:
        entity_type, bundle = _split_type(raw.get("type"))
        stores.resource_types.configure(entity_type, bundle, list(raw.get("default_includes") or []))
    for raw in data.get("entities") or []:
        stores.storage.save(entity_from_fixture(raw))
    return stores
