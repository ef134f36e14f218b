"""Layout builder enrichment of JSON:API response documents."""

from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterator, List, Tuple

from lbinclude.block_ref import block_reference
from lbinclude.cacheability import CacheMetadata
from lbinclude.canonical_json import DocumentDecodeError, decode_document, encode_document
from lbinclude.component_sort import sort_section_components
from lbinclude.models import Entity, JsonApiResponse
from sub_request import build_sub_request

logger = logging.getLogger("lbinclude.parser")

LAYOUT_FIELD = "layout_builder__layout"
BLOCK_ENTITY_TYPE = "block_content"


@dataclass
class LayoutIncludeError(Exception):
    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.code}: {self.message}"


@dataclass
class BlockFetchError(LayoutIncludeError):
    uuid: str | None = None


def is_collection(data: Any) -> bool:
    return isinstance(data, list)


def _iter_components(components: Any) -> Iterator[dict]:
    if isinstance(components, dict):
        components = list(components.values())
    if not isinstance(components, list):
        return
    for component in components:
        if isinstance(component, dict):
            yield component


class LayoutParser:
    """Inline layout sections and their blocks into JSON:API resources.

    Wraps an inner parser (include resolution) that runs first on every
    document, the outer response as well as each nested block document.
    """

    def __init__(
        self,
        displays,
        storage,
        layouts,
        resource_types,
        entity_resource,
        inner=None,
        base_path: str = "jsonapi",
        host: str = "localhost",
        max_depth: int = 8,
        max_workers: int = 1,
    ) -> None:
        self._displays = displays
        self._storage = storage
        self._layouts = layouts
        self._resource_types = resource_types
        self._entity_resource = entity_resource
        self._inner = inner
        self._base_path = base_path
        self._host = host
        self._max_depth = max_depth
        self._max_workers = max(1, int(max_workers))

    def parse(self, response: JsonApiResponse) -> JsonApiResponse:
        try:
            document = decode_document(response.content)
        except DocumentDecodeError as exc:
            logger.debug("layout_parse_skipped code=%s", exc.code)
            return response
        if document.get("errors") or not document.get("data"):
            return response
        if self._inner is not None:
            document = self._inner.parse_document(document)
        enriched = self.enrich(document, response.cacheability)
        response.content = encode_document(enriched)
        return response

    def enrich(self, document: Any, cache: CacheMetadata, depth: int = 0) -> Any:
        if not isinstance(document, dict) or document.get("errors") or not document.get("data"):
            return document
        data = document["data"]
        out = dict(document)
        if is_collection(data):
            out["data"] = [self._enrich_isolated(item, cache, depth) for item in data]
        else:
            out["data"] = self._enrich_isolated(data, cache, depth)
        return out

    def _enrich_isolated(self, item: Any, cache: CacheMetadata, depth: int) -> Any:
        try:
            return self.enrich_item(item, cache, depth)
        except Exception:
            resource_id = item.get("id") if isinstance(item, dict) else None
            logger.exception("item_enrich_failed id=%s depth=%s", resource_id, depth)
            return item

    def enrich_item(self, item: Any, cache: CacheMetadata, depth: int = 0) -> Any:
        if not isinstance(item, dict):
            return item
        type_name = item.get("type")
        if not isinstance(type_name, str) or "--" not in type_name:
            return item
        entity_type, bundle = type_name.split("--", 1)
        display = self._displays.load_display(entity_type, bundle)
        if display is None or not display.is_layout_managed():
            return item

        item = copy.deepcopy(item)
        if not item.get(LAYOUT_FIELD) and display.layout_builder_settings().get("enabled"):
            sections = item.get(LAYOUT_FIELD) if isinstance(item.get(LAYOUT_FIELD), list) else []
            sections.extend(display.declared_sections())
            item[LAYOUT_FIELD] = sections
            # TODO: only depend on the display when the requested view mode matches it.
            cache.add_dependency(display)

        sections = item.get(LAYOUT_FIELD)
        if not isinstance(sections, list):
            return item
        self._resolve_blocks(sections, cache, depth)
        sort_section_components(sections, self._layouts)
        return item

    def _resolve_blocks(self, sections: List[Any], cache: CacheMetadata, depth: int) -> None:
        refs: List[Tuple[dict, str]] = []
        for section in sections:
            if not isinstance(section, dict):
                continue
            for component in _iter_components(section.get("components")):
                block_uuid = block_reference(component.get("configuration"))
                if block_uuid:
                    refs.append((component, block_uuid))
        if not refs:
            return
        if self._max_workers > 1:
            self._resolve_batched(refs, cache, depth)
            return
        for component, block_uuid in refs:
            self._attach_block(component, block_uuid, self._lookup_block(block_uuid), cache, depth)

    def _lookup_block(self, block_uuid: str) -> Entity | None:
        try:
            return self._storage.find_by_uuid(BLOCK_ENTITY_TYPE, block_uuid)
        except Exception as exc:
            logger.warning("block_lookup_failed uuid=%s error=%s", block_uuid, exc)
            return None

    def _resolve_batched(self, refs: List[Tuple[dict, str]], cache: CacheMetadata, depth: int) -> None:
        uuids = list(dict.fromkeys(block_uuid for _, block_uuid in refs))
        try:
            entities = self._storage.load_multiple_by_uuid(BLOCK_ENTITY_TYPE, uuids)
        except Exception as exc:
            logger.warning("block_lookup_failed uuid=%s error=%s", ",".join(uuids), exc)
            entities = {}
        workers = min(self._max_workers, len(refs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._attach_block, component, block_uuid, entities.get(block_uuid), cache, depth)
                for component, block_uuid in refs
            ]
            for future in futures:
                future.result()

    def _attach_block(
        self,
        component: dict,
        block_uuid: str,
        entity: Entity | None,
        cache: CacheMetadata,
        depth: int,
    ) -> None:
        if entity is None:
            logger.info("block_not_found uuid=%s", block_uuid)
            return
        try:
            block = self.fetch_block(entity, cache, depth)
        except BlockFetchError as exc:
            logger.warning("block_fetch_failed uuid=%s code=%s error=%s", block_uuid, exc.code, exc.message)
            return
        component["block"] = block

    def fetch_block(self, entity: Entity, cache: CacheMetadata, depth: int = 0) -> Any:
        """Fetch the JSON:API representation of a block entity.

        The nested document goes through the same include resolution and
        layout enrichment as the outer one, contributing to the same cache
        accumulator. Returns the nested document's ``data``.
        """
        try:
            resource_type = self._resource_types.get(entity.entity_type, entity.bundle)
            includes = list(getattr(resource_type, "default_includes", None) or [])
            request = build_sub_request(
                entity,
                resource_type,
                includes,
                base_path=self._base_path,
                host=self._host,
            )
            response = self._entity_resource.get_individual(entity, request)
            document = self._entity_resource.normalize(response)
        except Exception as exc:
            raise BlockFetchError("BLOCK_FETCH_FAILED", str(exc), uuid=entity.uuid) from exc

        if self._inner is not None:
            document = self._inner.parse_document(document)
        if depth + 1 > self._max_depth:
            logger.warning("max_depth_reached uuid=%s depth=%s", entity.uuid, depth + 1)
        else:
            document = self.enrich(document, cache, depth + 1)
        cache.add_dependency(response)
        cache.add_dependency(entity)
        return document.get("data") if isinstance(document, dict) else None
