"""Inline JSON:API ``included`` resources into their relationships."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, FrozenSet, Tuple

from lbinclude.canonical_json import DocumentDecodeError, decode_document, encode_document
from lbinclude.models import JsonApiResponse

logger = logging.getLogger("lbinclude.include")

ResourceKey = Tuple[Any, Any]


def _key(resource: Any) -> ResourceKey | None:
    if not isinstance(resource, dict):
        return None
    return (resource.get("type"), resource.get("id"))


class IncludeParser:
    """Flatten attributes and replace relationship identifiers with resources.

    Included resources are resolved recursively; a resource already on the
    current resolution path is left as a bare identifier.
    """

    def parse(self, response: JsonApiResponse) -> JsonApiResponse:
        try:
            document = decode_document(response.content)
        except DocumentDecodeError as exc:
            logger.debug("include_parse_skipped code=%s", exc.code)
            return response
        if document.get("errors"):
            return response
        response.content = encode_document(self.parse_document(document))
        return response

    def parse_document(self, document: dict) -> dict:
        if not isinstance(document, dict) or document.get("errors"):
            return document
        out = {k: copy.deepcopy(v) for k, v in document.items() if k != "included"}
        index: Dict[ResourceKey, dict] = {}
        for resource in document.get("included") or []:
            key = _key(resource)
            if key is not None:
                index[key] = resource
        data = document.get("data")
        if isinstance(data, list):
            out["data"] = [self._flatten(item, index, frozenset({_key(item)})) for item in data]
        elif isinstance(data, dict):
            out["data"] = self._flatten(data, index, frozenset({_key(data)}))
        return out

    def _flatten(self, resource: Any, index: Dict[ResourceKey, dict], seen: FrozenSet) -> Any:
        if not isinstance(resource, dict):
            return resource
        item = {
            k: copy.deepcopy(v)
            for k, v in resource.items()
            if k not in ("attributes", "relationships")
        }
        attributes = resource.get("attributes")
        if isinstance(attributes, dict):
            for name, value in attributes.items():
                item[name] = copy.deepcopy(value)
        relationships = resource.get("relationships")
        if isinstance(relationships, dict):
            for name, rel in relationships.items():
                data = rel.get("data") if isinstance(rel, dict) else None
                if isinstance(data, list):
                    item[name] = [self._resolve(ref, index, seen) for ref in data]
                else:
                    item[name] = self._resolve(data, index, seen)
        return item

    def _resolve(self, ref: Any, index: Dict[ResourceKey, dict], seen: FrozenSet) -> Any:
        key = _key(ref)
        if key is None:
            return ref
        target = index.get(key)
        if target is None or key in seen:
            return copy.deepcopy(ref)
        return self._flatten(target, index, seen | {key})
