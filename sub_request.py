"""Synthetic sub-requests for fetching a single JSON:API resource."""

from __future__ import annotations

from typing import List
from urllib.parse import urlencode

from starlette.requests import Request

from lbinclude.models import Entity, ResourceType


RESOURCE_TYPE_KEY = "resource_type"


def resource_path(base_path: str, entity: Entity) -> str:
    base = base_path.strip("/")
    return f"/{base}/{entity.entity_type}/{entity.bundle}/{entity.uuid}"


def build_sub_request(
    entity: Entity,
    resource_type: ResourceType,
    includes: List[str] | None = None,
    base_path: str = "jsonapi",
    host: str = "localhost",
) -> Request:
    """Build a GET request scoped to one entity and its default includes.

    The resource type travels in the request scope so the resource
    controller does not have to route the path again.
    """
    query = {"jsonapi_include": "1"}
    if includes:
        query["include"] = ",".join(includes)
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": resource_path(base_path, entity),
        "raw_path": resource_path(base_path, entity).encode("utf-8"),
        "root_path": "",
        "query_string": urlencode(query).encode("utf-8"),
        "headers": [
            (b"host", host.encode("utf-8")),
            (b"accept", b"application/vnd.api+json"),
        ],
        "server": (host, 80),
        RESOURCE_TYPE_KEY: resource_type,
    }
    return Request(scope)


def requested_includes(request: Request) -> list[str]:
    raw = request.query_params.get("include") or ""
    return [part.strip() for part in raw.split(",") if part.strip()]
