"""FastAPI app serving JSON:API resources with layout builder blocks inlined."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


_load_env_file(ROOT / "app" / ".env")

from app.stores import Stores, load_fixtures
from include_parser import IncludeParser
from layout_parser import LayoutParser
from lbinclude.canonical_json import encode_document
from lbinclude.etag import etag_for
from lbinclude.models import JsonApiResponse, ResourceResponse


JSONAPI_MEDIA_TYPE = "application/vnd.api+json"
JSONAPI_BASE_PATH = os.getenv("JSONAPI_BASE_PATH", "jsonapi").strip().strip("/") or "jsonapi"
HTTP_HOST = os.getenv("LB_INCLUDE_HTTP_HOST", "").strip() or "localhost"
MAX_DEPTH = int(os.getenv("LB_INCLUDE_MAX_DEPTH", "8"))
MAX_WORKERS = int(os.getenv("LB_INCLUDE_MAX_WORKERS", "1"))
FIXTURES_PATH = os.getenv("LB_INCLUDE_FIXTURES", "").strip()
INCLUDE_BY_DEFAULT = os.getenv("LB_INCLUDE_DEFAULT", "").strip().lower() in ("1", "true", "yes")
REQ_SLOW_MS = float(os.getenv("LB_INCLUDE_REQ_SLOW_MS", "250"))
_LOCAL_CORS_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
}
_EXTRA_CORS_ORIGINS = {
    origin.strip().rstrip("/")
    for origin in os.getenv("LB_INCLUDE_CORS_ORIGINS", "").split(",")
    if origin.strip()
}
_CORS_ORIGINS = _LOCAL_CORS_ORIGINS | _EXTRA_CORS_ORIGINS

app = FastAPI(title="Layout builder JSON:API include")
logger = logging.getLogger("lbinclude.api")
logging.basicConfig(level=logging.INFO)


def build_stores(fixtures_path: str | None = None) -> Stores:
    stores = Stores()
    if fixtures_path:
        data = json.loads(Path(fixtures_path).read_text(encoding="utf-8"))
        load_fixtures(data, stores)
        logger.info("fixtures_loaded path=%s", fixtures_path)
    return stores


def build_parser(stores: Stores) -> LayoutParser:
    return LayoutParser(
        displays=stores.displays,
        storage=stores.storage,
        layouts=stores.layouts,
        resource_types=stores.resource_types,
        entity_resource=stores.entity_resource,
        inner=IncludeParser(),
        base_path=JSONAPI_BASE_PATH,
        host=HTTP_HOST,
        max_depth=MAX_DEPTH,
        max_workers=MAX_WORKERS,
    )


stores = build_stores(FIXTURES_PATH or None)
parser = build_parser(stores)


def configure(new_stores: Stores) -> None:
    """Swap the stores backing the app, rebuilding the parser."""
    global stores, parser
    stores = new_stores
    parser = build_parser(new_stores)


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %s total_ms=%.1f", request.method, request.url.path, response.status_code, total_ms)
    if total_ms >= REQ_SLOW_MS:
        logger.warning(
            "slow_request method=%s path=%s total_ms=%.1f status=%s",
            request.method,
            request.url.path,
            total_ms,
            response.status_code,
        )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(_CORS_ORIGINS),
    allow_origin_regex=r"http://localhost:\d+|http://127\.0\.0\.1:\d+",
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


def _jsonapi_error(code: str, title: str, detail: str | None = None, status: int = 400) -> Response:
    body = {
        "jsonapi": {"version": "1.0"},
        "errors": [{"status": str(status), "code": code, "title": title, "detail": detail}],
    }
    return Response(content=encode_document(body), status_code=status, media_type=JSONAPI_MEDIA_TYPE)


def _wants_include(request: Request) -> bool:
    flag = request.query_params.get("jsonapi_include")
    if flag is None:
        return INCLUDE_BY_DEFAULT
    return flag.strip().lower() in ("1", "true", "yes")


def _render(request: Request, raw: ResourceResponse) -> Response:
    document = stores.entity_resource.normalize(raw)
    response = JsonApiResponse(content=encode_document(document), cacheability=raw.cacheability)
    response.cacheability.add_contexts(["url.query_args:jsonapi_include"])
    if _wants_include(request):
        parser.parse(response)
    headers = response.cacheability.to_headers()
    headers["ETag"] = etag_for(response.content)
    if request.headers.get("if-none-match") == headers["ETag"]:
        return Response(status_code=304, headers=headers)
    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=JSONAPI_MEDIA_TYPE,
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error path=%s", request.url.path)
    return _jsonapi_error("INTERNAL_ERROR", "Unexpected server error", str(exc), status=500)


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get(f"/{JSONAPI_BASE_PATH}/{{entity_type}}/{{bundle}}")
def get_collection(request: Request, entity_type: str, bundle: str) -> Response:
    raw = stores.entity_resource.get_collection(entity_type, bundle, request)
    return _render(request, raw)


@app.get(f"/{JSONAPI_BASE_PATH}/{{entity_type}}/{{bundle}}/{{uuid}}")
def get_individual(request: Request, entity_type: str, bundle: str, uuid: str) -> Response:
    entity = stores.storage.find_by_uuid(entity_type, uuid)
    if entity is None or entity.bundle != bundle:
        return _jsonapi_error(
            "RESOURCE_NOT_FOUND",
            "Not Found",
            f"No {entity_type}--{bundle} resource with id {uuid}",
            status=404,
        )
    raw = stores.entity_resource.get_individual(entity, request)
    return _render(request, raw)
