"""Deterministic JSON codec for JSON:API documents."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any


class CanonicalJsonTypeError(TypeError):
    """Raised when a document holds a value that has no JSON form."""


@dataclass
class DocumentDecodeError(Exception):
    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.code}: {self.message}"


def _validate(obj: Any, path: str = "$") -> None:
    if isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalJsonTypeError(
                    f"Unsupported key type at {path}: {type(key).__name__}"
                )
            _validate(value, f"{path}.{key}")
        return
    if isinstance(obj, (list, tuple)):
        for idx, item in enumerate(obj):
            _validate(item, f"{path}[{idx}]")
        return
    if obj is None or isinstance(obj, (str, int, bool)):
        return
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError(f"Non-finite float at {path}: {obj!r}")
        return
    raise CanonicalJsonTypeError(
        f"Unsupported type at {path}: {type(obj).__name__}"
    )


def canonical_dumps(obj: Any) -> str:
    """Serialize an object to deterministic canonical JSON.

    Dict keys are sorted recursively, list order is kept, non-ASCII text is
    preserved and no whitespace is emitted.
    """
    _validate(obj)
    return json.dumps(
        obj,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )


def encode_document(document: dict) -> str:
    return canonical_dumps(document)


def decode_document(content: str | bytes | None) -> dict:
    """Decode a response body into a document mapping.

    Raises DocumentDecodeError when the body is empty, not JSON, or not a
    JSON object.
    """
    if content is None or content in ("", b""):
        raise DocumentDecodeError("DOCUMENT_EMPTY", "response body is empty")
    if isinstance(content, (bytes, bytearray)):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DocumentDecodeError("DOCUMENT_ENCODING", str(exc)) from exc
    try:
        document = json.loads(content)
    except ValueError as exc:
        raise DocumentDecodeError("DOCUMENT_INVALID_JSON", str(exc)) from exc
    if not isinstance(document, dict):
        raise DocumentDecodeError("DOCUMENT_NOT_OBJECT", "top-level value must be an object")
    return document
