"""Entity tags for JSON:API response bodies."""

from __future__ import annotations

import hashlib
from typing import Any

from .canonical_json import canonical_dumps


def etag_for(body: Any) -> str:
    """Return a strong ETag (quoted SHA-256 hex) for a response body.

    Encoded bodies are hashed as sent. Documents are canonically encoded
    first, so key order never changes the tag.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    elif not isinstance(body, (bytes, bytearray)):
        body = canonical_dumps(body).encode("utf-8")
    return '"%s"' % hashlib.sha256(body).hexdigest()
