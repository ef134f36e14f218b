"""Layout builder include kernel."""

from .block_ref import BlockProvider, block_reference
from .cacheability import PERMANENT, CacheMetadata
from .canonical_json import CanonicalJsonTypeError, DocumentDecodeError, canonical_dumps, decode_document, encode_document
from .component_sort import sort_section_components
from .etag import etag_for

__all__ = [
    "BlockProvider",
    "block_reference",
    "PERMANENT",
    "CacheMetadata",
    "CanonicalJsonTypeError",
    "DocumentDecodeError",
    "canonical_dumps",
    "decode_document",
    "encode_document",
    "sort_section_components",
    "etag_for",
]
