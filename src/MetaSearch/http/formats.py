"""Result format resolution and validation.

The requested result format comes from, in order of precedence:

1. The URL extension (`/collections.echo10`). An unsupported extension is an error.
2. The Accept header (the first supported type wins, parameters are ignored).
3. The Content-Type header.
4. The caller-supplied default mime type.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Iterable, Mapping

from MetaSearch.core.errors import UnsupportedResultFormatError
from MetaSearch.core.query import COLLECTION, GRANULE

if TYPE_CHECKING:
    from MetaSearch.core.query import Query

ANY_MIME_TYPE = "*/*"

FORMAT_MIME_TYPES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "xml": "application/xml",
        "json": "application/json",
        "umm-json": "application/vnd.nasa.cmr.umm+json",
        "echo10": "application/echo10+xml",
        "dif": "application/dif+xml",
        "dif10": "application/dif10+xml",
        "atom": "application/atom+xml",
        "iso19115": "application/iso19115+xml",
        "iso-smap": "application/iso:smap+xml",
        "opendata": "application/opendata+json",
        "csv": "text/csv",
        "kml": "application/vnd.google-earth.kml+xml",
        "native": "application/metadata+xml",
    }
)

MIME_TYPE_FORMATS: Final[Mapping[str, str]] = MappingProxyType(
    {mime_type: fmt for fmt, mime_type in FORMAT_MIME_TYPES.items()}
)

# URL extensions that name a format differently.
_EXTENSION_ALIASES: Final[Mapping[str, str]] = MappingProxyType({"iso": "iso19115"})

SEARCH_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {ANY_MIME_TYPE}
    | {FORMAT_MIME_TYPES[fmt] for fmt in FORMAT_MIME_TYPES if fmt != "iso-smap"}
)

SUPPORTED_FORMATS: Final[Mapping[str, frozenset[str]]] = MappingProxyType(
    {
        COLLECTION: frozenset(FORMAT_MIME_TYPES),
        GRANULE: frozenset(
            {"xml", "json", "echo10", "atom", "iso19115", "iso-smap", "csv", "kml", "native"}
        ),
    }
)

_EXTENSION_PATTERN = re.compile(r"[^.]+(?:\.(.+))$")


def format_to_mime_type(fmt: str) -> str | None:
    return FORMAT_MIME_TYPES.get(_EXTENSION_ALIASES.get(fmt, fmt))


def mime_type_to_format(mime_type: str | None, default_mime_type: str) -> str | None:
    """Return the format name of a mime type, falling back to the default for `*/*`."""
    if mime_type is None or mime_type == ANY_MIME_TYPE:
        mime_type = default_mime_type
    return MIME_TYPE_FORMATS.get(mime_type)


def _extension_mime_type(path: str, valid_mime_types: Iterable[str]) -> str | None:
    match = _EXTENSION_PATTERN.fullmatch(path)
    if match is None:
        return None
    extension = match.group(1)
    mime_type = format_to_mime_type(extension)
    if mime_type is None or mime_type not in valid_mime_types:
        raise UnsupportedResultFormatError(f"The URL extension [{extension}] is not supported.")
    return mime_type


def _header_mime_types(value: str, *, allow_multiple: bool) -> list[str]:
    entries = value.split(",") if allow_multiple else [value]
    mime_types = []
    for entry in entries:
        mime_type = entry.split(";", 1)[0].strip().lower()
        if mime_type:
            mime_types.append(mime_type)
    return mime_types


def _header_mime_type(
    headers: Mapping[str, str], name: str, valid_mime_types: Iterable[str], *, allow_multiple: bool
) -> str | None:
    value = next((v for k, v in headers.items() if k.lower() == name), None)
    if not value:
        return None
    valid = set(valid_mime_types)
    for mime_type in _header_mime_types(value, allow_multiple=allow_multiple):
        if mime_type in valid:
            return mime_type
    return None


def resolve_result_format(
    path: str,
    headers: Mapping[str, str] | None,
    default_mime_type: str,
    valid_mime_types: Iterable[str] = SEARCH_MIME_TYPES,
) -> str | None:
    """Return the requested result format name for a search request.

    Args:
        path: Request path, possibly ending in a format extension.
        headers: Request headers; names are matched case-insensitively.
        default_mime_type: Mime type used when nothing else selects a format.
        valid_mime_types: Mime types accepted by the endpoint.

    Raises:
        UnsupportedResultFormatError: If the URL extension names an unsupported format.
    """
    valid = frozenset(valid_mime_types)
    headers = headers or {}
    mime_type = (
        _extension_mime_type(path, valid)
        or _header_mime_type(headers, "accept", valid, allow_multiple=True)
        or _header_mime_type(headers, "content-type", valid, allow_multiple=False)
    )
    return mime_type_to_format(mime_type, default_mime_type)


def validate_query(query: Query) -> list[str]:
    """Return validation errors for a parsed query, empty when it is valid."""
    errors: list[str] = []
    fmt = query.result_format
    if fmt is not None and fmt not in SUPPORTED_FORMATS.get(query.concept_type, frozenset()):
        mime_type = FORMAT_MIME_TYPES.get(fmt, fmt)
        errors.append(f"The mime type [{mime_type}] is not supported for {query.concept_type}s.")
    return errors
