"""Paginated object listing protocol.

A listing is walked page by page. Each page becomes an immutable
:class:`~galaxy_fds.models.ListingCursor`; :func:`advance` turns a cursor
into the request for the following page, or ``None`` once the listing is
exhausted. Markers are opaque: they are threaded through exactly as the
service returned them and never re-derived from object names.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from galaxy_fds.errors import TranslationError
from galaxy_fds.models import ListingCursor, ObjectSummary, Owner

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "/"


@dataclass(frozen=True)
class ListingRequest:
    """Parameters of one listing call.

    Attributes:
        bucket_name: The bucket to list.
        prefix: Only names starting with this prefix are returned.
        delimiter: Grouping delimiter; empty or None disables grouping.
        marker: Resume after this opaque marker.
    """

    bucket_name: str
    prefix: str = ""
    delimiter: str | None = DEFAULT_DELIMITER
    marker: str | None = None

    def query_params(self) -> list[tuple[str, str]]:
        """Return the query parameters in wire order."""
        params = [("prefix", self.prefix)]
        if self.delimiter:
            params.append(("delimiter", self.delimiter))
        if self.marker is not None:
            params.append(("marker", self.marker))
        return params


def first_page(
    bucket_name: str, prefix: str = "", delimiter: str | None = DEFAULT_DELIMITER
) -> ListingRequest:
    """Build the request for the first page of a listing."""
    return ListingRequest(bucket_name=bucket_name, prefix=prefix, delimiter=delimiter)


def advance(
    cursor: ListingCursor | None, delimiter: str | None = DEFAULT_DELIMITER
) -> ListingRequest | None:
    """Build the request for the page after ``cursor``.

    The delimiter is not carried over from the cursor; it is applied per
    call so paging stays consistent with how the first page was grouped.

    Args:
        cursor: The current page.
        delimiter: Delimiter for the follow-up request.

    Returns:
        The next ListingRequest, or None when the cursor is exhausted.
    """
    if cursor is None or not cursor.is_truncated:
        logger.warning(
            "Listing of bucket %s is exhausted; no next page to request",
            cursor.bucket_name if cursor is not None else None,
        )
        return None

    return ListingRequest(
        bucket_name=cursor.bucket_name,
        prefix=cursor.prefix,
        delimiter=delimiter,
        marker=cursor.next_marker,
    )


def cursor_from_response(
    payload: Mapping[str, Any], bucket_name: str | None = None
) -> ListingCursor:
    """Build a cursor from a decoded listing response.

    Consumed fields: ``name``, ``prefix``, ``delimiter``, ``marker``,
    ``nextMarker``, ``truncated``, ``objects`` and ``commonPrefixes``. A
    non-truncated response with a stray ``nextMarker`` has the marker
    dropped.

    Args:
        payload: The decoded JSON body.
        bucket_name: Fallback bucket name when the response omits ``name``.

    Returns:
        A ListingCursor snapshot of the page.

    Raises:
        TranslationError: If the payload is malformed.
    """
    if not isinstance(payload, Mapping):
        raise TranslationError("Listing response must be an object.")

    name = payload.get("name") or bucket_name
    if not name:
        raise TranslationError("Listing response has no bucket name.")

    is_truncated = bool(payload.get("truncated", False))
    next_marker = payload.get("nextMarker") if is_truncated else None
    if is_truncated and not next_marker:
        raise TranslationError("Truncated listing response carries no nextMarker.")

    items = tuple(
        _parse_summary(name, entry, index)
        for index, entry in enumerate(payload.get("objects") or [])
    )

    return ListingCursor(
        bucket_name=name,
        prefix=payload.get("prefix") or "",
        delimiter=payload.get("delimiter"),
        marker=payload.get("marker") or None,
        next_marker=next_marker,
        is_truncated=is_truncated,
        items=items,
        common_prefixes=tuple(payload.get("commonPrefixes") or ()),
    )


def _parse_summary(bucket_name: str, entry: Any, index: int) -> ObjectSummary:
    if not isinstance(entry, Mapping) or not entry.get("name"):
        raise TranslationError(f"Listing entry at index {index} has no object name.")

    owner = None
    owner_data = entry.get("owner")
    if isinstance(owner_data, Mapping) and owner_data.get("id"):
        owner = Owner(id=owner_data["id"], display_name=owner_data.get("displayName") or "")

    try:
        size = int(entry.get("size") or 0)
    except (TypeError, ValueError) as exc:
        raise TranslationError(f"Listing entry at index {index} has an invalid size.") from exc

    return ObjectSummary(bucket_name=bucket_name, object_name=entry["name"], owner=owner, size=size)
