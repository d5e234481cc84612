"""JSON import and export of link collections."""

import json
import logging
from datetime import date
from typing import Any, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..models.link import ImportedLink, Link

logger = logging.getLogger(__name__)

EXPORT_FIELDS = (
    "url",
    "title",
    "description",
    "tags",
    "category",
    "favicon_url",
    "created_at",
)
OPTIONAL_TEXT_FIELDS = ("title", "description", "category", "favicon_url")
JSON_CONTENT_TYPE = "application/json"


class FormatError(Exception):
    """Malformed import document."""

    pass


def export_links(links: Sequence[Link]) -> List[dict]:
    """Project links onto the export schema.

    Identity, owner and update timestamp are omitted.
    """
    rows = []
    for link in links:
        data = link.model_dump(mode="json")
        rows.append({key: data[key] for key in EXPORT_FIELDS})
    return rows


def dump_export(links: Sequence[Link]) -> str:
    """Serialize links to the export document."""
    return json.dumps(export_links(links), indent=2, ensure_ascii=False)


def export_filename(on: Optional[date] = None) -> str:
    """Example: ``link-vault-export-2026-10-18.json``."""
    on = on or date.today()
    return f"link-vault-export-{on.isoformat()}.json"


def ensure_json_content_type(content_type: Optional[str]) -> None:
    """Reject uploads that are not typed as JSON.

    Raises:
        FormatError: If the media type is not application/json
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type != JSON_CONTENT_TYPE:
        raise FormatError("Please select a valid JSON file.")


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _coerce_tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [t.strip() for t in value if isinstance(t, str) and t]


def _coerce_item(item: Any, index: int) -> ImportedLink:
    if not isinstance(item, dict):
        raise FormatError(f"Invalid data at index {index}: Missing/invalid URL.")

    url = item.get("url")
    if not isinstance(url, str) or not url:
        raise FormatError(f"Invalid data at index {index}: Missing/invalid URL.")

    data = {"url": url, "tags": _coerce_tags(item.get("tags"))}
    for key in OPTIONAL_TEXT_FIELDS:
        data[key] = _text_or_none(item.get(key))

    created_at = item.get("created_at")
    if isinstance(created_at, str):
        data["created_at"] = created_at

    try:
        return ImportedLink.model_validate(data)
    except ValidationError as e:
        if any(err["loc"] == ("created_at",) for err in e.errors()):
            # An unreadable timestamp is dropped; the store assigns a new one
            logger.warning(f"Ignoring invalid created_at at index {index}: {created_at!r}")
            data.pop("created_at")
            try:
                return ImportedLink.model_validate(data)
            except ValidationError as retry_error:
                e = retry_error
        raise FormatError(f"Invalid data at index {index}: {e}") from e


def parse_import(content: Union[str, bytes]) -> List[ImportedLink]:
    """Parse and validate an import document.

    Raises:
        FormatError: If the document is not a JSON array, or an element
            has no usable URL
    """
    try:
        document = json.loads(content)
    except (ValueError, UnicodeDecodeError) as e:
        raise FormatError(f"Invalid JSON format: {e}") from e

    if not isinstance(document, list):
        raise FormatError("Invalid JSON format: Expected an array.")

    return [_coerce_item(item, index) for index, item in enumerate(document)]
