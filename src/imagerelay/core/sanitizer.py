"""Shape upstream generation records before they reach the caller.

Generation records returned by the upstream service carry the backend
``modelId``.  Everything relayed to a caller goes through
:func:`sanitize_generation` (history) or :func:`summarize_status` (status
polling), neither of which lets that field through.

Status values form an open enumeration.  The known values are listed in
:class:`GenerationStatus`; anything else is passed through verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

BACKEND_ID_FIELD = "modelId"
UNKNOWN_STATUS = "UNKNOWN"

# Keys copied from each upstream image descriptor, when present.
IMAGE_FIELDS = ("id", "url", "nsfw", "likeCount")


class GenerationStatus:
    """Known upstream status strings."""

    STARTING = "STARTING"
    PENDING = "PENDING"
    STARTED = "STARTED"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    TERMINAL = frozenset({COMPLETE, FAILED})


def is_terminal(status: str | None) -> bool:
    """True once a generation has finished, successfully or not."""
    return status in GenerationStatus.TERMINAL


def sanitize_generation(record: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *record* without the backend model id."""
    return {key: value for key, value in record.items() if key != BACKEND_ID_FIELD}


def sanitize_generations(records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [sanitize_generation(record) for record in records]


def summarize_status(generation: Mapping[str, Any]) -> dict[str, Any]:
    """Build the caller-facing status summary for one generation.

    Args:
        generation: The upstream ``generations_by_pk`` object.

    Returns:
        Dict with ``status``, ``images``, ``prompt`` and ``createdAt``.
    """
    images = generation.get("generated_images") or []
    return {
        "status": generation.get("status") or UNKNOWN_STATUS,
        "images": [
            {key: image[key] for key in IMAGE_FIELDS if key in image} for image in images
        ],
        "prompt": generation.get("prompt"),
        "createdAt": generation.get("createdAt"),
    }
