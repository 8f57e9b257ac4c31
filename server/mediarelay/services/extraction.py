"""Output URL extraction from terminal provider payloads."""
from __future__ import annotations

from typing import Any, Optional

from ..errors import ExtractionError
from ..models.jobs import JobKind


def extract_output_url(kind: JobKind, payload: Any) -> Optional[str]:
    """Return ``result.outputs[0].<kind>.url`` or ``None`` when any hop is missing.

    Raises ``ExtractionError`` only when there is no payload at all.
    """
    if not isinstance(payload, dict):
        raise ExtractionError(f"No terminal payload to extract a {kind.value} URL from")

    result = payload.get("result")
    outputs = result.get("outputs") if isinstance(result, dict) else None
    if not isinstance(outputs, list) or not outputs:
        return None
    first = outputs[0]
    media = first.get(kind.value) if isinstance(first, dict) else None
    url = media.get("url") if isinstance(media, dict) else None
    return url if isinstance(url, str) and url else None
