from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .meta_keys import OUTPUT_MBID_PATH
from .models import MalformedOutputError

logger = logging.getLogger(__name__)


def load_output(output_path: Path) -> dict[str, Any]:
    try:
        with output_path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedOutputError(f"Extractor output {output_path.name} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedOutputError(f"Extractor output {output_path.name} is not a JSON object")
    return document


def extracted_mbid(document: dict[str, Any]) -> Optional[str]:
    """Return the first `metadata.tags.musicbrainz_trackid` entry, lowercased."""
    *parents, field = OUTPUT_MBID_PATH
    node: Any = document
    for depth, key in enumerate(parents, start=1):
        node = node.get(key)
        if not isinstance(node, dict):
            raise MalformedOutputError(f"Extractor output has no {'.'.join(parents[:depth])} object")
    values = node.get(field)
    if not values:
        return None
    if isinstance(values, str):
        values = [values]
    first = values[0]
    if not isinstance(first, str) or not first.strip():
        return None
    return first.strip().lower()


def reconcile_mbid(candidate: str, output_path: Path) -> str:
    """
    Pick the MBID to submit for an extractor output file.

    The id the extractor recorded wins over the one we resolved locally; when
    it recorded none, the candidate is used unchanged.
    """
    found = extracted_mbid(load_output(output_path))
    if found is not None and found != candidate.lower():
        logger.info("Replaced originally found MBID %s with %s", candidate, found)
        return found
    return candidate
