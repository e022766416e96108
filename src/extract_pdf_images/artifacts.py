from __future__ import annotations

import json
from typing import Any

from .contracts import ExtractionResult


def serialize_extraction_results(results: list[ExtractionResult]) -> str:
    payload: list[dict[str, Any]] = [r.to_dict() for r in results]
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"
