from __future__ import annotations

import json
from typing import Any, Dict

DESCRIPTION_LIMIT = 200


def dump(result: Dict[str, Any]) -> str:
    return json.dumps(result, indent=2)


def require_fields(**fields: str | None) -> str | None:
    """First blank field, rendered as the tool's error message; None when all are set."""
    for name, value in fields.items():
        if not value or not value.strip():
            return f"Error: {name} is required"
    return None


def truncate(text: str | None, limit: int = DESCRIPTION_LIMIT) -> str | None:
    if text is None or len(text) <= limit:
        return text
    return text[:limit] + "..."
