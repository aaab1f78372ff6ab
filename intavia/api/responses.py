from typing import Any, Dict, List, Optional

from pydantic import BaseModel


def dump(schema, obj) -> Dict[str, Any]:
    """Validate an ORM object through a response schema into JSON-safe data."""
    return schema.model_validate(obj).model_dump(mode="json")


def success(data: Any = None, warnings: Optional[List[str]] = None) -> Dict[str, Any]:
    """Standard success envelope. `warnings` only appears when a side effect failed."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if warnings:
        body["warnings"] = list(warnings)
    return body
