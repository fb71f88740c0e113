from typing import Any, Dict, Optional


def ok(data: Any = None, message: Optional[str] = None, pagination: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Success envelope shared by every router."""
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    return body
