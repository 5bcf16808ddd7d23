"""
Standardized JSON output utilities for cryft-cli.

Standard Response Format:
{
    "success": bool,       # Required: Whether the operation succeeded
    "data": {...},         # Optional: Command-specific response data
    "error": str           # Optional: Error message if success=False
}
"""

import json
from typing import Any, Optional


def json_response(
    success: bool,
    data: Optional[Any] = None,
    error: Optional[str] = None,
) -> str:
    """
    Create a standardized JSON response string.

    Args:
        success: Whether the operation succeeded
        data: Optional response data (dict, list, or primitive)
        error: Optional error message (typically used when success=False)

    Returns:
        JSON string with standardized format

    Examples:
        >>> json_response(True, {"tx_id": "2Z..."})
        '{"success": true, "data": {"tx_id": "2Z..."}}'

        >>> json_response(False, error="nodeID not found in validator set")
        '{"success": false, "error": "nodeID not found in validator set"}'
    """
    response: dict[str, Any] = {"success": success}

    if data is not None:
        response["data"] = data

    if error is not None:
        response["error"] = error

    return json.dumps(response)


def json_success(data: Any) -> str:
    return json_response(success=True, data=data)


def json_error(error: str, data: Optional[Any] = None) -> str:
    return json_response(success=False, data=data, error=error)
