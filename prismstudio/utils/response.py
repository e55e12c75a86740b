from datetime import datetime, timezone
from typing import Any, Optional


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with a trailing Z"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_response(success: bool, message: Optional[str] = None, data=None, error=None):
    response = {"success": success}
    if message is not None:
        response["message"] = message
    if data is not None:
        response["data"] = data
    if error is not None:
        response["error"] = error
    return response


def error_response(error: str, **extra: Any):
    """
    Failure body: success=false, the error message, then endpoint specific fields
    """
    response = create_response(False, error=error)
    response.update({key: value for key, value in extra.items() if value is not None})
    return response
