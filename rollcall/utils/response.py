"""
Response envelopes shared by every router.
"""

from typing import Any

from rollcall.schemas.attendance import SyncOutcome


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}


def sync_response(outcome: SyncOutcome) -> dict:
    if outcome.noop:
        message = "Nothing to save"
    else:
        message = f"Attendance saved ({outcome.upserted} marked, {outcome.deleted} cleared)"
    return success_response(data=outcome.model_dump(), message=message)
