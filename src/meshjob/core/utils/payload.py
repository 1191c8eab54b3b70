"""Helpers for reading the provider's loosely shaped JSON payloads."""

from typing import Any, Dict, Optional

# Order matters: the first alias carrying a non-empty value wins.
JOB_ID_ALIASES = ("id", "request_id", "task_id", "taskId")


def extract_job_id(body: Dict[str, Any]) -> Optional[str]:
    """Return the job identifier from any of its known aliases, or None."""
    for key in JOB_ID_ALIASES:
        value = body.get(key)
        if value not in (None, ""):
            return str(value)
    task = body.get("task")
    if isinstance(task, dict) and task.get("id") not in (None, ""):
        return str(task["id"])
    return None


def extract_error_message(error: Any) -> Optional[str]:
    """Error text from a plain string or a structured {message} object."""
    if not error:
        return None
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        message = error.get("message") or error.get("error")
        return str(message) if message else None
    return str(error)


def coerce_queue_position(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
