"""
Per-step view of one flow run.

Each entry of ``Steps`` is a single-key dict, e.g. ``{"email": {...}}`` or
``{"finalStep": {...}}``; the key names the step type and the value carries
``status``, ``description`` and optionally ``failError``.
"""

from __future__ import annotations

from typing import Any

STEP_LABELS = {
    "1": "Email Received",
    "2": "Content Processed",
    "3": "Data Extracted",
    "4": "Export Completed",
}

# (title, subtitle, default error when failed without a message)
_POSITIONAL_STEPS = [
    ("Email Processed", "Outlook Integration", None),
    ("Data Extracted", "Azure Function", None),
    ("Excel Generated", "File System", "Failed to generate Excel file"),
    ("Stream Liner Integration", "External System", "Failed to integrate with Stream Liner system"),
]


def _unwrap(step: Any) -> tuple[str | None, dict[str, Any]]:
    if not isinstance(step, dict) or not step:
        return None, {}
    step_type = next(iter(step))
    data = step[step_type]
    return step_type, data if isinstance(data, dict) else {}


def _status_text(data: dict[str, Any]) -> str:
    return str(data.get("status") or "").strip().lower()


def describe_step(step: Any, index: int) -> dict[str, Any]:
    """Title, status and error message for the step at ``index``."""
    step_type, data = _unwrap(step)
    status_text = _status_text(data)

    error = None
    fail_error = data.get("failError")
    if isinstance(fail_error, str) and fail_error.strip():
        error = fail_error.strip()
    elif status_text in ("failed", "error"):
        error = data.get("description") or "Step failed"

    failed = status_text in ("failed", "error") or (
        status_text not in ("pending", "success") and error is not None
    )
    pending = status_text == "pending"

    if index < len(_POSITIONAL_STEPS):
        title, subtitle, default_error = _POSITIONAL_STEPS[index]
        if index == 0:
            # the email step is either done or failed
            status = "failed" if failed else "success"
        else:
            status = "failed" if failed else "pending" if pending else "success"
        if index == 3 and failed:
            error = default_error
        elif failed and not error and default_error:
            error = default_error
    elif step_type == "finalStep":
        title, subtitle = "Final Validation", "System Validation"
        status = "failed" if failed else "pending" if pending else "success"
        if failed:
            error = data.get("description") or "Final validation failed"
    else:
        return {
            "index": index,
            "label": STEP_LABELS.get(str(index + 1)),
            "type": step_type,
            "title": "Unknown Step",
            "subtitle": "Unknown",
            "status": "unknown",
            "error": None,
        }

    return {
        "index": index,
        "label": STEP_LABELS.get(str(index + 1)),
        "type": step_type,
        "title": title,
        "subtitle": subtitle,
        "status": status,
        "error": error,
    }


def describe_steps(run: dict[str, Any]) -> list[dict[str, Any]]:
    steps = run.get("Steps") or []
    return [describe_step(step, index) for index, step in enumerate(steps)]


def overall_status(run: dict[str, Any]) -> str:
    """
    success / failed / pending / unknown for a whole run.

    finalResult.workflowStatus wins, then the finalStep status, then the
    individual steps (any failed -> failed, any pending -> pending).
    """
    final_result = run.get("finalResult") or {}
    if final_result.get("workflowStatus"):
        return final_result["workflowStatus"]

    steps = run.get("Steps") or []
    for step in steps:
        step_type, data = _unwrap(step)
        if step_type == "finalStep":
            status_text = _status_text(data)
            if status_text in ("success", "failed", "pending"):
                return status_text
            break

    if not steps:
        return "unknown"

    statuses = [_status_text(_unwrap(step)[1]) for step in steps]
    if "failed" in statuses:
        return "failed"
    if "pending" in statuses:
        return "pending"
    return "success"
