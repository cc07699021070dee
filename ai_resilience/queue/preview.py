"""
Preview text for queued requests.

Sandi Metz Principles:
- Single Responsibility: UI-facing request labels
- Pure functions: No side effects
"""

from typing import Any, Dict

from ai_resilience.models.queue import RequestType

PREVIEW_MESSAGE_CHARS = 30

_LABELS = {
    RequestType.REPLY: "Generate reply",
    RequestType.SCREENSHOT: "Analyze screenshot",
    RequestType.STARTER: "Conversation starter",
    RequestType.DATE_IDEA: "Date ideas",
    RequestType.INTEREST: "Interest analysis",
    RequestType.RED_FLAG: "Red flag check",
    RequestType.TIMING: "Response timing",
}


def create_preview(request_type: RequestType, params: Dict[str, Any]) -> str:
    """
    Build a short description of a queued request.

    Args:
        request_type: Kind of AI request
        params: Request payload; ``message`` is quoted for replies

    Returns:
        Preview text
    """
    message = params.get("message")
    if request_type == RequestType.REPLY and message:
        return f'Reply to: "{str(message)[:PREVIEW_MESSAGE_CHARS]}..."'
    return _LABELS.get(request_type, str(request_type.value))
