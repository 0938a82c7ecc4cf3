from typing import Optional

from .types import FinishReason

_CONTENT_FILTER_REASONS = {
    "IMAGE_SAFETY",
    "RECITATION",
    "SAFETY",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
}


def map_google_finish_reason(finish_reason: Optional[str], has_tool_calls: bool) -> FinishReason:
    """
    Map a Gemini ``finishReason`` to the generic finish reason.
    """
    match finish_reason:
        case "STOP":
            return "tool-calls" if has_tool_calls else "stop"
        case "MAX_TOKENS":
            return "length"
        case reason if reason in _CONTENT_FILTER_REASONS:
            return "content-filter"
        case "FINISH_REASON_UNSPECIFIED" | "OTHER":
            return "other"
        case "MALFORMED_FUNCTION_CALL":
            return "error"
        case _:
            return "unknown"
