import base64
from typing import Any, Dict, List, Optional, TypedDict

import httpx

from .errors import UnsupportedFunctionalityError
from .types import Prompt

# =============================================================================
# Gemini Content Type Definitions
# =============================================================================

GoogleContentPart = Dict[str, Any]


class GoogleContent(TypedDict):
    role: str  # "user" | "model"
    parts: List[GoogleContentPart]


class GoogleSystemInstruction(TypedDict):
    parts: List[Dict[str, str]]


class GooglePrompt(TypedDict):
    system_instruction: Optional[GoogleSystemInstruction]
    contents: List[GoogleContent]


def convert_to_google_messages(prompt: Prompt) -> GooglePrompt:
    """
    Convert a provider-agnostic prompt to Gemini ``contents``.

    Handles:
    - Pooling leading system messages into one system instruction.
    - Role mapping (assistant -> model, tool -> user).
    - Inline bytes vs. URL references for images and files.
    - Tool calls and tool results.

    Args:
        prompt (Prompt): Ordered conversation messages.

    Returns:
        GooglePrompt: ``system_instruction`` (None when there are no system
        messages) and the ordered ``contents`` list.

    Raises:
        UnsupportedFunctionalityError: For a system message after the first
            non-system message, or an assistant file that is not an inline PNG.
    """
    system_instruction_parts: List[Dict[str, str]] = []
    contents: List[GoogleContent] = []
    system_messages_allowed = True

    for message in prompt:
        role = message["role"]
        content = message["content"]

        if role == "system":
            if not system_messages_allowed:
                raise UnsupportedFunctionalityError(
                    "system messages are only supported at the beginning of the conversation"
                )
            system_instruction_parts.append({"text": content})
            continue

        system_messages_allowed = False

        if role == "user":
            contents.append({"role": "user", "parts": [_convert_user_part(p) for p in content]})
        elif role == "assistant":
            parts = [_convert_assistant_part(p) for p in content]
            contents.append({"role": "model", "parts": [p for p in parts if p is not None]})
        elif role == "tool":
            contents.append({
                "role": "user",
                "parts": [
                    {
                        "functionResponse": {
                            "name": part["tool_name"],
                            "response": {
                                "name": part["tool_name"],
                                "content": part.get("result"),
                            },
                        }
                    }
                    for part in content
                ],
            })
        else:
            raise UnsupportedFunctionalityError(f"message role '{role}'")

    return {
        "system_instruction": {"parts": system_instruction_parts} if system_instruction_parts else None,
        "contents": contents,
    }


def _convert_user_part(part: Dict[str, Any]) -> GoogleContentPart:
    part_type = part["type"]

    if part_type == "text":
        return {"text": part["text"]}

    if part_type == "image":
        mime_type = part.get("mime_type") or "image/jpeg"
        image = part["image"]
        if isinstance(image, httpx.URL):
            return {"fileData": {"mimeType": mime_type, "fileUri": str(image)}}
        return {"inlineData": {"mimeType": mime_type, "data": _to_base64(image)}}

    if part_type == "file":
        data = part["data"]
        if isinstance(data, httpx.URL):
            return {"fileData": {"mimeType": part["mime_type"], "fileUri": str(data)}}
        return {"inlineData": {"mimeType": part["mime_type"], "data": _to_base64(data)}}

    raise UnsupportedFunctionalityError(f"user content part type '{part_type}'")


def _convert_assistant_part(part: Dict[str, Any]) -> Optional[GoogleContentPart]:
    part_type = part["type"]

    if part_type == "text":
        # Gemini rejects empty text parts.
        return {"text": part["text"]} if part["text"] else None

    if part_type == "file":
        if part.get("mime_type") != "image/png":
            raise UnsupportedFunctionalityError("Only PNG images are supported in assistant messages")
        if isinstance(part["data"], httpx.URL):
            raise UnsupportedFunctionalityError("File data URLs in assistant messages are not supported")
        return {"inlineData": {"mimeType": part["mime_type"], "data": _to_base64(part["data"])}}

    if part_type == "tool-call":
        return {"functionCall": {"name": part["tool_name"], "args": part["args"]}}

    raise UnsupportedFunctionalityError(f"assistant content part type '{part_type}'")


def _to_base64(data: Any) -> str:
    # Strings are already base64 encoded.
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("utf-8")
