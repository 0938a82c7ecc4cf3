import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from .types import (
    FilePart, FunctionTool, ImagePart, Message, Role, TextPart, ToolCallPart, ToolResultPart,
)

# =============================================================================
# IDs
# =============================================================================

def generate_id() -> str:
    """
    Generate a random 16 character id for tool calls and sources.
    """
    return uuid.uuid4().hex[:16]


# =============================================================================
# Content Helpers
# =============================================================================

def encode_image_file(image_path: Union[str, Path]) -> Tuple[bytes, str]:
    """
    Read a local image file for use in an image part.

    Reads the file from the given path and determines its MIME type based on
    extension.

    Args:
        image_path (Union[str, Path]): Path to the image file.

    Returns:
        Tuple[bytes, str]: A tuple containing:
            - data (bytes): The raw file content.
            - mime_type (str): The MIME type (e.g., 'image/png').

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    # Map file extensions to MIME types
    mime_types = {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
        ".heic": "image/heic",
        ".heif": "image/heif",
    }
    mime_type = mime_types.get(path.suffix.lower(), "image/jpeg")

    with open(path, "rb") as f:
        data = f.read()

    return data, mime_type


def create_text_content(text: str) -> TextPart:
    """
    Create a text content part.
    """
    return {"type": "text", "text": text}


def create_image_content(
    source: Union[str, bytes, httpx.URL],
    *,
    mime_type: Optional[str] = None,
) -> ImagePart:
    """
    Create an image content part for user messages.

    Args:
        source: Can be:
            - Raw image bytes
            - An ``httpx.URL`` or an "http(s)://" string (sent as a file reference)
            - A local file path
        mime_type (str, optional): MIME type. Gemini assumes 'image/jpeg' when omitted.

    Returns:
        ImagePart: The image part.

    Raises:
        ValueError: If a string source is neither a URL nor an existing file.
    """
    if isinstance(source, str):
        if source.startswith(("http://", "https://")):
            source = httpx.URL(source)
        elif Path(source).exists():
            source, detected_mime = encode_image_file(source)
            mime_type = mime_type or detected_mime
        else:
            raise ValueError(f"Cannot determine image source type for: {source[:50]}")

    part: ImagePart = {"type": "image", "image": source}
    if mime_type:
        part["mime_type"] = mime_type
    return part


def create_file_content(data: Union[bytes, str, httpx.URL], mime_type: str) -> FilePart:
    """
    Create a file content part. String data must already be base64 encoded.
    """
    return {"type": "file", "data": data, "mime_type": mime_type}


def create_message(
    role: Role,
    content: Union[str, List[Union[str, Dict[str, Any]]]],
) -> Message:
    """
    Create a Message.

    System messages keep plain string content. For other roles a string becomes
    a single text part, and string elements within a list are normalized to
    text parts.

    Args:
        role (str): The role of the message sender.
        content (Union[str, List]): The content of the message.

    Returns:
        Message: A dictionary matching the Message type definition.
    """
    if role == "system":
        if not isinstance(content, str):
            raise ValueError("System message content must be a string")
        return {"role": role, "content": content}

    if isinstance(content, str):
        return {"role": role, "content": [create_text_content(content)]}

    normalized = [
        create_text_content(item) if isinstance(item, str) else item
        for item in content
    ]
    return {"role": role, "content": normalized}


# =============================================================================
# Tool Calling Helpers
# =============================================================================

def create_tool(
    name: str,
    description: str,
    parameters: Dict[str, Any],
    required: Optional[List[str]] = None,
) -> FunctionTool:
    """
    Create a function tool definition.

    Args:
        name (str): The name of the function/tool to be called.
        description (str): A clear description of what the tool does.
        parameters (Dict): JSON Schema definitions of the expected arguments, keyed by name.
        required (List[str], optional): A list of parameter names that are required.

    Returns:
        FunctionTool: The tool definition.
    """
    schema: Dict[str, Any] = {"type": "object", "properties": parameters}
    if required:
        schema["required"] = required
    return {
        "type": "function",
        "name": name,
        "description": description,
        "parameters": schema,
    }


def create_tool_call(tool_name: str, args: Any, tool_call_id: Optional[str] = None) -> ToolCallPart:
    """
    Create a tool-call part for replaying an assistant turn.
    """
    return {
        "type": "tool-call",
        "tool_call_id": tool_call_id or generate_id(),
        "tool_name": tool_name,
        "args": args,
    }


def create_tool_result(tool_call_id: str, tool_name: str, result: Any) -> Message:
    """
    Create a tool result message to send back to the model.

    Gemini matches results to calls by function name, so ``tool_name`` is required.

    Args:
        tool_call_id (str): The ID of the tool call this result corresponds to.
        tool_name (str): Name of the function that was called.
        result (Any): JSON-serializable tool output.

    Returns:
        Message: A message dictionary with role='tool'.
    """
    part: ToolResultPart = {
        "type": "tool-result",
        "tool_call_id": tool_call_id,
        "tool_name": tool_name,
        "result": result,
    }
    return {"role": "tool", "content": [part]}
