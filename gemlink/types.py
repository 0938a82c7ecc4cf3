from typing import Literal, List, Dict, Any, Union, TypedDict, Optional

import httpx

# =============================================================================
# Prompt Type Definitions
# =============================================================================

Role = Literal["system", "user", "assistant", "tool"]


class TextPart(TypedDict):
    """
    Text content part.
    """
    type: Literal["text"]
    text: str


class ImagePart(TypedDict, total=False):
    """
    Image content part. ``image`` is raw bytes or an ``httpx.URL`` reference.
    """
    type: Literal["image"]
    image: Union[bytes, httpx.URL]
    mime_type: str


class FilePart(TypedDict, total=False):
    """
    File content part. ``data`` is raw bytes, a base64 string, or an ``httpx.URL`` reference.
    """
    type: Literal["file"]
    data: Union[bytes, str, httpx.URL]
    mime_type: str


class ToolCallPart(TypedDict):
    """
    A tool call made by the assistant in an earlier turn.
    """
    type: Literal["tool-call"]
    tool_call_id: str
    tool_name: str
    args: Any


class ToolResultPart(TypedDict, total=False):
    """
    The result of executing a tool call.
    """
    type: Literal["tool-result"]
    tool_call_id: str
    tool_name: str
    result: Any


UserPart = Union[TextPart, ImagePart, FilePart]
AssistantPart = Union[TextPart, FilePart, ToolCallPart]


class Message(TypedDict, total=False):
    """
    Provider-agnostic chat message.

    Roles:
    - "system": ``content`` is a plain string
    - "user": ``content`` is a list of text/image/file parts
    - "assistant": ``content`` is a list of text/file/tool-call parts
    - "tool": ``content`` is a list of tool-result parts
    """
    role: Role
    content: Union[str, List[UserPart], List[AssistantPart], List[ToolResultPart]]


Prompt = List[Message]


# =============================================================================
# Tool Type Definitions
# =============================================================================

class FunctionTool(TypedDict, total=False):
    """
    Caller-defined function tool. ``parameters`` is a JSON Schema object.
    """
    type: Literal["function"]
    name: str
    description: str
    parameters: Dict[str, Any]


class ProviderDefinedTool(TypedDict, total=False):
    """
    Tool implemented by some provider. Never sent to Gemini.
    """
    type: Literal["provider-defined"]
    id: str
    name: str
    args: Dict[str, Any]


Tool = Union[FunctionTool, ProviderDefinedTool]


class ToolChoice(TypedDict, total=False):
    """
    One of ``{"type": "auto"}``, ``{"type": "none"}``, ``{"type": "required"}``
    or ``{"type": "tool", "tool_name": name}``.
    """
    type: Literal["auto", "none", "required", "tool"]
    tool_name: str


class CallWarning(TypedDict, total=False):
    type: Literal["unsupported-setting", "unsupported-tool", "other"]
    setting: str
    tool: Tool
    message: str


# =============================================================================
# Settings
# =============================================================================

class SafetySetting(TypedDict):
    category: str
    threshold: str


class DynamicRetrievalConfig(TypedDict, total=False):
    mode: Literal["MODE_UNSPECIFIED", "MODE_DYNAMIC"]
    dynamicThreshold: float


class GoogleGenerativeAISettings(TypedDict, total=False):
    """
    Per-model settings for Gemini language models.
    """
    cached_content: str
    structured_outputs: bool
    safety_settings: List[SafetySetting]
    audio_timestamp: bool
    use_search_grounding: bool
    dynamic_retrieval_config: DynamicRetrievalConfig


class GoogleGenerativeAIEmbeddingSettings(TypedDict, total=False):
    output_dimensionality: int
    task_type: Literal[
        "SEMANTIC_SIMILARITY",
        "CLASSIFICATION",
        "CLUSTERING",
        "RETRIEVAL_DOCUMENT",
        "RETRIEVAL_QUERY",
        "QUESTION_ANSWERING",
        "FACT_VERIFICATION",
        "CODE_RETRIEVAL_QUERY",
    ]


# =============================================================================
# Result Type Definitions
# =============================================================================

FinishReason = Literal[
    "stop", "length", "content-filter", "tool-calls", "error", "other", "unknown"
]


class Usage(TypedDict):
    """
    Token usage. Counts are ``float("nan")`` when the API does not report them.
    """
    prompt_tokens: float
    completion_tokens: float


class ToolCall(TypedDict):
    """
    Tool call from a model response. ``args`` is a JSON string.
    """
    tool_call_type: Literal["function"]
    tool_call_id: str
    tool_name: str
    args: str


class GeneratedFile(TypedDict):
    data: str  # base64
    mime_type: str


class Source(TypedDict, total=False):
    source_type: Literal["url"]
    id: str
    url: str
    title: str


class GenerateResult(TypedDict, total=False):
    text: Optional[str]
    files: List[GeneratedFile]
    tool_calls: Optional[List[ToolCall]]
    finish_reason: FinishReason
    usage: Usage
    raw_call: Dict[str, Any]
    raw_response: Dict[str, Any]
    warnings: List[CallWarning]
    provider_metadata: Dict[str, Any]
    sources: Optional[List[Source]]
    request: Dict[str, Any]


# Stream events are plain dicts tagged by "type":
#   text-delta, file, tool-call-delta, tool-call, source, error, finish
StreamEvent = Dict[str, Any]


class EmbedResult(TypedDict, total=False):
    embeddings: List[List[float]]
    usage: Optional[Dict[str, Any]]
    raw_response: Dict[str, Any]
