from .client import GoogleGenerativeAIProvider, create_google_generative_ai, google
from .errors import (
    AbortError,
    APICallError,
    GemlinkError,
    InvalidArgumentError,
    LoadAPIKeyError,
    TooManyEmbeddingValuesForCallError,
    TypeValidationError,
    UnsupportedFunctionalityError,
)
from .finish_reason import map_google_finish_reason
from .messages import convert_to_google_messages
from .providers import (
    GoogleGenerativeAIEmbeddingModel,
    GoogleGenerativeAILanguageModel,
    StreamResult,
    get_model_path,
)
from .rich_llm_printer import RichPrinter, RichStreamPrinter
from .schema import convert_json_schema_to_openapi_schema
from .tools import prepare_tools
from .types import Message, Prompt, Tool, ToolCall, ToolChoice
from .utils import (
    create_file_content,
    create_image_content,
    create_message,
    create_text_content,
    create_tool,
    create_tool_call,
    create_tool_result,
)

__all__ = [
    "GoogleGenerativeAIProvider",
    "create_google_generative_ai",
    "google",
    "GoogleGenerativeAILanguageModel",
    "GoogleGenerativeAIEmbeddingModel",
    "StreamResult",
    "get_model_path",
    "convert_json_schema_to_openapi_schema",
    "convert_to_google_messages",
    "prepare_tools",
    "map_google_finish_reason",
    "Message",
    "Prompt",
    "Tool",
    "ToolCall",
    "ToolChoice",
    "create_message",
    "create_text_content",
    "create_image_content",
    "create_file_content",
    "create_tool",
    "create_tool_call",
    "create_tool_result",
    "RichPrinter",
    "RichStreamPrinter",
    "GemlinkError",
    "UnsupportedFunctionalityError",
    "TooManyEmbeddingValuesForCallError",
    "APICallError",
    "TypeValidationError",
    "LoadAPIKeyError",
    "InvalidArgumentError",
    "AbortError",
]
