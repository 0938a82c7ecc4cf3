from typing import Any, Dict, List, Optional, TypedDict

import structlog

from .errors import UnsupportedFunctionalityError
from .schema import convert_json_schema_to_openapi_schema
from .types import CallWarning, DynamicRetrievalConfig, Tool, ToolChoice

logger = structlog.get_logger(__name__)


class PreparedTools(TypedDict):
    tools: Optional[Dict[str, Any]]
    tool_config: Optional[Dict[str, Any]]
    tool_warnings: List[CallWarning]


def prepare_tools(
    tools: Optional[List[Tool]],
    tool_choice: Optional[ToolChoice],
    use_search_grounding: bool,
    dynamic_retrieval_config: Optional[DynamicRetrievalConfig],
    model_id: str,
) -> PreparedTools:
    """
    Convert generic tools and a tool choice into Gemini ``tools`` and ``toolConfig``.

    Search grounding replaces any caller tools with the Google Search tool
    matching the model generation.

    Args:
        tools (List[Tool], optional): Function and provider-defined tools.
        tool_choice (ToolChoice, optional): Calling-mode directive.
        use_search_grounding (bool): Whether search grounding is enabled.
        dynamic_retrieval_config (DynamicRetrievalConfig, optional): Retrieval tuning for
            models that support it.
        model_id (str): Model identifier, used to pick the grounding tool shape.

    Returns:
        PreparedTools: ``tools``, ``tool_config`` and ``tool_warnings``.

    Raises:
        UnsupportedFunctionalityError: For an unknown tool choice type.
    """
    tools = tools or None
    tool_warnings: List[CallWarning] = []

    is_gemini_2 = "gemini-2" in model_id
    supports_dynamic_retrieval = "gemini-1.5-flash" in model_id and "-8b" not in model_id

    if use_search_grounding:
        if is_gemini_2:
            grounding_tools = {"googleSearch": {}}
        elif supports_dynamic_retrieval and dynamic_retrieval_config:
            grounding_tools = {"googleSearchRetrieval": {"dynamicRetrievalConfig": dynamic_retrieval_config}}
        else:
            grounding_tools = {"googleSearchRetrieval": {}}
        return {"tools": grounding_tools, "tool_config": None, "tool_warnings": tool_warnings}

    if tools is None:
        return {"tools": None, "tool_config": None, "tool_warnings": tool_warnings}

    function_declarations = []
    for tool in tools:
        if tool.get("type") == "provider-defined":
            logger.warning("unsupported_tool", tool_name=tool.get("name"), model=model_id)
            tool_warnings.append({"type": "unsupported-tool", "tool": tool})
        else:
            function_declarations.append({
                "name": tool["name"],
                "description": tool.get("description") or "",
                "parameters": convert_json_schema_to_openapi_schema(tool.get("parameters")),
            })

    declared = {"functionDeclarations": function_declarations}

    if tool_choice is None:
        return {"tools": declared, "tool_config": None, "tool_warnings": tool_warnings}

    choice_type = tool_choice.get("type")
    match choice_type:
        case "auto":
            function_calling_config = {"mode": "AUTO"}
        case "none":
            function_calling_config = {"mode": "NONE"}
        case "required":
            function_calling_config = {"mode": "ANY"}
        case "tool":
            function_calling_config = {
                "mode": "ANY",
                "allowedFunctionNames": [tool_choice["tool_name"]],
            }
        case _:
            raise UnsupportedFunctionalityError(f"Unsupported tool choice type: {choice_type}")

    return {
        "tools": declared,
        "tool_config": {"functionCallingConfig": function_calling_config},
        "tool_warnings": tool_warnings,
    }
