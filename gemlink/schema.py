from typing import Any, Dict, Optional, Union

JSONSchema = Union[Dict[str, Any], bool]


def convert_json_schema_to_openapi_schema(json_schema: Optional[JSONSchema]) -> Optional[Dict[str, Any]]:
    """
    Convert a JSON Schema into the OpenAPI subset accepted by Gemini.

    Gemini rejects empty object schemas, so those convert to None.
    Keywords outside the supported subset are dropped.

    Args:
        json_schema: A JSON Schema dict, or the boolean shorthand.

    Returns:
        Optional[Dict[str, Any]]: The converted schema, or None for an empty object schema.
    """
    if _is_empty_object_schema(json_schema):
        return None

    if isinstance(json_schema, bool):
        return {"type": "boolean", "properties": {}}

    if json_schema is None:
        return None

    result: Dict[str, Any] = {}

    if json_schema.get("description"):
        result["description"] = json_schema["description"]
    if json_schema.get("required") is not None:
        result["required"] = json_schema["required"]
    if json_schema.get("format"):
        result["format"] = json_schema["format"]

    if "const" in json_schema:
        result["enum"] = [json_schema["const"]]

    schema_type = json_schema.get("type")
    if schema_type:
        if isinstance(schema_type, list):
            if "null" in schema_type:
                # Only one concrete type survives alongside null.
                non_null = [t for t in schema_type if t != "null"]
                if non_null:
                    result["type"] = non_null[0]
                result["nullable"] = True
            else:
                result["type"] = schema_type
        else:
            result["type"] = schema_type

    if "enum" in json_schema:
        result["enum"] = json_schema["enum"]

    properties = json_schema.get("properties")
    if properties is not None:
        result["properties"] = {
            key: convert_json_schema_to_openapi_schema(value)
            for key, value in properties.items()
        }

    items = json_schema.get("items")
    if items is not None:
        if isinstance(items, list):
            result["items"] = [convert_json_schema_to_openapi_schema(i) for i in items]
        else:
            result["items"] = convert_json_schema_to_openapi_schema(items)

    all_of = json_schema.get("allOf")
    if all_of is not None:
        result["allOf"] = [convert_json_schema_to_openapi_schema(s) for s in all_of]

    any_of = json_schema.get("anyOf")
    if any_of is not None:
        if any(_is_null_schema(s) for s in any_of):
            non_null_schemas = [s for s in any_of if not _is_null_schema(s)]
            if len(non_null_schemas) == 1:
                # Optional single-type union: flatten into this schema.
                converted = convert_json_schema_to_openapi_schema(non_null_schemas[0])
                if isinstance(converted, dict):
                    result["nullable"] = True
                    result.update(converted)
            else:
                result["anyOf"] = [convert_json_schema_to_openapi_schema(s) for s in non_null_schemas]
                result["nullable"] = True
        else:
            result["anyOf"] = [convert_json_schema_to_openapi_schema(s) for s in any_of]

    one_of = json_schema.get("oneOf")
    if one_of is not None:
        result["oneOf"] = [convert_json_schema_to_openapi_schema(s) for s in one_of]

    if "minLength" in json_schema:
        result["minLength"] = json_schema["minLength"]

    return result


def _is_empty_object_schema(json_schema: Any) -> bool:
    return (
        isinstance(json_schema, dict)
        and json_schema.get("type") == "object"
        and not json_schema.get("properties")
    )


def _is_null_schema(json_schema: Any) -> bool:
    return isinstance(json_schema, dict) and json_schema.get("type") == "null"
