import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import structlog
from pydantic import ValidationError

from .base import BaseLanguageModel, ModelConfig
from ..config import combine_headers
from ..errors import InvalidArgumentError, UnsupportedFunctionalityError
from ..finish_reason import map_google_finish_reason
from ..http import EventStream, ParseResult, post_json_to_api, post_to_event_stream, to_json_body
from ..messages import convert_to_google_messages
from ..responses import (
    Candidate,
    FunctionCallPart,
    GenerateContentChunk,
    GenerateContentResponse,
    GoogleProviderOptions,
    GroundingMetadata,
    InlineDataPart,
    TextPart,
)
from ..schema import convert_json_schema_to_openapi_schema
from ..tools import prepare_tools
from ..types import (
    CallWarning,
    FinishReason,
    GenerateResult,
    GoogleGenerativeAISettings,
    Prompt,
    Source,
    StreamEvent,
    ToolCall,
    Usage,
)

logger = structlog.get_logger(__name__)


def get_model_path(model_id: str) -> str:
    """
    Return the URL path segment for a model.

    Fully qualified ids such as "tunedModels/x" are used verbatim.
    """
    return model_id if "/" in model_id else f"models/{model_id}"


class GoogleGenerativeAILanguageModel(BaseLanguageModel):
    """
    Gemini language model over the ``generateContent`` REST API.
    """

    default_object_generation_mode = "json"
    supports_image_urls = False

    def __init__(
        self,
        model_id: str,
        settings: Optional[GoogleGenerativeAISettings],
        config: ModelConfig,
    ):
        super().__init__(model_id, config)
        self.settings: GoogleGenerativeAISettings = settings or {}

    @property
    def supports_structured_outputs(self) -> bool:
        return self.settings.get("structured_outputs", True)

    def supports_url(self, url) -> bool:
        return self.config["is_supported_url"](url)

    # ==========================================================================
    # Request Construction
    # ==========================================================================

    def get_args(
        self,
        prompt: Prompt,
        *,
        mode: Optional[Dict[str, Any]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        top_k: Optional[int] = None,
        frequency_penalty: Optional[float] = None,
        presence_penalty: Optional[float] = None,
        stop_sequences: Optional[List[str]] = None,
        response_format: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
        provider_metadata: Optional[Dict[str, Any]] = None,
        **_ignored,
    ) -> Tuple[Dict[str, Any], List[CallWarning]]:
        """
        Build the Gemini request body.

        Handles:
        - Generation config (sampling settings, JSON response format, provider options).
        - Message conversion.
        - Tool configuration per mode ("regular", "object-json", "object-tool").

        Args:
            prompt (Prompt): Conversation messages.
            mode (dict, optional): Generation mode; defaults to ``{"type": "regular"}``.
            response_format (dict, optional): ``{"type": "json", "schema": ...}`` for JSON output.
            provider_metadata (dict, optional): ``{"google": {...}}`` provider options.
            Other keyword arguments map onto ``generationConfig``.

        Returns:
            Tuple: (request body with None values removed, warnings).

        Raises:
            UnsupportedFunctionalityError: For unsupported prompt content, tool choices or modes.
            InvalidArgumentError: For malformed provider options.
        """
        mode = mode or {"type": "regular"}
        warnings: List[CallWarning] = []
        google_options = self._parse_provider_options(provider_metadata)

        wants_json = response_format is not None and response_format.get("type") == "json"
        response_schema = None
        if wants_json and response_format.get("schema") is not None and self.supports_structured_outputs:
            # Gemini does not support all OpenAPI schema features, so structured outputs can be switched off.
            response_schema = convert_json_schema_to_openapi_schema(response_format["schema"])

        generation_config = {
            "maxOutputTokens": max_tokens,
            "temperature": temperature,
            "topK": top_k,
            "topP": top_p,
            "frequencyPenalty": frequency_penalty,
            "presencePenalty": presence_penalty,
            "stopSequences": stop_sequences,
            "seed": seed,
            "responseMimeType": "application/json" if wants_json else None,
            "responseSchema": response_schema,
            "audioTimestamp": self.settings.get("audio_timestamp") or None,
            "responseModalities": google_options.get("responseModalities"),
            "thinkingConfig": google_options.get("thinkingConfig"),
        }

        converted = convert_to_google_messages(prompt)
        contents = converted["contents"]
        system_instruction = converted["system_instruction"]

        mode_type = mode.get("type")
        match mode_type:
            case "regular":
                prepared = prepare_tools(
                    mode.get("tools"),
                    mode.get("tool_choice"),
                    self.settings.get("use_search_grounding", False),
                    self.settings.get("dynamic_retrieval_config"),
                    self.model_id,
                )
                args = {
                    "generationConfig": generation_config,
                    "contents": contents,
                    "systemInstruction": system_instruction,
                    "safetySettings": self.settings.get("safety_settings"),
                    "tools": prepared["tools"],
                    "toolConfig": prepared["tool_config"],
                    "cachedContent": self.settings.get("cached_content"),
                }
                warnings.extend(prepared["tool_warnings"])

            case "object-json":
                schema = mode.get("schema")
                args = {
                    "generationConfig": {
                        **generation_config,
                        "responseMimeType": "application/json",
                        "responseSchema": (
                            convert_json_schema_to_openapi_schema(schema)
                            if schema is not None and self.supports_structured_outputs
                            else None
                        ),
                    },
                    "contents": contents,
                    "systemInstruction": system_instruction,
                    "safetySettings": self.settings.get("safety_settings"),
                    "cachedContent": self.settings.get("cached_content"),
                }

            case "object-tool":
                tool = mode["tool"]
                args = {
                    "generationConfig": generation_config,
                    "contents": contents,
                    "tools": {
                        "functionDeclarations": [{
                            "name": tool["name"],
                            "description": tool.get("description") or "",
                            "parameters": convert_json_schema_to_openapi_schema(tool.get("parameters")),
                        }]
                    },
                    "toolConfig": {"functionCallingConfig": {"mode": "ANY"}},
                    "safetySettings": self.settings.get("safety_settings"),
                    "cachedContent": self.settings.get("cached_content"),
                }

            case _:
                raise UnsupportedFunctionalityError(f"Unsupported type: {mode_type}")

        args["generationConfig"] = _without_none(args["generationConfig"])
        return _without_none(args), warnings

    @staticmethod
    def _parse_provider_options(provider_metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        options = (provider_metadata or {}).get("google")
        if options is None:
            return {}
        try:
            parsed = GoogleProviderOptions.model_validate(options)
        except ValidationError as e:
            raise InvalidArgumentError("providerOptions", f"invalid google provider options: {e}", e) from e
        return parsed.model_dump(by_alias=True, exclude_none=True)

    def _request_parts(self, path_suffix: str, options: Dict[str, Any]):
        url = f"{self.config['base_url']}/{get_model_path(self.model_id)}:{path_suffix}"
        headers = combine_headers(self.config["headers"](), options.get("headers"))
        return url, headers

    # ==========================================================================
    # Generate
    # ==========================================================================

    async def generate(self, prompt: Prompt, **options) -> GenerateResult:
        """
        Send a non-streaming ``generateContent`` request.

        Only the first candidate is read.

        Args:
            prompt (Prompt): Conversation messages.
            **options: See ``get_args``; also ``headers`` (dict) and
                ``abort_signal`` (asyncio.Event).

        Returns:
            GenerateResult: text, files, tool calls, finish reason, usage,
            sources, provider metadata, warnings and the raw call.
        """
        args, warnings = self.get_args(prompt, **options)
        body = to_json_body(args)
        url, headers = self._request_parts("generateContent", options)

        start = time.perf_counter()
        response_headers, response, raw_response = await post_json_to_api(
            url=url,
            headers=headers,
            body=args,
            response_model=GenerateContentResponse,
            http_client=self.config.get("http_client"),
            abort_signal=options.get("abort_signal"),
        )
        latency_ms = (time.perf_counter() - start) * 1000.0

        raw_prompt = args.get("contents")
        raw_settings = {k: v for k, v in args.items() if k != "contents"}

        candidate = response.candidates[0]
        parts = candidate.content.parts if candidate.content is not None else None
        parts = parts or []
        tool_calls = get_tool_calls_from_parts(parts, self.config["generate_id"])
        usage_metadata = response.usage_metadata
        finish_reason = map_google_finish_reason(candidate.finish_reason, has_tool_calls=bool(tool_calls))

        logger.debug(
            "generate.done",
            model=self.model_id,
            finish_reason=finish_reason,
            latency_ms=round(latency_ms, 1),
        )

        return {
            "text": get_text_from_parts(parts),
            "files": [
                {"data": p.inline_data.data, "mime_type": p.inline_data.mime_type}
                for p in get_inline_data_parts(parts)
            ],
            "tool_calls": tool_calls,
            "finish_reason": finish_reason,
            "usage": self.normalize_usage(
                prompt_tokens=usage_metadata.prompt_token_count if usage_metadata else None,
                completion_tokens=usage_metadata.candidates_token_count if usage_metadata else None,
            ),
            "raw_call": {"raw_prompt": raw_prompt, "raw_settings": raw_settings},
            "raw_response": {"headers": response_headers, "body": raw_response},
            "warnings": warnings,
            "provider_metadata": _provider_metadata(candidate),
            "sources": extract_sources(candidate.grounding_metadata, self.config["generate_id"]),
            "request": {"body": body},
        }

    # ==========================================================================
    # Stream
    # ==========================================================================

    async def stream(self, prompt: Prompt, **options) -> "StreamResult":
        """
        Send a ``streamGenerateContent`` request and return the event stream.

        Request and API errors are raised here; per-chunk parse failures are
        yielded as ``error`` events. The stream always ends with exactly one
        ``finish`` event unless the abort signal is set.

        Args:
            prompt (Prompt): Conversation messages.
            **options: Same as ``generate``.

        Returns:
            StreamResult: ``stream`` (async iterator of event dicts), warnings and the raw call.
        """
        args, warnings = self.get_args(prompt, **options)
        body = to_json_body(args)
        url, headers = self._request_parts("streamGenerateContent?alt=sse", options)
        abort_signal = options.get("abort_signal")

        response_headers, chunks = await post_to_event_stream(
            url=url,
            headers=headers,
            body=args,
            chunk_model=GenerateContentChunk,
            http_client=self.config.get("http_client"),
            abort_signal=abort_signal,
        )

        return StreamResult(
            stream=_fold_stream(chunks, self.config["generate_id"], self.model_id, abort_signal),
            raw_call={
                "raw_prompt": args.get("contents"),
                "raw_settings": {k: v for k, v in args.items() if k != "contents"},
            },
            raw_response={"headers": response_headers},
            warnings=warnings,
            request={"body": body},
            source=chunks,
        )


@dataclass
class StreamResult:
    """
    A started stream. Iterate ``stream`` (or the result itself) for events.

    The HTTP response stays open until the events are exhausted. Call
    ``aclose`` (or use ``async with``) to release it when stopping early or
    not iterating at all.
    """
    stream: AsyncIterator[StreamEvent]
    raw_call: Dict[str, Any]
    raw_response: Dict[str, Any]
    warnings: List[CallWarning] = field(default_factory=list)
    request: Dict[str, Any] = field(default_factory=dict)
    source: Optional[EventStream] = field(default=None, repr=False)

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self.stream

    async def aclose(self) -> None:
        await self.stream.aclose()
        # An unstarted fold never reaches its cleanup, so close the source directly.
        if self.source is not None:
            await self.source.aclose()

    async def __aenter__(self) -> "StreamResult":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


# =============================================================================
# Stream Fold
# =============================================================================

@dataclass
class StreamState:
    """
    Accumulator for one streaming call.
    """
    finish_reason: FinishReason = "unknown"
    usage: Usage = field(
        default_factory=lambda: BaseLanguageModel.normalize_usage(prompt_tokens=None, completion_tokens=None)
    )
    provider_metadata: Optional[Dict[str, Any]] = None
    has_tool_calls: bool = False

    def apply(self, chunk: ParseResult, generate_id) -> List[StreamEvent]:
        """
        Fold one parsed chunk into the state and return the events it produces.
        """
        if not chunk.success:
            return [{"type": "error", "error": chunk.error}]

        value: GenerateContentChunk = chunk.value
        events: List[StreamEvent] = []

        if value.usage_metadata is not None:
            self.usage = BaseLanguageModel.normalize_usage(
                prompt_tokens=value.usage_metadata.prompt_token_count,
                completion_tokens=value.usage_metadata.candidates_token_count,
            )

        candidate = value.candidates[0] if value.candidates else None
        if candidate is None:
            return events

        content = candidate.content
        if content is not None:
            parts = content.parts or []

            delta_text = get_text_from_parts(parts)
            if delta_text:
                events.append({"type": "text-delta", "text_delta": delta_text})

            for part in get_inline_data_parts(parts):
                events.append({
                    "type": "file",
                    "mime_type": part.inline_data.mime_type,
                    "data": part.inline_data.data,
                })

            # Gemini sends whole function calls, so each delta carries the full arguments.
            for tool_call in get_tool_calls_from_parts(parts, generate_id) or []:
                events.append({
                    "type": "tool-call-delta",
                    "tool_call_type": "function",
                    "tool_call_id": tool_call["tool_call_id"],
                    "tool_name": tool_call["tool_name"],
                    "args_text_delta": tool_call["args"],
                })
                events.append({"type": "tool-call", **tool_call})
                self.has_tool_calls = True

        if candidate.finish_reason is not None:
            self.finish_reason = map_google_finish_reason(
                candidate.finish_reason, has_tool_calls=self.has_tool_calls
            )
            for source in extract_sources(candidate.grounding_metadata, generate_id) or []:
                events.append({"type": "source", "source": source})
            self.provider_metadata = _provider_metadata(candidate)

        return events

    def finish_event(self) -> StreamEvent:
        return {
            "type": "finish",
            "finish_reason": self.finish_reason,
            "usage": self.usage,
            "provider_metadata": self.provider_metadata,
        }


async def _fold_stream(
    chunks: EventStream,
    generate_id,
    model_id: str,
    abort_signal: Optional[asyncio.Event],
) -> AsyncIterator[StreamEvent]:
    state = StreamState()
    try:
        async for chunk in chunks:
            if not chunk.success:
                logger.warning("stream.chunk_invalid", model=model_id, error=str(chunk.error))
            for event in state.apply(chunk, generate_id):
                yield event
    finally:
        await chunks.aclose()

    if abort_signal is not None and abort_signal.is_set():
        logger.debug("stream.aborted", model=model_id)
        return

    logger.debug("stream.done", model=model_id, finish_reason=state.finish_reason)
    yield state.finish_event()


# =============================================================================
# Part Helpers
# =============================================================================

def get_text_from_parts(parts) -> Optional[str]:
    text_parts = [p.text for p in parts if isinstance(p, TextPart)]
    return "".join(text_parts) if text_parts else None


def get_inline_data_parts(parts) -> List[InlineDataPart]:
    return [p for p in parts if isinstance(p, InlineDataPart)]


def get_tool_calls_from_parts(parts, generate_id) -> Optional[List[ToolCall]]:
    function_call_parts = [p for p in parts if isinstance(p, FunctionCallPart)]
    if not function_call_parts:
        return None
    return [
        {
            "tool_call_type": "function",
            "tool_call_id": generate_id(),
            "tool_name": p.function_call.name,
            "args": json.dumps(p.function_call.args),
        }
        for p in function_call_parts
    ]


def extract_sources(grounding_metadata: Optional[GroundingMetadata], generate_id) -> Optional[List[Source]]:
    if grounding_metadata is None or grounding_metadata.grounding_chunks is None:
        return None
    return [
        {
            "source_type": "url",
            "id": generate_id(),
            "url": chunk.web.uri,
            "title": chunk.web.title,
        }
        for chunk in grounding_metadata.grounding_chunks
        if chunk.web is not None
    ]


def _provider_metadata(candidate: Candidate) -> Dict[str, Any]:
    grounding = candidate.grounding_metadata
    ratings = candidate.safety_ratings
    return {
        "google": {
            "grounding_metadata": grounding.model_dump(by_alias=True, exclude_none=True) if grounding else None,
            "safety_ratings": (
                [r.model_dump(by_alias=True, exclude_none=True) for r in ratings] if ratings is not None else None
            ),
        }
    }


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
