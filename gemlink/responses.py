"""
Pydantic models for Gemini API payloads.

Responses are validated once at the HTTP boundary. Content parts decode into
a tagged union keyed on which of ``text``, ``functionCall`` or ``inlineData``
the part carries.
"""
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel


class GoogleModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Content Parts
# =============================================================================

class TextPart(GoogleModel):
    text: str


class FunctionCall(GoogleModel):
    name: str
    args: Any = None


class FunctionCallPart(GoogleModel):
    function_call: FunctionCall


class InlineData(GoogleModel):
    mime_type: str
    data: str


class InlineDataPart(GoogleModel):
    inline_data: InlineData


def _part_kind(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        for key in ("text", "functionCall", "inlineData"):
            if key in value:
                return key
        return None
    if isinstance(value, TextPart):
        return "text"
    if isinstance(value, FunctionCallPart):
        return "functionCall"
    if isinstance(value, InlineDataPart):
        return "inlineData"
    return None


ResponsePart = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[FunctionCallPart, Tag("functionCall")],
        Annotated[InlineDataPart, Tag("inlineData")],
    ],
    Discriminator(_part_kind),
]


class Content(GoogleModel):
    # Blocked candidates can come back with an empty content object.
    role: Optional[str] = None
    parts: Optional[List[ResponsePart]] = None


# =============================================================================
# Grounding & Safety
# =============================================================================

class WebChunk(GoogleModel):
    uri: str
    title: str


class GroundingChunk(GoogleModel):
    web: Optional[WebChunk] = None
    retrieved_context: Optional[WebChunk] = None


class Segment(GoogleModel):
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    text: Optional[str] = None


class GroundingSupport(GoogleModel):
    segment: Segment
    segment_text: Optional[str] = Field(None, alias="segment_text")
    grounding_chunk_indices: Optional[List[int]] = None
    support_chunk_indices: Optional[List[int]] = None
    confidence_scores: Optional[List[float]] = None
    confidence_score: Optional[List[float]] = None


class SearchEntryPoint(GoogleModel):
    rendered_content: str


class RetrievalMetadata(GoogleModel):
    web_dynamic_retrieval_score: Optional[float] = None


class GroundingMetadata(GoogleModel):
    web_search_queries: Optional[List[str]] = None
    retrieval_queries: Optional[List[str]] = None
    search_entry_point: Optional[SearchEntryPoint] = None
    grounding_chunks: Optional[List[GroundingChunk]] = None
    grounding_supports: Optional[List[GroundingSupport]] = None
    retrieval_metadata: Optional[RetrievalMetadata] = None


class SafetyRating(GoogleModel):
    category: str
    probability: str
    probability_score: Optional[float] = None
    severity: Optional[str] = None
    severity_score: Optional[float] = None
    blocked: Optional[bool] = None


# =============================================================================
# Responses
# =============================================================================

class Candidate(GoogleModel):
    content: Optional[Content] = None
    finish_reason: Optional[str] = None
    safety_ratings: Optional[List[SafetyRating]] = None
    grounding_metadata: Optional[GroundingMetadata] = None


class UsageMetadata(GoogleModel):
    prompt_token_count: Optional[int] = None
    candidates_token_count: Optional[int] = None
    total_token_count: Optional[int] = None


class GenerateContentResponse(GoogleModel):
    candidates: List[Candidate] = Field(min_length=1)
    usage_metadata: Optional[UsageMetadata] = None


class GenerateContentChunk(GoogleModel):
    candidates: Optional[List[Candidate]] = None
    usage_metadata: Optional[UsageMetadata] = None


class ContentEmbedding(GoogleModel):
    values: List[float]


class BatchEmbedContentsResponse(GoogleModel):
    embeddings: List[ContentEmbedding]


class GoogleErrorDetail(GoogleModel):
    code: Optional[int]
    message: str
    status: str


class GoogleErrorData(GoogleModel):
    error: GoogleErrorDetail


# =============================================================================
# Provider Options
# =============================================================================

class ThinkingConfig(GoogleModel):
    thinking_budget: Optional[int] = None


class GoogleProviderOptions(GoogleModel):
    """
    Options passed per call under ``provider_metadata["google"]``.
    """
    response_modalities: Optional[List[Literal["TEXT", "IMAGE"]]] = None
    thinking_config: Optional[ThinkingConfig] = None
