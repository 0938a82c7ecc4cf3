import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypedDict

import httpx

from ..types import EmbedResult, GenerateResult, Prompt, Usage


class ModelConfig(TypedDict, total=False):
    """
    Shared configuration handed to every model by the provider factory.
    """
    provider: str
    base_url: str
    headers: Callable[[], Dict[str, str]]
    generate_id: Callable[[], str]
    is_supported_url: Callable[[Any], bool]
    http_client: Optional[httpx.AsyncClient]


class BaseLanguageModel(ABC):
    """
    Abstract base class for language models.
    """

    specification_version = "v1"

    def __init__(self, model_id: str, config: ModelConfig):
        self.model_id = model_id
        self.config = config

    @property
    def provider(self) -> str:
        return self.config["provider"]

    @abstractmethod
    async def generate(self, prompt: Prompt, **options) -> GenerateResult:
        """
        Generate a complete response.

        Args:
            prompt (Prompt): List of conversation messages.
            **options: Call options (sampling settings, mode, headers, abort_signal).

        Returns:
            GenerateResult: Standardized result dictionary.
        """
        pass

    @abstractmethod
    async def stream(self, prompt: Prompt, **options):
        """
        Stream a response.

        Args:
            prompt (Prompt): List of conversation messages.
            **options: Same options as ``generate``.

        Returns:
            An object exposing the async event iterator plus call metadata.
        """
        pass

    @staticmethod
    def normalize_usage(
        *,
        prompt_tokens: Optional[int],
        completion_tokens: Optional[int],
    ) -> Usage:
        """
        Normalize token usage, substituting NaN for counts the API omitted.

        Args:
            prompt_tokens (int, optional): Number of prompt tokens.
            completion_tokens (int, optional): Number of generated tokens.

        Returns:
            Usage: Standardized usage dictionary.
        """
        return {
            "prompt_tokens": math.nan if prompt_tokens is None else prompt_tokens,
            "completion_tokens": math.nan if completion_tokens is None else completion_tokens,
        }


class BaseEmbeddingModel(ABC):
    """
    Abstract base class for embedding models.
    """

    specification_version = "v1"
    max_embeddings_per_call: Optional[int] = None
    supports_parallel_calls = False

    def __init__(self, model_id: str, config: ModelConfig):
        self.model_id = model_id
        self.config = config

    @property
    def provider(self) -> str:
        return self.config["provider"]

    @abstractmethod
    async def embed(self, values: List[str], **options) -> EmbedResult:
        """
        Embed a batch of values, returning vectors in input order.
        """
        pass
