from typing import Callable, Dict, Optional

import httpx

from .config import (
    API_KEY_HEADER,
    DEFAULT_BASE_URL,
    PROVIDER_NAME,
    combine_headers,
    is_supported_file_url,
    load_api_key,
    without_trailing_slash,
)
from .providers.base import ModelConfig
from .providers.embedding_model import GoogleGenerativeAIEmbeddingModel
from .providers.language_model import GoogleGenerativeAILanguageModel
from .types import GoogleGenerativeAIEmbeddingSettings, GoogleGenerativeAISettings
from .utils import generate_id as default_generate_id


class GoogleGenerativeAIProvider:
    """
    Factory for Gemini language and embedding models.

    Calling the provider directly is the same as calling ``language_model``:

        >>> model = google("gemini-1.5-flash")
        >>> result = await model.generate([{"role": "user", "content": [{"type": "text", "text": "Hi"}]}])
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        generate_id: Optional[Callable[[], str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            base_url: API base URL. Defaults to the public v1beta endpoint.
            api_key: API key. Defaults to env var GOOGLE_GENERATIVE_AI_API_KEY,
                resolved on each request.
            headers: Extra headers sent with every request.
            generate_id: Id generator for tool calls and sources.
            http_client: Shared ``httpx.AsyncClient``; a client per request is used when omitted.
        """
        self.base_url = without_trailing_slash(base_url) or DEFAULT_BASE_URL
        self._api_key = api_key
        self._headers = headers
        self._generate_id = generate_id or default_generate_id
        self._http_client = http_client

    def _get_headers(self) -> Dict[str, str]:
        return combine_headers({API_KEY_HEADER: load_api_key(self._api_key)}, self._headers)

    def _config(self) -> ModelConfig:
        return {
            "provider": PROVIDER_NAME,
            "base_url": self.base_url,
            "headers": self._get_headers,
            "generate_id": self._generate_id,
            "is_supported_url": is_supported_file_url,
            "http_client": self._http_client,
        }

    # ==========================================================================
    # Language Models
    # ==========================================================================

    def language_model(
        self,
        model_id: str,
        settings: Optional[GoogleGenerativeAISettings] = None,
    ) -> GoogleGenerativeAILanguageModel:
        return GoogleGenerativeAILanguageModel(model_id, settings, self._config())

    def __call__(
        self,
        model_id: str,
        settings: Optional[GoogleGenerativeAISettings] = None,
    ) -> GoogleGenerativeAILanguageModel:
        return self.language_model(model_id, settings)

    chat = language_model
    generative_ai = language_model

    # ==========================================================================
    # Embedding Models
    # ==========================================================================

    def text_embedding_model(
        self,
        model_id: str,
        settings: Optional[GoogleGenerativeAIEmbeddingSettings] = None,
    ) -> GoogleGenerativeAIEmbeddingModel:
        return GoogleGenerativeAIEmbeddingModel(model_id, settings, self._config())

    embedding = text_embedding_model
    text_embedding = text_embedding_model


def create_google_generative_ai(
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    generate_id: Optional[Callable[[], str]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> GoogleGenerativeAIProvider:
    """
    Create a Gemini provider instance.
    """
    return GoogleGenerativeAIProvider(
        base_url=base_url,
        api_key=api_key,
        headers=headers,
        generate_id=generate_id,
        http_client=http_client,
    )


# Default provider instance
google = create_google_generative_ai()
