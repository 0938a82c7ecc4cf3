from typing import List, Optional

import structlog

from .base import BaseEmbeddingModel, ModelConfig
from ..config import combine_headers
from ..errors import TooManyEmbeddingValuesForCallError
from ..http import post_json_to_api
from ..responses import BatchEmbedContentsResponse
from ..types import EmbedResult, GoogleGenerativeAIEmbeddingSettings

logger = structlog.get_logger(__name__)


class GoogleGenerativeAIEmbeddingModel(BaseEmbeddingModel):
    """
    Gemini text embedding model over the ``batchEmbedContents`` REST API.
    """

    max_embeddings_per_call = 2048
    supports_parallel_calls = True

    def __init__(
        self,
        model_id: str,
        settings: Optional[GoogleGenerativeAIEmbeddingSettings],
        config: ModelConfig,
    ):
        super().__init__(model_id, config)
        self.settings: GoogleGenerativeAIEmbeddingSettings = settings or {}

    async def embed(self, values: List[str], **options) -> EmbedResult:
        """
        Embed up to ``max_embeddings_per_call`` values in one batched request.

        Args:
            values (List[str]): Texts to embed.
            **options: ``headers`` (dict) and ``abort_signal`` (asyncio.Event).

        Returns:
            EmbedResult: ``embeddings`` in input order and the raw response headers.

        Raises:
            TooManyEmbeddingValuesForCallError: If more than 2048 values are given.
        """
        if len(values) > self.max_embeddings_per_call:
            raise TooManyEmbeddingValuesForCallError(
                provider=self.provider,
                model_id=self.model_id,
                max_embeddings_per_call=self.max_embeddings_per_call,
                values=values,
            )

        headers = combine_headers(self.config["headers"](), options.get("headers"))
        requests = []
        for value in values:
            request = {
                "model": f"models/{self.model_id}",
                "content": {"role": "user", "parts": [{"text": value}]},
            }
            if self.settings.get("output_dimensionality") is not None:
                request["outputDimensionality"] = self.settings["output_dimensionality"]
            if self.settings.get("task_type") is not None:
                request["taskType"] = self.settings["task_type"]
            requests.append(request)

        response_headers, response, _ = await post_json_to_api(
            url=f"{self.config['base_url']}/models/{self.model_id}:batchEmbedContents",
            headers=headers,
            body={"requests": requests},
            response_model=BatchEmbedContentsResponse,
            http_client=self.config.get("http_client"),
            abort_signal=options.get("abort_signal"),
        )
        logger.debug("embed.done", model=self.model_id, count=len(values))

        return {
            "embeddings": [item.values for item in response.embeddings],
            "usage": None,
            "raw_response": {"headers": response_headers},
        }
