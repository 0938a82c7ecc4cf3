from .base import BaseLanguageModel, BaseEmbeddingModel
from .language_model import GoogleGenerativeAILanguageModel, StreamResult, get_model_path
from .embedding_model import GoogleGenerativeAIEmbeddingModel

__all__ = [
    "BaseLanguageModel",
    "BaseEmbeddingModel",
    "GoogleGenerativeAILanguageModel",
    "GoogleGenerativeAIEmbeddingModel",
    "StreamResult",
    "get_model_path",
]
