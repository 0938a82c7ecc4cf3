from typing import Any, Dict, List, Optional


class GemlinkError(Exception):
    """
    Base class for all errors raised by gemlink.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class UnsupportedFunctionalityError(GemlinkError):
    """
    Raised when a prompt, tool choice or mode cannot be expressed for the Gemini API.
    """

    def __init__(self, functionality: str):
        super().__init__(f"'{functionality}' functionality not supported.")
        self.functionality = functionality


class TooManyEmbeddingValuesForCallError(GemlinkError):
    """
    Raised when an embedding call exceeds the per-call batch cap.
    """

    def __init__(
        self,
        provider: str,
        model_id: str,
        max_embeddings_per_call: int,
        values: List[Any],
    ):
        super().__init__(
            f"Too many values for a single embedding call. "
            f"The {provider} model \"{model_id}\" can only embed up to "
            f"{max_embeddings_per_call} values per call, but {len(values)} values were provided."
        )
        self.provider = provider
        self.model_id = model_id
        self.max_embeddings_per_call = max_embeddings_per_call
        self.values = values


class APICallError(GemlinkError):
    """
    Raised for non-2xx responses and vendor error bodies.

    Attributes:
        url: Request URL.
        request_body_values: The JSON body that was sent.
        status_code: HTTP status code, if a response was received.
        response_headers: Response headers, if a response was received.
        response_body: Raw response text, if a response was received.
        vendor_code: The numeric ``error.code`` from the vendor body (may be None).
        vendor_status: The ``error.status`` string from the vendor body.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        request_body_values: Any = None,
        status_code: Optional[int] = None,
        response_headers: Optional[Dict[str, str]] = None,
        response_body: Optional[str] = None,
        vendor_code: Optional[int] = None,
        vendor_status: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.url = url
        self.request_body_values = request_body_values
        self.status_code = status_code
        self.response_headers = response_headers
        self.response_body = response_body
        self.vendor_code = vendor_code
        self.vendor_status = vendor_status

    @property
    def is_retryable(self) -> bool:
        # Informational only; nothing in gemlink retries.
        return self.status_code is not None and (
            self.status_code in (408, 409, 429) or self.status_code >= 500
        )


class TypeValidationError(GemlinkError):
    """
    Raised when a response body fails structural validation.
    """

    def __init__(self, value: Any, cause: BaseException):
        super().__init__(f"Type validation failed: {cause}", cause)
        self.value = value


class LoadAPIKeyError(GemlinkError):
    """
    Raised when no API key is configured.
    """


class InvalidArgumentError(GemlinkError):
    """
    Raised for invalid call arguments, such as malformed provider options.
    """

    def __init__(self, argument: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Invalid argument for parameter {argument}: {message}", cause)
        self.argument = argument


class AbortError(GemlinkError):
    """
    Raised when a call observes its abort signal.
    """

    def __init__(self, message: str = "The operation was aborted."):
        super().__init__(message)
