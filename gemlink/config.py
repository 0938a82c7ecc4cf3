import os
from typing import Dict, Optional

import dotenv

from .errors import LoadAPIKeyError

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
API_KEY_ENV_VAR = "GOOGLE_GENERATIVE_AI_API_KEY"
API_KEY_HEADER = "x-goog-api-key"
PROVIDER_NAME = "google.generative-ai"

# Files uploaded through the Gemini Files API are the only URLs the API can read directly.
SUPPORTED_FILE_URL_PREFIX = "https://generativelanguage.googleapis.com/v1beta/files/"

# Load environment variables
dotenv.load_dotenv()


def load_api_key(
    api_key: Optional[str] = None,
    environment_variable_name: str = API_KEY_ENV_VAR,
    description: str = "Google Generative AI",
) -> str:
    """
    Resolve the API key for a request.

    An explicitly configured key wins. Otherwise the key is read from the
    environment, which includes anything loaded from a local ``.env`` file.

    Args:
        api_key (str, optional): Explicit API key.
        environment_variable_name (str): Environment variable to fall back to.
        description (str): Human readable provider name used in error messages.

    Returns:
        str: The API key.

    Raises:
        LoadAPIKeyError: If no key is configured.
    """
    if api_key is not None:
        if not isinstance(api_key, str):
            raise LoadAPIKeyError(f"{description} API key must be a string.")
        return api_key

    value = os.environ.get(environment_variable_name)
    if value is None:
        raise LoadAPIKeyError(
            f"{description} API key is missing. Pass it using the 'api_key' parameter "
            f"or the {environment_variable_name} environment variable."
        )
    return value


def without_trailing_slash(url: Optional[str]) -> Optional[str]:
    if url is None:
        return None
    return url[:-1] if url.endswith("/") else url


def combine_headers(*headers: Optional[Dict[str, Optional[str]]]) -> Dict[str, str]:
    """
    Merge header dictionaries left to right; later values win.

    A header explicitly set to None in a later dictionary removes it.
    """
    merged: Dict[str, Optional[str]] = {}
    for h in headers:
        if h:
            merged.update(h)
    return {k: v for k, v in merged.items() if v is not None}


def is_supported_file_url(url) -> bool:
    return str(url).startswith(SUPPORTED_FILE_URL_PREFIX)
