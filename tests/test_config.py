import pytest

from gemlink.config import (
    combine_headers,
    is_supported_file_url,
    load_api_key,
    without_trailing_slash,
)
from gemlink.errors import LoadAPIKeyError


class TestLoadApiKey:

    def test_explicit_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_GENERATIVE_AI_API_KEY", raising=False)
        assert load_api_key("abc") == "abc"

    def test_env_key(self, mock_env):
        assert load_api_key() == "AIza-test-google"

    def test_custom_env_var(self, monkeypatch):
        monkeypatch.setenv("MY_GEMINI_KEY", "custom")
        assert load_api_key(environment_variable_name="MY_GEMINI_KEY") == "custom"

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_GENERATIVE_AI_API_KEY", raising=False)
        with pytest.raises(LoadAPIKeyError, match="API key is missing"):
            load_api_key()

    def test_non_string_key(self):
        with pytest.raises(LoadAPIKeyError, match="must be a string"):
            load_api_key(123)


class TestHelpers:

    @pytest.mark.parametrize("url, expected", [
        ("https://a.example/v1/", "https://a.example/v1"),
        ("https://a.example/v1", "https://a.example/v1"),
        (None, None),
    ])
    def test_without_trailing_slash(self, url, expected):
        assert without_trailing_slash(url) == expected

    def test_combine_headers(self):
        assert combine_headers(
            {"a": "1", "b": "1"},
            None,
            {"b": "2", "c": "3"},
        ) == {"a": "1", "b": "2", "c": "3"}

    def test_combine_headers_none_removes(self):
        assert combine_headers({"a": "1", "b": "1"}, {"b": None}) == {"a": "1"}

    def test_is_supported_file_url(self):
        assert is_supported_file_url("https://generativelanguage.googleapis.com/v1beta/files/x")
        assert not is_supported_file_url("https://storage.googleapis.com/bucket/x")
