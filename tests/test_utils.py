import httpx
import pytest
from unittest.mock import patch, mock_open

from gemlink.messages import convert_to_google_messages
from gemlink.utils import (
    create_file_content,
    create_image_content,
    create_message,
    create_text_content,
    create_tool,
    create_tool_call,
    create_tool_result,
    encode_image_file,
    generate_id,
)


class TestUtils:

    def test_generate_id(self):
        first, second = generate_id(), generate_id()
        assert len(first) == 16
        assert first != second

    def test_create_text_content(self):
        content = create_text_content("Hello")
        assert content == {"type": "text", "text": "Hello"}

    def test_create_image_content_from_url(self):
        content = create_image_content("https://example.com/img.jpg")
        assert content["type"] == "image"
        assert content["image"] == httpx.URL("https://example.com/img.jpg")
        assert "mime_type" not in content

    def test_create_image_content_from_bytes(self):
        content = create_image_content(b"\x89PNG", mime_type="image/png")
        assert content == {"type": "image", "image": b"\x89PNG", "mime_type": "image/png"}

    def test_create_image_content_from_path(self, tmp_path):
        image = tmp_path / "cat.png"
        image.write_bytes(b"png data")
        content = create_image_content(str(image))
        assert content == {"type": "image", "image": b"png data", "mime_type": "image/png"}

    def test_create_image_content_unknown_source(self):
        with pytest.raises(ValueError, match="Cannot determine image source type"):
            create_image_content("not/a/real/file.png")

    def test_create_file_content(self):
        content = create_file_content("SGVsbG8=", "text/plain")
        assert content == {"type": "file", "data": "SGVsbG8=", "mime_type": "text/plain"}

    def test_create_message_text(self):
        msg = create_message("user", "Hello world")
        assert msg == {"role": "user", "content": [{"type": "text", "text": "Hello world"}]}

    def test_create_message_system(self):
        assert create_message("system", "Be brief.") == {"role": "system", "content": "Be brief."}
        with pytest.raises(ValueError):
            create_message("system", ["not", "a", "string"])

    def test_create_message_multimodal(self):
        content = [
            "Look at this",
            create_image_content("https://example.com/cat.jpg"),
        ]
        msg = create_message("user", content)
        assert msg["role"] == "user"
        assert len(msg["content"]) == 2
        assert msg["content"][0] == {"type": "text", "text": "Look at this"}

    @patch("pathlib.Path.exists")
    @patch("builtins.open", new_callable=mock_open, read_data=b"image data")
    def test_encode_image_file(self, mock_file, mock_exists):
        mock_exists.return_value = True

        data, mime_type = encode_image_file("test.jpg")

        assert mime_type == "image/jpeg"
        assert data == b"image data"

    def test_encode_image_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            encode_image_file(tmp_path / "missing.png")

    def test_create_tool(self):
        tool = create_tool(
            name="get_weather",
            description="Get weather",
            parameters={"location": {"type": "string"}},
            required=["location"],
        )
        assert tool["type"] == "function"
        assert tool["name"] == "get_weather"
        assert tool["parameters"]["required"] == ["location"]

    def test_create_tool_call(self):
        part = create_tool_call("get_weather", {"location": "Paris"}, tool_call_id="call_123")
        assert part == {
            "type": "tool-call",
            "tool_call_id": "call_123",
            "tool_name": "get_weather",
            "args": {"location": "Paris"},
        }

    def test_create_tool_result(self):
        result = create_tool_result("call_123", "get_weather", {"temp": 21})
        assert result["role"] == "tool"
        assert result["content"][0]["tool_call_id"] == "call_123"
        assert result["content"][0]["result"] == {"temp": 21}

    def test_helpers_build_a_valid_prompt(self):
        prompt = [
            create_message("system", "Be brief."),
            create_message("user", ["What is the weather?"]),
            create_message("assistant", [create_tool_call("get_weather", {"location": "Paris"})]),
            create_tool_result("call_1", "get_weather", {"temp": 21}),
        ]
        result = convert_to_google_messages(prompt)
        assert [c["role"] for c in result["contents"]] == ["user", "model", "user"]
        assert result["contents"][2]["parts"][0]["functionResponse"]["name"] == "get_weather"
