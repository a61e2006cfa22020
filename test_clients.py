"""Tests for clients.py with the SDK classes patched out."""

from unittest.mock import MagicMock, patch

import numpy as np
import openai
import pytest

from clients import (
    AnthropicChatClient,
    ModelAPIError,
    OpenAIChatClient,
    OpenAIEmbedder,
    SentenceTransformerEmbedder,
    make_chat_client,
    make_embedder,
)


def chat_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestOpenAIChatClient:
    @patch("openai.OpenAI")
    def test_complete_passes_parameters(self, mock_openai_cls) -> None:
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.return_value = chat_response("  positive \n")

        client = OpenAIChatClient(model="ai/test", base_url="http://model:1/v1", api_key="k")
        messages = [{'role': 'user', 'content': 'hi'}]
        result = client.complete(messages, temperature=0.1, max_tokens=10, json_mode=True)

        assert result == "positive"
        mock_openai_cls.assert_called_once_with(base_url="http://model:1/v1", api_key="k", timeout=60)
        mock_client.chat.completions.create.assert_called_once_with(
            model="ai/test",
            messages=messages,
            temperature=0.1,
            max_tokens=10,
            response_format={"type": "json_object"},
        )

    @patch("openai.OpenAI")
    def test_optional_parameters_omitted(self, mock_openai_cls) -> None:
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.return_value = chat_response("ok")

        OpenAIChatClient().complete([{'role': 'user', 'content': 'hi'}])

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert 'max_tokens' not in kwargs
        assert 'response_format' not in kwargs

    @patch("openai.OpenAI")
    def test_api_error_wrapped(self, mock_openai_cls) -> None:
        mock_openai_cls.return_value.chat.completions.create.side_effect = openai.OpenAIError("down")
        with pytest.raises(ModelAPIError, match="down"):
            OpenAIChatClient().complete([{'role': 'user', 'content': 'hi'}])

    @patch("openai.OpenAI")
    def test_empty_reply_is_error(self, mock_openai_cls) -> None:
        mock_openai_cls.return_value.chat.completions.create.return_value = chat_response(None)
        with pytest.raises(ModelAPIError):
            OpenAIChatClient().complete([{'role': 'user', 'content': 'hi'}])


class TestAnthropicChatClient:
    @patch("anthropic.Anthropic")
    def test_system_messages_sent_separately(self, mock_anthropic_cls) -> None:
        block = MagicMock(type="text", text=" Speed ")
        mock_anthropic_cls.return_value.messages.create.return_value = MagicMock(content=[block])

        client = AnthropicChatClient(model="claude-test", api_key="key")
        result = client.complete(
            [{'role': 'system', 'content': 'Be brief.'}, {'role': 'user', 'content': 'Name it'}],
            temperature=0.3,
            max_tokens=20,
        )

        assert result == "Speed"
        mock_anthropic_cls.return_value.messages.create.assert_called_once_with(
            model="claude-test",
            system="Be brief.",
            messages=[{'role': 'user', 'content': 'Name it'}],
            temperature=0.3,
            max_tokens=20,
        )

    @patch("anthropic.Anthropic")
    def test_json_mode_adds_instruction_and_default_limit(self, mock_anthropic_cls) -> None:
        block = MagicMock(type="text", text="{}")
        mock_anthropic_cls.return_value.messages.create.return_value = MagicMock(content=[block])

        AnthropicChatClient(api_key="key").complete(
            [{'role': 'system', 'content': 'Analyst.'}, {'role': 'user', 'content': 'x'}], json_mode=True
        )

        kwargs = mock_anthropic_cls.return_value.messages.create.call_args.kwargs
        assert kwargs['system'].startswith("Analyst.")
        assert "JSON" in kwargs['system']
        assert kwargs['max_tokens'] == AnthropicChatClient.MAX_TOKENS

    @patch("clients.load_env_file")
    def test_missing_key_rejected(self, _mock_env, monkeypatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ModelAPIError, match="ANTHROPIC_API_KEY"):
            AnthropicChatClient()


class TestEmbedders:
    @patch("openai.OpenAI")
    def test_openai_embedder(self, mock_openai_cls) -> None:
        mock_client = mock_openai_cls.return_value
        mock_client.embeddings.create.return_value = MagicMock(data=[MagicMock(embedding=[0.5, 0.25])])

        vector = OpenAIEmbedder(model="ai/embed").embed("hello")

        assert vector == [0.5, 0.25]
        mock_client.embeddings.create.assert_called_once_with(
            model="ai/embed", input="hello", encoding_format="float"
        )

    @patch("openai.OpenAI")
    def test_openai_embedder_error_wrapped(self, mock_openai_cls) -> None:
        mock_openai_cls.return_value.embeddings.create.side_effect = openai.OpenAIError("nope")
        with pytest.raises(ModelAPIError):
            OpenAIEmbedder().embed("hello")

    @patch("sentence_transformers.SentenceTransformer")
    def test_sentence_transformer_embedder(self, mock_st_cls) -> None:
        mock_st_cls.return_value.encode.return_value = np.array([0.1, 0.2], dtype=np.float32)

        vector = SentenceTransformerEmbedder(model="tiny-model").embed("hello")

        mock_st_cls.assert_called_once_with("tiny-model")
        assert vector == pytest.approx([0.1, 0.2])
        assert isinstance(vector, list)


class TestFactories:
    @patch("openai.OpenAI")
    def test_make_chat_client_openai(self, _mock_openai_cls) -> None:
        client = make_chat_client("openai", model="ai/other")
        assert isinstance(client, OpenAIChatClient)
        assert client.model == "ai/other"

    @patch("openai.OpenAI")
    def test_make_embedder_openai(self, _mock_openai_cls) -> None:
        assert isinstance(make_embedder("openai"), OpenAIEmbedder)

    def test_unknown_providers_rejected(self) -> None:
        with pytest.raises(ValueError):
            make_chat_client("vertex")
        with pytest.raises(ValueError):
            make_embedder("tfidf")
