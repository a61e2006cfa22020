"""
Model clients for the feedback pipeline.

Two capabilities are passed into every step instead of living as globals:
  - a chat client:  complete(messages, ...) -> str
  - an embedder:    embed(text) -> List[float]

Chat runs against any OpenAI-compatible server (Docker Model Runner by default)
or the Anthropic API. Embeddings come from the same OpenAI-compatible server or
a local sentence-transformers model.
"""

import os
from typing import List, Optional

import pipeline_config as config
from pipeline_utils import load_env_file


class ModelAPIError(Exception):
    """Raised when a model call fails or returns an unusable response."""
    pass


# =============================================================================
# CHAT CLIENTS
# =============================================================================

class OpenAIChatClient:
    """Chat completions against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        model: str = config.LLM_MODEL,
        base_url: str = config.OPENAI_BASE_URL,
        api_key: str = config.OPENAI_API_KEY,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        from openai import OpenAI

        self.model = model
        self.client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout)

    def complete(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Send a chat request and return the stripped reply text.

        Raises:
            ModelAPIError: On any API failure or empty reply
        """
        import openai

        params = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise ModelAPIError(f"Chat request failed: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            raise ModelAPIError("Chat response had no content")
        return response.choices[0].message.content.strip()


class AnthropicChatClient:
    """Chat completions against the Anthropic Messages API."""

    MAX_TOKENS = 1024  # Anthropic requires an explicit limit

    def __init__(self, model: str = config.ANTHROPIC_MODEL, api_key: Optional[str] = None):
        import anthropic

        if api_key is None:
            load_env_file()
            api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise ModelAPIError("ANTHROPIC_API_KEY not set (environment or ~/.env)")

        self.model = model
        self.client = anthropic.Anthropic(api_key=api_key)

    def complete(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        import anthropic

        # System prompts travel separately in the Messages API
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]
        if json_mode:
            system += "\n\nRespond with a single JSON object and nothing else."

        try:
            response = self.client.messages.create(
                model=self.model,
                system=system,
                messages=turns,
                temperature=temperature,
                max_tokens=max_tokens or self.MAX_TOKENS,
            )
        except anthropic.AnthropicError as e:
            raise ModelAPIError(f"Chat request failed: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text:
            raise ModelAPIError("Chat response had no text content")
        return text.strip()


# =============================================================================
# EMBEDDERS
# =============================================================================

class OpenAIEmbedder:
    """Embeddings from an OpenAI-compatible /embeddings endpoint."""

    def __init__(
        self,
        model: str = config.EMBEDDINGS_MODEL,
        base_url: str = config.OPENAI_BASE_URL,
        api_key: str = config.OPENAI_API_KEY,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        from openai import OpenAI

        self.model = model
        self.client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout)

    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Raises:
            ModelAPIError: On any API failure
        """
        import openai

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
                encoding_format="float",
            )
        except openai.OpenAIError as e:
            raise ModelAPIError(f"Embedding request failed: {e}") from e

        if not response.data:
            raise ModelAPIError("Embedding response had no data")
        return list(response.data[0].embedding)


class SentenceTransformerEmbedder:
    """Local embeddings with sentence-transformers (no server needed)."""

    def __init__(self, model: str = config.LOCAL_EMBEDDING_MODEL):
        from sentence_transformers import SentenceTransformer

        self.model_name = model
        self.model = SentenceTransformer(model)

    def embed(self, text: str) -> List[float]:
        return self.model.encode(text).tolist()


# =============================================================================
# FACTORIES
# =============================================================================

def make_chat_client(provider: Optional[str] = None, model: Optional[str] = None):
    """Build the chat client selected by configuration."""
    provider = provider or config.LLM_PROVIDER
    if provider == "openai":
        return OpenAIChatClient(model=model or config.LLM_MODEL)
    if provider == "anthropic":
        return AnthropicChatClient(model=model or config.ANTHROPIC_MODEL)
    raise ValueError(f"Unknown LLM provider: {provider!r} (expected 'openai' or 'anthropic')")


def make_embedder(provider: Optional[str] = None, model: Optional[str] = None):
    """Build the embedder selected by configuration."""
    provider = provider or config.EMBEDDINGS_PROVIDER
    if provider == "openai":
        return OpenAIEmbedder(model=model or config.EMBEDDINGS_MODEL)
    if provider == "sentence-transformers":
        return SentenceTransformerEmbedder(model=model or config.LOCAL_EMBEDDING_MODEL)
    raise ValueError(
        f"Unknown embeddings provider: {provider!r} (expected 'openai' or 'sentence-transformers')"
    )
