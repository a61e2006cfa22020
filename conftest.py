"""Shared fixtures: in-process stand-ins for the chat and embedding clients."""

import logging

import pytest


class FakeChat:
    """
    Chat client that answers from a script.

    `replies` is either a list consumed in order or a callable taking the
    message list. Exceptions in the list (or raised by the callable) are raised.
    """

    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def complete(self, messages, temperature=0.3, max_tokens=None, json_mode=False):
        self.calls.append({
            'messages': messages,
            'temperature': temperature,
            'max_tokens': max_tokens,
            'json_mode': json_mode,
        })
        if callable(self.replies):
            reply = self.replies(messages)
        else:
            reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeEmbedder:
    """Embedder backed by a text -> vector table; unknown texts raise."""

    def __init__(self, vectors):
        self.vectors = vectors
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        if text not in self.vectors:
            raise RuntimeError(f"embedding service unavailable for {text!r}")
        return self.vectors[text]


@pytest.fixture
def logger():
    return logging.getLogger("tests")


@pytest.fixture
def fake_chat():
    return FakeChat


@pytest.fixture
def fake_embedder():
    return FakeEmbedder
