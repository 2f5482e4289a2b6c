"""Fixtures for the AI and LLM client tests."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from telxtab.llm.client import LLMClient, LLMConfig


@pytest.fixture
def gemini_client():
    """Callable building a gemini-configured client that replies with ``reply`` as JSON.

    Only the OpenAI transport is faked, so request shaping and JSON
    parsing run for real.
    """

    def build(reply) -> LLMClient:
        llm = LLMClient(config=LLMConfig(provider="gemini", api_key="test-key"))
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=json.dumps(reply)))],
            model="gemini-test",
            usage=None,
        )
        llm._client = MagicMock()
        llm._client.chat.completions.create.return_value = completion
        return llm

    return build
