"""Tests for JSON extraction and repair in the LLM client."""

from unittest.mock import MagicMock

import pytest

from telxtab.llm.client import (
    LLMClient,
    LLMConfig,
    LLMResponse,
    LLMResponseError,
    Message,
    _sanitize_for_json,
    unwrap_json_array,
)


@pytest.fixture
def llm():
    return LLMClient(config=LLMConfig(provider="lmstudio", base_url="http://localhost:1234/v1"))


def _response(content):
    return LLMResponse(content=content, model="test-model", provider="lmstudio")


class TestTryParseJson:
    """Tests for _try_parse_json() strategies."""

    def test_direct(self, llm):
        """Plain JSON parses directly."""
        assert llm._try_parse_json('[{"a": 1}]') == [{"a": 1}]

    def test_fenced_block(self, llm):
        """JSON inside a markdown fence is extracted."""
        content = 'Here you go:\n```json\n{"questions": []}\n```\nEnjoy!'
        assert llm._try_parse_json(content) == {"questions": []}

    def test_array_in_text(self, llm):
        """The first array of objects in prose is found."""
        content = 'Sure! [{"id": "u1", "match_score": 80}] Hope this helps.'
        assert llm._try_parse_json(content) == [{"id": "u1", "match_score": 80}]

    def test_object_in_text(self, llm):
        """A bare object in prose is found."""
        assert llm._try_parse_json('Result: {"ok": true} done') == {"ok": True}

    def test_think_block_removed(self, llm):
        """Reasoning tags are stripped before parsing."""
        content = '<think>maybe [1, 2]?</think>\n{"answer": 42}'
        assert llm._try_parse_json(content) == {"answer": 42}

    def test_unparseable(self, llm):
        """Prose without JSON gives None."""
        assert llm._try_parse_json("no json here") is None


class TestSanitize:
    def test_strips_all_reasoning_tags(self):
        """All three reasoning tag kinds are removed."""
        text = "<analysis>a</analysis><REASONING>b</REASONING> [] "
        assert _sanitize_for_json(text) == "[]"


class TestChatJson:
    """Tests for chat_json() retry behavior."""

    def test_repair_retry(self, llm):
        """An invalid first reply triggers one repair request."""
        llm.chat = MagicMock(side_effect=[_response("oops not json"), _response('{"fixed": true}')])

        result = llm.chat_json([Message(role="user", content="give json")])

        assert result == {"fixed": True}
        assert llm.chat.call_count == 2
        retry_messages = llm.chat.call_args[0][0]
        assert "oops not json" in retry_messages[-1].content

    def test_gives_up_after_retry(self, llm):
        """Two bad replies raise LLMResponseError."""
        llm.chat = MagicMock(return_value=_response("still not json"))
        with pytest.raises(LLMResponseError):
            llm.chat_json([Message(role="user", content="give json")])

    def test_no_json_mode_for_lmstudio(self, llm):
        """LM Studio doesn't get response_format by default."""
        assert llm._supports_json_object() is False
        override = LLMClient(config=LLMConfig(provider="lmstudio", supports_json_object=True))
        assert override._supports_json_object() is True


class TestUnwrapJsonArray:
    """Tests for unwrap_json_array()."""

    def test_list_passes_through(self):
        assert unwrap_json_array([{"a": 1}]) == [{"a": 1}]

    def test_named_key_preferred(self):
        """A listed key wins over other list members."""
        value = {"notes": ["x"], "questions": [{"q": 1}]}
        assert unwrap_json_array(value, "questions") == [{"q": 1}]

    def test_single_list_member(self):
        """An object with exactly one list member yields that list."""
        assert unwrap_json_array({"items": [1, 2], "total": 2}) == [1, 2]

    def test_no_array(self):
        """Ambiguous or array-free replies give None."""
        assert unwrap_json_array({"a": [1], "b": [2]}) is None
        assert unwrap_json_array({"answer": "nobody"}) is None
        assert unwrap_json_array("text") is None
