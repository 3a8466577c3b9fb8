"""
Unit tests for the message and prompt value models.

Tests cover:
- Role constructors and value equality
- Coercion from provider-style dicts
- Provider dict conversion, including tool call bookkeeping
- Buffer string rendering
"""

import pytest
from pydantic import ValidationError

from chainsmith.schemas.documents import Document
from chainsmith.schemas.messages import Message, MessageRole, get_buffer_string
from chainsmith.schemas.prompt_value import ChatPrompt, StringPrompt


class TestMessage:
    """Tests for the Message model."""

    def test_constructors_set_role(self):
        assert Message.system("s").role is MessageRole.SYSTEM
        assert Message.human("h").role is MessageRole.HUMAN
        assert Message.ai("a").role is MessageRole.AI
        assert Message.tool("t").role is MessageRole.TOOL

    def test_compared_by_value(self):
        assert Message.human("hi") == Message.human("hi")
        assert Message.human("hi") != Message.ai("hi")

    def test_is_immutable(self):
        message = Message.human("hi")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_tool_message_metadata(self):
        message = Message.tool("42", tool_call_id="call_1", name="calculator")
        assert message.metadata == {"tool_call_id": "call_1", "name": "calculator"}


class TestCoerce:
    """Tests for Message.coerce()."""

    def test_message_passes_through(self):
        message = Message.ai("x")
        assert Message.coerce(message) is message

    @pytest.mark.parametrize(
        "role, expected",
        [
            ("user", MessageRole.HUMAN),
            ("assistant", MessageRole.AI),
            ("human", MessageRole.HUMAN),
            ("system", MessageRole.SYSTEM),
        ],
    )
    def test_role_aliases(self, role, expected):
        assert Message.coerce({"role": role, "content": "x"}).role is expected

    def test_unknown_role_raises(self):
        with pytest.raises(ValidationError):
            Message.coerce({"role": "narrator", "content": "x"})


class TestToProviderDict:
    """Tests for Message.to_provider_dict()."""

    def test_roles_use_openai_names(self):
        assert Message.human("hi").to_provider_dict() == {"role": "user", "content": "hi"}
        assert Message.ai("yo").to_provider_dict() == {"role": "assistant", "content": "yo"}

    def test_assistant_tool_calls_lifted(self):
        calls = [{"id": "c1", "type": "function", "function": {"name": "f", "arguments": "{}"}}]
        payload = Message.ai("", tool_calls=calls).to_provider_dict()
        assert payload["tool_calls"] == calls
        assert payload["content"] is None

    def test_tool_message_fields_lifted(self):
        payload = Message.tool("result", tool_call_id="c1", name="f").to_provider_dict()
        assert payload == {"role": "tool", "content": "result", "tool_call_id": "c1", "name": "f"}


class TestBufferString:
    """Tests for get_buffer_string()."""

    def test_default_prefixes(self):
        history = [Message.system("rules"), Message.human("hi"), Message.ai("hello")]
        assert get_buffer_string(history) == "System: rules\nHuman: hi\nAI: hello"

    def test_custom_prefixes(self):
        history = [Message.human("hi"), Message.ai("hello")]
        assert get_buffer_string(history, human_prefix="User", ai_prefix="Bot") == "User: hi\nBot: hello"

    def test_empty(self):
        assert get_buffer_string([]) == ""


class TestPromptValues:
    """Tests for StringPrompt and ChatPrompt."""

    def test_string_prompt(self):
        value = StringPrompt(text="hello")
        assert value.to_string() == "hello"
        assert value.to_messages() == [Message.human("hello")]

    def test_chat_prompt(self):
        value = ChatPrompt(messages=(Message.system("s"), Message.human("h")))
        assert value.to_messages() == [Message.system("s"), Message.human("h")]
        assert value.to_string() == "System: s\nHuman: h"


class TestDocument:
    """Tests for the Document model."""

    def test_defaults(self):
        doc = Document(text="content")
        assert doc.metadata == {}
        assert doc.score is None
