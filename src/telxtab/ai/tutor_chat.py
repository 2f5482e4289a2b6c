"""Conversational English tutor for AI practice chats."""

from __future__ import annotations

from typing import Literal, Sequence

import structlog

from telxtab.llm.client import LLMClient, Message

logger = structlog.get_logger(__name__)

LanguageStyle = Literal["formal", "informal"]

TUTOR_SYSTEM_PROMPT = """You are a helpful English language tutor. The conversation topic is "{topic}".
Use {style} English in your responses.
Your goal is to help the user practice and improve their English skills.
If you notice any language mistakes, politely correct them.
Keep responses concise and engaging."""

OPENING_INSTRUCTION = "Start the conversation about the topic with a short greeting and a question."

# Returned when the last turn already belongs to the tutor
READY_REPLY = "I'm ready to help you practice English!"


def build_system_prompt(topic: str, language_style: LanguageStyle) -> str:
    return TUTOR_SYSTEM_PROMPT.format(topic=topic, style=language_style)


def get_chat_response(
    client: LLMClient,
    history: Sequence[Message],
    topic: str,
    language_style: LanguageStyle = "formal",
) -> str:
    """Produce the tutor's next turn.

    Args:
        client: LLM client
        history: Conversation so far (user/assistant messages, oldest first)
        topic: Conversation topic
        language_style: "formal" or "informal"

    Returns:
        Tutor reply text.

    Raises:
        LLMError: If the model call fails
    """
    system = Message(role="system", content=build_system_prompt(topic, language_style))

    if not history:
        messages = [system, Message(role="user", content=OPENING_INSTRUCTION)]
    elif history[-1].role != "user":
        return READY_REPLY
    else:
        messages = [system, *history]

    response = client.chat(messages)
    logger.debug("tutor_chat.reply", topic=topic, turns=len(history), tokens=response.total_tokens)
    return response.content.strip()
